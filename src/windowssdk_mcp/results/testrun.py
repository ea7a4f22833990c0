"""VSTest .trx result parsing."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any
from xml.etree.ElementTree import Element

import defusedxml.ElementTree as ET

from ..errors import XML_LOAD_ERRORS, ParseError

logger = logging.getLogger(__name__)

DURATION_PATTERN = re.compile(r"^([0-9]+):([0-9]+):([0-9]+)(?:\.([0-9]+))?$")

DEFAULT_TEST_GROUP = "Unit Tests"


class TestStatus(str, Enum):
    """Unit test outcome."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    INCONCLUSIVE = "inconclusive"


@dataclass
class TestRecord:
    """One unit test result."""

    __test__ = False

    name: str
    status: TestStatus
    result: str
    start_time: datetime | None = None
    duration: timedelta = field(default_factory=timedelta)
    group: str = DEFAULT_TEST_GROUP

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "group": self.group,
            "name": self.name,
            "status": self.status.value,
            "result": self.result,
            "startTime": self.start_time.isoformat() if self.start_time else None,
            "durationSeconds": self.duration.total_seconds(),
        }


@dataclass
class ParsedTestRun:
    """All records from one .trx document."""

    records: list[TestRecord] = field(default_factory=list)
    source: str | None = None

    @property
    def has_failures(self) -> bool:
        return any(r.status == TestStatus.FAILED for r in self.records)

    def count(self, status: TestStatus) -> int:
        return sum(1 for r in self.records if r.status == status)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "source": self.source,
            "total": len(self.records),
            "passed": self.count(TestStatus.PASSED),
            "failed": self.count(TestStatus.FAILED),
            "inconclusive": self.count(TestStatus.INCONCLUSIVE),
            "tests": [r.to_dict() for r in self.records],
        }


def parse_duration(value: str | None) -> timedelta:
    """Parse ``hh:mm:ss[.fraction]``; anything else is zero."""
    if not value or not value.strip():
        return timedelta()
    match = DURATION_PATTERN.match(value.strip())
    if not match:
        return timedelta()
    hours, minutes, seconds = (int(match.group(i)) for i in (1, 2, 3))
    try:
        duration = timedelta(hours=hours, minutes=minutes, seconds=seconds)
        if match.group(4):
            duration += timedelta(seconds=float("0." + match.group(4)))
    except (OverflowError, ValueError):
        logger.debug(f"Test duration out of range: {value}")
        return timedelta()
    return duration


def parse_start_time(value: str | None) -> datetime | None:
    """Parse a .trx timestamp such as ``2021-03-04T10:11:12.1234567-05:00``."""
    if not value:
        return None
    text = value.strip()
    # fromisoformat accepts at most 6 fractional digits
    text = re.sub(r"(\.\d{6})\d+", r"\1", text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparseable test start time: {value}")
        return None


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: Element | None, name: str) -> Element | None:
    if element is None:
        return None
    return next((c for c in element if _local(c.tag) == name), None)


def _children(element: Element | None, name: str) -> list[Element]:
    if element is None:
        return []
    return [c for c in element if _local(c.tag) == name]


def result_text_from_output(output: Element | None) -> str:
    """Message plus stack trace from an Output/ErrorInfo element."""
    error_info = _child(output, "ErrorInfo")
    if error_info is None:
        return ""
    message_el = _child(error_info, "Message")
    message = (message_el.text or "") if message_el is not None else ""
    trace_el = _child(error_info, "StackTrace")
    trace = (trace_el.text or "") if trace_el is not None else ""
    if trace:
        message += os.linesep + trace
    return message


def map_outcome(outcome: str | None, output: Element | None) -> tuple[TestStatus, str]:
    """Map a UnitTestResult outcome to a status and result text."""
    normalized = (outcome or "").lower()
    if normalized == "passed":
        return TestStatus.PASSED, "Passed"
    if normalized == "notexecuted":
        if output is None:
            return TestStatus.INCONCLUSIVE, "Ignored"
        return TestStatus.INCONCLUSIVE, result_text_from_output(output)
    return TestStatus.FAILED, result_text_from_output(output)


def parse_trx_document(root: Element, group: str = DEFAULT_TEST_GROUP) -> ParsedTestRun:
    """Build a ParsedTestRun from a TestRun root element.

    Raises:
        ParseError: If the root is not a TestRun
    """
    if _local(root.tag) != "TestRun":
        raise ParseError(f'Root element is "{_local(root.tag)}", expected "TestRun".')

    run = ParsedTestRun()
    for result in _children(_child(root, "Results"), "UnitTestResult"):
        status, text = map_outcome(result.get("outcome"), _child(result, "Output"))
        run.records.append(
            TestRecord(
                name=result.get("testName", ""),
                status=status,
                result=text,
                start_time=parse_start_time(result.get("startTime")),
                duration=parse_duration(result.get("duration")),
                group=group or DEFAULT_TEST_GROUP,
            )
        )
    return run


def parse_trx(path: str, group: str = DEFAULT_TEST_GROUP) -> ParsedTestRun:
    """Parse a .trx file.

    Raises:
        ParseError: If the file is missing or not a valid test run document
    """
    try:
        tree = ET.parse(path)
    except FileNotFoundError as e:
        raise ParseError(f"Test results file {path} does not exist.", path) from e
    except XML_LOAD_ERRORS as e:
        raise ParseError(f"{path} is not a valid XML file: {e}", path) from e

    try:
        run = parse_trx_document(tree.getroot(), group)
    except ParseError as e:
        raise ParseError(f"{path}: {e}", path) from e
    run.source = path
    return run


def find_latest_trx(results_dir: str) -> str | None:
    """Return the most recently written .trx file in a directory, or None."""
    try:
        entries = [
            os.path.join(results_dir, name)
            for name in os.listdir(results_dir)
            if name.lower().endswith(".trx")
        ]
    except FileNotFoundError:
        return None
    files = [p for p in entries if os.path.isfile(p)]
    if not files:
        return None
    return max(files, key=os.path.getmtime)
