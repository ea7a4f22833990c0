"""MSBuild / dotnet console diagnostics.

Recognized line formats:
    path(line,col): error CS0103: message [project]
    error MSB1009: message
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class DiagnosticSeverity(str, Enum):
    """MSBuild diagnostic severity levels."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class BuildDiagnostic:
    """Parsed MSBuild diagnostic (error/warning)."""

    severity: DiagnosticSeverity
    code: str
    message: str
    file: str | None = None
    line: int | None = None
    column: int | None = None
    project: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
        }
        if self.file:
            result["file"] = self.file
        if self.line is not None:
            result["line"] = self.line
        if self.column is not None:
            result["column"] = self.column
        if self.project:
            result["project"] = self.project
        return result


LOCATED_PATTERN = re.compile(
    r"^(?P<file>[^(]+)\((?P<line>\d+)(?:,(?P<col>\d+))?\):\s*"
    r"(?P<severity>error|warning|info)\s+(?P<code>\w+):\s*"
    r"(?P<message>.+?)(?:\s+\[(?P<project>[^\]]+)\])?$",
    re.IGNORECASE,
)

SIMPLE_PATTERN = re.compile(
    r"^(?:(?P<origin>[^:]+?)\s*:\s*)?(?P<severity>error|warning|info)\s+(?P<code>\w+):\s*"
    r"(?P<message>.+?)(?:\s+\[(?P<project>[^\]]+)\])?$",
    re.IGNORECASE,
)


def parse_diagnostic(line: str) -> BuildDiagnostic | None:
    """Parse one console line, or return None if it is not a diagnostic."""
    line = line.strip()
    if not line:
        return None

    match = LOCATED_PATTERN.match(line)
    if match:
        col = match.group("col")
        return BuildDiagnostic(
            severity=DiagnosticSeverity(match.group("severity").lower()),
            code=match.group("code"),
            message=match.group("message"),
            file=match.group("file").strip(),
            line=int(match.group("line")),
            column=int(col) if col else None,
            project=match.group("project"),
        )

    match = SIMPLE_PATTERN.match(line)
    if match:
        return BuildDiagnostic(
            severity=DiagnosticSeverity(match.group("severity").lower()),
            code=match.group("code"),
            message=match.group("message"),
            file=(match.group("origin") or None),
            project=match.group("project"),
        )
    return None


def parse_build_output(lines: Iterable[str]) -> list[BuildDiagnostic]:
    """Parse console output into diagnostics, dropping exact duplicates.

    MSBuild repeats every error and warning in its end-of-build summary.
    """
    diagnostics: list[BuildDiagnostic] = []
    seen: set[BuildDiagnostic] = set()
    for line in lines:
        diagnostic = parse_diagnostic(line)
        if diagnostic is None or diagnostic in seen:
            continue
        seen.add(diagnostic)
        diagnostics.append(diagnostic)
    return diagnostics
