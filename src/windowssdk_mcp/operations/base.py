"""Operation plumbing shared by the tool adapters.

An operation validates its configuration, locates its tool, runs it and
collects leveled messages. Discovery, configuration and parse failures end
the operation with an error message; invocation failures propagate.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any

from ..config import ToolPaths
from ..errors import ConfigurationError, ParseError, ToolNotFoundError
from ..results.diagnostics import BuildDiagnostic, parse_build_output
from ..tooling.locator import LocatorContext, ToolLocator
from ..tooling.output import DEFAULT_CLASSIFIER, MessageLevel, OutputClassifier, OutputMessage
from ..tooling.process import ProcessInvocation, ProcessResult, ProcessRunner
from ..tooling.store import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class OperationContext:
    """Everything an operation needs from its environment."""

    working_directory: str
    paths: ToolPaths = field(default_factory=ToolPaths)
    runner: ProcessRunner = field(default_factory=ProcessRunner)
    store: KeyValueStore | None = None
    locator: ToolLocator | None = None

    def __post_init__(self) -> None:
        if self.locator is None:
            self.locator = ToolLocator(LocatorContext(store=self.store, runner=self.runner))

    def resolve_path(self, path: str | None) -> str:
        """Resolve a possibly relative path against the working directory."""
        if not path or not path.strip():
            return self.working_directory
        path = path.strip()
        if path.startswith("~"):
            # "~\src" is relative to the working directory, not the home directory
            path = path[1:].lstrip("\\/")
        if os.path.isabs(path) or _is_windows_absolute(path):
            return path
        return os.path.normpath(os.path.join(self.working_directory, path))


def _is_windows_absolute(path: str) -> bool:
    return (len(path) > 2 and path[1] == ":" and path[2] in "\\/") or path.startswith("\\\\")


@dataclass
class OperationResult:
    """Outcome of one operation."""

    operation: str
    success: bool
    messages: list[OutputMessage] = field(default_factory=list)
    exit_code: int | None = None
    data: dict[str, Any] = field(default_factory=dict)
    diagnostics: list[BuildDiagnostic] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def errors(self) -> list[OutputMessage]:
        return [m for m in self.messages if m.level == MessageLevel.ERROR]

    @property
    def warnings(self) -> list[OutputMessage]:
        return [m for m in self.messages if m.level == MessageLevel.WARNING]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "operation": self.operation,
            "success": self.success,
            "errorCount": len(self.errors),
            "warningCount": len(self.warnings),
            "durationMs": round(self.duration_ms, 2),
            "messages": [m.to_dict() for m in self.messages if m.level >= MessageLevel.INFO],
        }
        if self.exit_code is not None:
            result["exitCode"] = self.exit_code
        if self.diagnostics:
            result["diagnostics"] = [d.to_dict() for d in self.diagnostics]
        if self.data:
            result["data"] = self.data
        return result

    def to_summary(self) -> str:
        """Generate human-readable summary."""
        status = "[OK]" if self.success else "[FAILED]"
        parts = [f"{status} {self.operation}", f"  Duration: {self.duration_ms:.0f}ms"]
        if self.exit_code is not None:
            parts.append(f"  Exit code: {self.exit_code}")
        for message in self.errors[:5]:
            parts.append(f"    {message.text}")
        if len(self.errors) > 5:
            parts.append(f"    ... and {len(self.errors) - 5} more errors")
        return "\n".join(parts)


class Operation:
    """Base class for tool operations.

    Subclasses implement execute(); run() wraps it with timing, message
    collection and error classification.
    """

    name = "operation"

    def __init__(self, context: OperationContext):
        self.context = context
        self.messages: list[OutputMessage] = []
        self.exit_code: int | None = None
        self.diagnostics: list[BuildDiagnostic] = []

    def log(self, level: MessageLevel, text: str) -> None:
        """Record a message and forward it to the module logger."""
        self.messages.append(OutputMessage(level, text))
        logger.log(level.logging_level, f"[{self.name}] {text}")

    def log_debug(self, text: str) -> None:
        self.log(MessageLevel.DEBUG, text)

    def log_info(self, text: str) -> None:
        self.log(MessageLevel.INFO, text)

    def log_warning(self, text: str) -> None:
        self.log(MessageLevel.WARNING, text)

    def log_error(self, text: str) -> None:
        self.log(MessageLevel.ERROR, text)

    def _record(self, message: OutputMessage) -> None:
        self.log(message.level, message.text)

    async def execute(self) -> dict[str, Any] | None:
        """Perform the operation; return data for the result."""
        raise NotImplementedError

    async def run(self) -> OperationResult:
        """Execute and report.

        Raises:
            InvocationError: If a resolved tool could not be started
        """
        start_time = time.perf_counter()
        data: dict[str, Any] | None = None
        try:
            data = await self.execute()
        except (ToolNotFoundError, ConfigurationError, ParseError) as e:
            self.log_error(str(e))

        duration = (time.perf_counter() - start_time) * 1000
        return OperationResult(
            operation=self.name,
            success=not any(m.level == MessageLevel.ERROR for m in self.messages),
            messages=list(self.messages),
            exit_code=self.exit_code,
            data=data or {},
            diagnostics=list(self.diagnostics),
            duration_ms=duration,
        )

    async def run_tool(
        self,
        invocation: ProcessInvocation,
        classifier: OutputClassifier = DEFAULT_CLASSIFIER,
    ) -> ProcessResult:
        """Run a tool, recording its classified output and diagnostics."""
        self.log_debug(f"Process: {invocation.executable}")
        self.log_debug(f"Arguments: {invocation.arguments}")
        self.log_debug(f"Working directory: {invocation.working_directory}")

        result = await self.context.runner.run(invocation, classifier, sink=self._record)
        self.exit_code = result.exit_code
        self.diagnostics = parse_build_output(m.text for m in result.messages)
        return result


def require(value: str | None, field_name: str) -> str:
    """Return a stripped required value or raise ConfigurationError."""
    if value is None or not str(value).strip():
        raise ConfigurationError(f"{field_name} is required.")
    return str(value).strip()
