"""External process execution with streamed, ordered output.

A ProcessRunner checks the executable, hands the invocation to a
ProcessExecutor (local asyncio subprocess or a remote agent reached over
ssh) and classifies each output line as it arrives.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..errors import InvocationError
from .output import DEFAULT_CLASSIFIER, MessageLevel, OutputClassifier, OutputMessage

logger = logging.getLogger(__name__)

# Output buffer limits
MAX_OUTPUT_LINES: int = 50_000
MAX_OUTPUT_LINE: int = 10_000  # 10KB per line

LineSink = Callable[[str], Any]
MessageSink = Callable[[OutputMessage], Any]


@dataclass(frozen=True)
class ProcessInvocation:
    """A single execution of a resolved tool."""

    executable: str
    arguments: str = ""
    working_directory: str | None = None
    output_file: str | None = None
    """When set, stdout is written to this file instead of being streamed."""

    def describe(self) -> str:
        """Human-readable summary for debug logging."""
        return (
            f"Process: {self.executable}\n"
            f"Arguments: {self.arguments}\n"
            f"Working directory: {self.working_directory}"
        )


@dataclass
class ProcessResult:
    """Outcome of a process execution."""

    exit_code: int
    output: list[str] = field(default_factory=list)
    messages: list[OutputMessage] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Exit code 0 means success."""
        return self.exit_code == 0

    @property
    def warnings(self) -> list[OutputMessage]:
        return [m for m in self.messages if m.level == MessageLevel.WARNING]

    @property
    def errors(self) -> list[OutputMessage]:
        return [m for m in self.messages if m.level == MessageLevel.ERROR]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "exitCode": self.exit_code,
            "success": self.success,
            "warningCount": len(self.warnings),
            "errorCount": len(self.errors),
            "messages": [m.to_dict() for m in self.messages],
        }


def split_arguments(arguments: str) -> list[str]:
    """Split a Windows-style argument string into argv tokens.

    Follows the CommandLineToArgvW rules used by the quoting in
    ``tooling.arguments``: backslashes are literal unless they precede a
    double quote.
    """
    args: list[str] = []
    current: list[str] = []
    in_token = False
    in_quotes = False
    i = 0
    n = len(arguments)
    while i < n:
        c = arguments[i]
        if c == "\\":
            j = i
            while j < n and arguments[j] == "\\":
                j += 1
            count = j - i
            if j < n and arguments[j] == '"':
                current.append("\\" * (count // 2))
                if count % 2:
                    current.append('"')
                    i = j + 1
                else:
                    i = j
            else:
                current.append("\\" * count)
                i = j
            in_token = True
            continue
        if c == '"':
            in_quotes = not in_quotes
            in_token = True
        elif c.isspace() and not in_quotes:
            if in_token:
                args.append("".join(current))
                current = []
                in_token = False
        else:
            current.append(c)
            in_token = True
        i += 1
    if in_token:
        args.append("".join(current))
    return args


class ProcessExecutor(Protocol):
    """Capability that runs an invocation and streams stdout lines."""

    async def execute(self, invocation: ProcessInvocation, on_line: LineSink) -> int:
        """Run to completion, calling on_line for each output line; return exit code."""
        ...


async def _deliver(sink: Callable[[Any], Any] | None, value: Any) -> None:
    if sink is None:
        return
    result = sink(value)
    if inspect.isawaitable(result):
        await result


class LocalProcessExecutor:
    """Runs processes on this machine with asyncio subprocesses."""

    async def _start(
        self, argv: list[str], invocation: ProcessInvocation, stdout: Any
    ) -> asyncio.subprocess.Process:
        try:
            # Never use shell=True
            return await asyncio.create_subprocess_exec(
                *argv,
                stdout=stdout,
                stderr=asyncio.subprocess.STDOUT,
                cwd=invocation.working_directory,
            )
        except OSError as e:
            raise InvocationError(f"Could not start {argv[0]}: {e}") from e

    def _argv(self, invocation: ProcessInvocation) -> list[str]:
        return [invocation.executable, *split_arguments(invocation.arguments)]

    async def execute(self, invocation: ProcessInvocation, on_line: LineSink) -> int:
        argv = self._argv(invocation)
        if invocation.output_file:
            with open(invocation.output_file, "wb") as out:
                process = await self._start(argv, invocation, out)
                return await self._wait(process, on_line)

        process = await self._start(argv, invocation, asyncio.subprocess.PIPE)
        return await self._wait(process, on_line)

    async def _wait(self, process: asyncio.subprocess.Process, on_line: LineSink) -> int:
        try:
            if process.stdout is not None:
                while True:
                    line = await process.stdout.readline()
                    if not line:
                        break
                    decoded = line.decode("utf-8", errors="replace").rstrip("\r\n")
                    if len(decoded) > MAX_OUTPUT_LINE:
                        decoded = decoded[:MAX_OUTPUT_LINE] + "...[truncated]"
                    await _deliver(on_line, decoded)
            await process.wait()
        except asyncio.CancelledError:
            logger.warning("Execution cancelled, killing child process")
            try:
                process.kill()
            except ProcessLookupError:
                pass
            raise
        return process.returncode or 0


class RemoteProcessExecutor(LocalProcessExecutor):
    """Runs processes on a Windows build agent reached through ssh.

    The remote shell is expected to be cmd.exe (the OpenSSH for Windows
    default), so the command is rendered as ``cd /d <dir> && <exe> <args>``.
    Redirected output files are written on the local side.
    """

    def __init__(self, host: str, ssh_path: str = "ssh", ssh_options: list[str] | None = None):
        self.host = host
        self.ssh_path = ssh_path
        self.ssh_options = list(ssh_options or [])

    def remote_command(self, invocation: ProcessInvocation) -> str:
        """Render the command line executed by the remote shell."""
        command = f'"{invocation.executable}" {invocation.arguments}'.rstrip()
        if invocation.working_directory:
            command = f'cd /d "{invocation.working_directory}" && {command}'
        return command

    def _argv(self, invocation: ProcessInvocation) -> list[str]:
        return [self.ssh_path, *self.ssh_options, self.host, self.remote_command(invocation)]

    async def _start(
        self, argv: list[str], invocation: ProcessInvocation, stdout: Any
    ) -> asyncio.subprocess.Process:
        # The working directory only exists on the agent
        local = ProcessInvocation(invocation.executable, invocation.arguments)
        logger.debug(f"Remote command on {self.host}: {argv[-1]}")
        return await super()._start(argv, local, stdout)


class ProcessRunner:
    """Runs invocations through an executor and classifies their output.

    Usage:
        runner = ProcessRunner()
        result = await runner.run(invocation, DOTNET_CLASSIFIER, sink=print_message)
    """

    def __init__(
        self,
        executor: ProcessExecutor | None = None,
        check_executable: Callable[[str], bool] | None = None,
    ):
        self.executor: ProcessExecutor = executor or LocalProcessExecutor()
        if check_executable is None:
            check_executable = (
                (lambda _: True)
                if isinstance(self.executor, RemoteProcessExecutor)
                else os.path.isfile
            )
        self._check_executable = check_executable

    @property
    def is_remote(self) -> bool:
        return isinstance(self.executor, RemoteProcessExecutor)

    async def run(
        self,
        invocation: ProcessInvocation,
        classifier: OutputClassifier = DEFAULT_CLASSIFIER,
        sink: MessageSink | None = None,
    ) -> ProcessResult:
        """Execute an invocation.

        Args:
            invocation: What to run
            classifier: Output classification rules for this tool
            sink: Receives each classified message as it is produced

        Returns:
            Result with exit code, raw output lines and classified messages

        Raises:
            InvocationError: If the executable is missing or cannot be started
        """
        if not self._check_executable(invocation.executable):
            raise InvocationError(f"The file {invocation.executable} does not exist.")

        logger.debug(invocation.describe())
        result = ProcessResult(exit_code=0)

        async def on_line(line: str) -> None:
            if len(result.output) < MAX_OUTPUT_LINES:
                result.output.append(line)
            message = classifier.classify(line)
            if message is None:
                return
            if len(result.messages) < MAX_OUTPUT_LINES:
                result.messages.append(message)
            await _deliver(sink, message)

        result.exit_code = await self.executor.execute(invocation, on_line)
        logger.debug(f"{os.path.basename(invocation.executable)} exit code: {result.exit_code}")
        return result
