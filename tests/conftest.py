"""Pytest fixtures for windowssdk-mcp tests."""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from windowssdk_mcp.tooling.process import ProcessInvocation, ProcessRunner  # noqa: E402


class FakeExecutor:
    """Executor that records invocations and replays canned output."""

    def __init__(self, lines=None, exit_code=0, output_file_text=None, on_execute=None):
        self.lines = list(lines or [])
        self.exit_code = exit_code
        self.output_file_text = output_file_text
        self.on_execute = on_execute
        self.invocations: list[ProcessInvocation] = []

    async def execute(self, invocation, on_line):
        self.invocations.append(invocation)
        if self.on_execute is not None:
            self.on_execute(invocation)
        if invocation.output_file and self.output_file_text is not None:
            with open(invocation.output_file, "w", encoding="utf-8") as f:
                f.write(self.output_file_text)
        for line in self.lines:
            await on_line(line)
        return self.exit_code


@pytest.fixture
def fake_executor():
    """A FakeExecutor with no output and exit code 0."""
    return FakeExecutor()


@pytest.fixture
def fake_runner(fake_executor):
    """ProcessRunner over fake_executor that accepts any executable path."""
    return ProcessRunner(fake_executor, check_executable=lambda _: True)


@pytest.fixture
def sample_trx():
    """A .trx document with one passed, one failed and one skipped test."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<TestRun id="1" xmlns="http://microsoft.com/schemas/VisualStudio/TeamTest/2010">
  <Results>
    <UnitTestResult testName="AddsNumbers" outcome="Passed"
        startTime="2021-03-04T10:11:12.1234567-05:00" duration="00:00:00.0120000" />
    <UnitTestResult testName="DividesByZero" outcome="Failed"
        startTime="2021-03-04T10:11:13.0000000-05:00" duration="00:01:02.500">
      <Output>
        <ErrorInfo>
          <Message>Assert.AreEqual failed.</Message>
          <StackTrace>at Tests.DividesByZero() in Tests.cs:line 20</StackTrace>
        </ErrorInfo>
      </Output>
    </UnitTestResult>
    <UnitTestResult testName="NotReady" outcome="NotExecuted"
        startTime="2021-03-04T10:11:14.0000000-05:00" duration="not-a-duration" />
  </Results>
</TestRun>
"""
