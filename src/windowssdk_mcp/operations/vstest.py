"""Run unit tests with vstest.console.exe and record the .trx results."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from typing import Any

from ..discovery import vstest_descriptor
from ..errors import ConfigurationError, ParseError, ToolNotFoundError
from ..results.testrun import DEFAULT_TEST_GROUP, find_latest_trx, parse_trx
from ..tooling.arguments import ArgumentBuilder
from ..tooling.process import ProcessInvocation
from .base import Operation, OperationContext, require

TEST_RESULTS_DIR = "TestResults"


@dataclass
class VSTestConfig:
    """Run tests from a container (test assembly)."""

    test_container: str
    group_name: str | None = None
    test_settings_path: str | None = None
    additional_arguments: str | None = None
    clear_existing_test_results: bool = False
    vstest_exe_path: str | None = None
    """Overrides the server-wide vstest.console.exe path."""


class VSTestOperation(Operation):
    """Runs unit tests using VSTest."""

    name = "VSTest"

    def __init__(self, context: OperationContext, config: VSTestConfig):
        super().__init__(context)
        self.config = config

    async def get_vstest_path(self) -> str:
        """Explicit vstest.console.exe path, or the one vswhere reports.

        Raises:
            ToolNotFoundError: If the explicit file is missing or vswhere finds nothing
        """
        explicit = self.config.vstest_exe_path or self.context.paths.vstest_exe_path
        if explicit:
            if not self.context.runner.is_remote and not os.path.isfile(explicit):
                raise ToolNotFoundError(
                    "vstest.console.exe", f"The file {explicit} does not exist."
                )
            return explicit
        return await self.context.locator.require(vstest_descriptor(self.context.paths))

    def build_arguments(self, container_path: str) -> str:
        args = ArgumentBuilder()
        args.append(container_path)
        args.append_raw("/logger:trx ")

        if self.config.test_settings_path and self.config.test_settings_path.strip():
            settings = self.context.resolve_path(self.config.test_settings_path)
            args.append(f"/Settings:{settings}")

        if self.config.additional_arguments and self.config.additional_arguments.strip():
            args.append_raw(self.config.additional_arguments.strip())
        return args.render()

    async def execute(self) -> dict[str, Any] | None:
        vstest_path = await self.get_vstest_path()
        self.log_debug(f"vstest.console.exe path: {vstest_path}")

        container_path = self.context.resolve_path(
            require(self.config.test_container, "Test container")
        )
        container_dir = os.path.dirname(container_path)
        results_dir = os.path.join(container_dir, TEST_RESULTS_DIR)

        if self.config.clear_existing_test_results and os.path.isdir(results_dir):
            self.log_debug(f"Clearing {results_dir} directory...")
            shutil.rmtree(results_dir)

        if not os.path.isdir(container_dir):
            raise ConfigurationError(f"Directory {container_dir} does not exist.")

        arguments = self.build_arguments(container_path)
        result = await self.run_tool(
            ProcessInvocation(
                executable=vstest_path,
                arguments=arguments,
                working_directory=container_dir,
            )
        )
        if result.exit_code != 0:
            self.log_debug(f"vstest.console.exe exited with code {result.exit_code}")

        if not os.path.isdir(results_dir):
            raise ParseError(f"Could not find the generated \"{TEST_RESULTS_DIR}\" directory.")

        trx_path = find_latest_trx(results_dir)
        if trx_path is None:
            raise ParseError(
                f"Could not find the generated .trx file in the \"{TEST_RESULTS_DIR}\" directory."
            )

        self.log_debug(f"Parsing {trx_path}...")
        run = parse_trx(trx_path, self.config.group_name or DEFAULT_TEST_GROUP)

        if run.has_failures:
            self.log_error("One or more unit tests failed.")
        else:
            self.log_info("Tests completed with no failures.")

        return run.to_dict()
