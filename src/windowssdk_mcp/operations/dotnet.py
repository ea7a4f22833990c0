"""dotnet build / dotnet publish operations."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from ..discovery import dotnet_descriptor
from ..errors import ConfigurationError
from ..tooling.arguments import ArgumentBuilder
from ..tooling.output import DOTNET_CLASSIFIER
from ..tooling.process import ProcessInvocation
from .base import Operation, OperationContext, require


class DotNetVerbosity(str, Enum):
    """dotnet CLI verbosity levels."""

    QUIET = "quiet"
    MINIMAL = "minimal"
    NORMAL = "normal"
    DETAILED = "detailed"
    DIAGNOSTIC = "diagnostic"


@dataclass
class DotNetConfig:
    """Fields shared by dotnet build and dotnet publish."""

    project_path: str
    """Project file, solution file, or a directory containing one."""

    configuration: str | None = None
    framework: str | None = None
    """Leave blank (with output) to build all target frameworks."""

    runtime: str | None = None
    output: str | None = None
    """Only valid together with framework."""

    force: bool = False
    verbosity: DotNetVerbosity = DotNetVerbosity.MINIMAL
    package_source: str | None = None
    """Name of a configured NuGet source used for restore."""

    additional_arguments: str | None = None
    dotnet_exe_path: str | None = None
    """Overrides the server-wide dotnet.exe path."""

    self_contained: bool = False
    """publish only."""


class DotNetOperation(Operation):
    """Runs a dotnet CLI command against a project."""

    command_name = ""

    def __init__(self, context: OperationContext, config: DotNetConfig):
        super().__init__(context)
        self.config = config
        self.name = f"dotnet {self.command_name}"

    async def get_dotnet_path(self) -> str:
        """Locate dotnet.exe, honoring the per-operation override."""
        descriptor = dotnet_descriptor(self.context.paths)
        if self.config.dotnet_exe_path:
            descriptor = replace(descriptor, override=self.config.dotnet_exe_path)
        path = await self.context.locator.require(descriptor)
        self.log_debug(f"dotnet path: {path}")
        return path

    def append_additional_arguments(self, args: ArgumentBuilder) -> None:
        """Hook for command-specific flags."""

    def build_arguments(self) -> str:
        """Render the dotnet command line.

        Raises:
            ConfigurationError: If the project path is missing or the package
                source is unknown
        """
        config = self.config
        project_path = self.context.resolve_path(require(config.project_path, "Project path"))

        args = ArgumentBuilder(f"{self.command_name} ")
        args.append(project_path)

        if config.configuration and config.configuration.strip():
            args.append_raw("--configuration ")
            args.append(config.configuration.strip())

        if config.framework and config.framework.strip():
            args.append_raw("--framework ")
            args.append(config.framework.strip())

        if config.runtime and config.runtime.strip():
            args.append_raw("--runtime ")
            args.append(config.runtime.strip())

        if config.force:
            args.append_raw("--force ")

        if config.output and config.output.strip():
            if not (config.framework and config.framework.strip()):
                self.log_warning(
                    '"Output" is specified; set the "Framework" value also to '
                    "prevent unexpected results."
                )
            args.append_raw("--output ")
            args.append(self.context.resolve_path(config.output))

        verbosity = DotNetVerbosity(config.verbosity)
        if verbosity != DotNetVerbosity.MINIMAL:
            args.append_raw("--verbosity ")
            args.append(verbosity.value)

        if config.package_source and config.package_source.strip():
            url = self.context.paths.package_source_url(config.package_source)
            if url is None:
                raise ConfigurationError(f'Package source "{config.package_source}" not found.')
            args.append_raw("--source ")
            args.append(url)

        self.append_additional_arguments(args)

        if config.additional_arguments and config.additional_arguments.strip():
            args.append_raw(config.additional_arguments.strip())

        return args.render()

    async def execute(self) -> dict[str, Any] | None:
        arguments = self.build_arguments()
        dotnet_path = await self.get_dotnet_path()

        working_directory = self.context.working_directory
        if not self.context.runner.is_remote:
            self.log_debug(f"Ensuring working directory {working_directory} exists...")
            os.makedirs(working_directory, exist_ok=True)

        self.log_debug(f"Executing dotnet {arguments}...")
        result = await self.run_tool(
            ProcessInvocation(
                executable=dotnet_path,
                arguments=arguments,
                working_directory=working_directory,
            ),
            DOTNET_CLASSIFIER,
        )

        if result.success:
            self.log_debug(f"dotnet exit code: {result.exit_code}")
        else:
            self.log_error(f"dotnet exit code: {result.exit_code}")

        return {"arguments": arguments, "dotnetPath": dotnet_path}


class DotNetBuildOperation(DotNetOperation):
    """Builds a .NET Core/Framework/Standard project using dotnet build."""

    command_name = "build"


class DotNetPublishOperation(DotNetOperation):
    """Publishes a .NET Core/Framework/Standard project using dotnet publish."""

    command_name = "publish"

    def append_additional_arguments(self, args: ArgumentBuilder) -> None:
        args.append("--self-contained" if self.config.self_contained else "--no-self-contained")
