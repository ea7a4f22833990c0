"""MSBuild operations: build a project, or run a target of an MSBuild script."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from ..discovery import msbuild_descriptor
from ..errors import ConfigurationError
from ..tooling.arguments import ArgumentBuilder
from ..tooling.output import MSBUILD_CLASSIFIER
from ..tooling.process import ProcessInvocation
from .base import Operation, OperationContext, require

MSBUILD_EXE = "msbuild.exe"


def _with_trailing_separator(path: str) -> str:
    # MSBuild treats OutDir as a directory only when it ends with a separator
    return path if path.endswith(("\\", "/")) else path + "\\"


def _joined_properties(*parts: str | None) -> str:
    return ";".join(p.strip().strip(";") for p in parts if p and p.strip().strip(";"))


@dataclass
class MSBuildProjectConfig:
    """Build a project or solution with MSBuild."""

    project_path: str
    build_configuration: str = "Release"
    target_platform: str | None = None
    build_properties: str | None = None
    """Additional ``name=value`` properties separated by semicolons."""

    target_directory: str | None = None
    additional_arguments: str | None = None


@dataclass
class MSBuildScriptConfig:
    """Run a target of an MSBuild script."""

    project_path: str
    target: str
    build_properties: str | None = None
    target_directory: str | None = None
    additional_arguments: str | None = None


class MSBuildOperation(Operation):
    """Shared MSBuild location and invocation."""

    async def get_msbuild_path(self) -> str:
        """Full path of msbuild.exe.

        Raises:
            ToolNotFoundError: If no tools directory could be resolved
        """
        tools_path = await self.context.locator.require(msbuild_descriptor(self.context.paths))
        self.log_debug(f"MSBuildToolsPath: {tools_path}")
        return os.path.join(tools_path, MSBUILD_EXE)

    def logger_arguments(self) -> ArgumentBuilder:
        """Start an argument list with the output logger, when one is configured."""
        args = ArgumentBuilder()
        logger_path = self.context.paths.msbuild_logger_path
        if logger_path:
            args.append(f"/logger:{logger_path}")
            args.append_raw("/noconsolelogger ")
        return args

    async def invoke_msbuild(self, arguments: str, working_directory: str) -> int:
        """Run msbuild.exe and return its exit code.

        Raises:
            ConfigurationError: If the working directory does not exist
        """
        if not self.context.runner.is_remote and not os.path.isdir(working_directory):
            raise ConfigurationError(f"Directory {working_directory} does not exist.")

        msbuild_path = await self.get_msbuild_path()
        result = await self.run_tool(
            ProcessInvocation(
                executable=msbuild_path,
                arguments=arguments,
                working_directory=working_directory,
            ),
            MSBUILD_CLASSIFIER,
        )
        return result.exit_code


class BuildMSBuildProjectOperation(MSBuildOperation):
    """Builds a project or solution using MSBuild."""

    name = "MSBuild build project"

    def __init__(self, context: OperationContext, config: MSBuildProjectConfig):
        super().__init__(context)
        self.config = config

    def build_arguments(self, project_path: str) -> str:
        config = self.config
        args = self.logger_arguments()
        args.append(project_path)

        properties = _joined_properties(
            f"Configuration={require(config.build_configuration, 'Build configuration')}",
            f"Platform={config.target_platform.strip()}"
            if config.target_platform and config.target_platform.strip()
            else None,
            config.build_properties,
        )
        args.append(f"/p:{properties}")

        if config.target_directory and config.target_directory.strip():
            out_dir = self.context.resolve_path(config.target_directory)
            args.append(f"/p:OutDir={_with_trailing_separator(out_dir)}")

        if config.additional_arguments and config.additional_arguments.strip():
            args.append_raw(config.additional_arguments.strip())

        return args.render()

    async def execute(self) -> dict[str, Any] | None:
        project_path = self.context.resolve_path(require(self.config.project_path, "Project path"))
        self.log_info(f"Building {project_path}...")

        arguments = self.build_arguments(project_path)
        exit_code = await self.invoke_msbuild(arguments, os.path.dirname(project_path))

        if exit_code != 0:
            self.log_error(f"Build failed (msbuild returned {exit_code}).")
        else:
            self.log_info("Build succeeded.")
        return {"arguments": arguments, "projectPath": project_path}


class ExecuteMSBuildScriptOperation(MSBuildOperation):
    """Runs a target of an MSBuild script."""

    name = "Execute MSBuild script"

    def __init__(self, context: OperationContext, config: MSBuildScriptConfig):
        super().__init__(context)
        self.config = config

    def build_arguments(self, script_path: str) -> str:
        config = self.config
        out_dir = _with_trailing_separator(self.context.resolve_path(config.target_directory))

        args = self.logger_arguments()
        args.append(script_path)
        args.append(f"/t:{require(config.target, 'Target')}")
        args.append(f"/p:{_joined_properties(f'OutDir={out_dir}', config.build_properties)}")

        if config.additional_arguments and config.additional_arguments.strip():
            args.append_raw(config.additional_arguments.strip())

        return args.render()

    async def execute(self) -> dict[str, Any] | None:
        script_path = self.context.resolve_path(require(self.config.project_path, "Project path"))
        arguments = self.build_arguments(script_path)
        self.log_info(f"Executing target {self.config.target} of {script_path}...")

        exit_code = await self.invoke_msbuild(arguments, self.context.working_directory)

        if exit_code != 0:
            self.log_error(f"Build failed (msbuild returned {exit_code}).")
        return {"arguments": arguments, "projectPath": script_path}
