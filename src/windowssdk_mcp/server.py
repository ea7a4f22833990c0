"""MCP server exposing .NET build, publish and test tooling."""

from __future__ import annotations

import json
import logging
import os

from mcp.server.fastmcp import Context, FastMCP

from .config import ToolPaths
from .discovery import (
    dotnet_descriptor,
    msbuild_descriptor,
    vstest_descriptor,
    windows_sdk_descriptor,
)
from .operations import (
    BuildMSBuildProjectOperation,
    DependenciesConfig,
    DotNetBuildOperation,
    DotNetConfig,
    DotNetPublishOperation,
    DotNetVerbosity,
    ExecuteMSBuildScriptOperation,
    GetDependenciesOperation,
    MSBuildProjectConfig,
    MSBuildScriptConfig,
    Operation,
    OperationContext,
    ProjectVersionConfig,
    SetProjectVersionOperation,
    VSTestConfig,
    VSTestOperation,
)
from .suggestions import RUNTIMES, TARGET_FRAMEWORKS
from .tooling.locator import ToolDescriptor
from .tooling.process import ProcessRunner, RemoteProcessExecutor
from .utils.project import get_project_root

logger = logging.getLogger(__name__)

REMOTE_HOST_ENV = "WINDOWSSDK_REMOTE_HOST"

LOCATABLE_TOOLS = ("dotnet", "msbuild", "vstest", "windows-sdk")


def create_runner(remote_host: str | None = None) -> ProcessRunner:
    """Local runner, or one that runs tools on a remote Windows host over ssh."""
    host = remote_host or os.environ.get(REMOTE_HOST_ENV)
    if host:
        logger.info(f"Running tools on remote host {host}")
        return ProcessRunner(RemoteProcessExecutor(host))
    return ProcessRunner()


def tool_descriptor(tool: str, paths: ToolPaths) -> ToolDescriptor:
    """Descriptor for one of LOCATABLE_TOOLS.

    Raises:
        ValueError: If the tool name is unknown
    """
    name = tool.strip().lower()
    if name == "dotnet":
        return dotnet_descriptor(paths)
    if name == "msbuild":
        return msbuild_descriptor(paths)
    if name == "vstest":
        return vstest_descriptor(paths)
    if name == "windows-sdk":
        return windows_sdk_descriptor()
    raise ValueError(f"Unknown tool '{tool}'. Expected one of: {', '.join(LOCATABLE_TOOLS)}")


def create_server(
    project_path: str | None = None,
    paths: ToolPaths | None = None,
    remote_host: str | None = None,
) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        project_path: Default working directory for operations. Relative
            paths in tool arguments are resolved against it.
        paths: Tool locations; read from the environment when omitted
        remote_host: ssh host to run tools on instead of this machine
    """
    mcp = FastMCP("windowssdk-mcp")
    tool_paths = paths or ToolPaths.from_env()
    runner = create_runner(remote_host)

    async def make_context(ctx: Context | None) -> OperationContext:
        root = await get_project_root(ctx)
        working_directory = str(root) if root else (project_path or os.getcwd())
        return OperationContext(working_directory=working_directory, paths=tool_paths, runner=runner)

    async def run_operation(operation: Operation) -> dict:
        result = await operation.run()
        logger.info(result.to_summary())
        return {"success": result.success, "data": result.to_dict()}

    # ============== dotnet ==============

    @mcp.tool()
    async def dotnet_build(
        ctx: Context,
        project_path: str,
        configuration: str | None = None,
        framework: str | None = None,
        runtime: str | None = None,
        output: str | None = None,
        force: bool = False,
        verbosity: str = "minimal",
        package_source: str | None = None,
        additional_arguments: str | None = None,
        dotnet_exe_path: str | None = None,
    ) -> dict:
        """
        Build a .NET Core/Framework/Standard project using `dotnet build`.

        Args:
            project_path: Project or solution file (relative to the project root)
            configuration: Build configuration, e.g. Debug or Release
            framework: Target framework moniker, e.g. net5.0
            runtime: Runtime identifier, e.g. win-x64
            output: Output directory; set framework too
            force: Force all dependencies to be resolved
            verbosity: quiet, minimal, normal, detailed or diagnostic
            package_source: Name of a configured NuGet package source
            additional_arguments: Extra arguments appended verbatim
            dotnet_exe_path: Full path of dotnet.exe for this build
        """
        try:
            config = DotNetConfig(
                project_path=project_path,
                configuration=configuration,
                framework=framework,
                runtime=runtime,
                output=output,
                force=force,
                verbosity=DotNetVerbosity(verbosity.lower()),
                package_source=package_source,
                additional_arguments=additional_arguments,
                dotnet_exe_path=dotnet_exe_path,
            )
            return await run_operation(DotNetBuildOperation(await make_context(ctx), config))
        except Exception as e:
            return {"success": False, "error": str(e)}

    @mcp.tool()
    async def dotnet_publish(
        ctx: Context,
        project_path: str,
        configuration: str | None = None,
        framework: str | None = None,
        runtime: str | None = None,
        output: str | None = None,
        force: bool = False,
        verbosity: str = "minimal",
        package_source: str | None = None,
        self_contained: bool = False,
        additional_arguments: str | None = None,
        dotnet_exe_path: str | None = None,
    ) -> dict:
        """
        Publish a .NET Core/Framework/Standard project using `dotnet publish`.

        Args:
            project_path: Project or solution file (relative to the project root)
            configuration: Build configuration, e.g. Debug or Release
            framework: Target framework moniker, e.g. net5.0
            runtime: Runtime identifier, e.g. win-x64
            output: Output directory; set framework too
            force: Force all dependencies to be resolved
            verbosity: quiet, minimal, normal, detailed or diagnostic
            package_source: Name of a configured NuGet package source
            self_contained: Publish the .NET runtime with the application
            additional_arguments: Extra arguments appended verbatim
            dotnet_exe_path: Full path of dotnet.exe for this publish
        """
        try:
            config = DotNetConfig(
                project_path=project_path,
                configuration=configuration,
                framework=framework,
                runtime=runtime,
                output=output,
                force=force,
                verbosity=DotNetVerbosity(verbosity.lower()),
                package_source=package_source,
                additional_arguments=additional_arguments,
                dotnet_exe_path=dotnet_exe_path,
                self_contained=self_contained,
            )
            return await run_operation(DotNetPublishOperation(await make_context(ctx), config))
        except Exception as e:
            return {"success": False, "error": str(e)}

    # ============== MSBuild ==============

    @mcp.tool()
    async def msbuild_build_project(
        ctx: Context,
        project_path: str,
        build_configuration: str = "Release",
        target_platform: str | None = None,
        build_properties: str | None = None,
        target_directory: str | None = None,
        additional_arguments: str | None = None,
    ) -> dict:
        """
        Build a project or solution with MSBuild.

        Args:
            project_path: .csproj, .vbproj or .sln file
            build_configuration: Configuration property, e.g. Release
            target_platform: Platform property, e.g. AnyCPU or x64
            build_properties: Extra properties as name=value;name=value
            target_directory: OutDir for build output
            additional_arguments: Extra msbuild arguments appended verbatim
        """
        try:
            config = MSBuildProjectConfig(
                project_path=project_path,
                build_configuration=build_configuration,
                target_platform=target_platform,
                build_properties=build_properties,
                target_directory=target_directory,
                additional_arguments=additional_arguments,
            )
            return await run_operation(BuildMSBuildProjectOperation(await make_context(ctx), config))
        except Exception as e:
            return {"success": False, "error": str(e)}

    @mcp.tool()
    async def msbuild_execute_script(
        ctx: Context,
        project_path: str,
        target: str,
        build_properties: str | None = None,
        target_directory: str | None = None,
        additional_arguments: str | None = None,
    ) -> dict:
        """
        Run a target of an MSBuild script.

        Args:
            project_path: MSBuild script file
            target: Target to run
            build_properties: Extra properties as name=value;name=value
            target_directory: OutDir (defaults to the project root)
            additional_arguments: Extra msbuild arguments appended verbatim
        """
        try:
            config = MSBuildScriptConfig(
                project_path=project_path,
                target=target,
                build_properties=build_properties,
                target_directory=target_directory,
                additional_arguments=additional_arguments,
            )
            return await run_operation(ExecuteMSBuildScriptOperation(await make_context(ctx), config))
        except Exception as e:
            return {"success": False, "error": str(e)}

    # ============== Testing ==============

    @mcp.tool()
    async def vstest(
        ctx: Context,
        test_container: str,
        group_name: str | None = None,
        test_settings_path: str | None = None,
        additional_arguments: str | None = None,
        clear_existing_test_results: bool = False,
        vstest_exe_path: str | None = None,
    ) -> dict:
        """
        Run unit tests with vstest.console.exe and return the parsed .trx results.

        Args:
            test_container: Test assembly, e.g. bin\\Release\\Tests.dll
            group_name: Group recorded with each result (default "Unit Tests")
            test_settings_path: .runsettings / .testsettings file
            additional_arguments: Extra vstest arguments appended verbatim
            clear_existing_test_results: Delete TestResults before running
            vstest_exe_path: Full path of vstest.console.exe for this run
        """
        try:
            config = VSTestConfig(
                test_container=test_container,
                group_name=group_name,
                test_settings_path=test_settings_path,
                additional_arguments=additional_arguments,
                clear_existing_test_results=clear_existing_test_results,
                vstest_exe_path=vstest_exe_path,
            )
            return await run_operation(VSTestOperation(await make_context(ctx), config))
        except Exception as e:
            return {"success": False, "error": str(e)}

    # ============== Project files ==============

    @mcp.tool()
    async def get_dependencies(
        ctx: Context,
        project_path: str,
        package_id: str | None = None,
    ) -> dict:
        """
        List NuGet packages referenced by a project (PackageReference and packages.config).

        Args:
            project_path: Project file or its directory
            package_id: Only report this package's version
        """
        try:
            config = DependenciesConfig(project_path=project_path, package_id=package_id)
            return await run_operation(GetDependenciesOperation(await make_context(ctx), config))
        except Exception as e:
            return {"success": False, "error": str(e)}

    @mcp.tool()
    async def set_project_version(
        ctx: Context,
        version: str,
        assembly_version: str | None = None,
        file_version: str | None = None,
        package_version: str | None = None,
        source_directory: str | None = None,
        includes: list[str] | None = None,
        excludes: list[str] | None = None,
    ) -> dict:
        """
        Set Version, AssemblyVersion, FileVersion and PackageVersion in SDK-style projects.

        Args:
            version: Value for <Version>
            assembly_version: Value for <AssemblyVersion> (skipped if empty)
            file_version: Value for <FileVersion> (skipped if empty)
            package_version: Value for <PackageVersion> (skipped if empty)
            source_directory: Directory to search (defaults to the project root)
            includes: Globs of project files (default **/*.csproj)
            excludes: Globs or directories to skip
        """
        try:
            config = ProjectVersionConfig(
                version=version,
                assembly_version=assembly_version,
                file_version=file_version,
                package_version=package_version,
                source_directory=source_directory,
                includes=includes or ["**/*.csproj"],
                excludes=excludes or [],
            )
            return await run_operation(SetProjectVersionOperation(await make_context(ctx), config))
        except Exception as e:
            return {"success": False, "error": str(e)}

    # ============== Discovery ==============

    @mcp.tool()
    async def locate_tool(ctx: Context, tool: str) -> dict:
        """
        Report where a tool was found on this server.

        Args:
            tool: One of dotnet, msbuild, vstest, windows-sdk
        """
        try:
            descriptor = tool_descriptor(tool, tool_paths)
            context = await make_context(ctx)
            path = await context.locator.require(descriptor)
            return {"success": True, "data": {"tool": descriptor.name, "path": path}}
        except Exception as e:
            return {"success": False, "error": str(e)}

    # ============== Resources ==============

    @mcp.resource("windowssdk://suggestions/frameworks", mime_type="application/json")
    async def frameworks_resource() -> str:
        """Target framework monikers accepted by dotnet --framework (JSON)."""
        return json.dumps(list(TARGET_FRAMEWORKS), indent=2)

    @mcp.resource("windowssdk://suggestions/runtimes", mime_type="application/json")
    async def runtimes_resource() -> str:
        """Common runtime identifiers accepted by dotnet --runtime (JSON)."""
        return json.dumps(list(RUNTIMES), indent=2)

    @mcp.resource("windowssdk://config", mime_type="application/json")
    async def config_resource() -> str:
        """Configured tool paths and package source names (JSON)."""
        return json.dumps(
            {
                "dotnetExePath": tool_paths.dotnet_exe_path,
                "msbuildToolsPath": tool_paths.msbuild_tools_path,
                "vstestExePath": tool_paths.vstest_exe_path,
                "vswherePath": tool_paths.resolve_vswhere(),
                "msbuildLoggerPath": tool_paths.msbuild_logger_path,
                "packageSources": sorted(tool_paths.package_sources),
                "remote": runner.is_remote,
            },
            indent=2,
        )

    logger.info("Windows SDK MCP Server initialized")
    return mcp
