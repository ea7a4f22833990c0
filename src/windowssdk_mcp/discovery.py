"""Descriptors for the external tools used by the operations."""

from __future__ import annotations

from .config import ToolPaths
from .tooling.locator import (
    MSBUILD_TOOLS_VERSIONS_KEY,
    WINDOWS_SDK_KEY,
    AuxiliaryToolQuery,
    EnvironmentPath,
    RegistryLookup,
    SearchPath,
    ToolDescriptor,
)

DOTNET_REMEDIATION = (
    "To resolve this error, ensure that dotnet.exe is available on this server "
    "and retry the build, or set DOTNET_EXE_PATH to the location of dotnet.exe."
)

MSBUILD_REMEDIATION = (
    "To resolve this issue, ensure that MSBuild is available on this server "
    "(e.g. by installing the Visual Studio Build Tools) and retry the build, or set "
    "MSBUILD_TOOLS_PATH to the location of the MSBuild tools. For example, the tools "
    "included with Visual Studio 2017 could be installed to "
    r"C:\Program Files (x86)\Microsoft Visual Studio\2017\Enterprise\MSBuild\15.0\Bin"
)

VSTEST_REMEDIATION = (
    "Verify that VSTest is installed and set VSTEST_EXE_PATH to the full path "
    "of vstest.console.exe."
)

WINDOWS_SDK_REMEDIATION = "Verify that the Windows SDK is installed."

# Component IDs: https://docs.microsoft.com/en-us/visualstudio/install/workload-and-component-ids
MSBUILD_COMPONENTS = ("Microsoft.Component.MSBuild",)
VSTEST_COMPONENTS = (
    "Microsoft.VisualStudio.PackageGroup.TestTools.Core",
    "Microsoft.VisualStudio.Component.TestTools.BuildTools",
)


def dotnet_descriptor(paths: ToolPaths) -> ToolDescriptor:
    """dotnet.exe: explicit path, %ProgramFiles%\\dotnet, then PATH."""
    return ToolDescriptor(
        name="dotnet.exe",
        override=paths.dotnet_exe_path,
        strategies=(
            EnvironmentPath("ProgramFiles", ("dotnet", "dotnet.exe")),
            SearchPath("dotnet"),
        ),
        remediation=DOTNET_REMEDIATION,
    )


def msbuild_descriptor(paths: ToolPaths) -> ToolDescriptor:
    """MSBuild tools directory: explicit path, vswhere, then registry."""
    return ToolDescriptor(
        name="MSBuildToolsPath",
        override=paths.msbuild_tools_path,
        strategies=(
            AuxiliaryToolQuery(
                helper=paths.resolve_vswhere(),
                requires=MSBUILD_COMPONENTS,
                find="**\\MSBuild.exe",
                # prefer 32-bit MSBuild
                avoid="amd64",
                directory=True,
            ),
            RegistryLookup(
                MSBUILD_TOOLS_VERSIONS_KEY,
                install_value="MSBuildToolsPath",
                versioned_only=True,
            ),
        ),
        remediation=MSBUILD_REMEDIATION,
    )


def vstest_descriptor(paths: ToolPaths) -> ToolDescriptor:
    """vstest.console.exe through vswhere (explicit paths are checked by the caller)."""
    return ToolDescriptor(
        name="vstest.console.exe",
        strategies=(
            AuxiliaryToolQuery(
                helper=paths.resolve_vswhere(),
                requires=VSTEST_COMPONENTS,
                requires_any=True,
                find="**\\vstest.console.exe",
            ),
        ),
        remediation=VSTEST_REMEDIATION,
    )


def windows_sdk_descriptor() -> ToolDescriptor:
    """Windows SDK install root from the registry."""
    return ToolDescriptor(
        name="Windows SDK",
        strategies=(
            RegistryLookup(
                WINDOWS_SDK_KEY,
                current_value="CurrentInstallFolder",
                install_value="InstallationFolder",
            ),
        ),
        remediation=WINDOWS_SDK_REMEDIATION,
    )
