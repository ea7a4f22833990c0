"""Server-scoped configuration read from the environment.

An empty or unset value means "auto-detect".
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_VSWHERE_RELATIVE = ("Microsoft Visual Studio", "Installer", "vswhere.exe")


def parse_package_sources(value: str | None) -> dict[str, str]:
    """Parse ``name=url;name=url`` into a case-insensitive-keyed map.

    Malformed entries are skipped with a warning.
    """
    sources: dict[str, str] = {}
    if not value:
        return sources
    for entry in value.split(";"):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, url = entry.partition("=")
        if not sep or not name.strip() or not url.strip():
            logger.warning(f"Ignoring malformed package source entry: {entry!r}")
            continue
        sources[name.strip().lower()] = url.strip()
    return sources


@dataclass
class ToolPaths:
    """Configured tool locations and package sources."""

    dotnet_exe_path: str | None = None
    """Full path of dotnet.exe (DOTNET_EXE_PATH)."""

    msbuild_tools_path: str | None = None
    """Directory containing msbuild.exe (MSBUILD_TOOLS_PATH)."""

    vstest_exe_path: str | None = None
    """Full path of vstest.console.exe (VSTEST_EXE_PATH)."""

    vswhere_path: str | None = None
    """Full path of vswhere.exe; defaults to the Visual Studio installer copy."""

    msbuild_logger_path: str | None = None
    """Optional MSBuild logger assembly emitting <BM> lines."""

    package_sources: dict[str, str] = field(default_factory=dict)
    """NuGet package source name (lowercase) -> feed URL."""

    def resolve_vswhere(self, environ: dict[str, str] | None = None) -> str:
        """Return the configured vswhere path or its default install location."""
        if self.vswhere_path:
            return self.vswhere_path
        env = os.environ if environ is None else environ
        root = env.get("ProgramFiles(x86)") or env.get("ProgramFiles") or r"C:\Program Files (x86)"
        return os.path.join(root, *DEFAULT_VSWHERE_RELATIVE)

    def package_source_url(self, name: str) -> str | None:
        """Look up a package source by name (case-insensitive)."""
        return self.package_sources.get(name.strip().lower())

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> ToolPaths:
        """Build configuration from environment variables."""
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(name, "").strip()
            return value or None

        paths = cls(
            dotnet_exe_path=get("DOTNET_EXE_PATH"),
            msbuild_tools_path=get("MSBUILD_TOOLS_PATH"),
            vstest_exe_path=get("VSTEST_EXE_PATH"),
            vswhere_path=get("VSWHERE_PATH"),
            msbuild_logger_path=get("MSBUILD_LOGGER_PATH"),
            package_sources=parse_package_sources(env.get("WINDOWSSDK_PACKAGE_SOURCES")),
        )
        logger.debug(
            f"Tool paths configured: dotnet={paths.dotnet_exe_path}, "
            f"msbuild={paths.msbuild_tools_path}, vstest={paths.vstest_exe_path}, "
            f"vswhere={paths.vswhere_path}, sources={sorted(paths.package_sources)}"
        )
        return paths
