"""Working directory (project root) detection.

Sources, highest priority first:
1. MCP roots provided by the client
2. The WINDOWSSDK_PROJECT_ROOT environment variable
3. The --project path
4. The startup directory, searched upward for .NET markers with --project-from-cwd
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

if TYPE_CHECKING:
    from mcp.server.fastmcp import Context

logger = logging.getLogger(__name__)

PROJECT_ROOT_ENV = "WINDOWSSDK_PROJECT_ROOT"
PROJECT_MARKERS = ("*.csproj", "*.vbproj", "*.fsproj")


@dataclass
class ProjectRootConfig:
    """How the server was told to pick its working directory."""

    startup_cwd: Path | None = None
    use_project_from_cwd: bool = False
    explicit_project_path: Path | None = None


_config = ProjectRootConfig()


def configure_project_root(
    *,
    use_project_from_cwd: bool = False,
    explicit_project_path: str | Path | None = None,
    startup_cwd: str | Path | None = None,
) -> None:
    """Record startup options; call once before serving."""
    global _config
    _config = ProjectRootConfig(
        startup_cwd=Path(startup_cwd) if startup_cwd else None,
        use_project_from_cwd=use_project_from_cwd,
        explicit_project_path=Path(explicit_project_path) if explicit_project_path else None,
    )
    logger.debug(f"Project root configured: {_config}")


def get_config() -> ProjectRootConfig:
    return _config


def parse_file_uri(uri: str) -> Path | None:
    """Convert a file:// URI to an absolute path, or None."""
    parsed = urlparse(str(uri))
    if parsed.scheme != "file":
        logger.warning(f"Not a file URI: {uri}")
        return None

    path_str = unquote(parsed.path)
    if sys.platform == "win32":
        # file:///C:/src -> /C:/src
        if len(path_str) > 2 and path_str[0] == "/" and path_str[2] == ":":
            path_str = path_str[1:]
        if parsed.netloc:
            path_str = f"\\\\{parsed.netloc}{path_str}"

    path = Path(path_str)
    if not path.is_absolute():
        logger.warning(f"Parsed path is not absolute: {path}")
        return None
    return path


def find_dotnet_project_root(start_dir: Path | None = None) -> Path:
    """Walk upward for a .sln, then a project file, then .git.

    Returns start_dir when none of them is found.
    """
    current = (start_dir or Path.cwd()).resolve()

    def ancestors() -> Iterator[Path]:
        yield current
        yield from current.parents

    for directory in ancestors():
        if any(directory.glob("*.sln")):
            return directory

    for directory in ancestors():
        if any(any(directory.glob(marker)) for marker in PROJECT_MARKERS):
            return directory

    for directory in ancestors():
        # .git is a file in worktrees
        if (directory / ".git").exists():
            return directory

    return current


async def get_project_root(ctx: Context | None = None) -> Path | None:
    """Determine the directory operations resolve relative paths against."""
    if ctx is not None:
        try:
            roots = await ctx.list_roots()
        except Exception as e:
            # Clients are not required to support roots
            logger.info(f"Could not get roots from client: {e}")
            roots = None
        if roots:
            path = parse_file_uri(str(roots[0].uri))
            if path and path.is_dir():
                logger.debug(f"Using project root from MCP client: {path}")
                return path
            logger.warning(f"MCP root path invalid or not accessible: {path}")

    return get_project_root_sync()


def get_project_root_sync() -> Path | None:
    """get_project_root() without consulting client roots."""
    config = get_config()

    env_value = os.environ.get(PROJECT_ROOT_ENV)
    if env_value:
        path = Path(env_value)
        if path.is_dir():
            return path
        logger.warning(f"{PROJECT_ROOT_ENV}={env_value} is not a directory")

    if config.explicit_project_path:
        if config.explicit_project_path.is_dir():
            return config.explicit_project_path
        logger.warning(f"Explicit project path not valid: {config.explicit_project_path}")

    if config.use_project_from_cwd and config.startup_cwd:
        return find_dotnet_project_root(config.startup_cwd)

    return config.startup_cwd
