"""Utility modules for windowssdk-mcp."""

from .project import (
    ProjectRootConfig,
    configure_project_root,
    find_dotnet_project_root,
    get_project_root,
    parse_file_uri,
)
from .version import VersionInfo, sort_by_version_descending

__all__ = [
    "ProjectRootConfig",
    "configure_project_root",
    "find_dotnet_project_root",
    "get_project_root",
    "parse_file_uri",
    "VersionInfo",
    "sort_by_version_descending",
]
