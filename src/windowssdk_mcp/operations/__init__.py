"""Build, publish, test and project-maintenance operations."""

from .base import Operation, OperationContext, OperationResult
from .dependencies import DependenciesConfig, GetDependenciesOperation
from .dotnet import (
    DotNetBuildOperation,
    DotNetConfig,
    DotNetPublishOperation,
    DotNetVerbosity,
)
from .msbuild import (
    BuildMSBuildProjectOperation,
    ExecuteMSBuildScriptOperation,
    MSBuildProjectConfig,
    MSBuildScriptConfig,
)
from .project_version import ProjectVersionConfig, SetProjectVersionOperation
from .vstest import VSTestConfig, VSTestOperation

__all__ = [
    "Operation",
    "OperationContext",
    "OperationResult",
    "DependenciesConfig",
    "GetDependenciesOperation",
    "DotNetBuildOperation",
    "DotNetConfig",
    "DotNetPublishOperation",
    "DotNetVerbosity",
    "BuildMSBuildProjectOperation",
    "ExecuteMSBuildScriptOperation",
    "MSBuildProjectConfig",
    "MSBuildScriptConfig",
    "ProjectVersionConfig",
    "SetProjectVersionOperation",
    "VSTestConfig",
    "VSTestOperation",
]
