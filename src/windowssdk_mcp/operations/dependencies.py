"""Report the NuGet packages referenced by a project."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from ..errors import ConfigurationError
from ..results.dependencies import collect_dependencies, find_dependency_sources
from .base import Operation, OperationContext, require


@dataclass
class DependenciesConfig:
    project_path: str
    """A project file (its directory is scanned) or a directory."""

    package_id: str | None = None
    """Return just this package's version."""


class GetDependenciesOperation(Operation):
    """Reads package references from project files and packages.config."""

    name = "Get NuGet dependencies"

    def __init__(self, context: OperationContext, config: DependenciesConfig):
        super().__init__(context)
        self.config = config

    def source_directory(self) -> str:
        """Directory to scan.

        Raises:
            ConfigurationError: If the directory does not exist
        """
        path = self.context.resolve_path(require(self.config.project_path, "Project path"))
        directory = os.path.dirname(path) if os.path.isfile(path) else path
        if not os.path.isdir(directory):
            raise ConfigurationError(f"Directory {directory} does not exist.")
        return directory

    async def execute(self) -> dict[str, Any] | None:
        directory = self.source_directory()
        files = find_dependency_sources(directory)
        if not files:
            raise ConfigurationError(f"No project files or packages.config found in {directory}.")

        packages, messages = collect_dependencies(files)
        for message in messages:
            self._record(message)
        self.log_debug(f"Found {len(packages)} package references.")

        package_id = (self.config.package_id or "").strip()
        if package_id:
            if package_id not in packages:
                raise ConfigurationError(f"Package {package_id} is not referenced.")
            return {"packageId": package_id, "version": packages[package_id]}

        return {"directory": directory, "packages": packages.to_dict()}
