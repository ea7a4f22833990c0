"""Set version properties in SDK-style .NET project files."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..errors import ParseError
from ..results.project_version import VersionValues, find_project_files, set_project_version
from .base import Operation, OperationContext, require


@dataclass
class ProjectVersionConfig:
    version: str
    assembly_version: str | None = None
    file_version: str | None = None
    package_version: str | None = None
    source_directory: str | None = None
    includes: list[str] = field(default_factory=lambda: ["**/*.csproj"])
    excludes: list[str] = field(default_factory=list)


class SetProjectVersionOperation(Operation):
    """Writes Version, AssemblyVersion, FileVersion and PackageVersion."""

    name = "Set project version"

    def __init__(self, context: OperationContext, config: ProjectVersionConfig):
        super().__init__(context)
        self.config = config

    async def execute(self) -> dict[str, Any] | None:
        config = self.config
        values = VersionValues(
            version=require(config.version, "Version"),
            assembly_version=config.assembly_version,
            file_version=config.file_version,
            package_version=config.package_version,
        )

        root = self.context.resolve_path(config.source_directory)
        files = find_project_files(root, config.includes, config.excludes)
        if not files:
            self.log_warning("No matching files found.")
            return {"updated": []}

        updated = []
        for path in files:
            self.log_info(f"Setting project version in {path}...")
            try:
                written = set_project_version(path, values)
            except ParseError as e:
                self.log_error(str(e))
                continue
            self.log_debug(f"Wrote {', '.join(written)}")
            updated.append(str(path))

        return {"updated": updated, "values": dict(values.items())}
