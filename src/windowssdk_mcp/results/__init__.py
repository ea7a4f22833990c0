"""Parsers turning tool output documents into structured results."""

from .dependencies import (
    DependencyMap,
    collect_dependencies,
    find_dependency_sources,
    parse_packages_config,
    parse_project_references,
)
from .diagnostics import BuildDiagnostic, DiagnosticSeverity, parse_build_output
from .project_version import VersionValues, find_project_files, set_project_version
from .testrun import (
    ParsedTestRun,
    TestRecord,
    TestStatus,
    find_latest_trx,
    parse_duration,
    parse_trx,
)

__all__ = [
    "DependencyMap",
    "collect_dependencies",
    "find_dependency_sources",
    "parse_packages_config",
    "parse_project_references",
    "BuildDiagnostic",
    "DiagnosticSeverity",
    "parse_build_output",
    "VersionValues",
    "find_project_files",
    "set_project_version",
    "ParsedTestRun",
    "TestRecord",
    "TestStatus",
    "find_latest_trx",
    "parse_duration",
    "parse_trx",
]
