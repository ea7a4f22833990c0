"""NuGet dependency extraction from packages.config and project files."""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterable, Iterator, MutableMapping
from typing import Any
from xml.etree.ElementTree import Element

import defusedxml.ElementTree as ET

from ..errors import XML_LOAD_ERRORS, ParseError
from ..tooling.output import MessageLevel, OutputMessage

logger = logging.getLogger(__name__)

PACKAGES_CONFIG = "packages.config"
PROJECT_FILE_PATTERN = "*.*proj"


class DependencyMap(MutableMapping[str, str]):
    """Package id -> version with case-insensitive ids.

    Keeps the spelling of the most recent write; later writes win.
    """

    def __init__(self, items: Iterable[tuple[str, str]] | dict[str, str] | None = None):
        self._data: dict[str, tuple[str, str]] = {}
        if items is not None:
            self.update(items)

    def __getitem__(self, key: str) -> str:
        return self._data[key.lower()][1]

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key.lower()] = (key, value)

    def __delitem__(self, key: str) -> None:
        del self._data[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._data.values())

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._data

    def __repr__(self) -> str:
        return f"DependencyMap({dict(self.items())!r})"

    def to_dict(self) -> dict[str, Any]:
        return dict(self.items())


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _load(path: str) -> Element:
    try:
        return ET.parse(path).getroot()
    except XML_LOAD_ERRORS as e:
        raise ParseError(f"{path} is not a valid XML file: {e}", path) from e


def parse_packages_config(path: str) -> DependencyMap:
    """Read ``<packages><package id= version=/></packages>``.

    Raises:
        ParseError: If the file is not XML or lacks a root packages element
    """
    root = _load(path)
    if _local(root.tag) != "packages":
        raise ParseError(
            f'{path} is not a valid NuGet packages.config file: missing root "packages" element.',
            path,
        )
    result = DependencyMap()
    for package in root:
        if _local(package.tag) == "package" and package.get("id"):
            result[package.get("id", "")] = package.get("version", "")
    return result


def parse_project_references(path: str) -> DependencyMap:
    """Read every PackageReference Include/Version pair at any depth.

    Raises:
        ParseError: If the file is not XML
    """
    root = _load(path)
    result = DependencyMap()
    for element in root.iter():
        if _local(element.tag) != "PackageReference":
            continue
        include = element.get("Include")
        if not include:
            continue
        version = element.get("Version")
        if version is None:
            # <PackageReference Include="x"><Version>1.0</Version></PackageReference>
            child = next((c for c in element if _local(c.tag) == "Version"), None)
            version = (child.text or "").strip() if child is not None else ""
        result[include] = version
    return result


def find_dependency_sources(directory: str) -> list[str]:
    """Project files and packages.config directly inside a directory, by name."""
    matches = []
    for name in sorted(os.listdir(directory), key=str.lower):
        path = os.path.join(directory, name)
        if not os.path.isfile(path):
            continue
        if name.lower() == PACKAGES_CONFIG or fnmatch.fnmatch(name.lower(), PROJECT_FILE_PATTERN):
            matches.append(path)
    return matches


def collect_dependencies(
    files: Iterable[str],
) -> tuple[DependencyMap, list[OutputMessage]]:
    """Parse and merge dependency sources in order.

    A file that fails to parse produces a warning and is skipped.

    Returns:
        Merged map (later files overwrite earlier keys) and messages
    """
    merged = DependencyMap()
    messages: list[OutputMessage] = []
    for path in files:
        messages.append(OutputMessage(MessageLevel.DEBUG, f"Analyzing {path}..."))
        try:
            if os.path.basename(path).lower() == PACKAGES_CONFIG:
                found = parse_packages_config(path)
            else:
                found = parse_project_references(path)
        except ParseError as e:
            logger.warning(str(e))
            messages.append(OutputMessage(MessageLevel.WARNING, str(e)))
            continue
        merged.update(found)
    return merged, messages
