"""Setting version properties in SDK-style project files."""

from __future__ import annotations

import fnmatch
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path

from ..errors import XML_LOAD_ERRORS, ParseError

logger = logging.getLogger(__name__)

VERSION_ELEMENTS = ("Version", "AssemblyVersion", "FileVersion", "PackageVersion")


@dataclass
class VersionValues:
    """Values to write; blank fields are left untouched."""

    version: str | None = None
    assembly_version: str | None = None
    file_version: str | None = None
    package_version: str | None = None

    def items(self) -> list[tuple[str, str]]:
        """(element name, value) pairs for the non-blank fields, in write order."""
        values = (self.version, self.assembly_version, self.file_version, self.package_version)
        return [
            (name, value.strip())
            for name, value in zip(VERSION_ELEMENTS, values)
            if value and value.strip()
        ]


def _local(tag: object) -> str:
    # Comments and processing instructions have callable tags
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _namespace(tag: str) -> str:
    return tag[: tag.index("}") + 1] if tag.startswith("{") else ""


def update_or_add(root: ET.Element, name: str, value: str) -> None:
    """Set ``name`` in the first PropertyGroup that has it, else add it.

    The element is added to the first PropertyGroup, which is created at
    the end of the project if there is none.
    """
    ns = _namespace(root.tag)
    groups = [g for g in root if _local(g.tag) == "PropertyGroup"]
    for group in groups:
        for prop in group:
            if _local(prop.tag) == name:
                prop.text = value
                return

    if groups:
        group = groups[0]
    else:
        group = ET.SubElement(root, f"{ns}PropertyGroup")
    ET.SubElement(group, f"{ns}{name}").text = value


def set_project_version(path: str | Path, values: VersionValues) -> list[str]:
    """Write version elements into a project file.

    Args:
        path: Project file
        values: Versions to set

    Returns:
        Names of the elements that were written

    Raises:
        ParseError: If the file cannot be read or saved, is not XML, or its
            root is not Project
    """
    path = str(path)
    try:
        # Keep comments and processing instructions so untouched content round-trips
        parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True, insert_pis=True))
        tree = ET.parse(path, parser=parser)
    except XML_LOAD_ERRORS as e:
        raise ParseError(f"{path} is not a valid XML file: {e}", path) from e

    root = tree.getroot()
    if _local(root.tag) != "Project":
        raise ParseError(
            f'{path} is not a valid project file; root element is "{_local(root.tag)}", '
            'expected "Project".',
            path,
        )

    ns = _namespace(root.tag)
    if ns:
        ET.register_namespace("", ns[1:-1])

    written = []
    for name, value in values.items():
        update_or_add(root, name, value)
        written.append(name)

    try:
        has_declaration = _has_xml_declaration(path)
        tree.write(path, encoding="utf-8", xml_declaration=has_declaration)
    except OSError as e:
        raise ParseError(f"Could not save {path}: {e}", path) from e
    logger.debug(f"{path} saved.")
    return written


def _has_xml_declaration(path: str) -> bool:
    with open(path, "rb") as f:
        head = f.read(64)
    return head.lstrip(b"\xef\xbb\xbf").lstrip().startswith(b"<?xml")


def find_project_files(
    root: str | Path,
    includes: list[str] | None = None,
    excludes: list[str] | None = None,
) -> list[Path]:
    """Files under root matching any include glob and no exclude glob.

    Globs are relative to root (``**/*.csproj`` matches at any depth).
    """
    base = Path(root)
    if not base.is_dir():
        return []
    includes = includes or ["**/*.csproj"]
    matched: dict[Path, None] = {}
    for pattern in includes:
        for candidate in sorted(base.glob(_normalize_glob(pattern))):
            if candidate.is_file():
                matched[candidate] = None

    result = []
    for candidate in matched:
        relative = candidate.relative_to(base)
        rel = relative.as_posix()
        if any(
            fnmatch.fnmatch(rel, _normalize_glob(ex)) or _matches_prefix(relative, ex)
            for ex in excludes or []
        ):
            continue
        result.append(candidate)
    return result


def _normalize_glob(pattern: str) -> str:
    pattern = pattern.replace("\\", "/")
    # "**.csproj" is the masking shorthand for "**/*.csproj"
    if pattern.startswith("**") and not pattern.startswith("**/"):
        pattern = "**/*" + pattern[2:]
    return pattern


def _matches_prefix(relative: Path, exclude: str) -> bool:
    exclude = exclude.replace("\\", "/").rstrip("/")
    return bool(exclude) and "*" not in exclude and relative.as_posix().startswith(exclude + "/")
