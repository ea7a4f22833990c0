"""Dotted version parsing and version-ordered selection of names."""

from __future__ import annotations

import re
from dataclasses import dataclass

# At least major.minor, anywhere in the text (e.g. "v10.0", "14.0", "6.0.36")
DOTTED_VERSION_PATTERN = re.compile(r"\d+(?:\.\d+)+")


@dataclass(frozen=True)
class VersionInfo:
    """Version information with major.minor[.patch[.build]] components."""

    major: int
    minor: int
    patch: int | None = None
    build: int | None = None
    raw: str = ""

    def __str__(self) -> str:
        parts = [self.major, self.minor, self.patch, self.build]
        return ".".join(str(p) for p in parts if p is not None)

    @property
    def sort_key(self) -> tuple[int, int, int, int]:
        """Comparable key; missing components order before zero, like System.Version."""
        return (
            self.major,
            self.minor,
            -1 if self.patch is None else self.patch,
            -1 if self.build is None else self.build,
        )

    @classmethod
    def from_string(cls, version_str: str | None) -> VersionInfo | None:
        """Parse a version at the start of a string like '6.0.36' or '14.0'."""
        if not version_str:
            return None
        match = DOTTED_VERSION_PATTERN.match(version_str)
        if not match:
            return None
        return cls._from_match(match.group(0), version_str)

    @classmethod
    def search(cls, text: str | None) -> VersionInfo | None:
        """Find the first dotted version anywhere in text (e.g. 'v8.1A' -> 8.1)."""
        if not text:
            return None
        match = DOTTED_VERSION_PATTERN.search(text)
        if not match:
            return None
        return cls._from_match(match.group(0), text)

    @classmethod
    def _from_match(cls, dotted: str, raw: str) -> VersionInfo | None:
        numbers = [int(p) for p in dotted.split(".")]
        if len(numbers) > 4:
            numbers = numbers[:4]
        numbers += [None] * (4 - len(numbers))  # type: ignore[list-item]
        return cls(
            major=numbers[0],
            minor=numbers[1],
            patch=numbers[2],
            build=numbers[3],
            raw=raw,
        )


def sort_by_version_descending(names: list[str], include_unversioned: bool = True) -> list[str]:
    """Order names by the version they contain, highest first.

    Names without a version are kept, in their original order, after all
    versioned names, unless include_unversioned is False.

    Args:
        names: Candidate names such as registry subkeys
        include_unversioned: Keep names that contain no version

    Returns:
        New list ordered for selection
    """
    versioned: list[tuple[VersionInfo, int, str]] = []
    unversioned: list[str] = []
    for index, name in enumerate(names):
        version = VersionInfo.search(name)
        if version is None:
            unversioned.append(name)
        else:
            versioned.append((version, index, name))

    # Stable for equal versions: earlier names win
    versioned.sort(key=lambda item: (tuple(-k for k in item[0].sort_key), item[1]))
    ordered = [name for _, _, name in versioned]
    return ordered + unversioned if include_unversioned else ordered
