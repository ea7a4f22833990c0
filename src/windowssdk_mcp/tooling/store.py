"""Read-only hierarchical key/value stores (the Windows registry and a fake).

Paths use backslash separators relative to HKEY_LOCAL_MACHINE, e.g.
``SOFTWARE\\Microsoft\\MSBuild\\ToolsVersions``.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Capability interface over a registry-like store."""

    def get_value(self, path: str, name: str) -> str | None:
        """Return a string value under ``path``, or None if key/value is missing."""
        ...

    def list_subkeys(self, path: str) -> list[str] | None:
        """Return subkey names under ``path``, or None if the key is missing."""
        ...


def _split(path: str) -> list[str]:
    return [part for part in path.replace("/", "\\").split("\\") if part]


class InMemoryKeyValueStore:
    """Dictionary-backed store.

    Keys are nested dicts; string leaves are values. Lookups are
    case-insensitive like the registry.

        store = InMemoryKeyValueStore({
            "SOFTWARE": {"Microsoft": {"MSBuild": {"ToolsVersions": {
                "14.0": {"MSBuildToolsPath": "C:\\\\MSBuild\\\\14.0\\\\Bin\\\\"},
            }}}}
        })
    """

    def __init__(self, data: dict[str, Any] | None = None):
        self._data: dict[str, Any] = data or {}

    def _find_key(self, path: str) -> dict[str, Any] | None:
        node: Any = self._data
        for part in _split(path):
            if not isinstance(node, dict):
                return None
            match = next(
                (k for k in node if k.lower() == part.lower() and isinstance(node[k], dict)),
                None,
            )
            if match is None:
                return None
            node = node[match]
        return node if isinstance(node, dict) else None

    def get_value(self, path: str, name: str) -> str | None:
        key = self._find_key(path)
        if key is None:
            return None
        for k, v in key.items():
            if k.lower() == name.lower() and not isinstance(v, dict):
                return None if v is None else str(v)
        return None

    def list_subkeys(self, path: str) -> list[str] | None:
        key = self._find_key(path)
        if key is None:
            return None
        return [k for k, v in key.items() if isinstance(v, dict)]


class WindowsRegistryStore:
    """HKEY_LOCAL_MACHINE reader using winreg (Windows only)."""

    def __init__(self) -> None:
        if os.name != "nt":
            raise OSError("The Windows registry is only available on Windows")
        import winreg

        self._winreg = winreg

    def get_value(self, path: str, name: str) -> str | None:
        winreg = self._winreg
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, path) as key:
                value, _ = winreg.QueryValueEx(key, name)
        except FileNotFoundError:
            return None
        return value if isinstance(value, str) else None

    def list_subkeys(self, path: str) -> list[str] | None:
        winreg = self._winreg
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, path) as key:
                count = winreg.QueryInfoKey(key)[0]
                return [winreg.EnumKey(key, i) for i in range(count)]
        except FileNotFoundError:
            return None


def default_store() -> KeyValueStore:
    """Return the registry on Windows, an empty store elsewhere."""
    if os.name == "nt":
        return WindowsRegistryStore()
    logger.debug("Registry not available on this platform, using empty store")
    return InMemoryKeyValueStore()
