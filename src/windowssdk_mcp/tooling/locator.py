"""External tool discovery.

A ToolDescriptor lists discovery strategies in priority order. The locator
tries them one by one and stops at the first that yields a path:

    descriptor = ToolDescriptor(
        name="msbuild",
        strategies=(
            AuxiliaryToolQuery(vswhere, requires=("Microsoft.Component.MSBuild",),
                               find="**\\\\MSBuild.exe", avoid="amd64", directory=True),
            RegistryLookup(MSBUILD_TOOLS_VERSIONS_KEY, install_value="MSBuildToolsPath"),
        ),
        override=os.environ.get("MSBUILD_TOOLS_PATH"),
    )
    path = await ToolLocator().locate(descriptor)

Strategies return None for "not found"; only unexpected I/O faults raise.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from typing import Protocol, Union

import defusedxml.ElementTree as ET

from ..errors import XML_LOAD_ERRORS, InvocationError, ToolNotFoundError
from ..utils.version import sort_by_version_descending
from .arguments import ArgumentBuilder
from .process import ProcessInvocation, ProcessRunner
from .store import KeyValueStore, default_store

logger = logging.getLogger(__name__)

WINDOWS_SDK_KEY = r"SOFTWARE\Microsoft\Microsoft SDKs\Windows"
MSBUILD_TOOLS_VERSIONS_KEY = r"SOFTWARE\Microsoft\MSBuild\ToolsVersions"


@dataclass
class LocatorContext:
    """Capabilities available to strategies during one lookup."""

    store: KeyValueStore | None = None
    runner: ProcessRunner | None = None
    environ: dict[str, str] | None = None

    def get_store(self) -> KeyValueStore:
        if self.store is None:
            self.store = default_store()
        return self.store

    def get_runner(self) -> ProcessRunner:
        if self.runner is None:
            self.runner = ProcessRunner()
        return self.runner

    def getenv(self, name: str) -> str | None:
        env = os.environ if self.environ is None else self.environ
        return env.get(name)


class DiscoveryStrategy(Protocol):
    """One way of locating a tool."""

    async def resolve(self, context: LocatorContext) -> str | None:
        ...


@dataclass(frozen=True)
class ExplicitPath:
    """A configured path, returned as-is when non-empty."""

    path: str | None

    async def resolve(self, context: LocatorContext) -> str | None:
        if self.path and self.path.strip():
            return self.path.strip()
        return None


@dataclass(frozen=True)
class EnvironmentPath:
    """A well-known location under an environment-provided folder.

    ``EnvironmentPath("ProgramFiles", ("dotnet", "dotnet.exe"))`` resolves to
    ``%ProgramFiles%\\dotnet\\dotnet.exe`` when that file exists.
    """

    variable: str
    parts: tuple[str, ...] = ()
    must_exist: bool = True

    async def resolve(self, context: LocatorContext) -> str | None:
        root = context.getenv(self.variable)
        if not root:
            return None
        path = os.path.join(root, *self.parts)
        if self.must_exist and not os.path.exists(path):
            logger.debug(f"{path} does not exist")
            return None
        return path


@dataclass(frozen=True)
class SearchPath:
    """An executable found on PATH."""

    executable: str

    async def resolve(self, context: LocatorContext) -> str | None:
        return shutil.which(self.executable, path=context.getenv("PATH"))


@dataclass(frozen=True)
class RegistryLookup:
    """Registry-style discovery of an install root.

    Reads ``current_value`` from ``key`` when configured and present.
    Otherwise picks the subkey with the highest dotted version in its name
    and reads ``install_value`` from it. Subkeys without a version are a
    last resort unless ``versioned_only`` is set.
    """

    key: str
    install_value: str
    current_value: str | None = None
    versioned_only: bool = False

    async def resolve(self, context: LocatorContext) -> str | None:
        store = context.get_store()

        subkeys = store.list_subkeys(self.key)
        if subkeys is None:
            logger.debug(f"Registry key {self.key} not found")
            return None

        if self.current_value:
            current = store.get_value(self.key, self.current_value)
            if current:
                return current

        ordered = sort_by_version_descending(subkeys, include_unversioned=not self.versioned_only)
        if not ordered:
            return None

        latest = ordered[0]
        logger.debug(f"Using registry subkey {self.key}\\{latest}")
        return store.get_value(f"{self.key}\\{latest}", self.install_value) or None


@dataclass(frozen=True)
class AuxiliaryToolQuery:
    """Discovery through vswhere.exe XML output.

    The helper's stdout is redirected to a temporary file, which is parsed
    for ``<file>`` elements. Candidates containing ``avoid`` are moved to
    the end (stable). The first candidate, or its directory, is returned.
    """

    helper: str
    find: str
    requires: tuple[str, ...] = ()
    requires_any: bool = False
    avoid: str | None = None
    directory: bool = False

    def arguments(self) -> str:
        """Render the vswhere command line."""
        args = ArgumentBuilder()
        args.extend(["-products", "*", "-nologo", "-format", "xml", "-utf8", "-latest", "-sort"])
        if self.requires_any:
            args.append("-requiresAny")
        if self.requires:
            args.append("-requires")
            args.extend(list(self.requires))
        args.append("-find")
        args.append(self.find)
        return args.render()

    def select(self, candidates: list[str]) -> str | None:
        """Apply the tie-break ordering and pick a candidate."""
        if self.avoid:
            avoid = self.avoid.lower()
            candidates = sorted(candidates, key=lambda c: 1 if avoid in c.lower() else 0)
        for candidate in candidates:
            if candidate and candidate.strip():
                chosen = candidate.strip()
                return _windows_dirname(chosen) if self.directory else chosen
        return None

    async def resolve(self, context: LocatorContext) -> str | None:
        runner = context.get_runner()
        if not runner.is_remote and not os.path.isfile(self.helper):
            logger.debug(f"Discovery helper {self.helper} not found")
            return None

        fd, output_file = tempfile.mkstemp(suffix=".xml")
        os.close(fd)
        try:
            invocation = ProcessInvocation(
                executable=self.helper,
                arguments=self.arguments(),
                working_directory=os.path.dirname(self.helper) or None,
                output_file=output_file,
            )
            try:
                await runner.run(invocation)
            except InvocationError as e:
                logger.debug(f"Discovery helper failed to start: {e}")
                return None
            return self.select(parse_vswhere_output(output_file))
        finally:
            try:
                os.remove(output_file)
            except OSError:
                logger.debug(f"Could not remove temporary file {output_file}")


Strategy = Union[ExplicitPath, EnvironmentPath, SearchPath, RegistryLookup, AuxiliaryToolQuery]


def _windows_dirname(path: str) -> str:
    """Directory part of a path that may use either separator.

    A drive or filesystem root keeps its separator (``C:\\x.exe`` -> ``C:\\``).
    """
    index = max(path.rfind("\\"), path.rfind("/"))
    if index < 0:
        return path
    parent = path[:index]
    if not parent or parent.endswith(":"):
        return path[: index + 1]
    return parent


def parse_vswhere_output(path: str) -> list[str]:
    """Read candidate file paths from vswhere XML output.

    Returns:
        Candidates in document order (empty if the file is missing or invalid)
    """
    try:
        root = ET.parse(path).getroot()
    except XML_LOAD_ERRORS as e:
        logger.debug(f"Unable to read vswhere output {path}: {e}")
        return []
    return [(el.text or "").strip() for el in root.iter() if _local_name(el.tag) == "file"]


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


@dataclass(frozen=True)
class ToolDescriptor:
    """Which tool to find and how."""

    name: str
    strategies: tuple[Strategy, ...] = ()
    override: str | None = None
    remediation: str | None = None

    def ordered_strategies(self) -> list[Strategy]:
        """Strategies in priority order; an override always comes first."""
        ordered: list[Strategy] = []
        if self.override:
            ordered.append(ExplicitPath(self.override))
        ordered.extend(self.strategies)
        return ordered


@dataclass
class ToolLocator:
    """Resolves tool descriptors to paths."""

    context: LocatorContext = field(default_factory=LocatorContext)

    async def locate(self, descriptor: ToolDescriptor) -> str | None:
        """Try each strategy in order and return the first path found.

        Args:
            descriptor: Tool to locate

        Returns:
            Path, or None when every strategy came up empty
        """
        for strategy in descriptor.ordered_strategies():
            path = await strategy.resolve(self.context)
            if path:
                logger.debug(f"{descriptor.name} path: {path} ({type(strategy).__name__})")
                return path
            logger.debug(f"{descriptor.name}: {type(strategy).__name__} found nothing")
        return None

    async def require(self, descriptor: ToolDescriptor) -> str:
        """Like locate(), but raise ToolNotFoundError naming the remediation."""
        path = await self.locate(descriptor)
        if path is None:
            raise ToolNotFoundError(descriptor.name, descriptor.remediation)
        return path
