"""Tool invocation framework.

Provides:
- Windows command-line quoting (ArgumentBuilder)
- Tool discovery across explicit, environment, registry and vswhere strategies
- Process execution with ordered, classified output streaming
"""

from .arguments import ArgumentBuilder, quote_argument
from .locator import (
    AuxiliaryToolQuery,
    EnvironmentPath,
    ExplicitPath,
    LocatorContext,
    RegistryLookup,
    SearchPath,
    ToolDescriptor,
    ToolLocator,
)
from .output import MessageLevel, OutputClassifier, OutputMessage
from .process import (
    LocalProcessExecutor,
    ProcessInvocation,
    ProcessResult,
    ProcessRunner,
    RemoteProcessExecutor,
)
from .store import InMemoryKeyValueStore, KeyValueStore, WindowsRegistryStore

__all__ = [
    "ArgumentBuilder",
    "quote_argument",
    "ToolDescriptor",
    "ToolLocator",
    "LocatorContext",
    "ExplicitPath",
    "EnvironmentPath",
    "SearchPath",
    "RegistryLookup",
    "AuxiliaryToolQuery",
    "MessageLevel",
    "OutputClassifier",
    "OutputMessage",
    "ProcessInvocation",
    "ProcessResult",
    "ProcessRunner",
    "LocalProcessExecutor",
    "RemoteProcessExecutor",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "WindowsRegistryStore",
]
