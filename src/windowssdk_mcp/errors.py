"""Exceptions raised by tool discovery, invocation and result parsing."""

from __future__ import annotations

from xml.etree.ElementTree import ParseError as XMLSyntaxError

from defusedxml import DefusedXmlException


class ToolingError(Exception):
    """Base exception for Windows SDK tooling errors."""

    pass


class ToolNotFoundError(ToolingError):
    """Raised when no discovery strategy located an external tool."""

    def __init__(self, tool: str, remediation: str | None = None):
        message = f"Could not determine the location of {tool} on this server."
        if remediation:
            message = f"{message} {remediation}"
        super().__init__(message)
        self.tool = tool
        self.remediation = remediation


class InvocationError(ToolingError):
    """Raised when a resolved executable could not be started."""

    pass


class ParseError(ToolingError):
    """Raised when a tool output document is missing or malformed."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class ConfigurationError(ToolingError):
    """Raised when a required operation field is missing or invalid."""

    pass


# Failures while loading an XML document from disk
XML_LOAD_ERRORS = (XMLSyntaxError, DefusedXmlException, LookupError, UnicodeError, OSError)
