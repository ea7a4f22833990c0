"""Classification of external tool output lines into leveled messages.

Two schemes are supported:
- The build logger's private ``<BM>`` prefix: base64 payload whose first
  byte is the message level and the rest a UTF-8 message.
- Plain lines at a tool-specific default level, optionally promoted to
  warning when they mention the word "warning".
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

BM_PREFIX = "<BM>"

WARNING_PATTERN = re.compile(r"\bwarning\b", re.IGNORECASE)


class MessageLevel(IntEnum):
    """Message levels used by the build logger protocol."""

    DEBUG = 0
    INFO = 10
    WARNING = 20
    ERROR = 30

    @property
    def logging_level(self) -> int:
        """Equivalent stdlib logging level."""
        return {
            MessageLevel.DEBUG: logging.DEBUG,
            MessageLevel.INFO: logging.INFO,
            MessageLevel.WARNING: logging.WARNING,
            MessageLevel.ERROR: logging.ERROR,
        }[self]

    @classmethod
    def from_byte(cls, value: int) -> MessageLevel:
        """Map a raw level byte, rounding unknown values down to a known level."""
        for level in sorted(cls, reverse=True):
            if value >= level:
                return level
        return cls.DEBUG


@dataclass(frozen=True)
class OutputMessage:
    """A classified output line."""

    level: MessageLevel
    text: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"level": self.level.name.lower(), "text": self.text}


def decode_bm_line(line: str) -> OutputMessage | None:
    """Decode a ``<BM>``-prefixed line.

    Returns:
        The decoded message, or None if the line is not in this format
    """
    if not line.startswith(BM_PREFIX):
        return None
    try:
        payload = base64.b64decode(line[len(BM_PREFIX):].strip(), validate=True)
    except (binascii.Error, ValueError):
        return None
    if not payload:
        return None
    text = payload[1:].decode("utf-8", errors="replace")
    return OutputMessage(MessageLevel.from_byte(payload[0]), text)


def encode_bm_line(level: MessageLevel, text: str) -> str:
    """Encode a message in the ``<BM>`` format (used by tests and fakes)."""
    payload = bytes([int(level)]) + text.encode("utf-8")
    return BM_PREFIX + base64.b64encode(payload).decode("ascii")


@dataclass(frozen=True)
class OutputClassifier:
    """Per-tool output classification rules."""

    default_level: MessageLevel = MessageLevel.INFO
    promote_warnings: bool = False
    decode_bm: bool = False

    def classify(self, line: str) -> OutputMessage | None:
        """Classify one output line.

        Returns:
            The leveled message, or None for blank lines
        """
        if not line or not line.strip():
            return None

        if self.decode_bm:
            decoded = decode_bm_line(line)
            if decoded is not None:
                return decoded

        level = self.default_level
        if self.promote_warnings and WARNING_PATTERN.search(line):
            level = MessageLevel.WARNING
        return OutputMessage(level, line)


# Classifiers used by the operations
DOTNET_CLASSIFIER = OutputClassifier(
    default_level=MessageLevel.DEBUG, promote_warnings=True
)
MSBUILD_CLASSIFIER = OutputClassifier(default_level=MessageLevel.INFO, decode_bm=True)
DEFAULT_CLASSIFIER = OutputClassifier()
