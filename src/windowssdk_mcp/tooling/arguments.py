"""Command-line assembly with Windows argument quoting.

Tokens are quoted only when they contain whitespace or a double quote.
Every token is followed by a single space, including the last one.
"""

from __future__ import annotations


def quote_argument(arg: str | None) -> str:
    """Quote a single argument for a Windows command line.

    Args:
        arg: Argument text (None and "" render as nothing)

    Returns:
        The argument, wrapped in double quotes if needed
    """
    if not arg:
        return ""

    if not any(c.isspace() or c == '"' for c in arg):
        return arg

    body = arg.replace('"', '\\"')
    # A trailing backslash would otherwise escape the closing quote
    if body.endswith("\\"):
        body += "\\"
    return f'"{body}"'


class ArgumentBuilder:
    """Accumulates a command-line string.

    Usage:
        args = ArgumentBuilder("build ")
        args.append(project_path)
        args.append_raw("--configuration ")
        args.append("Release")
        args.render()  # 'build "C:\\My Project\\App.csproj" --configuration Release '
    """

    def __init__(self, initial: str = ""):
        self._parts: list[str] = [initial] if initial else []
        self._tokens: list[str] = []

    def append(self, arg: str | None) -> ArgumentBuilder:
        """Append a quoted-if-needed argument and a separating space."""
        self._parts.append(quote_argument(arg))
        self._parts.append(" ")
        self._tokens.append(arg or "")
        return self

    def append_raw(self, text: str | None) -> ArgumentBuilder:
        """Append text verbatim (flags, user-supplied argument strings)."""
        if text:
            self._parts.append(text)
        return self

    def extend(self, args: list[str]) -> ArgumentBuilder:
        """Append several arguments in order."""
        for arg in args:
            self.append(arg)
        return self

    @property
    def tokens(self) -> list[str]:
        """Arguments added through append(), unquoted."""
        return list(self._tokens)

    def render(self) -> str:
        """Return the accumulated command line."""
        return "".join(self._parts)

    def __str__(self) -> str:
        return self.render()
