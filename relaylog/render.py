"""
Argument rendering.

Turns the heterogeneous argument values of a log call into display strings.
Rendered output must stay terminal-safe: byte values and strings that are
not plain ASCII text are shown as lowercase hex, everything else goes through
a best-effort string conversion that never raises.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import timedelta
from typing import Any

from .constants import LogConstants
from .durations import format_timedelta

ByteDisplay = Callable[[bytes], str]

_ALLOWED_CONTROL = frozenset(
    (
        LogConstants.ASCII_TAB,
        LogConstants.ASCII_CARRIAGE_RETURN,
        LogConstants.ASCII_NEW_LINE,
    )
)


def display_hex(data: bytes) -> str:
    """Default byte display: lowercase hex."""
    return data.hex()


def is_ascii_safe(data: str) -> bool:
    """
    Check whether a string can be logged verbatim.

    Args:
        data: String to check

    Returns:
        True if every character is printable ASCII (0x20-0x7E) or tab/CR/LF
    """
    for ch in data:
        code = ord(ch)
        if LogConstants.ASCII_SPACE <= code <= LogConstants.ASCII_TILDE:
            continue
        if ch in _ALLOWED_CONTROL:
            continue
        return False
    return True


def _raw_bytes(data: str) -> bytes:
    try:
        return data.encode("utf-8", errors="surrogateescape")
    except UnicodeEncodeError:
        # lone surrogates outside the escape range
        return data.encode("utf-8", errors="surrogatepass")


class ArgumentRenderer:
    """
    Renders log arguments to display strings.

    Stateless apart from the byte display function chosen at construction,
    so one instance can be shared by any number of threads.

    Example:
        >>> renderer = ArgumentRenderer()
        >>> renderer.render(["key", b"\\x01\\x02", True])
        ['key', '0102', 'true']
    """

    def __init__(self, byte_display: ByteDisplay | None = None) -> None:
        """
        Initialize the renderer.

        Args:
            byte_display: Function rendering raw bytes (default: lowercase hex)
        """
        self._byte_display = byte_display or display_hex

    def render(self, args: Iterable[Any]) -> list[str]:
        """Render every argument, preserving order and length."""
        return [self.render_one(arg) for arg in args]

    def render_one(self, value: Any) -> str:
        """Render a single argument value."""
        if isinstance(value, (bytes, bytearray, memoryview)):
            return self._byte_display(bytes(value))
        if isinstance(value, str):
            if is_ascii_safe(value):
                return value
            return self._byte_display(_raw_bytes(value))
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, timedelta):
            return format_timedelta(value)
        if isinstance(value, BaseException):
            return str(value) or value.__class__.__name__
        return _best_effort_str(value)


def _best_effort_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return f"<unprintable {type(value).__name__}>"


_default_renderer = ArgumentRenderer()


def render_args(args: Iterable[Any]) -> list[str]:
    """Render arguments with the default hex byte display."""
    return _default_renderer.render(args)
