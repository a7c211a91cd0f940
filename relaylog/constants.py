"""
Constants and level definitions for relaylog.

This module holds the ordered LogLevel enumeration shared by the logger
facade, the engine and the wire format, together with the byte-level
constants used by the argument renderer and the frame codec.
"""

from __future__ import annotations

from enum import IntEnum

from .exceptions import InvalidLogLevelError


class LogLevel(IntEnum):
    """Ordered severity levels. The integer value is what travels on the wire."""

    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARNING = 3
    ERROR = 4
    NONE = 5

    @classmethod
    def from_name(cls, value: str | int | LogLevel) -> LogLevel:
        """
        Resolve a level from a name, a numeric string or an integer.

        Args:
            value: Level name (case-insensitive, "warn" accepted), number or LogLevel

        Returns:
            LogLevel member

        Raises:
            InvalidLogLevelError: If the value does not name a level
        """
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, bool):
            raise InvalidLogLevelError(value)
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidLogLevelError(value) from None

        name = str(value).strip()
        if name.isnumeric():
            return cls.from_name(int(name))

        key = LogConstants.LEVEL_ALIASES.get(name.lower(), name.upper())
        try:
            return cls[key]
        except KeyError:
            raise InvalidLogLevelError(value) from None

    @property
    def short_name(self) -> str:
        """Five-character display name used by the plain formatter."""
        return LogConstants.SHORT_NAMES[self]


class LogConstants:
    """Constants for the logging system."""

    # Frame delimiter; the default JSON marshaller never emits it unescaped
    FRAME_DELIMITER: bytes = b"\n"

    # Printable ASCII range accepted verbatim by the argument renderer
    ASCII_SPACE: int = 0x20
    ASCII_TILDE: int = 0x7E
    ASCII_TAB: str = "\t"
    ASCII_CARRIAGE_RETURN: str = "\r"
    ASCII_NEW_LINE: str = "\n"

    LEVEL_ALIASES: dict[str, str] = {"warn": "WARNING"}

    SHORT_NAMES: dict[LogLevel, str] = {
        LogLevel.TRACE: "TRACE",
        LogLevel.DEBUG: "DEBUG",
        LogLevel.INFO: "INFO ",
        LogLevel.WARNING: "WARN ",
        LogLevel.ERROR: "ERROR",
        LogLevel.NONE: "NONE ",
    }

    # Join timeout when stopping background relay threads
    DEFAULT_STOP_TIMEOUT: float = 5.0

    # Read chunk size for pipe endpoints
    READ_CHUNK_SIZE: int = 4096

    # Default level pattern: everything at INFO
    DEFAULT_LEVELS: str = "*:INFO"
