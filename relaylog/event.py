"""
Log event records.

LogEvent is what the logger facade builds and what the frame codec carries
across processes. ConvertedEvent is the display-ready view the engine hands to
formatters, built once per broadcast.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from .constants import LogLevel


@dataclass(frozen=True)
class LogEvent:
    """
    Immutable structured log record.

    Attributes:
        logger_name: Name of the emitting logger
        correlation: Opaque correlation token
        message: Log message
        log_level: Severity level
        args: Heterogeneous argument values, conventionally key/value pairs
        timestamp: Nanoseconds since the epoch
    """

    logger_name: str = ""
    correlation: str = ""
    message: str = ""
    log_level: LogLevel = LogLevel.INFO
    args: tuple[Any, ...] = ()
    timestamp: int = field(default_factory=time.time_ns)


@dataclass(frozen=True)
class ConvertedEvent:
    """Read-only projection of a LogEvent with rendered args and integer timestamp."""

    logger_name: str
    correlation: str
    message: str
    log_level: int
    args: tuple[str, ...]
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        """Return the wire record for this event."""
        return {
            "logger_name": self.logger_name,
            "correlation": self.correlation,
            "message": self.message,
            "log_level": self.log_level,
            "args": list(self.args),
            "timestamp": self.timestamp,
        }
