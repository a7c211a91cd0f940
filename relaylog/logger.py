"""
Logger facade.

Logger maps named severity calls to a single level check and forwards
enabled calls to a DistributionEngine as LogEvents.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from .constants import LogLevel
from .event import LogEvent

if TYPE_CHECKING:
    from .engine import DistributionEngine


class Logger:
    """
    Named logger bound to a distribution engine.

    Args after the message are conventionally alternating key/value pairs:

        lg.info("block committed", "height", 42, "hash", b"\\x01\\x02")
    """

    def __init__(
        self,
        name: str,
        engine: DistributionEngine,
        level: LogLevel = LogLevel.INFO,
        correlation: str = "",
    ) -> None:
        self._name = name
        self._engine = engine
        self._level = level
        self.correlation = correlation

    @property
    def name(self) -> str:
        return self._name

    @property
    def level(self) -> LogLevel:
        return self._level

    @level.setter
    def level(self, value: LogLevel | str | int) -> None:
        self._level = LogLevel.from_name(value)

    def is_enabled(self, level: LogLevel) -> bool:
        """Check whether events at ``level`` would be emitted."""
        if level is LogLevel.NONE or self._level is LogLevel.NONE:
            return False
        return level >= self._level

    def log(self, level: LogLevel, message: str, *args: Any) -> None:
        if not self.is_enabled(level):
            return
        self._engine.output(
            LogEvent(
                logger_name=self._name,
                correlation=self.correlation,
                message=message,
                log_level=level,
                args=args,
                timestamp=time.time_ns(),
            )
        )

    def trace(self, message: str, *args: Any) -> None:
        self.log(LogLevel.TRACE, message, *args)

    def debug(self, message: str, *args: Any) -> None:
        self.log(LogLevel.DEBUG, message, *args)

    def info(self, message: str, *args: Any) -> None:
        self.log(LogLevel.INFO, message, *args)

    def warning(self, message: str, *args: Any) -> None:
        self.log(LogLevel.WARNING, message, *args)

    def error(self, message: str, *args: Any) -> None:
        self.log(LogLevel.ERROR, message, *args)

    def __repr__(self) -> str:
        return f"Logger(name={self._name!r}, level={self._level.name})"
