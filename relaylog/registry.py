"""
Named-logger registry with pattern-based levels.

LoggerRegistry is an explicit object owned by process bootstrap code, not
process-wide state. It hands out one Logger per name, all bound to the same
DistributionEngine, and resolves each logger's level from rules such as
``"*:INFO,relay:DEBUG,db.*:TRACE"``:

- ``*`` sets the default level
- a plain name matches that logger and its ``.``/``/`` children
- names with ``*`` or ``?`` are fnmatch patterns
- the most specific matching rule wins; later rules win ties
"""

from __future__ import annotations

import fnmatch
import logging
import threading
from dataclasses import dataclass
from typing import Any

from .constants import LogConstants, LogLevel
from .engine import DistributionEngine
from .exceptions import ConfigError
from .logger import Logger

_log = logging.getLogger(__name__)

_CHILD_SEPARATORS = (".", "/")


@dataclass(frozen=True)
class LevelRule:
    """
    Single level rule for a logger name pattern.

    Attributes:
        pattern: Logger name, or fnmatch pattern
        level: Level applied to matching loggers
        specificity: Count of literal characters in the pattern
    """

    pattern: str
    level: LogLevel

    @property
    def specificity(self) -> int:
        return sum(1 for ch in self.pattern if ch not in "*?[]")

    def matches(self, name: str) -> bool:
        if any(ch in self.pattern for ch in "*?["):
            return fnmatch.fnmatchcase(name, self.pattern)
        if name == self.pattern:
            return True
        return any(name.startswith(self.pattern + sep) for sep in _CHILD_SEPARATORS)


def parse_levels(levels: str) -> tuple[LogLevel | None, list[LevelRule]]:
    """
    Parse a level pattern string.

    Args:
        levels: Comma-separated ``name:LEVEL`` entries; a bare level means ``*:LEVEL``

    Returns:
        Tuple of (default level or None, named rules in order)

    Raises:
        ConfigError: If an entry is malformed
        InvalidLogLevelError: If a level name is unknown
    """
    default: LogLevel | None = None
    rules: list[LevelRule] = []

    for entry in levels.split(","):
        entry = entry.strip()
        if not entry:
            continue
        pattern, sep, level_name = entry.rpartition(":")
        if not sep:
            pattern, level_name = "*", entry
        pattern = pattern.strip()
        if not pattern:
            raise ConfigError("invalid level rule", rule=entry)

        level = LogLevel.from_name(level_name)
        if pattern == "*":
            default = level
        else:
            rules.append(LevelRule(pattern, level))

    return default, rules


class LoggerRegistry:
    """
    Registry of named loggers sharing one distribution engine.

    Example:
        >>> registry = LoggerRegistry()
        >>> registry.set_levels("*:WARNING,relay:DEBUG")
        >>> registry.get_or_create("relay.child").level
        <LogLevel.DEBUG: 1>
        >>> registry.get_or_create("db").level
        <LogLevel.WARNING: 3>
    """

    def __init__(
        self,
        engine: DistributionEngine | None = None,
        default_level: LogLevel = LogLevel.INFO,
    ) -> None:
        self.engine = engine or DistributionEngine()
        self._default_level = default_level
        self._rules: list[LevelRule] = []
        self._loggers: dict[str, Logger] = {}
        self._correlation = ""
        self._lock = threading.RLock()

    def get_or_create(self, name: str) -> Logger:
        """Return the logger registered under ``name``, creating it if needed."""
        with self._lock:
            lg = self._loggers.get(name)
            if lg is None:
                lg = Logger(
                    name,
                    self.engine,
                    level=self.effective_level(name),
                    correlation=self._correlation,
                )
                self._loggers[name] = lg
            return lg

    def get(self, name: str) -> Logger | None:
        with self._lock:
            return self._loggers.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._loggers)

    def effective_level(self, name: str) -> LogLevel:
        """Resolve the level a logger with this name gets from the current rules."""
        with self._lock:
            best: LevelRule | None = None
            for rule in self._rules:
                if rule.matches(name) and (
                    best is None or rule.specificity >= best.specificity
                ):
                    best = rule
            return best.level if best is not None else self._default_level

    def set_levels(self, levels: str) -> None:
        """
        Replace the level rules and re-level every registered logger.

        Entries without a ``*`` default keep the current default level.
        """
        default, rules = parse_levels(levels)
        with self._lock:
            if default is not None:
                self._default_level = default
            self._rules = rules
            for name, lg in self._loggers.items():
                lg.level = self.effective_level(name)

    def levels(self) -> str:
        """Current rules rendered back to pattern form."""
        with self._lock:
            parts = [f"*:{self._default_level.name}"]
            parts.extend(f"{r.pattern}:{r.level.name}" for r in self._rules)
            return ",".join(parts)

    @property
    def correlation(self) -> str:
        return self._correlation

    def set_correlation(self, token: str) -> None:
        """Set the correlation token on every current and future logger."""
        with self._lock:
            self._correlation = token
            for lg in self._loggers.values():
                lg.correlation = token

    def apply_command(self, payload: Any) -> None:
        """
        Apply a control command received from a parent process.

        Understood keys: ``log_levels`` (level pattern string) and
        ``correlation`` (token). Unknown keys are ignored.

        Raises:
            ConfigError: If the payload is not a mapping or a value is invalid
        """
        if not isinstance(payload, dict):
            raise ConfigError("control command must be an object")

        if "log_levels" in payload:
            levels = payload["log_levels"]
            if not isinstance(levels, str):
                raise ConfigError("log_levels must be a string")
            self.set_levels(levels)
        if "correlation" in payload:
            self.set_correlation(str(payload["correlation"]))

        unknown = set(payload) - {"log_levels", "correlation"}
        if unknown:
            _log.debug("ignored control command keys", extra={"keys": sorted(unknown)})

    @classmethod
    def with_levels(
        cls,
        levels: str = LogConstants.DEFAULT_LEVELS,
        engine: DistributionEngine | None = None,
    ) -> LoggerRegistry:
        """Create a registry and apply a level pattern."""
        registry = cls(engine)
        registry.set_levels(levels)
        return registry
