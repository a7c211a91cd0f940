"""
Configuration for relaylog.

LogConfig is an immutable description of levels, outputs and correlation
token. It can be built from parameters, from a configuration dictionary or
from a YAML file, and turned into a wired LoggerRegistry with configure().

YAML example:
    logging:
      levels: "*:INFO,relay:DEBUG"
      correlation: "shard-0"
      outputs:
        - target: stdout
          format: plain
        - target: stderr
          format: json
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .constants import LogConstants
from .engine import DistributionEngine
from .exceptions import ConfigError
from .formatters import Formatter, JSONFormatter, PlainFormatter
from .registry import LoggerRegistry, parse_levels
from .sinks import StreamSink

OUTPUT_TARGETS = ("stdout", "stderr")
OUTPUT_FORMATS = ("plain", "json")


@dataclass(frozen=True)
class OutputConfig:
    """One configured (sink, formatter) pair."""

    target: str = "stdout"
    format: str = "plain"
    micros: bool = False

    def __post_init__(self) -> None:
        if self.target not in OUTPUT_TARGETS:
            raise ConfigError("invalid output target", target=self.target)
        if self.format not in OUTPUT_FORMATS:
            raise ConfigError("invalid output format", format=self.format)

    def create_sink(self) -> StreamSink:
        return StreamSink.stderr() if self.target == "stderr" else StreamSink.stdout()

    def create_formatter(self) -> Formatter:
        if self.format == "json":
            return JSONFormatter()
        return PlainFormatter(micros=self.micros)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | str) -> OutputConfig:
        """Build from a mapping, or from a bare target name."""
        if isinstance(data, str):
            return cls(target=data)
        if not isinstance(data, Mapping):
            raise ConfigError("output entry must be a mapping or a target name")
        return cls(
            target=str(data.get("target", "stdout")),
            format=str(data.get("format", "plain")),
            micros=bool(data.get("micros", False)),
        )


@dataclass(frozen=True)
class LogConfig:
    """
    Immutable logging configuration.

    Attributes:
        levels: Level pattern, e.g. "*:INFO,relay:DEBUG"
        outputs: Configured outputs, broadcast in order
        correlation: Initial correlation token
    """

    levels: str = LogConstants.DEFAULT_LEVELS
    outputs: tuple[OutputConfig, ...] = field(default_factory=lambda: (OutputConfig(),))
    correlation: str = ""

    @classmethod
    def from_params(
        cls,
        levels: str = LogConstants.DEFAULT_LEVELS,
        outputs: list[Any] | tuple[Any, ...] | None = None,
        correlation: str = "",
    ) -> LogConfig:
        """
        Create LogConfig from individual parameters.

        Args:
            levels: Level pattern string (validated here)
            outputs: OutputConfig objects, mappings or target names
                     (default: plain text to stdout)
            correlation: Initial correlation token

        Returns:
            LogConfig instance

        Raises:
            ConfigError: If any value is invalid
        """
        parse_levels(levels)

        if outputs is None:
            resolved = (OutputConfig(),)
        else:
            resolved = tuple(
                o if isinstance(o, OutputConfig) else OutputConfig.from_dict(o)
                for o in outputs
            )

        return cls(levels=levels, outputs=resolved, correlation=correlation)

    @staticmethod
    def _navigate_to_section(config_dict: Mapping[str, Any], section: str) -> Any:
        """Navigate to a dotted section ("" is the root); missing sections yield {}."""
        current: Any = config_dict
        if not section:
            return current
        for part in section.split("."):
            if isinstance(current, Mapping) and part in current:
                current = current[part]
            else:
                return {}
        return current

    @classmethod
    def from_config(
        cls, config_dict: Mapping[str, Any], section: str = "logging"
    ) -> LogConfig:
        """
        Create LogConfig from a configuration dictionary.

        Args:
            config_dict: Configuration dictionary
            section: Dotted path of the logging section (default: "logging")

        Returns:
            LogConfig instance

        Example:
            log_config = LogConfig.from_config(settings, "worker.logging")
        """
        current = cls._navigate_to_section(config_dict, section) or {}
        if not isinstance(current, Mapping):
            raise ConfigError("logging section must be a mapping", section=section)

        default_levels = current.get("level", LogConstants.DEFAULT_LEVELS)
        levels = current.get("levels", default_levels)
        outputs = current.get("outputs")
        if outputs is not None and not isinstance(outputs, (list, tuple)):
            raise ConfigError("outputs must be a list", section=section)

        return cls.from_params(
            levels=str(levels),
            outputs=outputs,
            correlation=str(current.get("correlation", "")),
        )

    @classmethod
    def from_yaml(cls, path: str | Path, section: str = "logging") -> LogConfig:
        """
        Load LogConfig from a YAML file.

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError("cannot read config file", path=str(path)) from e
        except yaml.YAMLError as e:
            raise ConfigError("invalid YAML", path=str(path), error=str(e)) from e

        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ConfigError("config file must contain a mapping", path=str(path))
        return cls.from_config(data, section)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary (e.g. to pass to a subprocess)."""
        return {
            "levels": self.levels,
            "correlation": self.correlation,
            "outputs": [
                {"target": o.target, "format": o.format, "micros": o.micros}
                for o in self.outputs
            ],
        }


def configure(
    config: LogConfig, engine: DistributionEngine | None = None
) -> LoggerRegistry:
    """
    Wire a configuration into an engine and return a registry over it.

    Each configured output is registered as a new (sink, formatter) pair, in
    order, on top of any observers the engine already has.
    """
    registry = LoggerRegistry.with_levels(config.levels, engine)
    for output in config.outputs:
        registry.engine.add_observer(output.create_sink(), output.create_formatter())
    if config.correlation:
        registry.set_correlation(config.correlation)
    return registry
