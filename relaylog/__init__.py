"""
Structured logging core for multi-process applications.

This package provides:
- DistributionEngine: thread-safe fan-out of log events to (sink, formatter) pairs
- ArgumentRenderer: terminal-safe rendering of heterogeneous log arguments
- Logger / LoggerRegistry: named loggers with pattern-based levels
- LogConfig / configure: configuration from parameters, dicts or YAML
- relaylog.relay: a parent/child relay shipping child log lines over a pipe
  and control commands back over a second pipe

Logging is best-effort: failures inside formatters, sinks or relay channels
are reported on the ``relaylog`` standard-library loggers and never reach the
code that emitted the log line.

Quick start:
    from relaylog import LogConfig, configure

    registry = configure(LogConfig.from_params(levels="*:DEBUG"))
    lg = registry.get_or_create("main")
    lg.info("started", "pid", os.getpid())
"""

from .config import LogConfig, OutputConfig, configure
from .constants import LogConstants, LogLevel
from .engine import DistributionEngine
from .event import ConvertedEvent, LogEvent
from .exceptions import (
    ChannelClosedError,
    ChannelError,
    ChannelReadError,
    ChannelWriteError,
    ConfigError,
    FrameError,
    IncompleteFrameError,
    InvalidLogLevelError,
    InvalidLoopStateError,
    MalformedFrameError,
    NilFormatterError,
    NilSinkError,
    RegistrationError,
    RelayLogError,
    SinkNotFoundError,
)
from .formatters import (
    Formatter,
    FrameFormatter,
    JSONFormatter,
    NullFormatter,
    PlainFormatter,
)
from .logger import Logger
from .registry import LevelRule, LoggerRegistry, parse_levels
from .render import ArgumentRenderer, is_ascii_safe, render_args
from .sinks import ByteSink, CallbackSink, StreamSink

__version__ = "0.3.0"

__all__ = [
    # Engine
    "DistributionEngine",
    "ArgumentRenderer",
    "render_args",
    "is_ascii_safe",
    # Events
    "LogEvent",
    "ConvertedEvent",
    "LogLevel",
    "LogConstants",
    # Facade
    "Logger",
    "LoggerRegistry",
    "LevelRule",
    "parse_levels",
    # Configuration
    "LogConfig",
    "OutputConfig",
    "configure",
    # Formatters and sinks
    "Formatter",
    "PlainFormatter",
    "JSONFormatter",
    "FrameFormatter",
    "NullFormatter",
    "ByteSink",
    "StreamSink",
    "CallbackSink",
    # Exceptions
    "RelayLogError",
    "RegistrationError",
    "NilSinkError",
    "NilFormatterError",
    "SinkNotFoundError",
    "FrameError",
    "IncompleteFrameError",
    "ChannelClosedError",
    "MalformedFrameError",
    "ChannelError",
    "ChannelReadError",
    "ChannelWriteError",
    "InvalidLoopStateError",
    "ConfigError",
    "InvalidLogLevelError",
]
