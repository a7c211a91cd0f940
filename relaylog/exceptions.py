"""
Exception hierarchy for relaylog.

All library errors derive from RelayLogError, so callers can catch every
library-specific failure with a single except clause. Errors are grouped by
the subsystem that raises them:

- Registration errors: raised by DistributionEngine observer management
- Frame errors: raised while decoding frames from a byte stream
- Channel errors: raised by pipe endpoints on read/write failures
- Lifecycle errors: raised by RelayLoop on invalid state transitions
- Configuration errors: raised while building LogConfig / resolving levels
"""

from typing import Any


class RelayLogError(Exception):
    """
    Base exception for all relaylog errors.

    Example:
        try:
            engine.add_observer(sink, formatter)
        except RelayLogError as e:
            print(f"wiring failed: {e}")
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


# Registration


class RegistrationError(RelayLogError):
    """Observer registration or removal failed."""

    pass


class NilSinkError(RegistrationError):
    """Raised when a sink is None."""

    def __init__(self) -> None:
        super().__init__("nil sink")


class NilFormatterError(RegistrationError):
    """Raised when a formatter is None or reports itself absent."""

    def __init__(self) -> None:
        super().__init__("nil formatter")


class SinkNotFoundError(RegistrationError):
    """Raised when removing a sink that is not registered."""

    def __init__(self) -> None:
        super().__init__("sink not found")


# Frames


class FrameError(RelayLogError):
    """A frame could not be read or decoded."""

    pass


class IncompleteFrameError(FrameError):
    """
    Raised when the stream ends before a frame delimiter.

    Attributes:
        partial: Bytes read before end of stream (may be empty)
    """

    def __init__(
        self, partial: bytes = b"", message: str = "incomplete frame"
    ) -> None:
        if partial:
            super().__init__(message, partial=partial)
        else:
            super().__init__(message)
        self.partial = partial


class ChannelClosedError(IncompleteFrameError):
    """Raised when the stream ends cleanly with no pending bytes."""

    def __init__(self) -> None:
        super().__init__(b"", "channel closed")


class MalformedFrameError(FrameError):
    """
    Raised when a frame payload cannot be unmarshalled.

    The offending bytes are kept in ``raw`` and rendered in the message so the
    bad payload can be diagnosed from the error text alone.
    """

    def __init__(self, raw: bytes, reason: str = "") -> None:
        text = raw.decode("utf-8", errors="backslashreplace")
        message = f"malformed frame: {text}"
        if reason:
            super().__init__(message, reason=reason)
        else:
            super().__init__(message)
        self.raw = raw
        self.reason = reason


# Channels


class ChannelError(RelayLogError):
    """A pipe endpoint failed."""

    pass


class ChannelWriteError(ChannelError):
    """Raised when writing to a pipe endpoint fails."""

    pass


class ChannelReadError(ChannelError):
    """Raised when reading from a pipe endpoint fails."""

    pass


# Lifecycle


class InvalidLoopStateError(RelayLogError):
    """Raised when a relay loop operation is not valid in its current state."""

    def __init__(self, operation: str, state: Any) -> None:
        super().__init__(
            "invalid operation for relay loop state",
            operation=operation,
            state=getattr(state, "value", state),
        )
        self.operation = operation
        self.state = state


# Configuration


class ConfigError(RelayLogError):
    """Invalid logging configuration."""

    pass


class InvalidLogLevelError(ConfigError):
    """Raised when an invalid log level is specified."""

    def __init__(self, level: Any) -> None:
        super().__init__(f"Invalid log level: {level}")
        self.level = level
