"""
Frame codec for the relay channels.

A frame is a marshalled payload followed by a single delimiter byte. The
default JSON marshaller escapes every control character, so the delimiter can
never appear inside a payload and frames can be split on it directly.
"""

from __future__ import annotations

import json
from typing import Any, Protocol

from ..constants import LogConstants, LogLevel
from ..event import ConvertedEvent, LogEvent
from ..exceptions import (
    ChannelClosedError,
    IncompleteFrameError,
    InvalidLogLevelError,
    MalformedFrameError,
)
from ..render import ArgumentRenderer


class Marshaller(Protocol):
    """Encodes values to bytes and back."""

    def marshal(self, obj: Any) -> bytes: ...

    def unmarshal(self, data: bytes) -> Any: ...


class JSONMarshaller:
    """Compact ASCII-only JSON marshaller."""

    def marshal(self, obj: Any) -> bytes:
        return json.dumps(obj, separators=(",", ":"), ensure_ascii=True).encode(
            "ascii"
        )

    def unmarshal(self, data: bytes) -> Any:
        return json.loads(data)


_default_renderer = ArgumentRenderer()


def read_until(stream: Any, delimiter: bytes, wake_fd: int | None = None) -> bytes:
    """
    Read from a stream up to and including the delimiter.

    Uses the stream's own ``read_until`` (pipe endpoints) or ``readline``
    (newline delimiter) when available, otherwise reads byte by byte.
    ``wake_fd`` is forwarded to pipe endpoints so a blocked read can be woken.

    Returns:
        Bytes read; shorter than a full frame only at end of stream
    """
    if hasattr(stream, "read_until"):
        if wake_fd is not None:
            return bytes(stream.read_until(delimiter, wake_fd=wake_fd))
        return bytes(stream.read_until(delimiter))
    if delimiter == b"\n" and hasattr(stream, "readline"):
        return bytes(stream.readline())

    buf = bytearray()
    while True:
        chunk = stream.read(1)
        if not chunk:
            return bytes(buf)
        buf += chunk
        if buf.endswith(delimiter):
            return bytes(buf)


def _expect(record: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    value = record.get(key, default)
    if value is None:
        return default
    if not isinstance(value, kind) or isinstance(value, bool):
        raise TypeError(f"field {key} must be {kind.__name__}")
    return value


def event_from_record(record: Any) -> LogEvent:
    """
    Build a LogEvent from an unmarshalled wire record.

    Missing fields take their defaults; present fields must have the wire types.

    Raises:
        TypeError: If the record or one of its fields has the wrong type
        InvalidLogLevelError: If log_level is not a known level
    """
    if not isinstance(record, dict):
        raise TypeError("frame payload must be an object")

    args = _expect(record, "args", list, [])
    return LogEvent(
        logger_name=_expect(record, "logger_name", str, ""),
        correlation=_expect(record, "correlation", str, ""),
        message=_expect(record, "message", str, ""),
        log_level=LogLevel.from_name(_expect(record, "log_level", int, LogLevel.INFO)),
        args=tuple(str(arg) for arg in args),
        timestamp=_expect(record, "timestamp", int, 0),
    )


def record_from_event(
    event: LogEvent | ConvertedEvent, renderer: ArgumentRenderer | None = None
) -> dict[str, Any]:
    """
    Build the wire record for an event.

    LogEvent args go through the renderer (default: hex byte display);
    ConvertedEvent args are already rendered and are sent as they are.
    """
    if isinstance(event, ConvertedEvent):
        return event.to_dict()
    return {
        "logger_name": event.logger_name,
        "correlation": event.correlation,
        "message": event.message,
        "log_level": int(event.log_level),
        "args": (renderer or _default_renderer).render(event.args),
        "timestamp": int(event.timestamp),
    }


class FrameCodec:
    """
    Encodes events and control payloads into delimited frames and back.

    Example:
        >>> import io
        >>> codec = FrameCodec()
        >>> frame = codec.encode(LogEvent(logger_name="child", message="hi"))
        >>> codec.decode(io.BytesIO(frame)).message
        'hi'
    """

    def __init__(
        self,
        marshaller: Marshaller | None = None,
        delimiter: bytes = LogConstants.FRAME_DELIMITER,
        renderer: ArgumentRenderer | None = None,
    ) -> None:
        if len(delimiter) != 1:
            raise ValueError("frame delimiter must be a single byte")
        self.marshaller = marshaller or JSONMarshaller()
        self.delimiter = delimiter
        self.renderer = renderer or _default_renderer

    def encode_payload(self, payload: Any) -> bytes:
        """
        Marshal a payload and append the delimiter.

        Raises:
            MalformedFrameError: If the marshaller emitted the delimiter
        """
        data = self.marshaller.marshal(payload)
        if self.delimiter in data:
            raise MalformedFrameError(data, "payload contains frame delimiter")
        return data + self.delimiter

    def encode(self, event: LogEvent | ConvertedEvent) -> bytes:
        """Encode an event into a frame."""
        return self.encode_payload(record_from_event(event, self.renderer))

    def read_frame(self, stream: Any, wake_fd: int | None = None) -> bytes:
        """
        Read one frame from a stream and strip its delimiter.

        A pipe endpoint read with ``wake_fd`` raises ChannelClosedError once
        that descriptor becomes readable.

        Raises:
            ChannelClosedError: If the stream ended before any byte
            IncompleteFrameError: If the stream ended inside a frame
        """
        data = read_until(stream, self.delimiter, wake_fd)
        if not data:
            raise ChannelClosedError()
        if not data.endswith(self.delimiter):
            raise IncompleteFrameError(data)
        return data[: -len(self.delimiter)]

    def decode_payload(self, stream: Any, wake_fd: int | None = None) -> Any:
        """
        Read and unmarshal one opaque payload.

        Raises:
            IncompleteFrameError: If the stream ended before a delimiter
            MalformedFrameError: If the payload cannot be unmarshalled
        """
        frame = self.read_frame(stream, wake_fd)
        try:
            return self.marshaller.unmarshal(frame)
        except Exception as e:
            raise MalformedFrameError(frame, str(e)) from e

    def unmarshal_event(self, frame: bytes) -> LogEvent:
        """
        Unmarshal frame bytes (without delimiter) into a LogEvent.

        Raises:
            MalformedFrameError: If the bytes are not a valid wire record
        """
        try:
            record = self.marshaller.unmarshal(frame)
        except Exception as e:
            raise MalformedFrameError(frame, str(e)) from e

        try:
            return event_from_record(record)
        except (InvalidLogLevelError, TypeError) as e:
            raise MalformedFrameError(frame, str(e)) from e

    def decode(self, stream: Any, wake_fd: int | None = None) -> LogEvent:
        """
        Read and decode one event frame.

        Raises:
            IncompleteFrameError: If the stream ended before a delimiter
            MalformedFrameError: If the payload is not a valid event
        """
        return self.unmarshal_event(self.read_frame(stream, wake_fd))
