"""
Formatters for converted log events.

A formatter maps a ConvertedEvent to the bytes written to one sink. Every
formatter must tolerate ``None`` (the engine forwards absent events) and
answer ``is_absent()`` so the engine can reject placeholder formatters at
registration time.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from .constants import LogLevel
from .durations import NANOS_PER_SECOND

if TYPE_CHECKING:
    from .event import ConvertedEvent
    from .relay.codec import FrameCodec

MESSAGE_FIXED_LENGTH = 40


class Formatter(ABC):
    """Base class for formatters."""

    @abstractmethod
    def format(self, event: ConvertedEvent | None) -> bytes | None:
        """
        Format an event into a byte buffer.

        Args:
            event: Converted event, or None for an absent event

        Returns:
            Bytes to write, or None when there is nothing to write
        """
        pass  # pragma: no cover

    def is_absent(self) -> bool:
        """Return True for placeholder formatters that must not be registered."""
        return False


class NullFormatter(Formatter):
    """Placeholder formatter; the engine refuses to register it."""

    def format(self, event: ConvertedEvent | None) -> bytes | None:
        return None

    def is_absent(self) -> bool:
        return True


def _level_name(level: int) -> str:
    try:
        return LogLevel(level).short_name
    except ValueError:
        return str(level)


def _display_time(timestamp: int, micros: bool = False) -> str:
    secs, nanos = divmod(timestamp, NANOS_PER_SECOND)
    moment = datetime.fromtimestamp(secs).replace(microsecond=nanos // 1000)
    if micros:
        return moment.strftime("%Y-%m-%d %H:%M:%S.%f")
    return moment.strftime("%Y-%m-%d %H:%M:%S.") + f"{nanos // 1_000_000:03d}"


def _format_args(args: tuple[str, ...]) -> str:
    """Pair up alternating key/value args; an odd trailing arg is shown bare."""
    parts = [f"{args[i - 1]} = {args[i]}" for i in range(1, len(args), 2)]
    if len(args) % 2:
        parts.append(args[-1])
    return " ".join(parts)


class PlainFormatter(Formatter):
    """
    Single-line text formatter.

    Output layout:
        DEBUG[2022-03-30 15:47:52.000] [name] [correlation] message   key = value
    """

    def __init__(self, micros: bool = False) -> None:
        self.micros = micros

    def format(self, event: ConvertedEvent | None) -> bytes | None:
        if event is None:
            return None

        line = "{}[{}] [{}] [{}] {} {}".format(
            _level_name(event.log_level),
            _display_time(event.timestamp, self.micros),
            event.logger_name,
            event.correlation,
            event.message.ljust(MESSAGE_FIXED_LENGTH),
            _format_args(event.args),
        )
        return (line.rstrip(" ") + "\n").encode("utf-8", errors="replace")


class JSONFormatter(Formatter):
    """
    Formatter emitting one JSON object per line.

    Args are folded into a ``fields`` mapping when they come in key/value
    pairs; an odd trailing arg is kept under ``"_"``.
    """

    def __init__(
        self,
        exclude_fields: list[str] | None = None,
        timestamp_format: str = "iso",
        custom_fields: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize JSON formatter.

        Args:
            exclude_fields: Field names to leave out of the output
            timestamp_format: "iso" (UTC ISO-8601) or "unix" (integer nanoseconds)
            custom_fields: Constant fields added to every record
        """
        self.exclude_fields = set(exclude_fields) if exclude_fields else set()
        self.timestamp_format = timestamp_format
        self.custom_fields = custom_fields or {}

    def should_include_field(self, field_name: str) -> bool:
        return field_name not in self.exclude_fields

    def _format_timestamp(self, timestamp: int) -> Any:
        if self.timestamp_format == "unix":
            return timestamp
        secs, nanos = divmod(timestamp, NANOS_PER_SECOND)
        moment = datetime.fromtimestamp(secs, tz=timezone.utc)
        return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{nanos:09d}Z"

    def _event_to_dict(self, event: ConvertedEvent) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.should_include_field("timestamp"):
            data["timestamp"] = self._format_timestamp(event.timestamp)
        if self.should_include_field("level"):
            data["level"] = _level_name(event.log_level).strip()
        if self.should_include_field("logger"):
            data["logger"] = event.logger_name
        if self.should_include_field("correlation") and event.correlation:
            data["correlation"] = event.correlation
        if self.should_include_field("message"):
            data["message"] = event.message
        if self.should_include_field("fields") and event.args:
            fields = dict(zip(event.args[0::2], event.args[1::2]))
            if len(event.args) % 2:
                fields["_"] = event.args[-1]
            data["fields"] = fields
        for key, value in self.custom_fields.items():
            if self.should_include_field(key):
                data[key] = value
        return data

    def format(self, event: ConvertedEvent | None) -> bytes | None:
        if event is None:
            return None
        return (json.dumps(self._event_to_dict(event), default=str) + "\n").encode()


class FrameFormatter(Formatter):
    """Formatter producing wire frames, used to feed a relay channel."""

    def __init__(self, codec: FrameCodec) -> None:
        self.codec = codec

    def format(self, event: ConvertedEvent | None) -> bytes | None:
        if event is None:
            return None
        return self.codec.encode(event)
