"""
Byte sinks.

A sink is anything with a ``write(data: bytes)`` method. The engine holds
sinks by reference and matches them by identity on removal, so the same
stream can be registered several times through different sink objects.
"""

from __future__ import annotations

import io
import sys
import threading
from collections.abc import Callable
from typing import IO, Any, Protocol, runtime_checkable


@runtime_checkable
class ByteSink(Protocol):
    """Destination accepting formatted log buffers."""

    def write(self, data: bytes) -> Any: ...


class StreamSink:
    """
    Sink writing to a binary or text stream.

    Text streams (e.g. sys.stdout) receive the buffer decoded as UTF-8.
    Writes are serialized with a lock so concurrent broadcasts never
    interleave partial lines on the same stream.
    """

    def __init__(self, stream: IO[Any], flush: bool = True) -> None:
        self.stream = stream
        self._flush = flush
        self._binary = not isinstance(stream, io.TextIOBase)
        self._lock = threading.Lock()

    def write(self, data: bytes) -> int:
        if not data:
            return 0
        with self._lock:
            if self._binary:
                self.stream.write(data)
            else:
                self.stream.write(data.decode("utf-8", errors="replace"))
            if self._flush:
                self.stream.flush()
        return len(data)

    @classmethod
    def stdout(cls) -> StreamSink:
        return cls(sys.stdout)

    @classmethod
    def stderr(cls) -> StreamSink:
        return cls(sys.stderr)


class CallbackSink:
    """Sink forwarding each buffer to a callable."""

    def __init__(self, callback: Callable[[bytes], Any]) -> None:
        self._callback = callback

    def write(self, data: bytes) -> int:
        self._callback(data)
        return len(data)
