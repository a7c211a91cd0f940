"""
Pipe endpoints for the relay channels.

PipeEnd wraps one end of a byte-stream pipe, given as an OS descriptor, a
binary file object or None (never connected). It keeps its own read buffer so
readiness polling with select() never misses frames that were already read
from the descriptor, and it converts every OS-level failure into a
ChannelError.
"""

from __future__ import annotations

import logging
import os
import select
import threading
from typing import IO

from ..constants import LogConstants
from ..exceptions import ChannelClosedError, ChannelReadError, ChannelWriteError

_log = logging.getLogger(__name__)

PipeTarget = int | IO[bytes] | None


def _error_text(e: BaseException) -> str:
    return getattr(e, "strerror", None) or str(e) or e.__class__.__name__


class PipeEnd:
    """
    One end of a byte-stream pipe.

    Reads and writes are each serialized by their own lock, so one reader
    thread and any number of writer threads can share an endpoint.
    """

    def __init__(self, target: PipeTarget, name: str = "pipe", closefd: bool = True):
        """
        Initialize the endpoint.

        Args:
            target: Descriptor, binary file object, or None for an unconnected end
            name: Name used in error context and diagnostics
            closefd: Whether close() releases the descriptor or file
        """
        self.name = name
        self._closefd = closefd
        self._file: IO[bytes] | None = None
        self._fd: int | None = None
        self._buffer = bytearray()
        self._read_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._closed = False

        if isinstance(target, int):
            self._fd = target
        elif target is not None:
            self._file = target
            try:
                self._fd = target.fileno()
            except (AttributeError, OSError, ValueError):
                self._fd = None

    @property
    def fd(self) -> int | None:
        """Underlying descriptor, or None for unconnected or in-memory ends."""
        return self._fd

    @property
    def connected(self) -> bool:
        return not self._closed and (self._fd is not None or self._file is not None)

    @property
    def closed(self) -> bool:
        return self._closed

    def has_buffered(self) -> bool:
        """Whether bytes already read from the pipe are waiting to be consumed."""
        return bool(self._buffer)

    def _read_chunk(self) -> bytes:
        if not self.connected:
            return b""
        try:
            if self._fd is not None:
                return os.read(self._fd, LogConstants.READ_CHUNK_SIZE)
            assert self._file is not None
            return self._file.read(LogConstants.READ_CHUNK_SIZE) or b""
        except (OSError, ValueError) as e:
            raise ChannelReadError(
                "pipe read failed", pipe=self.name, error=_error_text(e)
            ) from e

    def read_until(self, delimiter: bytes, wake_fd: int | None = None) -> bytes:
        """
        Read up to and including the delimiter.

        Blocks until the delimiter arrives or the pipe reaches end of stream;
        at end of stream the remaining buffered bytes (possibly none) are
        returned. With ``wake_fd``, every blocking read first waits on both
        descriptors, so a wake interrupts a frame that is only partly written.

        Raises:
            ChannelClosedError: If woken through wake_fd before the delimiter;
                bytes read so far stay buffered
            ChannelReadError: If the underlying read fails
        """
        with self._read_lock:
            while True:
                idx = self._buffer.find(delimiter)
                if idx >= 0:
                    end = idx + len(delimiter)
                    data = bytes(self._buffer[:end])
                    del self._buffer[:end]
                    return data

                if wake_fd is not None and not self._poll(wake_fd):
                    raise ChannelClosedError()
                chunk = self._read_chunk()
                if not chunk:
                    data = bytes(self._buffer)
                    self._buffer.clear()
                    return data
                self._buffer += chunk

    def wait_readable(self, wake_fd: int | None = None) -> bool:
        """
        Block until the pipe has data (or end of stream) or wake_fd fires.

        Returns:
            False if woken through wake_fd, True if a read will not block

        Raises:
            ChannelReadError: If the descriptor cannot be polled
        """
        if self._buffer:
            return True
        return self._poll(wake_fd)

    def _poll(self, wake_fd: int | None) -> bool:
        if self._fd is None or not self.connected:
            return True

        watched = [self._fd] if wake_fd is None else [self._fd, wake_fd]
        try:
            readable, _, _ = select.select(watched, [], [])
        except (OSError, ValueError) as e:
            raise ChannelReadError(
                "pipe poll failed", pipe=self.name, error=_error_text(e)
            ) from e
        return wake_fd is None or wake_fd not in readable

    def write(self, data: bytes) -> int:
        """
        Write all bytes to the pipe.

        Returns:
            Number of bytes written

        Raises:
            ChannelWriteError: If the pipe is unconnected, closed or broken
        """
        with self._write_lock:
            if not self.connected:
                raise ChannelWriteError("pipe not connected", pipe=self.name)
            try:
                if self._fd is not None:
                    view = memoryview(data)
                    while view:
                        written = os.write(self._fd, view)
                        view = view[written:]
                else:
                    assert self._file is not None
                    self._file.write(data)
                    self._file.flush()
            except (OSError, ValueError) as e:
                raise ChannelWriteError(
                    "pipe write failed", pipe=self.name, error=_error_text(e)
                ) from e
        return len(data)

    def close(self) -> None:
        """Close the endpoint. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if not self._closefd:
            return
        try:
            if self._file is not None:
                self._file.close()
            elif self._fd is not None:
                os.close(self._fd)
        except OSError as e:
            _log.debug("pipe close failed", extra={"pipe": self.name, "error": str(e)})

    def __repr__(self) -> str:
        return f"PipeEnd(name={self.name!r}, fd={self._fd}, closed={self._closed})"


class Waker:
    """
    Self-pipe used to wake a thread blocked in PipeEnd.wait_readable() or
    PipeEnd.read_until().

    wake() is idempotent until the waker is closed.
    """

    def __init__(self) -> None:
        self._read_fd, self._write_fd = os.pipe()
        self._woken = False
        self._closed = False
        self._lock = threading.Lock()

    def fileno(self) -> int:
        return self._read_fd

    def wake(self) -> None:
        with self._lock:
            if self._woken or self._closed:
                return
            self._woken = True
            os.write(self._write_fd, b"\0")

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for fd in (self._read_fd, self._write_fd):
                try:
                    os.close(fd)
                except OSError:
                    pass


def make_pipe(name: str = "pipe") -> tuple[PipeEnd, PipeEnd]:
    """Create an OS pipe and return its (read end, write end)."""
    read_fd, write_fd = os.pipe()
    return PipeEnd(read_fd, f"{name}.r"), PipeEnd(write_fd, f"{name}.w")


def as_pipe_end(target: PipeEnd | PipeTarget, name: str) -> PipeEnd:
    """Wrap a descriptor or file object; PipeEnd instances pass through."""
    if isinstance(target, PipeEnd):
        return target
    return PipeEnd(target, name)
