"""
Channel messengers for the parent/child relay.

The relay uses two independent pipes: log frames flow child -> parent, control
commands flow parent -> child. Each side owns one end of each pipe through a
messenger:

    child                                  parent
    ChildMessenger.send_log_line  ---->    ParentMessenger.read_log_line
    ChildMessenger.read_command   <----    ParentMessenger.send_command
"""

from __future__ import annotations

from typing import Any

from ..event import LogEvent
from .codec import FrameCodec
from .pipe import PipeEnd, PipeTarget, as_pipe_end


class ChildMessenger:
    """
    Child-side messenger: writes log frames, reads control commands.

    The messenger is also a byte sink, so it can be registered with a
    DistributionEngine behind a FrameFormatter.
    """

    def __init__(
        self,
        command_source: PipeEnd | PipeTarget,
        log_sink: PipeEnd | PipeTarget,
        codec: FrameCodec | None = None,
    ) -> None:
        """
        Initialize the messenger.

        Args:
            command_source: Read end of the parent -> child command pipe
            log_sink: Write end of the child -> parent log pipe
            codec: Frame codec (default: JSON)
        """
        self.command_source = as_pipe_end(command_source, "commands.r")
        self.log_sink = as_pipe_end(log_sink, "logs.w")
        self.codec = codec or FrameCodec()

    def send_log_line(self, frame: bytes) -> int:
        """
        Write a pre-encoded frame to the log pipe.

        Returns:
            Number of bytes written

        Raises:
            ChannelWriteError: If the pipe is unconnected, closed or broken
        """
        return self.log_sink.write(frame)

    def write(self, data: bytes) -> int:
        """Byte sink interface; empty buffers are dropped."""
        if not data:
            return 0
        return self.send_log_line(data)

    def read_command(self, wake_fd: int | None = None) -> Any:
        """
        Block until one control payload arrives and return it unmarshalled.

        Args:
            wake_fd: Descriptor that interrupts the read when it becomes readable

        Raises:
            IncompleteFrameError: If the command pipe closed or the read was woken
            MalformedFrameError: If the payload cannot be unmarshalled
            ChannelReadError: If the pipe cannot be read
        """
        return self.codec.decode_payload(self.command_source, wake_fd)

    def close(self) -> None:
        self.command_source.close()
        self.log_sink.close()


class ParentMessenger:
    """Parent-side messenger: reads log frames, writes control commands."""

    def __init__(
        self,
        log_source: PipeEnd | PipeTarget,
        command_sink: PipeEnd | PipeTarget,
        codec: FrameCodec | None = None,
    ) -> None:
        """
        Initialize the messenger.

        Args:
            log_source: Read end of the child -> parent log pipe
            command_sink: Write end of the parent -> child command pipe
            codec: Frame codec (default: JSON)
        """
        self.log_source = as_pipe_end(log_source, "logs.r")
        self.command_sink = as_pipe_end(command_sink, "commands.w")
        self.codec = codec or FrameCodec()

    def read_log_line(self, wake_fd: int | None = None) -> LogEvent:
        """
        Block until a full frame arrives and decode it.

        Args:
            wake_fd: Descriptor that interrupts the read when it becomes readable

        Raises:
            ChannelClosedError: If the child closed the log pipe or the read was woken
            IncompleteFrameError: If the pipe closed inside a frame
            MalformedFrameError: If the frame is not a valid event
            ChannelReadError: If the pipe cannot be read
        """
        return self.codec.decode(self.log_source, wake_fd)

    def send_command(self, payload: Any) -> int:
        """
        Frame a control payload and write it to the command pipe.

        Raises:
            ChannelWriteError: If the pipe is unconnected, closed or broken
        """
        return self.command_sink.write(self.codec.encode_payload(payload))

    def close(self) -> None:
        self.log_source.close()
        self.command_sink.close()
