"""
Pipe pair allocation for a parent/child relay.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .codec import FrameCodec
from .messenger import ChildMessenger, ParentMessenger

_log = logging.getLogger(__name__)


@dataclass
class RelayPipes:
    """
    The two OS pipes joining a parent and one child.

    Attributes:
        logs_r: Parent reads child log frames here
        logs_w: Child writes log frames here
        commands_r: Child reads control commands here
        commands_w: Parent writes control commands here
    """

    logs_r: int
    logs_w: int
    commands_r: int
    commands_w: int

    @classmethod
    def create(cls) -> RelayPipes:
        """Allocate both pipes."""
        logs_r, logs_w = os.pipe()
        try:
            commands_r, commands_w = os.pipe()
        except OSError:
            os.close(logs_r)
            os.close(logs_w)
            raise
        return cls(logs_r, logs_w, commands_r, commands_w)

    def child_fds(self) -> tuple[int, int]:
        """Descriptors to hand to the child: (commands_r, logs_w)."""
        return self.commands_r, self.logs_w

    def parent_messenger(self, codec: FrameCodec | None = None) -> ParentMessenger:
        return ParentMessenger(self.logs_r, self.commands_w, codec)

    def child_messenger(self, codec: FrameCodec | None = None) -> ChildMessenger:
        """Child messenger over the child-side descriptors (in-process use)."""
        return ChildMessenger(self.commands_r, self.logs_w, codec)

    def close_child_side(self) -> None:
        """
        Close the child's descriptors in the parent after spawning.

        Until this is done the parent never sees end of stream on the log
        pipe, because it still holds a write end itself.
        """
        for fd in self.child_fds():
            try:
                os.close(fd)
            except OSError as e:
                _log.debug("close failed", extra={"fd": fd, "error": str(e)})
