"""
Parent-side relay listener.

ParentRelay runs in the parent process, reading log frames a child wrote to
its log pipe and re-emitting them through the parent's own
DistributionEngine, so child output lands in the parent's sinks.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from ..constants import LogConstants
from ..event import ConvertedEvent, LogEvent
from ..exceptions import (
    ChannelClosedError,
    ChannelError,
    IncompleteFrameError,
    MalformedFrameError,
)
from .pipe import Waker

if TYPE_CHECKING:
    from ..engine import DistributionEngine
    from .messenger import ParentMessenger

_log = logging.getLogger(__name__)


def relayed_event(event: LogEvent) -> ConvertedEvent:
    """
    View a decoded child event as already converted.

    The child rendered the args before framing them, so they are forwarded
    verbatim instead of being rendered a second time by the parent engine.
    """
    return ConvertedEvent(
        logger_name=event.logger_name,
        correlation=event.correlation,
        message=event.message,
        log_level=int(event.log_level),
        args=tuple(str(arg) for arg in event.args),
        timestamp=int(event.timestamp),
    )


class ParentRelay:
    """
    Receives log events from a child and dispatches them to an engine.

    Usage:
        pipes = RelayPipes.create()
        child = subprocess.Popen(cmd, pass_fds=pipes.child_fds())
        pipes.close_child_side()

        relay = ParentRelay(pipes.parent_messenger(), engine)
        relay.start()
        ...
        child.wait()
        relay.stop()

    Thread Safety:
        The relay reads on its own daemon thread. It's safe to call
        start() and stop() from any thread.
    """

    def __init__(self, messenger: ParentMessenger, engine: DistributionEngine) -> None:
        """
        Initialize the relay.

        Args:
            messenger: Parent-side messenger owning the log and command pipes
            engine: Engine receiving the child's events
        """
        self._messenger = messenger
        self._engine = engine
        self._thread: threading.Thread | None = None
        self._waker: Waker | None = None
        self._stop_event = threading.Event()
        self._received = 0
        self._malformed = 0

    @property
    def messenger(self) -> ParentMessenger:
        return self._messenger

    @property
    def received(self) -> int:
        """Number of events dispatched to the engine."""
        return self._received

    @property
    def malformed(self) -> int:
        """Number of frames skipped because they could not be decoded."""
        return self._malformed

    def start(self) -> None:
        """
        Start the reader thread.

        The thread runs as a daemon, so it won't prevent process exit.
        """
        if self._thread is not None and self._thread.is_alive():
            return  # Already running

        self._stop_event.clear()
        self._waker = Waker()
        self._thread = threading.Thread(
            target=self._listen,
            args=(self._waker,),
            name="relaylog-parent",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = LogConstants.DEFAULT_STOP_TIMEOUT) -> None:
        """
        Stop the reader thread.

        Frames already buffered are not drained; call stop() after the child
        has exited (the thread then finishes on end of stream by itself).

        Args:
            timeout: Maximum seconds to wait for the thread to finish
        """
        self._stop_event.set()
        if self._waker is not None:
            self._waker.wake()

        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                _log.warning("parent relay did not stop", extra={"timeout": timeout})
                return
            self._thread = None

    def join(self, timeout: float | None = None) -> None:
        """Wait for the reader to finish on its own (child closed its log pipe)."""
        if self._thread is not None:
            self._thread.join(timeout)

    def send_command(self, payload: Any) -> int:
        """Send a control payload to the child."""
        return self._messenger.send_command(payload)

    def _listen(self, waker: Waker) -> None:
        """Main reader loop - runs in background thread."""
        source = self._messenger.log_source
        try:
            while not self._stop_event.is_set():
                try:
                    if not source.wait_readable(waker.fileno()):
                        break
                    event = self._messenger.read_log_line(waker.fileno())
                except MalformedFrameError as e:
                    self._malformed += 1
                    _log.warning(
                        "malformed log frame from child", extra={"exception": e}
                    )
                    continue
                except ChannelClosedError:
                    if not self._stop_event.is_set():
                        _log.debug("child closed log channel")
                    break
                except (IncompleteFrameError, ChannelError) as e:
                    _log.warning("log channel failed", extra={"exception": e})
                    break

                self._engine.output(relayed_event(event))
                self._received += 1
        finally:
            waker.close()

    @property
    def is_alive(self) -> bool:
        """Check if the reader thread is running."""
        return self._thread is not None and self._thread.is_alive()
