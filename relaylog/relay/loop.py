"""
Child-side relay loop.

RelayLoop is the lifecycle state machine a child process runs to ship its
log lines to the parent and receive control commands from it:

    IDLE --start_loop()--> RUNNING --stop_loop()--> STOPPED

While running, the loop is registered with the child's DistributionEngine as
a (sink, formatter) pair, so every event the child logs is framed and written
to the log pipe synchronously on the emitting thread. A daemon thread reads
control frames from the command pipe and hands each payload to a handler.

A broken, closed or missing parent never makes the child fail: outbound
writes that fail are dropped and counted, and the reader thread exits
quietly when the command pipe cannot be read.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..constants import LogConstants
from ..exceptions import (
    ChannelError,
    IncompleteFrameError,
    InvalidLoopStateError,
    MalformedFrameError,
    SinkNotFoundError,
)
from ..formatters import Formatter, FrameFormatter
from .messenger import ChildMessenger
from .pipe import PipeTarget, Waker

if TYPE_CHECKING:
    from ..engine import DistributionEngine
    from ..registry import LoggerRegistry

_log = logging.getLogger(__name__)

CommandHandler = Callable[[Any], Any]


class LoopState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class _RelaySink:
    """Engine-facing sink that drops frames the parent cannot receive."""

    def __init__(self, messenger: ChildMessenger) -> None:
        self._messenger = messenger
        self._dropped = 0
        self._lock = threading.Lock()

    @property
    def dropped(self) -> int:
        return self._dropped

    def write(self, data: bytes) -> int:
        try:
            return self._messenger.write(data)
        except ChannelError as e:
            with self._lock:
                self._dropped += 1
                first = self._dropped == 1
            if first:
                _log.debug(
                    "relay send failed, dropping frames", extra={"error": str(e)}
                )
            return 0


class RelayLoop:
    """
    Lifecycle of the child side of a relay.

    Example:
        >>> messenger = ChildMessenger(command_fd, log_fd)
        >>> loop = RelayLoop(messenger, engine, on_command=registry.apply_command)
        >>> loop.start_loop()
        >>> ...  # everything logged through engine now reaches the parent
        >>> loop.stop_loop()

    Thread Safety:
        start_loop() and stop_loop() may be called from any thread.
        stop_loop() may also be called from inside the command handler.
    """

    def __init__(
        self,
        messenger: ChildMessenger,
        engine: DistributionEngine,
        on_command: CommandHandler | None = None,
        formatter: Formatter | None = None,
    ) -> None:
        """
        Initialize an idle loop.

        Args:
            messenger: Child-side messenger owning both pipe ends
            engine: Engine whose events are relayed to the parent
            on_command: Called with each control payload (on the reader thread)
            formatter: Formatter producing frames (default: FrameFormatter
                       over the messenger's codec)
        """
        self._messenger = messenger
        self._engine = engine
        self._on_command = on_command
        self._formatter = formatter or FrameFormatter(messenger.codec)
        self._sink = _RelaySink(messenger)
        self._state = LoopState.IDLE
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._waker: Waker | None = None

    @property
    def messenger(self) -> ChildMessenger:
        return self._messenger

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is LoopState.RUNNING

    @property
    def is_alive(self) -> bool:
        """Whether the command reader thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def dropped(self) -> int:
        """Number of log frames that could not be written to the parent."""
        return self._sink.dropped

    def start_loop(self) -> None:
        """
        Start relaying: register the outbound sink and launch the reader thread.

        Raises:
            InvalidLoopStateError: If the loop is running or stopped
        """
        with self._lock:
            if self._state is not LoopState.IDLE:
                raise InvalidLoopStateError("start_loop", self._state)

            waker = Waker()
            try:
                self._engine.add_observer(self._sink, self._formatter)
            except Exception:
                waker.close()
                raise

            self._waker = waker
            self._thread = threading.Thread(
                target=self._read_commands, name="relaylog-commands", daemon=True
            )
            self._state = LoopState.RUNNING
            self._thread.start()

    def stop_loop(self, timeout: float = LogConstants.DEFAULT_STOP_TIMEOUT) -> None:
        """
        Stop relaying. A no-op unless the loop is running.

        Deregisters the outbound sink, wakes the reader thread and waits up to
        ``timeout`` seconds for it to exit.
        """
        with self._lock:
            if self._state is not LoopState.RUNNING:
                _log.debug(
                    "relay loop not running", extra={"state": self._state.value}
                )
                return
            self._state = LoopState.STOPPED
            thread, waker = self._thread, self._waker

        try:
            self._engine.remove_observer(self._sink)
        except SinkNotFoundError:
            pass  # observers were cleared by wiring code

        self._stop_event.set()
        assert waker is not None and thread is not None
        waker.wake()

        if thread is threading.current_thread():
            return
        thread.join(timeout)
        if thread.is_alive():
            _log.warning("relay reader did not stop", extra={"timeout": timeout})

    def _read_commands(self) -> None:
        """Reader thread: dispatch control payloads until stopped or closed."""
        assert self._waker is not None
        source = self._messenger.command_source
        wake_fd = self._waker.fileno()

        try:
            while not self._stop_event.is_set():
                try:
                    if not source.wait_readable(wake_fd):
                        break
                    payload = self._messenger.read_command(wake_fd)
                except MalformedFrameError as e:
                    _log.warning("malformed control frame", extra={"exception": e})
                    continue
                except (IncompleteFrameError, ChannelError) as e:
                    _log.debug("control channel closed", extra={"reason": str(e)})
                    break

                if self._stop_event.is_set():
                    break
                self._dispatch(payload)
        finally:
            self._waker.close()

    def _dispatch(self, payload: Any) -> None:
        if self._on_command is None:
            _log.debug("control command ignored, no handler")
            return
        try:
            self._on_command(payload)
        except Exception as e:
            _log.warning("control command handler failed", extra={"exception": e})

    def __enter__(self) -> RelayLoop:
        self.start_loop()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop_loop()


def attach_child(
    registry: LoggerRegistry,
    command_source: PipeTarget,
    log_sink: PipeTarget,
) -> RelayLoop:
    """
    Relay a child process's logging to its parent.

    Builds the child messenger over the inherited pipe ends, wires control
    commands to ``registry.apply_command`` and starts the loop.

    Returns:
        The running RelayLoop
    """
    messenger = ChildMessenger(command_source, log_sink)
    loop = RelayLoop(messenger, registry.engine, on_command=registry.apply_command)
    loop.start_loop()
    return loop
