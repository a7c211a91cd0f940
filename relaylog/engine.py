"""
Distribution engine.

DistributionEngine follows the observer pattern: it holds an ordered list of
(sink, formatter) pairs and, on every output call, renders the event once and
hands it to each formatter/sink pair in registration order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .event import ConvertedEvent, LogEvent
from .exceptions import NilFormatterError, NilSinkError, SinkNotFoundError
from .render import ArgumentRenderer
from .sync import ReadWriteLock

if TYPE_CHECKING:
    from .formatters import Formatter
    from .sinks import ByteSink

_log = logging.getLogger(__name__)


class DistributionEngine:
    """
    Thread-safe fan-out of log events to (sink, formatter) pairs.

    Output calls share a read lock and never block each other; observer
    changes take the write lock. Failures inside a formatter or sink are
    reported on this module's logger and never reach the caller of output().

    Example:
        >>> import io
        >>> from relaylog.formatters import PlainFormatter
        >>> from relaylog.sinks import StreamSink
        >>>
        >>> engine = DistributionEngine()
        >>> sink = StreamSink(io.BytesIO())
        >>> engine.add_observer(sink, PlainFormatter())
        >>> engine.output(LogEvent(logger_name="main", message="hello"))
    """

    def __init__(self, renderer: ArgumentRenderer | None = None) -> None:
        """
        Initialize an engine with no observers.

        Args:
            renderer: Argument renderer (default: hex byte display)
        """
        self._renderer = renderer or ArgumentRenderer()
        self._lock = ReadWriteLock()
        self._sinks: list[ByteSink] = []
        self._formatters: list[Formatter] = []

    def output(self, event: LogEvent | ConvertedEvent | None) -> None:
        """
        Broadcast an event to every registered pair.

        Args:
            event: Event to broadcast; None and already converted events (such
                as those relayed from a child) are forwarded to formatters as-is
        """
        with self._lock.read_locked():
            converted = self.convert(event)
            for sink, formatter in zip(self._sinks, self._formatters):
                self._emit(sink, formatter, converted)

    def _emit(
        self, sink: ByteSink, formatter: Formatter, converted: ConvertedEvent | None
    ) -> None:
        try:
            buffer = formatter.format(converted)
            sink.write(buffer if buffer is not None else b"")
        except Exception as e:
            _log.warning(
                "log output failed",
                extra={"sink": type(sink).__name__, "exception": e},
            )

    def convert(
        self, event: LogEvent | ConvertedEvent | None
    ) -> ConvertedEvent | None:
        """Build the display-ready view of an event."""
        if event is None or isinstance(event, ConvertedEvent):
            return event

        return ConvertedEvent(
            logger_name=event.logger_name,
            correlation=event.correlation,
            message=event.message,
            log_level=int(event.log_level),
            args=tuple(self._renderer.render(event.args)),
            timestamp=int(event.timestamp),
        )

    def add_observer(self, sink: ByteSink | None, formatter: Formatter | None) -> None:
        """
        Register a sink together with the formatter that feeds it.

        Raises:
            NilSinkError: If sink is None
            NilFormatterError: If formatter is None or reports itself absent
        """
        if sink is None:
            raise NilSinkError()
        if formatter is None or formatter.is_absent():
            raise NilFormatterError()

        with self._lock.write_locked():
            self._sinks.append(sink)
            self._formatters.append(formatter)

    def remove_observer(self, sink: ByteSink | None) -> None:
        """
        Remove the first pair whose sink is the given object.

        Comparison is by identity, not equality. The remaining pairs keep
        their relative order.

        Raises:
            SinkNotFoundError: If sink is None or not registered
        """
        if sink is None:
            raise SinkNotFoundError()

        with self._lock.write_locked():
            for i, registered in enumerate(self._sinks):
                if registered is sink:
                    del self._sinks[i]
                    del self._formatters[i]
                    return

        raise SinkNotFoundError()

    def clear_observers(self) -> None:
        """Remove every registered pair."""
        with self._lock.write_locked():
            self._sinks = []
            self._formatters = []

    def observers(self) -> tuple[list[ByteSink], list[Formatter]]:
        """Return a snapshot of the registered sinks and formatters."""
        with self._lock.read_locked():
            return list(self._sinks), list(self._formatters)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._sinks)
