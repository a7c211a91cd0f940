"""Tests for DistributionEngine observer management and broadcast."""

import threading
from datetime import timedelta

import pytest

from relaylog import (
    ArgumentRenderer,
    ConvertedEvent,
    DistributionEngine,
    LogEvent,
    LogLevel,
    NilFormatterError,
    NilSinkError,
    NullFormatter,
    SinkNotFoundError,
)
from tests.helpers.stubs import (
    FailingFormatter,
    FailingSink,
    FormatterStub,
    OrderRecorder,
    WriterStub,
)


@pytest.mark.unit
class TestAddObserver:
    """Test add_observer() validation."""

    def test_nil_sink_raises(self, engine):
        """Test registering a None sink fails."""
        with pytest.raises(NilSinkError) as exc_info:
            engine.add_observer(None, FormatterStub())

        assert str(exc_info.value) == "nil sink"
        assert len(engine) == 0

    def test_nil_formatter_raises(self, engine):
        """Test registering a None formatter fails."""
        with pytest.raises(NilFormatterError) as exc_info:
            engine.add_observer(WriterStub(), None)

        assert str(exc_info.value) == "nil formatter"
        assert len(engine) == 0

    def test_absent_formatter_raises(self, engine):
        """Test a formatter reporting itself absent is rejected."""
        with pytest.raises(NilFormatterError):
            engine.add_observer(WriterStub(), NullFormatter())

    def test_nil_sink_checked_first(self, engine):
        """Test a None sink is reported even when the formatter is also None."""
        with pytest.raises(NilSinkError):
            engine.add_observer(None, None)

    def test_add_increments_count(self, engine):
        """Test successful registrations are counted."""
        engine.add_observer(WriterStub(), FormatterStub())
        engine.add_observer(WriterStub(), FormatterStub())

        assert len(engine) == 2

    def test_same_sink_registered_twice(self, engine):
        """Test one sink can be registered with two formatters."""
        sink = WriterStub()
        engine.add_observer(sink, FormatterStub(result=b"a"))
        engine.add_observer(sink, FormatterStub(result=b"b"))

        engine.output(LogEvent(message="x"))

        assert sink.writes == [b"a", b"b"]


@pytest.mark.unit
class TestOutput:
    """Test output() broadcast semantics."""

    def test_output_without_observers(self, engine):
        """Test output with no observers is a no-op."""
        engine.output(LogEvent(message="nobody listens"))

    def test_output_none_reaches_formatter_and_sink(self, engine):
        """Test an absent event still calls formatter and sink once each."""
        sink = WriterStub()
        formatter = FormatterStub()
        engine.add_observer(sink, formatter)

        engine.output(None)

        assert formatter.call_count == 1
        assert formatter.events == [None]
        assert sink.call_count == 1
        assert sink.writes == [b""]

    def test_formatter_output_written_to_sink(self, engine):
        """Test the formatter's buffer is what the sink receives."""
        sink = WriterStub()
        engine.add_observer(sink, FormatterStub(result=b"formatted\n"))

        engine.output(LogEvent(message="hello"))

        assert sink.writes == [b"formatted\n"]

    def test_observers_called_in_registration_order(self, engine):
        """Test each pair formats then writes, pairs in registration order."""
        recorder = OrderRecorder()
        for name in ("first", "second", "third"):
            engine.add_observer(*recorder.pair(name))

        engine.output(LogEvent(message="ordered"))

        assert recorder.calls == [
            ("format", "first"),
            ("write", "first"),
            ("format", "second"),
            ("write", "second"),
            ("format", "third"),
            ("write", "third"),
        ]

    def test_formatter_receives_converted_event(self, engine):
        """Test formatters see rendered args and an integer level."""
        formatter = FormatterStub()
        engine.add_observer(WriterStub(), formatter)

        engine.output(
            LogEvent(
                logger_name="main",
                correlation="c-1",
                message="m",
                log_level=LogLevel.WARNING,
                args=("data", b"\x01\xff", "ok", True, "took", timedelta(seconds=2)),
                timestamp=123,
            )
        )

        converted = formatter.events[0]
        assert converted.logger_name == "main"
        assert converted.correlation == "c-1"
        assert converted.log_level == 3
        assert converted.args == ("data", "01ff", "ok", "true", "took", "2s")
        assert converted.timestamp == 123

    def test_sink_failure_does_not_stop_broadcast(self, engine, capture_relaylog):
        """Test a failing sink is reported and later pairs still run."""
        after = WriterStub()
        engine.add_observer(FailingSink(), FormatterStub(result=b"x"))
        engine.add_observer(after, FormatterStub(result=b"y"))

        engine.output(LogEvent(message="survives"))

        assert after.writes == [b"y"]
        assert any(r.getMessage() == "log output failed" for r in capture_relaylog)

    def test_formatter_failure_skips_its_sink_only(self, engine):
        """Test a failing formatter does not reach the caller."""
        skipped = WriterStub()
        reached = WriterStub()
        engine.add_observer(skipped, FailingFormatter())
        engine.add_observer(reached, FormatterStub(result=b"ok"))

        engine.output(LogEvent(message="m"))

        assert skipped.writes == []
        assert reached.writes == [b"ok"]

    def test_custom_renderer(self):
        """Test the engine renders bytes with the configured display."""
        engine = DistributionEngine(ArgumentRenderer(lambda b: b.decode("latin-1")))
        formatter = FormatterStub()
        engine.add_observer(WriterStub(), formatter)

        engine.output(LogEvent(args=(b"abc",)))

        assert formatter.events[0].args == ("abc",)

    def test_concurrent_output(self, engine):
        """Test 1000 concurrent outputs each reach the sink exactly once."""
        sink = WriterStub()
        formatter = FormatterStub(result=b"line")
        engine.add_observer(sink, formatter)
        start = threading.Barrier(10)

        def worker() -> None:
            start.wait()
            for i in range(100):
                engine.output(LogEvent(message=f"msg {i}"))

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert formatter.call_count == 1000
        assert sink.call_count == 1000


@pytest.mark.unit
class TestRemoveObserver:
    """Test remove_observer() and clear_observers()."""

    def _register(self, engine, count):
        sinks = [WriterStub() for _ in range(count)]
        formatters = [FormatterStub() for _ in range(count)]
        for sink, formatter in zip(sinks, formatters):
            engine.add_observer(sink, formatter)
        return sinks, formatters

    def test_remove_none_raises(self, engine):
        """Test removing None fails."""
        with pytest.raises(SinkNotFoundError) as exc_info:
            engine.remove_observer(None)

        assert str(exc_info.value) == "sink not found"

    def test_remove_unknown_raises(self, engine):
        """Test removing an unregistered sink fails and keeps the list intact."""
        self._register(engine, 3)

        with pytest.raises(SinkNotFoundError):
            engine.remove_observer(WriterStub())

        assert len(engine) == 3

    @pytest.mark.parametrize("index", [0, 1, 2], ids=["first", "middle", "last"])
    def test_remove_keeps_remaining_order(self, engine, index):
        """Test removal keeps the remaining pairs aligned and in order."""
        sinks, formatters = self._register(engine, 3)

        engine.remove_observer(sinks[index])

        remaining_sinks, remaining_formatters = engine.observers()
        expected = [i for i in range(3) if i != index]
        assert remaining_sinks == [sinks[i] for i in expected]
        assert remaining_formatters == [formatters[i] for i in expected]

    def test_remove_matches_identity(self, engine):
        """Test removal uses identity even when sinks compare equal."""

        class EqualSink(WriterStub):
            def __eq__(self, other):
                return isinstance(other, EqualSink)

            __hash__ = object.__hash__

        registered = EqualSink()
        engine.add_observer(registered, FormatterStub())

        with pytest.raises(SinkNotFoundError):
            engine.remove_observer(EqualSink())

        engine.remove_observer(registered)
        assert len(engine) == 0

    def test_remove_first_of_duplicates(self, engine):
        """Test only the first pair for a repeated sink is removed."""
        sink = WriterStub()
        first = FormatterStub()
        second = FormatterStub()
        engine.add_observer(sink, first)
        engine.add_observer(sink, second)

        engine.remove_observer(sink)

        assert engine.observers() == ([sink], [second])

    def test_removed_sink_no_longer_written(self, engine):
        """Test removed pairs stop receiving events."""
        sinks, _ = self._register(engine, 2)

        engine.remove_observer(sinks[0])
        engine.output(LogEvent(message="after removal"))

        assert sinks[0].call_count == 0
        assert sinks[1].call_count == 1

    def test_clear_observers(self, engine):
        """Test clear removes every pair and allows re-registration."""
        self._register(engine, 3)

        engine.clear_observers()

        assert len(engine) == 0
        assert engine.observers() == ([], [])
        engine.add_observer(WriterStub(), FormatterStub())
        assert len(engine) == 1

    def test_remove_twice_raises(self, engine):
        """Test an already removed sink is no longer found."""
        sinks, _ = self._register(engine, 2)
        engine.remove_observer(sinks[0])

        with pytest.raises(SinkNotFoundError):
            engine.remove_observer(sinks[0])

        assert engine.observers()[0] == [sinks[1]]

    def test_output_after_clear_invokes_nothing(self, engine):
        """Test a cleared engine calls no formatter or sink."""
        sinks, formatters = self._register(engine, 3)
        engine.clear_observers()

        engine.output(LogEvent(message="into the void"))

        assert all(s.call_count == 0 for s in sinks)
        assert all(f.call_count == 0 for f in formatters)

    def test_observers_returns_snapshot(self, engine):
        """Test the returned lists are copies."""
        self._register(engine, 1)

        sinks, formatters = engine.observers()
        sinks.clear()
        formatters.clear()

        assert len(engine) == 1


@pytest.mark.unit
class TestConvert:
    """Test convert()."""

    def test_convert_none(self, engine):
        """Test converting an absent event yields None."""
        assert engine.convert(None) is None

    def test_convert_preserves_fields(self, engine, sample_event):
        """Test converted events keep identity fields and render args."""
        converted = engine.convert(sample_event)

        assert converted.logger_name == sample_event.logger_name
        assert converted.correlation == sample_event.correlation
        assert converted.message == sample_event.message
        assert converted.log_level == int(LogLevel.DEBUG)
        assert converted.timestamp == sample_event.timestamp
        assert converted.args == ("bitmap", "1f", "round", "12", "final", "true")

    def test_convert_passes_converted_event_through(self, engine):
        """Test an already converted event is not rendered again."""
        converted = ConvertedEvent("child", "", "m", 2, ("café", "0102"), 5)

        assert engine.convert(converted) is converted

    def test_output_converted_event(self, engine):
        """Test converted events reach formatters unchanged."""
        formatter = FormatterStub()
        engine.add_observer(WriterStub(), formatter)
        converted = ConvertedEvent("child", "", "m", 2, ("café",), 5)

        engine.output(converted)

        assert formatter.events == [converted]
