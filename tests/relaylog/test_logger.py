"""Tests for the Logger facade."""

import pytest

from relaylog import InvalidLogLevelError, Logger, LogLevel
from tests.helpers.stubs import FormatterStub, WriterStub


@pytest.fixture
def formatter(engine):
    """Formatter stub registered with the engine fixture."""
    stub = FormatterStub(result=b"x")
    engine.add_observer(WriterStub(), stub)
    return stub


@pytest.mark.unit
class TestLogger:
    """Test level checks and event construction."""

    def test_defaults(self, engine):
        """Test a new logger starts at INFO."""
        lg = Logger("main", engine)

        assert lg.name == "main"
        assert lg.level is LogLevel.INFO
        assert repr(lg) == "Logger(name='main', level=INFO)"

    def test_below_level_suppressed(self, engine, formatter):
        """Test calls below the logger level never reach the engine."""
        lg = Logger("main", engine, level=LogLevel.WARNING)

        lg.info("dropped")
        lg.debug("dropped")

        assert formatter.call_count == 0

    def test_at_and_above_level_emitted(self, engine, formatter):
        """Test calls at or above the level are broadcast."""
        lg = Logger("main", engine, level=LogLevel.WARNING)

        lg.warning("kept")
        lg.error("kept")

        assert [e.log_level for e in formatter.events] == [3, 4]

    def test_event_fields(self, engine, formatter):
        """Test the broadcast event carries name, correlation and args."""
        lg = Logger("worker", engine, level=LogLevel.TRACE, correlation="job-9")

        lg.trace("step", "n", 3, "raw", b"\x0a")

        event = formatter.events[0]
        assert event.logger_name == "worker"
        assert event.correlation == "job-9"
        assert event.message == "step"
        assert event.log_level == int(LogLevel.TRACE)
        assert event.args == ("n", "3", "raw", "0a")
        assert event.timestamp > 0

    def test_level_none_disables_everything(self, engine, formatter):
        """Test a logger at NONE emits nothing, even errors."""
        lg = Logger("quiet", engine, level=LogLevel.NONE)

        lg.error("never")

        assert formatter.call_count == 0
        assert not lg.is_enabled(LogLevel.ERROR)

    def test_none_level_message_never_enabled(self, engine):
        """Test NONE is never an emit level."""
        lg = Logger("main", engine, level=LogLevel.TRACE)

        assert not lg.is_enabled(LogLevel.NONE)

    def test_level_setter_accepts_names(self, engine):
        """Test the level can be set from a name."""
        lg = Logger("main", engine)

        lg.level = "debug"

        assert lg.level is LogLevel.DEBUG

    def test_level_setter_rejects_unknown(self, engine):
        """Test unknown level names raise."""
        lg = Logger("main", engine)

        with pytest.raises(InvalidLogLevelError):
            lg.level = "chatty"
