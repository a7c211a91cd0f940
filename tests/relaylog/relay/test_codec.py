"""Tests for the frame codec."""

import io
import json

import pytest

from relaylog import (
    ArgumentRenderer,
    ChannelClosedError,
    ConvertedEvent,
    IncompleteFrameError,
    LogEvent,
    LogLevel,
    MalformedFrameError,
)
from relaylog.relay import FrameCodec, JSONMarshaller
from relaylog.relay.codec import event_from_record, read_until, record_from_event


class ChunkedStream:
    """Stream exposing only read(), returning at most one byte per call."""

    def __init__(self, data):
        self._data = io.BytesIO(data)

    def read(self, size=-1):
        return self._data.read(1)


@pytest.fixture
def codec():
    return FrameCodec()


@pytest.mark.unit
class TestJSONMarshaller:
    """Test JSONMarshaller."""

    def test_compact_ascii(self):
        """Test output is compact and escapes non-ASCII and newlines."""
        data = JSONMarshaller().marshal({"m": "é\nx", "n": 1})

        assert data == b'{"m":"\\u00e9\\nx","n":1}'
        assert b"\n" not in data

    def test_unmarshal(self):
        """Test bytes decode back to objects."""
        assert JSONMarshaller().unmarshal(b'{"a":[1,2]}') == {"a": [1, 2]}


@pytest.mark.unit
class TestReadUntil:
    """Test read_until() stream adaptation."""

    def test_readline_stream(self):
        """Test newline-delimited reads through readline()."""
        stream = io.BytesIO(b"one\ntwo\n")

        assert read_until(stream, b"\n") == b"one\n"
        assert read_until(stream, b"\n") == b"two\n"
        assert read_until(stream, b"\n") == b""

    def test_bytewise_fallback(self):
        """Test streams without readline are read byte by byte."""
        stream = ChunkedStream(b"a|b|")

        assert read_until(stream, b"|") == b"a|"
        assert read_until(stream, b"|") == b"b|"
        assert read_until(stream, b"|") == b""

    def test_partial_at_end(self):
        """Test a trailing partial frame is returned without delimiter."""
        assert read_until(ChunkedStream(b"abc"), b"\n") == b"abc"


@pytest.mark.unit
class TestEncode:
    """Test encoding events and payloads."""

    def test_encode_event(self, codec):
        """Test frames carry every wire field and end with the delimiter."""
        event = LogEvent(
            logger_name="child",
            correlation="c",
            message="hi",
            log_level=LogLevel.ERROR,
            args=("k", 1),
            timestamp=42,
        )

        frame = codec.encode(event)

        assert frame.endswith(b"\n")
        assert json.loads(frame[:-1]) == {
            "logger_name": "child",
            "correlation": "c",
            "message": "hi",
            "log_level": 4,
            "args": ["k", "1"],
            "timestamp": 42,
        }

    def test_message_with_newline_stays_one_frame(self, codec):
        """Test embedded newlines are escaped inside the payload."""
        frame = codec.encode(LogEvent(message="line one\nline two"))

        assert frame.count(b"\n") == 1
        assert codec.decode(io.BytesIO(frame)).message == "line one\nline two"

    def test_payload_containing_delimiter_rejected(self):
        """Test a marshaller emitting the delimiter is caught."""

        class RawMarshaller:
            def marshal(self, obj):
                return obj

            def unmarshal(self, data):
                return data

        codec = FrameCodec(RawMarshaller())

        with pytest.raises(MalformedFrameError):
            codec.encode_payload(b"a\nb")

    def test_multibyte_delimiter_rejected(self):
        """Test delimiters must be a single byte."""
        with pytest.raises(ValueError):
            FrameCodec(delimiter=b"\r\n")

    def test_record_from_event_renders_args(self):
        """Test raw events have their args rendered before framing."""
        record = record_from_event(LogEvent(args=(1, None, True)))

        assert record["args"] == ["1", "None", "true"]

    def test_encode_renders_bytes_and_non_ascii(self, codec):
        """Test bytes and non-ASCII text cross the wire as hex."""
        frame = codec.encode(LogEvent(args=("k", b"\x01\x02", "café")))

        assert json.loads(frame)["args"] == ["k", "0102", "636166c3a9"]
        assert codec.decode(io.BytesIO(frame)).args == ("k", "0102", "636166c3a9")

    def test_encode_uses_codec_renderer(self):
        """Test the codec's renderer controls the byte display."""
        codec = FrameCodec(renderer=ArgumentRenderer(lambda b: f"<{len(b)}>"))

        frame = codec.encode(LogEvent(args=(b"\x00\x01\x02",)))

        assert json.loads(frame)["args"] == ["<3>"]

    def test_converted_event_args_sent_verbatim(self, codec):
        """Test already rendered args are not rendered again."""
        converted = ConvertedEvent("n", "", "m", 2, ("café",), 1)

        frame = codec.encode(converted)

        assert json.loads(frame)["args"] == ["café"]


@pytest.mark.unit
class TestDecode:
    """Test decoding frames from streams."""

    def test_decode_sequence(self, codec):
        """Test consecutive frames decode in order."""
        first = codec.encode(LogEvent(message="first"))
        second = codec.encode(LogEvent(message="second"))
        stream = io.BytesIO(first + second)

        assert codec.decode(stream).message == "first"
        assert codec.decode(stream).message == "second"

    def test_empty_object_uses_defaults(self, codec):
        """Test '{}' decodes to an event with default fields."""
        event = codec.decode(io.BytesIO(b"{}\n"))

        assert event.logger_name == ""
        assert event.message == ""
        assert event.log_level is LogLevel.INFO
        assert event.args == ()
        assert event.timestamp == 0

    def test_partial_record(self, codec):
        """Test a record with only some fields decodes."""
        frame = b'{"logger_name":"logger","message":"message"}\n'

        event = codec.decode(io.BytesIO(frame))

        assert event.logger_name == "logger"
        assert event.message == "message"

    def test_bad_json(self, codec):
        """Test invalid JSON raises with the payload in the message."""
        with pytest.raises(MalformedFrameError) as exc_info:
            codec.decode(io.BytesIO(b"bad json\n"))

        assert "bad json" in str(exc_info.value)
        assert exc_info.value.raw == b"bad json"

    @pytest.mark.parametrize(
        "payload",
        [
            b"[1,2]",
            b'{"message":5}',
            b'{"args":"not a list"}',
            b'{"log_level":"INFO"}',
            b'{"log_level":true}',
            b'{"log_level":17}',
        ],
    )
    def test_wrong_types(self, codec, payload):
        """Test well-formed JSON with invalid fields is malformed."""
        with pytest.raises(MalformedFrameError):
            codec.decode(io.BytesIO(payload + b"\n"))

    def test_null_fields_take_defaults(self, codec):
        """Test explicit nulls are treated as missing."""
        event = codec.decode(io.BytesIO(b'{"message":null,"args":null}\n'))

        assert event.message == ""
        assert event.args == ()

    def test_closed_stream(self, codec):
        """Test an empty stream reports a closed channel."""
        with pytest.raises(ChannelClosedError):
            codec.decode(io.BytesIO(b""))

    def test_truncated_frame(self, codec):
        """Test a stream ending mid-frame reports the partial bytes."""
        with pytest.raises(IncompleteFrameError) as exc_info:
            codec.decode(io.BytesIO(b'{"message":"cut'))

        assert not isinstance(exc_info.value, ChannelClosedError)
        assert exc_info.value.partial == b'{"message":"cut'

    def test_decode_payload_opaque(self, codec):
        """Test control payloads are returned as unmarshalled values."""
        stream = io.BytesIO(codec.encode_payload({"log_levels": "*:DEBUG"}))

        assert codec.decode_payload(stream) == {"log_levels": "*:DEBUG"}

    def test_decode_payload_bad_json(self, codec):
        """Test invalid control payloads are malformed."""
        with pytest.raises(MalformedFrameError):
            codec.decode_payload(io.BytesIO(b"{\n"))


@pytest.mark.unit
class TestEventFromRecord:
    """Test event_from_record()."""

    def test_args_stringified(self):
        """Test non-string args in a record are stringified."""
        event = event_from_record({"args": [1, "a", None]})

        assert event.args == ("1", "a", "None")

    def test_non_object_rejected(self):
        """Test non-object records raise TypeError."""
        with pytest.raises(TypeError):
            event_from_record(["message"])
