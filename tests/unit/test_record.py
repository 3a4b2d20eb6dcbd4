"""
Unit tests for the Record model and the exception taxonomy.
"""

import json

import pytest

from elb_log_parser.dialects import ClassicRecord
from elb_log_parser.exceptions import (
    ConfigurationError,
    ElbLogParserError,
    EncodingError,
    GrammarMismatch,
    ParseError,
    SourceReadError,
    ThreadFault,
)
from samples import CLASSIC_HTTP_LINE


class TestRecord:
    """Tests for field access on parsed records."""

    def test_fields_are_exact_substrings(self, classic_parser):
        record = classic_parser.parse(CLASSIC_HTTP_LINE)
        for name, value in record.items():
            start, end = record.span(name)
            assert CLASSIC_HTTP_LINE[start:end] == value

    def test_view_is_zero_copy(self, classic_parser):
        record = classic_parser.parse(CLASSIC_HTTP_LINE)
        view = record.view("client_ip")
        assert isinstance(view, memoryview)
        assert view.obj is record.line
        assert bytes(view) == b"192.168.131.39"

    def test_record_shares_line(self, classic_parser):
        record = classic_parser.parse(CLASSIC_HTTP_LINE)
        assert record.line is CLASSIC_HTTP_LINE

    def test_mapping_protocol(self, classic_parser):
        record = classic_parser.parse(CLASSIC_HTTP_LINE)
        assert "elb" in record
        assert "target_group_arn" not in record
        assert record.keys() == ClassicRecord.FIELDS
        assert [name for name, _ in record.items()] == list(ClassicRecord.FIELDS)

    def test_unknown_field(self, classic_parser):
        record = classic_parser.parse(CLASSIC_HTTP_LINE)
        with pytest.raises(KeyError):
            record["target_group_arn"]

    def test_record_is_immutable(self, classic_parser):
        record = classic_parser.parse(CLASSIC_HTTP_LINE)
        with pytest.raises(AttributeError):
            record.line = b""

    def test_to_json_is_compact_and_ordered(self, classic_parser):
        text = classic_parser.parse(CLASSIC_HTTP_LINE).to_json()
        assert text.startswith('{"time":"2015-05-13T23:39:43.945958Z","elb":')
        assert ", " not in text.split('"url"')[0]
        assert not text.endswith("\n")

    def test_non_ascii_is_kept_verbatim(self, classic_parser):
        line = CLASSIC_HTTP_LINE.replace(b"curl/7.38.0", "curl/é✓".encode("utf-8"))
        text = classic_parser.parse(line).to_json()
        assert '"user_agent":"curl/é✓"' in text
        assert json.loads(text)["user_agent"] == "curl/é✓"

    def test_invalid_utf8_is_an_encoding_error(self, classic_parser):
        line = CLASSIC_HTTP_LINE.replace(b"curl/7.38.0", b"curl/\xff\xfe")
        record = classic_parser.parse(line)

        with pytest.raises(EncodingError) as exc_info:
            record.to_json()

        assert exc_info.value.field == "user_agent"
        assert exc_info.value.line == line
        assert "invalid UTF-8" in str(exc_info.value)

    def test_encoding_error_only_on_serialization(self, classic_parser):
        line = CLASSIC_HTTP_LINE.replace(b"curl/7.38.0", b"curl/\xff")
        record = classic_parser.parse(line)
        assert record["user_agent"] == b"curl/\xff"


class TestExceptions:
    """Tests for the exception hierarchy and messages."""

    def test_hierarchy(self):
        assert issubclass(GrammarMismatch, ParseError)
        assert issubclass(EncodingError, ParseError)
        assert issubclass(ParseError, ElbLogParserError)
        assert issubclass(SourceReadError, ElbLogParserError)
        assert issubclass(ThreadFault, ElbLogParserError)
        assert issubclass(ConfigurationError, ElbLogParserError)

    def test_grammar_mismatch_message(self):
        error = GrammarMismatch(b"bad line\n")
        assert str(error) == "Invalid log line: bad line"
        assert error.line == b"bad line\n"

    def test_grammar_mismatch_lossy_text(self):
        error = GrammarMismatch(b"bad \xff line\r\n")
        assert error.text == "bad � line"

    def test_grammar_mismatch_copies_buffer(self):
        buffer = bytearray(b"reused buffer")
        error = GrammarMismatch(buffer)
        buffer[:] = b"overwritten"
        assert error.line == b"reused buffer"

    def test_source_read_error_message(self):
        error = SourceReadError("Failed to open log file", "/logs/a.log", "Permission denied")
        assert str(error) == (
            "Failed to open log file - path='/logs/a.log' - reason: Permission denied"
        )
        assert error.path == "/logs/a.log"

    def test_source_read_error_without_path(self):
        assert str(SourceReadError("Failed to read log data")) == "Failed to read log data"

    def test_thread_fault_keeps_original(self):
        original = RuntimeError("boom")
        fault = ThreadFault("worker-3", original)
        assert fault.original is original
        assert "worker-3" in str(fault)
        assert "RuntimeError: boom" in str(fault)

    def test_configuration_error_lists_problems(self):
        error = ConfigurationError(["workers must be >= 1, got 0", "bad color"])
        assert error.errors == ["workers must be >= 1, got 0", "bad color"]
        assert str(error) == (
            "Invalid configuration: workers must be >= 1, got 0; bad color"
        )
