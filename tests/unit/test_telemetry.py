"""
Unit tests for structured logging with session correlation.
"""

import io
import json
import logging
import sys

import pytest

from telemetry.service import (
    JSONFormatter,
    configure_logging,
    reset_session_fingerprint,
    session_fingerprint_var,
    set_session_fingerprint,
)


def make_record(message="hello", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="session.handler",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
        func="begin",
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(make_record()))

        assert entry["message"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "session.handler"
        assert entry["function"] == "begin"
        assert entry["line"] == 10
        assert "timestamp" in entry
        assert "session" not in entry

    def test_extra_data_is_merged(self):
        record = make_record(extra_data={"store": "cache", "operation": "load"})

        entry = json.loads(JSONFormatter().format(record))

        assert entry["store"] == "cache"
        assert entry["operation"] == "load"

    def test_session_fingerprint_is_included(self):
        token = set_session_fingerprint("abcdefgh...")
        try:
            entry = json.loads(JSONFormatter().format(make_record()))
        finally:
            reset_session_fingerprint(token)

        assert entry["session"] == "abcdefgh..."
        assert session_fingerprint_var.get() == ""

    def test_exception_is_formatted(self):
        try:
            raise ValueError("bad record")
        except ValueError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad record" in entry["exception"]


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_emits_json_to_stream(self):
        stream = io.StringIO()

        logger = configure_logging("debug", stream=stream)
        logger.debug("sweep", extra={"extra_data": {"removed": 3}})

        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert lines[0]["message"] == "Logging configured"
        assert lines[0]["log_level"] == "DEBUG"
        assert lines[1]["removed"] == 3
        assert logging.getLogger().level == logging.DEBUG

    def test_replaces_existing_handlers(self):
        configure_logging("INFO", stream=io.StringIO())
        configure_logging("INFO", stream=io.StringIO())

        assert len(logging.getLogger().handlers) == 1
