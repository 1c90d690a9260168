"""
Tests for logging configuration.
"""
import json
import logging
import sys
from unittest.mock import patch

from practice_app.core.logging_config import (
    ContextFilter,
    JSONFormatter,
    request_id_context,
    setup_logging,
)


def _record(message="Practice session started", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="practice_app.core.session",
        level=level,
        pathname="session.py",
        lineno=42,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "practice_app.core.session"
        assert entry["message"] == "Practice session started"
        assert "timestamp" in entry
        assert "source" not in entry

    def test_session_fields_are_included(self):
        entry = json.loads(
            JSONFormatter().format(_record(session_id="abc", question_number=3))
        )

        assert entry["session_id"] == "abc"
        assert entry["question_number"] == 3

    def test_request_id_from_context(self):
        token = request_id_context.set("req-123")
        try:
            entry = json.loads(JSONFormatter().format(_record()))
        finally:
            request_id_context.reset(token)

        assert entry["request_id"] == "req-123"

    def test_error_includes_source_and_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONFormatter().format(record))

        assert entry["source"] == "session.py:42"
        assert "ValueError: boom" in entry["exception"]


class TestSetupLogging:
    def test_production_uses_json_formatter(self):
        with patch("practice_app.core.logging_config.settings") as mock_settings:
            mock_settings.LOG_LEVEL = "WARNING"
            mock_settings.ENV = "production"
            mock_settings.DEBUG = False

            setup_logging()

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert any(isinstance(h.formatter, JSONFormatter) for h in root.handlers)

        setup_logging()

    def test_package_logger_propagates(self):
        setup_logging()

        assert logging.getLogger("practice_app").propagate is True
        assert logging.getLogger("httpx").level == logging.WARNING


class TestContextFilter:
    def test_defaults_when_outside_a_request(self):
        record = _record()

        assert ContextFilter().filter(record) is True
        assert record.request_id == "-"
        assert record.session_id == "-"

    def test_keeps_session_id_from_extra(self):
        token = request_id_context.set("req-9")
        try:
            record = _record(session_id="abc")
            ContextFilter().filter(record)
        finally:
            request_id_context.reset(token)

        assert record.request_id == "req-9"
        assert record.session_id == "abc"

    def test_placeholder_session_id_left_out_of_json(self):
        record = _record()
        ContextFilter().filter(record)

        entry = json.loads(JSONFormatter().format(record))

        assert "session_id" not in entry
