"""Tests for structured logging configuration."""

import json
import logging

from conftest import make_settings
from transcript_gateway.app.core.logging import (
    ContextFilter,
    JSONFormatter,
    get_log_context,
    get_logger,
    get_logging_config,
)


def make_record(msg: str = "Test message") -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestJSONFormatter:
    """Test JSON formatter for structured logging."""

    def test_basic_json_format(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert data["source"]["file"] == "test.py"
        assert data["source"]["line"] == 1

    def test_json_format_with_context(self):
        record = make_record("Rate limit exceeded")
        record.request_id = "req-1"
        record.client_key = "203.0.113.5"
        record.status_code = 429

        data = json.loads(JSONFormatter().format(record))

        assert data["request_id"] == "req-1"
        assert data["client_key"] == "203.0.113.5"
        assert data["status_code"] == 429
        assert "extra" not in data

    def test_json_format_with_extra_fields(self):
        record = make_record()
        record.http_status = 403

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"]["http_status"] == 403

    def test_json_format_with_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            import sys
            record = logging.LogRecord(
                name="test", level=logging.ERROR, pathname="test.py", lineno=1,
                msg="failed", args=(), exc_info=sys.exc_info(),
            )

        data = json.loads(JSONFormatter().format(record))
        assert any("ValueError: boom" in line for line in data["exception"])


class TestContextFilter:

    def test_adds_defaults(self):
        record = make_record()
        assert ContextFilter().filter(record) is True
        assert record.request_id == "-"
        assert record.client_key is None

    def test_keeps_existing_values(self):
        record = make_record()
        record.request_id = "req-9"
        ContextFilter().filter(record)
        assert record.request_id == "req-9"


class TestLoggingConfig:

    def test_text_format_by_default(self):
        config = get_logging_config(make_settings())
        assert config["handlers"]["console"]["formatter"] == "standard"
        assert "json" not in config["formatters"]

    def test_json_format(self):
        config = get_logging_config(make_settings(log_format="json", log_level="debug"))
        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["handlers"]["console"]["level"] == "DEBUG"
        assert config["loggers"]["transcript_gateway"]["level"] == "DEBUG"

    def test_structured_format(self):
        config = get_logging_config(make_settings(log_format="structured"))
        assert config["handlers"]["console"]["formatter"] == "structured"


def test_get_log_context_drops_none():
    assert get_log_context(request_id="r", client_key=None, video_id="v", path="/x") == {
        "request_id": "r",
        "video_id": "v",
        "path": "/x",
    }


def test_get_logger_default_name():
    assert get_logger().name == "transcript_gateway"
