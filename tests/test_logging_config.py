"""Tests for logging configuration module."""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Iterator
from io import StringIO
from unittest.mock import patch

import pytest

from trafficflow.logging_config import (
    JSONFormatter,
    TextFormatter,
    configure_logging,
    get_log_format,
    get_log_level,
    get_logger,
)


@pytest.fixture(autouse=True)
def restore_package_logger() -> Iterator[None]:
    """configure_logging() detaches the package logger; put it back afterwards."""
    package_logger = logging.getLogger("trafficflow")
    saved = (package_logger.level, list(package_logger.handlers), package_logger.propagate)
    yield
    package_logger.setLevel(saved[0])
    package_logger.handlers[:] = saved[1]
    package_logger.propagate = saved[2]


def make_record(level: int, msg: str = "Test message", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="trafficflow.acquisition.controller",
        level=level,
        pathname="/path/to/controller.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestGetLogLevel:
    """Tests for get_log_level function."""

    def test_default_is_info(self) -> None:
        """Default log level should be INFO."""
        with patch.dict(os.environ, {}, clear=True):
            assert get_log_level() == logging.INFO

    def test_debug_level(self) -> None:
        """LOG_LEVEL=DEBUG should return logging.DEBUG."""
        with patch.dict(os.environ, {"LOG_LEVEL": "DEBUG"}):
            assert get_log_level() == logging.DEBUG

    def test_warn_alias(self) -> None:
        """LOG_LEVEL=WARN should work as alias for WARNING."""
        with patch.dict(os.environ, {"LOG_LEVEL": "WARN"}):
            assert get_log_level() == logging.WARNING

    def test_case_insensitive(self) -> None:
        """Log level should be case insensitive."""
        with patch.dict(os.environ, {"LOG_LEVEL": "error"}):
            assert get_log_level() == logging.ERROR

    def test_invalid_level_defaults_to_info(self) -> None:
        """Invalid log level should default to INFO."""
        with patch.dict(os.environ, {"LOG_LEVEL": "LOUD"}):
            assert get_log_level() == logging.INFO


class TestGetLogFormat:
    """Tests for get_log_format function."""

    def test_default_is_text(self) -> None:
        """Default log format should be text."""
        with patch.dict(os.environ, {}, clear=True):
            assert get_log_format() == "text"

    def test_json_format_case_insensitive(self) -> None:
        """LOG_FORMAT=JSON should return json."""
        with patch.dict(os.environ, {"LOG_FORMAT": "JSON"}):
            assert get_log_format() == "json"

    def test_invalid_format_defaults_to_text(self) -> None:
        """Invalid log format should default to text."""
        with patch.dict(os.environ, {"LOG_FORMAT": "xml"}):
            assert get_log_format() == "text"


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_formats_as_valid_json(self) -> None:
        """Output should be a single JSON object."""
        data = json.loads(JSONFormatter().format(make_record(logging.INFO)))
        assert data["message"] == "Test message"
        assert data["level"] == "INFO"
        assert data["logger"] == "trafficflow.acquisition.controller"
        assert "timestamp" in data

    def test_source_for_debug_and_error_only(self) -> None:
        """Source location is attached to DEBUG and ERROR records."""
        formatter = JSONFormatter()
        debug = json.loads(formatter.format(make_record(logging.DEBUG)))
        error = json.loads(formatter.format(make_record(logging.ERROR)))
        info = json.loads(formatter.format(make_record(logging.INFO)))
        assert debug["source"] == "controller.py:42"
        assert error["source"] == "controller.py:42"
        assert "source" not in info

    def test_includes_extra_fields(self) -> None:
        """Fields passed via extra= land under 'extra'."""
        record = make_record(logging.INFO, bbox_key="-82.470,27.930", segments=12)
        data = json.loads(JSONFormatter().format(record))
        assert data["extra"] == {"bbox_key": "-82.470,27.930", "segments": 12}

    def test_includes_exception(self) -> None:
        """Exception tracebacks are serialized."""
        try:
            raise ValueError("bad payload")
        except ValueError:
            record = make_record(logging.ERROR)
            record.exc_info = sys.exc_info()
        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad payload" in data["exception"]


class TestTextFormatter:
    """Tests for text log formatter."""

    def test_strips_package_prefix(self) -> None:
        """Logger names are shown relative to the package."""
        output = TextFormatter(use_colors=False).format(make_record(logging.INFO))
        assert "[acquisition.controller]" in output
        assert "Test message" in output
        assert "controller.py:42" not in output

    def test_error_has_location(self) -> None:
        """Error lines end with file:line."""
        output = TextFormatter(use_colors=False).format(make_record(logging.ERROR))
        assert output.endswith("(controller.py:42)")

    def test_no_colors_when_disabled(self) -> None:
        """No ANSI escapes when colors are off."""
        output = TextFormatter(use_colors=False).format(make_record(logging.WARNING))
        assert "\033[" not in output


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_sets_level_and_single_handler(self) -> None:
        """The package logger gets exactly one handler at the requested level."""
        configure_logging(level=logging.DEBUG, format_type="text")
        configure_logging(level=logging.WARNING, format_type="text")
        package_logger = logging.getLogger("trafficflow")
        assert package_logger.level == logging.WARNING
        assert len(package_logger.handlers) == 1

    def test_json_output(self) -> None:
        """format_type='json' emits JSON lines."""
        stream = StringIO()
        with patch("sys.stderr", stream):
            configure_logging(level=logging.INFO, format_type="json")
            get_logger("engine.clock").info("Simulation clock started")
        data = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert data["message"] == "Simulation clock started"
        assert data["logger"] == "trafficflow.engine.clock"

    def test_routes_uvicorn_loggers(self) -> None:
        """uvicorn lifecycle and access lines share the package handler."""
        configure_logging(level=logging.INFO, format_type="text")
        handler = logging.getLogger("trafficflow").handlers[0]
        for name in ("uvicorn", "uvicorn.access"):
            server_logger = logging.getLogger(name)
            assert server_logger.handlers == [handler]
            assert server_logger.propagate is False

    def test_quiets_httpx(self) -> None:
        """Per-request httpx lines are suppressed below WARNING."""
        configure_logging(level=logging.DEBUG, format_type="text")
        assert logging.getLogger("httpx").level == logging.WARNING


class TestGetLogger:
    """Tests for get_logger function."""

    def test_adds_namespace(self) -> None:
        """Short names are placed under the package namespace."""
        assert get_logger("server.app").name == "trafficflow.server.app"

    def test_keeps_qualified_name(self) -> None:
        """Already-qualified names are unchanged."""
        assert get_logger("trafficflow.config").name == "trafficflow.config"
