"""Logging setup for the traffic flow engine.

Configurable via environment variables:
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR. Default: INFO
- LOG_FORMAT: 'text' or 'json'. Default: text

Usage:
    from trafficflow.logging_config import configure_logging
    configure_logging()  # once, at service startup
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from typing import Any, ClassVar

NAMESPACE = "trafficflow"

# Attributes every LogRecord carries; anything else was passed via ``extra=``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "taskName"}

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _short_name(name: str) -> str:
    """Strip the package prefix from a logger name."""
    prefix = NAMESPACE + "."
    return name[len(prefix) :] if name.startswith(prefix) else name


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        """Serialize a record, including ``extra`` fields and exception text."""
        payload: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.levelno >= logging.ERROR or record.levelno == logging.DEBUG:
            payload["source"] = f"{record.filename}:{record.lineno}"
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human readable lines: TIMESTAMP LEVEL [logger] message (file:line)."""

    LEVEL_COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET: ClassVar[str] = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Render a record as a single text line (plus traceback, if any)."""
        timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        level = f"{record.levelname:8s}"
        if self.use_colors:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"

        line = f"{timestamp} {level} [{_short_name(record.name)}] {record.getMessage()}"
        if record.levelno >= logging.ERROR or record.levelno == logging.DEBUG:
            line += f" ({record.filename}:{record.lineno})"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def get_log_level() -> int:
    """Read LOG_LEVEL from the environment, falling back to INFO."""
    return _LEVELS.get(os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)


def get_log_format() -> str:
    """Read LOG_FORMAT from the environment ('text' or 'json')."""
    fmt = os.environ.get("LOG_FORMAT", "text").lower()
    return fmt if fmt in ("text", "json") else "text"


def configure_logging(
    level: int | None = None,
    format_type: str | None = None,
    use_colors: bool = True,
) -> None:
    """Install a single stderr handler on the ``trafficflow`` logger.

    Args:
        level: Log level; defaults to LOG_LEVEL.
        format_type: 'text' or 'json'; defaults to LOG_FORMAT.
        use_colors: Colourize text output when stderr is a TTY.
    """
    if level is None:
        level = get_log_level()
    if format_type is None:
        format_type = get_log_format()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        JSONFormatter() if format_type == "json" else TextFormatter(use_colors=use_colors)
    )

    root_logger = logging.getLogger(NAMESPACE)
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False

    # Route server lifecycle and API access lines through the same handler.
    # Requires uvicorn.run(..., log_config=None) so uvicorn does not replace them.
    for name in ("uvicorn", "uvicorn.access"):
        server_logger = logging.getLogger(name)
        server_logger.handlers.clear()
        server_logger.addHandler(handler)
        server_logger.setLevel(level)
        server_logger.propagate = False

    # httpx logs every Overpass request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    root_logger.debug(
        "Logging configured: level=%s, format=%s",
        logging.getLevelName(level),
        format_type,
    )


def get_logger(name: str) -> logging.Logger:
    """Return a logger inside the ``trafficflow`` namespace."""
    if not name.startswith(NAMESPACE):
        name = f"{NAMESPACE}.{name}"
    return logging.getLogger(name)
