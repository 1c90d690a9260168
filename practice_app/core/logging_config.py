"""
Logging setup for the practice service.

Production writes one JSON object per line; development writes a readable
line that still shows which request and which practice session it belongs to.
"""
import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from practice_app.core.config import settings

# Set by RequestLoggingMiddleware. Session transitions triggered inside a
# request inherit it, so timer callbacks fired later log without one.
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes passed through ``extra=`` that end up in the JSON entry
_EXTRA_FIELDS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "client_host",
    "session_id",
    "question_number",
    "error_id",
)

# Third-party loggers that report every outbound call at INFO
_CHATTY_LIBRARIES = ("httpx", "httpcore", "openai", "anthropic", "google.generativeai")

TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s %(session_id)s] %(name)s: %(message)s"


class ContextFilter(logging.Filter):
    """Stamp request and session ids on every record so TEXT_FORMAT never fails."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_context.get() or "-"
        if not hasattr(record, "session_id"):
            record.session_id = "-"
        return True


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_context.get()
        if request_id:
            entry["request_id"] = request_id

        for name in _EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None and value != "-":
                entry[name] = value

        if record.levelno >= logging.ERROR:
            entry["source"] = f"{record.pathname}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging() -> None:
    """
    Configure the root logger from settings.

    LOG_LEVEL sets the threshold, ENV=production switches to JSON output, and
    DEBUG quiets uvicorn's per-request access log. Package loggers propagate
    to the single console handler on the root.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    formatter = "json" if settings.ENV == "production" else "text"

    loggers: Dict[str, Dict[str, Any]] = {
        "practice_app": {"level": level},
        "uvicorn.access": {
            "level": logging.WARNING if settings.DEBUG else logging.INFO,
            "handlers": ["console"],
            "propagate": False,
        },
    }
    for name in _CHATTY_LIBRARIES:
        loggers[name] = {
            "level": logging.WARNING,
            "handlers": ["console"],
            "propagate": False,
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"context": {"()": ContextFilter}},
            "formatters": {
                "text": {"format": TEXT_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
                "json": {"()": JSONFormatter},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": formatter,
                    "filters": ["context"],
                    "stream": sys.stdout,
                },
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": loggers,
        }
    )
