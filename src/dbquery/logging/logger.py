"""Logging setup for dbquery.

Records are rendered as one JSON object per line, carrying the query
context injected by ``ContextFilter`` and, when a span is active, the
OpenTelemetry trace and span ids. Configuration goes through
``logging.config.dictConfig`` and only touches the ``dbquery`` logger
hierarchy, so applications keep control of their own handlers.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from opentelemetry import trace

# Attributes every LogRecord has; anything else on a record came from ``extra``
_STANDARD_ATTRIBUTES = frozenset(
    logging.LogRecord("dbquery", logging.INFO, __file__, 0, "", (), None).__dict__
) | {"asctime", "message"}


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _trace_fields() -> Dict[str, str]:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return {}
    return {
        "trace_id": format(span_context.trace_id, "032x"),
        "span_id": format(span_context.span_id, "016x"),
    }


class CustomJsonFormatter(logging.Formatter):
    """Renders a record, its ``extra`` fields and the active trace ids as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRIBUTES and value is not None
        )
        payload.update(_trace_fields())

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logging(level: Optional[str] = None, stream: str = "ext://sys.stderr") -> None:
    """Configure JSON logging for the ``dbquery`` logger hierarchy.

    Args:
        level: Log level name; defaults to ``settings.log_level``
        stream: dictConfig stream reference the handler writes to
    """
    if level is None:
        from dbquery.settings import get_settings
        level = get_settings().log_level
    level = level.upper()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "dq_json": {"()": "dbquery.logging.logger.CustomJsonFormatter"},
            },
            "filters": {
                "dq_context": {"()": "dbquery.logging.filters.ContextFilter"},
            },
            "handlers": {
                "dq_console": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": "dq_json",
                    "filters": ["dq_context"],
                    "stream": stream,
                },
            },
            "loggers": {
                "dbquery": {
                    "level": level,
                    "handlers": ["dq_console"],
                    "propagate": False,
                },
            },
        }
    )
