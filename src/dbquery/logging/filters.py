"""Logging filters for context injection.

This module provides filters that inject context variables into log records,
enabling correlation of logs across chained queries and trigger executions.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Dict, Optional
from dbquery.__version__ import __version__

database_var: ContextVar[Optional[str]] = ContextVar("database", default=None)
table_var: ContextVar[Optional[str]] = ContextVar("table", default=None)
operation_var: ContextVar[Optional[str]] = ContextVar("operation", default=None)

_static_context: Dict[str, Any] = {}


class ContextFilter(logging.Filter):
    """Logging filter that adds context variables to log records.

    Query context (database, table, operation) is always attached; static
    context configured through ``set_logging_context`` is attached only
    when present.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context variables to the log record.

        Args:
            record: Log record to enhance

        Returns:
            Always True (doesn't filter out any records)
        """
        setattr(record, "database", database_var.get())
        setattr(record, "table", table_var.get())
        setattr(record, "operation", operation_var.get())
        setattr(record, "sdk_name", "dbquery")
        setattr(record, "sdk_version", __version__)

        for key, value in _static_context.items():
            if not hasattr(record, key):
                setattr(record, key, value)

        return True


def set_logging_context(
    environment: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """Replace the static context attached to every record."""
    _static_context.clear()
    if environment is not None:
        _static_context["environment"] = environment
    if extra:
        _static_context.update(extra)


def set_query_context(
    database: Optional[str] = None,
    table: Optional[str] = None,
    operation: Optional[str] = None,
) -> None:
    """Set query context variables."""
    if database is not None:
        database_var.set(database)
    if table is not None:
        table_var.set(table)
    if operation is not None:
        operation_var.set(operation)


def clear_query_context() -> None:
    """Clear all query context variables."""
    database_var.set(None)
    table_var.set(None)
    operation_var.set(None)
