"""Shared observability context utilities."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry.trace import Status, StatusCode

from dbquery.logging import get_logger
from dbquery.logging.filters import database_var, operation_var, set_query_context, table_var
from dbquery.telemetry import get_tracer

DB_SYSTEM = "dbquery"


def query_attributes(database: str, table: str, operation: Optional[str] = None) -> Dict[str, Any]:
    """Span attributes describing one operation on a table."""
    attributes: Dict[str, Any] = {
        "db.system": DB_SYSTEM,
        "db.name": database,
        "db.sql.table": table,
    }
    if operation:
        attributes["db.operation"] = operation
    return attributes


@contextmanager
def query_scope(database: str, table: str, operation: Optional[str] = None) -> Iterator[None]:
    """Apply logging and tracing scope for one terminal builder call.

    The previous query context is restored on exit, so scopes opened from
    inside a trigger handler do not clobber the outer operation.
    """
    previous = (database_var.get(), table_var.get(), operation_var.get())
    set_query_context(database=database, table=table, operation=operation)

    tracer = get_tracer("dbquery")
    span_name = f"dbquery.{operation}" if operation else "dbquery.query"

    with tracer.start_as_current_span(span_name) as span:
        for key, value in query_attributes(database, table, operation).items():
            span.set_attribute(key, value)

        try:
            yield
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR))
            get_logger(__name__).error(
                "Query failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            raise
        finally:
            database_var.set(previous[0])
            table_var.set(previous[1])
            operation_var.set(previous[2])


def sanitize_extras(
    extra: Optional[Dict[str, Any]],
    *,
    prefix: Optional[str] = None,
) -> Dict[str, str]:
    """Sanitize arbitrary log extras into a JSON-safe dict of strings."""
    if not extra:
        return {}

    result: Dict[str, str] = {}
    for key, value in extra.items():
        if value is None:
            continue
        field = f"{prefix}{key}" if prefix else str(key)
        result[field] = str(value)
    return result
