"""Observability helpers shared across dbquery."""

from dbquery.observability.context import query_attributes, query_scope, sanitize_extras

__all__ = ["query_attributes", "query_scope", "sanitize_extras"]
