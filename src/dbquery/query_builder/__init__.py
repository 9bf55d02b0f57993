"""Fluent query builder."""

from dbquery.query_builder.conditions import ConditionBuilderMixin, normalize_operator
from dbquery.query_builder.table import Table

__all__ = [
    "ConditionBuilderMixin",
    "Table",
    "normalize_operator",
]
