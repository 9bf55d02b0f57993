"""Shared type definitions."""

from typing import Any, Callable, Dict, TYPE_CHECKING

from dbquery.types.base import DQBaseModel

if TYPE_CHECKING:
    from dbquery.query_builder import Table

DatabaseRecord = Dict[str, Any]
WhereCallback = Callable[["Table"], "Table"]

__all__ = [
    "DQBaseModel",
    "DatabaseRecord",
    "WhereCallback",
]
