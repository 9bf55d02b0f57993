"""Utility functions and helpers for dbquery."""

from dbquery.utils.decorators import (
    retry_with_backoff,
    traced,
)

__all__ = [
    "retry_with_backoff",
    "traced",
]
