"""Logging infrastructure for dbquery.

This module provides structured logging with JSON output, query context
tracking and OpenTelemetry trace correlation.
"""

from dbquery.logging.filters import ContextFilter
from dbquery.logging.logger import CustomJsonFormatter, get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
    "CustomJsonFormatter",
    "ContextFilter",
]
