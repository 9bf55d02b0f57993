"""Common exceptions and error rendering for dbquery.

Exception Design:
    All exceptions inherit from DQError and carry an ErrorCode. The
    subclasses exist so callers can tell recoverable builder mistakes
    (ValidationError) apart from engine failures (EngineError).
"""

from dbquery.common.exceptions import (
    DQError,
    ErrorCode,
    ValidationError,
    EngineError,
    TriggerHandlerError,
    ComputedFieldError,
    # Helper functions
    validation_error,
    engine_error,
    engine_unavailable_error,
    trigger_handler_error,
    computed_field_error,
)
from dbquery.common.formatting import emit_engine_error, format_engine_error

__all__ = [
    # Base Exception and Error Codes
    "DQError",
    "ErrorCode",
    "ValidationError",
    "EngineError",
    "TriggerHandlerError",
    "ComputedFieldError",
    # Helper functions
    "validation_error",
    "engine_error",
    "engine_unavailable_error",
    "trigger_handler_error",
    "computed_field_error",
    # Rendering
    "format_engine_error",
    "emit_engine_error",
]
