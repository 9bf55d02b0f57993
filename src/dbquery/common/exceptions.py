from enum import Enum
from typing import Any, Dict, Optional

from dbquery.constants import STATUS_WARNING


class ErrorCode(Enum):
    """Standard error codes for dbquery operations.

    Each category has a specific prefix for easy identification.

    Attributes:
        CONFIG_*: Configuration-related errors
        VALIDATION_*: Builder input validation errors
        ENGINE_*: Failures reported by, or reaching, the execution engine
        TRIGGER_*: Trigger handler resolution errors
        COMPUTE_*: Computed field parsing and evaluation errors
    """
    # Configuration errors
    CONFIG_ERROR = "CONFIG_001"
    CONFIG_INVALID = "CONFIG_002"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_001"
    INVALID_ARGUMENT = "VALIDATION_002"
    INVALID_PAYLOAD = "VALIDATION_003"
    MISSING_CONDITION = "VALIDATION_004"

    # Engine errors
    ENGINE_ERROR = "ENGINE_001"
    ENGINE_WARNING = "ENGINE_002"
    ENGINE_UNAVAILABLE = "ENGINE_003"

    # Trigger errors
    TRIGGER_ERROR = "TRIGGER_001"
    TRIGGER_HANDLER_NOT_FOUND = "TRIGGER_002"

    # Computed field errors
    COMPUTE_ERROR = "COMPUTE_001"
    COMPUTE_UNSUPPORTED = "COMPUTE_002"


class DQError(Exception):
    """Base exception for all dbquery-related errors.

    Attributes:
        message: Error message
        error_code: Error code from ErrorCode enum
        details: Additional error details
        cause: Optional underlying exception
        is_retryable: Whether the error is transient and can be retried
    """

    default_code: ErrorCode = ErrorCode.ENGINE_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        is_retryable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause
        self.is_retryable = is_retryable

        # Lazy import to avoid circular dependency
        from dbquery.logging import get_logger
        logger = get_logger(__name__)
        logger.debug(
            message,
            extra={
                "error_code": self.error_code.value,
                "error_details": self.details,
                "is_retryable": is_retryable,
            },
            exc_info=cause is not None
        )

    def __str__(self) -> str:
        msg = f"[{self.error_code.value}] {self.message}"
        if self.cause:
            msg = f"{msg} (caused by: {type(self.cause).__name__}: {str(self.cause)})"
        return msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
            "is_retryable": self.is_retryable
        }


class ValidationError(DQError):
    """Malformed builder input, raised before anything reaches the engine."""

    default_code = ErrorCode.VALIDATION_ERROR


class EngineError(DQError):
    """Non-success status returned by the execution engine.

    Attributes:
        status: Status code reported by the engine
    """

    default_code = ErrorCode.ENGINE_ERROR

    def __init__(self, message: str, status: int, **kwargs: Any):
        self.status = status
        kwargs.setdefault(
            "error_code",
            ErrorCode.ENGINE_WARNING if status == STATUS_WARNING else ErrorCode.ENGINE_ERROR,
        )
        super().__init__(message, **kwargs)
        self.details.setdefault("status", status)

    @property
    def is_warning(self) -> bool:
        return self.status == STATUS_WARNING


class TriggerHandlerError(DQError):
    """A registered trigger has no loadable handler."""

    default_code = ErrorCode.TRIGGER_ERROR


class ComputedFieldError(DQError):
    """A computed field instruction cannot be parsed or evaluated."""

    default_code = ErrorCode.COMPUTE_ERROR


# Helper functions for common error scenarios
def validation_error(
    message: str,
    field: Optional[str] = None,
    value: Any = None,
    **kwargs
) -> ValidationError:
    """Create a validation error.

    Args:
        message: Error message
        field: Argument that failed validation
        value: Invalid value
        **kwargs: Additional error details

    Returns:
        ValidationError with VALIDATION_ERROR code unless another code is given
    """
    details = kwargs.pop('details', {})
    if field:
        details["field"] = field
    if value is not None:
        details["value"] = str(value)

    return ValidationError(message=message, details=details, **kwargs)


def engine_error(
    status: int,
    message: Optional[str],
    operation: Optional[str] = None,
    **kwargs
) -> EngineError:
    """Create an error for a non-success engine response.

    Args:
        status: Status code returned by the engine
        message: Message returned by the engine
        operation: DML type or engine action that failed
        **kwargs: Additional error details

    Returns:
        EngineError carrying the engine status
    """
    details = kwargs.pop('details', {})
    if operation:
        details["operation"] = operation

    return EngineError(
        message=message or f"Execution engine failed with status {status}",
        status=status,
        details=details,
        **kwargs
    )


def engine_unavailable_error(
    message: str,
    command: Optional[str] = None,
    **kwargs
) -> DQError:
    """Create a retryable error for an engine that could not be reached.

    Args:
        message: Error message
        command: Engine command that failed to start or respond
        **kwargs: Additional error details

    Returns:
        DQError with ENGINE_UNAVAILABLE code and is_retryable=True
    """
    details = kwargs.pop('details', {})
    if command:
        details["command"] = command

    return DQError(
        message=message,
        error_code=ErrorCode.ENGINE_UNAVAILABLE,
        details=details,
        is_retryable=True,
        **kwargs
    )


def trigger_handler_error(
    message: str,
    event: Optional[str] = None,
    path: Optional[str] = None,
    **kwargs
) -> TriggerHandlerError:
    """Create an error for a trigger handler that cannot be resolved."""
    details = kwargs.pop('details', {})
    if event:
        details["event"] = event
    if path:
        details["path"] = path

    kwargs.setdefault("error_code", ErrorCode.TRIGGER_HANDLER_NOT_FOUND)
    return TriggerHandlerError(message=message, details=details, **kwargs)


def computed_field_error(
    message: str,
    column: Optional[str] = None,
    instruction: Optional[str] = None,
    **kwargs
) -> ComputedFieldError:
    """Create a computed field error.

    Args:
        message: Error message
        column: Computed column name
        instruction: Instruction that failed
        **kwargs: Additional error details

    Returns:
        ComputedFieldError with COMPUTE_ERROR code unless another code is given
    """
    details = kwargs.pop('details', {})
    if column:
        details["column"] = column
    if instruction:
        details["instruction"] = instruction

    return ComputedFieldError(message=message, details=details, **kwargs)
