"""Instrumentation and retry decorators for engine-facing coroutines.

Every engine interaction in dbquery is a coroutine, so both decorators
wrap ``async def`` functions only and reject anything else at decoration
time.
"""

import asyncio
import functools
import inspect
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from opentelemetry.trace import SpanKind, Status, StatusCode

from dbquery.telemetry import get_tracer

T = TypeVar("T")
AsyncFunc = Callable[..., Awaitable[T]]

_logger = None


def _get_logger():
    """Get logger instance lazily."""
    global _logger
    if _logger is None:
        from dbquery.logging import get_logger
        _logger = get_logger(__name__)
    return _logger


def _require_coroutine(func: Callable[..., Any], decorator: str) -> None:
    if not inspect.iscoroutinefunction(func):
        raise TypeError(f"@{decorator} expects an async function, got {func.__qualname__}")


def traced(
    span_name: Optional[str] = None,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Optional[Dict[str, Any]] = None,
    attribute_getter: Optional[Callable[..., Optional[Dict[str, Any]]]] = None,
) -> Callable[[AsyncFunc], AsyncFunc]:
    """Run a coroutine inside an OpenTelemetry span.

    Args:
        span_name: Span name; defaults to the module-qualified function name
        kind: Span kind, CLIENT for engine calls
        attributes: Static span attributes
        attribute_getter: Called with the function's arguments; returns
            attributes known only at call time (table, operation, ...)

    Example:
        >>> @traced(
        ...     span_name="dbquery.engine.execute",
        ...     kind=SpanKind.CLIENT,
        ...     attribute_getter=lambda self, dml: {"db.sql.table": dml.table},
        ... )
        ... async def dispatch(self, dml):
        ...     ...
    """

    def decorator(func: AsyncFunc) -> AsyncFunc:
        _require_coroutine(func, "traced")
        name = span_name or f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            collected: Dict[str, Any] = dict(attributes or {})
            if attribute_getter is not None:
                try:
                    collected.update(attribute_getter(*args, **kwargs) or {})
                except Exception as exc:  # pragma: no cover
                    _get_logger().warning("Span attribute getter failed", extra={"error": str(exc)})

            with get_tracer(func.__module__).start_as_current_span(name, kind=kind) as span:
                for key, value in collected.items():
                    if value is not None:
                        span.set_attribute(key, value)
                try:
                    return await func(*args, **kwargs)
                except Exception as exc:
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    raise

        return wrapper

    return decorator


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    retry_condition: Optional[Callable[[Exception], bool]] = None,
) -> Callable[[AsyncFunc], AsyncFunc]:
    """Retry a coroutine with exponential backoff.

    The n-th retry waits ``min(initial_delay * exponential_base ** n, max_delay)``
    seconds. Total attempts are ``max_retries + 1``.

    Args:
        max_retries: Retries after the first attempt
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        exponential_base: Growth factor between delays
        retry_condition: Predicate an exception must satisfy to be retried;
            every exception is retried when None

    Raises:
        The last exception once the attempts are exhausted, or immediately
        for an exception that is not eligible for retry.

    Example:
        >>> @retry_with_backoff(
        ...     max_retries=5,
        ...     retry_condition=lambda exc: getattr(exc, "is_retryable", False),
        ... )
        ... async def connect():
        ...     return await engine.run(EngineAction.CONNECT)
    """

    def _should_retry(exc: Exception) -> bool:
        return retry_condition is None or retry_condition(exc)

    def decorator(func: AsyncFunc) -> AsyncFunc:
        _require_coroutine(func, "retry_with_backoff")

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as exc:
                    if not _should_retry(exc):
                        raise
                    if attempt >= max_retries:
                        _get_logger().error(
                            "Retries exhausted",
                            extra={"function": func.__qualname__, "attempts": attempt + 1},
                        )
                        raise
                    _get_logger().warning(
                        "Attempt failed, retrying",
                        extra={
                            "function": func.__qualname__,
                            "attempt": attempt + 1,
                            "delay.seconds": delay,
                            "error": str(exc),
                        },
                    )
                    await asyncio.sleep(delay)
                    delay = min(delay * exponential_base, max_delay)
                    attempt += 1

        return wrapper

    return decorator
