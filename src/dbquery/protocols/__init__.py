"""Protocol definitions for dbquery.

Protocols provide type-safe interfaces without requiring inheritance,
following Python's structural subtyping (duck typing with type hints).
"""

from .collaborators import (
    ComputedFieldProcessor,
    ExecutionEngine,
    TriggerHandlerLoader,
    TriggerProcessor,
)

__all__ = [
    "ExecutionEngine",
    "ComputedFieldProcessor",
    "TriggerProcessor",
    "TriggerHandlerLoader",
]
