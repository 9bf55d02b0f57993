"""Constants shared across dbquery layers."""

from dbquery.constants.dml import (
    NULL_CHECK_OPERATORS,
    STATUS_INTERNAL_ERROR,
    STATUS_OK,
    STATUS_WARNING,
    AggregateType,
    Connective,
    DMLType,
    EngineAction,
    EventPhase,
    JoinType,
    Operator,
    SortDirection,
    TriggerEvent,
)

__all__ = [
    "DMLType",
    "Connective",
    "Operator",
    "NULL_CHECK_OPERATORS",
    "JoinType",
    "SortDirection",
    "AggregateType",
    "EventPhase",
    "TriggerEvent",
    "EngineAction",
    "STATUS_OK",
    "STATUS_WARNING",
    "STATUS_INTERNAL_ERROR",
]
