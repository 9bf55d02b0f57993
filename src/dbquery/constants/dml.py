"""DML and query-related constants.

This module contains the enums shared by the descriptor models, the
fluent builder and the execution orchestrator. They carry no behavior
and can be imported by any layer without creating circular dependencies.
"""

from enum import Enum
from typing import FrozenSet


class DMLType(str, Enum):
    """Logical operation carried by a DML descriptor."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class Connective(str, Enum):
    """Relation joining a WHERE node to the node before it."""

    AND = "AND"
    OR = "OR"


class Operator(str, Enum):
    """Comparison operators accepted in WHERE leaves."""

    EQ = "="
    NEQ = "!="
    NEQ_ANSI = "<>"
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"
    IN = "IN"
    NOT_IN = "NOT IN"
    BETWEEN = "BETWEEN"
    NOT_BETWEEN = "NOT BETWEEN"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"


# Operators that never take a value
NULL_CHECK_OPERATORS: FrozenSet[Operator] = frozenset({Operator.IS_NULL, Operator.IS_NOT_NULL})


class JoinType(str, Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class AggregateType(str, Enum):
    """Aggregate functions; the lowercase name doubles as the result alias."""

    COUNT = "COUNT"
    SUM = "SUM"
    AVG = "AVG"
    MAX = "MAX"
    MIN = "MIN"

    @property
    def alias(self) -> str:
        return self.value.lower()


class EventPhase(str, Enum):
    """Mutation phase passed to the orchestrator by write operations."""

    ADD = "Add"
    UPDATE = "Update"
    DELETE = "Delete"

    @property
    def before(self) -> "TriggerEvent":
        return TriggerEvent(f"before{self.value}")

    @property
    def after(self) -> "TriggerEvent":
        return TriggerEvent(f"after{self.value}")


class TriggerEvent(str, Enum):
    """Event keys under which trigger handlers are registered."""

    BEFORE_ADD = "beforeAdd"
    AFTER_ADD = "afterAdd"
    BEFORE_UPDATE = "beforeUpdate"
    AFTER_UPDATE = "afterUpdate"
    BEFORE_DELETE = "beforeDelete"
    AFTER_DELETE = "afterDelete"


class EngineAction(str, Enum):
    """Actions understood by the execution engine."""

    CONNECT = "connect"
    DISCONNECT = "disconnect"
    EXECUTE = "execute"


# Engine status codes
STATUS_OK = 200
STATUS_WARNING = 600
STATUS_INTERNAL_ERROR = 500
