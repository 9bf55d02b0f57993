
from dbquery.__version__ import __version__
from dbquery.api import Database
from dbquery.query_builder import Table

from dbquery.operations import (
    DML,
    WhereCondition,
    WhereGroup,
    Join,
    JoinCondition,
    OrderBy,
    Aggregation,
)
from dbquery.constants import (
    AggregateType,
    Connective,
    DMLType,
    EventPhase,
    JoinType,
    Operator,
    SortDirection,
    TriggerEvent,
)

from dbquery.common.exceptions import (
    DQError,
    ErrorCode,
    ValidationError,
    EngineError,
    TriggerHandlerError,
    ComputedFieldError,
)

# Collaborators (public API)
from dbquery.protocols import (
    ExecutionEngine,
    ComputedFieldProcessor,
    TriggerProcessor,
    TriggerHandlerLoader,
)
from dbquery.execution import EngineResponse, SubprocessEngine
from dbquery.computed import ComputedFieldDescriptor, FileComputedFieldProcessor
from dbquery.triggers import FileTriggerProcessor, ModuleTriggerHandlerLoader, TriggerDescriptor

from dbquery.types import DatabaseRecord, WhereCallback
from dbquery.logging import setup_logging


__all__ = [
    "__version__",

    "Database",
    "Table",

    # Descriptor
    "DML",
    "WhereCondition",
    "WhereGroup",
    "Join",
    "JoinCondition",
    "OrderBy",
    "Aggregation",
    "AggregateType",
    "Connective",
    "DMLType",
    "EventPhase",
    "JoinType",
    "Operator",
    "SortDirection",
    "TriggerEvent",

    # Exceptions (public API)
    "DQError",
    "ErrorCode",
    "ValidationError",
    "EngineError",
    "TriggerHandlerError",
    "ComputedFieldError",

    # Collaborators
    "ExecutionEngine",
    "ComputedFieldProcessor",
    "TriggerProcessor",
    "TriggerHandlerLoader",
    "EngineResponse",
    "SubprocessEngine",
    "ComputedFieldDescriptor",
    "FileComputedFieldProcessor",
    "FileTriggerProcessor",
    "ModuleTriggerHandlerLoader",
    "TriggerDescriptor",

    "DatabaseRecord",
    "WhereCallback",
    "setup_logging",
]
