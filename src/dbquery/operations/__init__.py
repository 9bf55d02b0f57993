"""Database operation descriptors.

This module provides data structures that describe a database operation
independent of how it is executed. Operations are pure data that can be:
- Built step by step by the fluent query builder
- Serialized for the execution engine
- Rewritten by the execution orchestrator (computed fields, per-row variants)
"""

from dbquery.operations.conditions import WhereCondition, WhereGroup, WhereNode
from dbquery.operations.dml import DML, Aggregation, Join, JoinCondition, OrderBy

__all__ = [
    "DML",
    "Join",
    "JoinCondition",
    "OrderBy",
    "Aggregation",
    "WhereCondition",
    "WhereGroup",
    "WhereNode",
]
