"""Data Manipulation Language (DML) descriptor.

The descriptor captures one logical operation (select, insert, update or
delete) together with all of its modifiers. It is pure data: the builder
produces it, the execution engine compiles and runs it.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import Field

from dbquery.constants.dml import AggregateType, DMLType, JoinType, SortDirection
from dbquery.operations.conditions import WhereNode
from dbquery.types.base import DQBaseModel


class JoinCondition(DQBaseModel):
    column1: str = Field(..., min_length=1)
    operator: str = Field(default="=", min_length=1)
    column2: str = Field(..., min_length=1)


class Join(DQBaseModel):
    """Join entry; joins are applied in declaration order."""
    type: JoinType = Field(default=JoinType.INNER)
    table: str = Field(..., min_length=1)
    on: JoinCondition


class OrderBy(DQBaseModel):
    column: str = Field(..., min_length=1)
    direction: SortDirection = Field(default=SortDirection.ASC)


class Aggregation(DQBaseModel):
    """Single aggregate whose result is exposed under ``alias``."""
    type: AggregateType
    column: str = Field(default="*", min_length=1)
    alias: str = Field(..., min_length=1)

    @property
    def expression(self) -> str:
        return f"{self.type}({self.column}) AS {self.alias}"


class DML(DQBaseModel):
    """Descriptor of one logical database operation.

    Supports:
    - Column selection, DISTINCT and a single aggregate
    - Ordered joins and an ordered WHERE tree
    - ORDER BY / GROUP BY precedence in declaration order
    - LIMIT / OFFSET pagination
    - Insert (list of rows) and update (single row) payloads

    ``database`` and ``table`` are fixed when the descriptor is created.
    """
    type: DMLType = Field(default=DMLType.SELECT)
    database: str = Field(..., min_length=1, frozen=True)
    table: str = Field(..., min_length=1, frozen=True)

    columns: List[str] = Field(default_factory=lambda: ["*"])
    distinct: bool = Field(default=False)

    joins: List[Join] = Field(default_factory=list)
    where: List[WhereNode] = Field(default_factory=list)

    order_by: List[OrderBy] = Field(default_factory=list, alias="orderBy")
    group_by: List[str] = Field(default_factory=list, alias="groupBy")

    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)

    data: Optional[Union[List[Dict[str, Any]], Dict[str, Any]]] = Field(default=None)
    aggregation: Optional[Aggregation] = Field(default=None)

    def copy_for(self, **changes: Any) -> "DML":
        """Return a structurally independent copy with ``changes`` applied."""
        clone = self.model_copy(deep=True)
        for key, value in changes.items():
            setattr(clone, key, value)
        return clone
