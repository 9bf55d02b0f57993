"""Fluent, clone-on-write query builder bound to one table.

Chain steps return a new ``Table`` wrapping a deep copy of the descriptor,
so a base query can be branched freely::

    adults = db.table("users").where("age", ">=", 18)
    active = await adults.where("status", "=", "active").get()
    banned = await adults.where("status", "=", "banned").get()

Terminal methods (``get``, ``first``, ``find``, ``insert``, ``update``,
``delete`` and the aggregate shortcuts) are coroutines that hand the
finalized descriptor to the execution orchestrator.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from dbquery.common.exceptions import ErrorCode, validation_error
from dbquery.constants.dml import (
    AggregateType,
    Connective,
    DMLType,
    EventPhase,
    JoinType,
    Operator,
    SortDirection,
)
from dbquery.logging import get_logger
from dbquery.operations import DML, Aggregation, Join, JoinCondition, OrderBy
from dbquery.query_builder.conditions import ConditionBuilderMixin
from dbquery.settings import _Settings, get_settings

if TYPE_CHECKING:
    from dbquery.execution import ExecutionOrchestrator

logger = get_logger(__name__)

Row = Dict[str, Any]


class Table(ConditionBuilderMixin):
    """Query builder for one table of one database.

    Attributes:
        orchestrator: Runs finalized descriptors; shared by every branch
        settings: Application settings
    """

    def __init__(
        self,
        dml: DML,
        orchestrator: "ExecutionOrchestrator",
        settings: Optional[_Settings] = None,
    ):
        self._dml = dml
        self._pending = Connective.AND
        self.orchestrator = orchestrator
        self.settings = settings or get_settings()

    def __repr__(self) -> str:
        return f"Table({self._dml.database}.{self._dml.table}, where={len(self._dml.where)})"

    @property
    def name(self) -> str:
        return self._dml.table

    @property
    def database_name(self) -> str:
        return self._dml.database

    @property
    def dml(self) -> DML:
        """Copy of the descriptor as it would be sent by ``get()``."""
        return self._dml.model_copy(deep=True)

    def to_wire(self) -> Dict[str, Any]:
        return self._dml.to_wire()

    def _clone(self) -> "Table":
        clone = Table(self._dml.model_copy(deep=True), self.orchestrator, self.settings)
        clone._pending = self._pending
        return clone

    def _scoped(self) -> "Table":
        return Table(
            DML(database=self._dml.database, table=self._dml.table),
            self.orchestrator,
            self.settings,
        )

    # Chain steps

    def select(self, *columns: Union[str, Sequence[str]]) -> "Table":
        """Set the output columns; no argument (or an empty list) means ``*``.

        Accepts ``select("id", "name")`` as well as ``select(["id", "name"])``.
        """
        if len(columns) == 1 and isinstance(columns[0], (list, tuple)):
            columns = tuple(columns[0])
        clone = self._clone()
        clone._dml.columns = [str(column) for column in columns] or ["*"]
        return clone

    def distinct(self) -> "Table":
        clone = self._clone()
        clone._dml.distinct = True
        return clone

    def join(
        self,
        table: str,
        column1: str,
        operator: str,
        column2: str,
        join_type: Union[JoinType, str] = JoinType.INNER,
    ) -> "Table":
        """Append a join; joins are applied in the order they are declared.

        Example:
            >>> orders.join("users", "orders.user_id", "=", "users.id")
        """
        try:
            kind = JoinType(str(join_type).upper()) if not isinstance(join_type, JoinType) else join_type
        except ValueError:
            raise validation_error(
                f"Unsupported join type '{join_type}'",
                field="join_type",
                value=join_type,
                error_code=ErrorCode.INVALID_ARGUMENT,
            ) from None
        clone = self._clone()
        clone._dml.joins.append(
            Join(
                type=kind,
                table=table,
                on=JoinCondition(column1=column1, operator=operator, column2=column2),
            )
        )
        return clone

    def left_join(self, table: str, column1: str, operator: str, column2: str) -> "Table":
        return self.join(table, column1, operator, column2, JoinType.LEFT)

    def right_join(self, table: str, column1: str, operator: str, column2: str) -> "Table":
        return self.join(table, column1, operator, column2, JoinType.RIGHT)

    def order_by(self, column: str, direction: Union[SortDirection, str] = SortDirection.ASC) -> "Table":
        """Append a sort key; earlier keys take precedence.

        Raises:
            ValidationError: If direction is not ASC or DESC (any case)
        """
        text = direction.value if isinstance(direction, SortDirection) else str(direction).strip().upper()
        try:
            sort = SortDirection(text)
        except ValueError:
            raise validation_error(
                f"Invalid sort direction '{direction}', expected ASC or DESC",
                field="direction",
                value=direction,
                error_code=ErrorCode.INVALID_ARGUMENT,
            ) from None
        clone = self._clone()
        clone._dml.order_by.append(OrderBy(column=column, direction=sort))
        return clone

    def group_by(self, column: str) -> "Table":
        clone = self._clone()
        clone._dml.group_by.append(column)
        return clone

    def limit(self, count: int) -> "Table":
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise validation_error(
                "limit must be a non-negative integer",
                field="limit",
                value=count,
                error_code=ErrorCode.INVALID_ARGUMENT,
            )
        clone = self._clone()
        clone._dml.limit = count
        return clone

    def page(self, number: int) -> "Table":
        """Set ``offset = (number - 1) * limit``.

        Has no effect until ``limit`` is set; call ``limit()`` first.
        """
        if isinstance(number, bool) or not isinstance(number, int) or number < 1:
            raise validation_error(
                "page must be an integer greater than or equal to 1",
                field="page",
                value=number,
                error_code=ErrorCode.INVALID_ARGUMENT,
            )
        clone = self._clone()
        if clone._dml.limit is not None:
            clone._dml.offset = (number - 1) * clone._dml.limit
        return clone

    def aggregate(self, function: Union[AggregateType, str], column: str = "*") -> "Table":
        """Replace the output columns with one aggregate aliased to its function name.

        Unlike the ``count``/``sum``/... shortcuts this does not force
        ``limit=1``, so combined with ``group_by`` it yields one row per group.
        """
        try:
            kind = AggregateType(str(function).upper()) if not isinstance(function, AggregateType) else function
        except ValueError:
            raise validation_error(
                f"Unsupported aggregate '{function}'",
                field="function",
                value=function,
                error_code=ErrorCode.INVALID_ARGUMENT,
            ) from None
        aggregation = Aggregation(type=kind, column=column, alias=kind.alias)
        clone = self._clone()
        clone._dml.aggregation = aggregation
        clone._dml.columns = [aggregation.expression]
        return clone

    # Terminal operations

    async def get(self) -> List[Row]:
        """Run the query and return every result row."""
        return await self.orchestrator.run(self._dml)

    async def first(self) -> Optional[Row]:
        rows = await self.limit(1).get()
        return rows[0] if rows else None

    async def find(self, value: Any, column: Optional[str] = None) -> Optional[Row]:
        """Return the row whose ``column`` (the primary key by default) equals ``value``."""
        return await self.where(column or self.settings.primary_key, Operator.EQ, value).first()

    async def insert(self, data: Sequence[Row]) -> List[Row]:
        """Insert rows and return them as given.

        Raises:
            ValidationError: If ``data`` is not a non-empty list of dicts
        """
        if (
            isinstance(data, (str, bytes, dict))
            or not isinstance(data, Sequence)
            or not data
            or not all(isinstance(row, dict) for row in data)
        ):
            raise validation_error(
                "insert expects a non-empty list of row dicts",
                field="data",
                value=type(data).__name__,
                error_code=ErrorCode.INVALID_PAYLOAD,
            )
        rows = [dict(row) for row in data]
        dml = self._dml.copy_for(type=DMLType.INSERT, data=rows)
        await self.orchestrator.run(dml, phase=EventPhase.ADD)
        return list(data)

    async def update(self, data: Row) -> Row:
        """Update the rows matched by the WHERE tree and return ``data``.

        Raises:
            ValidationError: If ``data`` is not a dict or no WHERE condition is set
        """
        if not isinstance(data, dict):
            raise validation_error(
                "update expects a single row dict",
                field="data",
                value=type(data).__name__,
                error_code=ErrorCode.INVALID_PAYLOAD,
            )
        self._require_conditions("update")
        dml = self._dml.copy_for(type=DMLType.UPDATE, data=dict(data))
        await self.orchestrator.run(dml, phase=EventPhase.UPDATE)
        return data

    async def delete(self) -> List[Row]:
        """Delete the rows matched by the WHERE tree and return them as they were.

        Raises:
            ValidationError: If no WHERE condition is set
        """
        self._require_conditions("delete")
        dml = self._dml.copy_for(type=DMLType.DELETE)
        affected = await self.orchestrator.read_affected_rows(dml)
        await self.orchestrator.run(dml, phase=EventPhase.DELETE, affected_rows=affected)
        return affected

    async def count(self, column: str = "*") -> Any:
        return await self._aggregate_value(AggregateType.COUNT, column)

    async def sum(self, column: str) -> Any:
        return await self._aggregate_value(AggregateType.SUM, column)

    async def avg(self, column: str) -> Any:
        return await self._aggregate_value(AggregateType.AVG, column)

    async def max(self, column: str) -> Any:
        return await self._aggregate_value(AggregateType.MAX, column)

    async def min(self, column: str) -> Any:
        return await self._aggregate_value(AggregateType.MIN, column)

    async def _aggregate_value(self, function: AggregateType, column: str) -> Any:
        """Run a single-row aggregate; no row or a NULL result yields 0."""
        rows = await self.aggregate(function, column).limit(1).get()
        value = rows[0].get(function.alias) if rows else None
        return 0 if value is None else value

    def _require_conditions(self, operation: str) -> None:
        if not self._dml.where:
            logger.warning(
                "Refusing unconditioned mutation",
                extra={"operation": operation, "table_name": self._dml.table},
            )
            raise validation_error(
                f"{operation}() requires at least one WHERE condition; "
                f"refusing to {operation} every row of '{self._dml.table}'",
                field="where",
                error_code=ErrorCode.MISSING_CONDITION,
            )
