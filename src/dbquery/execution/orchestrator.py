"""Execution orchestration for terminal builder calls.

This module provides the ExecutionOrchestrator class that turns one
finalized DML descriptor into engine requests.

The orchestrator:
- Rewrites computed columns into their dependency columns and back
- Sends a single engine request for reads and hook-free mutations
- Splits hooked mutations into one request per row, in input order,
  with before/after trigger handlers wrapped around each request
- Raises EngineError on the first non-success engine status
"""

import time
from typing import Any, Dict, List, NoReturn, Optional, Sequence, Tuple, Union

from opentelemetry.trace import SpanKind

from dbquery.common.exceptions import engine_error
from dbquery.common.formatting import emit_engine_error
from dbquery.computed import ColumnRewrite, ComputedFieldDescriptor, ComputedFieldExpansion
from dbquery.constants.dml import DMLType, EngineAction, EventPhase, Operator
from dbquery.execution.types import EngineResponse
from dbquery.logging import get_logger
from dbquery.observability import query_attributes, query_scope, sanitize_extras
from dbquery.operations import DML, WhereCondition, WhereGroup, WhereNode
from dbquery.protocols import ComputedFieldProcessor, ExecutionEngine
from dbquery.settings import _Settings, get_settings
from dbquery.triggers import Trigger
from dbquery.utils import traced

logger = get_logger(__name__)

Row = Dict[str, Any]


def raise_for_response(
    response: EngineResponse,
    operation: str,
    settings: Optional[_Settings] = None,
) -> None:
    """Raise EngineError for a non-success response.

    The colored rendition is written to stderr first when
    ``settings.pretty_errors`` is enabled.
    """
    if response.ok:
        return
    settings = settings or get_settings()
    if settings.pretty_errors:
        emit_engine_error(response.status, response.message)
    logger.error(
        "Engine request failed",
        extra=sanitize_extras({"status": response.status, "operation": operation}),
    )
    raise engine_error(response.status, response.message, operation=operation)


def _match_column(column: str, value: Any) -> WhereCondition:
    if value is None:
        return WhereCondition(column=column, operator=Operator.IS_NULL)
    return WhereCondition(column=column, operator=Operator.EQ, value=value)


class ExecutionOrchestrator:
    """Runs finalized descriptors against the execution engine.

    One orchestrator serves every builder derived from a table handle.
    The computed field and trigger state it holds is read-only.

    Attributes:
        engine: Execution engine collaborator
        database_name: Database the table belongs to
        table_name: Table operated on
        expansion: Computed column rewriting, None when no computed field applies
        trigger: Triggers of the table, None when triggers are not enabled
        settings: Application settings
    """

    def __init__(
        self,
        engine: ExecutionEngine,
        database_name: str,
        table_name: str,
        computed_fields: Sequence[ComputedFieldDescriptor] = (),
        computed_processor: Optional[ComputedFieldProcessor] = None,
        trigger: Optional[Trigger] = None,
        settings: Optional[_Settings] = None,
    ):
        """Initialize the orchestrator.

        Args:
            engine: Collaborator that runs serialized descriptors
            database_name: Database the table belongs to
            table_name: Table operated on
            computed_fields: Computed field descriptors of the database
            computed_processor: Collaborator evaluating computed fields
            trigger: Triggers registered for the table
            settings: Application settings
        """
        self.engine = engine
        self.database_name = database_name
        self.table_name = table_name
        self.settings = settings or get_settings()
        self.trigger = trigger
        self.logger = logger

        fields = [f for f in computed_fields if f.applies_to(table_name)]
        self.expansion: Optional[ComputedFieldExpansion] = None
        if fields and computed_processor is not None:
            self.expansion = ComputedFieldExpansion(computed_processor, fields)

    async def run(
        self,
        dml: DML,
        phase: Optional[Union[EventPhase, str]] = None,
        affected_rows: Optional[Sequence[Row]] = None,
    ) -> List[Row]:
        """Execute a descriptor and return the result rows.

        Args:
            dml: Finalized descriptor; never modified
            phase: Mutation phase (Add, Update, Delete); None for reads
            affected_rows: Rows an update or delete will touch, when the
                caller already read them; read here otherwise

        Returns:
            Result rows with computed columns materialized. For hooked
            mutations, the rows of every per-row request in input order.

        Raises:
            EngineError: On the first non-success engine status
        """
        operation = str(dml.type)
        with query_scope(self.database_name, self.table_name, operation):
            request, plan = self._rewrite(dml)

            event_phase = EventPhase(phase) if phase is not None else None
            if event_phase is None or self.trigger is None or not self.trigger.has_phase(event_phase):
                rows = await self.dispatch(request)
            else:
                rows = await self._run_per_row(request, event_phase, affected_rows)

            if plan is not None:
                rows = await self.expansion.materialize(rows, plan)
            return rows

    def _rewrite(self, dml: DML) -> Tuple[DML, Optional[ColumnRewrite]]:
        if self.expansion is None or dml.type != DMLType.SELECT:
            return dml, None
        request, plan = self.expansion.rewrite(dml)
        return request, plan if plan.active else None

    def _span_attributes(self, dml: DML) -> Dict[str, Any]:
        return query_attributes(self.database_name, self.table_name, str(dml.type))

    @traced(
        span_name="dbquery.engine.execute",
        kind=SpanKind.CLIENT,
        attribute_getter=lambda self, dml: self._span_attributes(dml),
    )
    async def dispatch(self, dml: DML) -> List[Row]:
        """Send one execute request and return its rows."""
        operation = str(dml.type)
        start_time = time.time()
        response = await self.engine.run(EngineAction.EXECUTE, dml.to_wire())
        duration = time.time() - start_time

        raise_for_response(response, operation, self.settings)

        rows = response.rows
        self.logger.info(
            "DML executed",
            extra=sanitize_extras(
                {
                    "operation": operation,
                    "row_count": len(rows),
                    "duration.seconds": f"{duration:.6f}",
                }
            ),
        )
        return rows

    async def read_affected_rows(self, dml: DML) -> List[Row]:
        """Read the rows an update or delete with the same WHERE would touch."""
        probe = DML(
            type=DMLType.SELECT,
            database=dml.database,
            table=dml.table,
            where=[node.model_copy(deep=True) for node in dml.where],
        )
        return await self.dispatch(probe)

    async def _run_per_row(
        self,
        request: DML,
        phase: EventPhase,
        affected_rows: Optional[Sequence[Row]],
    ) -> List[Row]:
        if phase == EventPhase.ADD:
            payload = request.data if isinstance(request.data, list) else [request.data or {}]
            units = [(request.copy_for(data=[row]), row, row) for row in payload]
        else:
            if affected_rows is None:
                affected_rows = await self.read_affected_rows(request)
            changes = request.data if phase == EventPhase.UPDATE and isinstance(request.data, dict) else {}
            units = [
                (request.copy_for(where=self._row_where(request.where, row)), row, {**row, **changes})
                for row in affected_rows
            ]

        self.logger.info(
            "Running hooked mutation row by row",
            extra=sanitize_extras({"phase": phase.value, "row_count": len(units)}),
        )

        results: List[Row] = []
        for variant, old_row, new_row in units:
            results.extend(await self._run_row(variant, phase, old_row, new_row))
        return results

    async def _run_row(self, variant: DML, phase: EventPhase, old_row: Row, new_row: Row) -> List[Row]:
        interceptor = await self.trigger.execute(phase.before, old_row, new_row)
        try:
            rows = await self.dispatch(variant)
        except Exception:
            if interceptor is not None:
                interceptor.discard()
            raise
        if interceptor is not None:
            interceptor.commit()

        interceptor = await self.trigger.execute(phase.after, old_row, new_row)
        if interceptor is not None:
            interceptor.commit()
        return rows

    def _row_where(self, where: Sequence[WhereNode], row: Row) -> List[WhereNode]:
        """Narrow ``where`` to a single row.

        The original tree is kept as a group so its OR branches cannot
        widen the row match.
        """
        key = self.settings.primary_key
        if key in row:
            matches = [_match_column(key, row[key])]
        else:
            matches = [_match_column(column, value) for column, value in row.items()]

        narrowed: List[WhereNode] = []
        if where:
            narrowed.append(WhereGroup(conditions=[node.model_copy(deep=True) for node in where]))
        narrowed.extend(matches)
        return narrowed
