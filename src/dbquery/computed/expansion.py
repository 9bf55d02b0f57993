"""Computed field column rewriting around an engine request.

Before dispatch, requested computed columns are swapped for the real
columns they depend on. After the engine answers, the computed values are
materialized and every dependency column the caller did not ask for is
dropped again, so the caller sees exactly the columns it requested.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from dbquery.computed.models import ComputedFieldDescriptor
from dbquery.logging import get_logger
from dbquery.operations import DML
from dbquery.protocols import ComputedFieldProcessor

logger = get_logger(__name__)


@dataclass
class ColumnRewrite:
    """Record of one rewrite, consumed when the result rows come back."""
    requested: List[str]
    fields: List[ComputedFieldDescriptor] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    projected: bool = False

    @property
    def active(self) -> bool:
        return bool(self.fields)

    @property
    def wildcard(self) -> bool:
        """The caller asked for every real column alongside the computed ones."""
        return "*" in self.requested


class ComputedFieldExpansion:
    """Expands computed columns into dependencies and back.

    Attributes:
        processor: Collaborator that knows dependencies and computes values
        fields: Computed field descriptors visible to the current table
    """

    def __init__(self, processor: ComputedFieldProcessor, fields: Sequence[ComputedFieldDescriptor]):
        self.processor = processor
        self.fields = list(fields)

    def rewrite(self, dml: DML) -> Tuple[DML, ColumnRewrite]:
        """Replace requested computed columns with their dependency columns.

        Returns:
            The outgoing descriptor (a copy when anything changed) and the
            rewrite record needed by ``materialize``
        """
        requested = list(dml.columns)
        plan = ColumnRewrite(requested=requested)
        if not self.fields:
            return dml, plan

        by_name = {descriptor.column: descriptor for descriptor in self.fields}
        for column in requested:
            descriptor = by_name.get(column)
            if descriptor is None:
                continue
            plan.fields.append(descriptor)
            for dependency in self.processor.extract_dependencies(descriptor.instruction):
                if dependency not in plan.dependencies:
                    plan.dependencies.append(dependency)

        if not plan.active:
            return dml, plan

        computed_names = {descriptor.column for descriptor in plan.fields}
        columns = [column for column in requested if column not in computed_names]
        if not plan.wildcard:
            columns.extend(dep for dep in plan.dependencies if dep not in columns)
        if not columns:
            # Constant instructions read nothing; fetch rows and project afterwards
            columns = ["*"]
            plan.projected = True

        logger.debug(
            "Computed columns rewritten",
            extra={
                "computed": sorted(computed_names),
                "dependencies": plan.dependencies,
            },
        )
        return dml.copy_for(columns=columns), plan

    async def materialize(self, rows: Sequence[Dict[str, Any]], plan: ColumnRewrite) -> List[Dict[str, Any]]:
        """Compute the requested fields and strip dependency columns nobody asked for."""
        if not plan.active:
            return list(rows)

        computed = self.processor.computed_fields(list(rows), plan.fields)
        if inspect.isawaitable(computed):
            computed = await computed

        if plan.projected:
            return [{key: row.get(key) for key in plan.requested} for row in computed]

        if plan.wildcard:
            return list(computed)

        hidden = {dep for dep in plan.dependencies if dep not in plan.requested}
        return [
            {key: value for key, value in row.items() if key not in hidden}
            for row in computed
        ]
