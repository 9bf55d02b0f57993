"""Computed field descriptors."""

from typing import Optional

from pydantic import Field

from dbquery.types.base import DQBaseModel


class ComputedFieldDescriptor(DQBaseModel):
    """Output column derived from real dependency columns.

    Attributes:
        column: Name under which the computed value is exposed
        instruction: SQL scalar expression over real columns
        table_ref: Restricts the field to one table; None applies it database-wide
    """
    column: str = Field(..., min_length=1)
    instruction: str = Field(..., min_length=1)
    table_ref: Optional[str] = Field(default=None)

    def applies_to(self, table: str) -> bool:
        return self.table_ref is None or self.table_ref == table
