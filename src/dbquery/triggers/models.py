"""Trigger descriptors."""

from pydantic import Field

from dbquery.constants.dml import TriggerEvent
from dbquery.types.base import DQBaseModel


class TriggerDescriptor(DQBaseModel):
    """Hook registered for one (database, table, event) key."""
    type: TriggerEvent
    database_ref: str = Field(..., min_length=1)
    table_ref: str = Field(..., min_length=1)

    @property
    def module_name(self) -> str:
        return f"{self.database_ref}_{self.table_ref}_{self.type}"

    @property
    def log_name(self) -> str:
        return f"{self.table_ref}_{self.type}.log"
