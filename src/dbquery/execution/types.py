"""Execution engine response types."""

from typing import Any, Optional

from pydantic import Field

from dbquery.constants.dml import STATUS_OK, STATUS_WARNING
from dbquery.types.base import DQBaseModel


class EngineResponse(DQBaseModel):
    """Structured result returned by the execution engine.

    Attributes:
        status: 200 on success; any other value is a failure, 600 a warning-tier one
        data: Result rows for execute, action payload otherwise
        message: Failure description, may carry a ``[help]`` section
    """
    status: int
    data: Optional[Any] = Field(default=None)
    message: Optional[str] = Field(default=None)

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def is_warning(self) -> bool:
        return self.status == STATUS_WARNING

    @property
    def rows(self) -> list:
        """Result rows, empty when the engine returned none."""
        if isinstance(self.data, list):
            return self.data
        return []
