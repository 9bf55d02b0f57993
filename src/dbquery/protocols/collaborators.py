"""Collaborator protocol definitions.

These protocols describe the external components the orchestration layer
talks to. Default implementations ship with dbquery, but any object with
the same shape can be injected into ``Database``.
"""

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Union, runtime_checkable

from dbquery.constants.dml import EngineAction

if TYPE_CHECKING:
    from dbquery.computed.models import ComputedFieldDescriptor
    from dbquery.execution.types import EngineResponse
    from dbquery.triggers.models import TriggerDescriptor


@runtime_checkable
class ExecutionEngine(Protocol):
    """Compiles a serialized DML descriptor into a store query and runs it."""

    async def run(
        self,
        action: EngineAction,
        dml: Optional[Dict[str, Any]] = None,
    ) -> "EngineResponse":
        """Run an engine action.

        Args:
            action: connect, disconnect or execute
            dml: Serialized descriptor, required for execute

        Returns:
            EngineResponse with status 200 on success
        """
        ...


@runtime_checkable
class ComputedFieldProcessor(Protocol):
    """Source of computed field descriptors and their evaluation."""

    async def get_computed_fields(self, database_name: str) -> List["ComputedFieldDescriptor"]:
        ...

    def extract_dependencies(self, instruction: str) -> List[str]:
        """Return the real column names an instruction reads."""
        ...

    def computed_fields(
        self,
        rows: Sequence[Dict[str, Any]],
        descriptors: Sequence["ComputedFieldDescriptor"],
    ) -> Union[List[Dict[str, Any]], Awaitable[List[Dict[str, Any]]]]:
        """Return new rows with every requested computed column materialized."""
        ...


@runtime_checkable
class TriggerProcessor(Protocol):
    """Registry of trigger descriptors for a database."""

    async def get_triggers(self, database_name: str) -> List["TriggerDescriptor"]:
        ...


@runtime_checkable
class TriggerHandlerLoader(Protocol):
    """Resolves the callable registered for a trigger descriptor."""

    def load(self, descriptor: "TriggerDescriptor") -> Callable[..., Any]:
        ...


