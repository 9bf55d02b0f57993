"""Database handle: collaborator wiring and table builders."""

from typing import List, Optional

from dbquery.computed import ComputedFieldDescriptor, FileComputedFieldProcessor
from dbquery.constants.dml import EngineAction
from dbquery.execution import EngineResponse, ExecutionOrchestrator, SubprocessEngine, raise_for_response
from dbquery.logging import get_logger
from dbquery.operations import DML
from dbquery.protocols import (
    ComputedFieldProcessor,
    ExecutionEngine,
    TriggerHandlerLoader,
    TriggerProcessor,
)
from dbquery.query_builder import Table
from dbquery.settings import _Settings, get_settings
from dbquery.triggers import FileTriggerProcessor, ModuleTriggerHandlerLoader, Trigger, TriggerDescriptor
from dbquery.utils import retry_with_backoff

logger = get_logger(__name__)


class Database:
    """Entry point for building and running queries against one database.

    Collaborators default to the file and subprocess based implementations;
    any object satisfying the matching protocol can be injected instead.

    Computed fields and triggers are opt-in: ``use_computes()`` and
    ``use_triggers()`` load their registries once, and every table handle
    created afterwards shares the loaded descriptors read-only.

    Example:
        >>> db = Database("shop")
        >>> await db.connect()
        >>> await db.use_triggers()
        >>> users = db.table("users")
        >>> await users.where("age", ">", 18).order_by("name").get()
        >>> await users.insert([{"name": "Ada", "age": 36}])
        >>> await db.disconnect()

    Attributes:
        name: Database name sent with every engine invocation
        engine: Execution engine collaborator
        computed_processor: Computed field collaborator
        trigger_processor: Trigger registry collaborator
        trigger_loader: Trigger handler resolver
        settings: Application settings
    """

    def __init__(
        self,
        name: str,
        engine: Optional[ExecutionEngine] = None,
        computed_processor: Optional[ComputedFieldProcessor] = None,
        trigger_processor: Optional[TriggerProcessor] = None,
        trigger_loader: Optional[TriggerHandlerLoader] = None,
        settings: Optional[_Settings] = None,
    ):
        self.name = name
        self.settings = settings or get_settings()
        self.engine = engine or SubprocessEngine(name, self.settings)
        self.computed_processor = computed_processor or FileComputedFieldProcessor(self.settings)
        self.trigger_processor = trigger_processor or FileTriggerProcessor(self.settings)
        self.trigger_loader = trigger_loader or ModuleTriggerHandlerLoader(self.settings)
        self._computed_fields: Optional[List[ComputedFieldDescriptor]] = None
        self._triggers: Optional[List[TriggerDescriptor]] = None

    def __repr__(self) -> str:
        return f"Database({self.name!r})"

    @property
    def computes_enabled(self) -> bool:
        return self._computed_fields is not None

    @property
    def triggers_enabled(self) -> bool:
        return self._triggers is not None

    async def use_computes(self) -> "Database":
        """Load the computed field registry; later ``table()`` handles apply it."""
        fields = await self.computed_processor.get_computed_fields(self.name)
        self._computed_fields = list(fields)
        logger.info(
            "Computed fields enabled",
            extra={"database_name": self.name, "field_count": len(self._computed_fields)},
        )
        return self

    async def use_triggers(self) -> "Database":
        """Load the trigger registry; later ``table()`` handles run the hooks."""
        triggers = await self.trigger_processor.get_triggers(self.name)
        self._triggers = list(triggers)
        logger.info(
            "Triggers enabled",
            extra={"database_name": self.name, "trigger_count": len(self._triggers)},
        )
        return self

    async def connect(self) -> EngineResponse:
        """Ask the engine to open its connection to the database.

        Unreachable engines are retried with exponential backoff up to
        ``settings.connect_max_retries`` times.

        Raises:
            EngineError: If the engine answers with a non-success status
            DQError: ENGINE_UNAVAILABLE once the retries are exhausted
        """

        @retry_with_backoff(
            max_retries=self.settings.connect_max_retries,
            initial_delay=self.settings.connect_retry_delay_seconds,
            retry_condition=lambda exc: getattr(exc, "is_retryable", False),
        )
        async def _connect() -> EngineResponse:
            return await self.engine.run(EngineAction.CONNECT)

        response = await _connect()
        raise_for_response(response, EngineAction.CONNECT.value, self.settings)
        logger.info("Connected", extra={"database_name": self.name})
        return response

    async def disconnect(self) -> EngineResponse:
        response = await self.engine.run(EngineAction.DISCONNECT)
        raise_for_response(response, EngineAction.DISCONNECT.value, self.settings)
        logger.info("Disconnected", extra={"database_name": self.name})
        return response

    def table(self, name: str) -> Table:
        """Return a fresh builder for ``name`` selecting ``*``."""
        trigger = None
        if self._triggers is not None:
            trigger = Trigger(self, self.name, name, self._triggers, self.trigger_loader, self.settings)

        orchestrator = ExecutionOrchestrator(
            self.engine,
            self.name,
            name,
            computed_fields=self._computed_fields or (),
            computed_processor=self.computed_processor if self._computed_fields else None,
            trigger=trigger,
            settings=self.settings,
        )
        return Table(DML(database=self.name, table=name), orchestrator, self.settings)
