"""Per-table trigger resolution and execution."""

import asyncio
import inspect
import weakref
from contextlib import asynccontextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union

from dbquery.constants.dml import EventPhase, TriggerEvent
from dbquery.logging import get_logger
from dbquery.protocols import TriggerHandlerLoader
from dbquery.settings import _Settings, get_settings
from dbquery.triggers.interceptor import TriggerInterceptor
from dbquery.triggers.models import TriggerDescriptor

logger = get_logger(__name__)

# stdout/stderr are process-wide, so captured handler runs on one loop take turns
_capture_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = (
    weakref.WeakKeyDictionary()
)


def _capture_lock() -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    lock = _capture_locks.get(loop)
    if lock is None:
        lock = _capture_locks[loop] = asyncio.Lock()
    return lock


_capturing: ContextVar[bool] = ContextVar("dbquery_trigger_capturing", default=False)


@asynccontextmanager
async def _exclusive_output() -> AsyncIterator[None]:
    """Hold the capture lock unless a handler run on this task already holds it."""
    if _capturing.get():
        # Nested hooked mutation issued from inside a handler
        yield
        return
    async with _capture_lock():
        token = _capturing.set(True)
        try:
            yield
        finally:
            _capturing.reset(token)


class Trigger:
    """Triggers registered for one table.

    The descriptor list is filtered to ``table_name`` once at construction
    and never modified afterwards.

    Attributes:
        instance: Handle passed to handlers as ``db``
        database_name: Database the table belongs to
        table_name: Table whose triggers are held
        triggers: Descriptors registered for this table
        loader: Resolves the handler callable of a descriptor
    """

    def __init__(
        self,
        instance: Any,
        database_name: str,
        table_name: str,
        triggers: Sequence[TriggerDescriptor],
        loader: TriggerHandlerLoader,
        settings: Optional[_Settings] = None,
    ):
        self.instance = instance
        self.database_name = database_name
        self.table_name = table_name
        self.triggers: List[TriggerDescriptor] = [t for t in triggers if t.table_ref == table_name]
        self.loader = loader
        self.settings = settings or get_settings()

    def get(self, event: Union[TriggerEvent, str]) -> Optional[TriggerDescriptor]:
        """Return the trigger registered for an exact event key, or None."""
        key = TriggerEvent(event).value
        for descriptor in self.triggers:
            if descriptor.type == key:
                return descriptor
        return None

    def has_phase(self, phase: EventPhase) -> bool:
        return self.get(phase.before) is not None or self.get(phase.after) is not None

    def log_path(self, descriptor: TriggerDescriptor) -> Path:
        return self.settings.trigger_logs_dir / self.database_name / descriptor.log_name

    async def execute(
        self,
        event: Union[TriggerEvent, str],
        row: Dict[str, Any],
        new_row: Optional[Dict[str, Any]] = None,
    ) -> Optional[TriggerInterceptor]:
        """Run the handler registered for ``event`` with its output captured.

        Args:
            event: Exact event key, e.g. ``beforeAdd``
            row: Row as it is before the mutation, passed as ``old_data``
            new_row: Row as it will be after the mutation, passed as
                ``new_data``; defaults to ``row``

        Returns:
            The interceptor holding the handler output, or None when no
            trigger is registered for ``event``

        Raises:
            TriggerHandlerError: If the handler cannot be resolved
            Exception: Anything the handler raises, unchanged
        """
        descriptor = self.get(event)
        if descriptor is None:
            return None

        handler = self.loader.load(descriptor)
        interceptor = TriggerInterceptor(descriptor, self.log_path(descriptor))

        logger.info(
            "Executing trigger",
            extra={"event": descriptor.type, "table_name": self.table_name},
        )
        try:
            async with _exclusive_output():
                with interceptor.capture():
                    result = handler(
                        db=self.instance,
                        old_data=row,
                        new_data=new_row if new_row is not None else row,
                    )
                    if inspect.isawaitable(result):
                        await result
        except Exception:
            interceptor.discard()
            raise

        return interceptor
