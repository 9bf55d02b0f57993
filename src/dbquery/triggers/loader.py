"""Trigger handler resolution from Python modules in the project directory."""

from importlib.util import module_from_spec, spec_from_file_location
from pathlib import Path
from typing import Any, Callable, Optional

from dbquery.common.exceptions import trigger_handler_error
from dbquery.logging import get_logger
from dbquery.settings import _Settings, get_settings
from dbquery.triggers.models import TriggerDescriptor

logger = get_logger(__name__)


class ModuleTriggerHandlerLoader:
    """Loads ``<project_dir>/triggers/<database_ref>_<table_ref>_<type>.py``.

    The module is executed fresh on every call so edits to a handler are
    picked up without restarting the process. The entry point is the
    attribute named by ``settings.trigger_handler_name`` (``handle`` by
    default) and may be a plain function or a coroutine function.

    Example handler module::

        async def handle(db, old_data, new_data):
            print(f"user {new_data['id']} is about to change")
    """

    def __init__(self, settings: Optional[_Settings] = None):
        self.settings = settings or get_settings()

    def handler_path(self, descriptor: TriggerDescriptor) -> Path:
        return self.settings.triggers_dir / f"{descriptor.module_name}.py"

    def load(self, descriptor: TriggerDescriptor) -> Callable[..., Any]:
        """Resolve the handler callable for ``descriptor``.

        Raises:
            TriggerHandlerError: If the module is missing, cannot be imported
                or has no callable entry point
        """
        path = self.handler_path(descriptor)
        event = str(descriptor.type)
        if not path.is_file():
            raise trigger_handler_error(
                f"Trigger handler module not found for '{descriptor.module_name}'",
                event=event,
                path=str(path),
            )

        spec = spec_from_file_location(f"dbquery_triggers.{descriptor.module_name}", path)
        if spec is None or spec.loader is None:
            raise trigger_handler_error(
                f"Cannot load trigger handler module {path}",
                event=event,
                path=str(path),
            )

        module = module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            raise trigger_handler_error(
                f"Trigger handler module {path.name} failed to import",
                event=event,
                path=str(path),
                cause=exc,
            ) from exc

        handler = getattr(module, self.settings.trigger_handler_name, None)
        if not callable(handler):
            raise trigger_handler_error(
                f"Trigger handler module {path.name} defines no callable "
                f"'{self.settings.trigger_handler_name}'",
                event=event,
                path=str(path),
            )

        logger.debug("Trigger handler loaded", extra={"event": event, "path": str(path)})
        return handler
