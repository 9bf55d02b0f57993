"""File-backed trigger registry."""

import json
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from dbquery.common.exceptions import ErrorCode, trigger_handler_error
from dbquery.logging import get_logger
from dbquery.settings import _Settings, get_settings
from dbquery.triggers.models import TriggerDescriptor

logger = get_logger(__name__)


class FileTriggerProcessor:
    """Reads ``<project_dir>/triggers/<database>.json``.

    The registry is a JSON list of ``{"type", "database_ref", "table_ref"}``
    objects. A database without a registry file has no triggers.
    """

    def __init__(self, settings: Optional[_Settings] = None):
        self.settings = settings or get_settings()

    def registry_path(self, database_name: str) -> Path:
        return self.settings.triggers_dir / f"{database_name}.json"

    async def get_triggers(self, database_name: str) -> List[TriggerDescriptor]:
        path = self.registry_path(database_name)
        if not path.exists():
            logger.debug("No trigger registry", extra={"path": str(path)})
            return []

        try:
            entries = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(entries, list):
                raise ValueError("registry must contain a JSON list")
            triggers = [TriggerDescriptor.model_validate(entry) for entry in entries]
        except (ValueError, PydanticValidationError) as exc:
            raise trigger_handler_error(
                f"Invalid trigger registry: {path}",
                path=str(path),
                error_code=ErrorCode.CONFIG_INVALID,
                cause=exc,
            ) from exc

        logger.info(
            "Triggers loaded",
            extra={"database_name": database_name, "trigger_count": len(triggers)},
        )
        return triggers
