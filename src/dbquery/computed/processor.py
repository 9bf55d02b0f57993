"""File-backed computed field processor.

Computed field descriptors live in ``<project_dir>/computes/<database>.json``
as a JSON list of ``{"column", "instruction", "table_ref"?}`` objects.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from dbquery.common.exceptions import ErrorCode, computed_field_error
from dbquery.computed.evaluator import column_references, evaluate_instruction
from dbquery.computed.models import ComputedFieldDescriptor
from dbquery.logging import get_logger
from dbquery.settings import _Settings, get_settings

logger = get_logger(__name__)


class FileComputedFieldProcessor:
    """Loads computed field descriptors from the project directory and evaluates them.

    Example:
        >>> processor = FileComputedFieldProcessor()
        >>> processor.extract_dependencies("price * quantity")
        ['price', 'quantity']
        >>> processor.computed_fields(
        ...     [{"price": 2, "quantity": 3}],
        ...     [ComputedFieldDescriptor(column="total", instruction="price * quantity")],
        ... )
        [{'price': 2, 'quantity': 3, 'total': 6}]
    """

    def __init__(self, settings: Optional[_Settings] = None):
        self.settings = settings or get_settings()

    def registry_path(self, database_name: str) -> Path:
        return self.settings.computes_dir / f"{database_name}.json"

    async def get_computed_fields(self, database_name: str) -> List[ComputedFieldDescriptor]:
        """Read the computed field registry of a database.

        A missing registry file means the database has no computed fields.

        Raises:
            ComputedFieldError: If the registry is not a valid descriptor list
        """
        path = self.registry_path(database_name)
        if not path.exists():
            logger.debug("No computed field registry", extra={"path": str(path)})
            return []

        try:
            entries = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(entries, list):
                raise ValueError("registry must contain a JSON list")
            fields = [ComputedFieldDescriptor.model_validate(entry) for entry in entries]
        except (ValueError, PydanticValidationError) as exc:
            raise computed_field_error(
                f"Invalid computed field registry: {path}",
                error_code=ErrorCode.CONFIG_INVALID,
                details={"path": str(path)},
                cause=exc,
            ) from exc

        logger.info(
            "Computed fields loaded",
            extra={"database_name": database_name, "field_count": len(fields)},
        )
        return fields

    def extract_dependencies(self, instruction: str) -> List[str]:
        return column_references(instruction)

    def computed_fields(
        self,
        rows: Sequence[Dict[str, Any]],
        descriptors: Sequence[ComputedFieldDescriptor],
    ) -> List[Dict[str, Any]]:
        result: List[Dict[str, Any]] = []
        for row in rows:
            enriched = dict(row)
            for descriptor in descriptors:
                enriched[descriptor.column] = evaluate_instruction(descriptor.instruction, row)
            result.append(enriched)
        return result
