"""Base model class for all dbquery models."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class DQBaseModel(BaseModel):
    """Base model for dbquery descriptors and collaborator payloads.

    Enums are stored as their plain values, so a model dumps to JSON-ready
    data without custom encoders. Fields with a wire alias (``orderBy``,
    ``isGroup``, ...) accept either spelling on input.
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_assignment=True,
        validate_default=True,
        populate_by_name=True,
    )

    def to_dict(self) -> Dict[str, Any]:
        """Python field names, None values omitted."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_wire(self) -> Dict[str, Any]:
        """Alias field names, every field present; the engine protocol shape."""
        return self.model_dump(mode="json", by_alias=True)
