"""Public entry point of dbquery."""

from dbquery.api.database import Database

__all__ = ["Database"]
