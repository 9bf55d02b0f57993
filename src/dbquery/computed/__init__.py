"""Computed fields: descriptors, evaluation and column expansion."""

from dbquery.computed.expansion import ColumnRewrite, ComputedFieldExpansion
from dbquery.computed.models import ComputedFieldDescriptor
from dbquery.computed.processor import FileComputedFieldProcessor

__all__ = [
    "ComputedFieldDescriptor",
    "ComputedFieldExpansion",
    "ColumnRewrite",
    "FileComputedFieldProcessor",
]
