"""WHERE tree nodes.

A WHERE clause is an ordered sequence of nodes. Each node records how it
combines with the node before it (its connective); groups wrap a nested,
self-contained sequence of nodes.
"""

from typing import Any, List, Literal, Union

from pydantic import Field

from dbquery.constants.dml import Connective, Operator
from dbquery.types.base import DQBaseModel


class WhereCondition(DQBaseModel):
    """Leaf comparison ``column operator value``.

    ``value`` is None for the NULL-check operators.
    """
    column: str = Field(..., min_length=1)
    operator: Operator
    value: Any = None
    connective: Connective = Field(default=Connective.AND, alias="type")
    is_group: Literal[False] = Field(default=False, alias="isGroup")


class WhereGroup(DQBaseModel):
    """Parenthesized sub-tree combined with its siblings via ``connective``."""
    connective: Connective = Field(default=Connective.AND, alias="type")
    is_group: Literal[True] = Field(default=True, alias="isGroup")
    conditions: List[Union[WhereCondition, "WhereGroup"]] = Field(default_factory=list)


WhereGroup.model_rebuild()

WhereNode = Union[WhereCondition, WhereGroup]
