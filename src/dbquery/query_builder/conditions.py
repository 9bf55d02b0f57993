"""WHERE tree construction for the fluent builder.

Every method returns a new builder; the receiver is never modified. The
pending connective (set by ``and_()`` / ``or_()``) is builder state, not
descriptor state: it only decides how the next ``where`` call attaches.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Callable, Set, Union

from dbquery.common.exceptions import ErrorCode, validation_error
from dbquery.constants.dml import NULL_CHECK_OPERATORS, Connective, Operator
from dbquery.operations import DML, WhereCondition, WhereGroup, WhereNode

if TYPE_CHECKING:
    from dbquery.query_builder.table import Table

# Marks an omitted comparison value; None is a legitimate value
_MISSING: Any = object()


def normalize_operator(operator: Union[Operator, str]) -> Operator:
    """Map user input such as ``"not  like"`` onto an Operator.

    Raises:
        ValidationError: If the operator is not supported
    """
    if isinstance(operator, Operator):
        return operator
    text = " ".join(str(operator).split()).upper()
    try:
        return Operator(text)
    except ValueError:
        raise validation_error(
            f"Unsupported WHERE operator '{operator}'",
            field="operator",
            value=operator,
            error_code=ErrorCode.INVALID_ARGUMENT,
        ) from None


class ConditionBuilderMixin:
    """WHERE, OR WHERE, BETWEEN, IN, NULL checks and nested groups.

    Hosts must provide ``_clone()`` returning an independent copy of the
    builder and ``_scoped()`` returning a builder for the same table with
    an empty WHERE tree.
    """

    _dml: DML
    _pending: Connective

    def _clone(self) -> "Table":
        raise NotImplementedError

    def _scoped(self) -> "Table":
        raise NotImplementedError

    def _append(self, node: WhereNode, reset_pending: bool = True) -> "Table":
        clone = self._clone()
        clone._dml.where.append(node)
        if reset_pending:
            clone._pending = Connective.AND
        return clone

    def _condition(
        self,
        column: str,
        operator: Union[Operator, str],
        value: Any,
        connective: Connective,
    ) -> WhereCondition:
        if not column or not isinstance(column, str):
            raise validation_error(
                "WHERE column must be a non-empty string",
                field="column",
                value=column,
                error_code=ErrorCode.INVALID_ARGUMENT,
            )
        op = normalize_operator(operator)
        if op in NULL_CHECK_OPERATORS:
            value = None
        elif value is _MISSING:
            raise validation_error(
                f"Operator '{op.value}' on column '{column}' requires a value",
                field="value",
                error_code=ErrorCode.MISSING_CONDITION,
            )
        return WhereCondition(column=column, operator=op, value=value, connective=connective)

    def where(self, column: str, operator: Union[Operator, str], value: Any = _MISSING) -> "Table":
        """Append a condition joined by the pending connective (AND by default).

        Example:
            >>> users.where("age", ">", 18).where("status", "=", "active")
        """
        return self._append(self._condition(column, operator, value, self._pending))

    def or_where(self, column: str, operator: Union[Operator, str], value: Any = _MISSING) -> "Table":
        """Append a condition joined by OR; the pending connective is left untouched."""
        node = self._condition(column, operator, value, Connective.OR)
        return self._append(node, reset_pending=False)

    def and_(self) -> "Table":
        clone = self._clone()
        clone._pending = Connective.AND
        return clone

    def or_(self) -> "Table":
        """Make the next ``where`` call attach with OR."""
        clone = self._clone()
        clone._pending = Connective.OR
        return clone

    def where_between(self, column: str, bounds: Sequence[Any]) -> "Table":
        """Append ``column BETWEEN lo AND hi``.

        Skipped, not rejected, when either bound is missing or None.
        """
        if isinstance(bounds, (str, bytes)) or not isinstance(bounds, Sequence) or len(bounds) < 2:
            return self._clone()
        low, high = bounds[0], bounds[1]
        if low is None or high is None:
            return self._clone()
        return self.where(column, Operator.BETWEEN, [low, high])

    def where_in(self, column: str, values: Union[Sequence[Any], Set[Any]]) -> "Table":
        """Append ``column IN (...)``; skipped when ``values`` is empty or not a collection."""
        if isinstance(values, (str, bytes)) or not isinstance(values, (Sequence, set, frozenset)):
            return self._clone()
        if not values:
            return self._clone()
        return self.where(column, Operator.IN, list(values))

    def where_null(self, column: str) -> "Table":
        return self.where(column, Operator.IS_NULL)

    def where_not_null(self, column: str) -> "Table":
        return self.where(column, Operator.IS_NOT_NULL)

    def where_group(self, callback: Callable[["Table"], "Table"]) -> "Table":
        """Append a parenthesized group built by ``callback``.

        The callback receives a builder for the same table with an empty
        WHERE tree and must return the builder it derived from it.

        Example:
            >>> users.where_group(
            ...     lambda q: q.where("age", ">", 25).or_where("name", "=", "Jane")
            ... ).where("status", "=", "active")

        Raises:
            ValidationError: If the callback does not return a builder
        """
        result = callback(self._scoped())
        if not isinstance(result, ConditionBuilderMixin):
            raise validation_error(
                "where_group callback must return the builder it was given",
                field="callback",
                value=type(result).__name__,
                error_code=ErrorCode.INVALID_ARGUMENT,
            )
        group = WhereGroup(
            connective=self._pending,
            conditions=[node.model_copy(deep=True) for node in result._dml.where],
        )
        return self._append(group)
