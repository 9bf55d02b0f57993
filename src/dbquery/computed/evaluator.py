"""Row-level evaluation of computed field instructions.

Instructions are SQL scalar expressions (``price * quantity``,
``first_name || ' ' || last_name``). They are parsed once with SQLGlot and
evaluated against each row by walking the expression tree. NULL handling
follows SQL: arithmetic and ``||`` over NULL yield NULL, division by zero
yields NULL.
"""

import functools
import operator
from typing import Any, Callable, Dict, List, Mapping, Optional

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError

from dbquery.common.exceptions import ErrorCode, computed_field_error


@functools.lru_cache(maxsize=256)
def parse_instruction(instruction: str) -> exp.Expression:
    """Parse an instruction into a SQLGlot expression tree.

    Raises:
        ComputedFieldError: If the instruction is empty or not valid SQL
    """
    if not instruction or not instruction.strip():
        raise computed_field_error("Computed field instruction must be a non-empty string.")
    try:
        parsed = sqlglot.parse_one(instruction)
    except ParseError as exc:
        raise computed_field_error(
            f"Cannot parse computed field instruction: {instruction}",
            instruction=instruction,
            cause=exc,
        ) from exc
    if parsed is None:
        raise computed_field_error(
            f"Cannot parse computed field instruction: {instruction}",
            instruction=instruction,
        )
    return parsed


def column_references(instruction: str) -> List[str]:
    """Return referenced column names in first-seen order, without duplicates."""
    seen: Dict[str, None] = {}
    for column in parse_instruction(instruction).find_all(exp.Column, bfs=False):
        if column.name:
            seen.setdefault(column.name, None)
    return list(seen)


_ARITHMETIC: Dict[type, Callable[[Any, Any], Any]] = {
    exp.Add: operator.add,
    exp.Sub: operator.sub,
    exp.Mul: operator.mul,
}

_COMPARISON: Dict[type, Callable[[Any, Any], Any]] = {
    exp.EQ: operator.eq,
    exp.NEQ: operator.ne,
    exp.GT: operator.gt,
    exp.GTE: operator.ge,
    exp.LT: operator.lt,
    exp.LTE: operator.le,
}

_STRING_FUNCTIONS: Dict[type, Callable[[Any], Any]] = {
    exp.Upper: lambda v: str(v).upper(),
    exp.Lower: lambda v: str(v).lower(),
    exp.Length: lambda v: len(str(v)),
    exp.Abs: abs,
}


def _literal(node: exp.Literal) -> Any:
    if node.is_string:
        return node.this
    text = str(node.this)
    try:
        return int(text)
    except ValueError:
        return float(text)


def _concat_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class RowEvaluator:
    """Evaluates a parsed instruction against one row."""

    def __init__(self, row: Mapping[str, Any]):
        self.row = row

    def evaluate(self, node: exp.Expression) -> Any:
        if isinstance(node, exp.Column):
            return self.row.get(node.name)
        if isinstance(node, exp.Literal):
            return _literal(node)
        if isinstance(node, exp.Null):
            return None
        if isinstance(node, exp.Boolean):
            return bool(node.this)
        if isinstance(node, exp.Paren):
            return self.evaluate(node.this)
        if isinstance(node, exp.Neg):
            value = self.evaluate(node.this)
            return None if value is None else -value

        for node_type, func in _ARITHMETIC.items():
            if isinstance(node, node_type):
                return self._binary(node, func)
        if isinstance(node, exp.Div):
            return self._binary(node, self._divide)
        if isinstance(node, exp.Mod):
            return self._binary(node, lambda a, b: None if b == 0 else a % b)
        for node_type, func in _COMPARISON.items():
            if isinstance(node, node_type):
                return self._binary(node, func)

        if isinstance(node, exp.And):
            return self._truthy(node.left) and self._truthy(node.right)
        if isinstance(node, exp.Or):
            return self._truthy(node.left) or self._truthy(node.right)
        if isinstance(node, exp.Not):
            value = self.evaluate(node.this)
            return None if value is None else not value

        if isinstance(node, exp.DPipe):
            return self._binary(node, lambda a, b: _concat_text(a) + _concat_text(b))
        if isinstance(node, exp.Concat):
            parts = [self.evaluate(arg) for arg in node.expressions]
            return "".join(_concat_text(part) for part in parts if part is not None)
        if isinstance(node, exp.Coalesce):
            for arg in [node.this, *node.expressions]:
                value = self.evaluate(arg)
                if value is not None:
                    return value
            return None
        if isinstance(node, exp.Round):
            value = self.evaluate(node.this)
            decimals = node.args.get("decimals")
            digits = self.evaluate(decimals) if decimals is not None else 0
            return None if value is None else round(value, int(digits or 0))
        for node_type, func in _STRING_FUNCTIONS.items():
            if isinstance(node, node_type):
                value = self.evaluate(node.this)
                return None if value is None else func(value)

        if isinstance(node, exp.Case):
            for branch in node.args.get("ifs") or []:
                if self._truthy(branch.this):
                    return self.evaluate(branch.args["true"])
            default = node.args.get("default")
            return self.evaluate(default) if default is not None else None
        if isinstance(node, exp.If):
            branch = node.args["true"] if self._truthy(node.this) else node.args.get("false")
            return self.evaluate(branch) if branch is not None else None

        raise computed_field_error(
            f"Unsupported expression in computed field instruction: {node.sql()}",
            error_code=ErrorCode.COMPUTE_UNSUPPORTED,
            details={"node": type(node).__name__},
        )

    def _binary(self, node: exp.Binary, func: Callable[[Any, Any], Any]) -> Any:
        left = self.evaluate(node.left)
        right = self.evaluate(node.right)
        if left is None or right is None:
            return None
        return func(left, right)

    def _truthy(self, node: exp.Expression) -> bool:
        return bool(self.evaluate(node))

    @staticmethod
    def _divide(left: Any, right: Any) -> Optional[Any]:
        if right == 0:
            return None
        return left / right


def evaluate_instruction(instruction: str, row: Mapping[str, Any]) -> Any:
    """Evaluate ``instruction`` against ``row``."""
    return RowEvaluator(row).evaluate(parse_instruction(instruction))
