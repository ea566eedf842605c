"""Evaluate parsed filter expressions against quotes."""

from __future__ import annotations

from typing import Iterable

from tickerscope.exceptions import FilterSyntaxError
from tickerscope.filters.fields import resolve_field
from tickerscope.filters.parser import (And, Comparison, ExprNode,
                                        FieldReference, NumberLiteral, Or,
                                        parse_expression)
from tickerscope.types import Quote

# Tolerance for "=" and "!=" so display-rounded literals still match
EQUALITY_EPSILON = 0.0001


def compare(left: float, operator: str, right: float) -> bool:
    """Apply a comparison operator to two floats.

    :raises FilterSyntaxError: If the operator is not recognized.
    """
    if operator == "<":
        return left < right
    if operator == ">":
        return left > right
    if operator == "<=":
        return left <= right
    if operator == ">=":
        return left >= right
    if operator in ("=", "=="):
        return abs(left - right) < EQUALITY_EPSILON
    if operator == "!=":
        return abs(left - right) >= EQUALITY_EPSILON
    raise FilterSyntaxError(f"Unknown operator: {operator}")


def _evaluate_operand(node: ExprNode, quote: Quote) -> bool:
    if isinstance(node, Comparison):
        value = resolve_field(quote, node.left.name)
        if value is None:
            return False
        return compare(value, node.operator, node.right.value)
    if isinstance(node, (NumberLiteral, FieldReference)):
        raise FilterSyntaxError(
            f"Cannot evaluate a bare {type(node).__name__} as a condition"
        )
    raise TypeError(f"Unsupported expression node: {node!r}")


def evaluate(node: ExprNode, quote: Quote) -> bool:
    """Evaluate an expression tree against one quote.

    A comparison on a field the quote does not have is ``False``. The
    left-deep and/or chain built by the parser is walked iteratively, so
    long filters do not grow the call stack.

    :param node: Root of the expression tree.
    :param quote: Quote supplying field values.
    :returns: Whether the quote passes the filter.
    """
    spine: list[And | Or] = []
    while isinstance(node, (And, Or)):
        spine.append(node)
        node = node.left

    result = _evaluate_operand(node, quote)
    for parent in reversed(spine):
        # Short-circuit: the right side only matters when it can change the result
        if isinstance(parent, And) and result:
            result = evaluate(parent.right, quote)
        elif isinstance(parent, Or) and not result:
            result = evaluate(parent.right, quote)
    return result


class CompiledFilter:
    """A filter expression parsed once and reusable across many quotes.

    An empty expression compiles to a filter that matches everything.

    :param expression: Filter text, e.g. ``"pe < 20 and yield > 2"``.
    :raises FilterSyntaxError: If the text is not a valid expression.
    """

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.tree: ExprNode | None = None
        if expression.strip():
            self.tree = parse_expression(expression)

    def matches(self, quote: Quote) -> bool:
        if self.tree is None:
            return True
        return evaluate(self.tree, quote)

    __call__ = matches

    def filter(self, quotes: Iterable[Quote]) -> list[Quote]:
        """Return the quotes that pass, preserving their order."""
        return [q for q in quotes if self.matches(q)]

    def __repr__(self) -> str:
        return f"CompiledFilter({self.expression!r})"


def compile_filter(expression: str) -> CompiledFilter:
    """Parse a filter expression once for repeated evaluation."""
    return CompiledFilter(expression)


def eval_filter(expression: str, quote: Quote) -> bool:
    """Evaluate filter text against a single quote.

    :param expression: Filter text; empty text matches every quote.
    :param quote: Quote to test.
    :returns: True if the quote passes.
    :raises FilterSyntaxError: If the expression is malformed.
    """
    return CompiledFilter(expression).matches(quote)
