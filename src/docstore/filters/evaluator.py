"""In-process evaluation of filter expressions against document metadata."""

from __future__ import annotations

import operator
from typing import Any, Callable, Mapping

from docstore.filters.ast import EQ, GT, GTE, IN, LT, LTE, NE, And, Comparison, FilterNode, Not, Or

Predicate = Callable[[Mapping[str, Any]], bool]

_ORDERING = {
    LT: operator.lt,
    LTE: operator.le,
    GT: operator.gt,
    GTE: operator.ge,
}

_MISSING = object()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def values_equal(a: Any, b: Any) -> bool:
    """Strict equality: booleans only equal booleans, numbers compare numerically."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        return a == b
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return False


def _compare(node: Comparison, metadata: Mapping[str, Any]) -> bool:
    actual = metadata.get(node.field, _MISSING)
    if actual is _MISSING or actual is None:
        # An absent field is "not equal" to anything and matches nothing else.
        return node.op == NE
    if node.op == EQ:
        return values_equal(actual, node.value)
    if node.op == NE:
        return not values_equal(actual, node.value)
    if node.op == IN:
        return any(values_equal(actual, v) for v in node.value)
    expected = node.value
    comparable = (_is_number(actual) and _is_number(expected)) or (
        isinstance(actual, str) and isinstance(expected, str)
    )
    if not comparable:
        return False
    return _ORDERING[node.op](actual, expected)


def evaluate(node: FilterNode, metadata: Mapping[str, Any]) -> bool:
    """Evaluate ``node`` against a metadata mapping. Pure, short-circuiting."""
    if isinstance(node, Comparison):
        return _compare(node, metadata)
    if isinstance(node, And):
        return evaluate(node.left, metadata) and evaluate(node.right, metadata)
    if isinstance(node, Or):
        return evaluate(node.left, metadata) or evaluate(node.right, metadata)
    if isinstance(node, Not):
        return not evaluate(node.child, metadata)
    raise TypeError(f"Not a filter node: {node!r}")


def compile_predicate(node: FilterNode | None) -> Predicate:
    """Return a ``metadata -> bool`` callable for ``node``. ``None`` accepts everything."""
    if node is None:
        return lambda metadata: True
    return lambda metadata: evaluate(node, metadata)
