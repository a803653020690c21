"""Translate filter ASTs into backend-native filter syntax.

Each translator raises ``NativeFilterUnavailable`` for constructs the backend cannot
express with the same semantics as ``docstore.filters.evaluator``. Callers fall back
to in-process evaluation in that case.
"""

from __future__ import annotations

from typing import Any

from docstore.exceptions import NativeFilterUnavailable
from docstore.filters.ast import (
    EQ,
    GT,
    GTE,
    IN,
    LT,
    LTE,
    NE,
    ORDERING_OPERATORS,
    And,
    Comparison,
    FilterNode,
    Not,
    Or,
)

_CHROMA_OPS = {EQ: "$eq", LT: "$lt", LTE: "$lte", GT: "$gt", GTE: "$gte", IN: "$in"}

_RANGE_KEYS = {LT: "lt", LTE: "lte", GT: "gt", GTE: "gte"}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# Chroma


def to_chroma_where(node: FilterNode) -> dict:
    """Build a Chroma ``where`` clause.

    Chroma drops documents that lack a key under every operator, so ``!=`` and
    ``NOT`` (which must match missing fields) are not translated.
    """
    if isinstance(node, Comparison):
        if node.op == NE:
            raise NativeFilterUnavailable("Chroma cannot express '!=' on missing fields")
        if node.op in ORDERING_OPERATORS and not _is_number(node.value):
            raise NativeFilterUnavailable("Chroma only orders numeric values")
        if node.op == IN:
            if len({type(v) for v in node.value}) > 1:
                raise NativeFilterUnavailable("Chroma $in requires values of one type")
            return {node.field: {"$in": list(node.value)}}
        return {node.field: {_CHROMA_OPS[node.op]: node.value}}
    if isinstance(node, (And, Or)):
        key = "$and" if isinstance(node, And) else "$or"
        clauses = []
        for child in (node.left, node.right):
            translated = to_chroma_where(child)
            # Flatten same-kind chains: a && b && c -> {"$and": [a, b, c]}
            if type(child) is type(node):
                clauses.extend(translated[key])
            else:
                clauses.append(translated)
        return {key: clauses}
    if isinstance(node, Not):
        raise NativeFilterUnavailable("Chroma has no negation operator")
    raise TypeError(f"Not a filter node: {node!r}")


# Qdrant


def to_qdrant_filter(node: FilterNode, prefix: str = ""):
    """Build a ``qdrant_client.models.Filter``.

    ``prefix`` is prepended to field names, e.g. ``"metadata."`` for nested payloads.
    """
    from qdrant_client import models

    condition = _qdrant_condition(node, prefix, models)
    if isinstance(condition, models.Filter):
        return condition
    return models.Filter(must=[condition])


def _qdrant_condition(node: FilterNode, prefix: str, models):
    if isinstance(node, Comparison):
        key = f"{prefix}{node.field}"
        if node.op == EQ:
            return _qdrant_match(key, node.value, models)
        if node.op == NE:
            # must_not also matches points without the key
            return models.Filter(must_not=[_qdrant_match(key, node.value, models)])
        if node.op == IN:
            values = list(node.value)
            if all(isinstance(v, str) for v in values) or all(
                isinstance(v, int) and not isinstance(v, bool) for v in values
            ):
                return models.FieldCondition(key=key, match=models.MatchAny(any=values))
            return models.Filter(should=[_qdrant_match(key, v, models) for v in values])
        if not _is_number(node.value):
            raise NativeFilterUnavailable("Qdrant ranges only apply to numeric values")
        return models.FieldCondition(
            key=key, range=models.Range(**{_RANGE_KEYS[node.op]: node.value})
        )
    if isinstance(node, And):
        return models.Filter(
            must=[
                _qdrant_condition(node.left, prefix, models),
                _qdrant_condition(node.right, prefix, models),
            ]
        )
    if isinstance(node, Or):
        return models.Filter(
            should=[
                _qdrant_condition(node.left, prefix, models),
                _qdrant_condition(node.right, prefix, models),
            ]
        )
    if isinstance(node, Not):
        return models.Filter(must_not=[_qdrant_condition(node.child, prefix, models)])
    raise TypeError(f"Not a filter node: {node!r}")


def _qdrant_match(key: str, value: Any, models):
    if isinstance(value, float):
        # MatchValue only takes str/int/bool; equality on a float is a closed range.
        return models.FieldCondition(key=key, range=models.Range(gte=value, lte=value))
    return models.FieldCondition(key=key, match=models.MatchValue(value=value))
