"""Filter expression AST.

Nodes are frozen dataclasses forming a closed union, ``FilterNode``. Code that walks
the tree dispatches on the concrete node type and raises on anything else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

Scalar = Union[str, int, float, bool]

EQ = "=="
NE = "!="
LT = "<"
LTE = "<="
GT = ">"
GTE = ">="
IN = "IN"

OPERATORS = (EQ, NE, LT, LTE, GT, GTE, IN)
ORDERING_OPERATORS = (LT, LTE, GT, GTE)


@dataclass(frozen=True)
class Comparison:
    """Compare a metadata field against a literal (or a tuple of literals for IN)."""

    field: str
    op: str
    value: Scalar | tuple[Scalar, ...]

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"Unknown operator: {self.op}")
        if self.op == IN and not isinstance(self.value, tuple):
            raise ValueError("IN expects a tuple of literals")


@dataclass(frozen=True)
class And:
    left: FilterNode
    right: FilterNode


@dataclass(frozen=True)
class Or:
    left: FilterNode
    right: FilterNode


@dataclass(frozen=True)
class Not:
    child: FilterNode


FilterNode = Union[Comparison, And, Or, Not]


def fields(node: FilterNode) -> set[str]:
    """All metadata field names referenced by the expression."""
    if isinstance(node, Comparison):
        return {node.field}
    if isinstance(node, (And, Or)):
        return fields(node.left) | fields(node.right)
    if isinstance(node, Not):
        return fields(node.child)
    raise TypeError(f"Not a filter node: {node!r}")
