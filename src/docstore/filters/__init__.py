"""Filter expression language: parsing, binding, evaluation, translation."""

from docstore.filters.ast import And, Comparison, FilterNode, Not, Or
from docstore.filters.evaluator import compile_predicate, evaluate
from docstore.filters.parser import bind_fields, parse_filter, to_expression

__all__ = [
    "And",
    "Comparison",
    "FilterNode",
    "Not",
    "Or",
    "bind_fields",
    "compile_predicate",
    "evaluate",
    "parse_filter",
    "to_expression",
]
