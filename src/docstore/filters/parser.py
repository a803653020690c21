"""Filter expression parser and canonical serializer.

Grammar, lowest precedence first::

    or_expr    := and_expr (("||" | OR) and_expr)*
    and_expr   := unary (("&&" | AND) unary)*
    unary      := (NOT | "!") unary | primary
    primary    := "(" or_expr ")" | comparison
    comparison := IDENT op literal | IDENT [NOT] IN "(" literal ("," literal)* ")"

Keywords are case-insensitive. Strings are single-quoted.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from docstore.exceptions import FilterParseError, UnfilterableFieldError
from docstore.filters.ast import (
    IN,
    OPERATORS,
    And,
    Comparison,
    FilterNode,
    Not,
    Or,
    Scalar,
    fields,
)

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    | (?P<number>[-+]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][-+]?\d+)?)
    | (?P<string>'(?:[^'\\]|\\.)*')
    | (?P<op>==|!=|<=|>=|<|>|&&|\|\||!)
    | (?P<lparen>\()
    | (?P<rparen>\))
    | (?P<comma>,)
    | (?P<word>[A-Za-z_][A-Za-z0-9_]*)
    """,
    re.VERBOSE,
)

_KEYWORDS = {"and", "or", "not", "in", "true", "false"}
_ESCAPE_RE = re.compile(r"\\(.)")


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int


def tokenize(text: str) -> list[Token]:
    """Split a filter expression into tokens, ending with an ``eof`` token."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if not m:
            if text[pos] == "'":
                raise FilterParseError("Unterminated string literal", pos, text[pos:])
            raise FilterParseError(f"Unexpected character {text[pos]!r}", pos, text[pos])
        kind = m.lastgroup
        value = m.group()
        if kind == "word" and value.lower() in _KEYWORDS:
            kind = value.lower()
        elif kind == "op" and value in ("&&", "||", "!"):
            kind = {"&&": "and", "||": "or", "!": "not"}[value]
        if kind != "ws":
            tokens.append(Token(kind, value, pos))
        pos = m.end()
    tokens.append(Token("eof", "", len(text)))
    return tokens


class _Parser:
    def __init__(self, text: str):
        self.tokens = tokenize(text)
        self.index = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def expect(self, kind: str, what: str) -> Token:
        token = self.current
        if token.kind != kind:
            found = token.text or "end of expression"
            raise FilterParseError(f"Expected {what}, found {found!r}", token.pos, token.text)
        return self.advance()

    def parse(self) -> FilterNode:
        node = self.or_expr()
        token = self.current
        if token.kind == "rparen":
            raise FilterParseError("Unbalanced ')'", token.pos, token.text)
        if token.kind != "eof":
            raise FilterParseError(f"Unexpected token {token.text!r}", token.pos, token.text)
        return node

    def or_expr(self) -> FilterNode:
        node = self.and_expr()
        while self.current.kind == "or":
            self.advance()
            node = Or(node, self.and_expr())
        return node

    def and_expr(self) -> FilterNode:
        node = self.unary()
        while self.current.kind == "and":
            self.advance()
            node = And(node, self.unary())
        return node

    def unary(self) -> FilterNode:
        if self.current.kind == "not":
            self.advance()
            return Not(self.unary())
        return self.primary()

    def primary(self) -> FilterNode:
        token = self.current
        if token.kind == "lparen":
            self.advance()
            node = self.or_expr()
            if self.current.kind != "rparen":
                raise FilterParseError(
                    "Unbalanced '(': expected ')'", self.current.pos, self.current.text
                )
            self.advance()
            return node
        if token.kind == "word":
            return self.comparison()
        found = token.text or "end of expression"
        raise FilterParseError(f"Expected field name or '(', found {found!r}", token.pos, token.text)

    def comparison(self) -> FilterNode:
        field = self.advance().text
        token = self.current

        negate = False
        if token.kind == "not":
            self.advance()
            negate = True
            token = self.current
            if token.kind != "in":
                raise FilterParseError("Expected IN after NOT", token.pos, token.text)

        if token.kind == "in":
            self.advance()
            node = Comparison(field, IN, self.literal_list())
            return Not(node) if negate else node

        if token.kind != "op" or token.text not in OPERATORS:
            found = token.text or "end of expression"
            raise FilterParseError(f"Unknown operator {found!r}", token.pos, token.text)
        self.advance()
        return Comparison(field, token.text, self.literal())

    def literal_list(self) -> tuple[Scalar, ...]:
        self.expect("lparen", "'(' after IN")
        if self.current.kind == "rparen":
            raise FilterParseError("IN list must not be empty", self.current.pos, ")")
        values = [self.literal()]
        while self.current.kind == "comma":
            self.advance()
            values.append(self.literal())
        self.expect("rparen", "')' closing IN list")
        return tuple(values)

    def literal(self) -> Scalar:
        token = self.current
        if token.kind == "string":
            self.advance()
            return _ESCAPE_RE.sub(r"\1", token.text[1:-1])
        if token.kind == "number":
            self.advance()
            try:
                value = _number(token.text)
            except ValueError:
                # int() refuses digit strings beyond sys.get_int_max_str_digits()
                value = None
            if value is None or (isinstance(value, float) and not math.isfinite(value)):
                raise FilterParseError("Number out of range", token.pos, token.text)
            return value
        if token.kind in ("true", "false"):
            self.advance()
            return token.kind == "true"
        found = token.text or "end of expression"
        raise FilterParseError(f"Expected literal, found {found!r}", token.pos, token.text)


def _number(text: str) -> int | float:
    if any(c in text for c in ".eE"):
        return float(text)
    return int(text)


def parse_filter(text: str | None) -> FilterNode | None:
    """Parse a filter expression. Blank or missing input means no filter."""
    if text is None or not text.strip():
        return None
    return _Parser(text).parse()


def bind_fields(node: FilterNode, allowed: frozenset[str] | set[str]) -> FilterNode:
    """Reject expressions referencing fields outside ``allowed``."""
    for field in sorted(fields(node)):
        if field not in allowed:
            raise UnfilterableFieldError(field, allowed)
    return node


# Canonical serialization

_PRECEDENCE = {Or: 1, And: 2, Not: 3, Comparison: 4}


def to_expression(node: FilterNode) -> str:
    """Serialize an AST back into canonical expression text."""
    if isinstance(node, Comparison):
        if node.op == IN:
            values = ", ".join(_format_literal(v) for v in node.value)
            return f"{node.field} IN ({values})"
        return f"{node.field} {node.op} {_format_literal(node.value)}"
    if isinstance(node, (And, Or)):
        keyword = "&&" if isinstance(node, And) else "||"
        prec = _PRECEDENCE[type(node)]
        left = to_expression(node.left)
        right = to_expression(node.right)
        if _PRECEDENCE[type(node.left)] < prec:
            left = f"({left})"
        # Parsing is left-associative; a same-level right child keeps its parens.
        if _PRECEDENCE[type(node.right)] <= prec:
            right = f"({right})"
        return f"{left} {keyword} {right}"
    if isinstance(node, Not):
        return f"NOT({to_expression(node.child)})"
    raise TypeError(f"Not a filter node: {node!r}")


def _format_literal(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"
