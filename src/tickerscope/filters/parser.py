"""Recursive-descent parser for screening filter expressions.

Grammar::

    expression := term ( (AND | OR) term )*
    term       := comparison | "(" expression ")"
    comparison := IDENTIFIER OPERATOR NUMBER

``and`` and ``or`` share one precedence level and fold left to right, so
``a > 1 and b > 2 or c > 3`` parses as ``Or(And(a > 1, b > 2), c > 3)``.
The right-hand side of a comparison is always a numeric literal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from tickerscope.exceptions import FilterSyntaxError
from tickerscope.filters.tokenizer import Token, TokenKind, tokenize

COMPARISON_OPERATORS = frozenset(["<", ">", "<=", ">=", "=", "!="])


# ---------------------------------------------------------------------------
# Expression Nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NumberLiteral:
    value: float


@dataclass(frozen=True, slots=True)
class FieldReference:
    name: str


@dataclass(frozen=True, slots=True)
class Comparison:
    operator: str
    left: FieldReference
    right: NumberLiteral


@dataclass(frozen=True, slots=True)
class And:
    left: ExprNode
    right: ExprNode


@dataclass(frozen=True, slots=True)
class Or:
    left: ExprNode
    right: ExprNode


ExprNode = Union[NumberLiteral, FieldReference, Comparison, And, Or]


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _describe(token: Token) -> str:
    if token.kind is TokenKind.EOF:
        return "end of expression"
    return f"'{token.value}'"


class Parser:
    """Parses a token list into an expression tree.

    :param tokens: Output of :func:`tokenize`, ending with an EOF token.
    """

    def __init__(self, tokens: list[Token]) -> None:
        if not tokens or tokens[-1].kind is not TokenKind.EOF:
            tokens = [*tokens, Token(TokenKind.EOF, "")]
        self.tokens = tokens
        self.pos = 0

    def _peek(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind is not TokenKind.EOF:
            self.pos += 1
        return token

    def _error(self, expected: str, found: Token) -> FilterSyntaxError:
        return FilterSyntaxError(
            f"Expected {expected}, got {_describe(found)}", position=found.position
        )

    def parse(self) -> ExprNode:
        """Parse the whole token stream.

        :returns: Root node of the expression tree.
        :raises FilterSyntaxError: If the tokens do not form a valid expression.
        """
        try:
            node = self._expression()
        except RecursionError as e:
            raise FilterSyntaxError("Expression nested too deeply") from e
        trailing = self._peek()
        if trailing.kind is TokenKind.RPAREN:
            raise FilterSyntaxError(
                f"Unbalanced ')' at position {trailing.position}",
                position=trailing.position,
            )
        if trailing.kind is not TokenKind.EOF:
            raise self._error("'and', 'or' or end of expression", trailing)
        return node

    def _expression(self) -> ExprNode:
        left = self._term()
        while self._peek().kind in (TokenKind.AND, TokenKind.OR):
            keyword = self._advance()
            right = self._term()
            if keyword.kind is TokenKind.AND:
                left = And(left, right)
            else:
                left = Or(left, right)
        return left

    def _term(self) -> ExprNode:
        token = self._peek()
        if token.kind is TokenKind.LPAREN:
            self._advance()
            node = self._expression()
            closing = self._peek()
            if closing.kind is not TokenKind.RPAREN:
                raise self._error("')'", closing)
            self._advance()
            return node
        return self._comparison()

    def _comparison(self) -> Comparison:
        token = self._advance()
        if token.kind is not TokenKind.IDENTIFIER:
            raise self._error("field name", token)
        field = FieldReference(token.value)

        op = self._advance()
        if op.kind is not TokenKind.OPERATOR or op.value not in COMPARISON_OPERATORS:
            raise self._error(f"comparison operator after '{field.name}'", op)

        number = self._advance()
        if number.kind is not TokenKind.NUMBER:
            raise self._error(f"number after '{field.name} {op.value}'", number)
        try:
            value = float(number.value)
        except ValueError as e:
            raise FilterSyntaxError(
                f"Invalid number '{number.value}'", position=number.position
            ) from e

        return Comparison(op.value, field, NumberLiteral(value))


def parse(tokens: list[Token]) -> ExprNode:
    """Parse tokens into an expression tree."""
    return Parser(tokens).parse()


def parse_expression(text: str) -> ExprNode:
    """Tokenize and parse filter text in one step."""
    return Parser(tokenize(text)).parse()
