"""Tokenizer for screening filter expressions.

Turns text such as ``"pe < 20 and yield > 2"`` into a flat list of
:class:`Token` objects terminated by an EOF token.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tickerscope.exceptions import FilterSyntaxError
from tickerscope.filters.fields import canonical_field


class TokenKind(str, Enum):
    """Kinds of tokens produced by :func:`tokenize`."""

    NUMBER = "number"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    AND = "and"
    OR = "or"
    LPAREN = "lparen"
    RPAREN = "rparen"
    EOF = "eof"


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexeme.

    :param kind: Token classification.
    :param value: Raw (or normalized) text of the token.
    :param position: Offset of the first character in the source text.
    """

    kind: TokenKind
    value: str
    position: int = 0


KEYWORDS = {"and": TokenKind.AND, "or": TokenKind.OR}


def _is_ascii_letter(c: str) -> bool:
    return c.isascii() and c.isalpha()


def _is_identifier_char(c: str) -> bool:
    return _is_ascii_letter(c) or c.isdigit() or c in "_%"


def _is_digit_led_field(word: str) -> bool:
    return canonical_field(word) is not None or word.startswith("52w")


def _read_identifier(text: str, start: int) -> tuple[Token, int]:
    i = start
    while i < len(text) and _is_identifier_char(text[i]):
        i += 1
    word = text[start:i].lower()
    kind = KEYWORDS.get(word, TokenKind.IDENTIFIER)
    return Token(kind, word, start), i


def tokenize(text: str) -> list[Token]:
    """Split a filter expression into tokens.

    :param text: Expression text.
    :returns: Tokens in source order, always ending with an EOF token.
    :raises FilterSyntaxError: On an unrecognized character or a bare ``!``.
    """
    tokens: list[Token] = []
    i = 0
    n = len(text)

    while i < n:
        c = text[i]

        if c.isspace():
            i += 1
            continue

        if c.isdigit() or c == "." or (c == "-" and i + 1 < n and text[i + 1].isdigit()):
            start = i
            if c == "-":
                i += 1
            while i < n and (text[i].isdigit() or text[i] == "."):
                i += 1
            # "52whigh" is a field name, but "20and" is 20 followed by "and"
            if text[start:i].isdigit() and i < n and _is_ascii_letter(text[i]):
                token, end = _read_identifier(text, start)
                if _is_digit_led_field(token.value):
                    tokens.append(token)
                    i = end
                    continue
            tokens.append(Token(TokenKind.NUMBER, text[start:i], start))
            continue

        if _is_ascii_letter(c):
            token, i = _read_identifier(text, i)
            tokens.append(token)
            continue

        if c in "<>":
            if i + 1 < n and text[i + 1] == "=":
                tokens.append(Token(TokenKind.OPERATOR, c + "=", i))
                i += 2
            else:
                tokens.append(Token(TokenKind.OPERATOR, c, i))
                i += 1
            continue

        if c == "=":
            # "==" is accepted as a synonym for "="
            width = 2 if i + 1 < n and text[i + 1] == "=" else 1
            tokens.append(Token(TokenKind.OPERATOR, "=", i))
            i += width
            continue

        if c == "!":
            if i + 1 < n and text[i + 1] == "=":
                tokens.append(Token(TokenKind.OPERATOR, "!=", i))
                i += 2
                continue
            raise FilterSyntaxError(
                f"Unexpected character '!' at position {i} (did you mean '!='?)",
                position=i,
            )

        if c == "(":
            tokens.append(Token(TokenKind.LPAREN, c, i))
            i += 1
            continue

        if c == ")":
            tokens.append(Token(TokenKind.RPAREN, c, i))
            i += 1
            continue

        raise FilterSyntaxError(
            f"Unexpected character '{c}' at position {i}", position=i
        )

    tokens.append(Token(TokenKind.EOF, "", n))
    return tokens
