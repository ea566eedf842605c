"""Screening filter expression engine."""

from tickerscope.filters.evaluator import (EQUALITY_EPSILON, CompiledFilter,
                                           compile_filter, eval_filter,
                                           evaluate)
from tickerscope.filters.fields import FIELD_ALIASES, resolve_field
from tickerscope.filters.parser import (And, Comparison, ExprNode,
                                        FieldReference, NumberLiteral, Or,
                                        Parser, parse, parse_expression)
from tickerscope.filters.tokenizer import Token, TokenKind, tokenize

__all__ = [
    "And",
    "Comparison",
    "CompiledFilter",
    "EQUALITY_EPSILON",
    "ExprNode",
    "FIELD_ALIASES",
    "FieldReference",
    "NumberLiteral",
    "Or",
    "Parser",
    "Token",
    "TokenKind",
    "compile_filter",
    "eval_filter",
    "evaluate",
    "parse",
    "parse_expression",
    "resolve_field",
    "tokenize",
]
