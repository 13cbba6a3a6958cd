"""
Restricted parser for legacy condition strings.

Variant and visibility conditions are sometimes written as plain strings such
as ``"size.width < 80 && iconPath"``. They come from layout files and are
never executed as code: this module parses the small subset below into an
ordinary :class:`Expression`, which the evaluator and compiler already handle.

Grammar (precedence low to high):
    or_expr     → and_expr ("||" and_expr)*
    and_expr    → comparison ("&&" comparison)*
    comparison  → operand (comp_op operand)?
    operand     → NUMBER | PATH | "true" | "false" | "(" or_expr ")"
    comp_op     → "<" | "<=" | ">" | ">=" | "==" | "!="

A path inside a comparison reads its value (``get``); a bare path tests for
presence (``has``).
"""

from __future__ import annotations

import re
from enum import StrEnum, auto

from widgetgen.expressions.model import Call, Expression, Literal, Operator


class ConditionSyntaxError(Exception):
    """Error while tokenizing or parsing a condition string."""

    def __init__(self, message: str, pos: int = 0) -> None:
        super().__init__(message)
        self.pos = pos


class TokenKind(StrEnum):
    """Token types for condition strings."""

    NUMBER = auto()
    PATH = auto()
    TRUE = auto()
    FALSE = auto()
    AND = auto()
    OR = auto()
    COMPARE = auto()
    LPAREN = auto()
    RPAREN = auto()
    EOF = auto()


class Token:
    """A single token from the condition tokenizer."""

    __slots__ = ("kind", "value", "pos")

    def __init__(self, kind: TokenKind, value: str, pos: int) -> None:
        self.kind = kind
        self.value = value
        self.pos = pos

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.value!r}, pos={self.pos})"


_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<number>-?\d+(?:\.\d+)?)
    |(?P<and>&&)
    |(?P<or>\|\|)
    |(?P<compare><=|>=|==|!=|<|>)
    |(?P<lparen>\()
    |(?P<rparen>\))
    |(?P<path>[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*)
    """,
    re.VERBOSE,
)

_KEYWORDS = {"true": TokenKind.TRUE, "false": TokenKind.FALSE}

_GROUP_KINDS = {
    "number": TokenKind.NUMBER,
    "and": TokenKind.AND,
    "or": TokenKind.OR,
    "compare": TokenKind.COMPARE,
    "lparen": TokenKind.LPAREN,
    "rparen": TokenKind.RPAREN,
    "path": TokenKind.PATH,
}


def tokenize(source: str) -> list[Token]:
    """Tokenize a condition string. Always ends with an EOF token."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(source):
        match = _TOKEN_RE.match(source, pos)
        if match is None:
            raise ConditionSyntaxError(f"Unexpected character {source[pos]!r}", pos)
        group = match.lastgroup
        if group != "ws":
            value = match.group()
            kind = _GROUP_KINDS[group or ""]
            if kind == TokenKind.PATH:
                kind = _KEYWORDS.get(value, TokenKind.PATH)
            tokens.append(Token(kind, value, pos))
        pos = match.end()
    tokens.append(Token(TokenKind.EOF, "", len(source)))
    return tokens


class _Parser:
    """Recursive descent parser for condition strings."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def expect(self, kind: TokenKind) -> Token:
        tok = self.current
        if tok.kind != kind:
            raise ConditionSyntaxError(
                f"Expected {kind}, got {tok.kind} ({tok.value!r})",
                tok.pos,
            )
        return self.advance()

    def match(self, *kinds: TokenKind) -> Token | None:
        if self.current.kind in kinds:
            return self.advance()
        return None

    # -- Grammar rules --

    def parse_or_expr(self) -> Expression:
        terms = [self.parse_and_expr()]
        while self.match(TokenKind.OR):
            terms.append(self.parse_and_expr())
        if len(terms) == 1:
            return terms[0]
        return Call(op=Operator.ANY.value, args=tuple(terms))

    def parse_and_expr(self) -> Expression:
        terms = [self.parse_comparison()]
        while self.match(TokenKind.AND):
            terms.append(self.parse_comparison())
        if len(terms) == 1:
            return terms[0]
        return Call(op=Operator.ALL.value, args=tuple(terms))

    def parse_comparison(self) -> Expression:
        if self.match(TokenKind.LPAREN):
            inner = self.parse_or_expr()
            self.expect(TokenKind.RPAREN)
            return inner
        left_tok = self.current
        left = self.parse_operand()
        op = self.match(TokenKind.COMPARE)
        if op is None:
            if left_tok.kind == TokenKind.PATH:
                return Call(op=Operator.HAS.value, args=(Literal(value=left_tok.value),))
            return left
        right = self.parse_operand()
        return Call(op=op.value, args=(left, right))

    def parse_operand(self) -> Expression:
        tok = self.current
        if self.match(TokenKind.NUMBER):
            number = float(tok.value)
            return Literal(value=int(number) if number.is_integer() else number)
        if self.match(TokenKind.TRUE):
            return Literal(value=True)
        if self.match(TokenKind.FALSE):
            return Literal(value=False)
        if self.match(TokenKind.PATH):
            return Call(op=Operator.GET.value, args=(Literal(value=tok.value),))
        raise ConditionSyntaxError(f"Unexpected token {tok.value!r}", tok.pos)


def parse_condition(source: str) -> Expression:
    """
    Parse a condition string into an expression.

    Raises:
        ConditionSyntaxError: If the string is empty or outside the grammar.
    """
    if not source.strip():
        raise ConditionSyntaxError("Empty condition")
    parser = _Parser(tokenize(source))
    expr = parser.parse_or_expr()
    if parser.current.kind != TokenKind.EOF:
        raise ConditionSyntaxError(
            f"Unexpected trailing input {parser.current.value!r}", parser.current.pos
        )
    return expr
