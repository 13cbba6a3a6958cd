"""
Expression model for widget layouts.

Layout property values may carry Mapbox-style S-expressions encoded as JSON
arrays, e.g. ``["case", ["<", ["get", "size.width"], 80], 12, 16]``. An array
whose first element is a string is a :class:`Call`; anything else is a
:class:`Literal`. The operator set is closed (see :class:`Operator`).
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class Operator(StrEnum):
    """The closed operator set."""

    # Lookup
    GET = "get"
    HAS = "has"
    # Logic
    ALL = "all"
    ANY = "any"
    NOT = "not"
    BANG = "!"
    CASE = "case"
    # Comparison
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    EQ = "=="
    NE = "!="
    # Arithmetic
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    # Strings
    CONCAT = "concat"
    UPCASE = "upcase"
    DOWNCASE = "downcase"
    INTERPOLATE = "interpolate"
    COALESCE = "coalesce"


COMPARISON_OPS = frozenset(
    {Operator.LT, Operator.LE, Operator.GT, Operator.GE, Operator.EQ, Operator.NE}
)
ARITHMETIC_OPS = frozenset({Operator.ADD, Operator.SUB, Operator.MUL, Operator.DIV})
NEGATION_OPS = frozenset({Operator.NOT, Operator.BANG})

# Operators whose result is always a boolean.
BOOLEAN_OPS = COMPARISON_OPS | NEGATION_OPS | {Operator.HAS, Operator.ALL, Operator.ANY}

# Operators that read from the evaluation context.
CONTEXT_OPS = frozenset({Operator.GET, Operator.HAS, Operator.INTERPOLATE})

_KNOWN_OPERATORS = frozenset(op.value for op in Operator)


def is_known_operator(op: str) -> bool:
    """Whether ``op`` belongs to the closed operator set."""
    return op in _KNOWN_OPERATORS


# ---------------------------------------------------------------------------
# AST node types
# ---------------------------------------------------------------------------


class Literal(BaseModel):
    """A literal value: str, int, float, bool or None (null)."""

    value: Any = Field(default=None, description="The literal value")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return json.dumps(self.value, ensure_ascii=False)


class Call(BaseModel):
    """
    Operator application.

    Examples:
        - Call(op="get", args=[Literal("temperature")]) → ["get", "temperature"]
        - Call(op="!", args=[Call(op="has", ...)]) → ["!", ["has", ...]]
    """

    op: str = Field(description="Operator name")
    args: tuple[Expression, ...] = Field(default=(), description="Arguments")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        parts = [json.dumps(self.op)] + [str(a) for a in self.args]
        return f"[{', '.join(parts)}]"

    @property
    def operator(self) -> Operator | None:
        """The operator as an enum member, or None if it is not in the closed set."""
        if is_known_operator(self.op):
            return Operator(self.op)
        return None

    def arg(self, index: int) -> Expression:
        """Argument at ``index``; missing arguments read as ``null``."""
        if index < len(self.args):
            return self.args[index]
        return Literal(value=None)


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

Expression = Literal | Call

Call.model_rebuild()


# ---------------------------------------------------------------------------
# JSON conversion and traversal
# ---------------------------------------------------------------------------


def is_expression(raw: Any) -> bool:
    """Whether a raw JSON value is an S-expression (array tagged with a string)."""
    return isinstance(raw, list) and len(raw) > 0 and isinstance(raw[0], str)


def from_json(raw: Any) -> Expression:
    """Build an expression from a parsed JSON value."""
    if isinstance(raw, (Literal, Call)):
        return raw
    if is_expression(raw):
        return Call(op=raw[0], args=tuple(from_json(a) for a in raw[1:]))
    return Literal(value=raw)


def to_json(expr: Expression) -> Any:
    """Inverse of :func:`from_json`."""
    if isinstance(expr, Call):
        return [expr.op, *(to_json(a) for a in expr.args)]
    return expr.value


def iter_calls(expr: Expression) -> Iterator[Call]:
    """Yield every call node depth-first, left to right."""
    if isinstance(expr, Call):
        yield expr
        for arg in expr.args:
            yield from iter_calls(arg)


def is_constant(expr: Expression) -> bool:
    """True when the expression never reads from the evaluation context."""
    return not any(call.op in CONTEXT_OPS for call in iter_calls(expr))


def is_boolean(expr: Expression) -> bool:
    """True when the expression always yields a boolean."""
    if isinstance(expr, Literal):
        return isinstance(expr.value, bool)
    return expr.op in BOOLEAN_OPS


def value_leaves(expr: Expression) -> Iterator[Literal]:
    """
    Yield literals that can become the expression's result.

    For ``case`` that is each branch value and the fallback; for ``coalesce``
    each argument. Conditions and operands of other operators are skipped.
    """
    if isinstance(expr, Literal):
        yield expr
        return
    if expr.op == Operator.CASE:
        for index, arg in enumerate(expr.args):
            is_fallback = index == len(expr.args) - 1 and len(expr.args) % 2 == 1
            if index % 2 == 1 or is_fallback:
                yield from value_leaves(arg)
    elif expr.op == Operator.COALESCE:
        for arg in expr.args:
            yield from value_leaves(arg)
