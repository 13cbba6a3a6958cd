"""
Expression evaluator for widget layouts.

Evaluates expression nodes against an :class:`EvalContext` holding the widget
data, the current ``forEach`` item and the widget size. Values follow the
JavaScript semantics the generated Svelte code runs with (loose ``==``,
string concatenation with ``+``, truthiness), so that interpreting an
expression here and running its compiled form agree.

Pure evaluation: no I/O, no side effects, no use of Python's ``eval()``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from widgetgen.diagnostics import DiagnosticCode, Diagnostics, report
from widgetgen.expressions.bindings import split_path, split_template
from widgetgen.expressions.model import (
    ARITHMETIC_OPS,
    COMPARISON_OPS,
    NEGATION_OPS,
    Call,
    Expression,
    Literal,
    Operator,
)

logger = logging.getLogger(__name__)

# Fixed clock used when no ``now`` is injected, so previews are reproducible.
DEFAULT_NOW = datetime(2024, 1, 1, 12, 0, 0)

# Result of an unknown operator. The compiler emits the same value.
UNKNOWN_OPERATOR_FALLBACK = ""


@dataclass
class EvalContext:
    """
    Runtime context for evaluation.

    Attributes:
        data: Top-level widget data (``WidgetData``)
        item: Current element when inside a ``forEach`` template
        size: Widget size as ``{"width": ..., "height": ...}``
        scope: Root that unqualified paths resolve against (``data`` or ``item``)
        now: Clock used by ``clock``/``date`` elements
    """

    data: dict[str, Any] = field(default_factory=dict)
    item: Any = None
    size: dict[str, Any] = field(default_factory=dict)
    scope: str = "data"
    now: datetime = DEFAULT_NOW

    def with_item(self, item: Any) -> EvalContext:
        """Context for one iteration of a ``forEach`` template."""
        return replace(self, item=item, scope="item")

    def root(self, name: str) -> Any:
        if name == "item":
            return self.item
        if name == "size":
            return self.size
        return self.data


def evaluate(
    expr: Expression,
    context: EvalContext,
    *,
    diagnostics: Diagnostics | None = None,
) -> Any:
    """Evaluate an expression against a context.

    Args:
        expr: Expression to evaluate.
        context: Data, item and size to read from.
        diagnostics: Optional list that receives unknown-operator warnings.

    Returns:
        The computed value (str, int, float, bool or None).
    """
    return _interpret(expr, context, diagnostics)


def resolve_path(path: str, context: EvalContext) -> Any:
    """Walk a dotted path; ``None`` when any intermediate is missing."""
    root, segments = split_path(path, context.scope)
    current: Any = context.root(root)
    for segment in segments:
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            return None
    return current


# ---------------------------------------------------------------------------
# JavaScript value semantics
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any) -> float:
    """``Number(value)`` with ``None`` treated as ``undefined`` (NaN)."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _normalize_number(value: float) -> int | float:
    if math.isfinite(value) and value.is_integer():
        return int(value)
    return value


def truthy(value: Any) -> bool:
    """JavaScript truthiness."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if _is_number(value):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True


def display(value: Any) -> str:
    """String form of a value as ``String(value)`` would print it; ``None`` is empty."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, list):
        return ",".join(display(v) for v in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def loose_equals(left: Any, right: Any) -> bool:
    """JavaScript ``==``."""
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if isinstance(left, (bool, int, float, str)) and isinstance(right, (bool, int, float, str)):
        return to_number(left) == to_number(right)
    return left == right


def _compare(op: str, left: Any, right: Any) -> bool:
    if op == Operator.EQ:
        return loose_equals(left, right)
    if op == Operator.NE:
        return not loose_equals(left, right)
    if isinstance(left, str) and isinstance(right, str):
        a: Any = left
        b: Any = right
    else:
        if left is None or right is None:
            return False
        a, b = to_number(left), to_number(right)
        if math.isnan(a) or math.isnan(b):
            return False
    if op == Operator.LT:
        return a < b
    if op == Operator.LE:
        return a <= b
    if op == Operator.GT:
        return a > b
    return a >= b


def _arithmetic(op: str, left: Any, right: Any) -> Any:
    if op == Operator.ADD and (isinstance(left, str) or isinstance(right, str)):
        return display(left) + display(right)
    a, b = to_number(left), to_number(right)
    if op == Operator.ADD:
        result = a + b
    elif op == Operator.SUB:
        result = a - b
    elif op == Operator.MUL:
        result = a * b
    elif b == 0:
        if math.isnan(a) or a == 0:
            result = math.nan
        else:
            result = math.copysign(math.inf, a)
    else:
        result = a / b
    return _normalize_number(result)


# ---------------------------------------------------------------------------
# Interpreter
# ---------------------------------------------------------------------------


def _interpret(expr: Expression, ctx: EvalContext, diags: Diagnostics | None) -> Any:
    """Dispatch evaluation to the appropriate handler."""
    if isinstance(expr, Literal):
        return expr.value

    op = expr.op

    if op == Operator.GET:
        path = _interpret(expr.arg(0), ctx, diags)
        return resolve_path(path, ctx) if isinstance(path, str) else None

    if op == Operator.HAS:
        path = _interpret(expr.arg(0), ctx, diags)
        if not isinstance(path, str):
            return False
        return resolve_path(path, ctx) not in (None, "")

    if op in NEGATION_OPS:
        return not truthy(_interpret(expr.arg(0), ctx, diags))

    if op == Operator.ALL:
        return all(truthy(_interpret(a, ctx, diags)) for a in expr.args)

    if op == Operator.ANY:
        return any(truthy(_interpret(a, ctx, diags)) for a in expr.args)

    if op == Operator.CASE:
        return _interpret_case(expr, ctx, diags)

    if op in COMPARISON_OPS:
        left = _interpret(expr.arg(0), ctx, diags)
        right = _interpret(expr.arg(1), ctx, diags)
        return _compare(op, left, right)

    if op in ARITHMETIC_OPS:
        left = _interpret(expr.arg(0), ctx, diags)
        right = _interpret(expr.arg(1), ctx, diags)
        return _arithmetic(op, left, right)

    if op == Operator.CONCAT:
        return "".join(display(_interpret(a, ctx, diags)) for a in expr.args)

    if op == Operator.UPCASE:
        return display(_interpret(expr.arg(0), ctx, diags)).upper()

    if op == Operator.DOWNCASE:
        return display(_interpret(expr.arg(0), ctx, diags)).lower()

    if op == Operator.INTERPOLATE:
        return interpolate(display(_interpret(expr.arg(0), ctx, diags)), ctx)

    if op == Operator.COALESCE:
        for arg in expr.args:
            value = _interpret(arg, ctx, diags)
            if value is not None:
                return value
        return None

    report(
        diags,
        DiagnosticCode.UNKNOWN_OPERATOR,
        f"Unknown expression operator: {op}",
        log=logger,
    )
    return UNKNOWN_OPERATOR_FALLBACK


def _interpret_case(expr: Call, ctx: EvalContext, diags: Diagnostics | None) -> Any:
    """Return the value of the first pair whose condition holds."""
    args = expr.args
    for index in range(0, len(args) - 1, 2):
        if truthy(_interpret(args[index], ctx, diags)):
            return _interpret(args[index + 1], ctx, diags)
    if len(args) % 2 == 1:
        return _interpret(args[-1], ctx, diags)
    return None


def interpolate(template: str, ctx: EvalContext) -> str:
    """Substitute every ``{{path}}`` placeholder with its display string."""
    return "".join(
        display(resolve_path(text, ctx)) if is_binding else text
        for is_binding, text in split_template(template)
    )
