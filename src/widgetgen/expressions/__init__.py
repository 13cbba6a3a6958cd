"""
Mapbox-style expression language for widget layouts.

One expression value, two interpretations:

- :func:`evaluate` interprets it against concrete data (HTML previews)
- :func:`compile_expression` lowers it to Kotlin or Svelte source
"""

from widgetgen.expressions.bindings import to_expression
from widgetgen.expressions.compiler import Mode, Target, compile_expression
from widgetgen.expressions.conditions import ConditionSyntaxError, parse_condition
from widgetgen.expressions.evaluator import EvalContext, evaluate, truthy
from widgetgen.expressions.model import (
    Call,
    Expression,
    Literal,
    Operator,
    from_json,
    is_expression,
    is_known_operator,
    to_json,
)

__all__ = [
    "Call",
    "ConditionSyntaxError",
    "EvalContext",
    "Expression",
    "Literal",
    "Mode",
    "Operator",
    "Target",
    "compile_expression",
    "evaluate",
    "from_json",
    "is_expression",
    "is_known_operator",
    "parse_condition",
    "to_expression",
    "to_json",
    "truthy",
]
