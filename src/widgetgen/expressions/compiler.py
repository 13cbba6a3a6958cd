"""
Expression compiler: lowers expressions to Kotlin or Svelte/TypeScript source.

The compiled fragment keeps the evaluation order and operator semantics of
:mod:`widgetgen.expressions.evaluator`. ``value`` mode produces an expression
whose result is the property value; ``condition`` mode produces a boolean.

Paths follow the same scoping rule as the evaluator: ``data.``, ``item.``
and ``size.`` prefixes are kept, anything else is rooted in the active scope.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from widgetgen.diagnostics import DiagnosticCode, Diagnostics, report
from widgetgen.expressions.bindings import split_path, split_template
from widgetgen.expressions.evaluator import display
from widgetgen.expressions.model import (
    ARITHMETIC_OPS,
    BOOLEAN_OPS,
    COMPARISON_OPS,
    NEGATION_OPS,
    Call,
    Expression,
    Literal,
    Operator,
    is_boolean,
)

logger = logging.getLogger(__name__)


class Target(StrEnum):
    """Compilation targets."""

    KOTLIN = "kotlin"
    SVELTE = "svelte"


class Mode(StrEnum):
    """Whether a fragment is used as a value or as a condition."""

    VALUE = "value"
    CONDITION = "condition"


# Features a compiled fragment may depend on; the back-end emits support code.
FEATURE_TRUTHY = "truthy"

# Formatter for literal leaves in value position. Returning None keeps the
# default literal rendering.
LiteralFormatter = Callable[[Any], str | None]


def compile_expression(
    expr: Expression,
    target: Target | str,
    mode: Mode | str = Mode.VALUE,
    *,
    scope: str = "data",
    formatter: LiteralFormatter | None = None,
    diagnostics: Diagnostics | None = None,
    features: set[str] | None = None,
) -> str:
    """Compile an expression to a target-language source fragment.

    Args:
        expr: Expression to compile.
        target: ``kotlin`` or ``svelte``.
        mode: ``value`` or ``condition``.
        scope: Root for unqualified paths (``data`` or ``item``).
        formatter: Optional renderer for literal results (colors, dimensions).
        diagnostics: Optional list that receives unknown-operator warnings.
        features: Optional set that receives support features the fragment uses.

    Returns:
        Source text of the compiled expression.
    """
    compiler = _Compiler(
        Target(target),
        scope=scope,
        formatter=formatter,
        diagnostics=diagnostics,
        features=features if features is not None else set(),
    )
    return compiler.compile(expr, Mode(mode), formatted=True)


def kotlin_string(text: str) -> str:
    """Quote text as a Kotlin string literal."""
    return f'"{escape_kotlin(text)}"'


def escape_kotlin(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("$", "\\$")
    )


def js_string(text: str) -> str:
    """Quote text as a single-quoted JavaScript string literal."""
    escaped = text.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
    return f"'{escaped}'"


def _escape_template_literal(text: str) -> str:
    return text.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")


def _number(value: int | float) -> str:
    return display(value)


def _is_text(expr: Expression) -> bool:
    return isinstance(expr, Literal) and isinstance(expr.value, str)


# Operators whose compiled result is never null.
_NON_NULL_OPS = BOOLEAN_OPS | ARITHMETIC_OPS | {
    Operator.CONCAT,
    Operator.UPCASE,
    Operator.DOWNCASE,
    Operator.INTERPOLATE,
}


class _Compiler:
    """Recursive compiler for one target."""

    def __init__(
        self,
        target: Target,
        *,
        scope: str,
        formatter: LiteralFormatter | None,
        diagnostics: Diagnostics | None,
        features: set[str],
    ) -> None:
        self.target = target
        self.scope = scope
        self.formatter = formatter
        self.diagnostics = diagnostics
        self.features = features

    @property
    def kotlin(self) -> bool:
        return self.target == Target.KOTLIN

    # -- Entry --

    def compile(self, expr: Expression, mode: Mode, formatted: bool = False) -> str:
        if mode == Mode.CONDITION and not is_boolean(expr):
            return self._truthy(expr)
        if isinstance(expr, Literal):
            return self._literal(expr.value, mode, formatted)
        return self._call(expr, mode, formatted)

    def _truthy(self, expr: Expression) -> str:
        if isinstance(expr, Call) and expr.op == Operator.CASE:
            return self._case(expr, Mode.CONDITION, formatted=False)
        if isinstance(expr, Call) and expr.operator is None:
            return self._unknown(expr, Mode.CONDITION)
        inner = self.compile(expr, Mode.VALUE)
        if self.kotlin:
            self.features.add(FEATURE_TRUTHY)
            return f"truthy({inner})"
        return f"!!({inner})"

    # -- Literals --

    def _literal(self, value: Any, mode: Mode, formatted: bool) -> str:
        if formatted and mode == Mode.VALUE and self.formatter is not None:
            custom = self.formatter(value)
            if custom is not None:
                return custom
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return _number(value)
        if isinstance(value, str):
            return kotlin_string(value) if self.kotlin else js_string(value)
        if self.kotlin:
            return kotlin_string(display(value))
        return json.dumps(value, ensure_ascii=False)

    # -- Paths --

    def path(self, path: str) -> str:
        """Property access for a dotted path in the active scope."""
        root, segments = split_path(path, self.scope)
        if self.kotlin:
            access = ".".join([root, *segments])
            if root == "size" and segments:
                access += ".value"
            return access
        if not segments:
            return root
        return root + "." + segments[0] + "".join(f"?.{s}" for s in segments[1:])

    def _path_arg(self, expr: Call) -> str | None:
        target = expr.arg(0)
        if isinstance(target, Literal) and isinstance(target.value, str):
            return target.value
        return None

    # -- Calls --

    def _call(self, expr: Call, mode: Mode, formatted: bool) -> str:
        op = expr.op

        if op == Operator.GET:
            path = self._path_arg(expr)
            return self.path(path) if path is not None else "null"

        if op == Operator.HAS:
            path = self._path_arg(expr)
            if path is None:
                return "false"
            access = self.path(path)
            if self.kotlin:
                return f"({access} != null && {access}.toString().isNotEmpty())"
            return f"({access} !== undefined && {access} !== null && {access} !== '')"

        if op in NEGATION_OPS:
            return f"!({self.compile(expr.arg(0), Mode.CONDITION)})"

        if op in (Operator.ALL, Operator.ANY):
            if not expr.args:
                return "true" if op == Operator.ALL else "false"
            joiner = " && " if op == Operator.ALL else " || "
            return "(" + joiner.join(self.compile(a, Mode.CONDITION) for a in expr.args) + ")"

        if op == Operator.CASE:
            return self._case(expr, mode, formatted)

        if op in (Operator.EQ, Operator.NE):
            left = self.compile(expr.arg(0), Mode.VALUE)
            right = self.compile(expr.arg(1), Mode.VALUE)
            return f"{left} {op} {right}"

        if op in COMPARISON_OPS:
            left, right = self._operand(expr.arg(0)), self._operand(expr.arg(1))
            return f"{left} {op} {right}"

        if op in ARITHMETIC_OPS:
            joins_text = op == Operator.ADD and any(_is_text(a) for a in expr.args[:2])
            left = self._operand(expr.arg(0), joins_text)
            right = self._operand(expr.arg(1), joins_text)
            return f"({left} {op} {right})"

        if op == Operator.CONCAT:
            return self._concat(expr.args)

        if op in (Operator.UPCASE, Operator.DOWNCASE):
            inner = self.compile(expr.arg(0), Mode.VALUE)
            if self.kotlin:
                method = "uppercase" if op == Operator.UPCASE else "lowercase"
                return f"{inner}.toString().{method}()"
            method = "toUpperCase" if op == Operator.UPCASE else "toLowerCase"
            return f"String({inner} ?? '').{method}()"

        if op == Operator.INTERPOLATE:
            return self._interpolate(expr)

        if op == Operator.COALESCE:
            if not expr.args:
                return "null"
            joiner = " ?: " if self.kotlin else " ?? "
            return "(" + joiner.join(self.compile(a, mode, formatted) for a in expr.args) + ")"

        return self._unknown(expr, mode)

    def _operand(self, expr: Expression, joins_text: bool = False) -> str:
        """
        Operand of a relational or arithmetic operator.

        JavaScript coerces ``null`` to 0 and ``undefined`` to NaN, while the
        evaluator reads a missing or ``null`` value as ``undefined``. Svelte
        operands that can be ``null`` are coalesced to ``undefined``, or to
        ``''`` when ``+`` joins them to a string literal.
        """
        compiled = self.compile(expr, Mode.VALUE)
        if self.kotlin or self._never_null(expr):
            return compiled
        return f"({compiled} ?? {js_string('') if joins_text else 'undefined'})"

    def _never_null(self, expr: Expression) -> bool:
        if isinstance(expr, Literal):
            return expr.value is not None
        if expr.op == Operator.GET:
            path = self._path_arg(expr)
            return path is not None and split_path(path, self.scope)[0] == "size"
        return expr.op in _NON_NULL_OPS

    def _unknown(self, expr: Call, mode: Mode) -> str:
        report(
            self.diagnostics,
            DiagnosticCode.UNKNOWN_OPERATOR,
            f"Unknown expression operator: {expr.op}",
            log=logger,
        )
        if mode == Mode.CONDITION:
            return "false"
        return '""' if self.kotlin else "''"

    def _case(self, expr: Call, mode: Mode, formatted: bool) -> str:
        args = expr.args
        pairs = [(args[i], args[i + 1]) for i in range(0, len(args) - 1, 2)]
        if len(args) % 2 == 1:
            fallback = self.compile(args[-1], mode, formatted)
        elif mode == Mode.CONDITION:
            fallback = "false"
        else:
            fallback = '""' if self.kotlin else "''"

        if self.kotlin:
            branches = [
                f"{self.compile(cond, Mode.CONDITION)} -> {self.compile(value, mode, formatted)}"
                for cond, value in pairs
            ]
            branches.append(f"else -> {fallback}")
            return "when { " + "; ".join(branches) + " }"

        result = fallback
        for cond, value in reversed(pairs):
            result = (
                f"({self.compile(cond, Mode.CONDITION)} ? "
                f"{self.compile(value, mode, formatted)} : {result})"
            )
        return result

    def _concat(self, args: tuple[Expression, ...]) -> str:
        if self.kotlin:
            parts: list[str] = []
            for arg in args:
                if isinstance(arg, Literal):
                    parts.append(escape_kotlin(display(arg.value)))
                else:
                    parts.append("${" + self.compile(arg, Mode.VALUE) + "}")
            return '"' + "".join(parts) + '"'
        pieces = ["''"]
        for arg in args:
            if isinstance(arg, Literal):
                pieces.append(js_string(display(arg.value)))
            else:
                pieces.append(f"({self.compile(arg, Mode.VALUE)} ?? '')")
        return "(" + " + ".join(pieces) + ")"

    def _interpolate(self, expr: Call) -> str:
        template = expr.arg(0)
        if not (isinstance(template, Literal) and isinstance(template.value, str)):
            return self._concat((template,))
        parts = split_template(template.value)
        if self.kotlin:
            out = []
            for is_binding, text in parts:
                out.append("${" + self.path(text) + "}" if is_binding else escape_kotlin(text))
            return '"' + "".join(out) + '"'
        out = []
        for is_binding, text in parts:
            if is_binding:
                out.append("${" + self.path(text) + " ?? ''}")
            else:
                out.append(_escape_template_literal(text))
        return "`" + "".join(out) + "`"
