"""
Template bindings and property value resolution.

A property value is one of:

- an S-expression (``["get", "temperature"]``)
- a binding string with ``{{path}}`` placeholders (``"{{item.hour}}h"``)
- a plain literal

:func:`to_expression` folds all three into a single :class:`Expression` so the
evaluator and compiler only ever see one representation.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from widgetgen.diagnostics import DiagnosticCode, Diagnostics, report
from widgetgen.expressions.conditions import ConditionSyntaxError, parse_condition
from widgetgen.expressions.model import Call, Expression, Literal, Operator, from_json, is_expression

logger = logging.getLogger(__name__)

BINDING_RE = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")

# Paths rooted in one of these segments ignore the active scope.
SCOPE_ROOTS = ("data", "item", "size")


def has_binding(value: Any) -> bool:
    """Whether a value is a string carrying at least one ``{{path}}`` placeholder."""
    return isinstance(value, str) and BINDING_RE.search(value) is not None


def single_binding(value: Any) -> str | None:
    """Return the path when the whole string is exactly one placeholder."""
    if not isinstance(value, str):
        return None
    match = BINDING_RE.fullmatch(value.strip())
    return match.group(1) if match else None


def split_template(template: str) -> list[tuple[bool, str]]:
    """
    Split a template into ``(is_binding, text)`` parts.

    >>> split_template("{{temp}} at {{time}}")
    [(True, 'temp'), (False, ' at '), (True, 'time')]
    """
    parts: list[tuple[bool, str]] = []
    pos = 0
    for match in BINDING_RE.finditer(template):
        if match.start() > pos:
            parts.append((False, template[pos : match.start()]))
        parts.append((True, match.group(1)))
        pos = match.end()
    if pos < len(template):
        parts.append((False, template[pos:]))
    return parts


def split_path(path: str, scope: str = "data") -> tuple[str, list[str]]:
    """
    Split a dotted path into its root object and remaining segments.

    Paths starting with ``data``, ``item`` or ``size`` are rooted there;
    anything else is rooted in the active ``scope``.
    """
    segments = [s for s in path.strip().split(".") if s]
    if segments and segments[0] in SCOPE_ROOTS:
        return segments[0], segments[1:]
    return scope, segments


def normalize_path(path: str, scope: str = "data") -> str:
    """Return ``path`` with its root made explicit (``temp`` → ``data.temp``)."""
    root, segments = split_path(path, scope)
    return ".".join([root, *segments])


def to_expression(
    value: Any,
    *,
    condition: bool = False,
    diagnostics: Diagnostics | None = None,
) -> Expression:
    """
    Resolve a raw property value into an expression.

    Resolution order: S-expression, then binding string, then literal. In
    condition context a plain string is a legacy condition such as
    ``"size.width < 80 && iconPath"`` and goes through the restricted
    condition parser; a string that fails to parse reads as ``true``.
    """
    if is_expression(value):
        return from_json(value)
    if isinstance(value, str):
        path = single_binding(value)
        if path is not None:
            return Call(op=Operator.GET.value, args=(Literal(value=path),))
        if has_binding(value):
            return Call(op=Operator.INTERPOLATE.value, args=(Literal(value=value),))
        if condition:
            try:
                return parse_condition(value)
            except ConditionSyntaxError as e:
                report(
                    diagnostics,
                    DiagnosticCode.CONDITION_SYNTAX,
                    f"Invalid condition {value!r}: {e}; treating as true",
                    log=logger,
                )
                return Literal(value=True)
    return Literal(value=value)


def referenced_paths(expr: Expression, scope: str = "data") -> list[str]:
    """Every context path an expression reads, normalised to its root."""
    paths: list[str] = []

    def visit(node: Expression) -> None:
        if isinstance(node, Literal):
            return
        if node.op in (Operator.GET, Operator.HAS):
            target = node.arg(0)
            if isinstance(target, Literal) and isinstance(target.value, str):
                paths.append(normalize_path(target.value, scope))
        elif node.op == Operator.INTERPOLATE:
            template = node.arg(0)
            if isinstance(template, Literal) and isinstance(template.value, str):
                for is_binding, text in split_template(template.value):
                    if is_binding:
                        paths.append(normalize_path(text, scope))
        for arg in node.args:
            visit(arg)

    visit(expr)
    return paths
