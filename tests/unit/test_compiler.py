"""Tests for compiling expressions to Kotlin and Svelte source fragments."""

import pytest

from widgetgen.diagnostics import DiagnosticCode, Diagnostics
from widgetgen.expressions.bindings import to_expression
from widgetgen.expressions.compiler import (
    FEATURE_TRUTHY,
    Mode,
    Target,
    compile_expression,
    escape_kotlin,
    js_string,
    kotlin_string,
)
from widgetgen.expressions.model import from_json


def kt(raw, mode: Mode = Mode.VALUE, **kwargs) -> str:
    return compile_expression(from_json(raw), Target.KOTLIN, mode, **kwargs)


def js(raw, mode: Mode = Mode.VALUE, **kwargs) -> str:
    return compile_expression(from_json(raw), Target.SVELTE, mode, **kwargs)


class TestPaths:
    def test_kotlin_paths(self) -> None:
        assert kt(["get", "temperature"]) == "data.temperature"
        assert kt(["get", "hour"], scope="item") == "item.hour"
        assert kt(["get", "size.width"]) == "size.width.value"

    def test_svelte_paths_use_optional_chaining(self) -> None:
        assert js(["get", "temperature"]) == "data.temperature"
        assert js(["get", "data.wind.speed.value"]) == "data.wind?.speed?.value"
        assert js(["get", "hour"], scope="item") == "item.hour"

    def test_has(self) -> None:
        assert kt(["has", "iconPath"]) == (
            "(data.iconPath != null && data.iconPath.toString().isNotEmpty())"
        )
        assert js(["has", "iconPath"]) == (
            "(data.iconPath !== undefined && data.iconPath !== null && data.iconPath !== '')"
        )


class TestLiterals:
    def test_kotlin_literals(self) -> None:
        assert kt("Feels like") == '"Feels like"'
        assert kt(12) == "12"
        assert kt(1.5) == "1.5"
        assert kt(True) == "true"
        assert kt(None) == "null"

    def test_svelte_literals(self) -> None:
        assert js("it's") == "'it\\'s'"
        assert js(12.0) == "12"

    def test_escaping(self) -> None:
        assert escape_kotlin('a"$b\\') == 'a\\"\\$b\\\\'
        assert kotlin_string("x\ny") == '"x\\ny"'
        assert js_string("a\\b") == "'a\\\\b'"

    def test_formatter_applies_to_value_leaves(self) -> None:
        def fmt(value):
            return f"theme.{value}" if isinstance(value, str) else None

        raw = ["case", ["<", ["get", "size.width"], 80], "primary", "error"]
        assert kt(raw, formatter=fmt) == (
            "when { size.width.value < 80 -> theme.primary; else -> theme.error }"
        )


class TestOperators:
    def test_comparison(self) -> None:
        assert kt(["<", ["get", "size.width"], 80]) == "size.width.value < 80"
        assert js(["==", ["get", "unit"], "C"]) == "data.unit == 'C'"

    def test_arithmetic(self) -> None:
        assert kt(["+", ["get", "size.width"], 8]) == "(size.width.value + 8)"
        assert js(["/", ["get", "size.height"], 2]) == "(size.height / 2)"

    def test_negation_and_logic(self) -> None:
        assert kt(["!", ["has", "a"]]) == "!((data.a != null && data.a.toString().isNotEmpty()))"
        assert js(["all", True, ["<", 1, 2]]) == "(true && 1 < 2)"
        assert js(["any", ["<", 1, 2], False]) == "(1 < 2 || false)"

    def test_case(self) -> None:
        raw = ["case", ["<", ["get", "size.width"], 80], 12, 16]
        assert kt(raw) == "when { size.width.value < 80 -> 12; else -> 16 }"
        assert js(raw) == "(size.width < 80 ? 12 : 16)"

    def test_case_without_fallback(self) -> None:
        assert kt(["case", False, 1]) == 'when { false -> 1; else -> "" }'
        assert js(["case", False, 1]) == "(false ? 1 : '')"

    def test_concat(self) -> None:
        assert kt(["concat", ["get", "temperature"], "°"]) == '"${data.temperature}°"'
        assert js(["concat", ["get", "temperature"], "°"]) == "('' + (data.temperature ?? '') + '°')"

    def test_upcase(self) -> None:
        assert kt(["upcase", ["get", "description"]]) == "data.description.toString().uppercase()"
        assert js(["downcase", ["get", "description"]]) == (
            "String(data.description ?? '').toLowerCase()"
        )

    def test_interpolate(self) -> None:
        expr = to_expression("{{temperature}} in {{locationName}}")
        assert compile_expression(expr, Target.KOTLIN) == (
            '"${data.temperature} in ${data.locationName}"'
        )
        assert compile_expression(expr, Target.SVELTE) == (
            "`${data.temperature ?? ''} in ${data.locationName ?? ''}`"
        )

    def test_interpolate_escapes_literal_text(self) -> None:
        expr = to_expression("Cost $ {{price}}")
        assert compile_expression(expr, Target.KOTLIN) == '"Cost \\$ ${data.price}"'
        assert compile_expression(expr, Target.SVELTE) == "`Cost $ ${data.price ?? ''}`"

    def test_coalesce(self) -> None:
        assert kt(["coalesce", ["get", "a"], "x"]) == '(data.a ?: "x")'
        assert js(["coalesce", ["get", "a"], "x"]) == "(data.a ?? 'x')"


class TestConditionMode:
    def test_kotlin_wraps_non_boolean(self) -> None:
        features: set[str] = set()
        assert kt(["get", "temperature"], Mode.CONDITION, features=features) == (
            "truthy(data.temperature)"
        )
        assert FEATURE_TRUTHY in features

    def test_svelte_wraps_non_boolean(self) -> None:
        assert js(["get", "temperature"], Mode.CONDITION) == "!!(data.temperature)"

    def test_boolean_is_not_wrapped(self) -> None:
        features: set[str] = set()
        assert kt(["<", 1, 2], Mode.CONDITION, features=features) == "1 < 2"
        assert features == set()

    def test_case_condition_keeps_branches_boolean(self) -> None:
        raw = ["case", ["has", "a"], ["<", 1, 2], False]
        assert js(raw, Mode.CONDITION) == (
            "((data.a !== undefined && data.a !== null && data.a !== '') ? 1 < 2 : false)"
        )


class TestUnknownOperator:
    @pytest.mark.parametrize(
        "target,expected",
        [(Target.KOTLIN, '""'), (Target.SVELTE, "''")],
    )
    def test_value_fallback(self, target: Target, expected: str) -> None:
        diagnostics: Diagnostics = []
        result = compile_expression(from_json(["frobnicate", 1, 2]), target, diagnostics=diagnostics)
        assert result == expected
        assert [d.code for d in diagnostics] == [DiagnosticCode.UNKNOWN_OPERATOR]
        assert diagnostics[0].message == "Unknown expression operator: frobnicate"

    def test_condition_fallback_is_false(self) -> None:
        diagnostics: Diagnostics = []
        assert kt(["frobnicate"], Mode.CONDITION, diagnostics=diagnostics) == "false"
        assert len(diagnostics) == 1
