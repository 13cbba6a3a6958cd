"""
Tests for the expression evaluator.

Values follow JavaScript semantics: loose equality, numeric coercion,
truthiness and String() formatting.
"""

import math
from datetime import datetime

import pytest

from widgetgen.diagnostics import DiagnosticCode, Diagnostics
from widgetgen.expressions.evaluator import (
    DEFAULT_NOW,
    UNKNOWN_OPERATOR_FALLBACK,
    EvalContext,
    display,
    evaluate,
    interpolate,
    loose_equals,
    resolve_path,
    to_number,
    truthy,
)
from widgetgen.expressions.model import from_json


@pytest.fixture
def context() -> EvalContext:
    return EvalContext(
        data={
            "temperature": "8°C",
            "locationName": "Grenoble",
            "description": "",
            "count": 3,
            "hourlyData": [{"hour": "10:00"}, {"hour": "11:00"}],
            "nested": {"inner": {"value": 42}},
        },
        size={"width": 160, "height": 80},
    )


def ev(raw, ctx: EvalContext, diagnostics: Diagnostics | None = None):
    return evaluate(from_json(raw), ctx, diagnostics=diagnostics)


class TestPaths:
    def test_get(self, context: EvalContext) -> None:
        assert ev(["get", "temperature"], context) == "8°C"
        assert ev(["get", "data.locationName"], context) == "Grenoble"
        assert ev(["get", "nested.inner.value"], context) == 42

    def test_missing_path_is_none(self, context: EvalContext) -> None:
        assert ev(["get", "nope"], context) is None
        assert ev(["get", "nested.nope.deeper"], context) is None

    def test_list_index(self, context: EvalContext) -> None:
        assert resolve_path("hourlyData.1.hour", context) == "11:00"
        assert resolve_path("hourlyData.5.hour", context) is None

    def test_size_root(self, context: EvalContext) -> None:
        assert ev(["get", "size.width"], context) == 160

    def test_item_scope(self, context: EvalContext) -> None:
        item_ctx = context.with_item({"hour": "12:00"})
        assert ev(["get", "hour"], item_ctx) == "12:00"
        assert ev(["get", "item.hour"], item_ctx) == "12:00"
        assert ev(["get", "data.temperature"], item_ctx) == "8°C"

    def test_has(self, context: EvalContext) -> None:
        assert ev(["has", "temperature"], context) is True
        assert ev(["has", "description"], context) is False
        assert ev(["has", "nope"], context) is False


class TestLogic:
    def test_negation(self, context: EvalContext) -> None:
        assert ev(["!", ["has", "description"]], context) is True
        assert ev(["not", ["get", "count"]], context) is False

    def test_all_any(self, context: EvalContext) -> None:
        assert ev(["all", ["has", "temperature"], ["<", ["get", "size.width"], 200]], context) is True
        assert ev(["all", ["has", "temperature"], ["has", "description"]], context) is False
        assert ev(["any", ["has", "description"], ["get", "count"]], context) is True

    def test_case_first_match(self, context: EvalContext) -> None:
        raw = ["case", ["<", ["get", "size.width"], 100], "small", ["<", ["get", "size.width"], 200], "medium", "large"]
        assert ev(raw, context) == "medium"

    def test_case_fallback(self, context: EvalContext) -> None:
        assert ev(["case", False, 1, 2], context) == 2
        assert ev(["case", False, 1], context) is None


class TestComparison:
    def test_numbers(self, context: EvalContext) -> None:
        assert ev(["<", ["get", "size.width"], 200], context) is True
        assert ev([">=", ["get", "size.height"], 80], context) is True

    def test_loose_equality(self) -> None:
        assert loose_equals("1", 1)
        assert loose_equals(True, 1)
        assert loose_equals(None, None)
        assert not loose_equals(None, 0)
        assert not loose_equals("a", "b")

    def test_null_ordering_is_false(self, context: EvalContext) -> None:
        assert ev(["<", ["get", "nope"], 1], context) is False
        assert ev([">", ["get", "nope"], 1], context) is False

    def test_string_comparison(self, context: EvalContext) -> None:
        assert ev(["<", "a", "b"], context) is True


class TestArithmetic:
    def test_basic(self, context: EvalContext) -> None:
        assert ev(["+", 1, 2], context) == 3
        assert ev(["-", "5", 2], context) == 3
        assert ev(["*", ["get", "count"], 2], context) == 6
        assert ev(["/", 7, 2], context) == 3.5

    def test_string_addition_concatenates(self, context: EvalContext) -> None:
        assert ev(["+", "a", 1], context) == "a1"

    def test_division_by_zero(self, context: EvalContext) -> None:
        assert ev(["/", 1, 0], context) == math.inf
        assert ev(["/", -1, 0], context) == -math.inf
        assert math.isnan(ev(["/", 0, 0], context))


class TestStrings:
    def test_concat(self, context: EvalContext) -> None:
        assert ev(["concat", ["get", "temperature"], " in ", ["get", "locationName"]], context) == (
            "8°C in Grenoble"
        )

    def test_concat_missing_is_empty(self, context: EvalContext) -> None:
        assert ev(["concat", "[", ["get", "nope"], "]"], context) == "[]"

    def test_case_conversion(self, context: EvalContext) -> None:
        assert ev(["upcase", ["get", "locationName"]], context) == "GRENOBLE"
        assert ev(["downcase", "ABC"], context) == "abc"

    def test_interpolate(self, context: EvalContext) -> None:
        assert ev(["interpolate", "{{temperature}} / {{count}}"], context) == "8°C / 3"
        assert interpolate("{{nope}}!", context) == "!"

    def test_coalesce(self, context: EvalContext) -> None:
        assert ev(["coalesce", ["get", "nope"], ["get", "locationName"]], context) == "Grenoble"
        assert ev(["coalesce", ["get", "nope"]], context) is None


class TestUnknownOperator:
    def test_fallback_and_diagnostic(self, context: EvalContext) -> None:
        diagnostics: Diagnostics = []
        assert ev(["frobnicate", 1, 2], context, diagnostics) == UNKNOWN_OPERATOR_FALLBACK == ""
        assert len(diagnostics) == 1
        assert diagnostics[0].code == DiagnosticCode.UNKNOWN_OPERATOR
        assert diagnostics[0].message == "Unknown expression operator: frobnicate"

    def test_nested_unknown_does_not_raise(self, context: EvalContext) -> None:
        assert ev(["concat", "x", ["frobnicate"]], context) == "x"


class TestValueSemantics:
    def test_display(self) -> None:
        assert display(None) == ""
        assert display(12.0) == "12"
        assert display(1.5) == "1.5"
        assert display(True) == "true"
        assert display(math.nan) == "NaN"
        assert display(-math.inf) == "-Infinity"
        assert display([1, "a"]) == "1,a"

    def test_truthy(self) -> None:
        assert not truthy(None)
        assert not truthy(0)
        assert not truthy("")
        assert not truthy(math.nan)
        assert truthy("0")
        assert truthy([])
        assert truthy({})

    def test_to_number(self) -> None:
        assert to_number("12") == 12.0
        assert to_number("") == 0.0
        assert to_number(True) == 1.0
        assert math.isnan(to_number("abc"))
        assert math.isnan(to_number(None))

    def test_default_now_is_fixed(self) -> None:
        assert EvalContext().now == DEFAULT_NOW == datetime(2024, 1, 1, 12, 0, 0)
