"""Tests for {{path}} bindings and property value resolution."""

from widgetgen.diagnostics import DiagnosticCode, Diagnostics
from widgetgen.expressions.bindings import (
    has_binding,
    normalize_path,
    referenced_paths,
    single_binding,
    split_path,
    split_template,
    to_expression,
)
from widgetgen.expressions.model import Call, Literal


class TestTemplates:
    def test_has_binding(self) -> None:
        assert has_binding("{{temperature}}")
        assert has_binding("Feels {{ feelsLike }}")
        assert not has_binding("plain")
        assert not has_binding(12)

    def test_single_binding(self) -> None:
        assert single_binding("{{ temperature }}") == "temperature"
        assert single_binding("{{a}} {{b}}") is None
        assert single_binding("{{a}}°") is None

    def test_split_template(self) -> None:
        assert split_template("{{temp}} at {{time}}") == [
            (True, "temp"),
            (False, " at "),
            (True, "time"),
        ]
        assert split_template("no bindings") == [(False, "no bindings")]


class TestPaths:
    def test_rooted_paths_ignore_scope(self) -> None:
        assert split_path("item.hour", "data") == ("item", ["hour"])
        assert split_path("data.temperature", "item") == ("data", ["temperature"])
        assert split_path("size.width", "item") == ("size", ["width"])

    def test_unqualified_path_uses_scope(self) -> None:
        assert split_path("hour", "item") == ("item", ["hour"])
        assert normalize_path("temperature") == "data.temperature"


class TestToExpression:
    def test_single_binding_is_get(self) -> None:
        assert to_expression("{{temperature}}") == Call(
            op="get", args=(Literal(value="temperature"),)
        )

    def test_mixed_template_is_interpolate(self) -> None:
        assert to_expression("{{temperature}}°") == Call(
            op="interpolate", args=(Literal(value="{{temperature}}°"),)
        )

    def test_array_is_expression(self) -> None:
        expr = to_expression(["upcase", ["get", "description"]])
        assert isinstance(expr, Call)
        assert expr.op == "upcase"

    def test_plain_values_are_literals(self) -> None:
        assert to_expression("Feels like") == Literal(value="Feels like")
        assert to_expression(12) == Literal(value=12)
        assert to_expression(None) == Literal(value=None)

    def test_condition_string_is_parsed(self) -> None:
        expr = to_expression("size.width < 80", condition=True)
        assert isinstance(expr, Call)
        assert expr.op == "<"

    def test_invalid_condition_reads_true(self) -> None:
        diagnostics: Diagnostics = []
        expr = to_expression("size.width <", condition=True, diagnostics=diagnostics)
        assert expr == Literal(value=True)
        assert [d.code for d in diagnostics] == [DiagnosticCode.CONDITION_SYNTAX]

    def test_referenced_paths(self) -> None:
        expr = to_expression(["concat", "{{hour}}h", ["get", "data.unit"]])
        assert referenced_paths(expr, "item") == ["data.unit"]
        assert referenced_paths(to_expression("{{hour}}h {{data.x}}"), "item") == [
            "item.hour",
            "data.x",
        ]
