"""
Jetpack Glance back-end.

Generates ``<Name>Content.generated.kt`` holding one ``@Composable`` function
per widget plus the data classes it reads from. Each element kind maps to a
single composable:

    column → Column      row → Row        stack → Box
    label  → Text        image → Image    divider → Box
    clock/date → Text with DateFormat     forEach → take(n).forEach
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from widgetgen.backends.base import Generator
from widgetgen.backends.target import (
    Block,
    Branch,
    Comment,
    Composable,
    IfChain,
    Node,
    render_kotlin,
)
from widgetgen.diagnostics import Diagnostics
from widgetgen.expressions.compiler import (
    FEATURE_TRUTHY,
    Mode,
    Target,
    compile_expression,
    kotlin_string,
)
from widgetgen.expressions.evaluator import display
from widgetgen.expressions.model import Call, Expression, Literal, Operator
from widgetgen.layout.model import (
    BOX_SIDES,
    ClockElement,
    ColumnElement,
    CSpanElement,
    DateElement,
    DividerElement,
    ElementBase,
    ForEachElement,
    ImageElement,
    LabelElement,
    RowElement,
    SpacerElement,
    StackElement,
    WidgetLayout,
)
from widgetgen.layout.walker import (
    DIVIDER_DEFAULT_COLOR,
    DIVIDER_DEFAULT_THICKNESS,
    Emitter,
    LoweringContext,
    collect_color_tokens,
    lower_widget,
)
from widgetgen.theme import alignment, font_weight, glance_color, text_align, to_pascal_case

logger = logging.getLogger(__name__)

DEFAULT_PACKAGE = "com.akylas.weather.widgets.generated"
DEFAULT_R_CLASS = "com.akylas.weather.R"

FEATURE_CONTEXT = "context"

DEFAULT_IMAGE_SIZE = 24
DEFAULT_CLOCK_24 = "HH:mm"
DEFAULT_CLOCK_12 = "h:mm a"
DEFAULT_DATE_FORMAT = "MMM dd, yyyy"

_IMPORTS = [
    "androidx.compose.runtime.Composable",
    "androidx.compose.ui.graphics.Color",
    "androidx.compose.ui.unit.dp",
    "androidx.compose.ui.unit.sp",
    "androidx.glance.ColorFilter",
    "androidx.glance.GlanceModifier",
    "androidx.glance.GlanceTheme",
    "androidx.glance.Image",
    "androidx.glance.ImageProvider",
    "androidx.glance.LocalContext",
    "androidx.glance.LocalSize",
    "androidx.glance.appwidget.cornerRadius",
    "androidx.glance.appwidget.lazy.LazyColumn",
    "androidx.glance.appwidget.lazy.items",
    "androidx.glance.background",
    "androidx.glance.layout.*",
    "androidx.glance.text.FontWeight",
    "androidx.glance.text.Text",
    "androidx.glance.text.TextAlign",
    "androidx.glance.text.TextStyle",
    "androidx.glance.unit.ColorProvider",
]

# Fields every widget data class carries, matching the app's WidgetData.
_WIDGET_DATA_FIELDS = ("temperature", "locationName", "description", "iconPath")

# Known list shapes: data field → (item class, item fields).
_KNOWN_LISTS = {
    "hourlyData": (
        "HourlyForecast",
        ("hour", "temperature", "iconPath", "description", "precipAccumulation"),
    ),
    "dailyData": (
        "DailyForecast",
        ("day", "temperatureHigh", "temperatureLow", "iconPath", "description", "precipAccumulation"),
    ),
}

_TRUTHY_HELPER = """\
private fun truthy(v: Any?): Boolean = when (v) {
    null -> false
    is Boolean -> v
    is Number -> v.toDouble() != 0.0 && !v.toDouble().isNaN()
    is String -> v.isNotEmpty()
    else -> true
}"""

# Operators whose Kotlin form is already a String.
_STRING_OPS = frozenset({Operator.CONCAT, Operator.UPCASE, Operator.DOWNCASE, Operator.INTERPOLATE})


def drawable_name(src: str) -> str:
    """``images/weather/01d.png`` → ``01d`` → ``ic_01d`` (valid resource identifier)."""
    stem = src.rsplit("/", 1)[-1].rsplit(".", 1)[0]
    name = re.sub(r"[^0-9a-z_]+", "_", stem.lower()).strip("_") or "placeholder"
    return f"ic_{name}" if name[0].isdigit() else name


class KotlinEmitter(Emitter):
    """Lowers layout elements to Glance composables."""

    # -- Compilation helpers --

    def compile(
        self, value: Any, ctx: LoweringContext, mode: Mode = Mode.VALUE, formatter: Any = None
    ) -> str:
        expr = ctx.expression(value, condition=mode == Mode.CONDITION)
        return self.compile_expr(expr, ctx, mode, formatter)

    def compile_expr(
        self, expr: Expression, ctx: LoweringContext, mode: Mode = Mode.VALUE, formatter: Any = None
    ) -> str:
        return compile_expression(
            expr,
            Target.KOTLIN,
            mode,
            scope=ctx.scope,
            formatter=formatter,
            diagnostics=ctx.diagnostics,
            features=ctx.features,
        )

    def dimension(self, value: Any, ctx: LoweringContext, unit: str = "dp") -> str:
        """Number literal → ``12.dp``; anything else → ``(expr).dp``."""

        def fmt(v: Any) -> str | None:
            if isinstance(v, (int, float)) and not isinstance(v, bool):
                return f"{display(v)}.{unit}"
            return None

        expr = ctx.expression(value)
        compiled = self.compile_expr(expr, ctx, formatter=fmt)
        if isinstance(expr, Literal) and fmt(expr.value) is not None:
            return compiled
        if isinstance(expr, Call) and expr.op in (Operator.CASE, Operator.COALESCE):
            return compiled
        return f"({compiled}).{unit}"

    def color(self, value: Any, ctx: LoweringContext) -> str:
        def fmt(v: Any) -> str | None:
            return glance_color(v) if isinstance(v, str) else None

        expr = ctx.expression(value)
        compiled = self.compile_expr(expr, ctx, formatter=fmt)
        if isinstance(expr, Literal) or (
            isinstance(expr, Call) and expr.op in (Operator.CASE, Operator.COALESCE)
        ):
            return compiled
        return f"ColorProvider(Color(android.graphics.Color.parseColor({compiled})))"

    def text(self, value: Any, ctx: LoweringContext) -> str:
        expr = ctx.expression(value)
        if isinstance(expr, Literal):
            return kotlin_string(display(expr.value))
        compiled = self.compile_expr(expr, ctx)
        if expr.op in _STRING_OPS:
            return compiled
        if expr.op == Operator.GET and not compiled.startswith("size."):
            return compiled
        return f"({compiled}).toString()"

    def literal_int(self, value: Any, ctx: LoweringContext) -> str:
        expr = ctx.expression(value)
        if isinstance(expr, Literal) and isinstance(expr.value, (int, float)):
            return str(int(expr.value))
        return f"({self.compile_expr(expr, ctx)}).toInt()"

    # -- Modifiers --

    def _box(self, element: ElementBase, kind: str, ctx: LoweringContext) -> list[str]:
        sides = {side: element.box_side(kind, side) for side in BOX_SIDES}
        present = {side: value for side, value in sides.items() if value is not None}
        if not present:
            return []
        raw = {side: json.dumps(value, sort_keys=True) for side, value in sides.items()}
        if len(present) == 4 and len(set(raw.values())) == 1:
            return [f"padding({self.dimension(sides['top'], ctx)})"]
        if (
            len(present) == 4
            and raw["top"] == raw["bottom"]
            and raw["left"] == raw["right"]
        ):
            return [
                f"padding(horizontal = {self.dimension(sides['left'], ctx)}, "
                f"vertical = {self.dimension(sides['top'], ctx)})"
            ]
        names = {"left": "start", "top": "top", "right": "end", "bottom": "bottom"}
        args = [
            f"{names[side]} = {self.dimension(present[side], ctx)}"
            for side in ("left", "top", "right", "bottom")
            if side in present
        ]
        return [f"padding({', '.join(args)})"]

    def _size(self, value: Any, axis: str, ctx: LoweringContext) -> str | None:
        if value is None or value in ("auto", "wrap"):
            return None
        if value in ("fill", "100%"):
            return f"fillMax{axis.capitalize()}()"
        return f"{axis}({self.dimension(value, ctx)})"

    def modifier(
        self,
        element: ElementBase,
        ctx: LoweringContext,
        *,
        leading: list[str] | None = None,
        trailing: list[str] | None = None,
    ) -> str | None:
        """
        ``GlanceModifier`` chain for an element.

        Order: margins (as outer padding), size, weight, background, corner
        radius, padding. Padding placed before the background acts as margin.
        """
        parts = self._box(element, "margin", ctx)
        parts += leading or []
        width = self._size(element.width, "width", ctx)
        height = self._size(element.height, "height", ctx)
        if width == "fillMaxWidth()" and height == "fillMaxHeight()":
            parts.append("fillMaxSize()")
        else:
            parts += [p for p in (width, height) if p]
        if element.flex is not None:
            parts.append("defaultWeight()")
        if element.background_color is not None:
            parts.append(f"background({self.color(element.background_color, ctx)})")
        if element.corner_radius is not None:
            parts.append(f"cornerRadius({self.dimension(element.corner_radius, ctx)})")
        parts += self._box(element, "padding", ctx)
        parts += trailing or []
        if not parts:
            return None
        return "GlanceModifier." + ".".join(parts)

    def _with_modifier(self, args: list[tuple[str, str]], modifier: str | None) -> list[tuple[str, str]]:
        return [("modifier", modifier), *args] if modifier else args

    # -- Element hooks --

    def container(self, element, children, ctx):
        modifier = self.modifier(element, ctx)
        if isinstance(element, StackElement):
            args: list[tuple[str, str]] = []
            vertical = alignment("glance", "vertical", element.alignment)
            horizontal = alignment("glance", "horizontal", element.cross_alignment)
            if vertical or horizontal:
                args.append(
                    (
                        "contentAlignment",
                        f"Alignment(horizontal = {horizontal or 'Alignment.Horizontal.Start'}, "
                        f"vertical = {vertical or 'Alignment.Vertical.Top'})",
                    )
                )
            return [Composable("Box", self._with_modifier(args, modifier), children)]

        if isinstance(element, ColumnElement):
            name = "Column"
            main = ("verticalAlignment", alignment("glance", "vertical", element.alignment))
            cross = ("horizontalAlignment", alignment("glance", "horizontal", element.cross_alignment))
        else:
            name = "Row"
            main = ("horizontalAlignment", alignment("glance", "horizontal", element.alignment))
            cross = ("verticalAlignment", alignment("glance", "vertical", element.cross_alignment))
        args = [(key, value) for key, value in (main, cross) if value]
        return [Composable(name, self._with_modifier(args, modifier), children)]

    def _text_style(self, element: Any, ctx: LoweringContext) -> str | None:
        parts = []
        if element.font_size is not None:
            parts.append(f"fontSize = {self.dimension(element.font_size, ctx, 'sp')}")
        weight = font_weight("glance", element.font_weight)
        if weight:
            parts.append(f"fontWeight = {weight}")
        if element.color is not None:
            parts.append(f"color = {self.color(element.color, ctx)}")
        align = text_align("glance", element.text_align)
        if align:
            parts.append(f"textAlign = {align}")
        return f"TextStyle({', '.join(parts)})" if parts else None

    def _text_composable(self, element: Any, text: str, ctx: LoweringContext) -> list[Node]:
        args = [("text", text)]
        modifier = self.modifier(element, ctx)
        if modifier:
            args.append(("modifier", modifier))
        style = self._text_style(element, ctx)
        if style:
            args.append(("style", style))
        max_lines = getattr(element, "max_lines", None)
        if max_lines is not None:
            args.append(("maxLines", self.literal_int(max_lines, ctx)))
        return [Composable("Text", args)]

    def label(self, element: LabelElement | CSpanElement, ctx):
        return self._text_composable(element, self.text(element.text, ctx), ctx)

    def clock(self, element: ClockElement | DateElement, ctx):
        if isinstance(element, ClockElement):
            ctx.features.add(FEATURE_CONTEXT)
            pattern_24 = self.compile(element.format_24_hour or DEFAULT_CLOCK_24, ctx)
            pattern_12 = self.compile(element.format_12_hour or DEFAULT_CLOCK_12, ctx)
            pattern = (
                f"if (android.text.format.DateFormat.is24HourFormat(context)) "
                f"{pattern_24} else {pattern_12}"
            )
        else:
            pattern = self.compile(element.format or DEFAULT_DATE_FORMAT, ctx)
        text = (
            f"android.text.format.DateFormat.format({pattern}, "
            f"System.currentTimeMillis()).toString()"
        )
        return self._text_composable(element, text, ctx)

    def image(self, element: ImageElement, ctx):
        expr = ctx.expression(element.src)
        if isinstance(expr, Literal):
            res_id = f"R.drawable.{drawable_name(display(expr.value))}"
        else:
            ctx.features.add(FEATURE_CONTEXT)
            source = self.compile_expr(expr, ctx)
            res_id = (
                f'context.resources.getIdentifier({source}, "drawable", context.packageName)'
            )
        size = self.dimension(element.size if element.size is not None else DEFAULT_IMAGE_SIZE, ctx)
        args = [
            ("provider", f"ImageProvider(resId = {res_id})"),
            ("contentDescription", "null"),
            ("modifier", self.modifier(element, ctx, leading=[f"size({size})"]) or ""),
        ]
        if element.color is not None:
            args.append(("colorFilter", f"ColorFilter.tint({self.color(element.color, ctx)})"))
        return [Composable("Image", args)]

    def divider(self, element: DividerElement, ctx):
        thickness = element.thickness if element.thickness is not None else DIVIDER_DEFAULT_THICKNESS
        color = element.color if element.color is not None else DIVIDER_DEFAULT_COLOR
        modifier = self.modifier(
            element,
            ctx,
            leading=["fillMaxWidth()", f"height({self.dimension(thickness, ctx)})"],
            trailing=[f"background({self.color(color, ctx)})"],
        )
        return [Composable("Box", [("modifier", modifier or "GlanceModifier")], [])]

    def flex_spacer(self, element: SpacerElement, ctx):
        modifier = self.modifier(element, ctx) or "GlanceModifier.defaultWeight()"
        return [Composable("Spacer", [("modifier", modifier)])]

    def for_each(self, element: ForEachElement, items, body, ctx):
        source = self.compile_expr(items, ctx)
        take = "" if element.limit is None else f".take({self.literal_int(element.limit, ctx)})"
        if element.direction == "vertical":
            loop = Block(f"items({source}{take}) {{ item ->", body)
            args = self._with_modifier([], self._scroll_modifier(element, ctx))
            return [Composable("LazyColumn", args, [loop])]
        loop = Block(f"{source}{take}.forEach {{ item ->", body)
        if element.direction == "horizontal":
            args = self._with_modifier([], self._scroll_modifier(element, ctx))
            return [Composable("Row", args, [loop])]
        return [loop]

    def _scroll_modifier(self, element: ForEachElement, ctx: LoweringContext) -> str | None:
        parts = [
            p
            for p in (
                self._size(element.width, "width", ctx),
                self._size(element.height, "height", ctx),
            )
            if p
        ]
        return "GlanceModifier." + ".".join(parts) if parts else None

    def choose(self, branches, otherwise, ctx):
        return [
            IfChain(
                [Branch(self.compile_expr(cond, ctx, Mode.CONDITION), body) for cond, body in branches],
                otherwise,
            )
        ]

    def margin_box(self, element, body, ctx):
        wrapper = {"column": "Column", "row": "Row"}.get(ctx.direction, "Box")
        modifier = "GlanceModifier." + ".".join(self._box(element, "margin", ctx))
        return [Composable(wrapper, [("modifier", modifier)], body)]

    def placeholder(self, message, ctx):
        return [Comment(message)]


# ---------------------------------------------------------------------------
# File assembly
# ---------------------------------------------------------------------------


def _data_classes(name: str, ctx: LoweringContext) -> list[str]:
    """Data class declarations for the root data and every iterated list."""
    list_classes: dict[str, tuple[str, list[str]]] = {}
    for list_name, (class_name, fields) in _KNOWN_LISTS.items():
        extra = [f for f in ctx.list_fields.get(list_name, {}) if f not in fields]
        list_classes[list_name] = (class_name, [*fields, *sorted(extra)])
    for list_name in sorted(ctx.list_fields):
        if list_name not in list_classes:
            fields = sorted(ctx.list_fields[list_name]) or ["value"]
            list_classes[list_name] = (f"{to_pascal_case(list_name)}Item", fields)

    root_fields = [f"    val {f}: String = \"\"" for f in _WIDGET_DATA_FIELDS]
    extras = sorted(
        f for f in ctx.data_fields if f not in _WIDGET_DATA_FIELDS and f not in list_classes
    )
    root_fields += [f"    val {f}: String = \"\"" for f in extras]
    root_fields += [
        f"    val {list_name}: List<{class_name}> = emptyList()"
        for list_name, (class_name, _) in list_classes.items()
    ]

    lines = [f"data class {name}Data(", ",\n".join(root_fields), ")"]
    for class_name, fields in list_classes.values():
        lines += [
            "",
            f"data class {class_name}(",
            ",\n".join(f"    val {f}: String = \"\"" for f in fields),
            ")",
        ]
    return lines


def generate_kotlin(
    layout: WidgetLayout,
    *,
    package: str = DEFAULT_PACKAGE,
    r_class: str = DEFAULT_R_CLASS,
    diagnostics: Diagnostics | None = None,
) -> str:
    """Generate the Kotlin source for one widget."""
    ctx = LoweringContext(
        diagnostics=diagnostics if diagnostics is not None else [],
        colors=collect_color_tokens(layout),
    )
    emitter = KotlinEmitter()
    name = to_pascal_case(layout.name)

    content = lower_widget(layout, emitter, ctx)
    root_parts = ["fillMaxSize()"]
    if layout.background is not None and layout.background.color is not None:
        root_parts.append(f"background({emitter.color(layout.background.color, ctx)})")
    if layout.default_padding is not None:
        root_parts.append(f"padding({emitter.dimension(layout.default_padding, ctx)})")
    root = Composable("Box", [("modifier", "GlanceModifier." + ".".join(root_parts))], content)

    lines = [f"package {package}", ""]
    lines += [f"import {module}" for module in [*_IMPORTS, r_class]]
    lines += [
        "",
        "/**",
        f" * Generated content for {layout.display_name or layout.name}",
        " * DO NOT EDIT - This file is auto-generated from JSON layout definitions",
        " */",
        "",
        "@Composable",
        f"fun {name}Content(data: {name}Data) {{",
        "    val size = LocalSize.current",
    ]
    if FEATURE_CONTEXT in ctx.features:
        lines.append("    val context = LocalContext.current")
    lines += render_kotlin([root], depth=1)
    lines.append("}")
    if FEATURE_TRUTHY in ctx.features:
        lines += ["", _TRUTHY_HELPER]
    lines += ["", *_data_classes(name, ctx)]
    return "\n".join(lines) + "\n"


def output_name(layout: WidgetLayout) -> str:
    return f"{to_pascal_case(layout.name)}Content.generated.kt"


class KotlinGenerator(Generator):
    """Writes one ``<Name>Content.generated.kt`` per layout."""

    def __init__(self, output_dir, *, package: str = DEFAULT_PACKAGE, r_class: str = DEFAULT_R_CLASS):
        super().__init__(output_dir)
        self.package = package
        self.r_class = r_class

    def build(self, layout: WidgetLayout, diagnostics: Diagnostics) -> dict[str, str]:
        source = generate_kotlin(
            layout, package=self.package, r_class=self.r_class, diagnostics=diagnostics
        )
        return {output_name(layout): source}
