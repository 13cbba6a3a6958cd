"""
Svelte Native back-end.

Generates ``<Name>View.generated.svelte`` for the NativeScript app. Element
kinds map to NativeScript tags:

    column/row → stacklayout (orientation)    stack → gridlayout
    label → label    image → image    divider → stacklayout (height = thickness)
    forEach → collectionview + <Template let:item>
    conditional → {#if}{:else}{/if}

Each element gets a de-duplicated attribute list drawn from a fixed whitelist.
Theme color tokens become ``colorX`` variables destructured from the
``colors`` store; only tokens the layout uses are declared.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from widgetgen.backends.base import Generator
from widgetgen.backends.target import Attr, Branch, Comment, Element, IfChain, Node, render_markup
from widgetgen.diagnostics import Diagnostics
from widgetgen.expressions.bindings import has_binding
from widgetgen.expressions.compiler import Mode, Target, compile_expression, js_string
from widgetgen.expressions.evaluator import display
from widgetgen.expressions.model import Expression, Literal
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
from widgetgen.theme import (
    alignment,
    font_weight,
    is_theme_color,
    svelte_color_var,
    text_align,
    to_pascal_case,
    to_snake_case,
)

logger = logging.getLogger(__name__)

FEATURE_TEMPLATE = "template"
FEATURE_CLOCK = "clock"
FEATURE_DATE = "date"
FEATURE_LOCALIZE = "localize"

DEFAULT_CLOCK_FORMAT = "HH:mm"
DEFAULT_DATE_FORMAT = "MMM DD, YYYY"

# Whitelisted attributes in emission order: (layout attribute, markup name).
# Padding and margin are handled separately (per-side expansion).
_STYLE_ATTRS = (
    ("width", "width"),
    ("height", "height"),
    ("corner_radius", "borderRadius"),
    ("background_color", "backgroundColor"),
    ("color", "color"),
    ("font_size", "fontSize"),
    ("font_weight", "fontWeight"),
    ("text_align", "textAlignment"),
    ("max_lines", "maxLines"),
    ("text_wrap", "textWrap"),
    ("col", "col"),
    ("row", "row"),
    ("col_span", "colSpan"),
    ("row_span", "rowSpan"),
)

_COLOR_ATTRS = frozenset({"background_color", "color"})


def should_localize(text: Any) -> bool:
    """
    Whether a literal label text should go through the localisation helper.

    Numbers, single characters, bindings and data paths are left alone.
    """
    if not isinstance(text, str):
        return False
    stripped = text.strip()
    if len(stripped) <= 1 or has_binding(stripped):
        return False
    if stripped.startswith(("data.", "item.", "size.")):
        return False
    try:
        float(stripped)
    except ValueError:
        return bool(to_snake_case(stripped))
    return False


class _AttrList:
    """Ordered attribute list that ignores repeated names."""

    def __init__(self) -> None:
        self.attrs: list[Attr] = []
        self.seen_attrs: set[str] = set()

    def add(self, name: str, value: str | None, bound: bool = False) -> None:
        if name in self.seen_attrs:
            return
        self.seen_attrs.add(name)
        self.attrs.append(Attr(name, value, bound))


class SvelteEmitter(Emitter):
    """Lowers layout elements to NativeScript markup."""

    # -- Value helpers --

    def compile_expr(
        self,
        expr: Expression,
        ctx: LoweringContext,
        mode: Mode = Mode.VALUE,
        formatter: Callable[[Any], str | None] | None = None,
    ) -> str:
        return compile_expression(
            expr,
            Target.SVELTE,
            mode,
            scope=ctx.scope,
            formatter=formatter,
            diagnostics=ctx.diagnostics,
            features=ctx.features,
        )

    def value(self, value: Any, ctx: LoweringContext, *, color: bool = False) -> tuple[str, bool]:
        """Render a property value as ``(text, bound)``."""

        def fmt(v: Any) -> str | None:
            return svelte_color_var(v) if color and is_theme_color(v) else None

        expr = ctx.expression(value)
        if isinstance(expr, Literal):
            literal = expr.value
            if color and is_theme_color(literal):
                return svelte_color_var(literal), True
            if isinstance(literal, bool) or literal is None:
                return self.compile_expr(expr, ctx), True
            if literal == "fill":
                return "100%", False
            return display(literal), False
        return self.compile_expr(expr, ctx, formatter=fmt), True

    def _mapped(self, attr: str, value: Any) -> str | None:
        if attr == "font_weight":
            return font_weight("nativescript", value)
        if attr == "text_align":
            return text_align("nativescript", value)
        return None

    def attributes(
        self,
        element: ElementBase,
        ctx: LoweringContext,
        *,
        skip: tuple[str, ...] = (),
        margins: bool = True,
    ) -> _AttrList:
        attrs = _AttrList()
        for kind in ("padding", "margin") if margins else ("padding",):
            self._box(attrs, element, kind, ctx)

        if isinstance(element, (ColumnElement, RowElement, StackElement)):
            self._alignment(attrs, element)

        for attr, name in _STYLE_ATTRS:
            if attr in skip:
                continue
            raw = getattr(element, attr, None)
            if raw is None:
                continue
            mapped = self._mapped(attr, raw)
            if mapped is not None:
                attrs.add(name, mapped)
                continue
            text, bound = self.value(raw, ctx, color=attr in _COLOR_ATTRS)
            attrs.add(name, text, bound)
        return attrs

    def _box(self, attrs: _AttrList, element: ElementBase, kind: str, ctx: LoweringContext) -> None:
        sides = {side: element.box_side(kind, side) for side in BOX_SIDES}
        present = {side: value for side, value in sides.items() if value is not None}
        rendered = {side: self.value(value, ctx) for side, value in present.items()}
        if len(rendered) == 4 and len(set(rendered.values())) == 1:
            text, bound = rendered["top"]
            attrs.add(kind, text, bound)
            return
        for side, (text, bound) in rendered.items():
            attrs.add(kind + side.capitalize(), text, bound)

    def _alignment(self, attrs: _AttrList, element: Any) -> None:
        if isinstance(element, RowElement):
            main_axis, cross_axis = "horizontal", "vertical"
        else:
            main_axis, cross_axis = "vertical", "horizontal"
        for value, axis in ((element.alignment, main_axis), (element.cross_alignment, cross_axis)):
            mapped = alignment("nativescript", axis, value)
            if mapped:
                attrs.add(f"{axis}Alignment", mapped)

    # -- Element hooks --

    def container(self, element, children, ctx):
        attrs = _AttrList()
        if isinstance(element, StackElement):
            tag = "gridlayout"
        else:
            tag = "stacklayout"
            attrs.add("orientation", "vertical" if isinstance(element, ColumnElement) else "horizontal")
        for attr in self.attributes(element, ctx).attrs:
            attrs.add(attr.name, attr.value, attr.bound)
        return [Element(tag, attrs.attrs, children)]

    def _text(self, text: Any, ctx: LoweringContext) -> tuple[str, bool]:
        if should_localize(text):
            ctx.features.add(FEATURE_LOCALIZE)
            return f"l({js_string(to_snake_case(text))})", True
        return self.value(text, ctx)

    def label(self, element: LabelElement | CSpanElement, ctx):
        attrs = _AttrList()
        text, bound = self._text(element.text if element.text is not None else "", ctx)
        attrs.add("text", text, bound)
        for attr in self.attributes(element, ctx).attrs:
            attrs.add(attr.name, attr.value, attr.bound)
        tag = "cspan" if isinstance(element, CSpanElement) else "label"
        return [Element(tag, attrs.attrs)]

    def clock(self, element: ClockElement | DateElement, ctx):
        if isinstance(element, ClockElement):
            ctx.features.add(FEATURE_CLOCK)
            helper = "nowTime"
            fmt = element.format_24_hour or DEFAULT_CLOCK_FORMAT
        else:
            ctx.features.add(FEATURE_DATE)
            helper = "nowDate"
            fmt = element.format or DEFAULT_DATE_FORMAT
        text, bound = self.value(fmt, ctx)
        pattern = text if bound else js_string(text)
        attrs = _AttrList()
        attrs.add("text", f"{helper}({pattern})", True)
        for attr in self.attributes(element, ctx).attrs:
            attrs.add(attr.name, attr.value, attr.bound)
        return [Element("label", attrs.attrs)]

    def image(self, element: ImageElement, ctx):
        attrs = _AttrList()
        src, bound = self.value(element.src, ctx)
        attrs.add("src", src, bound)
        if element.size is not None:
            size, size_bound = self.value(element.size, ctx)
            attrs.add("width", size, size_bound)
            attrs.add("height", size, size_bound)
        if element.color is not None:
            tint, tint_bound = self.value(element.color, ctx, color=True)
            attrs.add("tintColor", tint, tint_bound)
        for attr in self.attributes(element, ctx, skip=("color",)).attrs:
            attrs.add(attr.name, attr.value, attr.bound)
        return [Element("image", attrs.attrs)]

    def divider(self, element: DividerElement, ctx):
        attrs = _AttrList()
        thickness = element.thickness if element.thickness is not None else DIVIDER_DEFAULT_THICKNESS
        text, bound = self.value(thickness, ctx)
        attrs.add("height", text, bound)
        color = element.color if element.color is not None else DIVIDER_DEFAULT_COLOR
        text, bound = self.value(color, ctx, color=True)
        attrs.add("backgroundColor", text, bound)
        for attr in self.attributes(element, ctx, skip=("color",)).attrs:
            attrs.add(attr.name, attr.value, attr.bound)
        return [Element("stacklayout", attrs.attrs)]

    def flex_spacer(self, element: SpacerElement, ctx):
        attrs = _AttrList()
        text, bound = self.value(element.flex, ctx)
        attrs.add("flexGrow", text, bound)
        for attr in self.attributes(element, ctx).attrs:
            attrs.add(attr.name, attr.value, attr.bound)
        return [Element("stacklayout", attrs.attrs)]

    def for_each(self, element: ForEachElement, items, body, ctx):
        ctx.features.add(FEATURE_TEMPLATE)
        source = f"({self.compile_expr(items, ctx)} ?? [])"
        if element.limit is not None:
            limit_expr = ctx.expression(element.limit)
            if isinstance(limit_expr, Literal):
                limit = display(limit_expr.value)
            else:
                limit = f"Number({self.compile_expr(limit_expr, ctx)})"
            source = f"{source}.slice(0, {limit})"
        attrs = _AttrList()
        attrs.add("items", source, True)
        if element.direction is not None:
            attrs.add("orientation", display(element.direction))
        for attr in self.attributes(element, ctx, margins=False).attrs:
            attrs.add(attr.name, attr.value, attr.bound)
        template = Element("Template", [Attr("let:item")], body)
        return [Element("collectionview", attrs.attrs, [template])]

    def choose(self, branches, otherwise, ctx):
        return [
            IfChain(
                [Branch(self.compile_expr(cond, ctx, Mode.CONDITION), body) for cond, body in branches],
                otherwise,
            )
        ]

    def margin_box(self, element, body, ctx):
        attrs = _AttrList()
        attrs.add("orientation", "horizontal" if ctx.direction == "row" else "vertical")
        self._box(attrs, element, "margin", ctx)
        return [Element("stacklayout", attrs.attrs, body)]

    def placeholder(self, message, ctx):
        return [Comment(message)]


# ---------------------------------------------------------------------------
# File assembly
# ---------------------------------------------------------------------------


def _script_blocks(layout: WidgetLayout, ctx: LoweringContext) -> list[str]:
    size = layout.default_size
    imports = []
    if FEATURE_TEMPLATE in ctx.features:
        imports.append("import { Template } from 'svelte-native/components';")
    if ctx.features & {FEATURE_CLOCK, FEATURE_DATE}:
        imports.append("import { formatDate } from '~/helpers/formatter';")
    if FEATURE_LOCALIZE in ctx.features:
        imports.append("import { l } from '~/helpers/locale';")
    if ctx.colors:
        imports.append("import { colors } from '~/variables';")
    imports.append("import type { WeatherWidgetData } from '~/services/widgets/WidgetTypes';")

    lines = ['<script context="module" lang="ts">']
    lines += [f"    {line}" for line in imports]
    lines += ["</script>", "", '<script lang="ts">']
    lines.append("    export let data: WeatherWidgetData;")
    lines.append(
        "    export let size: { width: number; height: number } = "
        f"{{ width: {display(size.width)}, height: {display(size.height)} }};"
    )
    if ctx.colors:
        names = ", ".join(svelte_color_var(token) for token in ctx.colors)
        lines += ["", f"    $: ({{ {names} }} = $colors);"]
    for feature, helper in ((FEATURE_CLOCK, "nowTime"), (FEATURE_DATE, "nowDate")):
        if feature in ctx.features:
            lines += [
                "",
                f"    function {helper}(format: string) {{",
                "        return formatDate(Date.now(), format);",
                "    }",
            ]
    lines.append("</script>")
    return lines


def generate_svelte(layout: WidgetLayout, *, diagnostics: Diagnostics | None = None) -> str:
    """Generate the Svelte component for one widget."""
    ctx = LoweringContext(
        diagnostics=diagnostics if diagnostics is not None else [],
        colors=collect_color_tokens(layout),
    )
    emitter = SvelteEmitter()
    content = lower_widget(layout, emitter, ctx)

    wrapper = _AttrList()
    wrapper.add("width", "size.width", True)
    wrapper.add("height", "size.height", True)
    if layout.background is not None and layout.background.color is not None:
        text, bound = emitter.value(layout.background.color, ctx, color=True)
        wrapper.add("backgroundColor", text, bound)
    if layout.default_padding is not None:
        text, bound = emitter.value(layout.default_padding, ctx)
        wrapper.add("padding", text, bound)
    wrapper.add("class", "widget-container")
    root = Element("gridlayout", wrapper.attrs, content)

    # Script blocks last: lowering decides which helpers are needed.
    markup = render_markup([root])
    return "\n".join([*_script_blocks(layout, ctx), "", *markup]) + "\n"


def output_name(layout: WidgetLayout) -> str:
    return f"{to_pascal_case(layout.name)}View.generated.svelte"


class SvelteGenerator(Generator):
    """Writes one ``<Name>View.generated.svelte`` per layout."""

    def build(self, layout: WidgetLayout, diagnostics: Diagnostics) -> dict[str, str]:
        return {output_name(layout): generate_svelte(layout, diagnostics=diagnostics)}
