"""
HTML preview renderer.

Unlike the Kotlin and Svelte back-ends this one does not compile: it evaluates
every property against concrete sample data and emits inline-styled
``<div>``/``<span>``/``<img>`` markup. Conditions go through the restricted
condition parser and the expression evaluator; nothing is executed.

Rendering never raises. A failing element is logged, recorded as a
diagnostic and rendered as an empty string.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from widgetgen.backends.base import Generator, GeneratorResult
from widgetgen.diagnostics import DiagnosticCode, Diagnostics, report
from widgetgen.errors import BackendError, WidgetGenError
from widgetgen.expressions.bindings import to_expression
from widgetgen.expressions.evaluator import DEFAULT_NOW, EvalContext, display, evaluate, to_number, truthy
from widgetgen.layout.loader import load_sample_data
from widgetgen.layout.model import (
    BOX_SIDES,
    ClockElement,
    ColumnElement,
    ConditionalElement,
    CSpanElement,
    DateElement,
    DividerElement,
    ElementBase,
    ForEachElement,
    ImageElement,
    LabelElement,
    LayoutElement,
    RowElement,
    ScrollViewElement,
    SpacerElement,
    StackElement,
    SupportedSize,
    WidgetLayout,
)
from widgetgen.layout.walker import (
    CONDITIONAL_PLACEHOLDER,
    DIVIDER_DEFAULT_COLOR,
    DIVIDER_DEFAULT_THICKNESS,
    FOR_EACH_PLACEHOLDER,
    items_source,
    normalize_children,
    visibility_expression,
)
from widgetgen.theme import DEFAULT_FONT_FAMILY, alignment, font_weight, html_color, text_align

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

IMAGE_PLACEHOLDER = "☁️"
DEFAULT_IMAGE_SIZE = 32
DEFAULT_CLOCK_FORMAT = "HH:mm"
DEFAULT_DATE_FORMAT = "EEEE, MMM d"


# ---------------------------------------------------------------------------
# Date formatting
# ---------------------------------------------------------------------------

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Longest tokens first. Both Android (yyyy, dd, EEE) and dayjs (YYYY, DD, ddd)
# spellings are accepted; 'quoted' text is copied verbatim.
_DATE_TOKEN_RE = re.compile(
    r"'[^']*'|yyyy|YYYY|yy|YY|MMMM|MMM|MM|M|EEEE|dddd|EEE|ddd|dd|DD|d|D|HH|H|hh|h|mm|m|ss|s|a|A"
)


def _date_token(moment: datetime, token: str) -> str:
    hour_12 = moment.hour % 12 or 12
    if token.startswith("'"):
        return token[1:-1]
    if token in ("yyyy", "YYYY"):
        return f"{moment.year:04d}"
    if token in ("yy", "YY"):
        return f"{moment.year % 100:02d}"
    if token == "MMMM":
        return _MONTHS[moment.month - 1]
    if token == "MMM":
        return _MONTHS[moment.month - 1][:3]
    if token == "MM":
        return f"{moment.month:02d}"
    if token == "M":
        return str(moment.month)
    if token in ("EEEE", "dddd"):
        return _WEEKDAYS[moment.weekday()]
    if token in ("EEE", "ddd"):
        return _WEEKDAYS[moment.weekday()][:3]
    if token in ("dd", "DD"):
        return f"{moment.day:02d}"
    if token in ("d", "D"):
        return str(moment.day)
    if token == "HH":
        return f"{moment.hour:02d}"
    if token == "H":
        return str(moment.hour)
    if token == "hh":
        return f"{hour_12:02d}"
    if token == "h":
        return str(hour_12)
    if token == "mm":
        return f"{moment.minute:02d}"
    if token == "m":
        return str(moment.minute)
    if token == "ss":
        return f"{moment.second:02d}"
    if token == "s":
        return str(moment.second)
    return "AM" if moment.hour < 12 else "PM"


def format_datetime(moment: datetime, pattern: str) -> str:
    """Format ``moment`` with an Android/dayjs style pattern, in English."""
    return _DATE_TOKEN_RE.sub(lambda m: _date_token(moment, m.group(0)), pattern)


# ---------------------------------------------------------------------------
# Render context
# ---------------------------------------------------------------------------


@dataclass
class RenderContext:
    """Evaluation context plus the diagnostics sink for one render."""

    context: EvalContext
    diagnostics: Diagnostics = field(default_factory=list)

    def with_item(self, item: Any) -> RenderContext:
        return replace(self, context=self.context.with_item(item))

    def value(self, raw: Any) -> Any:
        """Evaluate a property value (literal, binding or expression)."""
        expr = to_expression(raw, diagnostics=self.diagnostics)
        return evaluate(expr, self.context, diagnostics=self.diagnostics)

    def text(self, raw: Any) -> str:
        return display(self.value(raw))

    def condition(self, raw: Any) -> bool:
        expr = to_expression(raw, condition=True, diagnostics=self.diagnostics)
        return truthy(evaluate(expr, self.context, diagnostics=self.diagnostics))


# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------


def _px(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if value == "fill":
        return "100%"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            return None
        return f"{display(value)}px"
    return str(value)


def _style(styles: dict[str, str]) -> str:
    return "; ".join(f"{key}: {value}" for key, value in styles.items())


def _box_styles(styles: dict[str, str], element: ElementBase, kind: str, rc: RenderContext) -> None:
    sides = {side: _px(rc.value(element.box_side(kind, side))) for side in BOX_SIDES}
    present = {side: value for side, value in sides.items() if value is not None}
    if len(present) == 4 and len(set(present.values())) == 1:
        styles[kind] = present["top"]
        return
    for side, value in present.items():
        styles[f"{kind}-{side}"] = value


def build_styles(element: ElementBase, rc: RenderContext) -> dict[str, str]:
    """Box model, size and paint styles shared by every element."""
    styles: dict[str, str] = {}
    _box_styles(styles, element, "padding", rc)
    _box_styles(styles, element, "margin", rc)
    for attr in ("width", "height"):
        value = _px(rc.value(getattr(element, attr)))
        if value is not None:
            styles[attr] = value
    flex = rc.value(element.flex)
    if flex is not None:
        styles["flex"] = display(flex)
    background = rc.value(element.background_color)
    if background:
        styles["background-color"] = html_color(background)
    radius = _px(rc.value(element.corner_radius))
    if radius is not None:
        styles["border-radius"] = radius
    return styles


def _text_styles(styles: dict[str, str], element: Any, rc: RenderContext) -> None:
    size = _px(rc.value(element.font_size))
    if size is not None:
        styles["font-size"] = size
    weight = font_weight("html", rc.value(element.font_weight))
    if weight is not None:
        styles["font-weight"] = weight
    color = rc.value(element.color)
    if color:
        styles["color"] = html_color(color)
    align = text_align("html", rc.value(element.text_align))
    if align is not None:
        styles["text-align"] = align


def _tag(tag: str, styles: dict[str, str], content: str = "") -> str:
    return f'<{tag} style="{escape(_style(styles))}">{content}</{tag}>'


# ---------------------------------------------------------------------------
# Elements
# ---------------------------------------------------------------------------


def render_element(element: LayoutElement | None, rc: RenderContext) -> str:
    """Render one element; failures are logged and render as ``""``."""
    if element is None:
        return ""
    try:
        visibility = visibility_expression(element, rc.diagnostics)
        if visibility is not None:
            if not truthy(evaluate(visibility, rc.context, diagnostics=rc.diagnostics)):
                return ""
        return _render(element, rc)
    except Exception as e:
        report(
            rc.diagnostics,
            DiagnosticCode.RENDER,
            f"Failed to render {element.type} element: {e}",
            log=logger,
        )
        return ""


def _render(element: LayoutElement, rc: RenderContext) -> str:
    if isinstance(element, (ColumnElement, RowElement)):
        return _render_flex(element, rc)
    if isinstance(element, StackElement):
        return _render_stack(element, rc)
    if isinstance(element, ScrollViewElement):
        return _render_scroll_view(element, rc)
    if isinstance(element, (LabelElement, CSpanElement)):
        return _render_label(element, rc)
    if isinstance(element, ImageElement):
        return _render_image(element, rc)
    if isinstance(element, SpacerElement):
        return _render_spacer(element, rc)
    if isinstance(element, DividerElement):
        return _render_divider(element, rc)
    if isinstance(element, ForEachElement):
        return _render_for_each(element, rc)
    if isinstance(element, ConditionalElement):
        return _render_conditional(element, rc)
    if isinstance(element, (ClockElement, DateElement)):
        return _render_clock(element, rc)
    raise TypeError(f"Unhandled element type: {type(element).__name__}")


def _render_children(element: ElementBase, rc: RenderContext) -> str:
    return "".join(render_element(child, rc) for child in normalize_children(element))


def _render_flex(element: ColumnElement | RowElement, rc: RenderContext) -> str:
    styles = {
        "display": "flex",
        "flex-direction": "row" if isinstance(element, RowElement) else "column",
    }
    styles.update(build_styles(element, rc))
    justify = alignment("html", "any", rc.value(element.alignment))
    if justify is not None:
        styles["justify-content"] = justify
    align = alignment("html", "any", rc.value(element.cross_alignment))
    if align is not None:
        styles["align-items"] = align
    return _tag("div", styles, _render_children(element, rc))


def _render_stack(element: StackElement, rc: RenderContext) -> str:
    styles = {"position": "relative", "width": "100%", "height": "100%"}
    styles.update(build_styles(element, rc))
    layer = {"position": "absolute", "top": "0", "left": "0", "right": "0", "bottom": "0"}
    children = "".join(
        _tag("div", layer, html)
        for html in (render_element(child, rc) for child in normalize_children(element))
        if html
    )
    return _tag("div", styles, children)


def _render_scroll_view(element: ScrollViewElement, rc: RenderContext) -> str:
    horizontal = rc.value(element.direction) == "horizontal"
    styles = {
        "display": "flex",
        "flex-direction": "row" if horizontal else "column",
        "overflow-x": "auto" if horizontal else "hidden",
        "overflow-y": "hidden" if horizontal else "auto",
    }
    styles.update(build_styles(element, rc))
    return _tag("div", styles, _render_children(element, rc))


def _render_label(element: LabelElement | CSpanElement, rc: RenderContext) -> str:
    styles = build_styles(element, rc)
    _text_styles(styles, element, rc)
    max_lines = getattr(element, "max_lines", None)
    if max_lines is not None:
        number = to_number(rc.value(max_lines))
        lines = int(number) if math.isfinite(number) else 0
        if lines > 0:
            styles["overflow"] = "hidden"
            styles["text-overflow"] = "ellipsis"
            styles["white-space"] = "nowrap" if lines == 1 else "normal"
            if lines > 1:
                styles["display"] = "-webkit-box"
                styles["-webkit-line-clamp"] = str(lines)
                styles["-webkit-box-orient"] = "vertical"
    return _tag("span", styles, str(escape(rc.text(element.text))))


def _render_image(element: ImageElement, rc: RenderContext) -> str:
    styles = build_styles(element, rc)
    size = rc.value(element.size)
    size_px = _px(size)
    if size_px is not None:
        styles["width"] = size_px
        styles["height"] = size_px

    src = rc.text(element.src) if element.src is not None else ""
    if not src or "{{" in src:
        number = to_number(size) if size is not None else math.nan
        font_size = number * 0.8 if math.isfinite(number) else DEFAULT_IMAGE_SIZE
        styles["font-size"] = f"{display(font_size)}px"
        styles["display"] = "flex"
        styles["align-items"] = "center"
        styles["justify-content"] = "center"
        return _tag("span", styles, IMAGE_PLACEHOLDER)
    return f'<img src="{escape(src)}" style="{escape(_style(styles))}" alt=""/>'


def _render_spacer(element: SpacerElement, rc: RenderContext) -> str:
    styles = build_styles(element, rc)
    if element.flex is None:
        size = _px(rc.value(element.size))
        if size is not None:
            styles["width"] = size
            styles["height"] = size
    return _tag("div", styles)


def _render_divider(element: DividerElement, rc: RenderContext) -> str:
    styles = build_styles(element, rc)
    thickness = element.thickness if element.thickness is not None else DIVIDER_DEFAULT_THICKNESS
    styles["height"] = _px(rc.value(thickness)) or f"{DIVIDER_DEFAULT_THICKNESS}px"
    styles["width"] = "100%"
    color = rc.value(element.color if element.color is not None else DIVIDER_DEFAULT_COLOR)
    styles["background-color"] = html_color(color)
    styles["opacity"] = "0.3"
    return _tag("div", styles)


def _render_for_each(element: ForEachElement, rc: RenderContext) -> str:
    if element.items is None or element.item_template is None:
        report(rc.diagnostics, DiagnosticCode.SCHEMA, FOR_EACH_PLACEHOLDER, log=logger)
        return ""
    items = evaluate(items_source(element.items, rc.diagnostics), rc.context, diagnostics=rc.diagnostics)
    if not isinstance(items, list):
        return ""
    if element.limit is not None:
        limit = to_number(rc.value(element.limit))
        if math.isfinite(limit):
            items = items[: max(int(limit), 0)]

    content = "".join(render_element(element.item_template, rc.with_item(item)) for item in items)
    styles = build_styles(element, rc)
    if element.direction is None and not styles:
        return content
    horizontal = rc.value(element.direction) == "horizontal"
    styles = {"display": "flex", "flex-direction": "row" if horizontal else "column", **styles}
    return _tag("div", styles, content)


def _render_conditional(element: ConditionalElement, rc: RenderContext) -> str:
    if element.condition is None:
        report(rc.diagnostics, DiagnosticCode.SCHEMA, CONDITIONAL_PLACEHOLDER, log=logger)
        return ""
    branch = element.then if rc.condition(element.condition) else element.else_
    html = render_element(branch, rc)
    styles = build_styles(element, rc)
    if html and styles:
        return _tag("div", styles, html)
    return html


def _render_clock(element: ClockElement | DateElement, rc: RenderContext) -> str:
    styles = build_styles(element, rc)
    styles["text-align"] = "center"
    _text_styles(styles, element, rc)
    if isinstance(element, ClockElement):
        pattern = rc.text(element.format_24_hour) or DEFAULT_CLOCK_FORMAT
    else:
        pattern = rc.text(element.format) or DEFAULT_DATE_FORMAT
    return _tag("span", styles, str(escape(format_datetime(rc.context.now, pattern))))


# ---------------------------------------------------------------------------
# Widgets and pages
# ---------------------------------------------------------------------------


def _size_dict(layout: WidgetLayout, size: SupportedSize | dict[str, Any] | None) -> dict[str, Any]:
    if size is None:
        size = layout.default_size
    if isinstance(size, SupportedSize):
        return {"width": size.width, "height": size.height}
    return {"width": size.get("width", 160), "height": size.get("height", 160)}


def select_layout(layout: WidgetLayout, rc: RenderContext) -> LayoutElement:
    """First variant whose condition holds, else the default layout."""
    for variant in layout.variants:
        if variant.condition is not None and rc.condition(variant.condition):
            return variant.layout
    return layout.layout


def render_widget_to_html(
    layout: WidgetLayout,
    data: dict[str, Any] | None,
    size: SupportedSize | dict[str, Any] | None = None,
    *,
    now: datetime | None = None,
    diagnostics: Diagnostics | None = None,
) -> Markup:
    """
    Render a widget to an HTML fragment.

    Args:
        layout: Widget to render
        data: Sample ``WidgetData``
        size: Widget size; defaults to the first supported size
        now: Time shown by ``clock``/``date`` elements
        diagnostics: Optional list receiving render warnings

    Returns:
        The widget as a single ``<div>``, safe to embed in a template
    """
    dims = _size_dict(layout, size)
    rc = RenderContext(
        context=EvalContext(data=data or {}, size=dims, now=now or DEFAULT_NOW),
        diagnostics=diagnostics if diagnostics is not None else [],
    )
    styles = {
        "width": _px(dims["width"]) or "0px",
        "height": _px(dims["height"]) or "0px",
        "border-radius": "16px",
        "overflow": "hidden",
        "font-family": DEFAULT_FONT_FAMILY,
    }
    if layout.background is not None and layout.background.color is not None:
        styles["background-color"] = html_color(rc.value(layout.background.color))
    if layout.default_padding is not None:
        padding = _px(rc.value(layout.default_padding))
        if padding is not None:
            styles["padding"] = padding

    try:
        root = select_layout(layout, rc)
    except Exception as e:
        report(rc.diagnostics, DiagnosticCode.RENDER, f"Failed to select variant: {e}", log=logger)
        root = layout.layout
    return Markup(_tag("div", styles, render_element(root, rc)))


_env: Environment | None = None


def get_jinja_env() -> Environment:
    """Get the shared Jinja2 environment (lazy singleton)."""
    global _env
    if _env is None:
        _env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
    return _env


def generate_widget_preview_page(
    layout: WidgetLayout,
    data: dict[str, Any] | None,
    size: SupportedSize | dict[str, Any] | None = None,
    title: str | None = None,
    *,
    background_image: str | None = None,
    now: datetime | None = None,
    diagnostics: Diagnostics | None = None,
) -> str:
    """Full standalone HTML page showing one widget at one size."""
    widget_html = render_widget_to_html(layout, data, size, now=now, diagnostics=diagnostics)
    template = get_jinja_env().get_template("preview.html")
    return template.render(
        title=title or f"{layout.display_name or layout.name} Preview",
        widget_html=widget_html,
        background_image=background_image,
    )


@dataclass
class GalleryEntry:
    """One widget at one size on the gallery page."""

    name: str
    title: str
    width: float
    height: float
    html: Markup
    href: str | None = None

    @property
    def size_label(self) -> str:
        return f"{display(self.width)}×{display(self.height)}"


def generate_gallery_page(entries: list[GalleryEntry], title: str = "Widget Gallery") -> str:
    """Single page with every widget at every supported size."""
    template = get_jinja_env().get_template("gallery.html")
    return template.render(title=title, entries=entries)


def page_name(layout: WidgetLayout, size: SupportedSize) -> str:
    return f"{layout.name}-{display(size.width)}x{display(size.height)}.html"


class HtmlPreviewGenerator(Generator):
    """
    Writes one preview page per widget and supported size, plus ``index.html``.

    Sample data is read from ``<samples_dir>/<name>.sample.json``.
    """

    def __init__(
        self,
        output_dir: Path,
        *,
        samples_dir: Path | None = None,
        sample_set: str | None = None,
        now: datetime | None = None,
    ):
        super().__init__(output_dir)
        self.samples_dir = samples_dir
        self.sample_set = sample_set
        self.now = now
        self.entries: list[GalleryEntry] = []

    def build(self, layout: WidgetLayout, diagnostics: Diagnostics) -> dict[str, str]:
        try:
            data = load_sample_data(self.samples_dir, layout.name, self.sample_set)
        except WidgetGenError as e:
            raise BackendError(f"Invalid sample data: {e}") from e

        sizes = layout.supported_sizes or [layout.default_size]
        pages: dict[str, str] = {}
        for size in sizes:
            name = page_name(layout, size)
            pages[name] = generate_widget_preview_page(
                layout, data, size, now=self.now, diagnostics=diagnostics
            )
            self.entries.append(
                GalleryEntry(
                    name=layout.name,
                    title=layout.display_name or layout.name,
                    width=size.width,
                    height=size.height,
                    html=render_widget_to_html(layout, data, size, now=self.now),
                    href=name,
                )
            )
        return pages

    def generate(self, layout_files: list[Path]) -> GeneratorResult:
        self.entries = []
        return super().generate(layout_files)

    def finalize(self, result: GeneratorResult) -> None:
        written = set(result.files_created)
        entries = [e for e in self.entries if self.output_dir / e.href in written]
        if not entries:
            return
        index = self.output_dir / "index.html"
        result.add_file(index, generate_gallery_page(entries))
        result.add_artifact("gallery", index)
        logger.info("Generated %s", index)
