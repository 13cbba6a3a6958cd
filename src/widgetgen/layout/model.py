"""
Widget layout tree model.

A widget is a :class:`WidgetLayout` whose ``layout`` is a tree of elements.
Each element kind is its own model, and :data:`LayoutElement` is the closed
union over them, discriminated by ``type``. JSON keys are camelCase; Python
attributes are snake_case.

Property values are kept raw (literal, ``{{binding}}`` string or
S-expression array) and resolved by
:func:`widgetgen.expressions.bindings.to_expression` at lowering time.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# A raw property value: literal, binding string or S-expression.
PropertyValue = Any


class _LayoutModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Shared attributes
# ---------------------------------------------------------------------------

BOX_SIDES = ("top", "right", "bottom", "left")


class ElementBase(_LayoutModel):
    """Attributes common to every element."""

    id: str | None = None

    # Visibility
    visible: PropertyValue = None
    visible_if: PropertyValue = None

    # Box model
    padding: PropertyValue = None
    padding_horizontal: PropertyValue = None
    padding_vertical: PropertyValue = None
    padding_top: PropertyValue = None
    padding_right: PropertyValue = None
    padding_bottom: PropertyValue = None
    padding_left: PropertyValue = None
    margin: PropertyValue = None
    margin_horizontal: PropertyValue = None
    margin_vertical: PropertyValue = None
    margin_top: PropertyValue = None
    margin_right: PropertyValue = None
    margin_bottom: PropertyValue = None
    margin_left: PropertyValue = None
    width: PropertyValue = None
    height: PropertyValue = None
    flex: PropertyValue = None

    # Paint
    background_color: PropertyValue = None
    corner_radius: PropertyValue = None

    # Grid placement inside a stack
    col: PropertyValue = None
    row: PropertyValue = None
    col_span: PropertyValue = None
    row_span: PropertyValue = None

    def box_side(self, kind: str, side: str) -> PropertyValue:
        """
        Effective padding or margin for one side.

        The most specific attribute wins: ``paddingTop`` over
        ``paddingVertical`` over ``padding``.
        """
        axis = "vertical" if side in ("top", "bottom") else "horizontal"
        for name in (f"{kind}_{side}", f"{kind}_{axis}", kind):
            value = getattr(self, name)
            if value is not None:
                return value
        return None

    def has_margin(self) -> bool:
        return any(self.box_side("margin", side) is not None for side in BOX_SIDES)


class ContainerBase(ElementBase):
    """Attributes common to elements with children."""

    children: list[LayoutElement] = Field(default_factory=list)
    alignment: PropertyValue = None
    cross_alignment: PropertyValue = None
    spacing: PropertyValue = None


class TextStyleMixin(_LayoutModel):
    font_size: PropertyValue = None
    font_weight: PropertyValue = None
    color: PropertyValue = None
    text_align: PropertyValue = None


# ---------------------------------------------------------------------------
# Element kinds
# ---------------------------------------------------------------------------


class ColumnElement(ContainerBase):
    """Vertical container."""

    type: Literal["column"] = "column"


class RowElement(ContainerBase):
    """Horizontal container."""

    type: Literal["row"] = "row"


class StackElement(ContainerBase):
    """Overlay container; children are drawn on top of each other."""

    type: Literal["stack"] = "stack"


class ScrollViewElement(ContainerBase):
    """Scroll wrapper. Never emitted itself; see the tree walker."""

    type: Literal["scrollView"] = "scrollView"
    direction: PropertyValue = None
    shows_indicators: PropertyValue = None


class LabelElement(ElementBase, TextStyleMixin):
    type: Literal["label"] = "label"
    text: PropertyValue = None
    max_lines: PropertyValue = None
    text_wrap: PropertyValue = None


class CSpanElement(ElementBase, TextStyleMixin):
    """Styled run inside formatted text."""

    type: Literal["cspan"] = "cspan"
    text: PropertyValue = None


class ImageElement(ElementBase):
    type: Literal["image"] = "image"
    src: PropertyValue = None
    size: PropertyValue = None
    color: PropertyValue = None


class SpacerElement(ElementBase):
    """Fixed gap (``size``) or flexible filler (``flex``)."""

    type: Literal["spacer"] = "spacer"
    size: PropertyValue = None


class DividerElement(ElementBase):
    type: Literal["divider"] = "divider"
    thickness: PropertyValue = None
    color: PropertyValue = None


class ForEachElement(ElementBase):
    """Repeats ``item_template`` for each entry of the ``items`` list."""

    type: Literal["forEach"] = "forEach"
    items: PropertyValue = None
    limit: PropertyValue = None
    item_template: LayoutElement | None = None
    direction: PropertyValue = None
    shows_indicators: PropertyValue = None


class ConditionalElement(ElementBase):
    """Renders ``then`` when ``condition`` holds, otherwise ``else``."""

    type: Literal["conditional"] = "conditional"
    condition: PropertyValue = None
    then: LayoutElement | None = None
    else_: LayoutElement | None = Field(default=None, alias="else")


class ClockElement(ElementBase, TextStyleMixin):
    type: Literal["clock"] = "clock"
    format_24_hour: PropertyValue = Field(default=None, alias="format24Hour")
    format_12_hour: PropertyValue = Field(default=None, alias="format12Hour")


class DateElement(ElementBase, TextStyleMixin):
    type: Literal["date"] = "date"
    format: PropertyValue = None


LayoutElement = Annotated[
    Union[
        ColumnElement,
        RowElement,
        StackElement,
        LabelElement,
        ImageElement,
        SpacerElement,
        DividerElement,
        ScrollViewElement,
        ForEachElement,
        ConditionalElement,
        ClockElement,
        DateElement,
        CSpanElement,
    ],
    Field(discriminator="type"),
]

CONTAINER_TYPES = (ColumnElement, RowElement, StackElement, ScrollViewElement)
TEXT_TYPES = (LabelElement, CSpanElement, ClockElement, DateElement)


# ---------------------------------------------------------------------------
# Root record
# ---------------------------------------------------------------------------


class SupportedSize(_LayoutModel):
    width: float = 160
    height: float = 160
    family: str | None = None


class Background(_LayoutModel):
    type: str = "solid"
    color: PropertyValue = None


class Variant(_LayoutModel):
    """Alternate layout selected when ``condition`` holds."""

    condition: PropertyValue = None
    layout: LayoutElement


class WidgetLayout(_LayoutModel):
    """A complete widget definition, one per JSON file."""

    name: str
    display_name: str | None = None
    description: str | None = None
    supported_sizes: list[SupportedSize] = Field(default_factory=list)
    default_padding: PropertyValue = None
    background: Background | None = None
    variants: list[Variant] = Field(default_factory=list)
    layout: LayoutElement

    @property
    def default_size(self) -> SupportedSize:
        """First supported size, 160x160 when none are declared."""
        if self.supported_sizes:
            return self.supported_sizes[0]
        return SupportedSize()


# Rebuild models for recursive forward references
for _model in (
    ColumnElement,
    RowElement,
    StackElement,
    ScrollViewElement,
    ForEachElement,
    ConditionalElement,
    Variant,
    WidgetLayout,
):
    _model.model_rebuild()
