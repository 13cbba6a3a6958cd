"""
Shared lowering for the code-generating back-ends.

:func:`lower_widget` walks a :class:`WidgetLayout` depth-first, left to right,
and asks an :class:`Emitter` to produce target nodes for each element. The
walker owns everything that must behave identically across back-ends:

- scope prefix: ``data`` at the root, ``item`` inside a ``forEach`` template
- visibility: ``visible: false`` or a constant-false ``visibleIf`` prunes the
  element; any other condition becomes a conditional wrapper
- spacers: a fixed-size ``spacer`` is folded into the previous sibling's
  ``marginBottom`` (column) or ``marginRight`` (row); ``spacing`` is lowered
  the same way
- ``scrollView``: merged onto the first ``forEach`` it contains, or spliced
  into its parent
- color tokens: collected in a pre-pass so back-ends declare only what is used

State is threaded through a :class:`LoweringContext` created per layout.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import Any

from widgetgen.backends.target import Node
from widgetgen.diagnostics import DiagnosticCode, Diagnostics, report
from widgetgen.expressions.bindings import (
    has_binding,
    normalize_path,
    referenced_paths,
    to_expression,
)
from widgetgen.expressions.evaluator import EvalContext, evaluate, truthy
from widgetgen.expressions.model import (
    Call,
    Expression,
    Literal,
    Operator,
    is_constant,
    to_json,
    value_leaves,
)
from widgetgen.layout.model import (
    ClockElement,
    ColumnElement,
    ConditionalElement,
    ContainerBase,
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
    WidgetLayout,
)
from widgetgen.theme import is_theme_color

logger = logging.getLogger(__name__)

DIVIDER_DEFAULT_COLOR = "onSurfaceVariant"
DIVIDER_DEFAULT_THICKNESS = 1

FOR_EACH_PLACEHOLDER = "forEach requires items and itemTemplate"
CONDITIONAL_PLACEHOLDER = "conditional requires condition property"
IMAGE_PLACEHOLDER = "image requires src"

# Main-axis margins used by spacer folding, per container direction.
_MARGIN_AFTER = {"column": "margin_bottom", "row": "margin_right"}
_MARGIN_BEFORE = {"column": "margin_top", "row": "margin_left"}

# Properties a scrollView hands over to the forEach it wraps.
_SCROLL_PROPERTIES = ("direction", "shows_indicators", "width", "height")


@dataclass
class LoweringContext:
    """
    Per-layout state threaded through the recursion.

    The scope and direction change as the walker descends; the collections are
    shared by every derived context so each is filled in a single pass.
    """

    scope: str = "data"
    direction: str = "column"
    list_name: str | None = None
    diagnostics: Diagnostics = field(default_factory=list)
    colors: list[str] = field(default_factory=list)
    features: set[str] = field(default_factory=set)
    data_fields: dict[str, None] = field(default_factory=dict)
    list_fields: dict[str, dict[str, None]] = field(default_factory=dict)

    def for_items(self, list_name: str | None) -> LoweringContext:
        """Context for a ``forEach`` item template."""
        if list_name is not None:
            self.list_fields.setdefault(list_name, {})
        return replace(self, scope="item", list_name=list_name)

    def inside(self, container: ElementBase) -> LoweringContext:
        return replace(self, direction=container_direction(container))

    def expression(self, value: Any, *, condition: bool = False) -> Expression:
        """Resolve a property value and record the data paths it reads."""
        expr = to_expression(value, condition=condition, diagnostics=self.diagnostics)
        self.record_paths(expr)
        return expr

    def record_paths(self, expr: Expression) -> None:
        for path in referenced_paths(expr, self.scope):
            root, _, rest = path.partition(".")
            name = rest.split(".")[0]
            if not name:
                continue
            if root == "data":
                self.data_fields.setdefault(name, None)
            elif root == "item" and self.list_name is not None:
                self.list_fields.setdefault(self.list_name, {}).setdefault(name, None)


class Emitter(ABC):
    """Back-end hooks called by the walker. Each returns a list of target nodes."""

    @abstractmethod
    def container(
        self, element: ColumnElement | RowElement | StackElement, children: list[Node], ctx: LoweringContext
    ) -> list[Node]: ...

    @abstractmethod
    def label(self, element: LabelElement | CSpanElement, ctx: LoweringContext) -> list[Node]: ...

    @abstractmethod
    def image(self, element: ImageElement, ctx: LoweringContext) -> list[Node]: ...

    @abstractmethod
    def divider(self, element: DividerElement, ctx: LoweringContext) -> list[Node]: ...

    @abstractmethod
    def clock(self, element: ClockElement | DateElement, ctx: LoweringContext) -> list[Node]: ...

    @abstractmethod
    def flex_spacer(self, element: SpacerElement, ctx: LoweringContext) -> list[Node]: ...

    @abstractmethod
    def for_each(
        self, element: ForEachElement, items: Expression, body: list[Node], ctx: LoweringContext
    ) -> list[Node]: ...

    @abstractmethod
    def choose(
        self,
        branches: list[tuple[Expression, list[Node]]],
        otherwise: list[Node] | None,
        ctx: LoweringContext,
    ) -> list[Node]: ...

    @abstractmethod
    def margin_box(self, element: ElementBase, body: list[Node], ctx: LoweringContext) -> list[Node]:
        """Wrap nodes that cannot carry margins themselves (``forEach``, ``conditional``)."""

    @abstractmethod
    def placeholder(self, message: str, ctx: LoweringContext) -> list[Node]: ...


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------


def visibility_expression(element: ElementBase, diagnostics: Diagnostics | None = None) -> Expression | None:
    """Combined ``visible`` and ``visibleIf`` condition, or None when unconditional."""
    parts = [
        to_expression(value, condition=True, diagnostics=diagnostics)
        for value in (element.visible, element.visible_if)
        if value is not None
    ]
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return Call(op=Operator.ALL.value, args=tuple(parts))


def fold_constant(expr: Expression, diagnostics: Diagnostics | None = None) -> bool | None:
    """Truthiness of an expression that reads no context, else None."""
    if not is_constant(expr):
        return None
    return truthy(evaluate(expr, EvalContext(), diagnostics=diagnostics))


def is_pruned(element: ElementBase, diagnostics: Diagnostics | None = None) -> bool:
    """Whether an element is statically invisible and must not be emitted."""
    expr = visibility_expression(element, diagnostics)
    return expr is not None and fold_constant(expr, diagnostics) is False


def visibility_guard(element: ElementBase, ctx: LoweringContext) -> Expression | None:
    """Runtime visibility condition, or None when the element is always shown."""
    expr = visibility_expression(element)
    if expr is None or is_constant(expr):
        return None
    ctx.record_paths(expr)
    return expr


# ---------------------------------------------------------------------------
# Structural rewrites
# ---------------------------------------------------------------------------


def container_direction(element: ElementBase) -> str:
    if isinstance(element, RowElement):
        return "row"
    if isinstance(element, StackElement):
        return "stack"
    if isinstance(element, ScrollViewElement):
        return "row" if element.direction == "horizontal" else "column"
    return "column"


def sum_values(current: Any, addition: Any) -> Any:
    """Add two property values; numbers are summed, anything else becomes ``["+", a, b]``."""
    if current is None:
        return addition
    if _is_number(current) and _is_number(addition):
        return current + addition
    return [
        Operator.ADD.value,
        to_json(to_expression(current)),
        to_json(to_expression(addition)),
    ]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def add_margin(element: LayoutElement, attribute: str, amount: Any) -> LayoutElement:
    """Copy of ``element`` with ``amount`` added to one margin side."""
    side = attribute.removeprefix("margin_")
    current = element.box_side("margin", side)
    return element.model_copy(update={attribute: sum_values(current, amount)})


def unwrap_scroll_view(scroll_view: ScrollViewElement) -> list[LayoutElement]:
    """
    Children of a scrollView with its scroll properties merged onto the first
    ``forEach`` found depth-first. Properties already set on the forEach win.
    """
    props = {
        name: getattr(scroll_view, name)
        for name in _SCROLL_PROPERTIES
        if getattr(scroll_view, name) is not None
    }
    children, _ = _merge_into_for_each(list(scroll_view.children), props)
    return children


def _merge_into_for_each(
    elements: list[LayoutElement], props: dict[str, Any]
) -> tuple[list[LayoutElement], bool]:
    for index, element in enumerate(elements):
        replacement: LayoutElement | None = None
        if isinstance(element, ForEachElement):
            update = {k: v for k, v in props.items() if getattr(element, k) is None}
            replacement = element.model_copy(update=update)
        elif isinstance(element, ContainerBase):
            children, found = _merge_into_for_each(list(element.children), props)
            if found:
                replacement = element.model_copy(update={"children": children})
        elif isinstance(element, ConditionalElement):
            for branch_name in ("then", "else_"):
                branch = getattr(element, branch_name)
                if branch is None:
                    continue
                merged, found = _merge_into_for_each([branch], props)
                if found:
                    replacement = element.model_copy(update={branch_name: merged[0]})
                    break
        if replacement is not None:
            return [*elements[:index], replacement, *elements[index + 1 :]], True
    return elements, False


def fold_spacers(children: list[LayoutElement], direction: str, spacing: Any = None) -> list[LayoutElement]:
    """
    Replace fixed-size spacers by margins on their neighbours.

    The size goes to the previous sibling's trailing margin; with no previous
    sibling it goes to the next sibling's leading margin. Flexible spacers
    (``flex`` set) stay in place. ``spacing`` is added after every child but
    the last. Spacers inside a stack have no axis and are dropped.
    """
    after = _MARGIN_AFTER.get(direction)
    before = _MARGIN_BEFORE.get(direction)
    result: list[LayoutElement] = []
    leading: Any = None
    for child in children:
        if isinstance(child, SpacerElement) and child.flex is None:
            if after is None or child.size is None:
                continue
            if result:
                result[-1] = add_margin(result[-1], after, child.size)
            else:
                leading = sum_values(leading, child.size)
            continue
        if leading is not None and before is not None:
            child = add_margin(child, before, leading)
            leading = None
        result.append(child)

    if spacing is not None and after is not None:
        result = [
            add_margin(child, after, spacing) if index < len(result) - 1 else child
            for index, child in enumerate(result)
        ]
    return result


def normalize_children(container: ElementBase) -> list[LayoutElement]:
    """
    Children of a container after the structural rewrites, in emission order.

    Unconditional scrollViews are spliced in, statically hidden elements are
    dropped, then spacers and ``spacing`` are folded into margins.
    """
    if isinstance(container, ScrollViewElement):
        raw_children = unwrap_scroll_view(container)
        spacing = container.spacing
    elif isinstance(container, ContainerBase):
        raw_children = list(container.children)
        spacing = container.spacing
    else:
        return []

    expanded: list[LayoutElement] = []
    for child in raw_children:
        if isinstance(child, ScrollViewElement) and visibility_expression(child) is None:
            expanded.extend(unwrap_scroll_view(child))
        else:
            expanded.append(child)

    visible = [child for child in expanded if not is_pruned(child)]
    direction = container_direction(container)
    if direction == "stack":
        spacing = None
    return fold_spacers(visible, direction, spacing)


# ---------------------------------------------------------------------------
# Color tokens
# ---------------------------------------------------------------------------


def iter_elements(element: LayoutElement | None) -> Iterator[LayoutElement]:
    """Every element in a subtree, depth-first, including templates and branches."""
    if element is None:
        return
    yield element
    if isinstance(element, ContainerBase):
        for child in element.children:
            yield from iter_elements(child)
    elif isinstance(element, ForEachElement):
        yield from iter_elements(element.item_template)
    elif isinstance(element, ConditionalElement):
        yield from iter_elements(element.then)
        yield from iter_elements(element.else_)


def color_tokens(value: Any) -> list[str]:
    """Theme color tokens a property value can produce."""
    if value is None or has_binding(value):
        return []
    return [
        leaf.value
        for leaf in value_leaves(to_expression(value))
        if is_theme_color(leaf.value)
    ]


def collect_color_tokens(layout: WidgetLayout) -> list[str]:
    """Sorted theme tokens referenced by the layout, its variants and background."""
    tokens: set[str] = set()
    if layout.background is not None:
        tokens.update(color_tokens(layout.background.color))
    roots = [layout.layout, *(variant.layout for variant in layout.variants)]
    for root in roots:
        for element in iter_elements(root):
            tokens.update(color_tokens(element.background_color))
            color = getattr(element, "color", None)
            tokens.update(color_tokens(color))
            if isinstance(element, DividerElement) and color is None:
                tokens.add(DIVIDER_DEFAULT_COLOR)
    return sorted(tokens)


# ---------------------------------------------------------------------------
# Lowering
# ---------------------------------------------------------------------------


def items_source(value: Any, diagnostics: Diagnostics | None = None) -> Expression:
    """``forEach.items`` as an expression; a bare string is a path."""
    if isinstance(value, str) and not has_binding(value):
        return Call(op=Operator.GET.value, args=(Literal(value=value.strip()),))
    return to_expression(value, diagnostics=diagnostics)


def items_expression(value: Any, ctx: LoweringContext) -> Expression:
    expr = items_source(value, ctx.diagnostics)
    ctx.record_paths(expr)
    return expr


def items_list_name(items: Expression, scope: str) -> str | None:
    """Top-level data list a ``forEach`` iterates, for data class generation."""
    if isinstance(items, Call) and items.op == Operator.GET:
        target = items.arg(0)
        if isinstance(target, Literal) and isinstance(target.value, str):
            segments = normalize_path(target.value, scope).split(".")
            if segments[0] == "data" and len(segments) == 2:
                return segments[1]
    return None


def lower(element: LayoutElement, emitter: Emitter, ctx: LoweringContext) -> list[Node]:
    """Lower one element (and its subtree) to target nodes."""
    if is_pruned(element, ctx.diagnostics):
        return []
    guard = visibility_guard(element, ctx)
    nodes = _lower_element(element, emitter, ctx)
    if guard is not None and nodes:
        nodes = emitter.choose([(guard, nodes)], None, ctx)
    return nodes


def _lower_children(element: ElementBase, emitter: Emitter, ctx: LoweringContext) -> list[Node]:
    inner = ctx.inside(element)
    nodes: list[Node] = []
    for child in normalize_children(element):
        nodes.extend(lower(child, emitter, inner))
    return nodes


def _lower_element(element: LayoutElement, emitter: Emitter, ctx: LoweringContext) -> list[Node]:
    """Dispatch lowering to the appropriate emitter hook."""
    if isinstance(element, ScrollViewElement):
        return _lower_children(element, emitter, ctx)

    if isinstance(element, (ColumnElement, RowElement, StackElement)):
        return emitter.container(element, _lower_children(element, emitter, ctx), ctx)

    if isinstance(element, (LabelElement, CSpanElement)):
        return emitter.label(element, ctx)

    if isinstance(element, ImageElement):
        if element.src is None:
            report(ctx.diagnostics, DiagnosticCode.SCHEMA, IMAGE_PLACEHOLDER, log=logger)
            return emitter.placeholder(IMAGE_PLACEHOLDER, ctx)
        return emitter.image(element, ctx)

    if isinstance(element, DividerElement):
        return emitter.divider(element, ctx)

    if isinstance(element, (ClockElement, DateElement)):
        return emitter.clock(element, ctx)

    if isinstance(element, SpacerElement):
        if element.flex is not None:
            return emitter.flex_spacer(element, ctx)
        return []

    if isinstance(element, ForEachElement):
        return _lower_for_each(element, emitter, ctx)

    if isinstance(element, ConditionalElement):
        return _lower_conditional(element, emitter, ctx)

    raise TypeError(f"Unhandled element type: {type(element).__name__}")


def _lower_for_each(element: ForEachElement, emitter: Emitter, ctx: LoweringContext) -> list[Node]:
    if element.items is None or element.item_template is None:
        report(ctx.diagnostics, DiagnosticCode.SCHEMA, FOR_EACH_PLACEHOLDER, log=logger)
        return emitter.placeholder(FOR_EACH_PLACEHOLDER, ctx)
    items = items_expression(element.items, ctx)
    item_ctx = ctx.for_items(items_list_name(items, ctx.scope))
    body = lower(element.item_template, emitter, item_ctx)
    nodes = emitter.for_each(element, items, body, ctx)
    if element.has_margin():
        nodes = emitter.margin_box(element, nodes, ctx)
    return nodes


def _lower_conditional(element: ConditionalElement, emitter: Emitter, ctx: LoweringContext) -> list[Node]:
    if element.condition is None:
        report(ctx.diagnostics, DiagnosticCode.SCHEMA, CONDITIONAL_PLACEHOLDER, log=logger)
        return emitter.placeholder(CONDITIONAL_PLACEHOLDER, ctx)
    condition = ctx.expression(element.condition, condition=True)
    then_nodes = lower(element.then, emitter, ctx) if element.then is not None else []
    else_nodes = lower(element.else_, emitter, ctx) if element.else_ is not None else None

    constant = fold_constant(condition, ctx.diagnostics)
    if constant is not None:
        nodes = then_nodes if constant else (else_nodes or [])
    else:
        nodes = emitter.choose([(condition, then_nodes)], else_nodes, ctx)
    if nodes and element.has_margin():
        nodes = emitter.margin_box(element, nodes, ctx)
    return nodes


def lower_widget(layout: WidgetLayout, emitter: Emitter, ctx: LoweringContext) -> list[Node]:
    """
    Lower a whole widget: variants first, in order, then the default layout.

    A variant whose condition is constant-true ends the chain; constant-false
    variants are skipped.
    """
    branches: list[tuple[Expression, list[Node]]] = []
    default = layout.layout
    for variant in layout.variants:
        if variant.condition is None:
            continue
        condition = ctx.expression(variant.condition, condition=True)
        constant = fold_constant(condition, ctx.diagnostics)
        if constant is False:
            continue
        if constant is True:
            default = variant.layout
            break
        branches.append((condition, lower(variant.layout, emitter, ctx)))

    default_nodes = lower(default, emitter, ctx)
    if not branches:
        return default_nodes
    return emitter.choose(branches, default_nodes, ctx)
