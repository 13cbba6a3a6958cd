"""
Intermediate target AST for the code-generating back-ends.

Lowering builds a list of nodes; text is produced only at the very end by
:func:`render_kotlin` or :func:`render_markup`. Indentation, argument lists,
attribute quoting and block closing are therefore handled in one place.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markupsafe import escape

INDENT = "    "


@dataclass
class Comment:
    """Inert comment, used for schema placeholders."""

    text: str


@dataclass
class Raw:
    """A single pre-formatted source line."""

    text: str


@dataclass
class Branch:
    condition: str
    body: list[Node]


@dataclass
class IfChain:
    """``if``/``else if``/``else`` in Kotlin, ``{#if}``/``{:else if}``/``{:else}`` in Svelte."""

    branches: list[Branch]
    otherwise: list[Node] | None = None


@dataclass
class Block:
    """Kotlin lambda block: ``opener`` line, indented body, closing brace."""

    opener: str
    body: list[Node]
    closer: str = "}"


@dataclass
class Composable:
    """
    Kotlin call with named arguments and an optional trailing content lambda.

    ``body=None`` renders no lambda; an empty body renders ``{}``.
    """

    name: str
    args: list[tuple[str, str]] = field(default_factory=list)
    body: list[Node] | None = None


@dataclass
class Attr:
    """Markup attribute. ``bound`` renders ``name={value}``; ``value=None`` renders a bare name."""

    name: str
    value: str | None = None
    bound: bool = False


@dataclass
class Element:
    """Markup element; rendered self-closing when it has no children."""

    tag: str
    attrs: list[Attr] = field(default_factory=list)
    children: list[Node] = field(default_factory=list)


Node = Comment | Raw | IfChain | Block | Composable | Element


# ---------------------------------------------------------------------------
# Kotlin
# ---------------------------------------------------------------------------


def render_kotlin(nodes: list[Node], depth: int = 0) -> list[str]:
    """Render nodes as Kotlin source lines."""
    lines: list[str] = []
    for node in nodes:
        lines.extend(_render_kotlin_node(node, depth))
    return lines


def _render_kotlin_node(node: Node, depth: int) -> list[str]:
    pad = INDENT * depth
    if isinstance(node, Comment):
        return [f"{pad}// {node.text}"]
    if isinstance(node, Raw):
        return [pad + node.text]
    if isinstance(node, IfChain):
        lines: list[str] = []
        for index, branch in enumerate(node.branches):
            keyword = "if" if index == 0 else "} else if"
            lines.append(f"{pad}{keyword} ({branch.condition}) {{")
            lines.extend(render_kotlin(branch.body, depth + 1))
        if node.otherwise is not None:
            lines.append(f"{pad}}} else {{")
            lines.extend(render_kotlin(node.otherwise, depth + 1))
        lines.append(f"{pad}}}")
        return lines
    if isinstance(node, Block):
        return [pad + node.opener, *render_kotlin(node.body, depth + 1), pad + node.closer]
    if isinstance(node, Composable):
        return _render_composable(node, depth)
    raise TypeError(f"{type(node).__name__} cannot be rendered as Kotlin")


def _render_composable(node: Composable, depth: int) -> list[str]:
    pad = INDENT * depth
    if not node.args:
        if node.body is None:
            return [f"{pad}{node.name}()"]
        if not node.body:
            return [f"{pad}{node.name} {{}}"]
        return [f"{pad}{node.name} {{", *render_kotlin(node.body, depth + 1), f"{pad}}}"]

    lines = [f"{pad}{node.name}("]
    for index, (name, value) in enumerate(node.args):
        comma = "," if index < len(node.args) - 1 else ""
        lines.append(f"{pad}{INDENT}{name} = {value}{comma}")
    if node.body is None:
        lines.append(f"{pad})")
    elif not node.body:
        lines.append(f"{pad}) {{}}")
    else:
        lines.append(f"{pad}) {{")
        lines.extend(render_kotlin(node.body, depth + 1))
        lines.append(f"{pad}}}")
    return lines


# ---------------------------------------------------------------------------
# Svelte markup
# ---------------------------------------------------------------------------


def render_markup(nodes: list[Node], depth: int = 0) -> list[str]:
    """Render nodes as Svelte markup lines."""
    lines: list[str] = []
    for node in nodes:
        lines.extend(_render_markup_node(node, depth))
    return lines


def _render_attr(attr: Attr) -> str:
    if attr.value is None:
        return attr.name
    if attr.bound:
        return f"{attr.name}={{{attr.value}}}"
    text = str(escape(attr.value)).replace("{", "&#123;").replace("}", "&#125;")
    return f'{attr.name}="{text}"'


def _render_markup_node(node: Node, depth: int) -> list[str]:
    pad = INDENT * depth
    if isinstance(node, Comment):
        return [f"{pad}<!-- {node.text} -->"]
    if isinstance(node, Raw):
        return [pad + node.text]
    if isinstance(node, IfChain):
        lines: list[str] = []
        for index, branch in enumerate(node.branches):
            keyword = "{#if" if index == 0 else "{:else if"
            lines.append(f"{pad}{keyword} {branch.condition}}}")
            lines.extend(render_markup(branch.body, depth + 1))
        if node.otherwise is not None:
            lines.append(f"{pad}{{:else}}")
            lines.extend(render_markup(node.otherwise, depth + 1))
        lines.append(f"{pad}{{/if}}")
        return lines
    if isinstance(node, Element):
        opening = " ".join([node.tag, *(_render_attr(a) for a in node.attrs)])
        if not node.children:
            return [f"{pad}<{opening} />"]
        return [
            f"{pad}<{opening}>",
            *render_markup(node.children, depth + 1),
            f"{pad}</{node.tag}>",
        ]
    raise TypeError(f"{type(node).__name__} cannot be rendered as markup")
