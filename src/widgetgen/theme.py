"""
Theme lookup tables shared by the back-ends.

Layouts name colors by Material theme token (``onSurface``, ``primary`` ...),
by hex (``#RRGGBB``) or by a handful of CSS color keywords. Alignment, font
weight and text alignment are written with platform-neutral words
(``start``/``center``/``end``, ``bold``) and mapped per platform here.
"""

from __future__ import annotations

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# Theme tokens and their dark-scheme hex values (preview rendering).
_THEME_COLORS = {
    "onSurface": "#E6E1E5",
    "onSurfaceVariant": "#CAC4D0",
    "primary": "#D0BCFF",
    "onPrimary": "#381E72",
    "primaryContainer": "#4F378B",
    "onPrimaryContainer": "#EADDFF",
    "secondary": "#CCC2DC",
    "onSecondary": "#332D41",
    "error": "#F2B8B5",
    "onError": "#601410",
    "surface": "#2B2930",
    "surfaceVariant": "#49454F",
    "background": "#1C1B1F",
    "onBackground": "#E6E1E5",
    "outline": "#938F99",
    "widgetBackground": "#1C1B1F",
}

THEME_COLOR_NAMES = tuple(_THEME_COLORS)

# Tokens whose GlanceTheme property has a different name.
_GLANCE_COLOR_ALIASES = {"widgetBackground": "background"}

_CSS_KEYWORD_COLORS = {
    "white": "#FFFFFF",
    "black": "#000000",
    "red": "#FF0000",
    "green": "#008000",
    "blue": "#0000FF",
    "yellow": "#FFFF00",
    "gray": "#808080",
    "grey": "#808080",
}

_HEX_RE = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")

DEFAULT_FONT_FAMILY = "Roboto, 'Segoe UI', system-ui, sans-serif"


def is_theme_color(value: Any) -> bool:
    return isinstance(value, str) and value in _THEME_COLORS


def is_hex_color(value: Any) -> bool:
    return isinstance(value, str) and _HEX_RE.match(value) is not None


def _argb(hex_color: str) -> str:
    """``#RGB``/``#RRGGBB``/``#RRGGBBAA`` to ``AARRGGBB``."""
    digits = hex_color[1:].upper()
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    if len(digits) == 8:
        return digits[6:] + digits[:6]
    return "FF" + digits


def theme_hex(token: str) -> str:
    return _THEME_COLORS[token]


def glance_color(value: str) -> str:
    """Kotlin ``ColorProvider`` expression for a literal color."""
    if value in _THEME_COLORS:
        return f"GlanceTheme.colors.{_GLANCE_COLOR_ALIASES.get(value, value)}"
    if value == "transparent":
        return "ColorProvider(Color.Transparent)"
    hex_color = _CSS_KEYWORD_COLORS.get(value.lower(), value)
    if is_hex_color(hex_color):
        return f"ColorProvider(Color(0x{_argb(hex_color)}))"
    logger.warning("Unknown color %r, using onSurface", value)
    return "GlanceTheme.colors.onSurface"


def svelte_color_var(token: str) -> str:
    """Name of the reactive variable holding a theme color (``colorOnSurface``)."""
    return "color" + token[:1].upper() + token[1:]


def html_color(value: Any) -> str:
    """CSS color for a resolved value; theme tokens become hex."""
    if isinstance(value, str) and value in _THEME_COLORS:
        return _THEME_COLORS[value]
    return "" if value is None else str(value)


# ---------------------------------------------------------------------------
# Alignment, font weight, text alignment
# ---------------------------------------------------------------------------

_ALIGNMENT = {
    "glance": {
        "vertical": {
            "start": "Alignment.Vertical.Top",
            "top": "Alignment.Vertical.Top",
            "center": "Alignment.Vertical.CenterVertically",
            "end": "Alignment.Vertical.Bottom",
            "bottom": "Alignment.Vertical.Bottom",
            "stretch": "Alignment.Vertical.Top",
        },
        "horizontal": {
            "start": "Alignment.Horizontal.Start",
            "left": "Alignment.Horizontal.Start",
            "center": "Alignment.Horizontal.CenterHorizontally",
            "end": "Alignment.Horizontal.End",
            "right": "Alignment.Horizontal.End",
            "stretch": "Alignment.Horizontal.Start",
        },
    },
    "nativescript": {
        "vertical": {
            "start": "top",
            "top": "top",
            "center": "middle",
            "end": "bottom",
            "bottom": "bottom",
            "stretch": "stretch",
        },
        "horizontal": {
            "start": "left",
            "left": "left",
            "center": "center",
            "end": "right",
            "right": "right",
            "stretch": "stretch",
        },
    },
    "html": {
        "any": {
            "start": "flex-start",
            "top": "flex-start",
            "left": "flex-start",
            "center": "center",
            "end": "flex-end",
            "bottom": "flex-end",
            "right": "flex-end",
            "stretch": "stretch",
            "spaceBetween": "space-between",
            "space-between": "space-between",
        },
    },
}

_FONT_WEIGHTS = {
    "glance": {"normal": "FontWeight.Normal", "medium": "FontWeight.Medium", "bold": "FontWeight.Bold"},
    "nativescript": {"normal": "normal", "medium": "500", "bold": "bold"},
    "html": {"normal": "400", "medium": "500", "bold": "700"},
}

_TEXT_ALIGN = {
    "glance": {"start": "TextAlign.Start", "center": "TextAlign.Center", "end": "TextAlign.End"},
    "nativescript": {"start": "left", "center": "center", "end": "right"},
    "html": {"start": "left", "center": "center", "end": "right"},
}


def alignment(platform: str, axis: str, value: Any) -> str | None:
    """Map ``start``/``center``/``end``/``stretch`` to a platform value."""
    table = _ALIGNMENT[platform]
    lookup = table.get(axis) or table["any"]
    return lookup.get(value) if isinstance(value, str) else None


def _weight_class(value: Any) -> str | None:
    if isinstance(value, str) and value in ("normal", "medium", "bold"):
        return value
    if isinstance(value, str) and value in ("semibold", "semi-bold"):
        return "bold"
    try:
        numeric = int(value)
    except (TypeError, ValueError):
        return None
    if numeric < 500:
        return "normal"
    if numeric < 600:
        return "medium"
    return "bold"


def font_weight(platform: str, value: Any) -> str | None:
    weight = _weight_class(value)
    return _FONT_WEIGHTS[platform][weight] if weight else None


def text_align(platform: str, value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    normalized = {"left": "start", "right": "end"}.get(value, value)
    return _TEXT_ALIGN[platform].get(normalized)


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


def to_pascal_case(name: str) -> str:
    """``simple-weather`` / ``simple_weather`` → ``SimpleWeather``."""
    parts = [p for p in re.split(r"[^0-9A-Za-z]+", name) if p]
    return "".join(p[:1].upper() + p[1:] for p in parts)


def to_snake_case(text: str) -> str:
    """Resource-style key for a label: ``Feels like`` → ``feels_like``."""
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", text.strip())
    return re.sub(r"[^0-9a-z]+", "_", text.lower()).strip("_")
