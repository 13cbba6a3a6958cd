"""Widget layout tree: schema, loading and the shared lowering walker."""

from widgetgen.layout.loader import discover_layouts, load_layout, load_sample_data, parse_layout
from widgetgen.layout.model import LayoutElement, WidgetLayout

__all__ = [
    "LayoutElement",
    "WidgetLayout",
    "discover_layouts",
    "load_layout",
    "load_sample_data",
    "parse_layout",
]
