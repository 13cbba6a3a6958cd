"""
Loading of layout and sample-data files.

Layouts live one per file in a layouts directory (``<name>.json``). Preview
data lives next to them in a samples directory as ``<name>.sample.json``,
either as a single ``WidgetData`` object or as named sets::

    {"sets": {"default": {...}, "rainy": {...}}}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from widgetgen.errors import ErrorContext, LayoutSchemaError, make_parse_error
from widgetgen.layout.model import WidgetLayout

logger = logging.getLogger(__name__)

SAMPLE_SUFFIX = ".sample.json"


def parse_layout(text: str, source: Path | str = "<string>") -> WidgetLayout:
    """
    Parse and validate a layout document.

    Raises:
        LayoutParseError: If ``text`` is not valid JSON.
        LayoutSchemaError: If the JSON does not describe a widget layout.
    """
    raw = _parse_json(text, source)
    try:
        return WidgetLayout.model_validate(raw)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise LayoutSchemaError(
            f"{first['msg']} at {location or '<root>'} ({e.error_count()} error(s))",
            ErrorContext(file=source),
        ) from e


def load_layout(path: Path) -> WidgetLayout:
    """Read and validate one layout file."""
    logger.debug("Loading layout %s", path)
    return parse_layout(_read_text(path), path)


def discover_layouts(layouts_dir: Path, widget: str | None = None) -> list[Path]:
    """
    List layout files in a directory, sorted by name.

    Args:
        layouts_dir: Directory to scan (non-recursive).
        widget: Optional widget name; only the file whose stem matches is kept.
    """
    if not layouts_dir.is_dir():
        return []
    files = sorted(
        p for p in layouts_dir.glob("*.json") if not p.name.endswith(SAMPLE_SUFFIX)
    )
    if widget is not None:
        files = [p for p in files if p.stem == widget]
    return files


def select_sample_set(raw: Any, set_name: str | None = None) -> dict[str, Any]:
    """
    Pick one data set from a sample document.

    Order: the requested set, then ``default``, then the first set. A document
    without ``sets`` is itself the data.
    """
    if not isinstance(raw, dict):
        return {}
    sets = raw.get("sets")
    if not isinstance(sets, dict) or not sets:
        return raw
    if set_name is not None and set_name in sets:
        return sets[set_name]
    if set_name is not None:
        logger.warning("Sample set %r not found, falling back", set_name)
    if "default" in sets:
        return sets["default"]
    return next(iter(sets.values()))


def load_sample_data(
    samples_dir: Path | None, name: str, set_name: str | None = None
) -> dict[str, Any]:
    """Load preview data for a widget; empty when there is no sample file."""
    if samples_dir is None:
        return {}
    path = samples_dir / f"{name}{SAMPLE_SUFFIX}"
    if not path.exists():
        logger.debug("No sample data for %s", name)
        return {}
    return select_sample_set(_parse_json(_read_text(path), path), set_name)


def _parse_json(text: str, source: Path | str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise make_parse_error(e.msg, source, e.lineno, e.colno) from e


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise make_parse_error(f"File is not valid UTF-8 ({e.reason} at byte {e.start})", path) from e
