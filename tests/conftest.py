"""Shared pytest fixtures for widgetgen tests."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from widgetgen.layout.loader import load_layout
from widgetgen.layout.model import WidgetLayout


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def layouts_dir(fixtures_dir: Path) -> Path:
    """Return path to layout JSON fixtures."""
    return fixtures_dir / "layouts"


@pytest.fixture
def samples_dir(fixtures_dir: Path) -> Path:
    """Return path to sample data fixtures."""
    return fixtures_dir / "samples"


@pytest.fixture
def simple_layout(layouts_dir: Path) -> WidgetLayout:
    """The simple_weather layout: labels, image, divider, forEach, variant."""
    return load_layout(layouts_dir / "simple_weather.json")


@pytest.fixture
def sample_data(samples_dir: Path) -> dict[str, Any]:
    """The default sample set for simple_weather."""
    raw = json.loads((samples_dir / "simple_weather.sample.json").read_text(encoding="utf-8"))
    return raw["sets"]["default"]


@pytest.fixture
def make_layout() -> Callable[..., WidgetLayout]:
    """Build a WidgetLayout from a root element dict."""

    def _make(root: dict[str, Any], **extra: Any) -> WidgetLayout:
        return WidgetLayout.model_validate({"name": "test_widget", "layout": root, **extra})

    return _make
