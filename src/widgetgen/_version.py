"""Package version lookup."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as distribution_version
from pathlib import Path

DISTRIBUTION = "widgetgen"
UNKNOWN_VERSION = "0.0.0"

# src/widgetgen/_version.py -> repository root
_CHECKOUT_PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def _checkout_version(pyproject: Path) -> str | None:
    try:
        with pyproject.open("rb") as f:
            project = tomllib.load(f).get("project", {})
    except (OSError, tomllib.TOMLDecodeError):
        return None
    if project.get("name") != DISTRIBUTION:
        return None
    return project.get("version")


def get_version(pyproject: Path = _CHECKOUT_PYPROJECT) -> str:
    """
    Version of the running widgetgen.

    A source checkout reports the version in its ``pyproject.toml``, so an
    editable install never lags behind; otherwise the installed distribution
    metadata is used.
    """
    found = _checkout_version(pyproject)
    if found:
        return found
    try:
        return distribution_version(DISTRIBUTION)
    except PackageNotFoundError:
        return UNKNOWN_VERSION
