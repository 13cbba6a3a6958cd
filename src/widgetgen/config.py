"""
Project configuration.

Parses the [widgetgen] section from widgetgen.toml and provides typed
configuration for the CLI commands. Relative paths are resolved against the
directory holding the config file.

    [widgetgen]
    layouts_dir = "widgets/layouts"
    samples_dir = "widgets/samples"

    [widgetgen.kotlin]
    output_dir = "App_Resources/Android/src/main/java/com/akylas/weather/widgets/generated"
    package = "com.akylas.weather.widgets.generated"

    [widgetgen.svelte]
    output_dir = "app/components/widgets/generated"

    [widgetgen.preview]
    output_dir = "widgets/preview"
    sample_set = "default"
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from widgetgen.backends.kotlin import DEFAULT_PACKAGE, DEFAULT_R_CLASS
from widgetgen.errors import ConfigError, ErrorContext

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "widgetgen.toml"


class KotlinConfig(BaseModel):
    """Glance generator configuration."""

    output_dir: str = "generated/kotlin"
    package: str = DEFAULT_PACKAGE
    r_class: str = DEFAULT_R_CLASS

    model_config = ConfigDict(extra="forbid")


class SvelteConfig(BaseModel):
    """Svelte Native generator configuration."""

    output_dir: str = "generated/svelte"

    model_config = ConfigDict(extra="forbid")


class PreviewConfig(BaseModel):
    """HTML preview configuration."""

    output_dir: str = "generated/preview"
    sample_set: str | None = None

    model_config = ConfigDict(extra="forbid")


class WidgetGenConfig(BaseModel):
    """Complete widgetgen configuration."""

    layouts_dir: str = "widgets/layouts"
    samples_dir: str = "widgets/samples"
    kotlin: KotlinConfig = Field(default_factory=KotlinConfig)
    svelte: SvelteConfig = Field(default_factory=SvelteConfig)
    preview: PreviewConfig = Field(default_factory=PreviewConfig)

    # Directory relative paths are resolved against; set by load_config.
    root: Path = Path(".")

    model_config = ConfigDict(extra="forbid")

    def resolve(self, path: str | Path) -> Path:
        """Absolute path for a configured directory."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.root / candidate


def load_config(toml_path: Path) -> WidgetGenConfig:
    """
    Load configuration from widgetgen.toml.

    Args:
        toml_path: Path to widgetgen.toml file

    Returns:
        WidgetGenConfig with parsed values or defaults

    Raises:
        ConfigError: If the file is not valid TOML or has invalid values
    """
    root = toml_path.parent
    if not toml_path.exists():
        logger.debug("No %s found, using defaults", toml_path)
        return WidgetGenConfig(root=root)

    try:
        with open(toml_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML: {e}", ErrorContext(file=toml_path)) from e

    section = data.get("widgetgen", {})
    if not isinstance(section, dict):
        raise ConfigError("[widgetgen] must be a table", ErrorContext(file=toml_path))

    try:
        return WidgetGenConfig.model_validate({**section, "root": root})
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ConfigError(
            f"Invalid value for widgetgen.{location}: {first['msg']}",
            ErrorContext(file=toml_path),
        ) from e
