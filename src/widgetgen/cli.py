"""
widgetgen command line interface.

    widgetgen kotlin  [LAYOUTS_DIR] [OUTPUT_DIR] [--package NAME]
    widgetgen svelte  [LAYOUTS_DIR] [OUTPUT_DIR] [WIDGET]
    widgetgen preview [LAYOUTS_DIR] [OUTPUT_DIR] [--samples DIR] [--set NAME]

Directories default to the values in widgetgen.toml; positional arguments
override them.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from widgetgen._version import get_version
from widgetgen.backends.base import Generator, GeneratorResult
from widgetgen.backends.html import HtmlPreviewGenerator
from widgetgen.backends.kotlin import KotlinGenerator
from widgetgen.backends.svelte import SvelteGenerator
from widgetgen.config import CONFIG_FILENAME, WidgetGenConfig, load_config
from widgetgen.errors import BackendError, ConfigError
from widgetgen.layout.loader import discover_layouts

logger = logging.getLogger(__name__)

console = Console()

app = typer.Typer(
    help="""widgetgen – declarative widget layout compiler

Lowers JSON widget layouts to:
  • kotlin   → Jetpack Glance composables
  • svelte   → Svelte Native components
  • preview  → standalone HTML previews
""",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"widgetgen version {get_version()}")
        typer.echo("")
        typer.echo("Environment:")
        typer.echo(f"  Python:        {platform.python_implementation()} {platform.python_version()}")
        typer.echo(f"  Platform:      {platform.system()} {platform.release()}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every generated file and diagnostic",
    ),
    config: Path = typer.Option(  # noqa: B008
        Path(CONFIG_FILENAME),
        "--config",
        "-c",
        help="Path to widgetgen.toml",
    ),
) -> None:
    """widgetgen CLI main callback for global options."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        ctx.obj = load_config(config)
    except ConfigError as e:
        typer.echo(f"Config error: {e}", err=True)
        raise typer.Exit(code=1)


# =============================================================================
# Helpers
# =============================================================================


def _config(ctx: typer.Context) -> WidgetGenConfig:
    if isinstance(ctx.obj, WidgetGenConfig):
        return ctx.obj
    return WidgetGenConfig()


def _layout_files(layouts_dir: Path, widget: str | None = None) -> list[Path]:
    files = discover_layouts(layouts_dir, widget)
    if not files:
        target = f"'{widget}' in {layouts_dir}" if widget else f"in {layouts_dir}"
        typer.echo(f"No layout files found {target}", err=True)
        raise typer.Exit(code=1)
    return files


def _run(generator: Generator, files: list[Path]) -> GeneratorResult:
    try:
        return generator.generate(files)
    except BackendError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _report(result: GeneratorResult, output_dir: Path) -> None:
    """Print the run summary; exit 1 when any file failed."""
    for warning in result.warnings:
        console.print(f"[yellow]warning:[/yellow] {escape(warning)}")

    if result.files_created:
        console.print(
            f"[green]✓ Generated {len(result.files_created)} file(s)[/green] in {output_dir}"
        )
        for path in result.files_created:
            console.print(f"  {path.name}")

    if not result.success:
        console.print(f"[red]✗ {len(result.errors)} file(s) failed:[/red]")
        for error in result.errors:
            console.print(f"  [red]{escape(error)}[/red]")
        raise typer.Exit(code=1)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def kotlin(
    ctx: typer.Context,
    layouts_dir: Path | None = typer.Argument(None, help="Directory of layout JSON files"),  # noqa: B008
    output_dir: Path | None = typer.Argument(None, help="Directory for .generated.kt files"),  # noqa: B008
    package: str | None = typer.Option(None, "--package", help="Kotlin package name"),
) -> None:
    """
    Generate Jetpack Glance composables.

    Writes <Name>Content.generated.kt for every layout.
    """
    config = _config(ctx)
    layouts = layouts_dir or config.resolve(config.layouts_dir)
    output = output_dir or config.resolve(config.kotlin.output_dir)
    generator = KotlinGenerator(
        output,
        package=package or config.kotlin.package,
        r_class=config.kotlin.r_class,
    )
    _report(_run(generator, _layout_files(layouts)), output)


@app.command()
def svelte(
    ctx: typer.Context,
    layouts_dir: Path | None = typer.Argument(None, help="Directory of layout JSON files"),  # noqa: B008
    output_dir: Path | None = typer.Argument(None, help="Directory for .generated.svelte files"),  # noqa: B008
    widget: str | None = typer.Argument(None, help="Only generate this widget"),
) -> None:
    """
    Generate Svelte Native components.

    Writes <Name>View.generated.svelte for every layout, or only WIDGET.
    """
    config = _config(ctx)
    layouts = layouts_dir or config.resolve(config.layouts_dir)
    output = output_dir or config.resolve(config.svelte.output_dir)
    _report(_run(SvelteGenerator(output), _layout_files(layouts, widget)), output)


@app.command()
def preview(
    ctx: typer.Context,
    layouts_dir: Path | None = typer.Argument(None, help="Directory of layout JSON files"),  # noqa: B008
    output_dir: Path | None = typer.Argument(None, help="Directory for preview pages"),  # noqa: B008
    samples: Path | None = typer.Option(  # noqa: B008
        None, "--samples", "-s", help="Directory of <name>.sample.json files"
    ),
    sample_set: str | None = typer.Option(None, "--set", help="Sample data set to render"),
) -> None:
    """
    Render HTML previews.

    Writes one page per widget and supported size, plus an index.html gallery.
    """
    config = _config(ctx)
    layouts = layouts_dir or config.resolve(config.layouts_dir)
    output = output_dir or config.resolve(config.preview.output_dir)
    generator = HtmlPreviewGenerator(
        output,
        samples_dir=samples or config.resolve(config.samples_dir),
        sample_set=sample_set or config.preview.sample_set,
    )
    _report(_run(generator, _layout_files(layouts)), output)


def main() -> None:
    app(standalone_mode=True)


if __name__ == "__main__":
    main()
