"""
Base generator classes.

A generator turns every layout file of a batch into one or more output files.
All back-ends share the same file-level error policy: a layout that cannot be
read or validated is logged, recorded in :class:`GeneratorResult.errors` and
skipped, and the batch continues with the next file. Callers inspect
:attr:`GeneratorResult.success` once the whole batch has run.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from widgetgen.diagnostics import Diagnostics
from widgetgen.errors import BackendError, WidgetGenError
from widgetgen.layout.loader import load_layout
from widgetgen.layout.model import WidgetLayout

logger = logging.getLogger(__name__)


@dataclass
class GeneratorResult:
    """
    Result from a generator execution.

    Attributes:
        files_created: List of file paths that were created/modified
        artifacts: Data to share with other generators or the CLI
        errors: File-level failures (the file was skipped)
        warnings: Non-fatal diagnostics from files that were generated
    """

    files_created: list[Path] = field(default_factory=list)
    artifacts: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether generation succeeded (no errors)."""
        return len(self.errors) == 0

    def add_file(self, path: Path, content: str | None = None) -> None:
        """
        Record a file that was created.

        If content is provided, the file is also written to disk.
        """
        if content is not None:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content, encoding="utf-8")
            except OSError as e:
                raise BackendError(f"Cannot write {path}: {e}") from e
        self.files_created.append(path)

    def add_artifact(self, key: str, value: Any) -> None:
        """Add an artifact for other generators or the CLI."""
        self.artifacts[key] = value

    def add_error(self, error: str) -> None:
        """Record an error."""
        self.errors.append(error)

    def add_warning(self, warning: str) -> None:
        """Record a warning."""
        self.warnings.append(warning)


class Generator(ABC):
    """
    Base class for all back-end generators.

    Subclasses implement :meth:`build`, a pure function from one layout to a
    mapping of output file names to contents.

    Example:
        class KotlinGenerator(Generator):
            def build(self, layout, diagnostics):
                name = f"{to_pascal_case(layout.name)}Content.generated.kt"
                return {name: generate_kotlin(layout, diagnostics=diagnostics)}
    """

    def __init__(self, output_dir: Path):
        """
        Initialize generator.

        Args:
            output_dir: Directory for generated files
        """
        self.output_dir = output_dir

    @abstractmethod
    def build(self, layout: WidgetLayout, diagnostics: Diagnostics) -> dict[str, str]:
        """
        Produce output files for one layout.

        Returns:
            Mapping of file name (relative to ``output_dir``) to content
        """
        pass

    def finalize(self, result: GeneratorResult) -> None:
        """Hook called once after every layout of the batch has been processed."""
        pass

    def generate(self, layout_files: list[Path]) -> GeneratorResult:
        """
        Run the generator over a batch of layout files.

        Returns:
            GeneratorResult with files created, skipped files and warnings
        """
        result = GeneratorResult()
        for path in layout_files:
            try:
                layout = load_layout(path)
            except (WidgetGenError, OSError) as e:
                logger.error("Skipping %s: %s", path.name, e)
                result.add_error(f"{path.name}: {e}")
                continue

            diagnostics: Diagnostics = []
            try:
                outputs = self.build(layout, diagnostics)
                for name, content in outputs.items():
                    result.add_file(self.output_dir / name, content)
                    logger.info("Generated %s", self.output_dir / name)
            except BackendError as e:
                logger.error("Failed to generate %s: %s", path.name, e)
                result.add_error(f"{path.name}: {e}")
            for diagnostic in diagnostics:
                result.add_warning(f"{path.name}: {diagnostic.message}")

        try:
            self.finalize(result)
        except BackendError as e:
            logger.error("%s", e)
            result.add_error(str(e))
        return result
