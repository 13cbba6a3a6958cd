"""
Error types for widget layout loading, configuration and code generation.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class WidgetGenError(Exception):
    """Base exception for all widgetgen errors."""

    def __init__(self, message: str, context: ErrorContext | None = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}: {self.message}"
        return self.message


class LayoutParseError(WidgetGenError):
    """
    Raised when a layout or sample file is not valid JSON.

    Examples:
    - Trailing commas
    - Unterminated strings
    - Empty files
    """

    pass


class LayoutSchemaError(WidgetGenError):
    """
    Raised when parsed JSON does not match the widget layout schema.

    Examples:
    - Unknown element ``type``
    - Missing ``name`` or ``layout`` on the root record
    - ``children`` that is not a list
    """

    pass


class BackendError(WidgetGenError):
    """
    Raised when a back-end fails to produce or persist its output.

    Examples:
    - Output directory not writable
    - Template rendering errors
    """

    pass


class ConfigError(WidgetGenError):
    """Raised when widgetgen.toml cannot be read or holds invalid values."""

    pass


@dataclass
class ErrorContext:
    """
    Location information for an error.

    Attributes:
        file: Path to the file where the error occurred
        line: Line number (1-indexed), if known
        column: Column number (1-indexed), if known
    """

    file: Path | str
    line: int | None = None
    column: int | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "layouts/simple.json:10:5"
        """
        location = str(self.file)
        if self.line is not None:
            location += f":{self.line}"
            if self.column is not None:
                location += f":{self.column}"
        return location


def make_parse_error(
    message: str,
    file: Path | str,
    line: int | None = None,
    column: int | None = None,
) -> LayoutParseError:
    """Helper to create a LayoutParseError with location context."""
    return LayoutParseError(message, ErrorContext(file=file, line=line, column=column))
