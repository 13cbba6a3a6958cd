"""
Non-fatal diagnostics collected while lowering a single layout.

Back-ends never raise for schema problems or unknown expression operators.
They log a warning and append a :class:`Diagnostic` to an explicit list that
the caller owns, so a batch run can report every problem at the end.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

logger = logging.getLogger(__name__)


class DiagnosticCode(StrEnum):
    """Kinds of non-fatal problems."""

    UNKNOWN_OPERATOR = "unknown-operator"
    SCHEMA = "schema"
    CONDITION_SYNTAX = "condition-syntax"
    RENDER = "render"


@dataclass(frozen=True)
class Diagnostic:
    """A single warning raised during evaluation, compilation or rendering."""

    code: DiagnosticCode
    message: str

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


Diagnostics = list[Diagnostic]


def report(
    diagnostics: Diagnostics | None,
    code: DiagnosticCode,
    message: str,
    *,
    log: logging.Logger = logger,
) -> None:
    """Log ``message`` as a warning and record it when a list is supplied."""
    log.warning(message)
    if diagnostics is not None:
        diagnostics.append(Diagnostic(code=code, message=message))
