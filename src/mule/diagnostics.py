"""Severity-tagged diagnostics for partial-failure reporting.

Components that can fail on one item while continuing with the rest
(dependency resolution, dependency sub-builds, toolkit queries) return
Diagnostic values instead of raising. The severity tells the caller what to
do with it:

    FATAL - abort the build
    SKIP  - the item was dropped, the rest continues
    WARN  - reported only, nothing was dropped
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .output import log_error, log_warning


class Severity(Enum):
    """How a caller must react to a diagnostic."""

    FATAL = "fatal"
    SKIP = "skip"
    WARN = "warn"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Diagnostic:
    """A reportable problem attached to one subject (a dependency, a module, ...).

    Attributes:
        severity: FATAL, SKIP or WARN
        subject: Name of the item the problem belongs to
        message: Human-readable description
    """

    severity: Severity
    subject: str
    message: str

    @property
    def is_fatal(self) -> bool:
        return self.severity is Severity.FATAL

    def __str__(self) -> str:
        return f"{self.subject}: {self.message}"


def has_fatal(diagnostics: Iterable[Diagnostic]) -> bool:
    """Return True if any diagnostic requires aborting."""
    return any(d.is_fatal for d in diagnostics)


def report(diagnostics: Iterable[Diagnostic]) -> None:
    """Print diagnostics: FATAL as errors, everything else as warnings."""
    for diagnostic in diagnostics:
        if diagnostic.is_fatal:
            log_error(str(diagnostic))
        elif diagnostic.severity is Severity.SKIP:
            log_warning(f"{diagnostic} (skipped)")
        else:
            log_warning(str(diagnostic))
