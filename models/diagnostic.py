"""
Validation diagnostics.
Messages produced while validating a preset, rendered with an emoji prefix.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

import config


class Severity(Enum):
    """How serious a validation message is."""
    ERROR = "error"
    INFO = "info"
    GOOD = "good"

    @property
    def prefix(self) -> str:
        """Emoji shown in front of messages of this severity."""
        if self is Severity.ERROR:
            return config.VALIDATION_ERROR_PREFIX
        if self is Severity.INFO:
            return config.VALIDATION_INFO_PREFIX
        return config.VALIDATION_GOOD_PREFIX


@dataclass(frozen=True)
class ValidationDiagnostic:
    """A single validation message."""
    severity: Severity
    message: str

    @classmethod
    def error(cls, message: str) -> 'ValidationDiagnostic':
        return cls(Severity.ERROR, message)

    @classmethod
    def info(cls, message: str) -> 'ValidationDiagnostic':
        return cls(Severity.INFO, message)

    @classmethod
    def good(cls, message: str) -> 'ValidationDiagnostic':
        return cls(Severity.GOOD, message)

    def render(self) -> str:
        return f"{self.severity.prefix} {self.message}"


def has_errors(diagnostics: Iterable[ValidationDiagnostic]) -> bool:
    """Check if any diagnostic is an error."""
    return any(d.severity is Severity.ERROR for d in diagnostics)


def render_diagnostics(diagnostics: List[ValidationDiagnostic]) -> str:
    """Render diagnostics one per line, in the order they were produced."""
    return "\n".join(d.render() for d in diagnostics)
