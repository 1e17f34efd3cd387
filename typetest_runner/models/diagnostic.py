"""Diagnostics reported while collecting and running type tests."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

DiagnosticCategory = Literal["error", "warning"]


@dataclass(frozen=True, kw_only=True)
class DiagnosticOrigin:
    """Source span a diagnostic points at."""

    file_path: str
    start: int
    end: int


@dataclass(frozen=True, kw_only=True)
class Diagnostic:
    """A single message with its category and optional source location.

    Text is kept as a sequence of lines so that collaborators can append
    explanations without reformatting the original message.
    """

    text: Sequence[str]
    category: DiagnosticCategory
    origin: DiagnosticOrigin | None = None
    code: str | None = None
    related: Sequence["Diagnostic"] = field(default_factory=tuple)

    @classmethod
    def error(
        cls, text: str | Sequence[str], origin: DiagnosticOrigin | None = None
    ) -> "Diagnostic":
        """Create an error diagnostic."""
        return cls(text=_as_lines(text), category="error", origin=origin)

    @classmethod
    def warning(
        cls, text: str | Sequence[str], origin: DiagnosticOrigin | None = None
    ) -> "Diagnostic":
        """Create a warning diagnostic."""
        return cls(text=_as_lines(text), category="warning", origin=origin)

    @property
    def is_error(self) -> bool:
        return self.category == "error"

    def extend_with(
        self, text: str | Sequence[str], origin: DiagnosticOrigin | None = None
    ) -> "Diagnostic":
        """Return a copy with extra lines appended, optionally re-pointed."""
        return Diagnostic(
            text=(*self.text, *_as_lines(text)),
            category=self.category,
            origin=origin or self.origin,
            code=self.code,
            related=self.related,
        )


def has_errors(diagnostics: Sequence[Diagnostic]) -> bool:
    """Check whether any of the diagnostics is an error."""
    return any(diagnostic.is_error for diagnostic in diagnostics)


def _as_lines(text: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(text, str):
        return (text,)
    return tuple(text)
