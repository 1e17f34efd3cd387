"""Abstract collaborators the runner drives for each target.

A checking engine is whatever object a provider hands out for a target
version. Generic type E stands for that engine handle; the runner never
looks inside it and only passes it back to the collector and evaluator
factory of the same plug-in.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from typetest_runner.models.declaration import Assertion, DeclarationTree
from typetest_runner.models.diagnostic import Diagnostic
from typetest_runner.models.task import Task

RAISE_ERROR_MATCHER = "toRaiseError"
"""Matcher that expects the checker to report errors for its source."""

DiagnosticsCallback = Callable[[Sequence[Diagnostic]], None]


class CollectionError(Exception):
    """Raised when a file cannot be collected into a declaration tree."""

    def __init__(self, diagnostics: Sequence[Diagnostic]) -> None:
        self.diagnostics = tuple(diagnostics)
        super().__init__("; ".join(" ".join(d.text) for d in self.diagnostics))


@dataclass(frozen=True, kw_only=True)
class MatchResult:
    """Outcome of evaluating one assertion.

    ``explain`` is only called when the outcome is reported as a failure.
    """

    is_match: bool
    explain: Callable[[], Sequence[Diagnostic]]


class EngineProvider[E](ABC):
    """Acquires the checking engine for a target version."""

    @abstractmethod
    async def acquire(self, target: str) -> E | None:
        """Return the engine for ``target``.

        Returns None when the engine cannot be provided. The provider is
        expected to have published a ``store:error`` event explaining why.
        """


class Collector[E](ABC):
    """Turns a test file into a declaration tree."""

    @abstractmethod
    async def collect(self, engine: E, task: Task) -> DeclarationTree:
        """Collect declarations of the task's file.

        Raises:
            CollectionError: If the file cannot be collected at all

        """


class Evaluator(ABC):
    """Evaluates assertions against a checking engine."""

    @abstractmethod
    def evaluate(
        self, assertion: Assertion, on_diagnostics: DiagnosticsCallback
    ) -> MatchResult | None:
        """Evaluate an assertion.

        Returns None after reporting problems with the assertion itself (for
        example a missing argument) through ``on_diagnostics``.
        """


class FileSelector(Protocol):
    """Decides whether a newly seen file is a test file."""

    def is_eligible_file(self, path: Path) -> bool: ...
