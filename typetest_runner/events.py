"""Lifecycle events published while a run progresses."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from typetest_runner.models.diagnostic import Diagnostic, has_errors
from typetest_runner.models.result import (
    CaseResult,
    ExpectResult,
    GroupResult,
    RunResult,
    TargetResult,
    TaskResult,
)

EventName = Literal[
    "run:start",
    "run:end",
    "target:start",
    "target:end",
    "store:error",
    "project:uses",
    "project:error",
    "task:start",
    "task:error",
    "task:end",
    "group:start",
    "group:end",
    "case:start",
    "case:error",
    "case:fail",
    "case:pass",
    "case:skip",
    "case:todo",
    "expect:start",
    "expect:error",
    "expect:fail",
    "expect:pass",
    "expect:skip",
    "watch:error",
    "config:error",
    "deprecation:info",
]

EventResult = (
    RunResult | TargetResult | TaskResult | GroupResult | CaseResult | ExpectResult
)


@dataclass(frozen=True, kw_only=True)
class Event:
    """An event name with its payload.

    ``result`` is the result object the event is about, if any. Only
    ``project:uses`` fills in the project fields.
    """

    name: EventName
    result: EventResult | None = None
    diagnostics: Sequence[Diagnostic] = field(default_factory=tuple)
    compiler_version: str | None = None
    project_config_path: str | None = None

    @property
    def has_errors(self) -> bool:
        return has_errors(self.diagnostics)
