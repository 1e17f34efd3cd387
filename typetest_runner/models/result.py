"""Models for run results.

Result objects form a tree mirroring the run:
run > target > project > task > group/case > expect. They are created by
the runner when the matching ``*:start`` event is published and filled in
by the ``ResultAggregator`` as events arrive, so a tree inspected mid-run is
always a consistent snapshot.
"""

import math
from dataclasses import dataclass, field
from typing import Literal

from typetest_runner.models.declaration import Assertion, Case, Group
from typetest_runner.models.diagnostic import Diagnostic
from typetest_runner.models.task import Task

ResultStatus = Literal["running", "passed", "failed", "skipped", "todo"]


@dataclass(kw_only=True)
class ResultTiming:
    """Start and end timestamps in seconds, NaN until recorded."""

    start: float = math.nan
    end: float = math.nan

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(kw_only=True)
class ResultCount:
    """Tally of terminal outcomes."""

    failed: int = 0
    passed: int = 0
    skipped: int = 0
    todo: int = 0

    @property
    def total(self) -> int:
        return self.failed + self.passed + self.skipped + self.todo

    def add(self, status: ResultStatus) -> None:
        """Increment the bucket matching a terminal status."""
        match status:
            case "failed":
                self.failed += 1
            case "passed":
                self.passed += 1
            case "skipped":
                self.skipped += 1
            case "todo":
                self.todo += 1
            case "running":
                raise ValueError("Cannot count a running result")


@dataclass(kw_only=True, eq=False)
class ExpectResult:
    """Result of a single assertion."""

    assertion: Assertion
    parent: "CaseResult | GroupResult | None" = field(default=None, repr=False)
    status: ResultStatus = "running"
    diagnostics: list[Diagnostic] = field(default_factory=list)
    timing: ResultTiming = field(default_factory=ResultTiming)


@dataclass(kw_only=True, eq=False)
class CaseResult:
    """Result of a test case and its assertions."""

    case: Case
    parent: "GroupResult | None" = field(default=None, repr=False)
    status: ResultStatus = "running"
    diagnostics: list[Diagnostic] = field(default_factory=list)
    results: list[ExpectResult] = field(default_factory=list)
    expect_count: ResultCount = field(default_factory=ResultCount)
    timing: ResultTiming = field(default_factory=ResultTiming)


@dataclass(kw_only=True, eq=False)
class GroupResult:
    """Result container for a group; groups carry no status of their own."""

    group: Group
    parent: "GroupResult | None" = field(default=None, repr=False)
    results: list["GroupResult | CaseResult | ExpectResult"] = field(
        default_factory=list
    )
    timing: ResultTiming = field(default_factory=ResultTiming)


@dataclass(kw_only=True, eq=False)
class TaskResult:
    """Result of running one test file against one target."""

    __test__ = False

    task: Task
    status: ResultStatus = "running"
    diagnostics: list[Diagnostic] = field(default_factory=list)
    results: list[GroupResult | CaseResult | ExpectResult] = field(
        default_factory=list
    )
    expect_count: ResultCount = field(default_factory=ResultCount)
    test_count: ResultCount = field(default_factory=ResultCount)
    timing: ResultTiming = field(default_factory=ResultTiming)


@dataclass(kw_only=True, eq=False)
class ProjectResult:
    """Tasks that share one project configuration within a target."""

    compiler_version: str | None = None
    project_config_path: str | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    results: list[TaskResult] = field(default_factory=list)


@dataclass(kw_only=True, eq=False)
class TargetResult:
    """Result of running all tasks against one target version."""

    target: str
    tasks: list[Task] = field(default_factory=list)
    status: ResultStatus = "running"
    results: dict[str | None, ProjectResult] = field(default_factory=dict)
    file_count: ResultCount = field(default_factory=ResultCount)
    expect_count: ResultCount = field(default_factory=ResultCount)
    test_count: ResultCount = field(default_factory=ResultCount)
    timing: ResultTiming = field(default_factory=ResultTiming)


@dataclass(kw_only=True, eq=False)
class RunResult:
    """Result of a whole run across targets."""

    targets: list[str] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    status: ResultStatus = "running"
    results: list[TargetResult] = field(default_factory=list)
    target_count: ResultCount = field(default_factory=ResultCount)
    file_count: ResultCount = field(default_factory=ResultCount)
    expect_count: ResultCount = field(default_factory=ResultCount)
    test_count: ResultCount = field(default_factory=ResultCount)
    timing: ResultTiming = field(default_factory=ResultTiming)

    @property
    def has_failures(self) -> bool:
        return self.status == "failed"
