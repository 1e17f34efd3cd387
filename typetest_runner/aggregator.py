"""Reduction of the event stream into the result tree."""

import logging
import time
from dataclasses import dataclass
from typing import Literal

from typetest_runner.events import Event
from typetest_runner.models.result import (
    CaseResult,
    ExpectResult,
    GroupResult,
    ProjectResult,
    ResultStatus,
    RunResult,
    TargetResult,
    TaskResult,
)

log = logging.getLogger(__name__)

TERMINAL_STATUS: dict[str, ResultStatus] = {
    "error": "failed",
    "fail": "failed",
    "pass": "passed",
    "skip": "skipped",
    "todo": "todo",
}


@dataclass(kw_only=True)
class ResultCursor:
    """Innermost open result at each level of the tree."""

    run: RunResult | None = None
    target: TargetResult | None = None
    project: ProjectResult | None = None
    task: TaskResult | None = None
    group: GroupResult | None = None
    case: CaseResult | None = None
    expect: ExpectResult | None = None


class ResultAggregator:
    """Builds the result tree from events of a single run.

    Results are linked under their parent when their start event arrives
    and closed by their terminal event. Counters are incremented as terminal
    events arrive, never recomputed, so the tree is a valid snapshot at any
    point of the run. Events must be well nested; two runs interleaving on
    one aggregator are not supported.
    """

    def __init__(self) -> None:
        self.cursor = ResultCursor()
        self.last_result: RunResult | None = None

    def handle_event(self, event: Event) -> None:
        scope, _, action = event.name.partition(":")

        match scope:
            case "run":
                self._on_run(event, action)
            case "target":
                self._on_target(event, action)
            case "store":
                if event.has_errors and self.cursor.target is not None:
                    self.cursor.target.status = "failed"
            case "project":
                self._on_project(event, action)
            case "task":
                self._on_task(event, action)
            case "group":
                self._on_group(event, action)
            case "case":
                self._on_case(event, action)
            case "expect":
                self._on_expect(event, action)

    def _on_run(self, event: Event, action: str) -> None:
        run_result = _result_of(event, RunResult)

        if action == "start":
            self.cursor = ResultCursor(run=run_result)
            run_result.timing.start = time.time()
            return

        run_result.status = "failed" if run_result.target_count.failed > 0 else "passed"
        run_result.timing.end = time.time()
        log.info(
            "Run finished: %s (files: %d passed, %d failed; tests: %d passed, "
            "%d failed, %d skipped, %d todo)",
            run_result.status,
            run_result.file_count.passed,
            run_result.file_count.failed,
            run_result.test_count.passed,
            run_result.test_count.failed,
            run_result.test_count.skipped,
            run_result.test_count.todo,
        )
        self.last_result = run_result
        self.cursor = ResultCursor()

    def _on_target(self, event: Event, action: str) -> None:
        target_result = _result_of(event, TargetResult)
        run_result = self.cursor.run

        if action == "start":
            if run_result is not None:
                run_result.results.append(target_result)
            self.cursor.target = target_result
            target_result.timing.start = time.time()
            return

        if target_result.status == "failed":
            status: ResultStatus = "failed"
        else:
            status = "passed"
        target_result.status = status
        if run_result is not None:
            run_result.target_count.add(status)
        target_result.timing.end = time.time()
        self.cursor.target = None
        self.cursor.project = None

    def _on_project(self, event: Event, action: str) -> None:
        target_result = self.cursor.target
        if target_result is None:
            log.warning("Ignoring %s outside of a target", event.name)
            return

        if action == "uses":
            self.cursor.project = self._project_for(
                target_result, event.project_config_path, event.compiler_version
            )
        elif action == "error":
            target_result.status = "failed"
            project_result = self.cursor.project or self._project_for(
                target_result, None, None
            )
            project_result.diagnostics.extend(event.diagnostics)

    def _on_task(self, event: Event, action: str) -> None:
        task_result = _result_of(event, TaskResult)
        target_result = self.cursor.target

        match action:
            case "start":
                if target_result is not None:
                    project_result = self.cursor.project or self._project_for(
                        target_result, None, None
                    )
                    project_result.results.append(task_result)
                self.cursor.task = task_result
                self.cursor.group = None
                self.cursor.case = None
                task_result.timing.start = time.time()
            case "error":
                if target_result is not None:
                    target_result.status = "failed"
                task_result.status = "failed"
                task_result.diagnostics.extend(event.diagnostics)
            case "end":
                if (
                    task_result.status == "failed"
                    or task_result.expect_count.failed > 0
                    or task_result.test_count.failed > 0
                ):
                    status: ResultStatus = "failed"
                    if target_result is not None:
                        target_result.status = "failed"
                else:
                    status = "passed"
                task_result.status = status
                self._count(status, "file_count", run=True, target=True)
                task_result.timing.end = time.time()
                self.cursor.task = None

    def _on_group(self, event: Event, action: str) -> None:
        group_result = _result_of(event, GroupResult)

        if action == "start":
            self._attach(group_result)
            self.cursor.group = group_result
            group_result.timing.start = time.time()
            return

        group_result.timing.end = time.time()
        self.cursor.group = group_result.parent

    def _on_case(self, event: Event, action: str) -> None:
        case_result = _result_of(event, CaseResult)

        if action == "start":
            self._attach(case_result)
            self.cursor.case = case_result
            case_result.timing.start = time.time()
            return

        status = TERMINAL_STATUS[action]
        case_result.status = status
        case_result.diagnostics.extend(event.diagnostics)
        self._count(status, "test_count", run=True, target=True, task=True)
        case_result.timing.end = time.time()
        self.cursor.case = None

    def _on_expect(self, event: Event, action: str) -> None:
        expect_result = _result_of(event, ExpectResult)

        if action == "start":
            if self.cursor.case is not None:
                self.cursor.case.results.append(expect_result)
            elif self.cursor.task is not None:
                self.cursor.task.results.append(expect_result)
            self.cursor.expect = expect_result
            expect_result.timing.start = time.time()
            return

        status = TERMINAL_STATUS[action]
        expect_result.status = status
        expect_result.diagnostics.extend(event.diagnostics)
        self._count(status, "expect_count", run=True, target=True, task=True)
        if self.cursor.case is not None:
            self.cursor.case.expect_count.add(status)
        expect_result.timing.end = time.time()
        self.cursor.expect = None

    def _attach(self, result: GroupResult | CaseResult) -> None:
        if self.cursor.group is not None:
            self.cursor.group.results.append(result)
        elif self.cursor.task is not None:
            self.cursor.task.results.append(result)

    def _count(
        self,
        status: ResultStatus,
        counter: Literal["file_count", "test_count", "expect_count"],
        *,
        run: bool = False,
        target: bool = False,
        task: bool = False,
    ) -> None:
        owners: list[RunResult | TargetResult | TaskResult | None] = []
        if run:
            owners.append(self.cursor.run)
        if target:
            owners.append(self.cursor.target)
        if task:
            owners.append(self.cursor.task)
        for owner in owners:
            if owner is not None:
                getattr(owner, counter).add(status)

    @staticmethod
    def _project_for(
        target_result: TargetResult,
        project_config_path: str | None,
        compiler_version: str | None,
    ) -> ProjectResult:
        project_result = target_result.results.get(project_config_path)
        if project_result is None:
            project_result = ProjectResult(
                compiler_version=compiler_version,
                project_config_path=project_config_path,
            )
            target_result.results[project_config_path] = project_result
        return project_result


def _result_of[R](event: Event, result_type: type[R]) -> R:
    if not isinstance(event.result, result_type):
        raise TypeError(
            f"{event.name} event carries {type(event.result).__name__}, "
            f"expected {result_type.__name__}"
        )
    return event.result
