"""Traversal of a declaration tree, publishing an event for every step."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import assert_never

from typetest_runner.cancellation import CancellationToken
from typetest_runner.engines.base import RAISE_ERROR_MATCHER, Evaluator
from typetest_runner.event_bus import Publisher
from typetest_runner.events import Event, EventName, EventResult
from typetest_runner.models.declaration import (
    Assertion,
    Case,
    DeclarationTree,
    Group,
    TestDeclaration,
)
from typetest_runner.models.diagnostic import Diagnostic
from typetest_runner.models.result import (
    CaseResult,
    ExpectResult,
    GroupResult,
    TaskResult,
)
from typetest_runner.run_mode import RunFilters, RunMode, has_only, resolve_run_mode

log = logging.getLogger(__name__)

UNEXPECTED_PASS_TEXT = (
    "The assertion was supposed to fail, but it passed.",
    "Consider removing the 'fail' flag.",
)


@dataclass(kw_only=True, eq=False)
class RunContext:
    """Everything one traversal of one file needs.

    ``abandoned`` is set when a group with collection diagnostics makes the
    rest of the file meaningless.
    """

    publisher: Publisher
    task_result: TaskResult
    evaluator: Evaluator
    filters: RunFilters
    has_only: bool
    cancellation_token: CancellationToken | None = None
    abandoned: bool = False

    @classmethod
    def for_tree(
        cls,
        tree: DeclarationTree,
        *,
        publisher: Publisher,
        task_result: TaskResult,
        evaluator: Evaluator,
        filters: RunFilters,
        cancellation_token: CancellationToken | None = None,
    ) -> "RunContext":
        return cls(
            publisher=publisher,
            task_result=task_result,
            evaluator=evaluator,
            filters=filters,
            has_only=has_only(tree, filters),
            cancellation_token=cancellation_token,
        )

    @property
    def is_stopped(self) -> bool:
        if self.abandoned:
            return True
        return (
            self.cancellation_token is not None
            and self.cancellation_token.is_requested
        )


class TreeWalker:
    """Visits declarations and publishes their lifecycle events.

    Every visited declaration gets exactly one start event and exactly one
    terminal event, with all events of its members in between. Declarations
    left behind because of cancellation get no events at all.
    """

    def __init__(self, context: RunContext) -> None:
        self.context = context
        self._expect_failures = 0

    def walk(self, tree: DeclarationTree) -> None:
        """Visit all top-level declarations of a tree."""
        self.visit(tree.members, RunMode(), None)

    def visit(
        self,
        members: Sequence[TestDeclaration],
        mode: RunMode,
        parent_result: GroupResult | CaseResult | None,
    ) -> None:
        for member in members:
            if self.context.is_stopped:
                log.debug("Traversal stopped before '%s'", member.name)
                break

            if diagnostics := member.validate():
                self._publish("task:error", self.context.task_result, diagnostics)
                break

            match member:
                case Group():
                    self._visit_group(member, mode, parent_result)
                case Case():
                    self._visit_case(member, mode, parent_result)
                case Assertion():
                    self._visit_assertion(member, mode, parent_result)
                case _:
                    assert_never(member)

    def _visit_group(
        self,
        group: Group,
        mode: RunMode,
        parent_result: GroupResult | CaseResult | None,
    ) -> None:
        group_result = GroupResult(
            group=group,
            parent=parent_result if isinstance(parent_result, GroupResult) else None,
        )
        self._publish("group:start", group_result)

        mode = resolve_run_mode(mode, group, self.context.filters)

        if (
            not (mode.is_skipped(self.context.has_only) or mode.todo)
            and group.diagnostics
        ):
            log.debug("Group '%s' has collection diagnostics", group.name)
            self._publish("task:error", self.context.task_result, group.diagnostics)
            self.context.abandoned = True
        else:
            self.visit(group.members, mode, group_result)

        self._publish("group:end", group_result)

    def _visit_case(
        self,
        case: Case,
        mode: RunMode,
        parent_result: GroupResult | CaseResult | None,
    ) -> None:
        case_result = CaseResult(
            case=case,
            parent=parent_result if isinstance(parent_result, GroupResult) else None,
        )
        self._publish("case:start", case_result)

        mode = resolve_run_mode(mode, case, self.context.filters)
        is_skipped = mode.is_skipped(self.context.has_only)

        if mode.todo:
            self._publish("case:todo", case_result)
            return

        if not is_skipped and case.diagnostics:
            self._publish("case:error", case_result, case.diagnostics)
            return

        failures_before = self._expect_failures
        self.visit(case.members, mode, case_result)

        if is_skipped:
            self._publish("case:skip", case_result)
        elif self._expect_failures > failures_before:
            self._publish("case:fail", case_result)
        else:
            self._publish("case:pass", case_result)

    def _visit_assertion(
        self,
        assertion: Assertion,
        mode: RunMode,
        parent_result: GroupResult | CaseResult | None,
    ) -> None:
        self.visit(assertion.members, mode, parent_result)

        expect_result = ExpectResult(
            assertion=assertion,
            parent=parent_result if isinstance(parent_result, CaseResult) else None,
        )
        self._publish("expect:start", expect_result)

        mode = resolve_run_mode(mode, assertion, self.context.filters)

        if mode.is_skipped(self.context.has_only):
            self._publish("expect:skip", expect_result)
            return

        if assertion.diagnostics and assertion.matcher_name != RAISE_ERROR_MATCHER:
            self._publish_expect_error(expect_result, assertion.diagnostics)
            return

        reported: list[Diagnostic] = []
        match_result = self.context.evaluator.evaluate(assertion, reported.extend)

        if reported:
            if match_result is not None:
                log.warning(
                    "Evaluator reported diagnostics and a result for '%s', "
                    "keeping the diagnostics",
                    assertion.matcher_name,
                )
            self._publish_expect_error(expect_result, reported)
            return

        if match_result is None:
            return

        holds = (
            not match_result.is_match if assertion.is_negated else match_result.is_match
        )

        if holds and mode.fail:
            self._publish_expect_error(
                expect_result, [Diagnostic.error(UNEXPECTED_PASS_TEXT)]
            )
        elif holds or mode.fail:
            self._publish("expect:pass", expect_result)
        else:
            self._expect_failures += 1
            self._publish("expect:fail", expect_result, match_result.explain())

    def _publish_expect_error(
        self, expect_result: ExpectResult, diagnostics: Sequence[Diagnostic]
    ) -> None:
        self._expect_failures += 1
        self._publish("expect:error", expect_result, diagnostics)

    def _publish(
        self,
        name: EventName,
        result: EventResult,
        diagnostics: Sequence[Diagnostic] = (),
    ) -> None:
        self.context.publisher.publish(
            Event(name=name, result=result, diagnostics=tuple(diagnostics))
        )
