"""Tests for run orchestrator."""

from collections.abc import AsyncIterator, Sequence

import pytest

from typetest_runner.cancellation import CancellationReason, CancellationToken
from typetest_runner.engines.manifest import EngineManifest
from typetest_runner.event_bus import EventBus
from typetest_runner.events import Event
from typetest_runner.models.config import RunnerConfig
from typetest_runner.models.declaration import DeclarationTree
from typetest_runner.models.diagnostic import Diagnostic
from typetest_runner.models.task import Task
from typetest_runner.orchestrator import RunOrchestrator
from typetest_runner.testing.factories import (
    AssertionFactory,
    CaseFactory,
    TaskFactory,
)
from typetest_runner.testing.fakes import (
    EventRecorder,
    FakeEngine,
    FakeEngineProvider,
    FakeEvaluator,
    fake_manifest,
)


def passing_tree(task: Task, assertion_name: str = "holds") -> DeclarationTree:
    tree = DeclarationTree(file_path=task.file_path)
    tree.add(CaseFactory.build()).add(AssertionFactory.build(name=assertion_name))
    return tree


@pytest.fixture
def tasks() -> list[Task]:
    """Create two tasks."""
    return [TaskFactory.build(), TaskFactory.build()]


def make_orchestrator(
    bus: EventBus, manifest: EngineManifest[FakeEngine], **config: object
) -> RunOrchestrator[FakeEngine]:
    return RunOrchestrator(
        config=RunnerConfig.model_validate(config), manifest=manifest, bus=bus
    )


async def test_runs_every_task_against_every_target(
    bus: EventBus, recorder: EventRecorder, tasks: list[Task]
) -> None:
    """Targets run in order, each with every task."""
    manifest = fake_manifest({task.file_path: passing_tree(task) for task in tasks})
    orchestrator = make_orchestrator(bus, manifest, target=["5.3", "5.4"])

    run_result = await orchestrator.run(tasks)

    assert manifest.collector.collected == [  # type: ignore[attr-defined]
        ("5.3", tasks[0].file_path),
        ("5.3", tasks[1].file_path),
        ("5.4", tasks[0].file_path),
        ("5.4", tasks[1].file_path),
    ]
    assert recorder.count("target:start") == 2
    assert recorder.count("task:end") == 4
    assert recorder.names[0] == "run:start"
    assert recorder.names[-1] == "run:end"
    assert run_result.status == "passed"
    assert [target.target for target in run_result.results] == ["5.3", "5.4"]
    assert run_result.file_count.passed == 4


async def test_fail_fast_stops_after_first_error(
    bus: EventBus, recorder: EventRecorder, tasks: list[Task]
) -> None:
    """Nothing runs for the second file or the second target."""
    trees = {
        tasks[0].file_path: passing_tree(tasks[0], "broken"),
        tasks[1].file_path: passing_tree(tasks[1]),
    }
    manifest = fake_manifest(
        trees, evaluator=FakeEvaluator(outcomes={"broken": False})
    )
    orchestrator = make_orchestrator(
        bus, manifest, target=["5.3", "5.4"], fail_fast=True
    )
    token = CancellationToken()

    run_result = await orchestrator.run(tasks, token)

    task_results = [
        event.result for event in recorder.events if event.name == "task:start"
    ]
    assert len(task_results) == 1
    assert recorder.count("target:start") == 1
    assert recorder.names[-1] == "run:end"
    assert run_result.status == "failed"
    assert token.is_requested is False


async def test_without_fail_fast_errors_do_not_stop_run(
    bus: EventBus, recorder: EventRecorder, tasks: list[Task]
) -> None:
    """Every task runs when fail-fast is off."""
    trees = {task.file_path: passing_tree(task, "broken") for task in tasks}
    manifest = fake_manifest(
        trees, evaluator=FakeEvaluator(outcomes={"broken": False})
    )
    orchestrator = make_orchestrator(bus, manifest, target=["5.3", "5.4"])

    run_result = await orchestrator.run(tasks)

    assert recorder.count("task:start") == 4
    assert run_result.file_count.failed == 4


async def test_unavailable_engine_skips_target(
    bus: EventBus, recorder: EventRecorder, tasks: list[Task]
) -> None:
    """A target without an engine fails and runs no tasks."""
    provider = FakeEngineProvider(unavailable=["4.9"], publisher=bus)
    manifest = fake_manifest(
        {task.file_path: passing_tree(task) for task in tasks}, provider=provider
    )
    orchestrator = make_orchestrator(bus, manifest, target=["4.9", "5.4"])

    run_result = await orchestrator.run(tasks)

    assert provider.acquired == ["4.9", "5.4"]
    assert recorder.names[:4] == [
        "run:start",
        "target:start",
        "store:error",
        "target:end",
    ]
    first, second = run_result.results
    assert first.status == "failed"
    assert second.status == "passed"
    assert run_result.status == "failed"


async def test_cancelled_before_run_publishes_only_run_events(
    bus: EventBus, recorder: EventRecorder, tasks: list[Task]
) -> None:
    """A run started after cancellation visits no targets."""
    orchestrator = make_orchestrator(bus, fake_manifest({}))
    token = CancellationToken()
    token.cancel(CancellationReason.WATCH_CLOSE)

    await orchestrator.run(tasks, token)

    assert recorder.names == ["run:start", "run:end"]
    assert token.reason == CancellationReason.WATCH_CLOSE


async def test_close_unsubscribes_aggregator(
    bus: EventBus, tasks: list[Task]
) -> None:
    """After close, the aggregator no longer follows the bus."""
    orchestrator = make_orchestrator(bus, fake_manifest({}))
    orchestrator.close()

    await orchestrator.run(tasks)

    assert orchestrator.aggregator.last_result is None


class StubWatchService:
    """Yields prepared batches, then stops like a closed watcher."""

    def __init__(
        self,
        batches: Sequence[Sequence[Task]],
        reason: CancellationReason = CancellationReason.WATCH_CLOSE,
        *,
        cancels_token: bool = True,
    ) -> None:
        self.batches = batches
        self.reason = reason
        self.cancels_token = cancels_token
        self.close_reason: CancellationReason | None = None

    async def watch(
        self, cancellation_token: CancellationToken
    ) -> AsyncIterator[Sequence[Task]]:
        for batch in self.batches:
            yield batch
        self.close_reason = self.reason
        if self.cancels_token:
            cancellation_token.cancel(self.reason)


async def test_watch_reruns_changed_tasks(
    bus: EventBus, recorder: EventRecorder, tasks: list[Task]
) -> None:
    """Each batch from the watch service is a run of its own."""
    manifest = fake_manifest({task.file_path: passing_tree(task) for task in tasks})
    created: list[Sequence[Task]] = []

    def watch_service_factory(watched: Sequence[Task]) -> StubWatchService:
        created.append(watched)
        return StubWatchService([[tasks[1]]])

    orchestrator = RunOrchestrator(
        config=RunnerConfig(watch=True),
        manifest=manifest,
        bus=bus,
        watch_service_factory=watch_service_factory,  # type: ignore[arg-type]
    )
    token = CancellationToken()

    run_result = await orchestrator.run(tasks, token)

    assert created == [tasks]
    assert recorder.count("run:start") == 2
    assert run_result.tasks == [tasks[1]]
    assert run_result.file_count.total == 1
    assert token.reason == CancellationReason.WATCH_CLOSE


async def test_watch_without_batches_returns_first_result(
    bus: EventBus, tasks: list[Task]
) -> None:
    """The initial run is returned when watching yields nothing."""

    def watch_service_factory(watched: Sequence[Task]) -> StubWatchService:
        return StubWatchService([])

    orchestrator = RunOrchestrator(
        config=RunnerConfig(watch=True),
        manifest=fake_manifest({}),
        bus=bus,
        watch_service_factory=watch_service_factory,  # type: ignore[arg-type]
    )

    run_result = await orchestrator.run(tasks)

    assert run_result.tasks == tasks


async def test_watch_close_reason_survives_fail_fast_reset(
    bus: EventBus, tasks: list[Task]
) -> None:
    """A config change during a fail-fast run still reaches the caller."""
    trees = {task.file_path: passing_tree(task, "broken") for task in tasks}
    manifest = fake_manifest(
        trees, evaluator=FakeEvaluator(outcomes={"broken": False})
    )

    def watch_service_factory(watched: Sequence[Task]) -> StubWatchService:
        return StubWatchService(
            [[tasks[1]]], CancellationReason.CONFIG_CHANGE, cancels_token=False
        )

    orchestrator = RunOrchestrator(
        config=RunnerConfig(watch=True, fail_fast=True),
        manifest=manifest,
        bus=bus,
        watch_service_factory=watch_service_factory,  # type: ignore[arg-type]
    )
    token = CancellationToken()

    await orchestrator.run(tasks, token)

    assert token.reason == CancellationReason.CONFIG_CHANGE


async def test_watch_error_does_not_trigger_fail_fast(
    bus: EventBus, recorder: EventRecorder, tasks: list[Task]
) -> None:
    """Watch problems between runs do not cancel the next batch."""
    manifest = fake_manifest({task.file_path: passing_tree(task) for task in tasks})

    class ReportingWatchService(StubWatchService):
        async def watch(
            self, cancellation_token: CancellationToken
        ) -> AsyncIterator[Sequence[Task]]:
            bus.publish(
                Event(
                    name="watch:error",
                    diagnostics=(Diagnostic.error("No test files were left."),),
                )
            )
            async for batch in super().watch(cancellation_token):
                yield batch

    def watch_service_factory(watched: Sequence[Task]) -> StubWatchService:
        return ReportingWatchService([[tasks[1]]])

    orchestrator = RunOrchestrator(
        config=RunnerConfig(watch=True, fail_fast=True),
        manifest=manifest,
        bus=bus,
        watch_service_factory=watch_service_factory,  # type: ignore[arg-type]
    )

    run_result = await orchestrator.run(tasks, CancellationToken())

    assert recorder.count("run:start") == 2
    assert run_result.file_count.passed == 1
    assert recorder.events[-2].name == "target:end"
