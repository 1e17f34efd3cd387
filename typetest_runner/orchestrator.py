"""Run orchestration across targets and test files."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from typetest_runner.aggregator import ResultAggregator
from typetest_runner.cancellation import CancellationReason, CancellationToken
from typetest_runner.engines.manifest import EngineManifest
from typetest_runner.event_bus import EventBus, EventScope, default_bus
from typetest_runner.events import Event
from typetest_runner.handlers import CancellationHandler
from typetest_runner.models.config import RunnerConfig
from typetest_runner.models.result import RunResult, TargetResult
from typetest_runner.models.task import Task
from typetest_runner.task_runner import TaskRunner
from typetest_runner.watch.service import WatchService

log = logging.getLogger(__name__)

WatchServiceFactory = Callable[[Sequence[Task]], WatchService]


@dataclass(kw_only=True, eq=False)
class RunOrchestrator[E]:
    """Runs test files against every configured target, in order.

    The orchestrator subscribes its ``ResultAggregator`` when created, so
    that result counts are up to date before any handler subscribed later
    sees an event. Call ``close`` to drop that subscription.
    """

    config: RunnerConfig
    manifest: EngineManifest[E]
    bus: EventBus = field(default_factory=lambda: default_bus)
    aggregator: ResultAggregator = field(default_factory=ResultAggregator)
    watch_service_factory: WatchServiceFactory | None = None

    _scope: EventScope = field(init=False)

    def __post_init__(self) -> None:
        self._scope = self.bus.scope()
        self._scope.subscribe(self.aggregator)

    def close(self) -> None:
        self._scope.close()

    async def run(
        self,
        tasks: Sequence[Task],
        cancellation_token: CancellationToken | None = None,
    ) -> RunResult:
        """Run the tasks, then keep re-running changes when watching.

        Returns:
            Result of the last completed run

        """
        if cancellation_token is None:
            cancellation_token = CancellationToken()

        cancellation_handler: CancellationHandler | None = None
        if self.config.fail_fast:
            cancellation_handler = CancellationHandler(
                cancellation_token=cancellation_token,
                reason=CancellationReason.FAIL_FAST,
            )
            self._scope.subscribe(cancellation_handler)

        try:
            result = await self._run(tasks, cancellation_token)
            if self.config.watch:
                result = await self._watch(tasks, cancellation_token) or result
        finally:
            if cancellation_handler is not None:
                self._scope.unsubscribe(cancellation_handler)

        return result

    async def _run(
        self, tasks: Sequence[Task], cancellation_token: CancellationToken
    ) -> RunResult:
        run_result = RunResult(targets=list(self.config.target), tasks=list(tasks))
        self.bus.publish(Event(name="run:start", result=run_result))
        log.info(
            "Running %d test file(s) against %d target(s)",
            len(tasks),
            len(self.config.target),
        )

        for target in self.config.target:
            if cancellation_token.is_requested:
                log.info(
                    "Run cancelled (%s), skipping remaining targets",
                    cancellation_token.reason,
                )
                break

            target_result = TargetResult(target=target, tasks=list(tasks))
            self.bus.publish(Event(name="target:start", result=target_result))
            await self._run_target(target, tasks, cancellation_token)
            self.bus.publish(Event(name="target:end", result=target_result))

        self.bus.publish(Event(name="run:end", result=run_result))

        if cancellation_token.reason == CancellationReason.FAIL_FAST:
            cancellation_token.reset()

        return run_result

    async def _run_target(
        self,
        target: str,
        tasks: Sequence[Task],
        cancellation_token: CancellationToken,
    ) -> None:
        log.info("Acquiring engine for target %s", target)
        engine = await self.manifest.provider.acquire(target)
        if engine is None:
            log.warning("No engine for target %s, its tasks are not run", target)
            return

        task_runner = TaskRunner(
            config=self.config,
            publisher=self.bus,
            engine=engine,
            collector=self.manifest.collector,
            evaluator=self.manifest.evaluator_factory(engine),
        )
        for task in tasks:
            if cancellation_token.is_requested:
                log.info(
                    "Run cancelled (%s), skipping remaining tasks of target %s",
                    cancellation_token.reason,
                    target,
                )
                break
            await task_runner.run(task, cancellation_token)

    async def _watch(
        self, tasks: Sequence[Task], cancellation_token: CancellationToken
    ) -> RunResult | None:
        watch_service = self._create_watch_service(tasks)
        result: RunResult | None = None
        async for changed_tasks in watch_service.watch(cancellation_token):
            result = await self._run(changed_tasks, cancellation_token)

        # a fail-fast reset may have dropped the reason watching stopped for
        if watch_service.close_reason is not None:
            cancellation_token.cancel(watch_service.close_reason)
        return result

    def _create_watch_service(self, tasks: Sequence[Task]) -> WatchService:
        if self.watch_service_factory is not None:
            return self.watch_service_factory(tasks)
        return WatchService.from_config(
            self.config,
            selector=self.manifest.selector_factory(self.config),
            publisher=self.bus,
            tasks=tasks,
        )
