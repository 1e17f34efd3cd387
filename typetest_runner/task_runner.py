"""Running of a single test file against one engine."""

import logging
from dataclasses import dataclass

from typetest_runner.cancellation import CancellationToken
from typetest_runner.engines.base import CollectionError, Collector, Evaluator
from typetest_runner.event_bus import Publisher
from typetest_runner.events import Event
from typetest_runner.models.config import RunnerConfig
from typetest_runner.models.result import TaskResult
from typetest_runner.models.task import Task
from typetest_runner.run_mode import RunFilters
from typetest_runner.walker import RunContext, TreeWalker

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class TaskRunner[E]:
    """Collects a file with the engine and walks its declarations."""

    config: RunnerConfig
    publisher: Publisher
    engine: E
    collector: Collector[E]
    evaluator: Evaluator

    async def run(
        self, task: Task, cancellation_token: CancellationToken | None = None
    ) -> TaskResult | None:
        """Run one task, wrapped in ``task:start`` and ``task:end``.

        Returns None without publishing anything when cancellation was
        requested before the task started.
        """
        if cancellation_token is not None and cancellation_token.is_requested:
            return None

        log.debug("Running task %s", task.file_path)
        task_result = TaskResult(task=task)
        self.publisher.publish(Event(name="task:start", result=task_result))
        await self._run(task, task_result, cancellation_token)
        self.publisher.publish(Event(name="task:end", result=task_result))

        return task_result

    async def _run(
        self,
        task: Task,
        task_result: TaskResult,
        cancellation_token: CancellationToken | None,
    ) -> None:
        try:
            tree = await self.collector.collect(self.engine, task)
        except CollectionError as e:
            log.debug("Could not collect %s: %s", task.file_path, e)
            self.publisher.publish(
                Event(name="task:error", result=task_result, diagnostics=e.diagnostics)
            )
            return

        if tree.diagnostics:
            self.publisher.publish(
                Event(
                    name="task:error",
                    result=task_result,
                    diagnostics=tuple(tree.diagnostics),
                )
            )
            return

        filters = RunFilters(
            only=self.config.only, skip=self.config.skip, position=task.position
        )
        context = RunContext.for_tree(
            tree,
            publisher=self.publisher,
            task_result=task_result,
            evaluator=self.evaluator,
            filters=filters,
            cancellation_token=cancellation_token,
        )
        TreeWalker(context).walk(tree)
