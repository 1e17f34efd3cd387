"""Watch mode: turning file changes into batches of tasks to re-run."""

import logging
from collections.abc import AsyncIterator, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from typetest_runner.cancellation import CancellationReason, CancellationToken
from typetest_runner.engines.base import FileSelector
from typetest_runner.event_bus import Publisher
from typetest_runner.events import Event
from typetest_runner.models.config import RunnerConfig
from typetest_runner.models.diagnostic import Diagnostic
from typetest_runner.models.task import Task, normalize_file_path
from typetest_runner.watch.debounce import Debounce
from typetest_runner.watch.input import InputService, InputSource
from typetest_runner.watch.watcher import (
    FileWatcher,
    PathCallback,
    PathWatcher,
    Watcher,
)

log = logging.getLogger(__name__)

QUIT_KEYS = frozenset({"\u0003", "\u0004", "\u001b", "q", "x"})
RUN_ALL_KEYS = frozenset({"\r", "\n", " ", "a"})

PathWatcherFactory = Callable[[Path, PathCallback, PathCallback], Watcher]
FileWatcherFactory = Callable[[Path, Callable[[], None]], Watcher]
InputFactory = Callable[[Callable[[str], None]], InputSource]


@dataclass(kw_only=True, eq=False)
class WatchService:
    """Watches test files and yields the tasks that need to run again.

    File events restart a debounce timer; when it fires, every task whose
    file changed since the previous flush is yielded as one batch. Pressing
    Enter, Space or ``a`` runs every watched file right away, while ``q``,
    ``x``, Esc, ``Ctrl+C`` and ``Ctrl+D`` stop watching. A change of the
    config file stops watching as well, with a reason asking the caller to
    reload the configuration and start over.

    ``close_reason`` records why watching stopped. It outlives the token,
    which a fail-fast run in progress may reset after the close.
    """

    root_path: Path
    selector: FileSelector
    publisher: Publisher
    tasks: Iterable[Task] = ()
    config_file_path: Path | None = None
    debounce_delay: float = 0.1
    path_watcher_factory: PathWatcherFactory = PathWatcher
    file_watcher_factory: FileWatcherFactory = FileWatcher
    input_factory: InputFactory = InputService
    close_reason: CancellationReason | None = field(default=None, init=False)

    _watched: dict[str, Task] = field(default_factory=dict, init=False)
    _changed: dict[str, Task] = field(default_factory=dict, init=False)
    _watchers: list[Watcher] = field(default_factory=list, init=False)
    _input: InputSource | None = field(default=None, init=False)
    _debounce: Debounce[Sequence[Task]] | None = field(default=None, init=False)
    _token: CancellationToken | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        for task in self.tasks:
            self._watched[_key(task.file_path)] = task

    @classmethod
    def from_config(
        cls,
        config: RunnerConfig,
        *,
        selector: FileSelector,
        publisher: Publisher,
        tasks: Iterable[Task],
    ) -> "WatchService":
        return cls(
            root_path=config.root_path,
            config_file_path=config.config_file_path,
            debounce_delay=config.debounce_delay,
            selector=selector,
            publisher=publisher,
            tasks=tasks,
        )

    @property
    def watched_tasks(self) -> Sequence[Task]:
        return tuple(self._watched.values())

    async def watch(
        self, cancellation_token: CancellationToken
    ) -> AsyncIterator[Sequence[Task]]:
        """Yield non-empty batches of tasks until watching is cancelled."""
        self._token = cancellation_token
        self.close_reason = None
        self._debounce = Debounce(self.debounce_delay, self._take_changed)
        self._input = self.input_factory(self.on_input)
        self._watchers = [
            self.path_watcher_factory(
                self.root_path, self.on_changed_file, self.on_removed_file
            )
        ]
        if self.config_file_path is not None:
            self._watchers.append(
                self.file_watcher_factory(
                    self.config_file_path, self.on_changed_config_file
                )
            )
        for watcher in self._watchers:
            watcher.watch()

        log.info(
            "Watching %s for changes (%d test file(s))",
            self.root_path,
            len(self._watched),
        )

        try:
            while (
                self.close_reason is None and not cancellation_token.is_requested
            ):
                tasks = await self._debounce.wait()
                if tasks:
                    log.info("Running %d changed test file(s)", len(tasks))
                    yield tasks
        finally:
            self._release()
            log.info("Stopped watching %s", self.root_path)

    def on_input(self, chunk: str) -> None:
        key = chunk.lower()
        if key in QUIT_KEYS:
            self._close(CancellationReason.WATCH_CLOSE)
        elif key in RUN_ALL_KEYS:
            debounce = self._require_debounce()
            debounce.clear_timeout()
            if self._watched:
                self._changed.clear()
                debounce.resolve_with(tuple(self._watched.values()))

    def on_changed_file(self, path: Path) -> None:
        debounce = self._require_debounce()
        debounce.refresh_timeout()

        file_path = _key(path)
        if (task := self._watched.get(file_path)) is not None:
            self._changed[file_path] = task
        elif self.selector.is_eligible_file(path):
            log.debug("New test file: %s", file_path)
            task = Task(file_path=file_path)
            self._changed[file_path] = task
            self._watched[file_path] = task

    def on_removed_file(self, path: Path) -> None:
        file_path = _key(path)
        self._changed.pop(file_path, None)
        if self._watched.pop(file_path, None) is None:
            return

        log.debug("Test file removed: %s", file_path)
        if not self._watched:
            self._require_debounce().clear_timeout()
            self.publisher.publish(
                Event(
                    name="watch:error",
                    diagnostics=(
                        Diagnostic.error(
                            [
                                "No test files were left to run using current "
                                "configuration.",
                                f"Root path:       {self.root_path}",
                            ]
                        ),
                    ),
                )
            )

    def on_changed_config_file(self) -> None:
        log.info("Config file changed: %s", self.config_file_path)
        self._close(CancellationReason.CONFIG_CHANGE)

    def _take_changed(self) -> Sequence[Task]:
        tasks = tuple(self._changed.values())
        self._changed.clear()
        return tasks

    def _close(self, reason: CancellationReason) -> None:
        self.close_reason = reason
        self._release()
        if self._token is not None:
            self._token.cancel(reason)
        if self._debounce is not None:
            self._debounce.resolve_with(())

    def _release(self) -> None:
        if self._debounce is not None:
            self._debounce.clear_timeout()
        if self._input is not None:
            self._input.close()
            self._input = None
        for watcher in self._watchers:
            watcher.close()
        self._watchers = []

    def _require_debounce(self) -> Debounce[Sequence[Task]]:
        if self._debounce is None:
            raise RuntimeError("Watch service is not watching")
        return self._debounce


def _key(path: str | Path) -> str:
    return normalize_file_path(str(Path(path).resolve()))
