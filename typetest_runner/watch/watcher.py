"""Filesystem watchers built on watchfiles."""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from watchfiles import Change, awatch

log = logging.getLogger(__name__)

PathCallback = Callable[[Path], None]


class Watcher(Protocol):
    """A started-on-demand source of filesystem callbacks."""

    def watch(self) -> None: ...

    def close(self) -> None: ...


class PathWatcher:
    """Reports changed and removed files below a directory.

    A path reported by watchfiles that no longer exists is treated as
    removed, anything else as changed.
    """

    def __init__(
        self,
        target_path: Path,
        on_changed: PathCallback,
        on_removed: PathCallback | None = None,
        *,
        recursive: bool = True,
    ) -> None:
        self.target_path = target_path
        self.recursive = recursive
        self._on_changed = on_changed
        self._on_removed = on_removed or on_changed
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    def watch(self) -> None:
        if self._task is not None:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._watch_loop())

    def close(self) -> None:
        self._stop_event.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _watch_loop(self) -> None:
        try:
            async for changes in awatch(
                self.target_path,
                recursive=self.recursive,
                stop_event=self._stop_event,
                ignore_permission_denied=True,
            ):
                for change, raw_path in sorted(changes, key=lambda c: c[1]):
                    self._dispatch(change, Path(raw_path))
        except asyncio.CancelledError:
            raise
        except Exception:
            log.error("Watching %s failed", self.target_path, exc_info=True)

    def _dispatch(self, change: Change, path: Path) -> None:
        log.debug("%s: %s", change.name, path)
        if change == Change.deleted and not path.exists():
            self._on_removed(path)
        else:
            self._on_changed(path)


class FileWatcher(PathWatcher):
    """Reports any change of a single file."""

    def __init__(self, target_path: Path, on_changed: Callable[[], None]) -> None:
        self.file_path = target_path.resolve()

        def on_changed_file(path: Path) -> None:
            with contextlib.suppress(OSError):
                path = path.resolve()
            if path == self.file_path:
                on_changed()

        super().__init__(self.file_path.parent, on_changed_file, recursive=False)
