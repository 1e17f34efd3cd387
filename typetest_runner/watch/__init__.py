"""Watch mode."""

from typetest_runner.watch.debounce import Debounce
from typetest_runner.watch.service import WatchService
from typetest_runner.watch.watcher import FileWatcher, PathWatcher

__all__ = ["Debounce", "FileWatcher", "PathWatcher", "WatchService"]
