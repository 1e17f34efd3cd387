"""Unit of work handed to the runner: one test file."""

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse


@dataclass(frozen=True, kw_only=True)
class Task:
    """A test file to run, optionally narrowed to a single declaration.

    When ``position`` is set, only the declaration starting at that source
    offset is selected to run; everything else in the file is skipped.
    """

    __test__ = False

    file_path: str
    position: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "file_path", normalize_file_path(self.file_path))

    @classmethod
    def from_path(cls, path: str | Path, position: int | None = None) -> "Task":
        """Create a task from a path-like value."""
        return cls(file_path=str(path), position=position)


def normalize_file_path(file_path: str) -> str:
    """Convert ``file:`` URLs to paths and use forward slashes throughout."""
    if file_path.startswith("file:"):
        file_path = unquote(urlparse(file_path).path)
    return file_path.replace("\\", "/")
