"""Fixtures for integration tests."""

from pathlib import Path

import pytest


@pytest.fixture
def watched_dir(tmp_path: Path) -> Path:
    """Create a directory to watch."""
    path = tmp_path.resolve() / "project"
    path.mkdir()
    return path
