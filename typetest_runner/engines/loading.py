"""Loading of engine plug-ins from entry points.

An engine package registers its manifest under the ``typetest_runner.engines``
group, for example in its ``pyproject.toml``::

    [project.entry-points."typetest_runner.engines"]
    typescript = "typetest_typescript:manifest"

The entry point must name an ``EngineManifest`` instance.
"""

import logging
from importlib.metadata import EntryPoint, entry_points
from typing import Any

from typetest_runner.engines.manifest import EngineManifest

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "typetest_runner.engines"


class EngineLoadError(Exception):
    """Raised when an engine plug-in cannot be loaded."""


class EngineNotFoundError(EngineLoadError):
    """Raised when no engine plug-in is registered under a key."""


class InvalidEngineError(EngineLoadError):
    """Raised when an entry point does not name an engine manifest."""


def load_engine_manifest(key: str) -> EngineManifest[Any]:
    """Load the manifest of the engine registered under ``key``.

    Raises:
        EngineNotFoundError: If no engine with the given key is installed
        InvalidEngineError: If the entry point names something other than
            an ``EngineManifest``

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == key:
            return _load(entry)

    available = sorted({entry.name for entry in entries})
    raise EngineNotFoundError(
        f"Engine '{key}' not found. Available engines: {available}"
    )


def _load(entry: EntryPoint) -> EngineManifest[Any]:
    log.debug("Loading engine '%s' from %s", entry.name, entry.value)
    manifest = entry.load()
    if not isinstance(manifest, EngineManifest):
        raise InvalidEngineError(
            f"Engine '{entry.name}' ({entry.value}) is a "
            f"{type(manifest).__name__}, not an EngineManifest"
        )
    return manifest
