"""Checking-engine plug-in interfaces."""

from typetest_runner.engines.base import (
    RAISE_ERROR_MATCHER,
    CollectionError,
    Collector,
    EngineProvider,
    Evaluator,
    FileSelector,
    MatchResult,
)
from typetest_runner.engines.loading import (
    EngineLoadError,
    EngineNotFoundError,
    InvalidEngineError,
    load_engine_manifest,
)
from typetest_runner.engines.manifest import EngineManifest

__all__ = [
    "RAISE_ERROR_MATCHER",
    "CollectionError",
    "Collector",
    "EngineLoadError",
    "EngineManifest",
    "EngineNotFoundError",
    "EngineProvider",
    "Evaluator",
    "FileSelector",
    "InvalidEngineError",
    "MatchResult",
    "load_engine_manifest",
]
