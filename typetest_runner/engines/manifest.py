"""Engine manifest definition for the plug-in system."""

from collections.abc import Callable
from dataclasses import dataclass

from typetest_runner.engines.base import (
    Collector,
    EngineProvider,
    Evaluator,
    FileSelector,
)
from typetest_runner.models.config import RunnerConfig


@dataclass(frozen=True, kw_only=True)
class EngineManifest[E]:
    """Manifest describing a checking-engine plug-in.

    Bundles everything the runner needs from one plug-in: how to acquire the
    engine for a target, how to collect a file and how to evaluate its
    assertions with that engine, and which files count as test files.
    """

    provider: EngineProvider[E]
    collector: Collector[E]
    evaluator_factory: Callable[[E], Evaluator]
    selector_factory: Callable[[RunnerConfig], FileSelector]
