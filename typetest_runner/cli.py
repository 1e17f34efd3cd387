"""CLI entry point for the type test runner."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from typetest_runner.cancellation import CancellationReason, CancellationToken
from typetest_runner.config_loader import find_config_file, load_config
from typetest_runner.engines.loading import load_engine_manifest
from typetest_runner.engines.manifest import EngineManifest
from typetest_runner.event_bus import EventBus
from typetest_runner.events import Event
from typetest_runner.handlers import ExitCodeHandler
from typetest_runner.models.config import RunnerConfig
from typetest_runner.models.diagnostic import Diagnostic
from typetest_runner.models.result import ResultCount, RunResult
from typetest_runner.models.task import Task
from typetest_runner.orchestrator import RunOrchestrator

STATUS_SYMBOLS = {
    "passed": "✓",
    "failed": "✗",
    "skipped": "-",
    "todo": "…",
    "running": "?",
}


def log_results_summary(log: logging.Logger, run_result: RunResult) -> None:
    """Log a per-target, per-file summary of a run."""
    log.info("=" * 80)
    log.info("Test Results Summary:")
    log.info("=" * 80)

    for target_result in run_result.results:
        log.info(
            "%s target %s: %s (%.2fs)",
            STATUS_SYMBOLS[target_result.status],
            target_result.target,
            target_result.status,
            target_result.timing.duration,
        )
        for project_result in target_result.results.values():
            for task_result in project_result.results:
                log.info(
                    "  %s %s: %s",
                    STATUS_SYMBOLS[task_result.status],
                    task_result.task.file_path,
                    task_result.status,
                )
                for diagnostic in task_result.diagnostics:
                    log.info("    %s", " ".join(diagnostic.text))

    log.info("Targets: %s", _format_count(run_result.target_count))
    log.info("Files:   %s", _format_count(run_result.file_count))
    log.info("Tests:   %s", _format_count(run_result.test_count))
    log.info("Expects: %s", _format_count(run_result.expect_count))


def _format_count(count: ResultCount) -> str:
    return (
        f"{count.failed} failed, {count.passed} passed, {count.skipped} skipped, "
        f"{count.todo} todo, {count.total} total"
    )


def format_output(run_result: RunResult) -> dict[str, Any]:
    """Format a run result for JSON output."""

    def count(result_count: ResultCount) -> dict[str, int]:
        return {
            "failed": result_count.failed,
            "passed": result_count.passed,
            "skipped": result_count.skipped,
            "todo": result_count.todo,
            "total": result_count.total,
        }

    targets: list[dict[str, Any]] = []
    for target_result in run_result.results:
        files = [
            {
                "file": task_result.task.file_path,
                "status": task_result.status,
                "tests": count(task_result.test_count),
                "expects": count(task_result.expect_count),
            }
            for project_result in target_result.results.values()
            for task_result in project_result.results
        ]
        targets.append(
            {
                "target": target_result.target,
                "status": target_result.status,
                "files": files,
            }
        )

    return {
        "status": run_result.status,
        "targets": targets,
        "files": count(run_result.file_count),
        "tests": count(run_result.test_count),
        "expects": count(run_result.expect_count),
    }


def select_tasks(
    config: RunnerConfig, manifest: EngineManifest[Any], file_paths: Sequence[str]
) -> Sequence[Task]:
    """Turn CLI file arguments into tasks, or select test files under the root."""
    if file_paths:
        return [Task.from_path(Path(file_path).resolve()) for file_path in file_paths]

    selector = manifest.selector_factory(config)
    return [
        Task.from_path(path)
        for path in sorted(config.root_path.rglob("*"))
        if path.is_file() and selector.is_eligible_file(path)
    ]


async def resolve_config(
    config_path: Path | None, overrides: dict[str, Any]
) -> RunnerConfig:
    """Load the config file, or build a config from defaults if there is none."""
    if config_path is None:
        config_path = find_config_file(Path.cwd())
    if config_path is None:
        try:
            return RunnerConfig.model_validate(overrides)
        except ValidationError as e:
            raise ValueError(f"Invalid command line options: {e}") from e
    return await load_config(config_path, overrides)


async def run(
    engine_key: str,
    config_path: Path | None,
    file_paths: Sequence[str] = (),
    overrides: dict[str, Any] | None = None,
) -> int:
    """Run type tests and return exit code."""
    log = logging.getLogger("typetest_runner")

    log.info("Loading engine: %s", engine_key)
    manifest = load_engine_manifest(engine_key)

    bus = EventBus()
    exit_code_handler = ExitCodeHandler()
    bus.subscribe(exit_code_handler)
    cancellation_token = CancellationToken()

    while True:
        try:
            config = await resolve_config(config_path, overrides or {})
        except (FileNotFoundError, ValueError) as e:
            log.error("Could not load config: %s", e)
            bus.publish(
                Event(name="config:error", diagnostics=(Diagnostic.error(str(e)),))
            )
            cancellation_token.cancel(CancellationReason.CONFIG_ERROR)
            return 1

        tasks = select_tasks(config, manifest, file_paths)
        if not tasks:
            log.error("No test files were selected in %s", config.root_path)
            return 1

        orchestrator = RunOrchestrator(config=config, manifest=manifest, bus=bus)
        try:
            run_result = await orchestrator.run(tasks, cancellation_token)
        finally:
            orchestrator.close()

        if cancellation_token.reason != CancellationReason.CONFIG_CHANGE:
            break

        log.info("Config file changed, restarting")
        cancellation_token.reset()

    log_results_summary(log, run_result)
    print(json.dumps(format_output(run_result), indent=2))

    return exit_code_handler.exit_code


def parse_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Collect config values given on the command line."""
    overrides: dict[str, Any] = {}
    if args.target:
        overrides["target"] = args.target
    if args.only is not None:
        overrides["only"] = args.only
    if args.skip is not None:
        overrides["skip"] = args.skip
    if args.fail_fast:
        overrides["fail_fast"] = True
    if args.watch:
        overrides["watch"] = True
    return overrides


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Run type tests against targets")
    parser.add_argument(
        "files",
        nargs="*",
        help="Test files to run (default: all test files under the root path)",
    )
    parser.add_argument(
        "--engine",
        required=True,
        help="Engine key of an installed checking-engine plug-in",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: nearest typetest.yaml)",
    )
    parser.add_argument(
        "--target",
        action="append",
        default=[],
        help="Target version to run against (repeatable)",
    )
    parser.add_argument("--only", help="Run only tests whose name matches")
    parser.add_argument("--skip", help="Skip tests whose name matches")
    parser.add_argument(
        "--fail-fast", action="store_true", help="Stop after the first error"
    )
    parser.add_argument(
        "--watch", action="store_true", help="Re-run tests when files change"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(
        run(
            engine_key=args.engine,
            config_path=args.config,
            file_paths=args.files,
            overrides=parse_overrides(args),
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
