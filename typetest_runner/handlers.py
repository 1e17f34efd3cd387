"""Event handlers that steer a run rather than record it."""

import logging
from dataclasses import dataclass

from typetest_runner.cancellation import CancellationReason, CancellationToken
from typetest_runner.events import Event

log = logging.getLogger(__name__)


@dataclass(kw_only=True, eq=False)
class CancellationHandler:
    """Cancels the token as soon as an event of a run reports an error.

    Errors published between runs, such as ``watch:error`` while waiting
    for changes, leave the token alone.
    """

    cancellation_token: CancellationToken
    reason: CancellationReason = CancellationReason.FAIL_FAST
    is_running: bool = False

    def handle_event(self, event: Event) -> None:
        if event.name == "run:start":
            self.is_running = True
        elif event.name == "run:end":
            self.is_running = False
        elif self.is_running and event.has_errors:
            log.debug(
                "Error reported by %s, cancelling (%s)", event.name, self.reason
            )
            self.cancellation_token.cancel(self.reason)


@dataclass(kw_only=True, eq=False)
class ExitCodeHandler:
    """Tracks the process exit code across runs.

    The code is reset when a run starts and becomes 1 once any event
    reports an error diagnostic.
    """

    exit_code: int = 0

    def handle_event(self, event: Event) -> None:
        if event.name == "run:start":
            self.exit_code = 0
            return
        if event.has_errors:
            self.exit_code = 1
