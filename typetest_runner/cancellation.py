"""Cooperative cancellation of a run."""

import logging
from enum import StrEnum

log = logging.getLogger(__name__)


class CancellationReason(StrEnum):
    """Why a run was asked to stop."""

    CONFIG_CHANGE = "config_change"
    CONFIG_ERROR = "config_error"
    FAIL_FAST = "fail_fast"
    WATCH_CLOSE = "watch_close"


class CancellationToken:
    """Cancel flag shared between the runner and whoever wants it to stop.

    The first reason wins; later ``cancel`` calls are ignored until the token
    is reset. The runner checks the token between declarations and tasks, it
    never interrupts work that has already started.
    """

    def __init__(self) -> None:
        self._is_requested = False
        self._reason: CancellationReason | None = None

    @property
    def is_requested(self) -> bool:
        return self._is_requested

    @property
    def reason(self) -> CancellationReason | None:
        return self._reason

    def cancel(self, reason: CancellationReason) -> None:
        if self._is_requested:
            return
        log.info("Cancellation requested: %s", reason)
        self._is_requested = True
        self._reason = reason

    def reset(self) -> None:
        self._is_requested = False
        self._reason = None
