"""Coalescing of bursts of notifications into single values."""

import asyncio
from collections.abc import Callable


class Debounce[T]:
    """Delivers values over a queue once notifications go quiet.

    Each ``refresh_timeout`` restarts the timer; when it finally fires,
    ``on_resolve`` is called and its value is queued for ``wait``.
    ``resolve_with`` queues a value right away, bypassing the timer.
    """

    def __init__(self, delay: float, on_resolve: Callable[[], T]) -> None:
        self.delay = delay
        self._on_resolve = on_resolve
        self._queue: asyncio.Queue[T] = asyncio.Queue()
        self._timer: asyncio.TimerHandle | None = None

    @property
    def is_pending(self) -> bool:
        return self._timer is not None

    def clear_timeout(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def refresh_timeout(self) -> None:
        self.clear_timeout()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._resolve)

    def resolve_with(self, value: T) -> None:
        self._queue.put_nowait(value)

    async def wait(self) -> T:
        return await self._queue.get()

    def _resolve(self) -> None:
        self._timer = None
        self._queue.put_nowait(self._on_resolve())
