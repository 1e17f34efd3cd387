"""In-process publish/subscribe for run events."""

import logging
from collections.abc import Callable
from types import TracebackType
from typing import Protocol

from typetest_runner.events import Event

log = logging.getLogger(__name__)


class EventHandler(Protocol):
    """Anything that reacts to published events."""

    def handle_event(self, event: Event) -> None: ...


class Publisher(Protocol):
    """Anything events can be published to: a bus or one of its scopes."""

    def publish(self, event: Event) -> None: ...


class EventBus:
    """Synchronous, ordered event dispatch.

    Handlers run in the order they subscribed, and ``publish`` returns only
    after every handler has run. Exceptions raised by a handler propagate to
    the publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[int, EventHandler] = {}

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.setdefault(id(handler), handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        self._handlers.pop(id(handler), None)

    def publish(self, event: Event) -> None:
        log.debug("Publishing %s", event.name)
        for handler in tuple(self._handlers.values()):
            handler.handle_event(event)

    def scope(self) -> "EventScope":
        """Create a disposable set of subscriptions on this bus."""
        return EventScope(self)


class EventScope:
    """Subscriptions that are dropped together when the scope closes."""

    def __init__(self, bus: EventBus) -> None:
        self.bus = bus
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        self.bus.subscribe(handler)
        self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        self.bus.unsubscribe(handler)
        if handler in self._handlers:
            self._handlers.remove(handler)

    def publish(self, event: Event) -> None:
        self.bus.publish(event)

    def close(self) -> None:
        for handler in self._handlers:
            self.bus.unsubscribe(handler)
        self._handlers.clear()

    def __enter__(self) -> "EventScope":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class CallbackHandler:
    """Adapts a plain callable to the handler protocol."""

    def __init__(self, callback: Callable[[Event], None]) -> None:
        self.callback = callback

    def handle_event(self, event: Event) -> None:
        self.callback(event)


default_bus = EventBus()
