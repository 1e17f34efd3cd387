"""Shared fixtures for unit tests."""

import pytest

from typetest_runner.event_bus import EventBus
from typetest_runner.testing.fakes import EventRecorder


@pytest.fixture
def bus() -> EventBus:
    """Create an isolated event bus."""
    return EventBus()


@pytest.fixture
def recorder(bus: EventBus) -> EventRecorder:
    """Record every event published on the bus."""
    event_recorder = EventRecorder()
    bus.subscribe(event_recorder)
    return event_recorder
