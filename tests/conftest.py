"""Shared pytest fixtures for the booking engine tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from helpers import FixedClock, RecordingSink, SequentialIds, at, make_room  # noqa: E402
from roombook.domain.bookings import BookingOrchestrator  # noqa: E402
from roombook.domain.models import Actor  # noqa: E402
from roombook.infra.memory_store import InMemoryBookingStore  # noqa: E402
from roombook.infra.settings import BookingSettings  # noqa: E402


@pytest.fixture
def clock():
    """Monday 2026-03-02 08:00 UTC."""
    return FixedClock(at(2026, 3, 2, 8))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def settings():
    return BookingSettings()


@pytest.fixture
def store():
    return InMemoryBookingStore(rooms=[make_room("room-1"), make_room("room-2")])


@pytest.fixture
def orchestrator(store, sink, clock, settings):
    return BookingOrchestrator(
        store,
        sink=sink,
        clock=clock,
        ids=SequentialIds(),
        settings=settings,
        pin_factory=lambda: "1234",
    )


@pytest.fixture
def alice():
    return Actor(user_id="alice")


@pytest.fixture
def bob():
    return Actor(user_id="bob")


@pytest.fixture
def admin():
    return Actor(user_id="root", is_admin=True)
