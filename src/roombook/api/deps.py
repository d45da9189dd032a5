"""Process-wide wiring of the booking engine for the HTTP layer.

Built lazily from environment settings on first use. Tests replace these
through FastAPI's dependency_overrides.
"""

from __future__ import annotations

from functools import lru_cache

from roombook.domain.bookings import BookingOrchestrator
from roombook.infra.memory_store import InMemoryBookingStore
from roombook.infra.notifications import (
    LoggingNotificationSink,
    NotificationSink,
    OutboxNotificationSink,
)
from roombook.infra.settings import BookingSettings, load_settings
from roombook.infra.store import BookingStore, PostgresBookingStore
from roombook.infra.time import Clock, SystemClock


@lru_cache(maxsize=1)
def get_settings() -> BookingSettings:
    return load_settings()


def build_store(settings: BookingSettings) -> BookingStore:
    if settings.store_backend == "postgres":
        return PostgresBookingStore()
    return InMemoryBookingStore()


def build_sink(settings: BookingSettings) -> NotificationSink:
    if settings.notification_sink == "outbox":
        return OutboxNotificationSink()
    return LoggingNotificationSink()


@lru_cache(maxsize=1)
def get_store() -> BookingStore:
    return build_store(get_settings())


def get_clock() -> Clock:
    return SystemClock()


@lru_cache(maxsize=1)
def get_orchestrator() -> BookingOrchestrator:
    settings = get_settings()
    return BookingOrchestrator(
        get_store(),
        sink=build_sink(settings),
        clock=get_clock(),
        settings=settings,
    )
