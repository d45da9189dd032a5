"""Shared test helpers for the booking engine tests.

Plain functions and small fakes, not fixtures; conftest.py builds fixtures
on top of them and test modules may import them directly.
"""

from __future__ import annotations

import itertools
from datetime import date, datetime, timedelta, timezone

from roombook.domain.models import Booking, BookingStatus, RecurrenceKind, Room


def at(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Aware UTC datetime."""
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


class FixedClock:
    """Clock that returns a settable instant."""

    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current


class SequentialIds:
    """Deterministic ids: id-1, id-2, ..."""

    def __init__(self, prefix: str = "id") -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def new_id(self) -> str:
        return f"{self._prefix}-{next(self._counter)}"


class RecordingSink:
    """Notification sink that records every event."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str | None]] = []

    def on_booking_changed(self) -> None:
        self.events.append(("booking", None))

    def on_room_changed(self, room_id: str) -> None:
        self.events.append(("room", room_id))

    @property
    def rooms(self) -> list[str]:
        return [room for kind, room in self.events if kind == "room"]


class FailingSink:
    """Notification sink whose every call raises."""

    def on_booking_changed(self) -> None:
        raise RuntimeError("sink down")

    def on_room_changed(self, room_id: str) -> None:
        raise RuntimeError("sink down")


def make_room(room_id: str = "room-1", **overrides) -> Room:
    fields = {"id": room_id, "name": f"Room {room_id}", "capacity": 8}
    fields.update(overrides)
    return Room(**fields)


def make_booking(
    booking_id: str,
    start: datetime,
    end: datetime,
    *,
    room_id: str = "room-1",
    user_id: str = "alice",
    topic: str = "Standup",
    status: BookingStatus = BookingStatus.CONFIRMED,
    recurring_type: RecurrenceKind = RecurrenceKind.NONE,
    recurring_end_date: date | None = None,
    group_id: str | None = None,
    is_private: bool = False,
) -> Booking:
    return Booking(
        id=booking_id,
        room_id=room_id,
        user_id=user_id,
        start_time=start,
        end_time=end,
        topic=topic,
        pin_code="4321",
        is_private=is_private,
        status=status,
        recurring_type=recurring_type,
        recurring_end_date=recurring_end_date,
        group_id=group_id,
    )


def weekly_series(
    group_id: str,
    starts: list[datetime],
    *,
    hours: int = 1,
    user_id: str = "alice",
    room_id: str = "room-1",
    until: date | None = None,
) -> list[Booking]:
    """Seed records for a weekly series, ids ``{group_id}-0``, ``-1``..."""
    until = until or starts[-1].date()
    return [
        make_booking(
            f"{group_id}-{i}",
            start,
            start + timedelta(hours=hours),
            room_id=room_id,
            user_id=user_id,
            recurring_type=RecurrenceKind.WEEKLY,
            recurring_end_date=until,
            group_id=group_id,
        )
        for i, start in enumerate(starts)
    ]
