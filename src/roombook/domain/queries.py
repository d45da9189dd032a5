"""Booking read paths.

Listings for calendars and dashboards, plus the privacy contract every
read path goes through: a private booking shown to anyone other than its
owner or an admin loses its topic, owner and PIN.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from roombook.domain.models import Actor, Booking, RecurrenceKind, Room, RoomStatus
from roombook.infra.settings import BookingSettings
from roombook.infra.store import BookingStore
from roombook.infra.time import Clock, SystemClock

PRIVATE_TOPIC = "Private booking"


@dataclass(frozen=True)
class BookingView:
    """A booking as a particular viewer may see it."""

    id: str
    room_id: str
    start_time: datetime
    end_time: datetime
    topic: str
    is_private: bool
    status: str
    recurring_type: RecurrenceKind
    recurring_end_date: date | None
    group_id: str | None
    user_id: str | None
    pin_code: str | None
    redacted: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "room_id": self.room_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "topic": self.topic,
            "is_private": self.is_private,
            "status": self.status,
            "recurring_type": self.recurring_type.value,
            "recurring_end_date": (
                self.recurring_end_date.isoformat() if self.recurring_end_date else None
            ),
            "group_id": self.group_id,
            "user_id": self.user_id,
            "pin_code": self.pin_code,
            "redacted": self.redacted,
        }


@dataclass(frozen=True)
class RoomWithStatus:
    room: Room
    status: RoomStatus


def present_booking(booking: Booking, viewer: Actor | None) -> BookingView:
    """Render a booking for ``viewer`` (None means anonymous)."""
    privileged = viewer is not None and viewer.may_manage(booking)
    redacted = booking.is_private and not privileged
    return BookingView(
        id=booking.id,
        room_id=booking.room_id,
        start_time=booking.start_time,
        end_time=booking.end_time,
        topic=PRIVATE_TOPIC if redacted else booking.topic,
        is_private=booking.is_private,
        status=booking.status.value,
        recurring_type=booking.recurring_type,
        recurring_end_date=booking.recurring_end_date,
        group_id=booking.group_id,
        user_id=None if redacted else booking.user_id,
        # PINs are for the owner (and admins) only, private or not
        pin_code=booking.pin_code if privileged else None,
        redacted=redacted,
    )


def list_user_bookings(
    store: BookingStore,
    user_id: str,
    *,
    limit: int = 50,
) -> list[Booking]:
    """The user's non-cancelled bookings, earliest first."""
    with store.transaction() as session:
        return session.list_bookings(user_id=user_id, limit=limit)


def list_bookings(
    store: BookingStore,
    viewer: Actor | None,
    *,
    start_from: datetime | None = None,
    start_to: datetime | None = None,
    clock: Clock | None = None,
    settings: BookingSettings | None = None,
) -> list[BookingView]:
    """Every non-cancelled booking starting inside a window, as ``viewer`` sees it.

    Without explicit bounds the window runs from a week ago to 45 days ahead
    (both configurable).
    """
    settings = settings or BookingSettings()
    now = (clock or SystemClock()).now()
    if start_from is None:
        start_from = now - timedelta(days=settings.window_days_before)
    if start_to is None:
        start_to = now + timedelta(days=settings.window_days_after)

    with store.transaction() as session:
        rows = session.list_bookings(start_from=start_from, start_to=start_to)
    return [present_booking(b, viewer) for b in rows]


def list_room_bookings(store: BookingStore, room_id: str) -> list[dict]:
    """Non-cancelled bookings of one room, reduced to scheduling fields."""
    with store.transaction() as session:
        rows = session.list_bookings(room_id=room_id)
    return [
        {
            "id": b.id,
            "start_time": b.start_time.isoformat(),
            "end_time": b.end_time.isoformat(),
            "recurring_type": b.recurring_type.value,
            "recurring_end_date": (
                b.recurring_end_date.isoformat() if b.recurring_end_date else None
            ),
        }
        for b in rows
    ]


def room_status(room: Room, current: Booking | None) -> RoomStatus:
    """Derive the operational status of a room.

    MAINTENANCE is stored and wins; otherwise a room is OCCUPIED while a
    confirmed booking is in progress.
    """
    if room.status is RoomStatus.MAINTENANCE:
        return RoomStatus.MAINTENANCE
    if current is not None:
        return RoomStatus.OCCUPIED
    return RoomStatus.AVAILABLE


def list_room_statuses(store: BookingStore, *, now: datetime) -> list[RoomWithStatus]:
    with store.transaction() as session:
        return [
            RoomWithStatus(room, room_status(room, session.find_booking_at(room.id, now)))
            for room in session.list_rooms()
        ]
