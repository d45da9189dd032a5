"""In-memory BookingStore for development and tests.

One store-wide re-entrant lock is held for the whole of each transaction, so
transactions are fully serialized (stronger than the per-room lock the
Postgres store uses). A transaction that raises restores the snapshot taken
when it began.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Iterator, Sequence

from roombook.domain.intervals import Interval, contains, overlaps
from roombook.domain.models import Booking, BookingStatus, Room


class InMemoryBookingSession:
    """BookingSession over the store's dictionaries."""

    def __init__(self, store: InMemoryBookingStore) -> None:
        self._store = store

    def get_room(self, room_id: str) -> Room | None:
        return self._store._rooms.get(room_id)

    def list_rooms(self) -> list[Room]:
        return sorted(self._store._rooms.values(), key=lambda r: (r.name, r.id))

    def lock_room(self, room_id: str) -> None:
        # The store lock is already held for the whole transaction
        return None

    def get_booking(self, booking_id: str, *, for_update: bool = False) -> Booking | None:
        return self._store._bookings.get(booking_id)

    def find_overlapping(
        self,
        room_id: str,
        start: datetime,
        end: datetime,
        *,
        exclude_booking_id: str | None = None,
    ) -> Booking | None:
        candidate = Interval(start, end)
        matches = [
            b
            for b in self._store._bookings.values()
            if b.room_id == room_id
            and b.status is BookingStatus.CONFIRMED
            and b.id != exclude_booking_id
            and overlaps(b.interval, candidate)
        ]
        return min(matches, key=lambda b: b.start_time) if matches else None

    def find_booking_at(self, room_id: str, at: datetime) -> Booking | None:
        for b in self._store._bookings.values():
            if (
                b.room_id == room_id
                and b.status is BookingStatus.CONFIRMED
                and contains(b.interval, at)
            ):
                return b
        return None

    def insert_booking(self, booking: Booking) -> None:
        if booking.id in self._store._bookings:
            raise ValueError(f"Duplicate booking id {booking.id}")
        self._store._bookings[booking.id] = booking

    def save_booking(self, booking: Booking) -> bool:
        existing = self._store._bookings.get(booking.id)
        if existing is None:
            raise KeyError(booking.id)
        if existing.is_cancelled:
            return False
        # Status only changes through cancel_bookings
        self._store._bookings[booking.id] = replace(booking, status=existing.status)
        return True

    def cancel_bookings(self, booking_ids: Sequence[str]) -> int:
        count = 0
        for booking_id in booking_ids:
            existing = self._store._bookings.get(booking_id)
            if existing is None or existing.is_cancelled:
                continue
            self._store._bookings[booking_id] = replace(existing, status=BookingStatus.CANCELLED)
            count += 1
        return count

    def list_group_members(
        self,
        group_id: str,
        *,
        include_cancelled: bool = False,
        for_update: bool = False,
    ) -> list[Booking]:
        members = [
            b
            for b in self._store._bookings.values()
            if b.group_id == group_id and (include_cancelled or not b.is_cancelled)
        ]
        return sorted(members, key=lambda b: (b.start_time, b.id))

    def list_bookings(
        self,
        *,
        user_id: str | None = None,
        room_id: str | None = None,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
        limit: int | None = None,
    ) -> list[Booking]:
        rows = [
            b
            for b in self._store._bookings.values()
            if not b.is_cancelled
            and (user_id is None or b.user_id == user_id)
            and (room_id is None or b.room_id == room_id)
            and (start_from is None or b.start_time >= start_from)
            and (start_to is None or b.start_time <= start_to)
        ]
        rows.sort(key=lambda b: (b.start_time, b.id))
        return rows[:limit] if limit is not None else rows


class InMemoryBookingStore:
    """Process-local BookingStore."""

    def __init__(
        self,
        rooms: Iterable[Room] = (),
        bookings: Iterable[Booking] = (),
    ) -> None:
        self._lock = threading.RLock()
        self._rooms: dict[str, Room] = {room.id: room for room in rooms}
        self._bookings: dict[str, Booking] = {b.id: b for b in bookings}

    def add_room(self, room: Room) -> None:
        with self._lock:
            self._rooms[room.id] = room

    def add_booking(self, booking: Booking) -> None:
        """Seed a booking directly, bypassing the engine's checks."""
        with self._lock:
            self._bookings[booking.id] = booking

    def all_bookings(self) -> list[Booking]:
        """Every booking, cancelled included, start ascending."""
        with self._lock:
            return sorted(self._bookings.values(), key=lambda b: (b.start_time, b.id))

    @contextmanager
    def transaction(self) -> Iterator[InMemoryBookingSession]:
        with self._lock:
            # Bookings are immutable records, so a shallow copy is a full snapshot
            snapshot = dict(self._bookings)
            try:
                yield InMemoryBookingSession(self)
            except BaseException:
                self._bookings = snapshot
                raise
