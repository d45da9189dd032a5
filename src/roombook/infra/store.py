"""Storage contract for the booking engine, and its Postgres implementation.

The engine never holds a connection of its own: every operation asks the
store for one transaction and threads the yielded session through every
read and write. Leaving the ``transaction()`` block normally commits;
leaving it with an exception rolls everything back.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Protocol, Sequence

import psycopg2
import psycopg2.errors
from psycopg2.extensions import cursor as PgCursor

from roombook.domain.errors import ConflictError, StorageError
from roombook.domain.models import Booking, Room
from roombook.infra.db import txn
from roombook.infra.repositories import bookings_repository, rooms_repository

logger = logging.getLogger(__name__)


class BookingSession(Protocol):
    """Transaction-scoped view of rooms and bookings."""

    def get_room(self, room_id: str) -> Room | None:
        ...

    def list_rooms(self) -> list[Room]:
        ...

    def lock_room(self, room_id: str) -> None:
        """Hold an exclusive lock on the room until the transaction ends."""
        ...

    def get_booking(self, booking_id: str, *, for_update: bool = False) -> Booking | None:
        ...

    def find_overlapping(
        self,
        room_id: str,
        start: datetime,
        end: datetime,
        *,
        exclude_booking_id: str | None = None,
    ) -> Booking | None:
        """Earliest CONFIRMED booking of the room overlapping [start, end)."""
        ...

    def find_booking_at(self, room_id: str, at: datetime) -> Booking | None:
        ...

    def insert_booking(self, booking: Booking) -> None:
        ...

    def save_booking(self, booking: Booking) -> bool:
        """Write a confirmed booking's fields back; False if it was cancelled."""
        ...

    def cancel_bookings(self, booking_ids: Sequence[str]) -> int:
        """Cancel the given bookings; returns how many changed status."""
        ...

    def list_group_members(
        self,
        group_id: str,
        *,
        include_cancelled: bool = False,
        for_update: bool = False,
    ) -> list[Booking]:
        """Series members, start ascending; for_update locks them."""
        ...

    def list_bookings(
        self,
        *,
        user_id: str | None = None,
        room_id: str | None = None,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
        limit: int | None = None,
    ) -> list[Booking]:
        """Non-cancelled bookings matching the filters, start ascending."""
        ...


class BookingStore(Protocol):
    def transaction(self) -> Iterator[BookingSession]:
        """Context manager yielding one atomic session."""
        ...


class PostgresBookingSession:
    """BookingSession over a psycopg2 cursor."""

    def __init__(self, cur: PgCursor) -> None:
        self._cur = cur

    def get_room(self, room_id: str) -> Room | None:
        return rooms_repository.get_room(self._cur, room_id)

    def list_rooms(self) -> list[Room]:
        return rooms_repository.list_rooms(self._cur)

    def lock_room(self, room_id: str) -> None:
        bookings_repository.lock_room(self._cur, room_id)

    def get_booking(self, booking_id: str, *, for_update: bool = False) -> Booking | None:
        return bookings_repository.get_booking(self._cur, booking_id, for_update=for_update)

    def find_overlapping(
        self,
        room_id: str,
        start: datetime,
        end: datetime,
        *,
        exclude_booking_id: str | None = None,
    ) -> Booking | None:
        return bookings_repository.find_overlapping_booking(
            self._cur,
            room_id=room_id,
            start=start,
            end=end,
            exclude_booking_id=exclude_booking_id,
        )

    def find_booking_at(self, room_id: str, at: datetime) -> Booking | None:
        return bookings_repository.find_booking_at(self._cur, room_id=room_id, at=at)

    def insert_booking(self, booking: Booking) -> None:
        bookings_repository.insert_booking(self._cur, booking)

    def save_booking(self, booking: Booking) -> bool:
        return bookings_repository.update_booking(self._cur, booking)

    def cancel_bookings(self, booking_ids: Sequence[str]) -> int:
        return bookings_repository.cancel_bookings(self._cur, booking_ids)

    def list_group_members(
        self,
        group_id: str,
        *,
        include_cancelled: bool = False,
        for_update: bool = False,
    ) -> list[Booking]:
        return bookings_repository.list_group_members(
            self._cur,
            group_id,
            include_cancelled=include_cancelled,
            for_update=for_update,
        )

    def list_bookings(
        self,
        *,
        user_id: str | None = None,
        room_id: str | None = None,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
        limit: int | None = None,
    ) -> list[Booking]:
        return bookings_repository.list_bookings(
            self._cur,
            user_id=user_id,
            room_id=room_id,
            start_from=start_from,
            start_to=start_to,
            limit=limit,
        )


class PostgresBookingStore:
    """BookingStore backed by Postgres (DATABASE_URL).

    Driver failures are translated at the transaction boundary:
    - exclusion violations (the no-overlap constraint) become ConflictError;
    - any other psycopg2.Error becomes StorageError.
    Both after the transaction has been rolled back by txn().
    """

    def __init__(self, *, statement_timeout_ms: int | None = 5000) -> None:
        self._statement_timeout_ms = statement_timeout_ms

    @contextmanager
    def transaction(self) -> Iterator[PostgresBookingSession]:
        try:
            with txn(statement_timeout_ms=self._statement_timeout_ms) as cur:
                yield PostgresBookingSession(cur)
        except psycopg2.errors.ExclusionViolation as exc:
            logger.warning(
                "booking overlap rejected by storage constraint",
                extra={"extra_fields": {"pgcode": exc.pgcode}},
            )
            raise ConflictError("Room is already booked for this time slot") from exc
        except psycopg2.Error as exc:
            logger.error(
                "booking storage failure",
                extra={"extra_fields": {"pgcode": exc.pgcode, "error_type": type(exc).__name__}},
            )
            raise StorageError("Booking storage failure") from exc
