"""Bookings repository - persistence for booking records.

Uses raw SQL with psycopg2 (no ORM). Every function expects a cursor that is
already inside a transaction (see roombook.infra.db.txn).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence

from psycopg2.extensions import cursor as PgCursor

from roombook.domain.models import Booking, BookingStatus, RecurrenceKind

_COLUMNS = """
    id, room_id, user_id, start_time, end_time, topic, pin_code,
    is_private, status, recurring_type, recurring_end_date, group_id
"""


def _row_to_booking(row: Sequence[Any]) -> Booking:
    return Booking(
        id=str(row[0]),
        room_id=str(row[1]),
        user_id=str(row[2]),
        start_time=row[3],
        end_time=row[4],
        topic=row[5] or "",
        pin_code=row[6],
        is_private=bool(row[7]),
        status=BookingStatus(row[8]),
        recurring_type=RecurrenceKind.parse(row[9]),
        recurring_end_date=row[10],
        group_id=str(row[11]) if row[11] is not None else None,
    )


def _recurring_value(kind: RecurrenceKind) -> str | None:
    # NONE is stored as NULL
    return kind.value if kind.recurring else None


def lock_room(cur: PgCursor, room_id: str) -> None:
    """Take a transaction-scoped exclusive lock on a room.

    Serializes check-then-write sequences per room: a second transaction
    touching the same room blocks here until the first commits or rolls
    back, then sees its committed rows.
    """
    cur.execute(
        "SELECT pg_advisory_xact_lock(hashtext(%s))",
        (f"room:{room_id}",),
    )


def get_booking(
    cur: PgCursor,
    booking_id: str,
    *,
    for_update: bool = False,
) -> Booking | None:
    """Fetch one booking by id (optionally locking the row)."""
    suffix = " FOR UPDATE" if for_update else ""
    cur.execute(
        f"SELECT {_COLUMNS} FROM bookings WHERE id = %s{suffix}",
        (booking_id,),
    )
    row = cur.fetchone()
    return _row_to_booking(row) if row is not None else None


def find_overlapping_booking(
    cur: PgCursor,
    *,
    room_id: str,
    start: datetime,
    end: datetime,
    exclude_booking_id: str | None = None,
) -> Booking | None:
    """Return the earliest confirmed booking of the room overlapping [start, end).

    Overlap formula: existing.start < new.end AND existing.end > new.start.
    Strict inequality lets back-to-back bookings coexist.
    """
    conditions = [
        "room_id = %s",
        "status = 'CONFIRMED'",
        "start_time < %s",  # existing start < new end
        "end_time > %s",  # existing end > new start
    ]
    params: list = [room_id, end, start]

    if exclude_booking_id is not None:
        conditions.append("id != %s")
        params.append(exclude_booking_id)

    where = " AND ".join(conditions)
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM bookings
        WHERE {where}
        ORDER BY start_time
        LIMIT 1
        """,
        params,
    )
    row = cur.fetchone()
    return _row_to_booking(row) if row is not None else None


def find_booking_at(cur: PgCursor, *, room_id: str, at: datetime) -> Booking | None:
    """Return the confirmed booking of the room in progress at ``at``."""
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM bookings
        WHERE room_id = %s
          AND status = 'CONFIRMED'
          AND start_time <= %s
          AND end_time > %s
        LIMIT 1
        """,
        (room_id, at, at),
    )
    row = cur.fetchone()
    return _row_to_booking(row) if row is not None else None


def insert_booking(cur: PgCursor, booking: Booking) -> None:
    """Insert a new booking row."""
    cur.execute(
        """
        INSERT INTO bookings (
            id, room_id, user_id, start_time, end_time, topic, pin_code,
            is_private, status, recurring_type, recurring_end_date, group_id
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s::booking_status, %s, %s, %s)
        """,
        (
            booking.id,
            booking.room_id,
            booking.user_id,
            booking.start_time,
            booking.end_time,
            booking.topic,
            booking.pin_code,
            booking.is_private,
            booking.status.value,
            _recurring_value(booking.recurring_type),
            booking.recurring_end_date,
            booking.group_id,
        ),
    )


def update_booking(cur: PgCursor, booking: Booking) -> bool:
    """Persist the mutable fields of a still confirmed booking.

    Status is never written here: cancelling goes through cancel_bookings,
    and a row cancelled by another transaction is left cancelled.

    Returns:
        True when the row was updated, False when it is no longer confirmed.
    """
    cur.execute(
        """
        UPDATE bookings
        SET room_id = %s,
            start_time = %s,
            end_time = %s,
            topic = %s,
            is_private = %s,
            recurring_type = %s,
            recurring_end_date = %s,
            group_id = %s,
            updated_at = now()
        WHERE id = %s AND status = 'CONFIRMED'
        """,
        (
            booking.room_id,
            booking.start_time,
            booking.end_time,
            booking.topic,
            booking.is_private,
            _recurring_value(booking.recurring_type),
            booking.recurring_end_date,
            booking.group_id,
            booking.id,
        ),
    )
    return cur.rowcount == 1


def cancel_bookings(cur: PgCursor, booking_ids: Sequence[str]) -> int:
    """Mark the given bookings CANCELLED; already cancelled rows are left alone.

    Returns:
        Number of rows that changed status.
    """
    if not booking_ids:
        return 0
    cur.execute(
        """
        UPDATE bookings
        SET status = 'CANCELLED', updated_at = now()
        WHERE id = ANY(%s) AND status <> 'CANCELLED'
        """,
        (list(booking_ids),),
    )
    return cur.rowcount


def list_group_members(
    cur: PgCursor,
    group_id: str,
    *,
    include_cancelled: bool = False,
    for_update: bool = False,
) -> list[Booking]:
    """All bookings of a recurring series, start ascending.

    With for_update the rows are locked in start order, and rows cancelled
    by a transaction that committed while we waited drop out of the result.
    """
    conditions = ["group_id = %s"]
    if not include_cancelled:
        conditions.append("status <> 'CANCELLED'")
    where = " AND ".join(conditions)
    lock = " FOR UPDATE" if for_update else ""
    cur.execute(
        f"SELECT {_COLUMNS} FROM bookings WHERE {where} ORDER BY start_time, id{lock}",
        (group_id,),
    )
    return [_row_to_booking(row) for row in cur.fetchall()]


def list_bookings(
    cur: PgCursor,
    *,
    user_id: str | None = None,
    room_id: str | None = None,
    start_from: datetime | None = None,
    start_to: datetime | None = None,
    limit: int | None = None,
) -> list[Booking]:
    """Non-cancelled bookings matching optional filters, start ascending."""
    conditions = ["status <> 'CANCELLED'"]
    params: list = []

    if user_id is not None:
        conditions.append("user_id = %s")
        params.append(user_id)

    if room_id is not None:
        conditions.append("room_id = %s")
        params.append(room_id)

    if start_from is not None:
        conditions.append("start_time >= %s")
        params.append(start_from)

    if start_to is not None:
        conditions.append("start_time <= %s")
        params.append(start_to)

    where = " AND ".join(conditions)
    query = f"SELECT {_COLUMNS} FROM bookings WHERE {where} ORDER BY start_time, id"
    if limit is not None:
        query += " LIMIT %s"
        params.append(limit)

    cur.execute(query, params)
    return [_row_to_booking(row) for row in cur.fetchall()]
