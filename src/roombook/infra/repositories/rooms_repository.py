"""Rooms repository - read access to room records.

Room CRUD belongs to the admin application; the booking engine only reads.
"""

from __future__ import annotations

from typing import Any, Sequence

from psycopg2.extensions import cursor as PgCursor

from roombook.domain.models import Room, RoomStatus

_COLUMNS = "id, name, capacity, facilities, status"


def _row_to_room(row: Sequence[Any]) -> Room:
    status = row[4]
    try:
        room_status = RoomStatus(status)
    except ValueError:
        room_status = RoomStatus.AVAILABLE
    return Room(
        id=str(row[0]),
        name=row[1],
        capacity=row[2] or 0,
        facilities=tuple(row[3] or ()),
        status=room_status,
    )


def get_room(cur: PgCursor, room_id: str) -> Room | None:
    cur.execute(f"SELECT {_COLUMNS} FROM rooms WHERE id = %s", (room_id,))
    row = cur.fetchone()
    return _row_to_room(row) if row is not None else None


def list_rooms(cur: PgCursor) -> list[Room]:
    cur.execute(f"SELECT {_COLUMNS} FROM rooms ORDER BY name, id")
    return [_row_to_room(row) for row in cur.fetchall()]
