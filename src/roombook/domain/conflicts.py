"""Room conflict detection.

Centralised logic to check whether a room already holds a confirmed booking
overlapping a candidate interval.

Overlap formula:  (new_start < existing_end) AND (new_end > existing_start)
Strict inequality lets one booking end exactly when the next starts.

Only CONFIRMED bookings generate conflicts; cancelled ones never do.

Callers must run the check on the same session (transaction) as the write
that follows it, after locking the room, or two concurrent requests could
both see "no conflict" and both commit.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo

from roombook.domain.errors import ConflictError
from roombook.domain.intervals import Interval
from roombook.domain.models import Booking
from roombook.infra.store import BookingSession

logger = logging.getLogger(__name__)


def format_occurrence(instant: datetime, tz: tzinfo = timezone.utc) -> tuple[str, str]:
    """Local (dd/mm/yyyy, HH:MM) strings used in conflict messages."""
    local = instant.astimezone(tz)
    return local.strftime("%d/%m/%Y"), local.strftime("%H:%M")


def find_conflict(
    session: BookingSession,
    *,
    room_id: str,
    interval: Interval,
    exclude_booking_id: str | None = None,
) -> Booking | None:
    """Return the earliest confirmed booking of the room overlapping ``interval``.

    Args:
        session: Open booking session (should be within the write transaction).
        room_id: Room identifier.
        interval: Candidate [start, end).
        exclude_booking_id: Booking to ignore (re-checking a booking against
            itself during an update).

    Returns:
        The conflicting booking, or None.
    """
    conflict = session.find_overlapping(
        room_id,
        interval.start,
        interval.end,
        exclude_booking_id=exclude_booking_id,
    )

    if conflict is not None:
        # IDs and times only: topics and owners stay out of the logs
        logger.warning(
            "booking conflict detected",
            extra={
                "extra_fields": {
                    "room_id": room_id,
                    "requested_start": interval.start.isoformat(),
                    "requested_end": interval.end.isoformat(),
                    "conflicting_booking_id": conflict.id,
                    "existing_start": conflict.start_time.isoformat(),
                    "existing_end": conflict.end_time.isoformat(),
                },
            },
        )
    return conflict


def assert_no_conflict(
    session: BookingSession,
    *,
    room_id: str,
    interval: Interval,
    exclude_booking_id: str | None = None,
    tz: tzinfo = timezone.utc,
    message: str = "Conflict on {date} at {time}",
) -> None:
    """Raise ConflictError if the room has an overlapping confirmed booking.

    ``message`` is formatted with the candidate's local ``date`` and ``time``.
    """
    conflict = find_conflict(
        session,
        room_id=room_id,
        interval=interval,
        exclude_booking_id=exclude_booking_id,
    )
    if conflict is None:
        return

    day, hour = format_occurrence(interval.start, tz)
    raise ConflictError(
        message.format(date=day, time=hour),
        room_id=room_id,
        occurrence_start=interval.start,
        conflicting_booking_id=conflict.id,
    )
