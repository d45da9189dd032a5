"""Booking error taxonomy.

Every failure the booking engine reports to its caller is one of these.
Callers (the HTTP layer, scripts) decide how each category is presented;
the engine guarantees which category occurred and, for conflicts, which
occurrence triggered it.
"""

from __future__ import annotations

from datetime import datetime


class BookingError(Exception):
    """Base class for recoverable booking failures."""


class ValidationError(BookingError):
    """Raised when a requested interval or field is invalid."""


class PastBookingError(ValidationError):
    """Raised when modifying or cancelling a booking that already started."""


class NotFoundError(BookingError):
    """Raised when a booking, series or room does not exist."""


class AuthorizationError(BookingError):
    """Raised when the actor neither owns the booking nor is an admin."""


class StorageError(BookingError):
    """Raised when the store fails; the transaction has been rolled back."""


class ConflictError(BookingError):
    """Raised when a room is already booked for a requested occurrence.

    Carries the room and occurrence that failed so callers can report the
    exact date and time. Never carries the conflicting booking's topic or
    owner.
    """

    def __init__(
        self,
        message: str,
        *,
        room_id: str | None = None,
        occurrence_start: datetime | None = None,
        conflicting_booking_id: str | None = None,
    ) -> None:
        self.room_id = room_id
        self.occurrence_start = occurrence_start
        self.conflicting_booking_id = conflicting_booking_id
        super().__init__(message)


class NoAvailableSlotsError(ConflictError):
    """Raised when every requested occurrence conflicts."""

    def __init__(self, room_id: str, skipped_count: int) -> None:
        self.skipped_count = skipped_count
        super().__init__(
            "No available time slots. All dates have conflicts.",
            room_id=room_id,
        )
