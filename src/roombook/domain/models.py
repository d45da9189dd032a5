"""Booking domain records.

Records are frozen dataclasses; a mutation builds a new record with
``dataclasses.replace`` and hands it back to the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from roombook.domain.intervals import Interval


class BookingStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class RecurrenceKind(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, value: RecurrenceKind | str | None) -> RecurrenceKind:
        """Coerce a stored or submitted value; null and empty mean NONE."""
        if value is None or value == "":
            return cls.NONE
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown recurrence type: {value!r}") from None

    @property
    def recurring(self) -> bool:
        return self is not RecurrenceKind.NONE


class RoomStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class UpdateMode(str, Enum):
    SINGLE = "single"
    SERIES = "series"


@dataclass(frozen=True)
class Room:
    id: str
    name: str
    capacity: int = 0
    facilities: tuple[str, ...] = ()
    # Only MAINTENANCE is authoritative; OCCUPIED is derived from bookings
    status: RoomStatus = RoomStatus.AVAILABLE


@dataclass(frozen=True)
class Booking:
    id: str
    room_id: str
    user_id: str
    start_time: datetime
    end_time: datetime
    topic: str
    pin_code: str
    is_private: bool = False
    status: BookingStatus = BookingStatus.CONFIRMED
    recurring_type: RecurrenceKind = RecurrenceKind.NONE
    recurring_end_date: date | None = None
    group_id: str | None = None

    @property
    def interval(self) -> Interval:
        return Interval(self.start_time, self.end_time)

    @property
    def is_cancelled(self) -> bool:
        return self.status is BookingStatus.CANCELLED


@dataclass(frozen=True)
class Actor:
    """Who is asking. Identity is established upstream."""

    user_id: str
    is_admin: bool = False

    def may_manage(self, booking: Booking) -> bool:
        return self.is_admin or booking.user_id == self.user_id


@dataclass(frozen=True)
class BookingUpdate:
    """Requested new state for an update (single or series)."""

    start_time: datetime
    end_time: datetime
    topic: str
    is_private: bool = False
    room_id: str | None = None
    recurring_type: RecurrenceKind = RecurrenceKind.NONE
    recurring_end_date: date | None = None

    @property
    def interval(self) -> Interval:
        return Interval(self.start_time, self.end_time)


@dataclass(frozen=True)
class CreatePreview:
    """Dry-run outcome of a create: what would be booked, nothing written."""

    total_slots: int
    available_count: int
    skipped_count: int
    skipped_dates: list[date] = field(default_factory=list)


@dataclass(frozen=True)
class CreateResult:
    booking: Booking
    bookings: list[Booking]
    skipped_dates: list[date] = field(default_factory=list)

    @property
    def total_booked(self) -> int:
        return len(self.bookings)

    @property
    def total_skipped(self) -> int:
        return len(self.skipped_dates)


@dataclass(frozen=True)
class UpdateResult:
    booking: Booking
    created: list[Booking] = field(default_factory=list)
    cancelled_count: int = 0


@dataclass(frozen=True)
class SeriesUpdateResult:
    bookings: list[Booking]
    cancelled_count: int = 0
    detached: bool = False


@dataclass(frozen=True)
class CancelResult:
    booking: Booking
    already_cancelled: bool = False


@dataclass(frozen=True)
class CancelSeriesResult:
    group_id: str
    cancelled_count: int
