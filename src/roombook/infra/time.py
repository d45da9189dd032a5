"""Time utilities for consistent timestamp handling."""

from datetime import date, datetime, time, timezone, tzinfo
from typing import Protocol


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


class Clock(Protocol):
    """Source of "now" for the booking engine."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock backed by utc_now()."""

    def now(self) -> datetime:
        return utc_now()


def local_today(now: datetime, tz: tzinfo) -> date:
    """Calendar date of ``now`` in the given time zone."""
    return now.astimezone(tz).date()


def start_of_local_day(now: datetime, tz: tzinfo) -> datetime:
    """Midnight (local) of the day ``now`` falls on, as an aware datetime."""
    return datetime.combine(local_today(now, tz), time.min, tzinfo=tz)
