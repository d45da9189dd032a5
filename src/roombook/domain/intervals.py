"""Half-open time intervals.

An interval ``[start, end)`` includes its start instant and excludes its end,
so a booking ending at 10:00 and another starting at 10:00 do not overlap.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class Interval:
    """A half-open ``[start, end)`` span between two instants."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: Interval) -> bool:
        return overlaps(self, other)

    def contains(self, instant: datetime) -> bool:
        return contains(self, instant)


def overlaps(a: Interval, b: Interval) -> bool:
    """True when the two intervals share at least one instant."""
    return a.start < b.end and b.start < a.end


def contains(interval: Interval, instant: datetime) -> bool:
    """True when ``instant`` falls inside ``interval``."""
    return interval.start <= instant < interval.end
