"""Recurrence expansion.

Turns an anchor interval plus a recurrence kind into the concrete
occurrences a series consists of. Pure; never touches storage.

Rules:
- Steps are calendar steps taken on the local wall clock of the configured
  time zone, so a 09:00 meeting stays at 09:00 across DST changes.
- Occurrence k is anchor + k steps. Monthly steps use relativedelta, which
  clamps to the last day of shorter months (Jan 31 -> Feb 28 -> Mar 31).
- Each occurrence lasts as long as the anchor does on the wall clock.
- Expansion stops after the last occurrence starting on or before the bound
  date (local end of day), or after MAX_INSTANCES occurrences. Without a
  bound the anchor's own date is the bound, i.e. a single occurrence.
- NONE always yields exactly the anchor.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterator

from dateutil.relativedelta import relativedelta

from roombook.domain.intervals import Interval
from roombook.domain.models import RecurrenceKind

MAX_INSTANCES = 365


def _step(value: datetime, kind: RecurrenceKind, index: int) -> datetime:
    if kind is RecurrenceKind.NONE:
        return value
    if kind is RecurrenceKind.DAILY:
        return value + timedelta(days=index)
    if kind is RecurrenceKind.WEEKLY:
        return value + timedelta(days=7 * index)
    if kind is RecurrenceKind.MONTHLY:
        return value + relativedelta(months=index)
    raise ValueError(f"Unhandled recurrence kind: {kind!r}")


def bound_date(
    anchor_start: datetime,
    until: date | datetime | None,
    tz: tzinfo,
) -> date:
    """Local calendar date of the last day an occurrence may start on."""
    if until is None:
        return anchor_start.astimezone(tz).date()
    if isinstance(until, datetime):
        if until.tzinfo is None:
            return until.date()
        return until.astimezone(tz).date()
    return until


class Recurrence:
    """Restartable, finite, ordered sequence of occurrences.

    Iterating twice yields the same intervals; nothing is cached.
    """

    def __init__(
        self,
        anchor: Interval,
        kind: RecurrenceKind | str | None = RecurrenceKind.NONE,
        until: date | datetime | None = None,
        *,
        tz: tzinfo = timezone.utc,
        max_instances: int = MAX_INSTANCES,
    ) -> None:
        if max_instances < 1:
            raise ValueError("max_instances must be at least 1")
        self.anchor = anchor
        self.kind = RecurrenceKind.parse(kind)
        self.until = until
        self.tz = tz
        self.max_instances = min(max_instances, MAX_INSTANCES)

    def __iter__(self) -> Iterator[Interval]:
        local_start = self.anchor.start.astimezone(self.tz)
        local_end = self.anchor.end.astimezone(self.tz)
        wall_duration = local_end.replace(tzinfo=None) - local_start.replace(tzinfo=None)
        last_day = bound_date(self.anchor.start, self.until, self.tz)
        limit = datetime.combine(last_day, time.max, tzinfo=self.tz)

        for index in range(self.max_instances):
            start = _step(local_start, self.kind, index)
            if self.kind.recurring and start > limit:
                return
            yield Interval(
                start.astimezone(timezone.utc),
                (start + wall_duration).astimezone(timezone.utc),
            )
            if not self.kind.recurring:
                return

    def __repr__(self) -> str:
        return (
            f"Recurrence(anchor={self.anchor!r}, kind={self.kind.value!r}, "
            f"until={self.until!r})"
        )


def expand(
    anchor: Interval,
    kind: RecurrenceKind | str | None = RecurrenceKind.NONE,
    until: date | datetime | None = None,
    *,
    tz: tzinfo = timezone.utc,
) -> list[Interval]:
    """Expand an anchor interval into its list of occurrences."""
    return list(Recurrence(anchor, kind, until, tz=tz))
