"""Booking engine settings.

Loaded from environment variables into a frozen dataclass. Backend selectors
with unknown values fall back to their defaults; malformed numbers and time
zones raise ValueError so misconfiguration fails at startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Literal, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

StoreBackend = Literal["memory", "postgres"]
SinkBackend = Literal["log", "outbox"]


@dataclass(frozen=True)
class BookingSettings:
    """Runtime configuration for the booking engine.

    Attributes:
        timezone: Zone in which recurrence steps, "today" and
                  time-of-day rewrites are evaluated.
        min_duration: Shortest bookable interval.
        store_backend: "memory" (dev/tests) or "postgres".
        notification_sink: "log" or "outbox".
        my_bookings_limit: Max rows returned by the "my bookings" listing.
        window_days_before: Default listing window start, relative to now.
        window_days_after: Default listing window end, relative to now.
    """

    timezone: ZoneInfo = ZoneInfo("UTC")
    min_duration: timedelta = timedelta(minutes=15)
    store_backend: StoreBackend = "memory"
    notification_sink: SinkBackend = "log"
    my_bookings_limit: int = 50
    window_days_before: int = 7
    window_days_after: int = 45


def _int(environ: Mapping[str, str], key: str, default: int, *, minimum: int = 0) -> int:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {value}")
    return value


def _zone(environ: Mapping[str, str]) -> ZoneInfo:
    name = environ.get("BOOKING_TIMEZONE") or "UTC"
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"BOOKING_TIMEZONE is not a known time zone: {name!r}") from None


def load_settings(environ: Mapping[str, str] | None = None) -> BookingSettings:
    """Build settings from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        BookingSettings with defaults for anything unset.

    Raises:
        ValueError: On malformed integers or unknown time zones.
    """
    if environ is None:
        environ = os.environ

    store_backend = environ.get("BOOKING_STORE", "memory")
    if store_backend not in ("memory", "postgres"):
        store_backend = "memory"

    notification_sink = environ.get("BOOKING_NOTIFICATION_SINK", "log")
    if notification_sink not in ("log", "outbox"):
        notification_sink = "log"

    return BookingSettings(
        timezone=_zone(environ),
        min_duration=timedelta(
            minutes=_int(environ, "BOOKING_MIN_DURATION_MINUTES", 15, minimum=1)
        ),
        store_backend=store_backend,  # type: ignore[arg-type]
        notification_sink=notification_sink,  # type: ignore[arg-type]
        my_bookings_limit=_int(environ, "BOOKING_MY_LIMIT", 50, minimum=1),
        window_days_before=_int(environ, "BOOKING_WINDOW_DAYS_BEFORE", 7),
        window_days_after=_int(environ, "BOOKING_WINDOW_DAYS_AFTER", 45),
    )
