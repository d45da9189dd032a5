"""Notification sinks for committed booking changes.

The orchestrator calls a sink only after its transaction committed. Sinks
are fire-and-forget: the orchestrator logs and drops any exception a sink
raises, so a delivery problem never undoes a booking.
"""

from __future__ import annotations

import logging
from typing import Protocol

from roombook.infra.db import txn
from roombook.infra.repositories.outbox_repository import (
    BOOKING_CHANGED,
    ROOM_CHANGED,
    emit_event,
)
from roombook.observability.correlation import get_correlation_id

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def on_booking_changed(self) -> None:
        ...

    def on_room_changed(self, room_id: str) -> None:
        ...


class LoggingNotificationSink:
    """Writes one structured log line per event."""

    def on_booking_changed(self) -> None:
        logger.info(
            "booking changed",
            extra={"extra_fields": {"event_type": BOOKING_CHANGED}},
        )

    def on_room_changed(self, room_id: str) -> None:
        logger.info(
            "room changed",
            extra={"extra_fields": {"event_type": ROOM_CHANGED, "room_id": room_id}},
        )


class OutboxNotificationSink:
    """Appends events to outbox_events, each in its own short transaction."""

    def on_booking_changed(self) -> None:
        with txn() as cur:
            emit_event(
                cur,
                event_type=BOOKING_CHANGED,
                aggregate_type="booking",
                correlation_id=get_correlation_id() or None,
            )

    def on_room_changed(self, room_id: str) -> None:
        with txn() as cur:
            emit_event(
                cur,
                event_type=ROOM_CHANGED,
                aggregate_type="room",
                aggregate_id=room_id,
                payload={"room_id": room_id},
                correlation_id=get_correlation_id() or None,
            )


def publish_changes(sink: NotificationSink, room_ids: list[str]) -> None:
    """Emit one booking-changed event plus one room-changed event per room.

    Never raises; sink failures are logged with their traceback.
    """
    try:
        sink.on_booking_changed()
    except Exception:
        logger.exception(
            "notification sink failed",
            extra={"extra_fields": {"event_type": BOOKING_CHANGED}},
        )

    for room_id in dict.fromkeys(room_ids):
        try:
            sink.on_room_changed(room_id)
        except Exception:
            logger.exception(
                "notification sink failed",
                extra={"extra_fields": {"event_type": ROOM_CHANGED, "room_id": room_id}},
            )
