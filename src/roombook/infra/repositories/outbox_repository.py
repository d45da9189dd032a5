"""Outbox repository - change events for asynchronous delivery.

A relay process (websocket fan-out, queue publisher) reads outbox_events and
delivers them; the booking engine only appends.

Uses raw SQL with psycopg2 (no ORM).
"""

import json

from psycopg2.extensions import cursor as PgCursor

BOOKING_CHANGED = "BOOKING_CHANGED"
ROOM_CHANGED = "ROOM_CHANGED"


def emit_event(
    cur: PgCursor,
    *,
    event_type: str,
    aggregate_type: str,
    aggregate_id: str | None = None,
    payload: dict | None = None,
    correlation_id: str | None = None,
) -> int:
    """Append an event to the outbox.

    Args:
        cur: Database cursor (within transaction).
        event_type: Event type (e.g., BOOKING_CHANGED).
        aggregate_type: Aggregate type (e.g., room).
        aggregate_id: Optional aggregate id (e.g., room id).
        payload: Optional JSON payload (no PII).
        correlation_id: Optional correlation ID for tracing.

    Returns:
        The generated event ID.
    """
    payload_json = json.dumps(payload) if payload else None

    cur.execute(
        """
        INSERT INTO outbox_events (
            event_type, aggregate_type, aggregate_id, payload, correlation_id
        )
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id
        """,
        (event_type, aggregate_type, aggregate_id, payload_json, correlation_id),
    )
    return cur.fetchone()[0]
