"""Tests for notification sinks and post-commit publishing."""

import json
import logging
from unittest.mock import MagicMock, patch

from helpers import FailingSink, RecordingSink
from roombook.infra.notifications import (
    LoggingNotificationSink,
    OutboxNotificationSink,
    publish_changes,
)
from roombook.infra.repositories.outbox_repository import BOOKING_CHANGED, ROOM_CHANGED, emit_event
from roombook.observability.correlation import correlation_scope


class TestPublishChanges:
    def test_one_event_per_distinct_room(self):
        sink = RecordingSink()
        publish_changes(sink, ["room-2", "room-1", "room-2"])
        assert sink.events == [("booking", None), ("room", "room-2"), ("room", "room-1")]

    def test_sink_failure_is_logged_not_raised(self, caplog):
        with caplog.at_level(logging.ERROR, logger="roombook.infra.notifications"):
            publish_changes(FailingSink(), ["room-1"])

        failures = [r for r in caplog.records if r.getMessage() == "notification sink failed"]
        assert len(failures) == 2
        assert failures[0].exc_info is not None


class TestLoggingSink:
    def test_logs_event_types(self, caplog):
        sink = LoggingNotificationSink()
        with caplog.at_level(logging.INFO, logger="roombook.infra.notifications"):
            sink.on_booking_changed()
            sink.on_room_changed("room-1")

        fields = [r.extra_fields for r in caplog.records]
        assert fields == [
            {"event_type": BOOKING_CHANGED},
            {"event_type": ROOM_CHANGED, "room_id": "room-1"},
        ]


class TestOutbox:
    def test_emit_event_sql(self):
        cur = MagicMock()
        cur.fetchone.return_value = (42,)

        event_id = emit_event(
            cur,
            event_type=ROOM_CHANGED,
            aggregate_type="room",
            aggregate_id="room-1",
            payload={"room_id": "room-1"},
            correlation_id="cid-1",
        )

        assert event_id == 42
        sql, params = cur.execute.call_args[0]
        assert "INSERT INTO outbox_events" in sql
        assert params == (ROOM_CHANGED, "room", "room-1", json.dumps({"room_id": "room-1"}), "cid-1")

    def test_outbox_sink_uses_own_transaction(self):
        cur = MagicMock()
        cur.fetchone.return_value = (1,)
        with patch("roombook.infra.notifications.txn") as mock_txn:
            mock_txn.return_value.__enter__.return_value = cur
            mock_txn.return_value.__exit__.return_value = False
            with correlation_scope("cid-7"):
                OutboxNotificationSink().on_room_changed("room-3")

        mock_txn.assert_called_once_with()
        params = cur.execute.call_args[0][1]
        assert params[0] == ROOM_CHANGED
        assert params[2] == "room-3"
        assert params[4] == "cid-7"

    def test_booking_changed_has_no_aggregate(self):
        cur = MagicMock()
        cur.fetchone.return_value = (1,)
        with patch("roombook.infra.notifications.txn") as mock_txn:
            mock_txn.return_value.__enter__.return_value = cur
            mock_txn.return_value.__exit__.return_value = False
            OutboxNotificationSink().on_booking_changed()

        params = cur.execute.call_args[0][1]
        assert params == (BOOKING_CHANGED, "booking", None, None, None)
