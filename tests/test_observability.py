"""Tests for observability utilities."""

import json
import logging
from datetime import datetime, timezone

from roombook.domain.models import RecurrenceKind
from roombook.observability.correlation import correlation_scope, get_correlation_id
from roombook.observability.logging import JsonFormatter, configure_logging
from roombook.observability.redaction import (
    redact_string,
    redact_value,
    safe_log_context,
)


class TestRedaction:
    """Tests for redaction helpers."""

    def test_redact_phone_number(self):
        result = redact_string("Call me at +62 812 3456 7890")
        assert "3456" not in result
        assert "[REDACTED]" in result

    def test_redact_email(self):
        result = redact_string("Invite user@example.com")
        assert "user@example.com" not in result

    def test_redact_value_dict_only_keys(self):
        result = redact_value({"topic": "Board meeting", "room": "r1"})
        assert "Board meeting" not in result
        assert "topic" in result

    def test_redact_enum_and_datetime(self):
        assert redact_value(RecurrenceKind.WEEKLY) == "weekly"
        assert redact_value(datetime(2026, 3, 9, 10, tzinfo=timezone.utc)) == "2026-03-09T10:00:00+00:00"

    def test_sensitive_keys_dropped(self):
        ctx = safe_log_context(topic="Layoffs", pin_code="1234", room_id="room-1", count=3)
        assert ctx["topic"] == "[REDACTED]"
        assert ctx["pin_code"] == "[REDACTED]"
        assert ctx["room_id"] == "room-1"
        assert ctx["count"] == "3"


class TestCorrelation:
    def test_scope_binds_and_restores(self):
        assert get_correlation_id() == ""
        with correlation_scope("cid-1") as cid:
            assert cid == "cid-1"
            assert get_correlation_id() == "cid-1"
        assert get_correlation_id() == ""

    def test_scope_keeps_outer_id(self):
        with correlation_scope("outer"):
            with correlation_scope() as inner:
                assert inner == "outer"

    def test_scope_generates_id(self):
        with correlation_scope() as cid:
            assert cid


class TestJsonFormatter:
    def _record(self, **extra):
        record = logging.LogRecord("roombook.test", logging.INFO, __file__, 1, "hello", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_structured_fields_and_correlation(self):
        with correlation_scope("cid-9"):
            line = JsonFormatter().format(self._record(extra_fields={"room_id": "room-1"}))

        data = json.loads(line)
        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["correlationId"] == "cid-9"
        assert data["room_id"] == "room-1"

    def test_no_correlation_outside_scope(self):
        data = json.loads(JsonFormatter().format(self._record()))
        assert "correlationId" not in data
        assert data["service"] == "roombook"

    def test_sensitive_extra_fields_dropped(self):
        record = self._record(extra_fields={"topic": "Board offsite", "pin_code": "1234", "room_id": "r"})
        data = json.loads(JsonFormatter().format(record))
        assert "topic" not in data
        assert "pin_code" not in data
        assert data["room_id"] == "r"


class TestConfigureLogging:
    def test_level_from_env(self, monkeypatch):
        root = logging.getLogger("roombook")
        previous = root.level
        handlers = list(root.handlers)
        monkeypatch.setenv("ROOMBOOK_LOG_LEVEL", "warning")
        try:
            configure_logging()
            assert root.level == logging.WARNING
            assert sum(isinstance(h.formatter, JsonFormatter) for h in root.handlers) == 1
            configure_logging(logging.DEBUG)
            assert root.level == logging.DEBUG
            assert sum(isinstance(h.formatter, JsonFormatter) for h in root.handlers) == 1
        finally:
            root.setLevel(previous)
            root.handlers[:] = handlers


def test_orchestrator_logs_never_carry_topic(orchestrator, caplog):
    from helpers import at

    with caplog.at_level(logging.INFO, logger="roombook"):
        orchestrator.create(
            room_id="room-1",
            user_id="alice",
            start_time=at(2026, 3, 9, 10),
            end_time=at(2026, 3, 9, 11),
            topic="Acquisition of Initech",
        )

    assert any(r.getMessage() == "bookings created" for r in caplog.records)
    for record in caplog.records:
        assert "Initech" not in json.dumps(getattr(record, "extra_fields", {}), default=str)
        assert "Initech" not in record.getMessage()
