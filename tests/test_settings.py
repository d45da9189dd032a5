"""Tests for environment-driven settings."""

from datetime import timedelta
from zoneinfo import ZoneInfo

import pytest

from roombook.infra.settings import BookingSettings, load_settings


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings({})
        assert settings == BookingSettings()
        assert settings.min_duration == timedelta(minutes=15)
        assert settings.timezone == ZoneInfo("UTC")

    def test_overrides(self):
        settings = load_settings(
            {
                "BOOKING_STORE": "postgres",
                "BOOKING_NOTIFICATION_SINK": "outbox",
                "BOOKING_TIMEZONE": "Asia/Jakarta",
                "BOOKING_MIN_DURATION_MINUTES": "30",
                "BOOKING_MY_LIMIT": "20",
                "BOOKING_WINDOW_DAYS_BEFORE": "1",
                "BOOKING_WINDOW_DAYS_AFTER": "14",
            }
        )
        assert settings.store_backend == "postgres"
        assert settings.notification_sink == "outbox"
        assert settings.timezone == ZoneInfo("Asia/Jakarta")
        assert settings.min_duration == timedelta(minutes=30)
        assert settings.my_bookings_limit == 20
        assert settings.window_days_before == 1
        assert settings.window_days_after == 14

    def test_unknown_backends_fall_back(self):
        settings = load_settings({"BOOKING_STORE": "redis", "BOOKING_NOTIFICATION_SINK": "sms"})
        assert settings.store_backend == "memory"
        assert settings.notification_sink == "log"

    def test_blank_values_use_defaults(self):
        assert load_settings({"BOOKING_MIN_DURATION_MINUTES": "  "}).min_duration == timedelta(minutes=15)

    @pytest.mark.parametrize(
        "env",
        [
            {"BOOKING_MIN_DURATION_MINUTES": "abc"},
            {"BOOKING_MIN_DURATION_MINUTES": "0"},
            {"BOOKING_MY_LIMIT": "-1"},
            {"BOOKING_TIMEZONE": "Mars/Olympus"},
        ],
    )
    def test_malformed_values_raise(self, env):
        with pytest.raises(ValueError):
            load_settings(env)

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("BOOKING_MY_LIMIT", "7")
        assert load_settings().my_bookings_limit == 7
