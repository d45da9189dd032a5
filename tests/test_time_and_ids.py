"""Tests for clock helpers and id/PIN generation."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from roombook.infra.ids import UuidGenerator, generate_pin_code
from roombook.infra.time import SystemClock, local_today, start_of_local_day, utc_now


class TestClock:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None

    def test_system_clock_tracks_utc_now(self):
        before = utc_now()
        now = SystemClock().now()
        assert before <= now <= utc_now()

    def test_local_today_crosses_date_line(self):
        now = datetime(2026, 3, 2, 20, 0, tzinfo=timezone.utc)
        assert local_today(now, ZoneInfo("Asia/Tokyo")).isoformat() == "2026-03-03"
        assert local_today(now, timezone.utc).isoformat() == "2026-03-02"

    def test_start_of_local_day(self):
        tz = ZoneInfo("Europe/Berlin")
        now = datetime(2026, 3, 2, 6, 30, tzinfo=timezone.utc)
        midnight = start_of_local_day(now, tz)
        assert midnight == datetime(2026, 3, 2, 0, 0, tzinfo=tz)
        assert midnight.astimezone(timezone.utc) == datetime(2026, 3, 1, 23, 0, tzinfo=timezone.utc)


class TestIds:
    def test_uuid_generator_unique(self):
        gen = UuidGenerator()
        ids = {gen.new_id() for _ in range(100)}
        assert len(ids) == 100

    def test_pin_code_is_four_digits(self):
        for _ in range(200):
            pin = generate_pin_code()
            assert len(pin) == 4
            assert pin.isdigit()
            assert 1000 <= int(pin) <= 9999
