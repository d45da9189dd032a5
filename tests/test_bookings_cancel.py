"""Tests for cancelling bookings and series."""

import pytest

from helpers import at, make_booking, weekly_series
from roombook.domain.errors import AuthorizationError, NotFoundError, PastBookingError
from roombook.domain.models import BookingStatus


@pytest.fixture(autouse=True)
def _tuesday(clock):
    clock.current = at(2026, 3, 10, 8)


def _status(store, booking_id):
    return {b.id: b for b in store.all_bookings()}[booking_id].status


class TestCancel:
    def test_cancel_marks_cancelled(self, orchestrator, store, sink, alice):
        store.add_booking(make_booking("b1", at(2026, 3, 12, 10), at(2026, 3, 12, 11)))

        result = orchestrator.cancel("b1", actor=alice)

        assert result.booking.status is BookingStatus.CANCELLED
        assert not result.already_cancelled
        assert _status(store, "b1") is BookingStatus.CANCELLED
        assert sink.events == [("booking", None), ("room", "room-1")]

    def test_second_cancel_is_noop(self, orchestrator, store, sink, alice):
        store.add_booking(make_booking("b1", at(2026, 3, 12, 10), at(2026, 3, 12, 11)))
        orchestrator.cancel("b1", actor=alice)
        sink.events.clear()

        result = orchestrator.cancel("b1", actor=alice)

        assert result.already_cancelled
        assert _status(store, "b1") is BookingStatus.CANCELLED
        assert sink.events == []

    def test_cancelled_slot_can_be_rebooked(self, orchestrator, store, alice):
        store.add_booking(make_booking("b1", at(2026, 3, 12, 10), at(2026, 3, 12, 11)))
        orchestrator.cancel("b1", actor=alice)

        result = orchestrator.create(
            room_id="room-1",
            user_id="bob",
            start_time=at(2026, 3, 12, 10),
            end_time=at(2026, 3, 12, 11),
        )
        assert result.total_booked == 1

    def test_past_booking_rejected(self, orchestrator, store, alice):
        store.add_booking(make_booking("b1", at(2026, 3, 9, 10), at(2026, 3, 9, 11)))

        with pytest.raises(PastBookingError, match="Cannot cancel past bookings"):
            orchestrator.cancel("b1", actor=alice)

        assert _status(store, "b1") is BookingStatus.CONFIRMED

    def test_other_user_rejected(self, orchestrator, store, bob):
        store.add_booking(make_booking("b1", at(2026, 3, 12, 10), at(2026, 3, 12, 11)))
        with pytest.raises(AuthorizationError):
            orchestrator.cancel("b1", actor=bob)

    def test_admin_may_cancel(self, orchestrator, store, admin):
        store.add_booking(make_booking("b1", at(2026, 3, 12, 10), at(2026, 3, 12, 11)))
        orchestrator.cancel("b1", actor=admin)
        assert _status(store, "b1") is BookingStatus.CANCELLED

    def test_not_found(self, orchestrator, alice):
        with pytest.raises(NotFoundError):
            orchestrator.cancel("missing", actor=alice)

    def test_cancelling_one_member_keeps_the_series(self, orchestrator, store, alice):
        for b in weekly_series("g", [at(2026, 3, 12, 10), at(2026, 3, 19, 10)]):
            store.add_booking(b)

        orchestrator.cancel("g-0", actor=alice)

        assert _status(store, "g-1") is BookingStatus.CONFIRMED


class TestCancelSeries:
    @pytest.fixture
    def series(self, store):
        members = weekly_series(
            "g",
            [at(2026, 3, 3, 10), at(2026, 3, 10, 14), at(2026, 3, 17, 10), at(2026, 3, 24, 10)],
        )
        for b in members:
            store.add_booking(b)
        return members

    def test_cancels_future_members_only(self, orchestrator, store, sink, series, alice):
        result = orchestrator.cancel_series("g", actor=alice)

        assert result.group_id == "g"
        assert result.cancelled_count == 3
        assert _status(store, "g-0") is BookingStatus.CONFIRMED
        assert {_status(store, f"g-{i}") for i in (1, 2, 3)} == {BookingStatus.CANCELLED}
        assert sink.events == [("booking", None), ("room", "room-1")]

    def test_second_call_cancels_nothing(self, orchestrator, sink, series, alice):
        orchestrator.cancel_series("g", actor=alice)
        sink.events.clear()

        result = orchestrator.cancel_series("g", actor=alice)

        assert result.cancelled_count == 0
        assert sink.events == []

    def test_non_member_rejected(self, orchestrator, store, series, bob):
        with pytest.raises(AuthorizationError):
            orchestrator.cancel_series("g", actor=bob)
        assert _status(store, "g-3") is BookingStatus.CONFIRMED

    def test_admin_may_cancel_series(self, orchestrator, series, admin):
        assert orchestrator.cancel_series("g", actor=admin).cancelled_count == 3

    def test_unknown_series(self, orchestrator, alice):
        with pytest.raises(NotFoundError, match="Series not found"):
            orchestrator.cancel_series("nope", actor=alice)

    def test_fully_cancelled_series_is_not_found(self, orchestrator, store, alice):
        for b in weekly_series("h", [at(2026, 3, 12, 10)]):
            store.add_booking(b)
        orchestrator.cancel("h-0", actor=alice)

        with pytest.raises(NotFoundError):
            orchestrator.cancel_series("h", actor=alice)
