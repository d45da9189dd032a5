"""Tests for half-open interval arithmetic."""

from datetime import timedelta

from helpers import at
from roombook.domain.intervals import Interval, contains, overlaps


class TestOverlaps:
    def test_partial_overlap(self):
        a = Interval(at(2026, 3, 9, 10), at(2026, 3, 9, 11))
        b = Interval(at(2026, 3, 9, 10, 30), at(2026, 3, 9, 11, 30))
        assert overlaps(a, b)
        assert overlaps(b, a)

    def test_touching_intervals_do_not_overlap(self):
        """End A == start B is not a conflict (back-to-back meetings)."""
        a = Interval(at(2026, 3, 9, 10), at(2026, 3, 9, 11))
        b = Interval(at(2026, 3, 9, 11), at(2026, 3, 9, 12))
        assert not overlaps(a, b)
        assert not overlaps(b, a)

    def test_containment_overlaps(self):
        outer = Interval(at(2026, 3, 9, 9), at(2026, 3, 9, 17))
        inner = Interval(at(2026, 3, 9, 12), at(2026, 3, 9, 13))
        assert outer.overlaps(inner)
        assert inner.overlaps(outer)

    def test_identical_intervals_overlap(self):
        a = Interval(at(2026, 3, 9, 10), at(2026, 3, 9, 11))
        assert overlaps(a, a)

    def test_disjoint(self):
        a = Interval(at(2026, 3, 9, 10), at(2026, 3, 9, 11))
        b = Interval(at(2026, 3, 10, 10), at(2026, 3, 10, 11))
        assert not overlaps(a, b)


class TestContains:
    def test_start_is_inside(self):
        i = Interval(at(2026, 3, 9, 10), at(2026, 3, 9, 11))
        assert contains(i, at(2026, 3, 9, 10))

    def test_end_is_outside(self):
        i = Interval(at(2026, 3, 9, 10), at(2026, 3, 9, 11))
        assert not contains(i, at(2026, 3, 9, 11))
        assert i.contains(at(2026, 3, 9, 10, 59))

    def test_duration(self):
        i = Interval(at(2026, 3, 9, 10), at(2026, 3, 9, 11, 15))
        assert i.duration == timedelta(minutes=75)
