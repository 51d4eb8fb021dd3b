"""Tests for the UTC timestamp helpers."""

from datetime import UTC, datetime, timedelta, timezone

from shared.clock import as_utc, not_before


class TestAsUtc:
    def test_none(self):
        assert as_utc(None) is None

    def test_naive_assumed_utc(self):
        assert as_utc(datetime(2026, 1, 1, 9, 0)) == datetime(2026, 1, 1, 9, 0, tzinfo=UTC)

    def test_aware_converted(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        assert as_utc(datetime(2026, 1, 1, 9, 0, tzinfo=ist)) == datetime(2026, 1, 1, 3, 30, tzinfo=UTC)


class TestNotBefore:
    def test_later_now_wins(self):
        previous = datetime(2026, 1, 1, tzinfo=UTC)
        now = previous + timedelta(seconds=1)
        assert not_before(previous, now) == now

    def test_clock_skew_clamped_to_previous(self):
        previous = datetime(2026, 1, 1, tzinfo=UTC)
        assert not_before(previous, previous - timedelta(seconds=5)) == previous

    def test_no_previous(self):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        assert not_before(None, now) == now
