"""Business-date behaviour of the injectable clocks."""

from datetime import date, datetime, timedelta, timezone

from ledger_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:

    def test_today_is_utc_date(self):
        # 01:30 at +03:00 is still the previous day in UTC
        clock = DeterministicClock(
            datetime(2025, 1, 1, 1, 30, tzinfo=timezone(timedelta(hours=3)))
        )
        assert clock.today_utc() == date(2024, 12, 31)

    def test_naive_datetime_read_as_utc(self):
        clock = DeterministicClock(datetime(2025, 3, 15, 23, 59))
        assert clock.now().tzinfo is timezone.utc
        assert clock.today_utc() == date(2025, 3, 15)

    def test_stable_until_moved(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now() == DeterministicClock.DEFAULT_INSTANT

    def test_advance_days_crosses_month(self):
        clock = DeterministicClock(datetime(2025, 1, 31, 12, tzinfo=timezone.utc))
        clock.advance_days(1)
        assert clock.today_utc() == date(2025, 2, 1)

    def test_set_time(self):
        clock = DeterministicClock()
        clock.set_time(datetime(2026, 7, 4, tzinfo=timezone.utc))
        assert clock.today_utc() == date(2026, 7, 4)


def test_system_clock_is_aware():
    assert SystemClock().now().tzinfo is not None
