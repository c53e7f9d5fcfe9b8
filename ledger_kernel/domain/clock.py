"""
Injectable time source for business dates.

Default issue, payment and expense dates, the dashboard's current month and
the aging report's as-of date are all read from a Clock passed into the
services.  Nothing under ``ledger_kernel`` or ``ledger_engines`` reads the
wall clock on its own.

All ledger dates are UTC calendar dates, so the one derived accessor is
``today_utc()``.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """Source of the current instant, always timezone-aware."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today_utc(self) -> date:
        """Business date used when a caller omits one."""
        return self.now().astimezone(timezone.utc).date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock pinned to a given instant, for tests and replays.

    Naive datetimes are read as UTC.  ``advance_days`` moves the pinned
    instant forward so that aging and month rollover can be exercised.
    """

    DEFAULT_INSTANT = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __init__(self, at: datetime | None = None):
        self._at = self._aware(at or self.DEFAULT_INSTANT)

    @staticmethod
    def _aware(moment: datetime) -> datetime:
        if moment.tzinfo is None:
            return moment.replace(tzinfo=timezone.utc)
        return moment

    def now(self) -> datetime:
        return self._at

    def set_time(self, moment: datetime) -> None:
        self._at = self._aware(moment)

    def advance_days(self, days: int) -> None:
        self._at += timedelta(days=days)
