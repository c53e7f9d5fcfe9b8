"""
Reporting periods for aggregation.

Responsibility:
    A ``ReportingPeriod`` is a half-open date interval used to select which
    invoices, expenses and payments fall into a report.  Periods are a month,
    a calendar year, or all-time.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.

Invariants enforced:
    - Membership is decided on UTC calendar dates only (see values.to_utc_date).
    - Months are 1..12 and years 1..9999; anything else raises
      InvalidPeriodError.
"""

from dataclasses import dataclass
from datetime import date
from typing import Self

from ledger_kernel.exceptions import InvalidPeriodError


@dataclass(frozen=True)
class ReportingPeriod:
    """
    Half-open interval ``[start, end)`` of calendar dates.

    ``start``/``end`` are both None for the all-time period.
    """

    start: date | None
    end: date | None
    year: int | None = None
    month: int | None = None

    @classmethod
    def for_month(cls, year: int, month: int) -> Self:
        _check_year(year, month)
        if not isinstance(month, int) or isinstance(month, bool) or not 1 <= month <= 12:
            raise InvalidPeriodError(year, month)
        start = date(year, month, 1)
        if month == 12:
            end = date(year + 1, 1, 1) if year < 9999 else None
        else:
            end = date(year, month + 1, 1)
        return cls(start=start, end=end, year=year, month=month)

    @classmethod
    def for_year(cls, year: int) -> Self:
        _check_year(year, None)
        end = date(year + 1, 1, 1) if year < 9999 else None
        return cls(start=date(year, 1, 1), end=end, year=year)

    @classmethod
    def all_time(cls) -> Self:
        return cls(start=None, end=None)

    @property
    def is_all_time(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, day: date) -> bool:
        """True if ``day`` falls inside the period."""
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day >= self.end:
            return False
        return True

    def __str__(self) -> str:
        if self.month is not None:
            return f"{self.year:04d}-{self.month:02d}"
        if self.year is not None:
            return f"{self.year:04d}"
        return "all-time"


def _check_year(year: int, month: int | None) -> None:
    if not isinstance(year, int) or isinstance(year, bool) or not 1 <= year <= 9999:
        raise InvalidPeriodError(year, month)
