"""
Module: ledger_engines.aging
Responsibility:
    Classify open invoices by how long they have been past due.  The
    receivables aging report has two buckets: 10 to 20 days overdue and
    more than 20 days overdue.  Invoices less than 10 days overdue are not
    reported.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel/domain.

Invariants enforced:
    - Purity: no clock access; ``as_of`` is always passed in.
    - Decimal-only arithmetic for remaining balances.
    - An invoice appears in at most one bucket.

Usage:
    from ledger_engines.aging import AgingCalculator
    from datetime import date

    calculator = AgingCalculator()
    report = calculator.build_report(open_invoices, as_of=date(2025, 3, 31))
    report.bucket_10_20   # tuple[AgedInvoice, ...]
    report.bucket_20_plus
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Sequence

from ledger_kernel.domain.dtos import InvoiceInfo
from ledger_kernel.domain.invoice_status import InvoiceStatus
from ledger_kernel.domain.values import ZERO
from ledger_kernel.logging_config import get_logger
from ledger_engines.tracer import traced_engine

logger = get_logger("engines.aging")

UNKNOWN_CUSTOMER_NAME = "Bilinmeyen Müşteri"


@dataclass(frozen=True)
class AgeBucket:
    """
    A contiguous range of days past due.

    Guarantees:
        - min_days >= 0.
        - max_days >= min_days (when bounded).
    """

    name: str
    min_days: int
    max_days: int | None  # None = unbounded (e.g., 20+)

    def __post_init__(self) -> None:
        if self.min_days < 0:
            raise ValueError("min_days cannot be negative")
        if self.max_days is not None and self.max_days < self.min_days:
            raise ValueError("max_days cannot be less than min_days")

    def contains(self, age_days: int) -> bool:
        """Check if age falls within this bucket."""
        if age_days < self.min_days:
            return False
        if self.max_days is None:
            return True
        return age_days <= self.max_days

    @property
    def is_unbounded(self) -> bool:
        return self.max_days is None


BUCKET_10_20 = AgeBucket("10-20", 10, 20)
BUCKET_20_PLUS = AgeBucket("20+", 21, None)

OVERDUE_BUCKETS: tuple[AgeBucket, ...] = (BUCKET_10_20, BUCKET_20_PLUS)


@dataclass(frozen=True)
class AgedInvoice:
    """An open invoice with its overdue classification."""

    invoice: InvoiceInfo
    days_past_due: int
    remaining: Decimal
    bucket: AgeBucket

    @property
    def customer_name(self) -> str:
        return self.invoice.customer_name or UNKNOWN_CUSTOMER_NAME

    def as_dict(self) -> dict[str, Any]:
        return {
            "invoice_id": str(self.invoice.id),
            "number": self.invoice.number,
            "customer_id": str(self.invoice.customer_id) if self.invoice.customer_id else None,
            "customer_name": self.customer_name,
            "due_date": self.invoice.due_date.isoformat() if self.invoice.due_date else None,
            "amount": str(self.invoice.amount),
            "remaining": str(self.remaining),
            "days_past_due": self.days_past_due,
        }


@dataclass(frozen=True)
class AgingReport:
    """
    Aging snapshot as of one date.

    Items are ordered most overdue first, then by invoice number.
    """

    as_of: date
    items: tuple[AgedInvoice, ...]

    def items_in_bucket(self, bucket: AgeBucket) -> tuple[AgedInvoice, ...]:
        return tuple(i for i in self.items if i.bucket == bucket)

    @property
    def bucket_10_20(self) -> tuple[AgedInvoice, ...]:
        return self.items_in_bucket(BUCKET_10_20)

    @property
    def bucket_20_plus(self) -> tuple[AgedInvoice, ...]:
        return self.items_in_bucket(BUCKET_20_PLUS)

    def total_by_bucket(self) -> dict[str, Decimal]:
        """Remaining balance per bucket name (every bucket present)."""
        totals = {b.name: ZERO for b in OVERDUE_BUCKETS}
        for item in self.items:
            totals[item.bucket.name] += item.remaining
        return totals

    def as_dict(self) -> dict[str, Any]:
        return {
            "as_of": self.as_of.isoformat(),
            "overdue_10_20": [i.as_dict() for i in self.bucket_10_20],
            "overdue_20_plus": [i.as_dict() for i in self.bucket_20_plus],
            "totals": {k: str(v) for k, v in self.total_by_bucket().items()},
        }


class AgingCalculator:
    """
    Age open invoices against their due dates.

    Contract:
        Pure functions -- no I/O, no database access.
    Guarantees:
        - ``calculate_age`` is deterministic for any (due_date, as_of) pair.
        - ``classify`` returns the single bucket containing the age, or None
          for ages below the first bucket.
    """

    DEFAULT_BUCKETS = OVERDUE_BUCKETS

    def __init__(self, buckets: Sequence[AgeBucket] | None = None):
        self.buckets = tuple(buckets) if buckets is not None else self.DEFAULT_BUCKETS

    def calculate_age(self, due_date: date, as_of: date) -> int:
        """Whole days from ``due_date`` to ``as_of``; negative when not yet due."""
        return (as_of - due_date).days

    def classify(self, age_days: int) -> AgeBucket | None:
        for bucket in self.buckets:
            if bucket.contains(age_days):
                return bucket
        return None

    def age_invoice(self, invoice: InvoiceInfo, as_of: date) -> AgedInvoice | None:
        """
        Classify one invoice, or return None when it is not reportable.

        Not reportable: paid, no due date, nothing remaining, or not yet in
        any bucket.
        """
        if invoice.status is InvoiceStatus.PAID or invoice.due_date is None:
            return None
        remaining = invoice.amount - invoice.paid_amount
        if remaining <= 0:
            return None

        age_days = self.calculate_age(invoice.due_date, as_of)
        bucket = self.classify(age_days)
        if bucket is None:
            return None
        return AgedInvoice(
            invoice=invoice,
            days_past_due=age_days,
            remaining=remaining,
            bucket=bucket,
        )

    @traced_engine("aging", "1.0", fingerprint_fields=("as_of",))
    def build_report(
        self,
        invoices: Sequence[InvoiceInfo],
        as_of: date,
    ) -> AgingReport:
        """Aging report over ``invoices`` as of ``as_of``."""
        items = [
            aged
            for aged in (self.age_invoice(inv, as_of) for inv in invoices)
            if aged is not None
        ]
        items.sort(key=lambda i: (-i.days_past_due, i.invoice.number))

        logger.debug(
            "aging_report_built",
            extra={
                "as_of": as_of.isoformat(),
                "invoice_count": len(invoices),
                "overdue_count": len(items),
            },
        )
        return AgingReport(as_of=as_of, items=tuple(items))
