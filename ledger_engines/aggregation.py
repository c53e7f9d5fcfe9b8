"""
Module: ledger_engines.aggregation
Responsibility:
    Period totals and dashboard analytics over ledger snapshots: invoiced,
    expensed and collected amounts per month and year, profit, open
    receivables, expenses by category, top customers and the payment list.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Inputs are DTO snapshots produced by LedgerSelector.

Invariants enforced:
    - Purity and determinism: identical inputs give identical outputs, so
      a dashboard recomputed without intervening writes is unchanged.
    - Period membership uses each record's UTC business date:
      invoices by issue date, expenses by expense date, payments by
      payment date.
    - profit = invoiced - expensed for the same period.  This is an
      accrual-style figure, not cash collected minus expenses.
    - receivables = sum(amount - paid_amount) over unpaid and partial
      invoices, across all time.
    - Decimal-only arithmetic.

Usage:
    from ledger_engines.aggregation import build_dashboard

    analytics = build_dashboard(
        invoices=invoices, expenses=expenses, payments=payments,
        year=2025, month=3,
    )
    analytics.as_dict()["monthly"]["profit"]
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Sequence
from uuid import UUID

from ledger_kernel.domain.dtos import (
    CustomerInfo,
    ExpenseInfo,
    InvoiceInfo,
    PaymentInfo,
)
from ledger_kernel.domain.invoice_status import OPEN_STATUSES
from ledger_kernel.domain.periods import ReportingPeriod
from ledger_kernel.domain.values import ZERO
from ledger_kernel.logging_config import get_logger
from ledger_engines.tracer import traced_engine

logger = get_logger("engines.aggregation")

DEFAULT_TOP_CUSTOMERS = 5


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryTotal:
    total: Decimal
    count: int

    def as_dict(self) -> dict[str, Any]:
        return {"total": str(self.total), "count": self.count}


@dataclass(frozen=True)
class MonthlyTotals:
    invoices: Decimal
    expenses: Decimal
    payments: Decimal
    profit: Decimal

    def as_dict(self) -> dict[str, str]:
        return {
            "invoices": str(self.invoices),
            "expenses": str(self.expenses),
            "payments": str(self.payments),
            "profit": str(self.profit),
        }


@dataclass(frozen=True)
class YearlyTotals:
    invoices: Decimal
    expenses: Decimal
    profit: Decimal

    def as_dict(self) -> dict[str, str]:
        return {
            "invoices": str(self.invoices),
            "expenses": str(self.expenses),
            "profit": str(self.profit),
        }


@dataclass(frozen=True)
class DashboardAnalytics:
    """
    Dashboard figures for one month and its year.

    ``as_dict()`` renders the wire shape with amounts as strings.
    """

    year: int
    month: int
    monthly: MonthlyTotals
    yearly: YearlyTotals
    receivables: Decimal

    def as_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "monthly": self.monthly.as_dict(),
            "yearly": self.yearly.as_dict(),
            "receivables": str(self.receivables),
        }


@dataclass(frozen=True)
class TopCustomer:
    customer_id: UUID
    customer_name: str
    company: str | None
    total_invoiced: Decimal
    total_paid: Decimal
    invoice_count: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "customer_id": str(self.customer_id),
            "customer_name": self.customer_name,
            "company": self.company,
            "total_invoiced": str(self.total_invoiced),
            "total_paid": str(self.total_paid),
            "invoice_count": self.invoice_count,
        }


@dataclass(frozen=True)
class PaymentListEntry:
    """A payment with the invoice and customer it belongs to."""

    payment: PaymentInfo
    invoice_number: str | None
    customer_id: UUID | None
    customer_name: str | None

    def as_dict(self) -> dict[str, Any]:
        return {
            "payment_id": str(self.payment.id),
            "invoice_id": str(self.payment.invoice_id),
            "invoice_number": self.invoice_number,
            "customer_id": str(self.customer_id) if self.customer_id else None,
            "customer_name": self.customer_name,
            "amount": str(self.payment.amount),
            "date": self.payment.date.isoformat(),
        }


# ---------------------------------------------------------------------------
# Period totals
# ---------------------------------------------------------------------------


def total_invoiced(invoices: Sequence[InvoiceInfo], period: ReportingPeriod) -> Decimal:
    """Sum of invoice amounts issued in ``period``."""
    return sum((i.amount for i in invoices if period.contains(i.issue_date)), ZERO)


def total_expensed(expenses: Sequence[ExpenseInfo], period: ReportingPeriod) -> Decimal:
    """Sum of expense amounts dated in ``period``."""
    return sum((e.amount for e in expenses if period.contains(e.date)), ZERO)


def total_collected(payments: Sequence[PaymentInfo], period: ReportingPeriod) -> Decimal:
    """Sum of payment amounts received in ``period``."""
    return sum((p.amount for p in payments if period.contains(p.date)), ZERO)


def receivables(invoices: Sequence[InvoiceInfo]) -> Decimal:
    """Open balance over unpaid and partial invoices, all time."""
    return sum(
        (i.amount - i.paid_amount for i in invoices if i.status in OPEN_STATUSES),
        ZERO,
    )


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@traced_engine("aggregation.dashboard", "1.0", fingerprint_fields=("year", "month"))
def build_dashboard(
    *,
    invoices: Sequence[InvoiceInfo],
    expenses: Sequence[ExpenseInfo],
    payments: Sequence[PaymentInfo],
    year: int,
    month: int,
) -> DashboardAnalytics:
    """
    Monthly and yearly totals plus receivables.

    ``invoices`` must be the tenant's full invoice set (receivables span all
    time); ``expenses`` and ``payments`` need only cover ``year``.
    """
    month_period = ReportingPeriod.for_month(year, month)
    year_period = ReportingPeriod.for_year(year)

    month_invoiced = total_invoiced(invoices, month_period)
    month_expensed = total_expensed(expenses, month_period)
    monthly = MonthlyTotals(
        invoices=month_invoiced,
        expenses=month_expensed,
        payments=total_collected(payments, month_period),
        profit=month_invoiced - month_expensed,
    )

    year_invoiced = total_invoiced(invoices, year_period)
    year_expensed = total_expensed(expenses, year_period)
    yearly = YearlyTotals(
        invoices=year_invoiced,
        expenses=year_expensed,
        profit=year_invoiced - year_expensed,
    )

    return DashboardAnalytics(
        year=year,
        month=month,
        monthly=monthly,
        yearly=yearly,
        receivables=receivables(invoices),
    )


@traced_engine("aggregation.expenses_by_category", "1.0", fingerprint_fields=("period",))
def expenses_by_category(
    expenses: Sequence[ExpenseInfo],
    period: ReportingPeriod,
) -> dict[str, CategoryTotal]:
    """
    Total and count per category for expenses dated in ``period``.

    Categories appear in descending total order, ties by name.
    """
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)
    for expense in expenses:
        if not period.contains(expense.date):
            continue
        totals[expense.category] += expense.amount
        counts[expense.category] += 1

    ordered = sorted(totals, key=lambda c: (-totals[c], c))
    return {c: CategoryTotal(total=totals[c], count=counts[c]) for c in ordered}


@traced_engine("aggregation.top_customers", "1.0", fingerprint_fields=("period", "limit"))
def top_customers(
    customers: Sequence[CustomerInfo],
    invoices: Sequence[InvoiceInfo],
    payments: Sequence[PaymentInfo],
    period: ReportingPeriod,
    limit: int = DEFAULT_TOP_CUSTOMERS,
) -> list[TopCustomer]:
    """
    Customers ranked by amount invoiced in ``period``.

    total_paid counts every payment on those same invoices, whatever its
    payment date.  Customers with nothing invoiced are dropped; ties are
    broken by customer id so the ranking is stable.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    by_customer: dict[UUID, list[InvoiceInfo]] = defaultdict(list)
    for invoice in invoices:
        if invoice.customer_id is not None and period.contains(invoice.issue_date):
            by_customer[invoice.customer_id].append(invoice)

    paid_by_invoice: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for payment in payments:
        paid_by_invoice[payment.invoice_id] += payment.amount

    ranked: list[TopCustomer] = []
    for customer in customers:
        customer_invoices = by_customer.get(customer.id, [])
        invoiced = sum((i.amount for i in customer_invoices), ZERO)
        if invoiced <= 0:
            continue
        ranked.append(
            TopCustomer(
                customer_id=customer.id,
                customer_name=customer.name,
                company=customer.company,
                total_invoiced=invoiced,
                total_paid=sum(
                    (paid_by_invoice.get(i.id, ZERO) for i in customer_invoices), ZERO
                ),
                invoice_count=len(customer_invoices),
            )
        )

    ranked.sort(key=lambda c: (-c.total_invoiced, str(c.customer_id)))
    return ranked[:limit]


def payment_list(
    payments: Sequence[PaymentInfo],
    invoices: Sequence[InvoiceInfo],
    period: ReportingPeriod,
) -> list[PaymentListEntry]:
    """Payments received in ``period`` with invoice and customer, newest first."""
    invoices_by_id = {i.id: i for i in invoices}
    entries = []
    for payment in payments:
        if not period.contains(payment.date):
            continue
        invoice = invoices_by_id.get(payment.invoice_id)
        entries.append(
            PaymentListEntry(
                payment=payment,
                invoice_number=invoice.number if invoice else None,
                customer_id=invoice.customer_id if invoice else None,
                customer_name=invoice.customer_name if invoice else None,
            )
        )
    entries.sort(key=lambda e: (e.payment.date, str(e.payment.id)), reverse=True)
    return entries
