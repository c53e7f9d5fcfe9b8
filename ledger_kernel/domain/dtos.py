"""
DTOs -- Immutable snapshots of ledger records.

Responsibility:
    The shapes that leave the kernel: services return them to callers and the
    aggregation engines compute over them.  ORM rows never cross the service
    boundary.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  ``to_dto()`` on each ORM model is
    the only producer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.invoice_status import InvoiceStatus


@dataclass(frozen=True)
class CustomerInfo:
    id: UUID
    tenant_id: str
    name: str
    company: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class InvoiceInfo:
    """
    Invoice snapshot.

    ``customer_name`` is denormalized by the selector for reports; it is None
    for invoices without a customer.
    """

    id: UUID
    tenant_id: str
    number: str
    customer_id: UUID | None
    amount: Decimal
    paid_amount: Decimal
    status: InvoiceStatus
    issue_date: date
    due_date: date | None = None
    description: str | None = None
    created_at: datetime | None = None
    customer_name: str | None = None

    @property
    def remaining(self) -> Decimal:
        """Open balance; zero when fully or over-paid."""
        return max(self.amount - self.paid_amount, Decimal("0.00"))

    @property
    def is_open(self) -> bool:
        return self.status.is_open


@dataclass(frozen=True)
class ExpenseInfo:
    id: UUID
    tenant_id: str
    category: str
    amount: Decimal
    date: date
    description: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class PaymentInfo:
    id: UUID
    invoice_id: UUID
    amount: Decimal
    date: date
    created_at: datetime | None = None


@dataclass(frozen=True)
class PaymentResult:
    """
    Outcome of applying one payment.

    Attributes:
        payment: The persisted payment (its amount may be clamped).
        invoice: The invoice after recompute-from-source.
        overpaid: True when the invoice's paid_amount now exceeds its amount.
        requested_amount: The amount the caller asked to apply.
    """

    payment: PaymentInfo
    invoice: InvoiceInfo
    overpaid: bool = False
    requested_amount: Decimal | None = None

    @property
    def clamped(self) -> bool:
        return (
            self.requested_amount is not None
            and self.requested_amount != self.payment.amount
        )
