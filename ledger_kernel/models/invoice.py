"""
Module: ledger_kernel.models.invoice
Responsibility: ORM persistence for invoices, including the derived
    ``paid_amount`` and ``status`` fields.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - (tenant_id, number) is unique (uq_invoices_tenant_number).  This
      constraint is what makes concurrent invoice numbering safe: the
      numbering service retries when it fires.
    - amount > 0 and paid_amount >= 0 (CHECK constraints).
    - status is always derive_status(paid_amount, amount).  The ORM does not
      enforce this; PaymentApplicationService.recompute_invoice() is the only
      writer of paid_amount and status.

Failure modes:
    - IntegrityError on a duplicate (tenant_id, number).
    - IntegrityError on deleting an invoice that still has payments.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TenantScopedBase
from ledger_kernel.domain.dtos import InvoiceInfo
from ledger_kernel.domain.invoice_status import InvoiceStatus

INVOICE_NUMBER_CONSTRAINT = "uq_invoices_tenant_number"


class Invoice(TenantScopedBase):
    """
    A bill issued by a tenant.

    Guarantees:
        - number is unique within the tenant.
        - paid_amount defaults to 0.00 and status to ``unpaid``.
        - customer_id is nullable for hand-entered invoices; when set it
          references customers.id.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name=INVOICE_NUMBER_CONSTRAINT),
        CheckConstraint("amount > 0", name="ck_invoices_amount_positive"),
        CheckConstraint("paid_amount >= 0", name="ck_invoices_paid_non_negative"),
        Index("idx_invoices_tenant_issue_date", "tenant_id", "issue_date"),
        Index("idx_invoices_tenant_status", "tenant_id", "status"),
        Index("idx_invoices_customer_id", "customer_id"),
    )

    number: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("customers.id"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0.00"),
    )
    status: Mapped[InvoiceStatus] = mapped_column(
        String(16),
        nullable=False,
        default=InvoiceStatus.UNPAID,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def to_dto(self, customer_name: str | None = None) -> InvoiceInfo:
        """Convert ORM model to frozen dataclass."""
        return InvoiceInfo(
            id=self.id,
            tenant_id=self.tenant_id,
            number=self.number,
            customer_id=self.customer_id,
            amount=self.amount,
            paid_amount=self.paid_amount,
            status=InvoiceStatus(self.status),
            issue_date=self.issue_date,
            due_date=self.due_date,
            description=self.description,
            created_at=self.created_at,
            customer_name=customer_name,
        )

    def __repr__(self) -> str:
        return f"<Invoice {self.number}: {self.amount} ({self.status})>"
