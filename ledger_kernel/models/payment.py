"""
Module: ledger_kernel.models.payment
Responsibility: ORM persistence for payments received against invoices.
Architecture position: Kernel > Models.

Invariants enforced:
    - Payments are immutable once written; nothing updates them.
    - There is no tenant column.  A payment belongs to the tenant of its
      invoice, and every tenant-scoped payment query joins through invoices.
    - invoice_id is required; the FK has no cascade so an invoice cannot be
      deleted while payments still reference it.
"""

import datetime as dt
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.domain.dtos import PaymentInfo


class Payment(Base):
    """A single payment applied to one invoice."""

    __tablename__ = "payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        Index("idx_payments_invoice_id", "invoice_id"),
        Index("idx_payments_date", "date"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        ForeignKey("invoices.id"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def to_dto(self) -> PaymentInfo:
        """Convert ORM model to frozen dataclass."""
        return PaymentInfo(
            id=self.id,
            invoice_id=self.invoice_id,
            amount=self.amount,
            date=self.date,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<Payment {self.amount} on {self.invoice_id}>"
