"""
Module: ledger_kernel.models.expense
Responsibility: ORM persistence for tenant expenses.
Architecture position: Kernel > Models.
"""

import datetime as dt
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TenantScopedBase
from ledger_kernel.domain.dtos import ExpenseInfo


class Expense(TenantScopedBase):
    """
    A cost recorded by a tenant.

    ``category`` is free text; the configured categories (Yakıt, Yemek, ...)
    are conventions of the input forms, not a closed set.
    """

    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        Index("idx_expenses_tenant_date", "tenant_id", "date"),
    )

    category: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    def to_dto(self) -> ExpenseInfo:
        """Convert ORM model to frozen dataclass."""
        return ExpenseInfo(
            id=self.id,
            tenant_id=self.tenant_id,
            category=self.category,
            amount=self.amount,
            date=self.date,
            description=self.description,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<Expense {self.category}: {self.amount}>"
