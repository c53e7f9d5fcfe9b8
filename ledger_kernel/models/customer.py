"""
Module: ledger_kernel.models.customer
Responsibility: ORM persistence for the people and companies a tenant bills.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ DTOs only.

Invariants enforced:
    - name is required.
    - A customer is deleted only when no invoice references it; the FK from
      invoices has no cascade, so the database rejects an orphaning delete
      even if the service-level guard is bypassed.
"""

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TenantScopedBase
from ledger_kernel.domain.dtos import CustomerInfo


class Customer(TenantScopedBase):
    """
    A billable customer of one tenant.

    Guarantees:
        - tenant_id and name are NOT NULL.
        - Contact fields are optional free text.
    """

    __tablename__ = "customers"

    __table_args__ = (
        Index("idx_customers_tenant_created", "tenant_id", "created_at"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> CustomerInfo:
        """Convert ORM model to frozen dataclass."""
        return CustomerInfo(
            id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            company=self.company,
            phone=self.phone,
            email=self.email,
            address=self.address,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<Customer {self.name}>"
