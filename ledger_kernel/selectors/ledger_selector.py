"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only, tenant-scoped ledger queries returning DTO
    snapshots.  These snapshots are the inputs of the aggregation engines.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Every query filters by tenant; payments are scoped through a join on
      their invoice.
    - Period filters are half-open ``[start, end)`` on the record's business
      date (issue date, expense date, payment date).
    - Nothing is cached: two calls with no write in between return equal
      snapshots.
"""

from uuid import UUID

from sqlalchemy import Select, select

from ledger_kernel.domain.dtos import CustomerInfo, ExpenseInfo, InvoiceInfo, PaymentInfo
from ledger_kernel.domain.invoice_status import OPEN_STATUSES
from ledger_kernel.domain.periods import ReportingPeriod
from ledger_kernel.exceptions import CustomerNotFoundError, InvoiceNotFoundError
from ledger_kernel.models.customer import Customer
from ledger_kernel.models.expense import Expense
from ledger_kernel.models.invoice import Invoice
from ledger_kernel.models.payment import Payment
from ledger_kernel.selectors.base import BaseSelector


def _within(stmt: Select, column, period: ReportingPeriod | None) -> Select:
    if period is None:
        return stmt
    if period.start is not None:
        stmt = stmt.where(column >= period.start)
    if period.end is not None:
        stmt = stmt.where(column < period.end)
    return stmt


class LedgerSelector(BaseSelector):
    """DTO reads over customers, invoices, expenses and payments."""

    # Customers

    def get_customer(self, tenant_id: str, customer_id: UUID) -> CustomerInfo:
        customer = self.session.execute(
            select(Customer).where(
                Customer.id == customer_id,
                Customer.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()
        if customer is None:
            raise CustomerNotFoundError(str(customer_id))
        return customer.to_dto()

    def list_customers(self, tenant_id: str) -> list[CustomerInfo]:
        rows = self.session.execute(
            select(Customer)
            .where(Customer.tenant_id == tenant_id)
            .order_by(Customer.created_at.desc(), Customer.name)
        ).scalars()
        return [c.to_dto() for c in rows]

    # Invoices

    def _invoice_query(self, tenant_id: str) -> Select:
        return (
            select(Invoice, Customer.name)
            .outerjoin(Customer, Invoice.customer_id == Customer.id)
            .where(Invoice.tenant_id == tenant_id)
        )

    def get_invoice(self, tenant_id: str, invoice_id: UUID) -> InvoiceInfo:
        row = self.session.execute(
            self._invoice_query(tenant_id).where(Invoice.id == invoice_id)
        ).one_or_none()
        if row is None:
            raise InvoiceNotFoundError(str(invoice_id))
        invoice, customer_name = row
        return invoice.to_dto(customer_name=customer_name)

    def list_invoices(
        self,
        tenant_id: str,
        period: ReportingPeriod | None = None,
        customer_id: UUID | None = None,
    ) -> list[InvoiceInfo]:
        """Invoices issued in ``period`` (all when None), latest first."""
        stmt = _within(self._invoice_query(tenant_id), Invoice.issue_date, period)
        if customer_id is not None:
            stmt = stmt.where(Invoice.customer_id == customer_id)
        stmt = stmt.order_by(Invoice.issue_date.desc(), Invoice.number.desc())
        return [
            invoice.to_dto(customer_name=name)
            for invoice, name in self.session.execute(stmt)
        ]

    def list_open_invoices(self, tenant_id: str) -> list[InvoiceInfo]:
        """Unpaid and partially paid invoices across all time."""
        stmt = (
            self._invoice_query(tenant_id)
            .where(Invoice.status.in_([s.value for s in OPEN_STATUSES]))
            .order_by(Invoice.due_date, Invoice.number)
        )
        return [
            invoice.to_dto(customer_name=name)
            for invoice, name in self.session.execute(stmt)
        ]

    # Expenses

    def list_expenses(
        self, tenant_id: str, period: ReportingPeriod | None = None
    ) -> list[ExpenseInfo]:
        stmt = _within(
            select(Expense).where(Expense.tenant_id == tenant_id),
            Expense.date,
            period,
        ).order_by(Expense.date.desc(), Expense.created_at.desc())
        return [e.to_dto() for e in self.session.execute(stmt).scalars()]

    # Payments

    def list_payments(
        self, tenant_id: str, period: ReportingPeriod | None = None
    ) -> list[PaymentInfo]:
        stmt = _within(
            select(Payment)
            .join(Invoice, Payment.invoice_id == Invoice.id)
            .where(Invoice.tenant_id == tenant_id),
            Payment.date,
            period,
        ).order_by(Payment.date.desc(), Payment.created_at.desc())
        return [p.to_dto() for p in self.session.execute(stmt).scalars()]

    def list_payments_by_invoice(
        self, tenant_id: str, invoice_id: UUID
    ) -> list[PaymentInfo]:
        stmt = (
            select(Payment)
            .join(Invoice, Payment.invoice_id == Invoice.id)
            .where(Invoice.tenant_id == tenant_id, Payment.invoice_id == invoice_id)
            .order_by(Payment.date.desc(), Payment.created_at.desc())
        )
        return [p.to_dto() for p in self.session.execute(stmt).scalars()]

    def list_payments_for_invoices(
        self, tenant_id: str, invoice_ids: list[UUID]
    ) -> list[PaymentInfo]:
        """Payments of the given invoices regardless of payment date."""
        if not invoice_ids:
            return []
        stmt = (
            select(Payment)
            .join(Invoice, Payment.invoice_id == Invoice.id)
            .where(Invoice.tenant_id == tenant_id, Payment.invoice_id.in_(invoice_ids))
        )
        return [p.to_dto() for p in self.session.execute(stmt).scalars()]
