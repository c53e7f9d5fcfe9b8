"""
LedgerStore -- tenant-scoped persistence for customers, invoices, expenses
and payments.

Responsibility:
    The single write path to the ledger tables.  Every operation takes an
    explicit tenant id and filters by it; payments, which carry no tenant
    column, are always reached through their invoice.

Architecture position:
    Kernel > Services -- imperative shell.  Used by InvoiceNumberingService,
    PaymentApplicationService and the outer InvoicingService.  Returns ORM
    rows; conversion to DTOs happens at the service boundary.

Invariants enforced:
    - Tenant isolation: a row owned by another tenant is reported as
      ``*NotFoundError``, exactly like a missing row.
    - Invoice deletion removes the invoice's payments first, then the
      invoice, inside the caller's transaction.
    - A customer with invoices is never deleted (CustomerHasInvoicesError,
      raised before any mutation).
    - Flush only; the caller commits.
    - Write side only.  Reads for reporting and listing go through
      LedgerSelector, which returns DTOs.

Failure modes:
    - CustomerNotFoundError / InvoiceNotFoundError / ExpenseNotFoundError.
    - CustomerHasInvoicesError on delete_customer.
    - MissingFieldError / InvalidAmountError / InvalidDateError on bad input.
    - sqlalchemy IntegrityError propagates unchanged (e.g. a duplicate
      invoice number passed to insert_invoice).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, func, select

from ledger_kernel.domain.values import (
    ZERO,
    optional_text,
    parse_amount,
    require_text,
    to_utc_date,
)
from ledger_kernel.exceptions import (
    CustomerHasInvoicesError,
    CustomerNotFoundError,
    ExpenseNotFoundError,
    InvoiceNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.customer import Customer
from ledger_kernel.models.expense import Expense
from ledger_kernel.models.invoice import Invoice
from ledger_kernel.models.payment import Payment
from ledger_kernel.services.base import BaseService

logger = get_logger("services.ledger_store")


def require_tenant(tenant_id: object) -> str:
    """Validate and normalize a tenant id."""
    return require_text(tenant_id, "tenant_id")


class LedgerStore(BaseService):
    """
    Tenant-scoped CRUD over the four ledger tables.

    Contract:
        All methods take ``tenant_id`` first.  Ids are UUIDs already
        validated by the caller.
    """

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def add_customer(
        self,
        tenant_id: str,
        name: str,
        company: str | None = None,
        phone: str | None = None,
        email: str | None = None,
        address: str | None = None,
    ) -> Customer:
        customer = Customer(
            tenant_id=require_tenant(tenant_id),
            name=require_text(name, "name"),
            company=optional_text(company),
            phone=optional_text(phone),
            email=optional_text(email),
            address=optional_text(address),
        )
        self.session.add(customer)
        self.session.flush()
        logger.debug(
            "customer_added",
            extra={"tenant_id": customer.tenant_id, "customer_id": str(customer.id)},
        )
        return customer

    def get_customer(self, tenant_id: str, customer_id: UUID) -> Customer:
        customer = self.session.execute(
            select(Customer).where(
                Customer.id == customer_id,
                Customer.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()
        if customer is None:
            raise CustomerNotFoundError(str(customer_id))
        return customer

    def update_customer(
        self,
        tenant_id: str,
        customer_id: UUID,
        name: str | None = None,
        company: str | None = None,
        phone: str | None = None,
        email: str | None = None,
        address: str | None = None,
    ) -> Customer:
        """Update the given fields; None leaves a field unchanged."""
        customer = self.get_customer(tenant_id, customer_id)

        if name is not None:
            customer.name = require_text(name, "name")
        if company is not None:
            customer.company = optional_text(company)
        if phone is not None:
            customer.phone = optional_text(phone)
        if email is not None:
            customer.email = optional_text(email)
        if address is not None:
            customer.address = optional_text(address)

        self.session.flush()
        return customer

    def count_customer_invoices(self, tenant_id: str, customer_id: UUID) -> int:
        return self.session.execute(
            select(func.count(Invoice.id)).where(
                Invoice.tenant_id == tenant_id,
                Invoice.customer_id == customer_id,
            )
        ).scalar_one()

    def has_customer_invoices(self, tenant_id: str, customer_id: UUID) -> bool:
        return self.count_customer_invoices(tenant_id, customer_id) > 0

    def delete_customer(self, tenant_id: str, customer_id: UUID) -> None:
        """
        Delete a customer that has no invoices.

        Raises:
            CustomerNotFoundError: absent or owned by another tenant.
            CustomerHasInvoicesError: invoices reference the customer.
        """
        customer = self.get_customer(tenant_id, customer_id)
        invoice_count = self.count_customer_invoices(tenant_id, customer_id)
        if invoice_count:
            raise CustomerHasInvoicesError(str(customer_id), invoice_count)

        self.session.delete(customer)
        self.session.flush()

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def get_invoice(
        self,
        tenant_id: str,
        invoice_id: UUID,
        for_update: bool = False,
    ) -> Invoice:
        """
        Load one invoice of the tenant.

        With ``for_update=True`` the row is locked (``SELECT ... FOR UPDATE``)
        until the caller's transaction ends and the identity map copy is
        refreshed from the database.
        """
        stmt = select(Invoice).where(
            Invoice.id == invoice_id,
            Invoice.tenant_id == tenant_id,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        invoice = self.session.execute(stmt).scalar_one_or_none()
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id))
        return invoice

    def insert_invoice(self, invoice: Invoice) -> Invoice:
        """
        Add and flush a fully built invoice.

        The (tenant_id, number) constraint fires here; callers that need to
        survive a collision wrap this in a savepoint.
        """
        require_tenant(invoice.tenant_id)
        self.session.add(invoice)
        self.session.flush()
        return invoice

    def invoice_numbers_with_prefix(self, tenant_id: str, prefix: str) -> list[str]:
        """All persisted numbers of the tenant starting with ``prefix``."""
        return list(
            self.session.execute(
                select(Invoice.number).where(
                    Invoice.tenant_id == tenant_id,
                    Invoice.number.startswith(prefix, autoescape=True),
                )
            ).scalars()
        )

    def invoice_number_exists(
        self,
        tenant_id: str,
        number: str,
        exclude_invoice_id: UUID | None = None,
    ) -> bool:
        stmt = select(func.count(Invoice.id)).where(
            Invoice.tenant_id == tenant_id,
            Invoice.number == number,
        )
        if exclude_invoice_id is not None:
            stmt = stmt.where(Invoice.id != exclude_invoice_id)
        return self.session.execute(stmt).scalar_one() > 0

    def delete_invoice(self, tenant_id: str, invoice_id: UUID) -> int:
        """
        Delete an invoice together with its payments.

        Returns:
            Number of payments removed.
        """
        invoice = self.get_invoice(tenant_id, invoice_id, for_update=True)

        result = self.session.execute(
            delete(Payment)
            .where(Payment.invoice_id == invoice.id)
            .execution_options(synchronize_session="fetch")
        )
        self.session.delete(invoice)
        self.session.flush()

        removed = result.rowcount or 0
        logger.debug(
            "invoice_deleted",
            extra={
                "tenant_id": tenant_id,
                "invoice_id": str(invoice_id),
                "payments_removed": removed,
            },
        )
        return removed

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def add_expense(
        self,
        tenant_id: str,
        category: str,
        amount: object,
        expense_date: object,
        description: str | None = None,
    ) -> Expense:
        expense = Expense(
            tenant_id=require_tenant(tenant_id),
            category=require_text(category, "category"),
            amount=parse_amount(amount),
            date=to_utc_date(expense_date, "date"),
            description=optional_text(description),
        )
        self.session.add(expense)
        self.session.flush()
        return expense

    def get_expense(self, tenant_id: str, expense_id: UUID) -> Expense:
        expense = self.session.execute(
            select(Expense).where(
                Expense.id == expense_id,
                Expense.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()
        if expense is None:
            raise ExpenseNotFoundError(str(expense_id))
        return expense

    def update_expense(
        self,
        tenant_id: str,
        expense_id: UUID,
        category: str | None = None,
        amount: object = None,
        expense_date: object = None,
        description: str | None = None,
    ) -> Expense:
        """Update the given fields; None leaves a field unchanged."""
        expense = self.get_expense(tenant_id, expense_id)

        # validate everything before touching the row
        new_category = require_text(category, "category") if category is not None else None
        new_amount = parse_amount(amount) if amount is not None else None
        new_date = to_utc_date(expense_date, "date") if expense_date is not None else None

        if new_category is not None:
            expense.category = new_category
        if new_amount is not None:
            expense.amount = new_amount
        if new_date is not None:
            expense.date = new_date
        if description is not None:
            expense.description = optional_text(description)

        self.session.flush()
        return expense

    def delete_expense(self, tenant_id: str, expense_id: UUID) -> None:
        expense = self.get_expense(tenant_id, expense_id)
        self.session.delete(expense)
        self.session.flush()

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def add_payment(self, invoice: Invoice, amount: Decimal, payment_date: date) -> Payment:
        """Persist a payment against an already tenant-checked invoice."""
        payment = Payment(invoice_id=invoice.id, amount=amount, date=payment_date)
        self.session.add(payment)
        self.session.flush()
        return payment

    def sum_payments(self, invoice_id: UUID) -> Decimal:
        """
        Sum of every payment recorded against the invoice.

        Summed as Decimal in Python; SQLite's SUM() over NUMERIC is a float.
        """
        amounts = self.session.execute(
            select(Payment.amount).where(Payment.invoice_id == invoice_id)
        ).scalars()
        return sum(amounts, ZERO)
