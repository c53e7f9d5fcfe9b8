"""
InvoicingService -- write-side entry point for the invoicing core.

Responsibility:
    The surface an API layer calls to manage customers, invoices, expenses
    and payments for a tenant.  Validates input, delegates to the kernel
    services and owns the transaction boundary of each operation.

Architecture position:
    Services -- stateful orchestration over the kernel.  Reads configuration
    (LedgerConfig) and passes plain values down; the kernel never sees
    ``ledger_config``.

Invariants enforced:
    - One operation, one transaction: with ``auto_commit=True`` every
      mutating call commits on success and rolls back on any exception, so
      a failed operation leaves no partial state.  With ``auto_commit=False``
      the caller owns commit/rollback (e.g. inside ``session_scope()``).
    - Validation happens before any row is written.
    - Every log record of an operation carries the tenant id, an operation
      name and a fresh correlation id.

Failure modes:
    - ValidationError subclasses for bad input (nothing written).
    - NotFoundError subclasses for missing or foreign records.
    - CustomerHasInvoicesError when deleting a customer in use.
    - InvoiceNumberGenerationError when numbering retries are exhausted.
    - sqlalchemy errors propagate after rollback.

Usage:
    service = InvoicingService(session, clock=clock)
    customer = service.create_customer("tenant-1", "Ayşe Yılmaz")
    invoice = service.create_invoice("tenant-1", customer.id, "1000.00")
    result = service.record_payment("tenant-1", invoice.id, "400.00")
    result.invoice.status   # InvoiceStatus.PARTIAL
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ledger_config import LedgerConfig, get_active_config
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    CustomerInfo,
    ExpenseInfo,
    InvoiceInfo,
    PaymentInfo,
    PaymentResult,
)
from ledger_kernel.domain.invoice_status import InvoiceStatus
from ledger_kernel.domain.values import (
    ZERO,
    coerce_id,
    optional_text,
    optional_utc_date,
    parse_amount,
    to_utc_date,
)
from ledger_kernel.exceptions import (
    DuplicateInvoiceNumberError,
    LedgerKernelError,
    MissingFieldError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.invoice import Invoice
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.invoice_numbering import InvoiceNumberingService
from ledger_kernel.services.ledger_store import LedgerStore, require_tenant
from ledger_kernel.services.payment_application import PaymentApplicationService

logger = get_logger("services.invoicing")


class InvoicingService:
    """
    Tenant-scoped write operations with transaction ownership.

    Contract:
        Every public method takes ``tenant_id`` first and returns frozen
        DTOs (or ``True`` for deletes).  ORM rows never escape.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: LedgerConfig | None = None,
        auto_commit: bool = True,
    ):
        self.session = session
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._auto_commit = auto_commit

        self._store = LedgerStore(session)
        self._selector = LedgerSelector(session)
        self._numbering = InvoiceNumberingService(
            session,
            store=self._store,
            max_attempts=self._config.numbering.max_attempts,
            max_backoff_ms=self._config.numbering.max_backoff_ms,
        )
        self._payments = PaymentApplicationService(
            session,
            store=self._store,
            clock=self._clock,
            overpayment_policy=self._config.overpayment_policy,
        )

    @property
    def config(self) -> LedgerConfig:
        return self._config

    # ------------------------------------------------------------------
    # Transaction handling
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str, tenant_id: str, **context: str | None) -> Iterator[None]:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            tenant_id=tenant_id,
            operation=name,
            **context,
        ):
            t0 = time.monotonic()
            try:
                yield
                if self._auto_commit:
                    self.session.commit()
            except LedgerKernelError as exc:
                if self._auto_commit:
                    self.session.rollback()
                logger.warning(
                    f"{name}_rejected",
                    extra={
                        "error_code": exc.code,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
                raise
            except Exception:
                if self._auto_commit:
                    self.session.rollback()
                logger.error(
                    f"{name}_failed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                    exc_info=True,
                )
                raise

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def create_customer(
        self,
        tenant_id: str,
        name: str,
        company: str | None = None,
        phone: str | None = None,
        email: str | None = None,
        address: str | None = None,
    ) -> CustomerInfo:
        tenant_id = require_tenant(tenant_id)
        with self._operation("customer_create", tenant_id):
            customer = self._store.add_customer(
                tenant_id, name, company=company, phone=phone, email=email, address=address
            )
            info = customer.to_dto()
            logger.info("customer_created", extra={"customer_id": str(info.id)})
        return info

    def update_customer(
        self,
        tenant_id: str,
        customer_id: object,
        name: str | None = None,
        company: str | None = None,
        phone: str | None = None,
        email: str | None = None,
        address: str | None = None,
    ) -> CustomerInfo:
        tenant_id = require_tenant(tenant_id)
        customer_uuid = coerce_id(customer_id, "customer_id")
        with self._operation("customer_update", tenant_id):
            customer = self._store.update_customer(
                tenant_id,
                customer_uuid,
                name=name,
                company=company,
                phone=phone,
                email=email,
                address=address,
            )
            info = customer.to_dto()
            logger.info("customer_updated", extra={"customer_id": str(info.id)})
        return info

    def delete_customer(self, tenant_id: str, customer_id: object) -> bool:
        """
        Delete a customer without invoices.

        Raises:
            CustomerHasInvoicesError: invoices reference the customer; nothing
                is deleted.
        """
        tenant_id = require_tenant(tenant_id)
        customer_uuid = coerce_id(customer_id, "customer_id")
        with self._operation("customer_delete", tenant_id):
            self._store.delete_customer(tenant_id, customer_uuid)
            logger.info("customer_deleted", extra={"customer_id": str(customer_uuid)})
        return True

    def get_customer(self, tenant_id: str, customer_id: object) -> CustomerInfo:
        return self._selector.get_customer(
            require_tenant(tenant_id), coerce_id(customer_id, "customer_id")
        )

    def list_customers(self, tenant_id: str) -> list[CustomerInfo]:
        return self._selector.list_customers(require_tenant(tenant_id))

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def create_invoice(
        self,
        tenant_id: str,
        customer_id: object,
        amount: object,
        issue_date: object = None,
        due_date: object = None,
        description: str | None = None,
        number: str | None = None,
    ) -> InvoiceInfo:
        """
        Create an invoice, numbering it when no number is given.

        The number series is the issue year (UTC).  A caller-supplied
        number is used verbatim and must be unused by the tenant.

        Raises:
            InvalidAmountError / InvalidDateError / MissingFieldError.
            CustomerNotFoundError: customer absent or foreign.
            DuplicateInvoiceNumberError: explicit number already used.
            InvoiceNumberGenerationError: numbering retries exhausted.
        """
        tenant_id = require_tenant(tenant_id)
        parsed_amount = parse_amount(amount)
        issued_on = optional_utc_date(issue_date, "issue_date") or self._clock.today_utc()
        due_on = optional_utc_date(due_date, "due_date")
        explicit_number = optional_text(number)
        text = optional_text(description)
        customer_uuid = self._resolve_customer_id(customer_id)

        with self._operation("invoice_create", tenant_id):
            customer_name = None
            if customer_uuid is not None:
                customer_name = self._store.get_customer(tenant_id, customer_uuid).name

            def build(invoice_number: str) -> Invoice:
                return Invoice(
                    tenant_id=tenant_id,
                    number=invoice_number,
                    customer_id=customer_uuid,
                    amount=parsed_amount,
                    paid_amount=ZERO,
                    status=InvoiceStatus.UNPAID,
                    description=text,
                    issue_date=issued_on,
                    due_date=due_on,
                )

            if explicit_number is not None:
                invoice = self._numbering.insert_with_number(build(explicit_number))
            else:
                invoice = self._numbering.create_numbered_invoice(
                    tenant_id, issued_on.year, build
                )

            info = invoice.to_dto(customer_name=customer_name)
            logger.info(
                "invoice_created",
                extra={
                    "invoice_id": str(info.id),
                    "invoice_number": info.number,
                    "amount": info.amount,
                    "explicit_number": explicit_number is not None,
                },
            )
        return info

    def _resolve_customer_id(self, customer_id: object) -> UUID | None:
        if customer_id is None or (isinstance(customer_id, str) and not customer_id.strip()):
            if self._config.require_invoice_customer:
                raise MissingFieldError("customer_id")
            return None
        return coerce_id(customer_id, "customer_id")

    def update_invoice(
        self,
        tenant_id: str,
        invoice_id: object,
        customer_id: object = None,
        amount: object = None,
        issue_date: object = None,
        due_date: object = None,
        description: str | None = None,
        number: str | None = None,
    ) -> InvoiceInfo:
        """
        Edit an invoice; None leaves a field unchanged.

        An amount change re-derives ``paid_amount`` and ``status`` from the
        invoice's payments.  A number change must not collide with another
        invoice of the tenant.  The number series is not re-evaluated when
        the issue date moves to another year.
        """
        tenant_id = require_tenant(tenant_id)
        invoice_uuid = coerce_id(invoice_id, "invoice_id")
        new_customer = coerce_id(customer_id, "customer_id") if customer_id is not None else None
        new_amount = parse_amount(amount) if amount is not None else None
        new_issue = to_utc_date(issue_date, "issue_date") if issue_date is not None else None
        new_due = to_utc_date(due_date, "due_date") if due_date is not None else None
        new_number = optional_text(number) if number is not None else None
        if number is not None and new_number is None:
            raise MissingFieldError("number")

        with self._operation("invoice_update", tenant_id, invoice_id=str(invoice_uuid)):
            invoice = self._store.get_invoice(tenant_id, invoice_uuid, for_update=True)

            if new_customer is not None:
                self._store.get_customer(tenant_id, new_customer)
                invoice.customer_id = new_customer
            if new_number is not None and new_number != invoice.number:
                if self._store.invoice_number_exists(
                    tenant_id, new_number, exclude_invoice_id=invoice.id
                ):
                    raise DuplicateInvoiceNumberError(tenant_id, new_number)
                invoice.number = new_number
            if new_issue is not None:
                invoice.issue_date = new_issue
            if new_due is not None:
                invoice.due_date = new_due
            if description is not None:
                invoice.description = optional_text(description)
            if new_amount is not None:
                invoice.amount = new_amount

            # status must follow any amount change
            self._payments.recompute_invoice(invoice)

            info = self._selector.get_invoice(tenant_id, invoice.id)
            logger.info(
                "invoice_updated",
                extra={"invoice_number": info.number, "status": info.status},
            )
        return info

    def delete_invoice(self, tenant_id: str, invoice_id: object) -> bool:
        """Delete an invoice and its payments in one transaction."""
        tenant_id = require_tenant(tenant_id)
        invoice_uuid = coerce_id(invoice_id, "invoice_id")
        with self._operation("invoice_delete", tenant_id, invoice_id=str(invoice_uuid)):
            removed = self._store.delete_invoice(tenant_id, invoice_uuid)
            logger.info("invoice_deleted", extra={"payments_removed": removed})
        return True

    def get_invoice(self, tenant_id: str, invoice_id: object) -> InvoiceInfo:
        return self._selector.get_invoice(
            require_tenant(tenant_id), coerce_id(invoice_id, "invoice_id")
        )

    def list_invoices(
        self, tenant_id: str, customer_id: object = None
    ) -> list[InvoiceInfo]:
        customer_uuid = coerce_id(customer_id, "customer_id") if customer_id is not None else None
        return self._selector.list_invoices(require_tenant(tenant_id), customer_id=customer_uuid)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def record_payment(
        self,
        tenant_id: str,
        invoice_id: object,
        amount: object,
        date: object = None,
    ) -> PaymentResult:
        """
        Record a payment and recompute the invoice atomically.

        Raises:
            InvalidAmountError / InvalidDateError: nothing written.
            InvoiceNotFoundError: invoice absent or foreign.
            OverpaymentError: rejected by the configured overpayment policy.
        """
        tenant_id = require_tenant(tenant_id)
        invoice_uuid = coerce_id(invoice_id, "invoice_id")
        with self._operation("payment_record", tenant_id, invoice_id=str(invoice_uuid)):
            result = self._payments.record_payment(
                tenant_id, invoice_uuid, amount, payment_date=date
            )
        return result

    def list_payments(self, tenant_id: str) -> list[PaymentInfo]:
        return self._selector.list_payments(require_tenant(tenant_id))

    def list_payments_by_invoice(
        self, tenant_id: str, invoice_id: object
    ) -> list[PaymentInfo]:
        return self._selector.list_payments_by_invoice(
            require_tenant(tenant_id), coerce_id(invoice_id, "invoice_id")
        )

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def create_expense(
        self,
        tenant_id: str,
        category: str,
        amount: object,
        date: object = None,
        description: str | None = None,
    ) -> ExpenseInfo:
        tenant_id = require_tenant(tenant_id)
        expense_date = optional_utc_date(date, "date") or self._clock.today_utc()
        with self._operation("expense_create", tenant_id):
            expense = self._store.add_expense(
                tenant_id, category, amount, expense_date, description=description
            )
            info = expense.to_dto()
            if info.category not in self._config.expense_categories:
                logger.debug(
                    "expense_category_unlisted", extra={"category": info.category}
                )
            logger.info(
                "expense_created",
                extra={"expense_id": str(info.id), "category": info.category},
            )
        return info

    def update_expense(
        self,
        tenant_id: str,
        expense_id: object,
        category: str | None = None,
        amount: object = None,
        date: object = None,
        description: str | None = None,
    ) -> ExpenseInfo:
        tenant_id = require_tenant(tenant_id)
        expense_uuid = coerce_id(expense_id, "expense_id")
        with self._operation("expense_update", tenant_id):
            expense = self._store.update_expense(
                tenant_id,
                expense_uuid,
                category=category,
                amount=amount,
                expense_date=date,
                description=description,
            )
            info = expense.to_dto()
            logger.info("expense_updated", extra={"expense_id": str(info.id)})
        return info

    def delete_expense(self, tenant_id: str, expense_id: object) -> bool:
        tenant_id = require_tenant(tenant_id)
        expense_uuid = coerce_id(expense_id, "expense_id")
        with self._operation("expense_delete", tenant_id):
            self._store.delete_expense(tenant_id, expense_uuid)
            logger.info("expense_deleted", extra={"expense_id": str(expense_uuid)})
        return True

    def list_expenses(self, tenant_id: str) -> list[ExpenseInfo]:
        return self._selector.list_expenses(require_tenant(tenant_id))
