"""
PaymentApplicationService -- record payments and keep invoices consistent.

Responsibility:
    Records a payment against an invoice and recomputes the invoice's
    ``paid_amount`` and ``status`` from the full set of its payments.

Architecture position:
    Kernel > Services -- imperative shell.  Called by
    InvoicingService.record_payment() and, for amount edits,
    InvoicingService.update_invoice() via recompute_invoice().

Invariants enforced:
    - Recompute-from-source: after every payment, ``paid_amount`` equals the
      sum of all the invoice's payments.  It is never incremented in place.
    - ``status == derive_status(paid_amount, amount)`` after every write.
    - The invoice row is locked (``SELECT ... FOR UPDATE``) for the rest of
      the caller's transaction, so two payments on one invoice serialize
      and neither sum is lost.
    - Validation (amount, date, invoice ownership, overpayment policy)
      happens before any row is written.

Failure modes:
    - InvalidAmountError / InvalidDateError: bad input, nothing written.
    - InvoiceNotFoundError: invoice absent or owned by another tenant.
    - OverpaymentError: policy ``reject`` (or ``clamp`` on a settled invoice).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import PaymentResult
from ledger_kernel.domain.invoice_status import derive_status
from ledger_kernel.domain.overpayment import (
    OverpaymentPolicy,
    apply_overpayment_policy,
)
from ledger_kernel.domain.values import optional_utc_date, parse_amount
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.invoice import Invoice
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_store import LedgerStore

logger = get_logger("services.payment_application")


class PaymentApplicationService(BaseService):
    """
    Applies payments to invoices.

    Usage:
        payments = PaymentApplicationService(session, clock=clock)
        result = payments.record_payment(tenant_id, invoice_id, "400.00")
        session.commit()
    """

    def __init__(
        self,
        session: Session,
        store: LedgerStore | None = None,
        clock: Clock | None = None,
        overpayment_policy: OverpaymentPolicy = OverpaymentPolicy.ALLOW_AND_FLAG,
    ):
        super().__init__(session)
        self._store = store or LedgerStore(session)
        self._clock = clock or SystemClock()
        self._policy = OverpaymentPolicy(overpayment_policy)

    @property
    def overpayment_policy(self) -> OverpaymentPolicy:
        return self._policy

    def record_payment(
        self,
        tenant_id: str,
        invoice_id: UUID,
        amount: object,
        payment_date: object = None,
    ) -> PaymentResult:
        """
        Record one payment and recompute the invoice.

        Args:
            tenant_id: Owning tenant.
            invoice_id: Target invoice.
            amount: Positive amount with at most two decimals.
            payment_date: Date-like; defaults to today (UTC, from the clock).

        Returns:
            PaymentResult with the persisted payment and updated invoice.
        """
        requested = parse_amount(amount)
        paid_on = optional_utc_date(payment_date, "date") or self._clock.today_utc()

        invoice = self._store.get_invoice(tenant_id, invoice_id, for_update=True)

        with LogContext.bind(invoice_id=str(invoice.id)):
            remaining = invoice.amount - self._store.sum_payments(invoice.id)
            applied = apply_overpayment_policy(
                self._policy, invoice.id, requested, remaining
            )
            if applied != requested:
                logger.info(
                    "payment_clamped",
                    extra={
                        "requested_amount": requested,
                        "applied_amount": applied,
                        "remaining": remaining,
                    },
                )

            payment = self._store.add_payment(invoice, applied, paid_on)
            self.recompute_invoice(invoice)

            overpaid = invoice.paid_amount > invoice.amount
            if overpaid:
                logger.warning(
                    "invoice_overpaid",
                    extra={
                        "invoice_number": invoice.number,
                        "amount": invoice.amount,
                        "paid_amount": invoice.paid_amount,
                    },
                )

            logger.info(
                "payment_applied",
                extra={
                    "payment_id": str(payment.id),
                    "invoice_number": invoice.number,
                    "payment_amount": applied,
                    "paid_amount": invoice.paid_amount,
                    "status": invoice.status,
                },
            )

        return PaymentResult(
            payment=payment.to_dto(),
            invoice=invoice.to_dto(),
            overpaid=overpaid,
            requested_amount=requested,
        )

    def recompute_invoice(self, invoice: Invoice) -> Invoice:
        """
        Re-derive ``paid_amount`` and ``status`` from the invoice's payments.

        Safe to call at any time; the result depends only on persisted
        payments and the invoice's current amount.
        """
        paid = self._store.sum_payments(invoice.id)
        status = derive_status(paid, invoice.amount)

        invoice.paid_amount = paid
        invoice.status = status
        self.session.flush()
        return invoice

    def remaining_balance(self, tenant_id: str, invoice_id: UUID) -> Decimal:
        """Open balance of an invoice, never negative."""
        invoice = self._store.get_invoice(tenant_id, invoice_id)
        remaining = invoice.amount - self._store.sum_payments(invoice.id)
        return max(remaining, Decimal("0.00"))
