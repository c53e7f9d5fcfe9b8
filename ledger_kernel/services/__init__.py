"""Kernel services (flush-only, caller owns the transaction)."""

from ledger_kernel.services.invoice_numbering import InvoiceNumberingService
from ledger_kernel.services.ledger_store import LedgerStore
from ledger_kernel.services.payment_application import PaymentApplicationService

__all__ = [
    "LedgerStore",
    "InvoiceNumberingService",
    "PaymentApplicationService",
]
