"""ORM models for the ledger kernel."""

from ledger_kernel.models.customer import Customer
from ledger_kernel.models.expense import Expense
from ledger_kernel.models.invoice import INVOICE_NUMBER_CONSTRAINT, Invoice
from ledger_kernel.models.payment import Payment

__all__ = [
    "Customer",
    "Invoice",
    "INVOICE_NUMBER_CONSTRAINT",
    "Expense",
    "Payment",
]
