"""
Invoice payment status and its derivation rule.

Status is never stored independently of the numbers that decide it: every
write path that touches ``paid_amount`` or ``amount`` calls
``derive_status()`` and persists the result alongside.
"""

from decimal import Decimal
from enum import Enum


class InvoiceStatus(str, Enum):
    """Payment state of an invoice."""

    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"

    @property
    def is_open(self) -> bool:
        """True while a balance may still be outstanding."""
        return self is not InvoiceStatus.PAID


OPEN_STATUSES: frozenset[InvoiceStatus] = frozenset(
    {InvoiceStatus.UNPAID, InvoiceStatus.PARTIAL}
)


def derive_status(paid_amount: Decimal, amount: Decimal) -> InvoiceStatus:
    """
    Pure status function.

    paid  if paid_amount >= amount
    partial  if 0 < paid_amount < amount
    unpaid  otherwise
    """
    if paid_amount >= amount:
        return InvoiceStatus.PAID
    if paid_amount > 0:
        return InvoiceStatus.PARTIAL
    return InvoiceStatus.UNPAID
