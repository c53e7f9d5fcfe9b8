"""
Overpayment policy.

A payment larger than the invoice's open balance is handled one of three
ways, chosen by configuration:

    reject          raise OverpaymentError, nothing is written
    clamp           apply only the open balance; OverpaymentError if the
                    invoice is already settled
    allow_and_flag  apply the full amount and flag the result as overpaid
"""

from decimal import Decimal
from enum import Enum

from ledger_kernel.exceptions import OverpaymentError


class OverpaymentPolicy(str, Enum):
    REJECT = "reject"
    CLAMP = "clamp"
    ALLOW_AND_FLAG = "allow_and_flag"


def apply_overpayment_policy(
    policy: OverpaymentPolicy,
    invoice_id: object,
    amount: Decimal,
    remaining: Decimal,
) -> Decimal:
    """
    Return the amount that may be applied under ``policy``.

    Args:
        policy: Configured policy.
        invoice_id: Used for the error payload only.
        amount: Validated, positive payment amount.
        remaining: invoice.amount - sum(existing payments); may be <= 0.

    Raises:
        OverpaymentError: under ``reject`` when amount > remaining, and under
            ``clamp`` when nothing remains to be paid.
    """
    if amount <= remaining or policy is OverpaymentPolicy.ALLOW_AND_FLAG:
        return amount

    remaining = max(remaining, Decimal("0.00"))
    if policy is OverpaymentPolicy.CLAMP and remaining > 0:
        return remaining
    raise OverpaymentError(str(invoice_id), str(amount), str(remaining))
