"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (SystemClock aside)

All domain objects are immutable and deterministic.
"""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    CustomerInfo,
    ExpenseInfo,
    InvoiceInfo,
    PaymentInfo,
    PaymentResult,
)
from ledger_kernel.domain.invoice_number import (
    format_invoice_number,
    next_sequence,
    number_prefix,
    parse_sequence,
)
from ledger_kernel.domain.invoice_status import (
    OPEN_STATUSES,
    InvoiceStatus,
    derive_status,
)
from ledger_kernel.domain.overpayment import OverpaymentPolicy, apply_overpayment_policy
from ledger_kernel.domain.periods import ReportingPeriod
from ledger_kernel.domain.values import ZERO, coerce_id, parse_amount, to_utc_date

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "CustomerInfo",
    "InvoiceInfo",
    "ExpenseInfo",
    "PaymentInfo",
    "PaymentResult",
    "InvoiceStatus",
    "OPEN_STATUSES",
    "OverpaymentPolicy",
    "apply_overpayment_policy",
    "derive_status",
    "format_invoice_number",
    "number_prefix",
    "parse_sequence",
    "next_sequence",
    "ReportingPeriod",
    "ZERO",
    "parse_amount",
    "to_utc_date",
    "coerce_id",
]
