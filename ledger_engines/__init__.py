"""
Module: ledger_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel/domain (and sibling engine modules).
    MUST NOT import ledger_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Dates are passed in by the calling service.
    - Decimal-only arithmetic for money.
    - Determinism: identical inputs always produce identical outputs.
"""

from ledger_engines.aggregation import (
    CategoryTotal,
    DashboardAnalytics,
    MonthlyTotals,
    PaymentListEntry,
    TopCustomer,
    YearlyTotals,
    build_dashboard,
    expenses_by_category,
    payment_list,
    receivables,
    top_customers,
    total_collected,
    total_expensed,
    total_invoiced,
)
from ledger_engines.aging import (
    OVERDUE_BUCKETS,
    AgeBucket,
    AgedInvoice,
    AgingCalculator,
    AgingReport,
)
from ledger_engines.tracer import traced_engine

__all__ = [
    "AgeBucket",
    "AgedInvoice",
    "AgingCalculator",
    "AgingReport",
    "OVERDUE_BUCKETS",
    "CategoryTotal",
    "DashboardAnalytics",
    "MonthlyTotals",
    "YearlyTotals",
    "TopCustomer",
    "PaymentListEntry",
    "build_dashboard",
    "expenses_by_category",
    "top_customers",
    "payment_list",
    "receivables",
    "total_invoiced",
    "total_expensed",
    "total_collected",
    "traced_engine",
]
