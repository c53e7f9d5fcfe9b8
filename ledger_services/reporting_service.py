"""
ReportingService -- read-side entry point for dashboard analytics.

Responsibility:
    Loads tenant snapshots through LedgerSelector and hands them to the pure
    aggregation and aging engines.  Resolves defaults (current month, today)
    from the injected clock, never from the system time directly.

Architecture position:
    Services -- read-only orchestration.  Never writes, flushes or commits.

Invariants enforced:
    - Idempotent: two calls with no intervening writes return equal results.
    - Month and year boundaries are UTC calendar dates.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from ledger_config import LedgerConfig, get_active_config
from ledger_engines.aggregation import (
    CategoryTotal,
    DashboardAnalytics,
    PaymentListEntry,
    TopCustomer,
    build_dashboard,
    expenses_by_category,
    payment_list,
    top_customers,
)
from ledger_engines.aging import AgingCalculator, AgingReport
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.periods import ReportingPeriod
from ledger_kernel.domain.values import to_utc_date
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.ledger_store import require_tenant

logger = get_logger("services.reporting")


class ReportingService:
    """Tenant-scoped analytics over the ledger."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: LedgerConfig | None = None,
    ):
        self.session = session
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._selector = LedgerSelector(session)
        self._aging = AgingCalculator()

    def current_month(self) -> ReportingPeriod:
        today = self._clock.today_utc()
        return ReportingPeriod.for_month(today.year, today.month)

    def get_dashboard_analytics(
        self,
        tenant_id: str,
        month: int | None = None,
        year: int | None = None,
    ) -> DashboardAnalytics:
        """
        Monthly and yearly totals, profit and receivables.

        A missing month or year defaults to the clock's current UTC month
        or year.
        """
        tenant_id = require_tenant(tenant_id)
        today = self._clock.today_utc()
        year = today.year if year is None else year
        month = today.month if month is None else month
        year_period = ReportingPeriod.for_year(year)
        # validates month before any query runs
        ReportingPeriod.for_month(year, month)

        with LogContext.bind(tenant_id=tenant_id, operation="dashboard_analytics"):
            analytics = build_dashboard(
                invoices=self._selector.list_invoices(tenant_id),
                expenses=self._selector.list_expenses(tenant_id, year_period),
                payments=self._selector.list_payments(tenant_id, year_period),
                year=year,
                month=month,
            )
            logger.info(
                "dashboard_analytics_computed",
                extra={
                    "year": year,
                    "month": month,
                    "monthly_profit": analytics.monthly.profit,
                    "receivables": analytics.receivables,
                },
            )
        return analytics

    def get_expenses_by_category(
        self,
        tenant_id: str,
        month: int | None = None,
        year: int | None = None,
    ) -> dict[str, CategoryTotal]:
        """Category totals for a month, or for the whole year when month is None."""
        tenant_id = require_tenant(tenant_id)
        year = self._clock.today_utc().year if year is None else year
        period = (
            ReportingPeriod.for_year(year)
            if month is None
            else ReportingPeriod.for_month(year, month)
        )
        return expenses_by_category(
            self._selector.list_expenses(tenant_id, period), period=period
        )

    def get_aging_report(self, tenant_id: str, as_of: object = None) -> AgingReport:
        """Overdue open invoices in the 10-20 and 20+ day buckets."""
        tenant_id = require_tenant(tenant_id)
        as_of_date: date = (
            self._clock.today_utc() if as_of is None else to_utc_date(as_of, "as_of")
        )
        with LogContext.bind(tenant_id=tenant_id, operation="aging_report"):
            report = self._aging.build_report(
                self._selector.list_open_invoices(tenant_id), as_of=as_of_date
            )
            logger.info(
                "aging_report_computed",
                extra={
                    "as_of": as_of_date,
                    "overdue_10_20": len(report.bucket_10_20),
                    "overdue_20_plus": len(report.bucket_20_plus),
                },
            )
        return report

    def get_top_customers(
        self,
        tenant_id: str,
        period: ReportingPeriod | None = None,
        limit: int | None = None,
    ) -> list[TopCustomer]:
        """
        Customers ranked by amount invoiced in ``period``.

        ``period`` defaults to the current month; ``limit`` to the configured
        top_customers_limit.
        """
        tenant_id = require_tenant(tenant_id)
        period = period or self.current_month()
        invoices = self._selector.list_invoices(tenant_id, period)
        payments = self._selector.list_payments_for_invoices(
            tenant_id, [i.id for i in invoices]
        )
        return top_customers(
            self._selector.list_customers(tenant_id),
            invoices,
            payments,
            period=period,
            limit=self._config.top_customers_limit if limit is None else limit,
        )

    def get_payment_list(
        self,
        tenant_id: str,
        period: ReportingPeriod | None = None,
    ) -> list[PaymentListEntry]:
        """Payments received in ``period`` (default: current month), newest first."""
        tenant_id = require_tenant(tenant_id)
        period = period or self.current_month()
        return payment_list(
            self._selector.list_payments(tenant_id, period),
            self._selector.list_invoices(tenant_id),
            period,
        )
