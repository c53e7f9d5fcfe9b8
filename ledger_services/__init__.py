"""
ledger_services -- transaction-owning services for the API layer.

``InvoicingService`` is the write side (customers, invoices, payments,
expenses); ``ReportingService`` is the read side (dashboard, category
breakdown, aging, top customers, payment list).
"""

from ledger_services.invoicing_service import InvoicingService
from ledger_services.reporting_service import ReportingService

__all__ = ["InvoicingService", "ReportingService"]
