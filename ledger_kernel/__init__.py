"""
Ledger Kernel

Tenant-scoped invoicing core:
- Customers, invoices, expenses and payments per tenant
- FT-YYYY-NNN invoice numbering with collision retry
- Payment application with recompute-from-source status
- Structured logging and typed errors
"""

__version__ = "0.1.0"
