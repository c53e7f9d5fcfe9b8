"""Read-only selectors returning DTO snapshots."""

from ledger_kernel.selectors.ledger_selector import LedgerSelector

__all__ = ["LedgerSelector"]
