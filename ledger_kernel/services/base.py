"""
Common base for the write-side kernel services.

LedgerStore, InvoiceNumberingService and PaymentApplicationService all work
inside a transaction opened by their caller: they ``flush()`` so constraint
violations surface immediately, and leave commit and rollback to
InvoicingService or ``session_scope()``.  Numbering is the one service that
opens savepoints of its own, and it always closes them before returning.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """Holds the caller's session; never commits it."""

    def __init__(self, session: Session):
        self.session = session
