"""
InvoiceNumberingService -- per-tenant ``FT-YYYY-NNN`` allocation.

Responsibility:
    Assigns the next invoice number of a (tenant, year) and inserts the
    invoice under it, surviving concurrent creators of the same tenant.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by InvoicingService.create_invoice().

Algorithm (derive-and-retry):
    1. Read the tenant's persisted numbers starting with ``FT-<year>-``.
    2. Propose ``max(numeric suffix) + 1`` (1 when none).
    3. Insert inside a SAVEPOINT.
    4. If the (tenant_id, number) unique constraint fires, roll back the
       savepoint, sleep a random jitter below ``max_backoff_ms`` and go back
       to step 1.  At most ``max_attempts`` attempts are made.

    There is no counter table: numbers derive from existing rows only, so
    deleting every invoice of a year restarts that year at 001, and a gap
    left by a deleted invoice is not reused while a higher number exists.

Invariants enforced:
    - Uniqueness per (tenant_id, number) is guaranteed by the database
      constraint ``uq_invoices_tenant_number``; this service only turns
      violations into forward progress.
    - Numbers within a (tenant, year) increase monotonically in creation
      order.

Failure modes:
    - InvoiceNumberGenerationError after ``max_attempts`` collisions.
    - DuplicateInvoiceNumberError when a caller-supplied number is taken.
    - IntegrityError that is not a number collision propagates unchanged.
"""

import random
import time
from collections.abc import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.invoice_number import (
    format_invoice_number,
    next_sequence,
    number_prefix,
)
from ledger_kernel.exceptions import (
    DuplicateInvoiceNumberError,
    InvoiceNumberConflictError,
    InvoiceNumberGenerationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.invoice import Invoice
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_store import LedgerStore

logger = get_logger("services.invoice_numbering")

MAX_ATTEMPTS = 10
MAX_BACKOFF_MS = 100


class InvoiceNumberingService(BaseService):
    """
    Derive-and-retry invoice number allocation.

    Contract:
        ``create_numbered_invoice()`` receives a factory that builds an
        unsaved Invoice for a proposed number.  A fresh Invoice is built for
        every attempt; a row whose savepoint was rolled back is never reused.

    Non-goals:
        - Does NOT commit.  A number is only visible to other transactions
          once the caller commits.
    """

    def __init__(
        self,
        session: Session,
        store: LedgerStore | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        max_backoff_ms: int = MAX_BACKOFF_MS,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ):
        super().__init__(session)
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if max_backoff_ms < 0:
            raise ValueError(f"max_backoff_ms must be >= 0, got {max_backoff_ms}")
        self._store = store or LedgerStore(session)
        self._max_attempts = max_attempts
        self._max_backoff_ms = max_backoff_ms
        self._sleep = sleep
        self._rng = rng or random.Random()

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def next_number(self, tenant_id: str, year: int) -> str:
        """Propose the next number of (tenant, year) without reserving it."""
        return format_invoice_number(year, self._derive_sequence(tenant_id, year))

    def _derive_sequence(self, tenant_id: str, year: int) -> int:
        numbers = self._store.invoice_numbers_with_prefix(tenant_id, number_prefix(year))
        return next_sequence(numbers, year)

    def create_numbered_invoice(
        self,
        tenant_id: str,
        year: int,
        build: Callable[[str], Invoice],
    ) -> Invoice:
        """
        Insert an invoice under the next free number of (tenant, year).

        Args:
            tenant_id: Owning tenant.
            year: Issue year (UTC) that selects the number series.
            build: ``build(number) -> Invoice`` producing an unsaved row.

        Returns:
            The flushed Invoice.

        Raises:
            InvoiceNumberGenerationError: every attempt collided.
        """
        for attempt in range(1, self._max_attempts + 1):
            number = self.next_number(tenant_id, year)
            try:
                invoice = self._insert_in_savepoint(build(number))
            except IntegrityError:
                if not self._store.invoice_number_exists(tenant_id, number):
                    raise
                conflict = InvoiceNumberConflictError(tenant_id, number, attempt)
                logger.warning(
                    "invoice_number_conflict_retry",
                    extra={
                        "tenant_id": tenant_id,
                        "invoice_number": number,
                        "attempt": attempt,
                        "max_attempts": self._max_attempts,
                        "error_code": conflict.code,
                    },
                )
                if attempt < self._max_attempts:
                    self._backoff()
                continue

            logger.info(
                "invoice_number_allocated",
                extra={
                    "tenant_id": tenant_id,
                    "invoice_number": number,
                    "attempt": attempt,
                },
            )
            return invoice

        logger.error(
            "invoice_number_exhausted",
            extra={
                "tenant_id": tenant_id,
                "year": year,
                "attempts": self._max_attempts,
            },
        )
        raise InvoiceNumberGenerationError(tenant_id, year, self._max_attempts)

    def insert_with_number(self, invoice: Invoice) -> Invoice:
        """
        Insert an invoice carrying a caller-supplied number.

        Raises:
            DuplicateInvoiceNumberError: the number is already used by the
                tenant (checked up front and again on constraint violation).
        """
        if self._store.invoice_number_exists(invoice.tenant_id, invoice.number):
            raise DuplicateInvoiceNumberError(invoice.tenant_id, invoice.number)
        try:
            return self._insert_in_savepoint(invoice)
        except IntegrityError as exc:
            if self._store.invoice_number_exists(invoice.tenant_id, invoice.number):
                raise DuplicateInvoiceNumberError(
                    invoice.tenant_id, invoice.number
                ) from exc
            raise

    def _insert_in_savepoint(self, invoice: Invoice) -> Invoice:
        # A failed INSERT must not poison the caller's outer transaction.
        savepoint = self.session.begin_nested()
        try:
            self._store.insert_invoice(invoice)
        except IntegrityError:
            savepoint.rollback()
            raise
        savepoint.commit()
        return invoice

    def _backoff(self) -> None:
        if self._max_backoff_ms <= 0:
            return
        delay = self._rng.uniform(0, self._max_backoff_ms / 1000.0)
        self._sleep(delay)
