"""
Concurrent writers on a SQLite database file.

Each thread works through its own session and pooled connection on the same
file, as separate processes of a single-machine deployment would.  SQLite
allows one writer at a time; these tests check that competing invoice
creates and payments wait their turn and all land, rather than failing with
"database is locked" or overwriting each other's paid_amount.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from decimal import Decimal
from threading import Barrier, Lock

import pytest
from sqlalchemy.orm import Session, sessionmaker

from ledger_config import LedgerConfig, NumberingConfig
from ledger_kernel.db.engine import create_engine_from_url, create_tables
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.invoice_status import InvoiceStatus
from ledger_services.invoicing_service import InvoicingService

TENANT = "file-tenant"
CLOCK = DeterministicClock(datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc))
CONFIG = LedgerConfig(
    numbering=NumberingConfig(max_attempts=10, max_backoff_ms=20),
    require_invoice_customer=False,
)


@pytest.fixture
def file_sessions(tmp_path):
    """Factory of independent sessions on a fresh SQLite file."""
    engine = create_engine_from_url(f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}")
    create_tables(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    opened: list[Session] = []
    lock = Lock()

    def _open() -> Session:
        session = factory()
        with lock:
            opened.append(session)
        return session

    yield _open

    for session in opened:
        session.close()
    engine.dispose()


def _service(session, **kwargs) -> InvoicingService:
    return InvoicingService(session, clock=CLOCK, config=CONFIG, **kwargs)


def _run_together(num_threads, work):
    """Start ``work`` in every thread at once; return (results, errors)."""
    barrier = Barrier(num_threads, timeout=30)
    results: list = []
    errors: list[Exception] = []
    lock = Lock()

    def _worker():
        barrier.wait()
        try:
            value = work()
        except Exception as exc:
            with lock:
                errors.append(exc)
        else:
            with lock:
                results.append(value)

    with ThreadPoolExecutor(max_workers=num_threads) as executor:
        for future in [executor.submit(_worker) for _ in range(num_threads)]:
            future.result()
    return results, errors


class TestConcurrentNumberingOnFile:

    @pytest.mark.parametrize("num_threads", [2, 6])
    def test_creates_get_distinct_sequential_numbers(self, file_sessions, num_threads):
        numbers, errors = _run_together(
            num_threads,
            lambda: _service(file_sessions()).create_invoice(TENANT, None, "10.00").number,
        )

        assert errors == []
        assert sorted(numbers) == [f"FT-2025-{n:03d}" for n in range(1, num_threads + 1)]

    def test_every_invoice_persisted(self, file_sessions):
        _run_together(4, lambda: _service(file_sessions()).create_invoice(TENANT, None, "10.00"))

        stored = _service(file_sessions()).list_invoices(TENANT)
        assert len(stored) == 4
        assert len({i.number for i in stored}) == 4


class TestConcurrentPaymentsOnFile:

    def test_no_lost_update(self, file_sessions):
        invoice = _service(file_sessions()).create_invoice(TENANT, None, "1000.00")

        _, errors = _run_together(
            5,
            lambda: _service(file_sessions()).record_payment(TENANT, invoice.id, "100.00"),
        )

        assert errors == []
        reader = _service(file_sessions())
        final = reader.get_invoice(TENANT, invoice.id)
        payments = reader.list_payments_by_invoice(TENANT, invoice.id)
        assert len(payments) == 5
        assert final.paid_amount == sum(p.amount for p in payments) == Decimal("500.00")
        assert final.status is InvoiceStatus.PARTIAL

    def test_second_payer_waits_for_first_commit(self, file_sessions):
        invoice = _service(file_sessions()).create_invoice(TENANT, None, "1000.00")

        first_session = file_sessions()
        first = _service(first_session, auto_commit=False)
        first.record_payment(TENANT, invoice.id, "100.00")

        with ThreadPoolExecutor(max_workers=1) as executor:
            second = executor.submit(
                lambda: _service(file_sessions()).record_payment(TENANT, invoice.id, "200.00")
            )
            with pytest.raises(TimeoutError):
                second.result(timeout=0.3)

            first_session.commit()
            result = second.result(timeout=30)

        assert result.invoice.paid_amount == Decimal("300.00")
        final = _service(file_sessions()).get_invoice(TENANT, invoice.id)
        assert final.paid_amount == Decimal("300.00")
        assert final.status is InvoiceStatus.PARTIAL
