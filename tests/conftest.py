"""
Pytest fixtures for the invoicing ledger test suite.

Provides:
- A database engine and tables created once per test session
- Per-test sessions rolled back at teardown
- Deterministic clock, test configuration and service fixtures
- Structured log capture

Environment Variables:
- DATABASE_URL: SQLAlchemy URL of the test database.
  If not set, an in-memory SQLite database is used.  Tests marked
  ``postgres`` (true multi-connection races) are skipped unless the URL
  points at PostgreSQL.
"""

import json
import logging
import os
from datetime import datetime, timezone
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session

from ledger_config import LedgerConfig, NumberingConfig
from ledger_kernel.db.base import Base
from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.services.ledger_store import LedgerStore
from ledger_services.invoicing_service import InvoicingService
from ledger_services.reporting_service import ReportingService

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"

FIXED_NOW = datetime(2025, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, invoicing):
            invoicing.create_invoice(...)
            logs = captured_logs()
            assert any(r["message"] == "invoice_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Session-scoped DB infrastructure (create engine + tables ONCE per suite)
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end."""
    drop_tables(db_engine)
    create_tables(db_engine)
    yield
    drop_tables(db_engine)


@pytest.fixture(scope="session")
def is_postgres(db_engine) -> bool:
    return db_engine.dialect.name == "postgresql"


def _truncate_all_tables(engine):
    """Delete every row (children first).  Used after real-commit tests."""
    with engine.connect() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(text(f"DELETE FROM {table.name}"))
        conn.commit()


# =============================================================================
# Per-test session with automatic rollback
# =============================================================================


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    Uses the SQLAlchemy 2.0 ``join_transaction_block`` pattern:
    - Opens a dedicated connection with an outer transaction
    - Creates a session that *joins* the outer transaction
    - Any ``session.commit()`` inside the test releases a savepoint; it
      does NOT actually commit to the database
    - At teardown the outer transaction is rolled back, undoing ALL data
      changes made during the test
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


@pytest.fixture(scope="function")
def pg_session_factory(db_engine, db_tables, is_postgres):
    """
    Independent, really-committing sessions for multi-thread race tests.

    Each call returns a new session on its own pooled connection.  Rows are
    deleted at teardown.
    """
    if not is_postgres:
        pytest.skip("requires PostgreSQL (set DATABASE_URL)")

    sessions: list[Session] = []

    def _make() -> Session:
        sess = get_session()
        sessions.append(sess)
        return sess

    yield _make

    for sess in sessions:
        sess.close()
    _truncate_all_tables(db_engine)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def tenant_id() -> str:
    return TENANT_A


@pytest.fixture
def other_tenant_id() -> str:
    return TENANT_B


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock fixed at 2025-03-15 12:00 UTC."""
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def test_config() -> LedgerConfig:
    """Default settings without numbering backoff sleeps."""
    return LedgerConfig(numbering=NumberingConfig(max_attempts=10, max_backoff_ms=0))


@pytest.fixture
def store(session) -> LedgerStore:
    return LedgerStore(session)


@pytest.fixture
def invoicing(session, deterministic_clock, test_config) -> InvoicingService:
    return InvoicingService(session, clock=deterministic_clock, config=test_config)


@pytest.fixture
def reporting(session, deterministic_clock, test_config) -> ReportingService:
    return ReportingService(session, clock=deterministic_clock, config=test_config)


@pytest.fixture
def customer(invoicing, tenant_id):
    """A customer of TENANT_A."""
    return invoicing.create_customer(tenant_id, "Ayşe Yılmaz", company="Yılmaz Ltd")


@pytest.fixture
def make_invoice(invoicing, tenant_id, customer):
    """Factory creating invoices for TENANT_A's default customer."""

    def _make(amount="100.00", **kwargs):
        kwargs.setdefault("customer_id", customer.id)
        return invoicing.create_invoice(tenant_id, amount=amount, **kwargs)

    return _make
