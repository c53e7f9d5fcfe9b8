"""
Tests for InvoiceNumberingService.

Covers:
- FT-YYYY-NNN sequencing per tenant and per year
- Derivation from persisted rows (restart after deletion, gaps not reused)
- Collision retry and exhaustion, simulated on one connection by making
  the derivation step return a stale value
- Caller-supplied numbers
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from ledger_kernel.domain.invoice_status import InvoiceStatus
from ledger_kernel.exceptions import (
    DuplicateInvoiceNumberError,
    InvoiceNumberGenerationError,
)
from ledger_kernel.models.invoice import Invoice
from ledger_kernel.services.invoice_numbering import InvoiceNumberingService


def _builder(tenant_id, issue=date(2025, 3, 1), amount="100.00"):
    def build(number):
        return Invoice(
            tenant_id=tenant_id,
            number=number,
            amount=Decimal(amount),
            paid_amount=Decimal("0.00"),
            status=InvoiceStatus.UNPAID,
            issue_date=issue,
        )

    return build


@pytest.fixture
def numbering(session):
    return InvoiceNumberingService(session, max_backoff_ms=0)


class TestSequencing:

    def test_first_number_of_year(self, numbering, tenant_id):
        invoice = numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
        assert invoice.number == "FT-2025-001"

    def test_sequential_numbers(self, numbering, tenant_id):
        numbers = [
            numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id)).number
            for _ in range(3)
        ]
        assert numbers == ["FT-2025-001", "FT-2025-002", "FT-2025-003"]

    def test_series_per_tenant(self, numbering, tenant_id, other_tenant_id):
        numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
        numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
        other = numbering.create_numbered_invoice(
            other_tenant_id, 2025, _builder(other_tenant_id)
        )
        assert other.number == "FT-2025-001"

    def test_series_per_year(self, numbering, tenant_id):
        numbering.create_numbered_invoice(tenant_id, 2024, _builder(tenant_id, date(2024, 12, 31)))
        numbering.create_numbered_invoice(tenant_id, 2024, _builder(tenant_id, date(2024, 12, 31)))
        first_2025 = numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
        assert first_2025.number == "FT-2025-001"

    def test_next_number_does_not_reserve(self, numbering, tenant_id):
        assert numbering.next_number(tenant_id, 2025) == "FT-2025-001"
        assert numbering.next_number(tenant_id, 2025) == "FT-2025-001"

    def test_padding_grows_past_999(self, session, numbering, tenant_id, store):
        store.insert_invoice(_builder(tenant_id)("FT-2025-999"))
        invoice = numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
        assert invoice.number == "FT-2025-1000"
        assert numbering.next_number(tenant_id, 2025) == "FT-2025-1001"

    def test_manual_numbers_ignored(self, numbering, store, tenant_id):
        store.insert_invoice(_builder(tenant_id)("FT-2025-EK"))
        invoice = numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
        assert invoice.number == "FT-2025-001"


class TestDerivedFromRows:
    """There is no counter: the next number depends only on existing rows."""

    def test_restarts_after_all_deleted(self, numbering, store, tenant_id):
        for _ in range(3):
            invoice = numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
            store.delete_invoice(tenant_id, invoice.id)
        assert numbering.next_number(tenant_id, 2025) == "FT-2025-001"

    def test_gap_not_reused(self, numbering, store, tenant_id):
        created = [
            numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
            for _ in range(3)
        ]
        store.delete_invoice(tenant_id, created[1].id)
        invoice = numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
        assert invoice.number == "FT-2025-004"

    def test_deleting_highest_reissues_it(self, numbering, store, tenant_id):
        created = [
            numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
            for _ in range(2)
        ]
        store.delete_invoice(tenant_id, created[-1].id)
        assert numbering.next_number(tenant_id, 2025) == "FT-2025-002"


class TestCollisionRetry:
    """
    A concurrent creator is simulated by forcing the derivation step to
    return a sequence that is already taken.
    """

    def test_retries_after_collision(self, numbering, tenant_id, monkeypatch, captured_logs):
        numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))

        real_derive = InvoiceNumberingService._derive_sequence
        calls = {"n": 0}

        def stale_once(self, tenant, year):
            calls["n"] += 1
            if calls["n"] == 1:
                return 1
            return real_derive(self, tenant, year)

        monkeypatch.setattr(InvoiceNumberingService, "_derive_sequence", stale_once)

        invoice = numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))

        assert invoice.number == "FT-2025-002"
        assert calls["n"] == 2
        logs = captured_logs()
        retries = [r for r in logs if r["message"] == "invoice_number_conflict_retry"]
        assert len(retries) == 1
        assert retries[0]["invoice_number"] == "FT-2025-001"
        assert retries[0]["error_code"] == "INVOICE_NUMBER_CONFLICT"

    def test_collision_does_not_poison_outer_transaction(
        self, session, numbering, store, tenant_id, monkeypatch
    ):
        earlier = store.add_customer(tenant_id, "Önceki Müşteri")
        numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))

        real_derive = InvoiceNumberingService._derive_sequence
        calls = {"n": 0}

        def stale_once(self, tenant, year):
            calls["n"] += 1
            return 1 if calls["n"] == 1 else real_derive(self, tenant, year)

        monkeypatch.setattr(InvoiceNumberingService, "_derive_sequence", stale_once)
        numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))

        # work flushed before the collision survives
        assert store.get_customer(tenant_id, earlier.id).name == "Önceki Müşteri"
        assert sorted(store.invoice_numbers_with_prefix(tenant_id, "FT-2025-")) == [
            "FT-2025-001",
            "FT-2025-002",
        ]

    def test_exhaustion_raises(self, numbering, tenant_id, monkeypatch, captured_logs):
        numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
        monkeypatch.setattr(
            InvoiceNumberingService, "_derive_sequence", lambda self, tenant, year: 1
        )

        with pytest.raises(InvoiceNumberGenerationError) as exc_info:
            numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))

        assert exc_info.value.attempts == 10
        assert exc_info.value.code == "INVOICE_NUMBER_UNAVAILABLE"
        logs = captured_logs()
        assert len([r for r in logs if r["message"] == "invoice_number_conflict_retry"]) == 10
        assert any(r["message"] == "invoice_number_exhausted" for r in logs)

    def test_backoff_jitter_below_limit(self, session, tenant_id, monkeypatch):
        sleeps = []
        service = InvoiceNumberingService(session, max_attempts=3, sleep=sleeps.append)
        service.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
        monkeypatch.setattr(
            InvoiceNumberingService, "_derive_sequence", lambda self, tenant, year: 1
        )

        with pytest.raises(InvoiceNumberGenerationError):
            service.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))

        # no sleep after the final attempt
        assert len(sleeps) == 2
        assert all(0 <= s <= 0.1 for s in sleeps)

    def test_other_integrity_errors_propagate(self, numbering, tenant_id):
        def build(number):
            invoice = _builder(tenant_id)(number)
            invoice.amount = Decimal("-1.00")
            return invoice

        with pytest.raises(IntegrityError):
            numbering.create_numbered_invoice(tenant_id, 2025, build)

    @pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"max_backoff_ms": -1}])
    def test_invalid_settings(self, session, kwargs):
        with pytest.raises(ValueError):
            InvoiceNumberingService(session, **kwargs)


class TestExplicitNumber:

    def test_explicit_number_used_verbatim(self, numbering, tenant_id):
        invoice = numbering.insert_with_number(_builder(tenant_id)("2025/OZEL-7"))
        assert invoice.number == "2025/OZEL-7"

    def test_duplicate_explicit_number(self, numbering, tenant_id):
        numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
        with pytest.raises(DuplicateInvoiceNumberError) as exc_info:
            numbering.insert_with_number(_builder(tenant_id)("FT-2025-001"))
        assert exc_info.value.number == "FT-2025-001"

    def test_explicit_number_feeds_sequence(self, numbering, tenant_id):
        numbering.insert_with_number(_builder(tenant_id)("FT-2025-010"))
        invoice = numbering.create_numbered_invoice(tenant_id, 2025, _builder(tenant_id))
        assert invoice.number == "FT-2025-011"
