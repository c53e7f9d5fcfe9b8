"""
Tests for LedgerStore.

Covers:
- Customer CRUD and the delete guard
- Tenant isolation on every read and write path
- Invoice deletion cascading to payments
- Expense CRUD and validation-before-mutation
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ledger_kernel.domain.invoice_status import InvoiceStatus
from ledger_kernel.exceptions import (
    CustomerHasInvoicesError,
    CustomerNotFoundError,
    ExpenseNotFoundError,
    InvalidAmountError,
    InvoiceNotFoundError,
    MissingFieldError,
)
from ledger_kernel.models.expense import Expense
from ledger_kernel.models.invoice import Invoice
from ledger_kernel.models.payment import Payment
from ledger_kernel.selectors.ledger_selector import LedgerSelector


def _invoice(store, tenant_id, number, amount="100.00", customer_id=None, issue=date(2025, 3, 1)):
    return store.insert_invoice(
        Invoice(
            tenant_id=tenant_id,
            number=number,
            customer_id=customer_id,
            amount=Decimal(amount),
            paid_amount=Decimal("0.00"),
            status=InvoiceStatus.UNPAID,
            issue_date=issue,
        )
    )


class TestCustomers:

    def test_add_and_get(self, store, tenant_id):
        customer = store.add_customer(tenant_id, "  Mehmet Demir ", company="Demir AŞ")
        loaded = store.get_customer(tenant_id, customer.id)
        assert loaded.name == "Mehmet Demir"
        assert loaded.company == "Demir AŞ"
        assert loaded.phone is None

    def test_name_required(self, store, tenant_id):
        with pytest.raises(MissingFieldError) as exc_info:
            store.add_customer(tenant_id, "  ")
        assert exc_info.value.field == "name"

    def test_tenant_required(self, store):
        with pytest.raises(MissingFieldError):
            store.add_customer("", "Mehmet Demir")

    def test_update_leaves_none_fields_unchanged(self, store, tenant_id):
        customer = store.add_customer(tenant_id, "Mehmet Demir", phone="555")
        store.update_customer(tenant_id, customer.id, email="m@example.com")
        assert customer.phone == "555"
        assert customer.email == "m@example.com"

    def test_update_blank_clears_optional_field(self, store, tenant_id):
        customer = store.add_customer(tenant_id, "Mehmet Demir", phone="555")
        store.update_customer(tenant_id, customer.id, phone="")
        assert customer.phone is None

    def test_list_is_tenant_scoped(self, store, session, tenant_id, other_tenant_id):
        store.add_customer(tenant_id, "A")
        store.add_customer(other_tenant_id, "B")
        assert [c.name for c in LedgerSelector(session).list_customers(tenant_id)] == ["A"]

    def test_delete_without_invoices(self, store, tenant_id):
        customer = store.add_customer(tenant_id, "Mehmet Demir")
        store.delete_customer(tenant_id, customer.id)
        with pytest.raises(CustomerNotFoundError):
            store.get_customer(tenant_id, customer.id)

    def test_delete_with_invoices_refused(self, store, tenant_id):
        customer = store.add_customer(tenant_id, "Mehmet Demir")
        _invoice(store, tenant_id, "FT-2025-001", customer_id=customer.id)
        _invoice(store, tenant_id, "FT-2025-002", customer_id=customer.id)

        with pytest.raises(CustomerHasInvoicesError) as exc_info:
            store.delete_customer(tenant_id, customer.id)

        assert exc_info.value.invoice_count == 2
        assert store.get_customer(tenant_id, customer.id) is customer


class TestTenantIsolation:
    """Rows of another tenant behave exactly like missing rows."""

    def test_foreign_customer_not_found(self, store, tenant_id, other_tenant_id):
        customer = store.add_customer(tenant_id, "Mehmet Demir")
        with pytest.raises(CustomerNotFoundError):
            store.get_customer(other_tenant_id, customer.id)
        with pytest.raises(CustomerNotFoundError):
            store.update_customer(other_tenant_id, customer.id, name="X")
        with pytest.raises(CustomerNotFoundError):
            store.delete_customer(other_tenant_id, customer.id)

    def test_foreign_invoice_not_found(self, store, tenant_id, other_tenant_id):
        invoice = _invoice(store, tenant_id, "FT-2025-001")
        with pytest.raises(InvoiceNotFoundError):
            store.get_invoice(other_tenant_id, invoice.id)
        with pytest.raises(InvoiceNotFoundError):
            store.delete_invoice(other_tenant_id, invoice.id)

    def test_foreign_expense_not_found(self, store, tenant_id, other_tenant_id):
        expense = store.add_expense(tenant_id, "Yakıt", "100.00", date(2025, 3, 1))
        with pytest.raises(ExpenseNotFoundError):
            store.get_expense(other_tenant_id, expense.id)
        with pytest.raises(ExpenseNotFoundError):
            store.delete_expense(other_tenant_id, expense.id)

    def test_same_number_allowed_in_two_tenants(self, store, tenant_id, other_tenant_id):
        _invoice(store, tenant_id, "FT-2025-001")
        _invoice(store, other_tenant_id, "FT-2025-001")
        assert store.invoice_number_exists(tenant_id, "FT-2025-001")
        assert store.invoice_number_exists(other_tenant_id, "FT-2025-001")

    def test_payments_scoped_through_invoice(self, store, session, tenant_id, other_tenant_id):
        mine = _invoice(store, tenant_id, "FT-2025-001")
        theirs = _invoice(store, other_tenant_id, "FT-2025-001")
        store.add_payment(mine, Decimal("10.00"), date(2025, 3, 2))
        store.add_payment(theirs, Decimal("20.00"), date(2025, 3, 2))

        selector = LedgerSelector(session)
        assert [p.amount for p in selector.list_payments(tenant_id)] == [Decimal("10.00")]
        assert selector.list_payments_by_invoice(other_tenant_id, mine.id) == []

    def test_missing_id_not_found(self, store, tenant_id):
        with pytest.raises(InvoiceNotFoundError):
            store.get_invoice(tenant_id, uuid4())


class TestInvoices:

    def test_duplicate_number_hits_constraint(self, store, tenant_id):
        _invoice(store, tenant_id, "FT-2025-001")
        with pytest.raises(IntegrityError):
            _invoice(store, tenant_id, "FT-2025-001")

    def test_numbers_with_prefix(self, store, tenant_id):
        _invoice(store, tenant_id, "FT-2025-001")
        _invoice(store, tenant_id, "FT-2024-009")
        _invoice(store, tenant_id, "MANUAL-1")
        assert store.invoice_numbers_with_prefix(tenant_id, "FT-2025-") == ["FT-2025-001"]

    def test_number_exists_excluding_self(self, store, tenant_id):
        invoice = _invoice(store, tenant_id, "FT-2025-001")
        assert not store.invoice_number_exists(
            tenant_id, "FT-2025-001", exclude_invoice_id=invoice.id
        )

    def test_delete_removes_payments(self, session, store, tenant_id):
        invoice = _invoice(store, tenant_id, "FT-2025-001", amount="1000.00")
        store.add_payment(invoice, Decimal("400.00"), date(2025, 3, 2))
        store.add_payment(invoice, Decimal("100.00"), date(2025, 3, 3))
        invoice_id = invoice.id

        removed = store.delete_invoice(tenant_id, invoice_id)

        assert removed == 2
        remaining = session.execute(
            select(func.count(Payment.id)).where(Payment.invoice_id == invoice_id)
        ).scalar_one()
        assert remaining == 0
        with pytest.raises(InvoiceNotFoundError):
            store.get_invoice(tenant_id, invoice_id)

    def test_delete_frees_customer(self, store, tenant_id):
        customer = store.add_customer(tenant_id, "Mehmet Demir")
        invoice = _invoice(store, tenant_id, "FT-2025-001", customer_id=customer.id)
        store.delete_invoice(tenant_id, invoice.id)
        store.delete_customer(tenant_id, customer.id)

    def test_sum_payments(self, store, tenant_id):
        invoice = _invoice(store, tenant_id, "FT-2025-001", amount="1000.00")
        assert store.sum_payments(invoice.id) == Decimal("0.00")
        store.add_payment(invoice, Decimal("0.10"), date(2025, 3, 2))
        store.add_payment(invoice, Decimal("0.20"), date(2025, 3, 2))
        assert store.sum_payments(invoice.id) == Decimal("0.30")


class TestExpenses:

    def test_add_parses_values(self, store, tenant_id):
        expense = store.add_expense(tenant_id, " Yakıt ", "150", "2025-03-05", "Benzin")
        assert expense.category == "Yakıt"
        assert expense.amount == Decimal("150.00")
        assert expense.date == date(2025, 3, 5)

    def test_invalid_amount_rejected(self, session, store, tenant_id):
        with pytest.raises(InvalidAmountError):
            store.add_expense(tenant_id, "Yakıt", "-5", date(2025, 3, 5))
        count = session.execute(select(func.count(Expense.id))).scalar_one()
        assert count == 0

    def test_update_validates_before_mutation(self, store, tenant_id):
        expense = store.add_expense(tenant_id, "Yakıt", "150.00", date(2025, 3, 5))
        with pytest.raises(InvalidAmountError):
            store.update_expense(tenant_id, expense.id, category="Ofis", amount="0")
        assert expense.category == "Yakıt"
        assert expense.amount == Decimal("150.00")

    def test_update_and_delete(self, store, session, tenant_id):
        expense = store.add_expense(tenant_id, "Yakıt", "150.00", date(2025, 3, 5))
        store.update_expense(tenant_id, expense.id, amount="175.50", expense_date="2025-03-06")
        assert expense.amount == Decimal("175.50")
        assert expense.date == date(2025, 3, 6)

        store.delete_expense(tenant_id, expense.id)
        assert LedgerSelector(session).list_expenses(tenant_id) == []
