"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The API layer that sits on top of this core must map failures to distinct
responses (400 / 404 / 409 / 500) without parsing message strings.  Every
error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example - WRONG way to handle errors:
    try:
        invoicing.delete_customer(tenant_id, customer_id)
    except Exception as e:
        if "invoices" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way:
    try:
        invoicing.delete_customer(tenant_id, customer_id)
    except CustomerHasInvoicesError as e:
        api_response(400, code=e.code, invoice_count=e.invoice_count)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- ValidationError                 caller-fixable, raised before mutation
    |   +-- InvalidAmountError
    |   +-- InvalidDateError
    |   +-- InvalidReferenceError
    |   +-- MissingFieldError
    |   +-- InvalidPeriodError
    |   +-- DuplicateInvoiceNumberError
    |   +-- OverpaymentError
    |
    +-- NotFoundError                   absent OR owned by another tenant
    |   +-- CustomerNotFoundError
    |   +-- InvoiceNotFoundError
    |   +-- ExpenseNotFoundError
    |
    +-- ConcurrencyError
    |   +-- InvoiceNumberConflictError  retried internally
    |   +-- InvoiceNumberGenerationError  retries exhausted (fatal)
    |
    +-- DomainRuleError
        +-- CustomerHasInvoicesError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                          | When Raised
-------------|-------------------------------|-----------------------------------
Validation   | INVALID_AMOUNT                | Amount missing, <= 0, > 2 decimals
             | INVALID_DATE                  | Unparseable date value
             | INVALID_REFERENCE             | Malformed entity id
             | MISSING_FIELD                 | Required field empty
             | INVALID_PERIOD                | Month outside 1..12, bad year
             | DUPLICATE_INVOICE_NUMBER      | Explicit number already used
             | OVERPAYMENT_REJECTED          | Payment exceeds open balance
-------------|-------------------------------|-----------------------------------
Not found    | CUSTOMER_NOT_FOUND            | Customer absent / other tenant
             | INVOICE_NOT_FOUND             | Invoice absent / other tenant
             | EXPENSE_NOT_FOUND             | Expense absent / other tenant
-------------|-------------------------------|-----------------------------------
Concurrency  | INVOICE_NUMBER_CONFLICT       | Generated number collided
             | INVOICE_NUMBER_UNAVAILABLE    | Collisions exhausted all attempts
-------------|-------------------------------|-----------------------------------
Domain rule  | CUSTOMER_HAS_INVOICES         | Deleting a customer with invoices

Database failures (``sqlalchemy.exc.*``) are NOT wrapped; they propagate to
the caller unchanged.
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Validation errors


class ValidationError(LedgerKernelError):
    """Base exception for caller-fixable input errors."""

    code: str = "VALIDATION_ERROR"


class InvalidAmountError(ValidationError):
    """Monetary amount is missing, non-positive or malformed."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid {field} '{value}': {reason}")


class InvalidDateError(ValidationError):
    """Date value cannot be interpreted as a calendar date."""

    code: str = "INVALID_DATE"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = str(value)
        super().__init__(f"Invalid {field}: '{value}' is not a valid date")


class InvalidReferenceError(ValidationError):
    """Entity reference is not a well-formed identifier."""

    code: str = "INVALID_REFERENCE"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = str(value)
        super().__init__(f"Invalid {field}: '{value}' is not a valid id")


class MissingFieldError(ValidationError):
    """A required field is missing or blank."""

    code: str = "MISSING_FIELD"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required field: {field}")


class InvalidPeriodError(ValidationError):
    """Reporting period is out of range."""

    code: str = "INVALID_PERIOD"

    def __init__(self, year: int | None, month: int | None):
        self.year = year
        self.month = month
        super().__init__(f"Invalid reporting period: year={year}, month={month}")


class DuplicateInvoiceNumberError(ValidationError):
    """Caller-supplied invoice number is already used by the tenant."""

    code: str = "DUPLICATE_INVOICE_NUMBER"

    def __init__(self, tenant_id: str, number: str):
        self.tenant_id = tenant_id
        self.number = number
        super().__init__(f"Invoice number {number} already exists")


class OverpaymentError(ValidationError):
    """Payment would push paid_amount beyond the invoice amount."""

    code: str = "OVERPAYMENT_REJECTED"

    def __init__(self, invoice_id: str, amount: str, remaining: str):
        self.invoice_id = invoice_id
        self.amount = amount
        self.remaining = remaining
        super().__init__(
            f"Payment of {amount} exceeds remaining balance {remaining} "
            f"on invoice {invoice_id}"
        )


# Not-found errors


class NotFoundError(LedgerKernelError):
    """
    Base exception for missing records.

    Also raised when the record exists but belongs to another tenant, so
    that existence is never leaked across tenants.
    """

    code: str = "NOT_FOUND"


class CustomerNotFoundError(NotFoundError):
    """Customer with given ID was not found for the tenant."""

    code: str = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id: str):
        self.customer_id = customer_id
        super().__init__(f"Customer not found: {customer_id}")


class InvoiceNotFoundError(NotFoundError):
    """Invoice with given ID was not found for the tenant."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


class ExpenseNotFoundError(NotFoundError):
    """Expense with given ID was not found for the tenant."""

    code: str = "EXPENSE_NOT_FOUND"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")


# Concurrency errors


class ConcurrencyError(LedgerKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class InvoiceNumberConflictError(ConcurrencyError):
    """
    A generated invoice number collided with a concurrent insert.

    Retryable: the numbering service absorbs this and tries again.
    """

    code: str = "INVOICE_NUMBER_CONFLICT"

    def __init__(self, tenant_id: str, number: str, attempt: int):
        self.tenant_id = tenant_id
        self.number = number
        self.attempt = attempt
        super().__init__(
            f"Invoice number {number} collided on attempt {attempt}"
        )


class InvoiceNumberGenerationError(ConcurrencyError):
    """Retries exhausted without finding a free invoice number."""

    code: str = "INVOICE_NUMBER_UNAVAILABLE"

    def __init__(self, tenant_id: str, year: int, attempts: int):
        self.tenant_id = tenant_id
        self.year = year
        self.attempts = attempts
        super().__init__(
            f"Unable to generate unique invoice number for {year} "
            f"after {attempts} attempts"
        )


# Domain-rule errors


class DomainRuleError(LedgerKernelError):
    """Base exception for business-rule violations."""

    code: str = "DOMAIN_RULE_VIOLATION"


class CustomerHasInvoicesError(DomainRuleError):
    """Customer cannot be deleted while invoices reference it."""

    code: str = "CUSTOMER_HAS_INVOICES"

    def __init__(self, customer_id: str, invoice_count: int):
        self.customer_id = customer_id
        self.invoice_count = invoice_count
        super().__init__(
            f"Customer {customer_id} cannot be deleted: "
            f"{invoice_count} invoice(s) reference it"
        )
