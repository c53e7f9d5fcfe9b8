"""
Value normalization for money, dates and identifiers.

Responsibility:
    Turns loosely-typed caller input (str / int / Decimal / date / datetime)
    into the canonical kernel representation, raising typed validation
    errors BEFORE any store mutation happens.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - Money is ``Decimal`` with exactly two places; float is never stored.
    - Calendar dates are extracted in UTC.  Aware datetimes are converted to
      UTC first, naive datetimes are taken to already be UTC.  This is the
      only place month/day boundaries are decided.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from uuid import UUID

from ledger_kernel.exceptions import (
    InvalidAmountError,
    InvalidDateError,
    InvalidReferenceError,
    MissingFieldError,
)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
# Largest value a Numeric(12, 2) column holds.
MAX_AMOUNT = Decimal("9999999999.99")


def quantize_money(value: Decimal) -> Decimal:
    """Round-trip a Decimal to two places without changing its value."""
    return value.quantize(CENT)


def parse_amount(value: object, field: str = "amount") -> Decimal:
    """
    Parse a strictly positive two-place monetary amount.

    Raises:
        InvalidAmountError: if the value is missing, a float, not a finite
            number, has more than two decimal places, or is not > 0.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidAmountError(field, value, "amount is required")
    if isinstance(value, bool):
        raise InvalidAmountError(field, value, "not a number")
    if isinstance(value, float):
        raise InvalidAmountError(field, value, "float amounts are not accepted")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidAmountError(field, value, "not a number") from None

    if not amount.is_finite():
        raise InvalidAmountError(field, value, "not a finite number")
    if abs(amount) > MAX_AMOUNT:
        raise InvalidAmountError(field, value, "exceeds the maximum amount")
    if amount != amount.quantize(CENT):
        raise InvalidAmountError(field, value, "more than two decimal places")
    if amount <= 0:
        raise InvalidAmountError(field, value, "must be greater than zero")
    return quantize_money(amount)


def to_utc_date(value: object, field: str = "date") -> date:
    """
    Normalize a date-like value to a UTC calendar date.

    Accepts ``date``, ``datetime`` (aware or naive-as-UTC) and ISO-8601
    strings (``2025-03-01`` or ``2025-03-01T23:30:00+03:00``).

    Raises:
        InvalidDateError: if the value cannot be interpreted.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            if "T" in text or " " in text:
                return to_utc_date(datetime.fromisoformat(text), field)
            return date.fromisoformat(text)
        except ValueError:
            raise InvalidDateError(field, value) from None
    raise InvalidDateError(field, value)


def optional_utc_date(value: object, field: str) -> date | None:
    """Like to_utc_date() but passes None and blank strings through as None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_utc_date(value, field)


def coerce_id(value: object, field: str) -> UUID:
    """
    Parse an entity id.

    Raises:
        MissingFieldError: if the id is missing.
        InvalidReferenceError: if the id is not a UUID.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingFieldError(field)
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except ValueError:
        raise InvalidReferenceError(field, value) from None


def require_text(value: object, field: str) -> str:
    """Return the stripped text, raising MissingFieldError when blank."""
    if value is None or not str(value).strip():
        raise MissingFieldError(field)
    return str(value).strip()


def optional_text(value: object) -> str | None:
    """Return stripped text, or None for missing/blank input."""
    if value is None or not str(value).strip():
        return None
    return str(value).strip()
