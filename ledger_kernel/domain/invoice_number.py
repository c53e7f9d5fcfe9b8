"""
Invoice number format: ``FT-<YYYY>-<seq>``.

The sequence is zero-padded to at least three digits and is never re-padded
once it outgrows them, so ``FT-2025-999`` is followed by ``FT-2025-1000``.
Numbers sort numerically by the parsed suffix, not lexically.
"""

from ledger_kernel.exceptions import InvalidPeriodError

PREFIX = "FT"
SEPARATOR = "-"
MIN_DIGITS = 3


def number_prefix(year: int) -> str:
    """Prefix shared by every number of ``year`` (``FT-2025-``)."""
    if year < 1 or year > 9999:
        raise InvalidPeriodError(year, None)
    return f"{PREFIX}{SEPARATOR}{year:04d}{SEPARATOR}"


def format_invoice_number(year: int, sequence: int) -> str:
    """Render ``sequence`` of ``year`` as a display number."""
    if sequence < 1:
        raise ValueError(f"Invoice sequence must be positive, got {sequence}")
    return f"{number_prefix(year)}{sequence:0{MIN_DIGITS}d}"


def parse_sequence(number: str, year: int) -> int | None:
    """
    Extract the numeric suffix of ``number`` for ``year``.

    Returns None for numbers of another year and for non-numeric suffixes
    (hand-typed numbers such as ``FT-2025-A1``), which take no part in
    sequence derivation.
    """
    prefix = number_prefix(year)
    if not number.startswith(prefix):
        return None
    suffix = number[len(prefix):]
    if not suffix.isascii() or not suffix.isdigit():
        return None
    return int(suffix)


def next_sequence(numbers, year: int) -> int:
    """``max + 1`` over the parseable sequences of ``year``, or 1 if none."""
    sequences = [
        seq for seq in (parse_sequence(n, year) for n in numbers) if seq is not None
    ]
    return max(sequences, default=0) + 1
