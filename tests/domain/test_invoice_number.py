"""Tests for invoice number formatting and sequence derivation."""

import pytest

from ledger_kernel.domain.invoice_number import (
    format_invoice_number,
    next_sequence,
    number_prefix,
    parse_sequence,
)
from ledger_kernel.exceptions import InvalidPeriodError


class TestFormat:

    def test_prefix(self):
        assert number_prefix(2025) == "FT-2025-"

    def test_zero_padded_to_three_digits(self):
        assert format_invoice_number(2025, 1) == "FT-2025-001"
        assert format_invoice_number(2025, 42) == "FT-2025-042"
        assert format_invoice_number(2025, 999) == "FT-2025-999"

    def test_grows_past_three_digits(self):
        assert format_invoice_number(2025, 1000) == "FT-2025-1000"

    def test_sequence_must_be_positive(self):
        with pytest.raises(ValueError):
            format_invoice_number(2025, 0)

    @pytest.mark.parametrize("year", [0, -1, 10000])
    def test_year_out_of_range(self, year):
        with pytest.raises(InvalidPeriodError):
            number_prefix(year)


class TestParseSequence:

    def test_parses_own_year(self):
        assert parse_sequence("FT-2025-007", 2025) == 7
        assert parse_sequence("FT-2025-1000", 2025) == 1000

    def test_other_year_ignored(self):
        assert parse_sequence("FT-2024-007", 2025) is None

    @pytest.mark.parametrize("number", ["FT-2025-A1", "FT-2025-", "FT-2025-1 2", "FT-2025-٣"])
    def test_non_numeric_suffix_ignored(self, number):
        assert parse_sequence(number, 2025) is None


class TestNextSequence:

    def test_empty_starts_at_one(self):
        assert next_sequence([], 2025) == 1

    def test_max_plus_one(self):
        assert next_sequence(["FT-2025-001", "FT-2025-002"], 2025) == 3

    def test_gap_not_filled(self):
        assert next_sequence(["FT-2025-001", "FT-2025-003"], 2025) == 4

    def test_numeric_not_lexical_max(self):
        # lexically "FT-2025-999" > "FT-2025-1000"
        assert next_sequence(["FT-2025-999", "FT-2025-1000"], 2025) == 1001

    def test_foreign_numbers_skipped(self):
        numbers = ["FT-2024-050", "FT-2025-MANUAL", "INV-9", "FT-2025-004"]
        assert next_sequence(numbers, 2025) == 5
