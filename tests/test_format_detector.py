"""Tests for CSV format detection."""

import pytest

from transaction_linker.parsers.format_detector import (
    FORMAT_SIGNATURES,
    CSVFormat,
    calculate_match_score,
    detect_format,
    get_format_name,
    has_column,
    normalize_header,
    score_formats,
)


class TestNormalizeHeader:
    """Tests for normalize_header."""

    def test_separators_become_spaces(self) -> None:
        """Test that underscores, hyphens and dots become spaces."""
        assert normalize_header("  Transaction_Date ") == "transaction date"
        assert normalize_header("Post-Date") == "post date"
        assert normalize_header("Amt.  Paid") == "amt paid"


class TestHasColumn:
    """Tests for has_column."""

    def test_substring_match(self) -> None:
        """Test that patterns match as substrings."""
        assert has_column(["order date"], "date") is True

    def test_alternatives(self) -> None:
        """Test that "|" separates alternatives."""
        assert has_column(["balance"], "debit|credit|balance") is True
        assert has_column(["memo"], "debit|credit|balance") is False


class TestDetectFormat:
    """Tests for detect_format."""

    def test_amazon_headers(self) -> None:
        """Test detection of Amazon order history."""
        headers = ["order id", "order date", "price", "ASIN", "category"]
        assert detect_format(headers) == CSVFormat.AMAZON

    def test_bank_statement_headers(self) -> None:
        """Test detection of a bank statement."""
        assert detect_format(["date", "debit", "credit", "balance"]) == CSVFormat.BANK_STATEMENT

    def test_chase_headers(self) -> None:
        """Test detection of a Chase credit card export."""
        headers = ["Transaction Date", "Post Date", "Description", "Category", "Type", "Amount", "Memo"]
        assert detect_format(headers) == CSVFormat.CHASE_CREDIT_CARD

    def test_credit_card_headers(self) -> None:
        """Test detection of a generic card statement."""
        assert detect_format(["Date", "Merchant", "Amount"]) == CSVFormat.CREDIT_CARD

    def test_generic_headers(self) -> None:
        """Test that date and amount alone give the generic format."""
        assert detect_format(["Date", "Amount", "Notes"]) == CSVFormat.GENERIC

    @pytest.mark.parametrize("headers", [[], ["foo", "bar"], [""]])
    def test_fallback_is_generic(self, headers: list[str]) -> None:
        """Test that unrecognized or empty headers fall back to generic."""
        assert detect_format(headers) == CSVFormat.GENERIC

    def test_score_formula(self) -> None:
        """Test the score for a full match of required and optional columns."""
        headers = [normalize_header(h) for h in ["date", "debit", "credit", "balance"]]
        score = calculate_match_score(headers, FORMAT_SIGNATURES[CSVFormat.BANK_STATEMENT])
        assert score == 1000 + 200 * 2 - 100 * 2

    def test_missing_required_scores_zero(self) -> None:
        """Test that a missing required column scores zero."""
        headers = [normalize_header(h) for h in ["amount", "memo"]]
        assert calculate_match_score(headers, FORMAT_SIGNATURES[CSVFormat.GENERIC]) == 0

    def test_score_formats_is_sorted(self) -> None:
        """Test that the score table is best first."""
        scores = score_formats(["date", "debit", "credit", "balance"])
        assert scores[0][0] == CSVFormat.BANK_STATEMENT
        assert [s for _, s in scores] == sorted((s for _, s in scores), reverse=True)
        assert len(scores) == len(FORMAT_SIGNATURES)

    def test_format_names(self) -> None:
        """Test that every format has a display name."""
        for fmt in CSVFormat:
            assert get_format_name(fmt)
