"""Tests for check amount wording."""

import pytest

from backoffice.finance.checks import (
    build_city_state_zip,
    cents_to_words,
    format_check_amount,
    integer_to_words,
    number_to_words,
)


class TestNumberToWords:
    @pytest.mark.parametrize("amount, expected", [
        (0, "Zero and 00/100"),
        (0.05, "Zero and 05/100"),
        (100, "One Hundred and 00/100"),
        (1234.56, "One Thousand Two Hundred Thirty-Four and 56/100"),
        (19.99, "Nineteen and 99/100"),
        (-42.5, "Forty-Two and 50/100"),
    ])
    def test_amounts(self, amount, expected):
        assert number_to_words(amount) == expected

    def test_millions(self):
        assert integer_to_words(1_234_567) == (
            "One Million Two Hundred Thirty-Four Thousand Five Hundred Sixty-Seven"
        )

    def test_round_thousands(self):
        assert integer_to_words(2_000_000) == "Two Million"
        assert integer_to_words(15_000) == "Fifteen Thousand"

    def test_cents(self):
        assert cents_to_words(250_075) == "Two Thousand Five Hundred and 75/100"

    def test_format_amount(self):
        assert format_check_amount(250_075) == "$2,500.75"


class TestCityStateZip:
    def test_full(self):
        settings = {"business_city": "Austin", "business_state": "TX", "business_zip": "78701"}
        assert build_city_state_zip(settings) == "Austin, TX 78701"

    def test_partial(self):
        assert build_city_state_zip({"business_city": "Austin", "business_zip": "78701"}) == "Austin 78701"
        assert build_city_state_zip({}) == ""
