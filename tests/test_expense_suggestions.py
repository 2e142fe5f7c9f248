"""Tests for recurring expense detection from bank transactions."""

from datetime import datetime, timezone

import pytest

from backoffice.domain.enums import CostType
from backoffice.domain.models import BankTransaction, OperatingCost, SuggestionDismissal
from backoffice.finance.expense_suggestions import (
    coefficient_of_variation,
    compute_confidence,
    detect_recurring_expenses,
    is_hidden,
    is_within_variance,
    map_subtype_to_cost_type,
)

NOW = datetime(2024, 4, 15, tzinfo=timezone.utc)


def _txn(day, cents, payee, subtype=None, account_name=None):
    return BankTransaction(
        transaction_date=day,
        description=f"ACH {payee}",
        amount_cents=-cents,
        normalized_payee=payee,
        account_subtype=subtype,
        account_name=account_name,
    )


@pytest.fixture
def transactions():
    return [
        _txn("2024-01-01", 250_000, "Landlord LLC", "rent"),
        _txn("2024-02-01", 250_000, "Landlord LLC", "rent"),
        _txn("2024-03-01", 250_000, "Landlord LLC", "rent"),
        _txn("2024-01-20", 10_000, "Power Co", "utilities"),
        _txn("2024-02-20", 12_000, "Power Co", "utilities"),
        _txn("2024-01-05", 1_000, "Hardware Store", None, "Repairs"),
        _txn("2024-02-05", 5_000, "Hardware Store", None, "Repairs"),
        _txn("2024-03-09", 8_000, "Caterer", None),
    ]


class TestHelpers:
    def test_within_variance(self):
        assert is_within_variance([10_000, 12_000])
        assert not is_within_variance([1_000, 5_000])
        assert not is_within_variance([])

    def test_cv(self):
        assert coefficient_of_variation([5]) == 0.0
        assert coefficient_of_variation([10_000, 12_000]) == pytest.approx(1 / 11)

    def test_confidence(self):
        assert compute_confidence(2, 0) == pytest.approx(0.6)
        assert compute_confidence(4, 0) == pytest.approx(1.0)
        assert compute_confidence(2, 0.9) == pytest.approx(0.3)

    def test_cost_type(self):
        assert map_subtype_to_cost_type("rent") == CostType.FIXED
        assert map_subtype_to_cost_type("utilities") == CostType.SEMI_VARIABLE
        assert map_subtype_to_cost_type(None) == CostType.CUSTOM


class TestDetectRecurringExpenses:
    def test_suggestions(self, transactions):
        suggestions = detect_recurring_expenses(transactions, now=NOW)
        assert [s.payee_name for s in suggestions] == ["Landlord LLC", "Power Co"]

        rent, power = suggestions
        assert rent.id == "landlord llc:rent"
        assert rent.suggested_name == "Rent / Lease"
        assert rent.cost_type == CostType.FIXED
        assert rent.monthly_amount == 250_000
        assert rent.matched_months == 3
        assert rent.confidence == pytest.approx(0.8)

        assert power.monthly_amount == 11_000
        assert power.confidence == pytest.approx(0.6 - 1 / 11)
        assert power.to_dict()["cost_type"] == "semi_variable"

    def test_already_tracked(self, transactions):
        costs = [OperatingCost("Landlord LLC lease", category="occupancy")]
        suggestions = detect_recurring_expenses(transactions, costs, now=NOW)
        assert [s.payee_name for s in suggestions] == ["Power Co"]

    def test_tracked_by_category(self, transactions):
        costs = [OperatingCost("Electric", category="utilities")]
        suggestions = detect_recurring_expenses(transactions, costs, now=NOW)
        assert [s.payee_name for s in suggestions] == ["Landlord LLC"]

    def test_dismissed_and_snoozed(self, transactions):
        dismissals = [
            SuggestionDismissal("landlord llc:rent", "dismissed"),
            SuggestionDismissal("power co:utilities", "snoozed", datetime(2024, 5, 1, tzinfo=timezone.utc)),
        ]
        assert detect_recurring_expenses(transactions, dismissals=dismissals, now=NOW) == []

    def test_expired_snooze_shows_again(self, transactions):
        dismissals = [SuggestionDismissal("power co:utilities", "snoozed", "2024-04-01T00:00:00Z")]
        suggestions = detect_recurring_expenses(transactions, dismissals=dismissals, now=NOW)
        assert "Power Co" in [s.payee_name for s in suggestions]

    def test_empty(self):
        assert detect_recurring_expenses([]) == []


class TestIsHidden:
    def test_snooze_without_date_hides(self):
        assert is_hidden(SuggestionDismissal("k", "snoozed"), NOW)

    def test_accepted_hides(self):
        assert is_hidden(SuggestionDismissal("k", "accepted"), NOW)
