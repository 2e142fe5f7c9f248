"""
backoffice.finance.expense_suggestions — Recurring expenses found in bank activity.

A payee becomes a suggestion when it was paid in at least two calendar
months and every monthly total is within 20% of the mean.  Suggestions the
owner already tracks as an operating cost, dismissed, accepted or is still
snoozing are dropped.  The rest are returned most confident first.
"""

from __future__ import annotations

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from backoffice.core.constants import (
    EXPENSE_AMOUNT_TOLERANCE,
    EXPENSE_BASE_CONFIDENCE,
    EXPENSE_CONFIDENCE_PER_MONTH,
    EXPENSE_MAX_CV_PENALTY,
    EXPENSE_MIN_MONTHS,
)
from backoffice.core.utils import clamp, round_half_up, to_utc
from backoffice.domain.enums import CostType, SuggestionStatus
from backoffice.domain.models import BankTransaction, OperatingCost, SuggestionDismissal

logger = logging.getLogger(__name__)

SUBTYPE_COST_TYPES = {
    "rent": CostType.FIXED,
    "insurance": CostType.FIXED,
    "utilities": CostType.SEMI_VARIABLE,
    "subscriptions": CostType.FIXED,
    "software": CostType.FIXED,
}

SUBTYPE_NAMES = {
    "rent": "Rent / Lease",
    "insurance": "Insurance",
    "utilities": "Utilities",
    "subscriptions": "Subscription",
    "software": "Software / SaaS",
}


@dataclass
class ExpenseSuggestion:
    id: str
    payee_name: str
    suggested_name: str
    cost_type: CostType
    monthly_amount: int
    confidence: float
    matched_months: int
    source: str = "bank"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "payee_name": self.payee_name,
            "suggested_name": self.suggested_name,
            "cost_type": self.cost_type.value,
            "monthly_amount": self.monthly_amount,
            "confidence": self.confidence,
            "matched_months": self.matched_months,
            "source": self.source,
        }


def map_subtype_to_cost_type(subtype: Optional[str]) -> CostType:
    if not subtype:
        return CostType.CUSTOM
    return SUBTYPE_COST_TYPES.get(subtype, CostType.CUSTOM)


def suggested_name_for_subtype(subtype: Optional[str], account_name: Optional[str]) -> str:
    if subtype and subtype in SUBTYPE_NAMES:
        return SUBTYPE_NAMES[subtype]
    return account_name or "Other Expense"


def is_within_variance(values: Sequence[float], threshold: float = EXPENSE_AMOUNT_TOLERANCE) -> bool:
    """True when every value is within *threshold* (a fraction) of the mean."""
    if not values:
        return False
    mean = sum(values) / len(values)
    if mean == 0:
        return False
    return all(abs(v - mean) / mean <= threshold for v in values)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population standard deviation over mean; 0 for fewer than two values."""
    if len(values) <= 1:
        return 0.0
    mean = sum(values) / len(values)
    if mean == 0:
        return 0.0
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance) / mean


def compute_confidence(matched_months: int, cv: float) -> float:
    """0.6 for two months, +0.2 per extra month, minus the CV (capped at 0.3); clamped to [0, 1]."""
    bonus = max(0, (matched_months - EXPENSE_MIN_MONTHS) * EXPENSE_CONFIDENCE_PER_MONTH)
    penalty = min(cv, EXPENSE_MAX_CV_PENALTY)
    return clamp(EXPENSE_BASE_CONFIDENCE + bonus - penalty, 0.0, 1.0)


def suggestion_key(payee: str, subtype: Optional[str]) -> str:
    return f"{payee.lower()}:{subtype or 'custom'}"


def is_already_tracked(suggestion: ExpenseSuggestion, costs: Sequence[OperatingCost]) -> bool:
    """Match on category (the account subtype) or on either name containing the other."""
    subtype = suggestion.id.rsplit(":", 1)[-1] if ":" in suggestion.id else ""
    payee = suggestion.payee_name.lower()
    for cost in costs:
        name = (cost.name or "").lower()
        if subtype and subtype != "custom" and (cost.category or "").lower() == subtype.lower():
            return True
        if payee in name:
            return True
        if name and name in payee:
            return True
    return False


def is_hidden(dismissal: SuggestionDismissal, now: Optional[datetime] = None) -> bool:
    """Dismissed and accepted suggestions stay hidden; snoozed ones until ``snoozed_until``."""
    if dismissal.action in (SuggestionStatus.DISMISSED, SuggestionStatus.ACCEPTED):
        return True
    if dismissal.snoozed_until is None:
        return True
    now = to_utc(now) if now else datetime.now(timezone.utc)
    return dismissal.snoozed_until > now


def _group_by_payee(transactions: Sequence[BankTransaction]) -> "OrderedDict[str, List[BankTransaction]]":
    groups: "OrderedDict[str, List[BankTransaction]]" = OrderedDict()
    for txn in transactions:
        payee = txn.payee
        if not payee:
            continue
        groups.setdefault(payee, []).append(txn)
    return groups


def _monthly_totals(txns: Sequence[BankTransaction]) -> List[int]:
    months: Dict[str, int] = {}
    for txn in txns:
        key = txn.transaction_date.strftime("%Y-%m")
        months[key] = months.get(key, 0) + abs(txn.amount_cents)
    return list(months.values())


def detect_recurring_expenses(
    transactions: Sequence[BankTransaction],
    tracked_costs: Sequence[OperatingCost] = (),
    dismissals: Sequence[SuggestionDismissal] = (),
    now: Optional[datetime] = None,
) -> List[ExpenseSuggestion]:
    """Suggest operating-cost entries from recurring outflows.

    Parameters
    ----------
    transactions : sequence of BankTransaction
        Expense transactions.  Sign is ignored.
    tracked_costs : sequence of OperatingCost
        Costs already in the budget; matching payees are skipped.
    dismissals : sequence of SuggestionDismissal
        Prior owner decisions keyed by suggestion id.
    now : datetime, optional
        Reference time for snooze expiry (defaults to the current time).

    Returns
    -------
    list of ExpenseSuggestion
        Sorted by confidence, highest first.
    """
    if not transactions:
        return []

    candidates: List[ExpenseSuggestion] = []
    for payee, txns in _group_by_payee(transactions).items():
        totals = _monthly_totals(txns)
        if len(totals) < EXPENSE_MIN_MONTHS:
            continue
        if not is_within_variance(totals, EXPENSE_AMOUNT_TOLERANCE):
            continue

        first = txns[0]
        subtype = first.account_subtype
        candidates.append(ExpenseSuggestion(
            id=suggestion_key(payee, subtype),
            payee_name=payee,
            suggested_name=suggested_name_for_subtype(subtype, first.account_name),
            cost_type=map_subtype_to_cost_type(subtype),
            monthly_amount=round_half_up(sum(totals) / len(totals)),
            confidence=compute_confidence(len(totals), coefficient_of_variation(totals)),
            matched_months=len(totals),
        ))

    hidden = {d.suggestion_key for d in dismissals if is_hidden(d, now)}
    suggestions = [
        s for s in candidates
        if not is_already_tracked(s, tracked_costs) and s.id not in hidden
    ]
    suggestions.sort(key=lambda s: s.confidence, reverse=True)
    logger.debug(
        "Expense suggestions: %d payees recurring, %d after filtering",
        len(candidates), len(suggestions),
    )
    return suggestions
