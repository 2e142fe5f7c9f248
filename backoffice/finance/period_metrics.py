"""
backoffice.finance.period_metrics — Revenue, prime cost and profitability
for a reporting period.

Inputs are plain mappings as they come out of the sales, adjustment,
inventory-transaction and labor tables.  Sales rows look like::

    {"id": ..., "total_price": 100.0, "item_type": "sale",
     "parent_sale_id": None, "is_categorized": True,
     "chart_account": {"account_type": "revenue", "account_subtype": "sales"}}

Amounts are returned in whatever unit the rows carry; percentages are
rounded to one decimal.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from backoffice.core.constants import (
    FOOD_COST_BENCHMARK,
    LABOR_COST_BENCHMARK,
    PRIME_COST_BENCHMARK,
)
from backoffice.core.utils import pct
from backoffice.domain.enums import BenchmarkStatus

logger = logging.getLogger(__name__)


@dataclass
class RevenueBreakdown:
    gross_revenue: float = 0.0
    discounts: float = 0.0
    refunds: float = 0.0
    net_revenue: float = 0.0
    total_collected_at_pos: float = 0.0
    sales_tax: float = 0.0
    tips: float = 0.0
    other_liabilities: float = 0.0
    sales_count: int = 0


@dataclass
class CostBreakdown:
    food_cost: float = 0.0
    food_cost_percentage: float = 0.0
    labor_cost: float = 0.0
    labor_cost_percentage: float = 0.0
    prime_cost: float = 0.0
    prime_cost_percentage: float = 0.0


@dataclass
class Profitability:
    gross_profit: float = 0.0
    profit_margin: float = 0.0


@dataclass
class Benchmarks:
    food_cost_status: BenchmarkStatus
    labor_cost_status: BenchmarkStatus
    prime_cost_status: BenchmarkStatus
    target_food_cost: str
    target_labor_cost: str
    target_prime_cost: str


@dataclass
class PeriodMetrics:
    revenue: RevenueBreakdown
    costs: CostBreakdown
    profitability: Profitability
    benchmarks: Benchmarks

    @property
    def liabilities(self) -> Dict[str, float]:
        return {
            "sales_tax": self.revenue.sales_tax,
            "tips": self.revenue.tips,
            "other_liabilities": self.revenue.other_liabilities,
        }

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["liabilities"] = self.liabilities
        d["benchmarks"] = {
            k: getattr(v, "value", v) for k, v in d["benchmarks"].items()
        }
        return d


def filter_split_sales(sales: Sequence[Mapping]) -> List[Mapping]:
    """Drop parent sales that were split into children so nothing is counted twice."""
    split_parents = {s.get("parent_sale_id") for s in sales if s.get("parent_sale_id") is not None}
    return [s for s in sales if s.get("id") not in split_parents]


def _subtype(account: Mapping) -> str:
    return (account.get("account_subtype") or "").lower()


def _is_sales_tax_account(account: Mapping) -> bool:
    sub = _subtype(account)
    return account.get("account_type") == "liability" and "sales" in sub and "tax" in sub


def _is_tip_account(account: Mapping) -> bool:
    return account.get("account_type") == "liability" and "tip" in _subtype(account)


def calculate_revenue_breakdown(
    sales: Sequence[Mapping],
    adjustments: Iterable[Mapping] = (),
) -> RevenueBreakdown:
    """Gross and net revenue plus the pass-through liabilities collected at the POS.

    Uncategorized sales count as revenue.  Categorized liability lines are
    split into sales tax, tips and other.  Adjustments are POS pass-through
    items keyed by ``adjustment_type`` (tax, tip, service_charge, fee,
    discount).
    """
    valid = filter_split_sales(sales)
    r = RevenueBreakdown(sales_count=len(valid))

    for sale in valid:
        price = sale.get("total_price") or 0
        item_type = sale.get("item_type")
        account = sale.get("chart_account")

        if not sale.get("is_categorized") or not account:
            if item_type in (None, "", "sale"):
                r.gross_revenue += price
            continue

        item_type = item_type or "sale"
        if item_type == "sale":
            if account.get("account_type") == "revenue":
                r.gross_revenue += price
            elif account.get("account_type") == "liability":
                if _is_sales_tax_account(account):
                    r.sales_tax += price
                elif _is_tip_account(account):
                    r.tips += price
                else:
                    r.other_liabilities += price
        elif item_type == "discount":
            r.discounts += abs(price)
        elif item_type == "refund":
            r.refunds += abs(price)

    for adj in adjustments:
        price = adj.get("total_price") or 0
        kind = adj.get("adjustment_type")
        if kind == "tax":
            r.sales_tax += price
        elif kind == "tip":
            r.tips += price
        elif kind in ("service_charge", "fee"):
            r.other_liabilities += price
        elif kind == "discount":
            r.discounts += abs(price)

    r.net_revenue = r.gross_revenue - r.discounts - r.refunds
    r.total_collected_at_pos = r.gross_revenue + r.sales_tax + r.tips + r.other_liabilities
    return r


def _pct_of_revenue(amount: float, net_revenue: float) -> float:
    return pct(amount, net_revenue) if net_revenue > 0 else 0.0


def calculate_cost_breakdown(
    food_cost_records: Iterable[Mapping],
    labor_cost_records: Iterable[Mapping],
    net_revenue: float,
) -> CostBreakdown:
    food = abs(sum(r.get("total_cost") or 0 for r in food_cost_records))
    labor = sum(r.get("total_labor_cost") or 0 for r in labor_cost_records)
    prime = food + labor
    return CostBreakdown(
        food_cost=food,
        food_cost_percentage=_pct_of_revenue(food, net_revenue),
        labor_cost=labor,
        labor_cost_percentage=_pct_of_revenue(labor, net_revenue),
        prime_cost=prime,
        prime_cost_percentage=_pct_of_revenue(prime, net_revenue),
    )


def calculate_profitability(net_revenue: float, prime_cost: float) -> Profitability:
    gross_profit = net_revenue - prime_cost
    return Profitability(
        gross_profit=gross_profit,
        profit_margin=_pct_of_revenue(gross_profit, net_revenue),
    )


def benchmark_status(percentage: float, benchmark: tuple) -> BenchmarkStatus:
    good_max, caution_max, _ = benchmark
    if percentage <= good_max:
        return BenchmarkStatus.GOOD
    if percentage <= caution_max:
        return BenchmarkStatus.CAUTION
    return BenchmarkStatus.HIGH


def calculate_benchmarks(costs: CostBreakdown) -> Benchmarks:
    """Compare cost percentages with common full-service restaurant targets."""
    return Benchmarks(
        food_cost_status=benchmark_status(costs.food_cost_percentage, FOOD_COST_BENCHMARK),
        labor_cost_status=benchmark_status(costs.labor_cost_percentage, LABOR_COST_BENCHMARK),
        prime_cost_status=benchmark_status(costs.prime_cost_percentage, PRIME_COST_BENCHMARK),
        target_food_cost=FOOD_COST_BENCHMARK[2],
        target_labor_cost=LABOR_COST_BENCHMARK[2],
        target_prime_cost=PRIME_COST_BENCHMARK[2],
    )


def calculate_period_metrics(
    sales: Sequence[Mapping],
    adjustments: Iterable[Mapping] = (),
    food_cost_records: Iterable[Mapping] = (),
    labor_cost_records: Iterable[Mapping] = (),
) -> PeriodMetrics:
    """Revenue, costs, profitability and benchmark status in one pass.

    Parameters
    ----------
    sales : sequence of mapping
        POS sale lines, including split children.
    adjustments : iterable of mapping
        Pass-through adjustments (``adjustment_type``, ``total_price``).
    food_cost_records : iterable of mapping
        Inventory usage rows with ``total_cost`` (usually negative).
    labor_cost_records : iterable of mapping
        Daily labor rows with ``total_labor_cost``.

    Returns
    -------
    PeriodMetrics
    """
    revenue = calculate_revenue_breakdown(sales, adjustments)
    costs = calculate_cost_breakdown(food_cost_records, labor_cost_records, revenue.net_revenue)
    profitability = calculate_profitability(revenue.net_revenue, costs.prime_cost)
    metrics = PeriodMetrics(
        revenue=revenue,
        costs=costs,
        profitability=profitability,
        benchmarks=calculate_benchmarks(costs),
    )
    logger.debug(
        "Period metrics: net=%.2f prime=%.1f%% margin=%.1f%%",
        revenue.net_revenue, costs.prime_cost_percentage, profitability.profit_margin,
    )
    return metrics
