"""
backoffice.inventory.variance — Reconciliation variance reporting.

Works over submitted stock counts.  Each reconciliation is a mapping::

    {
        "id": ..., "reconciliation_date": "2025-01-05",
        "total_items_counted": 40, "items_with_variance": 6,
        "total_shrinkage_value": -84.50,
        "items": [
            {"product_id": ..., "product_name": ..., "category": ...,
             "expected_quantity": 12, "actual_quantity": 10,
             "variance": -2, "variance_value": -9.0},
        ],
    }

The counts are flattened into two pandas frames (one row per count, one
row per counted item) and everything else is a groupby over those.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

import numpy as np
import pandas as pd

from backoffice.core.utils import round_half_up
from backoffice.domain.enums import Severity, VarianceTrend

logger = logging.getLogger(__name__)

COUNT_COLUMNS = [
    "reconciliation_id", "date", "total_items", "items_with_variance", "shrinkage_value",
]
ITEM_COLUMNS = [
    "reconciliation_id", "date", "product_id", "product_name", "category",
    "expected", "actual", "variance", "variance_value",
]

TREND_IMPROVING_RATIO = 0.8
TREND_WORSENING_RATIO = 1.2
HIGH_SHRINKAGE_AVG_VARIANCE = 5
HIGH_CATEGORY_VARIANCE_VALUE = 100
TOP_OFFENDERS = 3
TOP_PRODUCTS = 20


@dataclass
class VarianceInsight:
    type: Severity
    title: str
    description: str
    affected_items: int
    estimated_impact: float
    recommendation: str


@dataclass
class VarianceReport:
    trends: List[Dict[str, Any]] = field(default_factory=list)
    category_breakdown: List[Dict[str, Any]] = field(default_factory=list)
    top_variances: List[Dict[str, Any]] = field(default_factory=list)
    insights: List[VarianceInsight] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=lambda: {
        "total_reconciliations": 0,
        "avg_shrinkage_per_count": 0.0,
        "total_shrinkage": 0.0,
        "most_problematic_category": "",
        "improvement_rate": 0.0,
    })

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        for insight in d["insights"]:
            insight["type"] = getattr(insight["type"], "value", insight["type"])
        return d


# ---------------------------------------------------------------------------
# Frames
# ---------------------------------------------------------------------------

def build_frames(reconciliations: Sequence[Mapping]) -> tuple:
    """Flatten counts into ``(counts_df, items_df)`` ordered by date."""
    counts, items = [], []
    for rec in reconciliations:
        rec_id = rec.get("id")
        day = rec.get("reconciliation_date")
        counts.append({
            "reconciliation_id": rec_id,
            "date": day,
            "total_items": rec.get("total_items_counted") or 0,
            "items_with_variance": rec.get("items_with_variance") or 0,
            "shrinkage_value": abs(rec.get("total_shrinkage_value") or 0),
        })
        for item in rec.get("items") or []:
            items.append({
                "reconciliation_id": rec_id,
                "date": day,
                "product_id": item.get("product_id"),
                "product_name": item.get("product_name") or "Unknown",
                "category": item.get("category") or "Uncategorized",
                "expected": item.get("expected_quantity") or 0,
                "actual": item.get("actual_quantity") or 0,
                "variance": item.get("variance") or 0,
                "variance_value": item.get("variance_value") or 0,
            })

    counts_df = pd.DataFrame(counts, columns=COUNT_COLUMNS)
    items_df = pd.DataFrame(items, columns=ITEM_COLUMNS)
    for df in (counts_df, items_df):
        df["date"] = pd.to_datetime(df["date"], errors="coerce")
    counts_df = counts_df.sort_values("date", kind="stable").reset_index(drop=True)
    items_df = items_df.sort_values("date", kind="stable").reset_index(drop=True)
    return counts_df, items_df


def _with_variance(items_df: pd.DataFrame) -> pd.DataFrame:
    return items_df[items_df["variance"].fillna(0) != 0].copy()


# ---------------------------------------------------------------------------
# Analyses
# ---------------------------------------------------------------------------

def variance_trends(counts_df: pd.DataFrame) -> List[Dict[str, Any]]:
    """One row per count: shrinkage and the share of items that were off."""
    if counts_df.empty:
        return []
    df = counts_df.copy()
    df["variance_rate"] = (
        df["items_with_variance"] / df["total_items"].replace(0, np.nan) * 100
    ).fillna(0.0)
    return [
        {
            "date": row.date.date().isoformat() if pd.notna(row.date) else None,
            "total_items": int(row.total_items),
            "items_with_variance": int(row.items_with_variance),
            "shrinkage_value": float(row.shrinkage_value),
            "variance_rate": round_half_up(row.variance_rate, 1),
        }
        for row in df.itertuples(index=False)
    ]


def category_breakdown(items_df: pd.DataFrame, top_n: int = TOP_OFFENDERS) -> List[Dict[str, Any]]:
    """Variance grouped by product category, worst category first."""
    df = _with_variance(items_df)
    if df.empty:
        return []
    df["abs_value"] = df["variance_value"].abs()
    df["variance_pct"] = df["variance"].abs() / df["expected"].where(df["expected"] > 0) * 100

    stats = df.groupby("category").agg(
        items_count=("variance", "count"),
        total_variance_value=("abs_value", "sum"),
        avg_variance_percentage=("variance_pct", "mean"),
    )
    stats = stats.sort_values("total_variance_value", ascending=False, kind="stable")

    out = []
    for category, row in stats.iterrows():
        offenders = (
            df[df["category"] == category]
            .sort_values("abs_value", ascending=False, kind="stable")
            .head(top_n)
        )
        avg_pct = row["avg_variance_percentage"]
        out.append({
            "category": category,
            "items_count": int(row["items_count"]),
            "total_variance_value": round_half_up(row["total_variance_value"], 2),
            "avg_variance_percentage": round_half_up(avg_pct, 1) if pd.notna(avg_pct) else 0.0,
            "top_offenders": [
                {
                    "product_name": o.product_name,
                    "variance": float(o.variance),
                    "variance_value": float(o.variance_value),
                }
                for o in offenders.itertuples(index=False)
            ],
        })
    return out


def classify_trend(variances: Sequence[float]) -> VarianceTrend:
    """Compare the mean absolute variance of the later half of the counts to the earlier half."""
    values = [abs(v) for v in variances]
    if len(values) < 2:
        return VarianceTrend.STABLE
    mid = len(values) // 2
    first = sum(values[:mid]) / mid
    second = sum(values[mid:]) / (len(values) - mid)
    if second < first * TREND_IMPROVING_RATIO:
        return VarianceTrend.IMPROVING
    if second > first * TREND_WORSENING_RATIO:
        return VarianceTrend.WORSENING
    return VarianceTrend.STABLE


def product_history(items_df: pd.DataFrame, limit: int = TOP_PRODUCTS) -> List[Dict[str, Any]]:
    """Per-product variance history for the products that are off most often by the most."""
    df = _with_variance(items_df)
    if df.empty:
        return []

    out = []
    for product_id, group in df.groupby("product_id", sort=False, dropna=False):
        history = [
            {
                "date": r.date.date().isoformat() if pd.notna(r.date) else None,
                "expected": float(r.expected),
                "actual": float(r.actual),
                "variance": float(r.variance),
                "variance_value": float(r.variance_value),
            }
            for r in group.itertuples(index=False)
        ]
        out.append({
            "product_id": product_id,
            "product_name": group["product_name"].iloc[0],
            "category": group["category"].iloc[0],
            "reconciliations": history,
            "avg_variance": float(group["variance"].abs().mean()),
            "trend": classify_trend(group["variance"].tolist()).value,
        })

    out.sort(key=lambda p: p["avg_variance"], reverse=True)
    return out[:limit]


def generate_insights(
    products: Sequence[Mapping[str, Any]],
    categories: Sequence[Mapping[str, Any]],
) -> List[VarianceInsight]:
    insights: List[VarianceInsight] = []

    worsening = [
        p for p in products
        if p["avg_variance"] > HIGH_SHRINKAGE_AVG_VARIANCE and p["trend"] == VarianceTrend.WORSENING.value
    ]
    if worsening:
        impact = sum(abs(r["variance_value"]) for p in worsening for r in p["reconciliations"])
        insights.append(VarianceInsight(
            type=Severity.ERROR,
            title="Worsening Shrinkage Trend",
            description=f"{len(worsening)} products show increasing variance over time",
            affected_items=len(worsening),
            estimated_impact=round_half_up(impact, 2),
            recommendation="Review portion control, storage procedures, and staff training for these items",
        ))

    if categories and categories[0]["total_variance_value"] > HIGH_CATEGORY_VARIANCE_VALUE:
        worst = categories[0]
        insights.append(VarianceInsight(
            type=Severity.WARNING,
            title=f"High Variance in {worst['category']}",
            description=f"{worst['category']} category shows significant inventory discrepancies",
            affected_items=worst["items_count"],
            estimated_impact=worst["total_variance_value"],
            recommendation="Audit storage and handling procedures for this category",
        ))

    improving = [p for p in products if p["trend"] == VarianceTrend.IMPROVING.value]
    if improving:
        insights.append(VarianceInsight(
            type=Severity.INFO,
            title="Variance Improvement Detected",
            description=f"{len(improving)} products showing better inventory accuracy",
            affected_items=len(improving),
            estimated_impact=0.0,
            recommendation="Document and replicate successful procedures for other products",
        ))
    return insights


def improvement_rate(trends: Sequence[Mapping[str, Any]]) -> float:
    """Percent drop in variance rate over the last three counts versus the three before."""
    if len(trends) < 6:
        return 0.0
    recent = sum(t["variance_rate"] for t in trends[-3:]) / 3
    previous = sum(t["variance_rate"] for t in trends[-6:-3]) / 3
    if previous <= 0:
        return 0.0
    return round_half_up((previous - recent) / previous * 100, 1)


def build_variance_report(reconciliations: Sequence[Mapping]) -> VarianceReport:
    """Full variance report over a set of submitted counts."""
    if not reconciliations:
        return VarianceReport()

    counts_df, items_df = build_frames(reconciliations)
    trends = variance_trends(counts_df)
    categories = category_breakdown(items_df)
    products = product_history(items_df)

    total_shrinkage = float(counts_df["shrinkage_value"].sum())
    report = VarianceReport(
        trends=trends,
        category_breakdown=categories,
        top_variances=products,
        insights=generate_insights(products, categories),
        summary={
            "total_reconciliations": len(counts_df),
            "avg_shrinkage_per_count": round_half_up(total_shrinkage / len(counts_df), 2),
            "total_shrinkage": round_half_up(total_shrinkage, 2),
            "most_problematic_category": categories[0]["category"] if categories else "",
            "improvement_rate": improvement_rate(trends),
        },
    )
    logger.info(
        "Variance report: %d counts, %d categories, %d products with variance",
        len(counts_df), len(categories), len(products),
    )
    return report
