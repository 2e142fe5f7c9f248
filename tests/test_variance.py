"""Tests for the reconciliation variance report."""

import pytest

from backoffice.domain.enums import Severity, VarianceTrend
from backoffice.inventory.variance import (
    build_frames,
    build_variance_report,
    classify_trend,
    improvement_rate,
    variance_trends,
)

DATES = ["2025-01-05", "2025-01-12", "2025-01-19", "2025-01-26"]
LETTUCE = [(-1, -3.0), (-1, -3.0), (-10, -30.0), (-10, -30.0)]
CREAM = [(-4, -60.0), (-4, -60.0), (-1, -10.0), (-1, -10.0)]


def _count(i, day):
    lettuce_var, lettuce_value = LETTUCE[i]
    cream_var, cream_value = CREAM[i]
    return {
        "id": f"rec{i}",
        "reconciliation_date": day,
        "total_items_counted": 10,
        "items_with_variance": 2,
        "total_shrinkage_value": lettuce_value + cream_value,
        "items": [
            {
                "product_id": "p1", "product_name": "Romaine", "category": "Produce",
                "expected_quantity": 10, "actual_quantity": 10 + lettuce_var,
                "variance": lettuce_var, "variance_value": lettuce_value,
            },
            {
                "product_id": "p2", "product_name": "Heavy Cream", "category": "Dairy",
                "expected_quantity": 20, "actual_quantity": 20 + cream_var,
                "variance": cream_var, "variance_value": cream_value,
            },
            {
                "product_id": "p3", "product_name": "Salt", "category": "Dry",
                "expected_quantity": 5, "actual_quantity": 5,
                "variance": 0, "variance_value": 0,
            },
        ],
    }


@pytest.fixture
def reconciliations():
    # deliberately out of order; frames sort by date
    return [_count(i, day) for i, day in reversed(list(enumerate(DATES)))]


class TestFrames:
    def test_sorted_by_date(self, reconciliations):
        counts_df, items_df = build_frames(reconciliations)
        assert list(counts_df["reconciliation_id"]) == ["rec0", "rec1", "rec2", "rec3"]
        assert len(items_df) == 12
        assert counts_df["shrinkage_value"].iloc[0] == 63.0

    def test_trends(self, reconciliations):
        counts_df, _ = build_frames(reconciliations)
        trends = variance_trends(counts_df)
        assert trends[0]["date"] == "2025-01-05"
        assert all(t["variance_rate"] == 20.0 for t in trends)


class TestClassifyTrend:
    @pytest.mark.parametrize("values, expected", [
        ([5], VarianceTrend.STABLE),
        ([1, 2], VarianceTrend.WORSENING),
        ([-4, -4, -1, -1], VarianceTrend.IMPROVING),
        ([10, 10, 10], VarianceTrend.STABLE),
    ])
    def test_classification(self, values, expected):
        assert classify_trend(values) == expected


class TestImprovementRate:
    def test_needs_six_counts(self):
        assert improvement_rate([{"variance_rate": 10.0}] * 5) == 0.0

    def test_recent_drop(self):
        trends = [{"variance_rate": r} for r in (30, 30, 30, 15, 15, 15)]
        assert improvement_rate(trends) == 50.0


class TestVarianceReport:
    def test_empty(self):
        report = build_variance_report([])
        assert report.summary["total_reconciliations"] == 0
        assert report.trends == []

    def test_categories(self, reconciliations):
        report = build_variance_report(reconciliations)
        dairy, produce = report.category_breakdown
        assert dairy["category"] == "Dairy"
        assert dairy["items_count"] == 4
        assert dairy["total_variance_value"] == 140.0
        assert dairy["avg_variance_percentage"] == 12.5
        assert [o["variance_value"] for o in dairy["top_offenders"]] == [-60.0, -60.0, -10.0]
        assert produce["avg_variance_percentage"] == 55.0
        assert all(c["category"] != "Dry" for c in report.category_breakdown)

    def test_products(self, reconciliations):
        report = build_variance_report(reconciliations)
        romaine, cream = report.top_variances
        assert romaine["product_id"] == "p1"
        assert romaine["avg_variance"] == 5.5
        assert romaine["trend"] == "worsening"
        assert len(romaine["reconciliations"]) == 4
        assert cream["trend"] == "improving"

    def test_insights(self, reconciliations):
        insights = build_variance_report(reconciliations).insights
        assert [i.type for i in insights] == [Severity.ERROR, Severity.WARNING, Severity.INFO]
        assert insights[0].title == "Worsening Shrinkage Trend"
        assert insights[0].estimated_impact == 66.0
        assert insights[1].title == "High Variance in Dairy"

    def test_summary_and_dict(self, reconciliations):
        report = build_variance_report(reconciliations)
        assert report.summary == {
            "total_reconciliations": 4,
            "avg_shrinkage_per_count": 51.5,
            "total_shrinkage": 206.0,
            "most_problematic_category": "Dairy",
            "improvement_rate": 0.0,
        }
        assert report.to_dict()["insights"][0]["type"] == "error"
