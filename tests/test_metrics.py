from __future__ import annotations

import time

from backoffice.metrics import (
    ERROR_WINDOW_SECONDS,
    metrics_snapshot,
    record_calculation,
    record_error,
    record_rejection,
    record_request,
    reset_metrics_for_tests,
)


def test_metrics_snapshot_counts():
    reset_metrics_for_tests()
    record_request()
    record_request()
    record_calculation("payroll")
    record_calculation("tip_split", 3)
    record_calculation("tip_split", -5)  # ignored
    record_error(time.time() - ERROR_WINDOW_SECONDS - 400)  # outside the window
    record_error(time.time())

    snap = metrics_snapshot()
    assert snap["requests_total"] == 2
    assert snap["calculations_total"] == 4
    assert snap["calculations"] == {"payroll": 1, "tip_split": 3}
    assert snap["errors_last_hour"] == 1
    assert snap["last_calculation_at"] is not None


def test_rejections_grouped_by_kind():
    reset_metrics_for_tests()
    record_rejection("ValidationError")
    record_rejection("ValidationError")
    record_rejection("NotFoundError")
    assert metrics_snapshot()["rejections"] == {"ValidationError": 2, "NotFoundError": 1}


def test_ignored_calculation_leaves_timestamp_unset():
    reset_metrics_for_tests()
    record_calculation("payroll", 0)
    snap = metrics_snapshot()
    assert snap["calculations"] == {}
    assert snap["last_calculation_at"] is None


def test_reset_clears_everything():
    record_request()
    record_rejection("ValidationError")
    reset_metrics_for_tests()
    snap = metrics_snapshot()
    assert snap["requests_total"] == 0
    assert snap["rejections"] == {}
    assert snap["calculations"] == {}
