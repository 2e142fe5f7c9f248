"""
HTTP-level checks: error handlers, request counting and route registration.
"""

import pytest
from fastapi.testclient import TestClient

from backoffice.app import app
from backoffice.metrics import metrics_snapshot, reset_metrics_for_tests


@pytest.fixture
def client(patched_db):
    reset_metrics_for_tests()
    return TestClient(app, raise_server_exceptions=False)


class TestErrorHandlers:

    def test_not_found_maps_to_404(self, client):
        resp = client.get("/api/employees/999")
        assert resp.status_code == 404
        body = resp.json()
        assert body["type"] == "NotFoundError"
        assert body["path"] == "/api/employees/999"
        assert metrics_snapshot()["rejections"] == {"NotFoundError": 1}

    def test_invalid_compensation_lists_problems(self, client):
        resp = client.post("/api/employees", json={"name": "Sam", "compensation_type": "hourly"})
        assert resp.status_code == 422
        assert resp.json()["errors"] == ["Hourly rate must be greater than 0"]

    def test_request_counter(self, client):
        client.get("/api/settings")
        client.get("/api/settings")
        assert metrics_snapshot()["requests_total"] == 2


class TestRoutes:

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["db"] == "ok"

    def test_every_router_mounted(self):
        paths = {route.path for route in app.routes}
        for expected in (
            "/api/settings", "/api/employees", "/api/scheduling/validate", "/api/payroll",
            "/api/tips/split", "/api/inventory/valuation", "/api/finance/period-metrics",
        ):
            assert expected in paths

    def test_check_words_over_http(self, client):
        resp = client.get("/api/finance/checks/amount-words", params={"amount_cents": 1500})
        assert resp.status_code == 200
        assert resp.json()["amount_display"] == "$15.00"
