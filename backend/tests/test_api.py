"""HTTP tests for the funnel routes."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from leasedesk.main import app
from leasedesk.services.printing import print_mode
from leasedesk.services.rendering import ReportDocument

BASE = "/api/v1/funnel"


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


class TestService:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert response.headers["x-request-id"]
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"x-request-id": "abc123"})
        assert response.headers["x-request-id"] == "abc123"

    def test_unknown_path(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.json()["path"] == "/nope"


class TestFunnelRoutes:
    def test_report(self, client, raw_payload):
        response = client.post(f"{BASE}/report", json=raw_payload)
        assert response.status_code == 200
        body = response.json()
        assert [s["name"] for s in body["stages"]] == [
            "New lead",
            "Approved by account manager",
            "Handed to technician",
            "Converted",
        ]
        assert body["conversionRate"] == 30

    def test_analysis(self, client, raw_payload):
        response = client.post(f"{BASE}/analysis", json=raw_payload)
        assert response.status_code == 200
        body = response.json()
        assert body["kpis"]["conversionTier"] == "good"
        assert body["largestDropOff"]["from"] == "Approved by account manager"
        assert body["dropOffs"][1]["dropRate"] == 37.5
        assert body["percentageCheck"] == {"ok": True, "diff": 0.0}
        assert body["blockers"] == ["Missing documents", "Contact problems"]

    def test_invalid_date(self, client, raw_payload):
        raw_payload["dateFrom"] = "first of January"
        response = client.post(f"{BASE}/analysis", json=raw_payload)
        assert response.status_code == 422
        assert "Not a valid date" in response.json()["detail"]

    def test_missing_period(self, client, raw_payload):
        del raw_payload["dateFrom"]
        response = client.post(f"{BASE}/report", json=raw_payload)
        assert response.status_code == 422


class TestExportRoutes:
    def test_json_export(self, client, raw_payload):
        response = client.post(f"{BASE}/export.json", json=raw_payload)
        assert response.status_code == 200
        assert response.headers["content-disposition"] == "attachment; filename=funnel-report-20240101-20240131.json"
        payload = json.loads(response.content)
        assert payload["version"] == "1.0"
        assert len(payload["data"]["stages"]) == 4

    def test_pdf_export(self, client, raw_payload):
        response = client.post(f"{BASE}/export.pdf", json=raw_payload)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == "attachment; filename=funnel-report-20240101-20240131.pdf"
        assert response.content.startswith(b"%PDF")

    def test_pdf_export_while_printing(self, client, raw_payload):
        with print_mode(ReportDocument(title="busy")):
            response = client.post(f"{BASE}/export.pdf", json=raw_payload)
        assert response.status_code == 409
