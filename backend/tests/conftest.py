"""Shared fixtures: a realistic upstream payload and settings isolation."""

from __future__ import annotations

from typing import Any

import pytest

from leasedesk.core.config import get_settings
from leasedesk.schemas.funnel import FunnelReport, RawFunnelReport
from leasedesk.services.funnel import build_report


@pytest.fixture(autouse=True)
def _fast_print_settings(monkeypatch: pytest.MonkeyPatch):
    """No print settle delays in tests; settings are rebuilt per test."""
    monkeypatch.setenv("PRINT_SETTLE_SECONDS", "0")
    monkeypatch.setenv("PRINT_RESTORE_SECONDS", "0")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def raw_payload() -> dict[str, Any]:
    return {
        "dateFrom": "2024-01-01",
        "dateTo": "2024-01-31",
        "totalLeads": 100,
        "convertedLeads": 30,
        "declinedLeads": 40,
        "stages": [
            {
                "name": "New lead",
                "count": 100,
                "percentage": 100,
                "declinedReasons": [{"reason": "Low income", "count": 10, "percentage": 25}],
                "notes": [
                    {"text": "Customer waiting for documents", "date": "2024-01-05T09:00:00", "author": "Eva"},
                ],
            },
            {"name": "Approved by account manager", "count": 80, "percentage": 80},
            {
                "stage": "Handed to technician (awaiting documents)",
                "count": 50,
                "percentage": 50,
                "notes": [
                    {"text": "Unreachable 3 times", "date": "2024-01-07T10:15:00", "author": "Petr"},
                ],
            },
            {"name": "Converted", "count": 30, "percentage": 30},
            {"name": "Mystery stage", "count": 5, "percentage": 5},
        ],
        "declinedReasons": [
            {"reason": "Low income", "count": 20, "percentage": 50},
            {"reason": "Car too old", "count": 12, "percentage": 30},
            {"reason": "Other debts", "count": 8, "percentage": 20},
        ],
        "averageTimeInStages": {"New lead": 2.5, "Handed to technician": 10.5},
    }


@pytest.fixture()
def sample_report(raw_payload: dict[str, Any]) -> FunnelReport:
    return build_report(RawFunnelReport.model_validate(raw_payload))
