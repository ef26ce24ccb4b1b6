"""Shared fixtures for alert2snow tests."""

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from alert2snow.core.exceptions import ServiceNowAPIError
from alert2snow.core.models import (
    Alert,
    CreateIncidentResult,
    IncidentRecord,
    LabelSettings,
    RetrySettings,
    ServerSettings,
    ServiceNowSettings,
    Settings,
)


@pytest.fixture
def servicenow_settings():
    return ServiceNowSettings(
        base_url="https://snow.example.com",
        username="testuser",
        password="testpass",
        retry=RetrySettings(max_attempts=3, base_delay=0.01, max_delay=0.05),
    )


@pytest.fixture
def settings(servicenow_settings):
    return Settings(
        servicenow=servicenow_settings,
        labels=LabelSettings(),
        server=ServerSettings(request_timeout=5),
    )


def make_alert(
    alertname: str = "TestAlert",
    status: str = "firing",
    labels: Optional[Dict[str, str]] = None,
    annotations: Optional[Dict[str, str]] = None,
    generator_url: str = "",
) -> Alert:
    all_labels = {"alertname": alertname}
    all_labels.update(labels or {})
    return Alert(
        status=status,
        labels=all_labels,
        annotations=annotations or {},
        starts_at=datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc),
        generator_url=generator_url,
    )


class FakeIncidentClient:
    """In-memory incident client recording every call."""

    def __init__(self, records: Optional[Dict[str, IncidentRecord]] = None):
        self.records = records or {}
        self.created: List = []
        self.lookups: List[str] = []
        self.resolved: List[str] = []
        self.fail_create_for: Dict[str, Exception] = {}

    def create_incident(self, ctx, incident):
        self.created.append(incident)
        error = self.fail_create_for.get(incident.short_description)
        if error is not None:
            raise error
        number = f"INC{len(self.created):07d}"
        return CreateIncidentResult(sys_id=f"sys{len(self.created)}", number=number)

    def find_incident_by_correlation_id(self, ctx, correlation_id):
        self.lookups.append(correlation_id)
        return self.records.get(correlation_id)

    def resolve_incident(self, ctx, sys_id):
        self.resolved.append(sys_id)


@pytest.fixture
def fake_client():
    return FakeIncidentClient()


@pytest.fixture
def server_error():
    return ServiceNowAPIError(500, "internal error")
