"""
Pytest configuration and shared fixtures for billing watcher tests.

This module provides common fixtures used across the unit and integration
tests: sample metrics records, a scripted query transport, a fake credential
source and an in-memory watcher configuration.
"""

import asyncio
import os
from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any

import pytest

from src.providers.base import CostMetrics, QueryError
from src.utils.auth import CredentialProvider
from src.utils.http_client import QueryTransport

# Reference instant used across tests; windows resolve to
# current 2026-10-01..19, last month 2026-09-01..30,
# last 3 months 2026-08-01..2026-10-19, year to date 2026-01-01..2026-10-19
NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "gcp: mark test as GCP-specific")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture
def clean_env() -> Generator[dict[str, str], None, None]:
    """Provide a clean environment for testing."""
    original_env = os.environ.copy()
    env_vars_to_clear = [
        "GOOGLE_APPLICATION_CREDENTIALS",
        "GOOGLE_APPLICATION_CREDENTIALS_JSON",
        "LANGUAGE",
        "LC_ALL",
        "LC_MESSAGES",
        "LANG",
    ]
    for var in env_vars_to_clear:
        os.environ.pop(var, None)

    yield os.environ

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def sample_metrics() -> CostMetrics:
    """A USD metrics record captured at NOW."""
    return CostMetrics(
        currency="USD",
        amount_before_credits=120.0,
        credits_amount=20.0,
        last_month_amount=80.0,
        last_3_months_amount=250.0,
        yearly_amount=900.0,
        last_updated=NOW,
    )


def make_metrics(**overrides) -> CostMetrics:
    """Build a metrics record with small defaults."""
    values = {
        "currency": "USD",
        "amount_before_credits": 10.0,
        "credits_amount": 0.0,
        "last_month_amount": 5.0,
        "last_3_months_amount": 15.0,
        "yearly_amount": 50.0,
        "last_updated": NOW,
    }
    values.update(overrides)
    return CostMetrics(**values)


class FakeTransport(QueryTransport):
    """
    Scripted query transport.

    The current-month query is recognised by its gross_cost column; the net
    queries are routed by the window start date found in the SQL text.
    """

    def __init__(
        self,
        current: list[dict[str, Any]] | None = None,
        net_by_start: dict[str, list[dict[str, Any]]] | None = None,
        fail_on: str | None = None,
    ):
        self.current = current or []
        self.net_by_start = net_by_start or {}
        self.fail_on = fail_on
        self.calls: list[tuple[str, str, str]] = []
        self.gate: asyncio.Event | None = None
        self.in_flight = 0
        self.max_in_flight = 0

    async def run_query(self, project_id: str, query: str, token: str) -> list[dict[str, Any]]:
        self.calls.append((project_id, query, token))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.fail_on and self.fail_on in query:
                raise QueryError("BigQuery API error: 403 Forbidden - Access Denied", status_code=403)
            if "gross_cost" in query:
                return self.current
            for start, rows in self.net_by_start.items():
                if f"BETWEEN '{start}'" in query:
                    return rows
            return []
        finally:
            self.in_flight -= 1


class FakeCredentials(CredentialProvider):
    """Credential source returning a fixed token, or raising a fixed error."""

    def __init__(self, token: str = "test-token", error: Exception | None = None):
        self.token = token
        self.error = error
        self.calls = 0

    async def get_token(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.token


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Transport returning a typical month of USD billing data."""
    return FakeTransport(
        current=[{"currency": "USD", "gross_cost": "120.0", "credits_total": "-20.0"}],
        net_by_start={
            "2026-09-01": [{"currency": "USD", "net_cost": "80.0"}],
            "2026-08-01": [{"currency": "USD", "net_cost": "250.0"}],
            "2026-01-01": [{"currency": "USD", "net_cost": "900.0"}],
        },
    )


@pytest.fixture
def fake_credentials() -> FakeCredentials:
    return FakeCredentials()


@pytest.fixture
def provider_config() -> dict[str, Any]:
    return {
        "project_id": "my-billing-project",
        "dataset_id": "billing_export",
    }


class MockWatcherConfig:
    """In-memory stand-in for WatcherConfig."""

    def __init__(
        self,
        project_id: str = "my-billing-project",
        dataset_id: str = "billing_export",
        monthly_budget: float = 0.0,
        language: str = "en",
        refresh_interval_minutes: int = 30,
        skip_ssl_verification: bool = False,
    ):
        self.project_id = project_id
        self.dataset_id = dataset_id
        self.monthly_budget = monthly_budget
        self.language = language
        self.refresh_interval_minutes = refresh_interval_minutes
        self.skip_ssl_verification = skip_ssl_verification

    @property
    def is_configured(self) -> bool:
        return bool(self.project_id)

    def get_provider_config(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "dataset_id": self.dataset_id,
            "skip_ssl_verification": self.skip_ssl_verification,
        }

    def override_from_cli(self, cli_args: dict[str, Any]):
        if cli_args.get("project") is not None:
            self.project_id = cli_args["project"]
        if cli_args.get("budget") is not None:
            self.monthly_budget = cli_args["budget"]
        if cli_args.get("interval") is not None:
            self.refresh_interval_minutes = cli_args["interval"]
        if cli_args.get("language") is not None:
            self.language = cli_args["language"]


@pytest.fixture
def watcher_config() -> MockWatcherConfig:
    return MockWatcherConfig()


@pytest.fixture
def metrics_factory():
    """Factory for metrics records with small defaults."""
    return make_metrics


@pytest.fixture
def transport_factory():
    return FakeTransport


@pytest.fixture
def credentials_factory():
    return FakeCredentials


@pytest.fixture
def config_factory():
    return MockWatcherConfig


@pytest.fixture
def now() -> datetime:
    return NOW
