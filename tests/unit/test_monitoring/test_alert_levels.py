"""
Tests for alert level evaluation.
"""

import pytest

from src.monitoring.alerts import (
    AlertLevel,
    AlertThresholds,
    budget_percentage,
    budget_ratio,
    evaluate_alert_level,
)
from src.providers.base import FetchFailure, NotConfigured


class TestBudgetAlerts:
    """Test cases for budget-relative alert levels."""

    @pytest.mark.parametrize(
        "net, expected",
        [
            (0.0, AlertLevel.NORMAL),
            (39.99, AlertLevel.NORMAL),
            (40.0, AlertLevel.WARNING),
            (49.99, AlertLevel.WARNING),
            (50.0, AlertLevel.CRITICAL),
            (100.0, AlertLevel.CRITICAL),
        ],
    )
    def test_budget_boundaries(self, metrics_factory, net, expected):
        metrics = metrics_factory(amount_before_credits=net, credits_amount=0.0)

        assert evaluate_alert_level(metrics, budget=50.0) == expected

    def test_budget_ignores_yearly_amount(self, metrics_factory):
        """Test that a budget makes the yearly thresholds irrelevant."""
        metrics = metrics_factory(amount_before_credits=10.0, yearly_amount=10_000.0)

        assert evaluate_alert_level(metrics, budget=50.0) == AlertLevel.NORMAL

    def test_budget_uses_net_amount(self, metrics_factory):
        metrics = metrics_factory(amount_before_credits=60.0, credits_amount=30.0)

        assert evaluate_alert_level(metrics, budget=50.0) == AlertLevel.NORMAL

    def test_ratio_and_percentage(self, sample_metrics):
        assert budget_ratio(sample_metrics, 50.0) == 2.0
        assert budget_percentage(sample_metrics, 50.0) == 200.0

    def test_no_budget_ratio(self, sample_metrics):
        assert budget_ratio(sample_metrics, 0.0) is None
        assert budget_percentage(sample_metrics, 0.0) is None


class TestYearlyAlerts:
    """Test cases for the absolute yearly thresholds used without a budget."""

    @pytest.mark.parametrize(
        "yearly, expected",
        [
            (0.0, AlertLevel.NORMAL),
            (100.0, AlertLevel.NORMAL),
            (100.01, AlertLevel.WARNING),
            (500.0, AlertLevel.WARNING),
            (500.01, AlertLevel.CRITICAL),
        ],
    )
    def test_yearly_boundaries(self, metrics_factory, yearly, expected):
        metrics = metrics_factory(yearly_amount=yearly)

        assert evaluate_alert_level(metrics, budget=0.0) == expected

    def test_thresholds_ignore_currency(self, metrics_factory):
        """Test that the yearly thresholds compare raw amounts in any currency."""
        metrics = metrics_factory(currency="JPY", yearly_amount=600.0)

        assert evaluate_alert_level(metrics) == AlertLevel.CRITICAL

    def test_custom_thresholds(self, metrics_factory):
        thresholds = AlertThresholds(yearly_warning=1000.0, yearly_critical=5000.0)
        metrics = metrics_factory(yearly_amount=600.0)

        assert evaluate_alert_level(metrics, thresholds=thresholds) == AlertLevel.NORMAL


class TestStateAlerts:
    """Test cases for the non-metrics states."""

    def test_not_configured(self):
        assert evaluate_alert_level(NotConfigured(), budget=50.0) == AlertLevel.UNCONFIGURED

    def test_fetch_failure(self):
        assert evaluate_alert_level(FetchFailure(message="boom")) == AlertLevel.ERROR
