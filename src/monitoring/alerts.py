"""
Alert level evaluation for billing metrics.

Maps a display state and the configured monthly budget to a discrete alert
level. With a budget the net current-month cost is compared as a ratio;
without one, fixed absolute thresholds are applied to the yearly cost.
"""

from dataclasses import dataclass
from enum import Enum

from ..providers.base import CostMetrics, DisplayState, FetchFailure, NotConfigured


class AlertLevel(Enum):
    """Alert severity levels."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    UNCONFIGURED = "unconfigured"
    ERROR = "error"


@dataclass(frozen=True)
class AlertThresholds:
    """Threshold configuration for alert evaluation."""

    budget_warning_ratio: float = 0.8
    budget_critical_ratio: float = 1.0
    # Compared against the raw yearly amount whatever the currency
    yearly_warning: float = 100.0
    yearly_critical: float = 500.0


DEFAULT_THRESHOLDS = AlertThresholds()


def budget_ratio(metrics: CostMetrics, budget: float) -> float | None:
    """Net current-month cost as a fraction of the budget, or None without a budget."""
    if budget <= 0:
        return None
    return metrics.amount / budget


def budget_percentage(metrics: CostMetrics, budget: float) -> float | None:
    """Net current-month cost as a percentage of the budget."""
    ratio = budget_ratio(metrics, budget)
    return None if ratio is None else ratio * 100


def evaluate_alert_level(
    state: DisplayState,
    budget: float = 0.0,
    thresholds: AlertThresholds = DEFAULT_THRESHOLDS,
) -> AlertLevel:
    """
    Derive the alert level for a display state.

    Args:
        state: Metrics record, NotConfigured or FetchFailure
        budget: Monthly budget; 0 means no budget is configured
        thresholds: Threshold configuration

    Returns:
        The first matching alert level
    """
    if isinstance(state, NotConfigured):
        return AlertLevel.UNCONFIGURED
    if isinstance(state, FetchFailure):
        return AlertLevel.ERROR

    ratio = budget_ratio(state, budget)
    if ratio is not None:
        if ratio >= thresholds.budget_critical_ratio:
            return AlertLevel.CRITICAL
        if ratio >= thresholds.budget_warning_ratio:
            return AlertLevel.WARNING
        return AlertLevel.NORMAL

    if state.yearly_amount > thresholds.yearly_critical:
        return AlertLevel.CRITICAL
    if state.yearly_amount > thresholds.yearly_warning:
        return AlertLevel.WARNING
    return AlertLevel.NORMAL
