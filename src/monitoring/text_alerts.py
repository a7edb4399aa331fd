"""
Text rendering of billing status.

Turns a display state into a compact summary line and an ordered list of
tooltip lines, using one parameterized renderer over the resolved message
catalog. Currency and timestamps are formatted per locale.
"""

from datetime import datetime, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field

from ..i18n.messages import Messages, get_messages
from ..providers.base import CostMetrics, DisplayState, FetchFailure, NotConfigured
from .alerts import AlertLevel, budget_percentage, evaluate_alert_level

RULE = "─" * 17

# Currencies displayed without fractional digits
ZERO_DECIMAL_CURRENCIES = {"JPY"}

LEVEL_ICONS = {
    AlertLevel.NORMAL: "✓",
    AlertLevel.WARNING: "⚠",
    AlertLevel.CRITICAL: "🚨",
    AlertLevel.UNCONFIGURED: "⚙",
    AlertLevel.ERROR: "✗",
}

# Terminal colors per level, for click.style
LEVEL_COLORS = {
    AlertLevel.NORMAL: "green",
    AlertLevel.WARNING: "yellow",
    AlertLevel.CRITICAL: "red",
    AlertLevel.UNCONFIGURED: "cyan",
    AlertLevel.ERROR: "red",
}


class RenderedStatus(BaseModel):
    """Display strings for one render of the billing status."""

    summary_line: str
    tooltip_lines: list[str] = Field(default_factory=list)
    alert_level: AlertLevel

    @property
    def tooltip(self) -> str:
        return "\n".join(self.tooltip_lines)


def format_currency(amount: float, currency: str, symbols: dict[str, str] | None = None) -> str:
    """
    Format an amount for display.

    JPY is rounded to whole units, every other currency shows exactly two
    fractional digits. Known currencies get a symbol prefix, others the code.

    Args:
        amount: Amount to format
        currency: ISO 4217 code
        symbols: Currency symbol overrides from the message catalog

    Returns:
        Formatted currency string
    """
    code = currency.upper()
    digits = 0 if code in ZERO_DECIMAL_CURRENCIES else 2
    quantum = Decimal(1).scaleb(-digits)
    value = Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP)

    sign = "-" if value < 0 else ""
    number = f"{abs(value):,.{digits}f}"

    symbol = (symbols or {}).get(code)
    if symbol:
        return f"{sign}{symbol}{number}"
    return f"{sign}{code} {number}"


def format_timestamp(timestamp: datetime, messages: Messages, tz: tzinfo | None = None) -> str:
    """Format a capture time in the catalog's locale convention (local time by default)."""
    return timestamp.astimezone(tz).strftime(messages.timestamp_format)


def _previous_month(timestamp: datetime) -> int:
    return 12 if timestamp.month == 1 else timestamp.month - 1


def build_tooltip_lines(
    metrics: CostMetrics, budget: float, messages: Messages, tz: tzinfo | None = None
) -> list[str]:
    """Assemble the full metrics tooltip."""

    def fmt(amount: float) -> str:
        return format_currency(amount, metrics.currency, messages.currency_symbols)

    # Window labels follow the UTC dates the windows were computed on
    captured = metrics.last_updated.astimezone(timezone.utc)
    month_label = messages.month_labels[_previous_month(captured) - 1]

    lines = [
        messages.title,
        RULE,
        f"{messages.current_cost}:",
        f"  {messages.before_credits}: {fmt(metrics.amount_before_credits)}",
        f"  {messages.credits}: {fmt(-metrics.credits_amount)}",
        f"  {messages.total}: {fmt(metrics.amount)}",
    ]

    percentage = budget_percentage(metrics, budget)
    if percentage is not None:
        lines.append(f"  {messages.budget}: {fmt(budget)} ({percentage:.1f}%)")

    lines.extend(
        [
            RULE,
            f"{messages.last_month_format.format(month_label)}: {fmt(metrics.last_month_amount)}",
            f"{messages.last_3_months}: {fmt(metrics.last_3_months_amount)}",
            f"{messages.yearly_format.format(captured.year)}: {fmt(metrics.yearly_amount)}",
            RULE,
            f"{messages.last_updated}: {format_timestamp(captured, messages, tz)}",
            RULE,
            messages.call_to_action,
        ]
    )
    return lines


def render_status(
    state: DisplayState,
    budget: float = 0.0,
    language: str = "en",
    tz: tzinfo | None = None,
) -> RenderedStatus:
    """
    Render a display state into summary and tooltip strings.

    Args:
        state: Metrics record, NotConfigured or FetchFailure
        budget: Monthly budget; 0 omits the budget line
        language: Resolved language ("en" or "ja")
        tz: Timezone for the capture timestamp (local time when None)

    Returns:
        RenderedStatus with the derived alert level
    """
    messages = get_messages(language)
    level = evaluate_alert_level(state, budget)
    icon = LEVEL_ICONS[level]

    if isinstance(state, NotConfigured):
        return RenderedStatus(
            summary_line=f"{icon} GCP: {messages.not_configured_label}",
            tooltip_lines=[messages.not_configured_tooltip],
            alert_level=level,
        )

    if isinstance(state, FetchFailure):
        return RenderedStatus(
            summary_line=f"{icon} GCP: {messages.error_label}",
            tooltip_lines=[f"{messages.error_prefix}{state.message}"],
            alert_level=level,
        )

    current = format_currency(state.amount, state.currency, messages.currency_symbols)
    yearly = format_currency(state.yearly_amount, state.currency, messages.currency_symbols)
    return RenderedStatus(
        summary_line=f"{icon} GCP: {current} | {messages.year_short}: {yearly}",
        tooltip_lines=build_tooltip_lines(state, budget, messages, tz),
        alert_level=level,
    )
