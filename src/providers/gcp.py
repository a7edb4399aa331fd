"""
Google Cloud billing export provider implementation.

Computes the billing windows relative to a reference instant, queries the
BigQuery billing export for each of them concurrently and reduces the rows
into a single CostMetrics record.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any

from .base import (
    BillingProvider,
    BillingWindow,
    ConfigurationMissing,
    CostMetrics,
    ProviderFactory,
    WindowName,
)
from ..utils.auth import CredentialProvider, GCPCredentialProvider
from ..utils.http_client import BigQueryTransport, QueryTransport

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "gcp_billing_export_v1_*"
DEFAULT_CURRENCY = "USD"

# Credits are exported as negative amounts in a repeated record
CREDITS_SUM = "IFNULL((SELECT SUM(c.amount) FROM UNNEST(credits) AS c), 0)"


@dataclass
class WindowTotals:
    """Amounts read back for one billing window."""

    window: BillingWindow
    currency: str | None = None
    gross: float = 0.0
    credits: float = 0.0
    net: float = 0.0


def compute_windows(now: datetime) -> dict[WindowName, BillingWindow]:
    """Build the four billing windows relative to ``now`` (UTC)."""
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    today = now.date()

    month_start = today.replace(day=1)
    last_month_end = month_start - timedelta(days=1)
    last_month_start = last_month_end.replace(day=1)
    two_months_back = (last_month_start - timedelta(days=1)).replace(day=1)

    return {
        WindowName.CURRENT_MONTH: BillingWindow(
            name=WindowName.CURRENT_MONTH, start=month_start, end=today
        ),
        WindowName.LAST_MONTH: BillingWindow(
            name=WindowName.LAST_MONTH, start=last_month_start, end=last_month_end
        ),
        WindowName.LAST_3_MONTHS: BillingWindow(
            name=WindowName.LAST_3_MONTHS, start=two_months_back, end=today
        ),
        WindowName.YEAR_TO_DATE: BillingWindow(
            name=WindowName.YEAR_TO_DATE, start=date(today.year, 1, 1), end=today
        ),
    }


def parse_amount(value: Any) -> float:
    """Parse a BigQuery cell as a number, falling back to 0."""
    if value is None:
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        logger.debug(f"Unparseable amount in billing export row: {value!r}")
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    return amount


class GCPBillingProvider(BillingProvider):
    """GCP BigQuery billing export provider."""

    def __init__(
        self,
        config: dict[str, Any],
        transport: QueryTransport | None = None,
        credentials: CredentialProvider | None = None,
    ):
        super().__init__(config)
        self.project_id = config.get("project_id") or None
        self.dataset_id = config.get("dataset_id") or None
        self.table = config.get("table") or DEFAULT_TABLE
        self.default_currency = (config.get("default_currency") or DEFAULT_CURRENCY).upper()

        self.transport = transport or BigQueryTransport(
            verify_certificates=not config.get("skip_ssl_verification", False),
            timeout=float(config.get("query_timeout") or 60),
        )
        self.credentials = credentials or GCPCredentialProvider(config)

    def _get_provider_name(self) -> str:
        return "gcp"

    @property
    def table_reference(self) -> str:
        """Fully qualified, backtick-quoted billing export table."""
        return f"`{self.project_id}.{self.dataset_id}.{self.table}`"

    def _where_clause(self, window: BillingWindow) -> str:
        return (
            f"DATE(usage_start_time) BETWEEN '{window.start.isoformat()}' "
            f"AND '{window.end.isoformat()}'"
        )

    def build_current_month_query(self, window: BillingWindow) -> str:
        """Query summing gross cost and credits separately, per currency."""
        return f"""
            SELECT
                currency,
                SUM(cost) AS gross_cost,
                SUM({CREDITS_SUM}) AS credits_total
            FROM {self.table_reference}
            WHERE {self._where_clause(window)}
            GROUP BY currency
            ORDER BY gross_cost DESC
        """

    def build_net_cost_query(self, window: BillingWindow) -> str:
        """Query summing net cost (gross plus credits), per currency."""
        return f"""
            SELECT
                currency,
                SUM(cost) + SUM({CREDITS_SUM}) AS net_cost
            FROM {self.table_reference}
            WHERE {self._where_clause(window)}
            GROUP BY currency
            ORDER BY net_cost DESC
        """

    async def _query_current_month(self, window: BillingWindow, token: str) -> WindowTotals:
        query = self.build_current_month_query(window)
        logger.debug(f"GCP: current month query: {query}")
        rows = await self.transport.run_query(self.project_id, query, token)

        if not rows:
            logger.info(f"GCP: no billing rows for {window.name.value}, using 0")
            return WindowTotals(window=window)

        row = rows[0]
        gross = parse_amount(row.get("gross_cost"))
        credits = parse_amount(row.get("credits_total"))
        return WindowTotals(
            window=window,
            currency=row.get("currency") or None,
            gross=gross,
            credits=credits,
            net=gross + credits,
        )

    async def _query_net_cost(self, window: BillingWindow, token: str) -> WindowTotals:
        query = self.build_net_cost_query(window)
        logger.debug(f"GCP: {window.name.value} query: {query}")
        rows = await self.transport.run_query(self.project_id, query, token)

        if not rows:
            logger.info(f"GCP: no billing rows for {window.name.value}, using 0")
            return WindowTotals(window=window)

        row = rows[0]
        return WindowTotals(
            window=window,
            currency=row.get("currency") or None,
            net=parse_amount(row.get("net_cost")),
        )

    async def fetch_costs(self, now: datetime | None = None) -> CostMetrics:
        """Fetch all four windows concurrently and assemble the metrics record."""
        if not self.project_id:
            raise ConfigurationMissing("Project ID is not set")
        if not self.dataset_id:
            raise ConfigurationMissing("Billing export dataset ID is not set")

        windows = compute_windows(now or datetime.now(timezone.utc))

        token = await self.credentials.get_token()

        logger.info(f"GCP: fetching billing export for {self.project_id}.{self.dataset_id}")
        # gather fails fast on the first error; siblings are left to finish on their own
        current, last_month, last_3_months, yearly = await asyncio.gather(
            self._query_current_month(windows[WindowName.CURRENT_MONTH], token),
            self._query_net_cost(windows[WindowName.LAST_MONTH], token),
            self._query_net_cost(windows[WindowName.LAST_3_MONTHS], token),
            self._query_net_cost(windows[WindowName.YEAR_TO_DATE], token),
        )
        # Stamped once all windows have returned
        captured_at = now or datetime.now(timezone.utc)

        currency = next(
            (
                totals.currency
                for totals in (current, last_month, last_3_months, yearly)
                if totals.currency
            ),
            self.default_currency,
        )

        metrics = CostMetrics(
            currency=currency,
            amount_before_credits=max(current.gross, 0.0),
            credits_amount=max(-current.credits, 0.0),
            last_month_amount=max(last_month.net, 0.0),
            last_3_months_amount=max(last_3_months.net, 0.0),
            yearly_amount=max(yearly.net, 0.0),
            last_updated=captured_at,
        )
        self._last_metrics = metrics

        logger.info(f"GCP: billing data fetched: {metrics.currency} {metrics.amount:.2f}")
        return metrics


# Register the GCP provider with the factory
ProviderFactory.register_provider("gcp", GCPBillingProvider)
