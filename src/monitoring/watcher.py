"""
Periodic billing watcher.

Owns the refresh cycle: builds the provider from a configuration snapshot,
runs scheduled and manual refreshes, keeps the last known metrics record and
resolves the metrics-or-error state before rendering.
"""

import asyncio
import logging
from typing import Any, Callable

from ..i18n.messages import resolve_language
from ..providers import gcp  # noqa: F401  registers the GCP provider
from ..providers.base import (
    AuthError,
    BillingProvider,
    ConfigurationMissing,
    CostMetrics,
    DisplayState,
    FetchFailure,
    NotConfigured,
    ProviderFactory,
    QueryError,
)
from .text_alerts import RenderedStatus, render_status

logger = logging.getLogger(__name__)


def default_provider_factory(provider_config: dict[str, Any]) -> BillingProvider:
    return ProviderFactory.create_provider("gcp", provider_config)


class BillingWatcher:
    """Runs billing refreshes and holds the current display state."""

    def __init__(
        self,
        config,
        provider_factory: Callable[[dict[str, Any]], BillingProvider] = default_provider_factory,
    ):
        self.provider_factory = provider_factory
        self.update_callbacks: list[Callable[[RenderedStatus], None]] = []
        self._generation = 0
        self.initialize(config)

    def initialize(self, config):
        """Take a configuration snapshot and (re)build the provider."""
        self._generation += 1
        self.config = config
        self.budget = config.monthly_budget
        self.language = resolve_language(config.language)
        self.refresh_interval_minutes = config.refresh_interval_minutes
        self._last_metrics: CostMetrics | None = None
        self._failure: FetchFailure | NotConfigured | None = None

        if not config.project_id:
            logger.warning("Project ID is not set")
            self.provider = None
            return

        self.provider = self.provider_factory(config.get_provider_config())
        logger.info(f"Project ID: {config.project_id}")
        logger.info(f"Dataset ID: {config.dataset_id}")
        logger.info(f"Refresh interval: {self.refresh_interval_minutes} min")
        if config.skip_ssl_verification:
            logger.warning("Skipping SSL certificate verification (gcp.skip_ssl_verification: true)")

    def reconfigure(self, config):
        """Apply a configuration change, dropping the last known record."""
        logger.info("Configuration changed. Reinitializing...")
        self.initialize(config)

    def add_update_callback(self, callback: Callable[[RenderedStatus], None]):
        """Add a callback invoked with the rendered status after every refresh."""
        self.update_callbacks.append(callback)

    @property
    def last_metrics(self) -> CostMetrics | None:
        """Last successfully fetched record, kept even while in the error state."""
        return self._last_metrics

    @property
    def state(self) -> DisplayState | None:
        """Current display state, or None before the first refresh completes."""
        if self.provider is None:
            return NotConfigured(reason="Project ID is not set")
        if self._failure is not None:
            return self._failure
        return self._last_metrics

    async def refresh(self) -> DisplayState:
        """
        Run one fetch and update the display state.

        Refreshes are not coalesced; whichever completes last decides the
        state. Results from before a reconfiguration are discarded.
        """
        if self.provider is None:
            return NotConfigured(reason="Project ID is not set")

        generation = self._generation
        provider = self.provider
        try:
            metrics = await provider.fetch_costs()
        except ConfigurationMissing as e:
            logger.warning(f"Billing watcher not configured: {e}")
            if generation == self._generation:
                self._failure = NotConfigured(reason=str(e))
            return self.state
        except (AuthError, QueryError) as e:
            logger.error(f"Error: {e}")
            if generation == self._generation:
                self._failure = FetchFailure.from_exception(e)
            return self.state
        except Exception as e:
            logger.exception(f"Unexpected error while fetching billing data: {e}")
            if generation == self._generation:
                self._failure = FetchFailure.from_exception(e)
            return self.state

        if generation != self._generation:
            logger.debug("Discarding billing result fetched under a previous configuration")
            return self.state

        self._last_metrics = metrics
        self._failure = None
        return metrics

    def render(self) -> RenderedStatus | None:
        """Render the current state, or None before the first refresh completes."""
        state = self.state
        if state is None:
            return None
        return render_status(state, self.budget, self.language)

    def _notify(self, status: RenderedStatus):
        for callback in self.update_callbacks:
            try:
                callback(status)
            except Exception as e:
                logger.error(f"Error in update callback: {e}")

    async def refresh_and_notify(self) -> RenderedStatus | None:
        """Refresh, render, and hand the result to the update callbacks."""
        await self.refresh()
        status = self.render()
        if status is not None:
            self._notify(status)
        return status

    async def run(self, stop_event: asyncio.Event | None = None):
        """Refresh immediately, then on every interval until ``stop_event`` is set."""
        stop_event = stop_event or asyncio.Event()
        interval_seconds = self.refresh_interval_minutes * 60

        while not stop_event.is_set():
            await self.refresh_and_notify()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                logger.info("Running scheduled refresh...")
