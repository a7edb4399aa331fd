"""Billing export providers and the shared cost data model."""

# Provider implementations register themselves with ProviderFactory on import
# (see src.providers.gcp); only the shared model is re-exported here.
from .base import (
    AuthError,
    BillingProvider,
    BillingWatcherError,
    BillingWindow,
    ConfigurationMissing,
    CostMetrics,
    DisplayState,
    FetchFailure,
    NotConfigured,
    ProviderFactory,
    QueryError,
    WindowName,
)
