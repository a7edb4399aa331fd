"""
Abstract base provider and shared data model for billing export monitoring.

Defines the cost metrics record, the billing windows it is computed over,
the display states handed to the renderer, and the error taxonomy shared by
providers, transports and credential sources.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# Allowed drift between the stored net amount and gross minus credits
AMOUNT_TOLERANCE = 0.01


class WindowName(Enum):
    """Named date ranges the billing export is summed over."""

    CURRENT_MONTH = "current_month"
    LAST_MONTH = "last_month"
    LAST_3_MONTHS = "last_3_months"
    YEAR_TO_DATE = "year_to_date"


class BillingWindow(BaseModel):
    """An inclusive usage-date range over the billing export."""

    model_config = ConfigDict(frozen=True)

    name: WindowName
    start: date
    end: date

    @model_validator(mode="after")
    def validate_range(self):
        """Reject windows that end before they start."""
        if self.start > self.end:
            raise ValueError(f"Window {self.name.value} starts {self.start} after it ends {self.end}")
        return self


class CostMetrics(BaseModel):
    """Cost figures captured by one successful fetch of the billing export."""

    model_config = ConfigDict(frozen=True)

    currency: str
    amount_before_credits: float = Field(..., ge=0)
    credits_amount: float = Field(..., ge=0)
    amount: float
    last_month_amount: float = Field(..., ge=0)
    last_3_months_amount: float = Field(..., ge=0)
    yearly_amount: float = Field(..., ge=0)
    last_updated: datetime

    @model_validator(mode="before")
    @classmethod
    def derive_net_amount(cls, data: Any) -> Any:
        """Fill in the net amount from gross and credits when it is not given."""
        if isinstance(data, dict) and data.get("amount") is None:
            data = dict(data)
            gross = float(data.get("amount_before_credits") or 0)
            credits = float(data.get("credits_amount") or 0)
            data["amount"] = gross - credits
        return data

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Validate and normalize currency code."""
        if not v or not v.strip():
            raise ValueError("Currency must be specified")

        normalized = v.upper().strip()

        known_currencies = {
            "USD",
            "EUR",
            "GBP",
            "JPY",
            "AUD",
            "CAD",
            "CHF",
            "CNY",
            "INR",
            "KRW",
            "SGD",
            "HKD",
            "BRL",
        }

        if normalized not in known_currencies:
            logger.warning(f"Unknown currency code: {normalized}")

        return normalized

    @field_validator("last_updated")
    @classmethod
    def validate_last_updated(cls, v: datetime) -> datetime:
        """Treat naive capture times as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def validate_net_amount(self):
        """The net amount must equal gross minus credits."""
        expected = self.amount_before_credits - self.credits_amount
        if abs(self.amount - expected) > AMOUNT_TOLERANCE:
            raise ValueError(
                f"Net amount {self.amount} does not match "
                f"{self.amount_before_credits} - {self.credits_amount}"
            )
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return self.model_dump(mode="json")


class NotConfigured(BaseModel):
    """Display state used when no project has been configured."""

    model_config = ConfigDict(frozen=True)

    reason: str | None = None


class FetchFailure(BaseModel):
    """Display state used when the most recent fetch failed."""

    model_config = ConfigDict(frozen=True)

    message: str
    error_type: str = "error"

    @classmethod
    def from_exception(cls, error: Exception) -> "FetchFailure":
        """Build a failure state carrying the error's message text."""
        return cls(message=str(error) or error.__class__.__name__, error_type=error.__class__.__name__)


DisplayState = Union[CostMetrics, NotConfigured, FetchFailure]


class BillingWatcherError(Exception):
    """Base exception for billing watcher errors."""

    pass


class AuthError(BillingWatcherError):
    """Credential or access token acquisition failed."""

    pass


class QueryError(BillingWatcherError):
    """The query transport returned a non-success status or a malformed payload."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigurationMissing(BillingWatcherError):
    """No project is configured; a state rather than a failure."""

    pass


class BillingProvider(ABC):
    """Abstract base class for billing export providers."""

    def __init__(self, config: dict[str, Any]):
        """
        Initialize the provider with configuration.

        Args:
            config: Provider-specific configuration dictionary
        """
        self.config = config
        self.provider_name = self._get_provider_name()
        self._last_metrics: CostMetrics | None = None

    @abstractmethod
    def _get_provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def fetch_costs(self, now: datetime | None = None) -> CostMetrics:
        """
        Fetch and reduce the billing export into a metrics record.

        Args:
            now: Reference instant for the billing windows (defaults to now, UTC)

        Returns:
            Fully populated CostMetrics

        Raises:
            AuthError: If credential acquisition fails
            QueryError: If any window query fails
            ConfigurationMissing: If no project is configured
        """
        pass

    @property
    def last_metrics(self) -> CostMetrics | None:
        """Most recent successfully fetched record, if any."""
        return self._last_metrics


class ProviderFactory:
    """Factory class for creating billing provider instances."""

    _providers = {}

    @classmethod
    def register_provider(cls, name: str, provider_class: type):
        """Register a provider class with the factory."""
        cls._providers[name.lower()] = provider_class

    @classmethod
    def create_provider(cls, name: str, config: dict[str, Any]) -> BillingProvider:
        """
        Create a provider instance.

        Args:
            name: Provider name
            config: Provider configuration

        Returns:
            Provider instance

        Raises:
            ValueError: If provider not found
        """
        name = name.lower()
        if name not in cls._providers:
            available = ", ".join(cls._providers.keys())
            raise ValueError(f"Unknown provider '{name}'. Available providers: {available}")

        provider_class = cls._providers[name]
        return provider_class(config)
