"""
Google Cloud credential handling for billing export queries.

Resolves credentials from a service account file, application default
credentials or a JSON blob in the environment, and hands out OAuth2 bearer
tokens for the BigQuery REST API.
"""

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import google.auth.transport.requests
import requests
from google.auth import default as gcp_default
from google.auth.exceptions import DefaultCredentialsError, GoogleAuthError
from google.oauth2 import service_account
from pydantic import BaseModel, Field, field_validator

from ..providers.base import AuthError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


class AuthenticationResult(BaseModel):
    """Result of an authentication attempt with validation."""

    success: bool = Field(..., description="Whether authentication was successful")
    method: str = Field(..., min_length=1, max_length=100, description="Authentication method used")
    error_message: str | None = Field(
        None, max_length=1000, description="Error message if authentication failed"
    )
    credentials: Any | None = Field(None, description="Authenticated credentials object")

    @classmethod
    def create_success(cls, method: str, credentials: Any) -> "AuthenticationResult":
        """Create a successful authentication result."""
        return cls(success=True, method=method, credentials=credentials, error_message=None)

    @classmethod
    def create_failure(cls, method: str, error_message: str) -> "AuthenticationResult":
        """Create a failed authentication result."""
        return cls(success=False, method=method, error_message=error_message, credentials=None)

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Normalize authentication method names."""
        if not v or not v.strip():
            raise ValueError("Authentication method cannot be empty")
        return v.lower().strip().replace("-", "_").replace(" ", "_")

    @field_validator("error_message")
    @classmethod
    def validate_error_message(cls, v: str | None) -> str | None:
        """Validate error message."""
        if v is not None:
            stripped = v.strip()
            return stripped if stripped else None
        return v


class CredentialProvider(ABC):
    """Supplies bearer tokens on demand."""

    @abstractmethod
    async def get_token(self) -> str:
        """
        Return a valid access token.

        Raises:
            AuthError: If credentials cannot be resolved or refreshed
        """
        pass


class GCPCredentialProvider(CredentialProvider):
    """GCP credential resolution and token refresh."""

    def __init__(self, config: dict[str, Any]):
        self.config = config
        self.credentials_path = config.get("credentials_path") or None
        self.verify_certificates = not config.get("skip_ssl_verification", False)
        self._credentials = None
        self.method: str | None = None

    async def authenticate(self) -> AuthenticationResult:
        """Resolve credentials, trying each configured method in order."""
        # An explicit key file is the only method used when configured
        if self.credentials_path:
            auth_methods = [self._authenticate_with_service_account]
        else:
            auth_methods = [
                self._authenticate_with_default_credentials,
                self._authenticate_with_environment,
            ]

        last_result = None
        for method in auth_methods:
            result = await method()
            if result.success:
                logger.info(f"GCP authentication successful using {result.method}")
                self._credentials = result.credentials
                self.method = result.method
                return result
            logger.debug(f"GCP authentication method {result.method} failed: {result.error_message}")
            last_result = result

        return AuthenticationResult.create_failure(
            method=last_result.method if last_result else "none",
            error_message=(
                last_result.error_message if last_result else "All GCP authentication methods failed"
            ),
        )

    async def _authenticate_with_service_account(self) -> AuthenticationResult:
        """Authenticate using the service account JSON file from config."""
        if not Path(self.credentials_path).exists():
            return AuthenticationResult.create_failure(
                method="service_account",
                error_message=f"Service account file not found: {self.credentials_path}",
            )

        try:
            credentials = service_account.Credentials.from_service_account_file(
                self.credentials_path, scopes=SCOPES
            )
        except (ValueError, OSError) as e:
            return AuthenticationResult.create_failure(
                method="service_account",
                error_message=f"Invalid service account credentials: {e}",
            )

        return AuthenticationResult.create_success(method="service_account", credentials=credentials)

    async def _authenticate_with_default_credentials(self) -> AuthenticationResult:
        """Authenticate using application default credentials."""
        try:
            credentials, _project = await asyncio.to_thread(gcp_default, scopes=SCOPES)
        except DefaultCredentialsError as e:
            return AuthenticationResult.create_failure(
                method="default_credentials",
                error_message=f"Default credentials not available: {e}",
            )

        return AuthenticationResult.create_success(method="default_credentials", credentials=credentials)

    async def _authenticate_with_environment(self) -> AuthenticationResult:
        """Authenticate using a credentials JSON document in the environment."""
        creds_json = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS_JSON")

        if not creds_json:
            return AuthenticationResult.create_failure(
                method="environment_json",
                error_message="No credentials JSON in environment",
            )

        try:
            creds_info = json.loads(creds_json)
            if not isinstance(creds_info, dict):
                raise ValueError("expected a JSON object")
            credentials = service_account.Credentials.from_service_account_info(
                creds_info, scopes=SCOPES
            )
        except ValueError as e:
            return AuthenticationResult.create_failure(
                method="environment_json",
                error_message=f"Invalid credentials JSON in environment: {e}",
            )

        return AuthenticationResult.create_success(method="environment_json", credentials=credentials)

    def _refresh(self) -> None:
        session = requests.Session()
        session.verify = self.verify_certificates
        self._credentials.refresh(google.auth.transport.requests.Request(session=session))

    async def get_token(self) -> str:
        """Return a bearer token, refreshing the credentials when needed."""
        if self._credentials is None:
            result = await self.authenticate()
            if not result.success:
                raise AuthError(f"GCP authentication failed: {result.error_message}")

        if not self._credentials.valid:
            try:
                await asyncio.to_thread(self._refresh)
            except (GoogleAuthError, requests.RequestException) as e:
                logger.error(f"GCP token refresh failed: {e}")
                raise AuthError(f"GCP token refresh failed: {e}") from e

        token = self._credentials.token
        if not token:
            raise AuthError("GCP credentials did not yield an access token")
        return token
