"""
Configuration management for the billing watcher.

Uses dynaconf for flexible configuration with YAML files and environment overrides.
"""

import logging
import re
from pathlib import Path
from typing import Any

from dynaconf import Dynaconf, Validator
from dynaconf.loaders import yaml_loader
from dynaconf.validator import ValidationError

logger = logging.getLogger(__name__)

# Get the project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
LOCAL_CONFIG_FILE = CONFIG_DIR / "config.local.yaml"

PROJECT_ID_PATTERN = re.compile(r"^[a-z][a-z0-9-]{4,28}[a-z0-9]$")
LANGUAGES = ["auto", "en", "ja"]

VALIDATORS = [
    Validator("gcp.dataset_id", default="billing_export"),
    Validator("gcp.query_timeout", default=60, gt=0),
    Validator("watcher.refresh_interval_minutes", default=30, gte=1),
    Validator("watcher.monthly_budget", default=0, gte=0),
    Validator("watcher.language", default="auto", is_in=LANGUAGES),
]


def build_settings(settings_files: list[str] | None = None) -> Dynaconf:
    """Create a Dynaconf instance over the given YAML files."""
    if settings_files is None:
        settings_files = [
            str(CONFIG_DIR / "config.yaml"),        # Base configuration
            str(LOCAL_CONFIG_FILE),                 # Local overrides (git-ignored)
            str(CONFIG_DIR / ".secrets.yaml"),      # Secrets file (git-ignored)
        ]
    return Dynaconf(
        envvar_prefix="BILLING_WATCHER",
        settings_files=settings_files,
        environments=False,
        load_dotenv=True,
        merge_enabled=True,
        envvar_separator="__",  # Nested keys, e.g. BILLING_WATCHER_GCP__PROJECT_ID=my-project
        validators=VALIDATORS,
    )


settings = build_settings()


def validate_project_id(project_id: str | None) -> bool:
    """Check a GCP project ID: 6-30 chars, lowercase letters, digits and hyphens."""
    return bool(project_id) and PROJECT_ID_PATTERN.match(project_id) is not None


def _section(value: Any) -> dict[str, Any]:
    if not value:
        return {}
    return {str(key).lower(): item for key, item in value.items()}


class WatcherConfig:
    """Configuration wrapper for billing watcher settings."""

    def __init__(self, settings_obj: Dynaconf | None = None):
        self.settings = settings_obj if settings_obj is not None else settings
        self._validate_config()

    def _validate_config(self):
        """Validate the configuration on initialization."""
        try:
            self.settings.validators.validate()
        except ValidationError as e:
            # A half-configured watcher still renders its unconfigured state
            logger.warning(f"Configuration validation warning: {e}")

    @property
    def gcp(self) -> dict[str, Any]:
        """GCP billing export settings."""
        return _section(self.settings.get("gcp"))

    @property
    def watcher(self) -> dict[str, Any]:
        """Refresh, budget and language settings."""
        return _section(self.settings.get("watcher"))

    @property
    def project_id(self) -> str:
        return self.gcp.get("project_id") or ""

    @property
    def dataset_id(self) -> str:
        return self.gcp.get("dataset_id") or ""

    @property
    def credentials_path(self) -> str:
        return self.gcp.get("credentials_path") or ""

    @property
    def skip_ssl_verification(self) -> bool:
        return bool(self.gcp.get("skip_ssl_verification", False))

    @property
    def refresh_interval_minutes(self) -> int:
        return int(self.watcher.get("refresh_interval_minutes") or 30)

    @property
    def monthly_budget(self) -> float:
        return float(self.watcher.get("monthly_budget") or 0)

    @property
    def language(self) -> str:
        return self.watcher.get("language") or "auto"

    @property
    def is_configured(self) -> bool:
        """Whether a project has been configured."""
        return bool(self.project_id)

    def get_provider_config(self) -> dict[str, Any]:
        """Configuration handed to the billing provider."""
        return self.gcp

    def load_file(self, path: str):
        """Load an additional YAML file over the current settings."""
        self.settings.load_file(path=path)
        self._validate_config()

    def override_from_cli(self, cli_args: dict[str, Any]):
        """Override configuration with CLI arguments."""
        cli_mapping = {
            "project": "gcp.project_id",
            "dataset": "gcp.dataset_id",
            "credentials": "gcp.credentials_path",
            "budget": "watcher.monthly_budget",
            "language": "watcher.language",
            "interval": "watcher.refresh_interval_minutes",
        }

        for cli_key, config_path in cli_mapping.items():
            if cli_args.get(cli_key) is not None:
                self.settings.set(config_path, cli_args[cli_key])

        # Re-validate after overrides
        self._validate_config()


def save_project_id(project_id: str, path: Path = LOCAL_CONFIG_FILE) -> Path:
    """
    Persist a project ID to the local override file.

    Args:
        project_id: GCP project ID
        path: YAML file to merge the setting into

    Returns:
        Path written

    Raises:
        ValueError: If the project ID format is invalid
    """
    if not validate_project_id(project_id):
        raise ValueError(f"Invalid project ID: {project_id!r}")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    yaml_loader.write(str(path), {"gcp": {"project_id": project_id}}, merge=True)
    logger.info(f"Project ID set: {project_id}")
    return path


# Global configuration instance
config = WatcherConfig()


def get_config() -> WatcherConfig:
    """Get the global configuration instance."""
    return config
