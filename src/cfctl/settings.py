"""Explicit configuration context for a single cfctl invocation.

The context is constructed once by the CLI layer and handed to every
component that needs paths or identities (config store, vault, login
service).  Nothing in cfctl reads configuration from module-level
globals.

Values come from ``CFCTL_*`` environment variables with sane defaults.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_CONFIG_FILENAME: str = "config.yaml"
USER_CACHE_DIRNAME: str = "cache"


class ConfigContext(BaseSettings):
    """Paths and fixed identities shared by the whole login flow."""

    home: Path = Field(
        default_factory=lambda: Path.home() / ".cfctl",
        description="Root directory holding both configuration tiers",
    )
    keyring_service: str = Field(
        default="cfctl-credentials",
        description="OS key-store service name of the vault key",
    )
    keyring_account: str = Field(
        default="encryption-key",
        description="OS key-store account name of the vault key",
    )
    app_suffix: str = Field(
        default="-app",
        description="Environment-name suffix marking app-kind environments",
    )
    log_level: str = Field(
        default="WARNING",
        description="Default logging level when --verbose is not given",
    )

    model_config = SettingsConfigDict(
        env_prefix="CFCTL_",
        extra="ignore",
    )

    @property
    def app_config_path(self) -> Path:
        """Application tier file (highest precedence)."""
        return self.home.expanduser() / APP_CONFIG_FILENAME

    @property
    def user_config_path(self) -> Path:
        """User-cache tier file."""
        return self.home.expanduser() / USER_CACHE_DIRNAME / APP_CONFIG_FILENAME

    def is_app_environment(self, name: str) -> bool:
        """Return ``True`` when *name* denotes an app-kind environment."""
        return name.endswith(self.app_suffix)
