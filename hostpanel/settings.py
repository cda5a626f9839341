"""
hostpanel.settings - Centralized Configuration

Loads panel connections from .env files and environment variables using
pydantic-settings. Each provider has its own optional section; nested fields
use a double underscore.

Environment example::

    HOSTPANEL_PROVIDER=cpanel
    HOSTPANEL_CPANEL__API_URL=whm.example.com
    HOSTPANEL_CPANEL__API_TOKEN=...
    HOSTPANEL_ISPCONFIG__API_URL=https://panel.example.com
    HOSTPANEL_ISPCONFIG__USERNAME=remote
    HOSTPANEL_ISPCONFIG__PASSWORD=...

Usage:
    >>> from hostpanel.settings import get_settings
    >>> settings = get_settings()
    >>> settings.panel_config("cpanel")
    CpanelConfig(api_url='whm.example.com', ...)
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from hostpanel.panels.config import (
    CloudPanelConfig,
    CpanelConfig,
    CyberPanelConfig,
    DirectAdminConfig,
    ISPConfigConfig,
    PanelConnection,
    PleskConfig,
    VirtualminConfig,
)
from hostpanel.panels.errors import PanelConfigError
from hostpanel.panels.transport import NoRetry, RetryOnNetworkError, RetryPolicy


class HostPanelSettings(BaseSettings):
    """hostpanel configuration loaded from .env / environment variables.

    All HOSTPANEL_* prefixed env vars are loaded automatically.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HOSTPANEL_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # -- Environment -----------------------------------------------------------
    env: str = "development"

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Defaults --------------------------------------------------------------
    provider: str | None = None
    # 1 = no retries; only network failures are ever retried
    max_attempts: int = 1
    retry_backoff_seconds: float = 0.5

    # -- Panel connections -----------------------------------------------------
    cpanel: CpanelConfig | None = None
    plesk: PleskConfig | None = None
    directadmin: DirectAdminConfig | None = None
    cyberpanel: CyberPanelConfig | None = None
    cloudpanel: CloudPanelConfig | None = None
    virtualmin: VirtualminConfig | None = None
    ispconfig: ISPConfigConfig | None = None

    # -- Helpers ---------------------------------------------------------------

    def panel_config(self, provider: str) -> PanelConnection:
        """Return the configured connection section for ``provider``."""
        name = provider.strip().lower()
        if name not in CONNECTION_SECTIONS:
            raise PanelConfigError(f"No configuration section for provider: {provider}")
        section = getattr(self, name)
        if section is None:
            raise PanelConfigError(
                f"Provider {name} is not configured (set HOSTPANEL_{name.upper()}__API_URL)"
            )
        return section

    def configured_providers(self) -> list[str]:
        return [name for name in CONNECTION_SECTIONS if getattr(self, name) is not None]

    def build_retry_policy(self) -> RetryPolicy:
        if self.max_attempts <= 1:
            return NoRetry()
        return RetryOnNetworkError(
            max_attempts=self.max_attempts, backoff_seconds=self.retry_backoff_seconds
        )


CONNECTION_SECTIONS = (
    "cpanel",
    "plesk",
    "directadmin",
    "cyberpanel",
    "cloudpanel",
    "virtualmin",
    "ispconfig",
)


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_settings() -> HostPanelSettings:
    """Return the cached HostPanelSettings singleton."""
    return HostPanelSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()
