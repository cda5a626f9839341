"""
Hosting panel adapter factory.

Providers are looked up case-insensitively in a registry of
``(adapter class, config class)`` pairs; custom adapters can be added with
``register_panel``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from hostpanel.panels.base import HostingPanel
from hostpanel.panels.cloudpanel import CloudPanelAdapter
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
from hostpanel.panels.cpanel import CpanelAdapter
from hostpanel.panels.cyberpanel import CyberPanelAdapter
from hostpanel.panels.directadmin import DirectAdminAdapter
from hostpanel.panels.errors import PanelConfigError
from hostpanel.panels.ispconfig import ISPConfigAdapter
from hostpanel.panels.plesk import PleskAdapter
from hostpanel.panels.transport import RetryPolicy
from hostpanel.panels.types import PanelProvider
from hostpanel.panels.virtualmin import VirtualminAdapter

if TYPE_CHECKING:
    from hostpanel.settings import HostPanelSettings


class UnknownPanelProviderError(Exception):
    """Raised when an unrecognized panel provider is requested."""


# Provider registry
_PANELS: dict[str, tuple[type[HostingPanel], type[PanelConnection]]] = {
    PanelProvider.CPANEL: (CpanelAdapter, CpanelConfig),
    PanelProvider.PLESK: (PleskAdapter, PleskConfig),
    PanelProvider.DIRECTADMIN: (DirectAdminAdapter, DirectAdminConfig),
    PanelProvider.CYBERPANEL: (CyberPanelAdapter, CyberPanelConfig),
    PanelProvider.CLOUDPANEL: (CloudPanelAdapter, CloudPanelConfig),
    PanelProvider.VIRTUALMIN: (VirtualminAdapter, VirtualminConfig),
    PanelProvider.ISPCONFIG: (ISPConfigAdapter, ISPConfigConfig),
}


def _normalize(provider: str) -> str:
    return str(provider).strip().lower()


def register_panel(
    provider: str,
    adapter_cls: type[HostingPanel],
    config_cls: type[PanelConnection],
) -> None:
    """Register (or replace) the adapter used for ``provider``."""
    _PANELS[_normalize(provider)] = (adapter_cls, config_cls)


def list_supported_providers() -> list[str]:
    return sorted(str(name) for name in _PANELS)


def create_panel(
    provider: str,
    config: PanelConnection,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    retry_policy: RetryPolicy | None = None,
) -> HostingPanel:
    """Create a hosting panel adapter for the given provider.

    Args:
        provider: Provider identifier (e.g. "cpanel", "Plesk"); case-insensitive.
        config: The provider's connection config (e.g. ``CpanelConfig``).
        transport: Optional httpx transport, mainly for tests.
        retry_policy: Optional retry policy; defaults to a single attempt.

    Returns:
        HostingPanel instance owning its own HTTP client.

    Raises:
        UnknownPanelProviderError: If the provider is unknown.
        PanelConfigError: If the config has the wrong type or lacks credentials.
    """
    name = _normalize(provider)
    if name not in _PANELS:
        raise UnknownPanelProviderError(
            f"Unknown panel provider: {provider}. "
            f"Supported providers: {list_supported_providers()}"
        )
    adapter_cls, config_cls = _PANELS[name]
    if not isinstance(config, config_cls):
        raise PanelConfigError(
            f"{name} requires {config_cls.__name__}, got {type(config).__name__}"
        )
    return adapter_cls(config, transport=transport, retry_policy=retry_policy)


def create_panel_from_settings(
    settings: HostPanelSettings,
    provider: str | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> HostingPanel:
    """Create the adapter for ``provider`` (or ``settings.provider``) from settings.

    Raises:
        PanelConfigError: If no provider is named or its section is not configured.
        UnknownPanelProviderError: If the provider is unknown.
    """
    name = provider or settings.provider
    if not name:
        raise PanelConfigError("No panel provider given (set HOSTPANEL_PROVIDER)")
    if _normalize(name) not in _PANELS:
        raise UnknownPanelProviderError(f"Unknown panel provider: {name}")
    return create_panel(
        name,
        settings.panel_config(name),
        transport=transport,
        retry_policy=settings.build_retry_policy(),
    )
