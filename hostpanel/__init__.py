"""
hostpanel - Hosting Control Panel Provisioning

One async contract for provisioning web hosting accounts, mailboxes and
databases across hosting control panels.

This package provides:
1. Canonical request/result records shared by every panel
2. Adapters for cPanel/WHM, Plesk, DirectAdmin, CyberPanel, CloudPanel,
   Virtualmin and ISPConfig
3. Environment-driven configuration and a small CLI

Example:
    >>> from hostpanel import CpanelConfig, HostingAccountRequest, create_panel

    >>> config = CpanelConfig(api_url="whm.example.com", api_token="...")
    >>> async with create_panel("cpanel", config) as panel:
    ...     result = await panel.create_web_hosting_account(
    ...         HostingAccountRequest(domain="example.com", username="exuser",
    ...                               password="Str0ngP@ss", email="a@example.com")
    ...     )

Failures never raise: every operation returns a result with ``success=False``
and a stable ``error_code``.
"""

__version__ = "0.1.0"
__author__ = "hostpanel contributors"
__license__ = "Apache-2.0"

from hostpanel.panels import (
    AccountInfoResult,
    AccountUpdateResult,
    CloudPanelConfig,
    CpanelConfig,
    CyberPanelConfig,
    DatabaseRequest,
    DatabaseResult,
    DatabaseUserRequest,
    DirectAdminConfig,
    ErrorCode,
    ErrorKind,
    HostingAccountRequest,
    HostingAccountResult,
    HostingPanel,
    ISPConfigConfig,
    MailAccountRequest,
    MailAccountResult,
    PanelProvider,
    PleskConfig,
    UnknownPanelProviderError,
    VirtualminConfig,
    create_panel,
    create_panel_from_settings,
)
from hostpanel.settings import HostPanelSettings, get_settings

__all__ = [
    "AccountInfoResult",
    "AccountUpdateResult",
    "CloudPanelConfig",
    "CpanelConfig",
    "CyberPanelConfig",
    "DatabaseRequest",
    "DatabaseResult",
    "DatabaseUserRequest",
    "DirectAdminConfig",
    "ErrorCode",
    "ErrorKind",
    "HostPanelSettings",
    "HostingAccountRequest",
    "HostingAccountResult",
    "HostingPanel",
    "ISPConfigConfig",
    "MailAccountRequest",
    "MailAccountResult",
    "PanelProvider",
    "PleskConfig",
    "UnknownPanelProviderError",
    "VirtualminConfig",
    "__version__",
    "create_panel",
    "create_panel_from_settings",
    "get_settings",
]
