"""
Hosting control panel adapters.

Provides provider-specific adapters (cPanel/WHM, Plesk, DirectAdmin,
CyberPanel, CloudPanel, Virtualmin, ISPConfig) behind a common HostingPanel
ABC. Shared request/result records live in types.py.
"""

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
from hostpanel.panels.errors import PanelConfigError, PanelError
from hostpanel.panels.factory import (
    UnknownPanelProviderError,
    create_panel,
    create_panel_from_settings,
    list_supported_providers,
    register_panel,
)
from hostpanel.panels.ispconfig import ISPConfigAdapter
from hostpanel.panels.plesk import PleskAdapter
from hostpanel.panels.transport import NoRetry, RetryOnNetworkError, RetryPolicy
from hostpanel.panels.types import (
    AccountInfoResult,
    AccountUpdateResult,
    DatabaseRequest,
    DatabaseResult,
    DatabaseUserRequest,
    ErrorCode,
    ErrorKind,
    HostingAccountRequest,
    HostingAccountResult,
    MailAccountRequest,
    MailAccountResult,
    PanelProvider,
    PanelResult,
)
from hostpanel.panels.virtualmin import VirtualminAdapter

__all__ = [
    "AccountInfoResult",
    "AccountUpdateResult",
    "CloudPanelAdapter",
    "CloudPanelConfig",
    "CpanelAdapter",
    "CpanelConfig",
    "CyberPanelAdapter",
    "CyberPanelConfig",
    "DatabaseRequest",
    "DatabaseResult",
    "DatabaseUserRequest",
    "DirectAdminAdapter",
    "DirectAdminConfig",
    "ErrorCode",
    "ErrorKind",
    "HostingAccountRequest",
    "HostingAccountResult",
    "HostingPanel",
    "ISPConfigAdapter",
    "ISPConfigConfig",
    "MailAccountRequest",
    "MailAccountResult",
    "NoRetry",
    "PanelConfigError",
    "PanelConnection",
    "PanelError",
    "PanelProvider",
    "PanelResult",
    "PleskAdapter",
    "PleskConfig",
    "RetryOnNetworkError",
    "RetryPolicy",
    "UnknownPanelProviderError",
    "VirtualminAdapter",
    "VirtualminConfig",
    "create_panel",
    "create_panel_from_settings",
    "list_supported_providers",
    "register_panel",
]
