"""
Connection configuration for hosting panel adapters.

Each adapter receives one of these immutable values at construction time.
Credentials are optional at the model level so that settings can be loaded
partially from the environment; the adapter constructors reject missing
credentials.
"""

from pydantic import BaseModel, ConfigDict


class PanelConnection(BaseModel):
    """Fields shared by every panel connection."""

    model_config = ConfigDict(frozen=True)

    api_url: str
    port: int | None = None  # None -> provider default
    use_https: bool = True
    timeout_seconds: float = 30.0
    verify_ssl: bool = True


class CpanelConfig(PanelConnection):
    api_token: str | None = None
    username: str = "root"  # WHM user owning the token


class PleskConfig(PanelConnection):
    api_key: str | None = None
    # Optional login/password override for the API key
    username: str | None = None
    password: str | None = None


class DirectAdminConfig(PanelConnection):
    username: str | None = None
    password: str | None = None


class CyberPanelConfig(PanelConnection):
    api_key: str | None = None
    admin_username: str | None = None
    admin_password: str | None = None


class CloudPanelConfig(PanelConnection):
    api_key: str | None = None


class VirtualminConfig(PanelConnection):
    username: str | None = None
    password: str | None = None


class ISPConfigConfig(PanelConnection):
    username: str | None = None
    password: str | None = None
    # Full URL of remote/json.php when it is not served under api_url
    remote_api_url: str | None = None
