"""
Canonical request/result types shared by every hosting panel adapter.

Nothing provider-specific lives here except through the open-ended
``additional_settings`` / ``additional_info`` maps.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_DATABASE_PRIVILEGES = ["ALL PRIVILEGES"]


class PanelProvider(StrEnum):
    """Supported hosting control panels"""

    CPANEL = "cpanel"  # WHM/cPanel
    PLESK = "plesk"
    DIRECTADMIN = "directadmin"
    CYBERPANEL = "cyberpanel"
    CLOUDPANEL = "cloudpanel"
    VIRTUALMIN = "virtualmin"
    ISPCONFIG = "ispconfig"


class ErrorKind(StrEnum):
    """Normalized failure categories."""

    VALIDATION = "VALIDATION"  # caller input failed pre-call checks
    NETWORK = "NETWORK"  # connection refused, timeout, DNS
    PARSE = "PARSE"  # 2xx body did not match the expected shape
    VENDOR = "VENDOR"  # panel reported the failure itself
    NOT_SUPPORTED = "NOT_SUPPORTED"
    NOT_FOUND = "NOT_FOUND"
    UNEXPECTED = "UNEXPECTED"


class ErrorCode(StrEnum):
    """Stable error codes surfaced in failure results.

    Vendor failures may also carry the vendor's own code, and HTTP failures
    carry the status code as a string, so ``error_code`` fields are typed
    ``str`` rather than ``ErrorCode``.
    """

    INVALID_DOMAIN = "INVALID_DOMAIN"
    INVALID_USERNAME = "INVALID_USERNAME"
    INVALID_PASSWORD = "INVALID_PASSWORD"
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_EMAIL_FORMAT = "INVALID_EMAIL_FORMAT"
    INVALID_ACCOUNT_ID = "INVALID_ACCOUNT_ID"
    INVALID_DATABASE_NAME = "INVALID_DATABASE_NAME"
    INVALID_DATABASE_ID = "INVALID_DATABASE_ID"
    INVALID_USER_ID = "INVALID_USER_ID"
    INVALID_QUOTA = "INVALID_QUOTA"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    JSON_PARSE_ERROR = "JSON_PARSE_ERROR"
    XML_PARSE_ERROR = "XML_PARSE_ERROR"
    RESPONSE_PARSE_ERROR = "RESPONSE_PARSE_ERROR"
    LOGIN_FAILED = "LOGIN_FAILED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    NOT_SUPPORTED = "NOT_SUPPORTED"
    NOT_FOUND = "NOT_FOUND"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class HostingAccountRequest(BaseModel):
    """Web hosting account to create or update."""

    domain: str | None = None
    username: str | None = None
    password: str | None = None
    email: str | None = None
    plan: str | None = None
    disk_quota_mb: int | None = None
    bandwidth_limit_mb: int | None = None
    max_email_accounts: int | None = None
    max_databases: int | None = None
    max_ftp_accounts: int | None = None
    max_subdomains: int | None = None
    shell_access: bool | None = None
    cgi_access: bool | None = None
    additional_settings: dict[str, Any] = Field(default_factory=dict)


class MailAccountRequest(BaseModel):
    """Mailbox to create or update."""

    email_address: str | None = None
    password: str | None = None
    domain: str | None = None
    quota_mb: int | None = None
    additional_settings: dict[str, Any] = Field(default_factory=dict)


class DatabaseRequest(BaseModel):
    """Database to create.

    ``account_id`` is the owning hosting account as returned by the same
    adapter; panels that scope databases to an account need it (or ``domain``).
    """

    database_name: str | None = None
    database_type: str = "mysql"
    username: str | None = None
    password: str | None = None
    account_id: str | None = None
    domain: str | None = None
    additional_settings: dict[str, Any] = Field(default_factory=dict)


class DatabaseUserRequest(BaseModel):
    """Database user to create."""

    username: str | None = None
    password: str | None = None
    database_name: str | None = None
    database_id: str | None = None
    account_id: str | None = None
    privileges: list[str] = Field(default_factory=lambda: list(DEFAULT_DATABASE_PRIVILEGES))
    additional_settings: dict[str, Any] = Field(default_factory=dict)

    @field_validator("privileges", mode="before")
    @classmethod
    def _default_privileges(cls, value: Any) -> Any:
        if not value:
            return list(DEFAULT_DATABASE_PRIVILEGES)
        return value


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class PanelResult(BaseModel):
    """Fields shared by every single-call result.

    ``success=True`` never carries error fields; a failure always carries a
    human-readable message.
    """

    success: bool = False
    message: str = ""
    error_code: str | None = None
    error_kind: ErrorKind | None = None
    errors: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_outcome(self) -> "PanelResult":
        if self.success:
            if self.error_code is not None or self.error_kind is not None or self.errors:
                raise ValueError("successful result must not carry error fields")
        elif not self.message:
            raise ValueError("failed result must carry a message")
        return self


class HostingAccountResult(PanelResult):
    account_id: str | None = None
    domain: str | None = None
    username: str | None = None
    email: str | None = None
    plan: str | None = None
    created_date: datetime | None = None


class MailAccountResult(PanelResult):
    account_id: str | None = None
    email_address: str | None = None
    domain: str | None = None
    quota_mb: int | None = None
    created_date: datetime | None = None


class DatabaseResult(PanelResult):
    database_id: str | None = None
    user_id: str | None = None  # set when a database user was created
    database_name: str | None = None
    database_type: str | None = None
    username: str | None = None
    server: str | None = None
    created_date: datetime | None = None


class AccountUpdateResult(PanelResult):
    """Acknowledgement of a mutation (update, suspend, delete, setters)."""

    account_id: str | None = None
    updated_field: str | None = None
    old_value: Any = None
    new_value: Any = None
    updated_date: datetime | None = None


class AccountInfoResult(PanelResult):
    """Read model used for single lookups and list entries alike."""

    account_id: str | None = None
    domain: str | None = None
    username: str | None = None
    email: str | None = None
    plan: str | None = None
    status: str | None = None
    disk_usage_mb: float | None = None
    disk_quota_mb: float | None = None
    bandwidth_used_mb: float | None = None
    bandwidth_limit_mb: float | None = None
    ip_address: str | None = None
    created_date: datetime | None = None
    additional_info: dict[str, Any] = Field(default_factory=dict)
