"""
Pre-call request validation.

Every check here runs before an adapter touches the network and raises
``PanelValidationError``; the operation guard turns that into a failed result.
"""

from hostpanel.panels.errors import PanelValidationError
from hostpanel.panels.types import (
    DatabaseRequest,
    DatabaseUserRequest,
    ErrorCode,
    HostingAccountRequest,
    MailAccountRequest,
)


def require(value: str | None, code: ErrorCode, message: str) -> str:
    """Return ``value`` unchanged, or raise if it is missing or blank."""
    if value is None or not str(value).strip():
        raise PanelValidationError(message, code)
    return str(value)


def split_email(address: str | None) -> tuple[str, str]:
    """Split ``local@domain``; exactly one ``@`` with both parts present."""
    address = require(address, ErrorCode.INVALID_EMAIL, "Email address is required")
    parts = address.split("@")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise PanelValidationError(
            f"Invalid email address format: {address}", ErrorCode.INVALID_EMAIL_FORMAT
        )
    return parts[0], parts[1].lower()


def validate_hosting_request(
    request: HostingAccountRequest, *, require_email: bool = False
) -> None:
    require(request.domain, ErrorCode.INVALID_DOMAIN, "Domain is required")
    require(request.username, ErrorCode.INVALID_USERNAME, "Username is required")
    require(request.password, ErrorCode.INVALID_PASSWORD, "Password is required")
    if require_email:
        require(request.email, ErrorCode.INVALID_EMAIL, "Contact email is required")
    if request.email:
        split_email(request.email)
    validate_limits(request)


def validate_limits(request: HostingAccountRequest) -> None:
    for name in (
        "disk_quota_mb",
        "bandwidth_limit_mb",
        "max_email_accounts",
        "max_databases",
        "max_ftp_accounts",
        "max_subdomains",
    ):
        value = getattr(request, name)
        if value is not None and value < 0:
            raise PanelValidationError(f"{name} must not be negative", ErrorCode.INVALID_QUOTA)


def validate_mail_request(request: MailAccountRequest) -> tuple[str, str]:
    """Validate a mailbox create request; returns ``(local_part, domain)``."""
    local_part, domain = split_email(request.email_address)
    require(request.password, ErrorCode.INVALID_PASSWORD, "Password is required")
    if request.domain and request.domain.strip().lower() != domain:
        raise PanelValidationError(
            f"Domain {request.domain} does not match email address {request.email_address}",
            ErrorCode.INVALID_DOMAIN,
        )
    validate_quota(request.quota_mb)
    return local_part, domain


def validate_database_request(request: DatabaseRequest) -> str:
    return require(
        request.database_name, ErrorCode.INVALID_DATABASE_NAME, "Database name is required"
    )


def validate_database_user_request(request: DatabaseUserRequest) -> None:
    require(request.username, ErrorCode.INVALID_USERNAME, "Username is required")
    require(request.password, ErrorCode.INVALID_PASSWORD, "Password is required")


def require_account_id(account_id: str | None) -> str:
    return require(account_id, ErrorCode.INVALID_ACCOUNT_ID, "Account id is required")


def require_database_id(database_id: str | None) -> str:
    return require(database_id, ErrorCode.INVALID_DATABASE_ID, "Database id is required")


def require_user_id(user_id: str | None) -> str:
    return require(user_id, ErrorCode.INVALID_USER_ID, "User id is required")


def require_password(password: str | None) -> str:
    return require(password, ErrorCode.INVALID_PASSWORD, "Password is required")


def validate_quota(value: int | None) -> None:
    if value is not None and value < 0:
        raise PanelValidationError("Quota must not be negative", ErrorCode.INVALID_QUOTA)
