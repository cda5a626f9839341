"""
Hosting panel contract.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from types import TracebackType
from typing import Any, Self

from hostpanel.panels.errors import PanelNotSupportedError, PanelVendorError
from hostpanel.panels.types import (
    AccountInfoResult,
    AccountUpdateResult,
    DatabaseRequest,
    DatabaseResult,
    DatabaseUserRequest,
    HostingAccountRequest,
    HostingAccountResult,
    MailAccountRequest,
    MailAccountResult,
)


def utc_now() -> datetime:
    return datetime.now(UTC)


def update_result(
    account_id: str,
    message: str,
    *,
    field: str | None = None,
    new_value: Any = None,
    old_value: Any = None,
) -> AccountUpdateResult:
    """Successful acknowledgement of a mutation."""
    return AccountUpdateResult(
        success=True,
        message=message,
        account_id=account_id,
        updated_field=field,
        old_value=old_value,
        new_value=new_value,
        updated_date=utc_now(),
    )


class HostingPanel(ABC):
    """Canonical lifecycle contract implemented once per control panel.

    Every operation performs its own validation before touching the network
    and returns a result object; implementations never let an exception
    escape. List operations return an empty list when the panel cannot be
    queried.

    Identifiers returned by one adapter (``account_id``, ``database_id``, ...)
    are only meaningful to that same adapter.

    Adapters own their HTTP client; use them as async context managers or
    call ``aclose()`` when done.
    """

    PROVIDER: str = "generic"

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    @property
    def vendor_error_code(self) -> str:
        """Code used when the panel reports a failure without one of its own."""
        return f"{str(self.PROVIDER).upper()}_ERROR"

    def vendor_error(self, message: str | None, code: Any = None) -> PanelVendorError:
        return PanelVendorError(
            message or f"{self.PROVIDER} reported a failure", str(code or self.vendor_error_code)
        )

    def not_supported(self, operation: str) -> PanelNotSupportedError:
        return PanelNotSupportedError(str(self.PROVIDER), operation)

    @abstractmethod
    async def aclose(self) -> None:
        """Release the adapter's transport."""

    # -- Web hosting accounts ------------------------------------------------

    @abstractmethod
    async def create_web_hosting_account(
        self, request: HostingAccountRequest
    ) -> HostingAccountResult:
        """Create a web hosting account.

        Args:
            request: Domain, credentials, plan and optional limits.

        Returns:
            HostingAccountResult whose ``account_id`` identifies the account
            in later calls on this adapter.
        """

    @abstractmethod
    async def update_web_hosting_account(
        self, account_id: str, request: HostingAccountRequest
    ) -> AccountUpdateResult:
        """Apply the limits present on ``request`` to an existing account."""

    @abstractmethod
    async def suspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        """Suspend an account."""

    @abstractmethod
    async def unsuspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        """Lift a suspension."""

    @abstractmethod
    async def delete_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        """Delete an account and its content."""

    @abstractmethod
    async def get_web_hosting_account_info(self, account_id: str) -> AccountInfoResult:
        """Fetch one account."""

    @abstractmethod
    async def list_web_hosting_accounts(self) -> list[AccountInfoResult]:
        """List all accounts visible to the configured credentials."""

    # -- Mail accounts ---------------------------------------------------------

    @abstractmethod
    async def create_mail_account(self, request: MailAccountRequest) -> MailAccountResult:
        """Create a mailbox."""

    @abstractmethod
    async def update_mail_account(
        self, account_id: str, request: MailAccountRequest
    ) -> AccountUpdateResult:
        """Update a mailbox's quota (and password, when present)."""

    @abstractmethod
    async def delete_mail_account(self, account_id: str) -> AccountUpdateResult:
        """Delete a mailbox."""

    @abstractmethod
    async def get_mail_account_info(self, account_id: str) -> AccountInfoResult:
        """Fetch one mailbox."""

    @abstractmethod
    async def list_mail_accounts(self, domain: str) -> list[AccountInfoResult]:
        """List the mailboxes of ``domain``."""

    @abstractmethod
    async def change_mail_password(
        self, account_id: str, new_password: str
    ) -> AccountUpdateResult:
        """Set a new mailbox password."""

    # -- Account limits --------------------------------------------------------

    @abstractmethod
    async def set_disk_quota(self, account_id: str, quota_mb: int) -> AccountUpdateResult:
        """Set the disk quota of a hosting account, in MB."""

    @abstractmethod
    async def set_bandwidth_limit(
        self, account_id: str, bandwidth_mb: int
    ) -> AccountUpdateResult:
        """Set the monthly bandwidth limit of a hosting account, in MB."""

    # -- Databases -------------------------------------------------------------

    @abstractmethod
    async def create_database(self, request: DatabaseRequest) -> DatabaseResult:
        """Create a database."""

    @abstractmethod
    async def delete_database(self, database_id: str) -> AccountUpdateResult:
        """Delete a database."""

    @abstractmethod
    async def get_database_info(self, database_id: str) -> AccountInfoResult:
        """Fetch one database."""

    @abstractmethod
    async def list_databases(self, domain: str) -> list[AccountInfoResult]:
        """List the databases belonging to ``domain``."""

    @abstractmethod
    async def create_database_user(self, request: DatabaseUserRequest) -> DatabaseResult:
        """Create a database user."""

    @abstractmethod
    async def delete_database_user(self, user_id: str) -> AccountUpdateResult:
        """Delete a database user."""

    @abstractmethod
    async def grant_database_privileges(
        self, user_id: str, database_id: str, privileges: list[str]
    ) -> AccountUpdateResult:
        """Grant ``privileges`` (default ALL PRIVILEGES) on a database to a user."""

    @abstractmethod
    async def change_database_password(
        self, user_id: str, new_password: str
    ) -> AccountUpdateResult:
        """Set a new database user password."""
