"""
CyberPanel adapter.

Every call is a JSON POST to ``/api/<endpoint>`` carrying the admin
credentials in the body. Responses report ``status`` 1/0 with the failure in
``error_message``; listing endpoints return their rows in ``data``, which
some versions send as a JSON-encoded string.

CyberPanel sizes websites through packages only, so per-account quota and
bandwidth setters are not supported, and database users exist only as the
user created together with a database.

Identifiers:
    account_id   the website domain
    mail id      the full email address
    database id  ``<domain>/<database name>``
    user id      the database user name
"""

import json
import logging
from typing import Any

import httpx

from hostpanel.panels.base import HostingPanel, update_result, utc_now
from hostpanel.panels.config import CyberPanelConfig
from hostpanel.panels.errors import (
    PanelConfigError,
    PanelNotFoundError,
    PanelParseError,
    PanelValidationError,
    list_operation,
    panel_operation,
)
from hostpanel.panels.mapping import FieldMap, map_fields, merge_additional, to_number
from hostpanel.panels.transport import PanelTransport, RetryPolicy, decode_json_object
from hostpanel.panels.types import (
    AccountInfoResult,
    AccountUpdateResult,
    DatabaseRequest,
    DatabaseResult,
    DatabaseUserRequest,
    ErrorCode,
    HostingAccountRequest,
    HostingAccountResult,
    MailAccountRequest,
    MailAccountResult,
    PanelProvider,
)
from hostpanel.panels.validation import (
    require,
    require_account_id,
    require_database_id,
    require_password,
    require_user_id,
    split_email,
    validate_database_request,
    validate_hosting_request,
    validate_limits,
    validate_mail_request,
    validate_quota,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8090
DEFAULT_PACKAGE = "Default"

CREATE_WEBSITE_FIELDS = (
    FieldMap("domain", "domainName"),
    FieldMap("email", "ownerEmail"),
    FieldMap("username", "websiteOwner"),
    FieldMap("password", "ownerPassword"),
    FieldMap("plan", "packageName"),
)

# Limits CyberPanel only manages through packages
PACKAGE_LIMIT_FIELDS = (
    "disk_quota_mb",
    "bandwidth_limit_mb",
    "max_email_accounts",
    "max_databases",
    "max_ftp_accounts",
    "max_subdomains",
)


def _split_database_id(database_id: str) -> tuple[str, str]:
    domain, sep, name = database_id.partition("/")
    if not sep or not domain or not name:
        raise PanelValidationError(
            f"Invalid database id {database_id}; expected <domain>/<name>",
            ErrorCode.INVALID_DATABASE_ID,
        )
    return domain, name


class CyberPanelAdapter(HostingPanel):
    """CyberPanel API adapter (bearer token plus admin credentials)."""

    PROVIDER = PanelProvider.CYBERPANEL

    def __init__(
        self,
        config: CyberPanelConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        if not config.api_key or not config.api_key.strip():
            raise PanelConfigError("CyberPanel api_key is required")
        if not config.admin_username or not config.admin_password:
            raise PanelConfigError("CyberPanel admin_username and admin_password are required")
        self.config = config
        self._transport = PanelTransport(
            config,
            default_port=DEFAULT_PORT,
            headers={"Authorization": f"Bearer {config.api_key}"},
            transport=transport,
            retry_policy=retry_policy,
        )

    async def aclose(self) -> None:
        await self._transport.aclose()

    # ------------------------------------------------------------------
    # Wire helpers
    # ------------------------------------------------------------------

    async def _call(self, endpoint: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        body = {
            "adminUser": self.config.admin_username,
            "adminPass": self.config.admin_password,
            **(payload or {}),
        }
        logger.debug(f"CyberPanel call {endpoint}", extra={"provider": self.PROVIDER})
        response = await self._transport.request("POST", f"/api/{endpoint}", json=body)
        result = decode_json_object(response)

        if str(result.get("status")) != "1":
            message = result.get("error_message")
            if message in (None, "None", ""):
                message = f"CyberPanel {endpoint} failed"
            raise self.vendor_error(str(message))

        data = result.get("data")
        if isinstance(data, str):
            try:
                result["data"] = json.loads(data) if data.strip() else []
            except ValueError as e:
                raise PanelParseError(
                    f"CyberPanel {endpoint} returned malformed data", ErrorCode.JSON_PARSE_ERROR
                ) from e
        return result

    @staticmethod
    def _rows(result: dict[str, Any]) -> list[dict[str, Any]]:
        data = result.get("data")
        if not isinstance(data, list):
            return []
        return [row for row in data if isinstance(row, dict)]

    async def _websites(self) -> list[dict[str, Any]]:
        return self._rows(await self._call("fetchWebsites"))

    async def _mailboxes(self, domain: str) -> list[dict[str, Any]]:
        return self._rows(await self._call("getEmailsForDomain", {"domain": domain}))

    async def _databases(self, domain: str) -> list[dict[str, Any]]:
        return self._rows(await self._call("fetchDatabases", {"databaseWebsite": domain}))

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _website_info(self, row: dict[str, Any]) -> AccountInfoResult:
        state = str(row.get("state", "Active")).lower()
        return AccountInfoResult(
            success=True,
            message="Website retrieved",
            account_id=str(row["domain"]),
            domain=str(row["domain"]),
            username=row.get("admin"),
            email=row.get("adminEmail"),
            plan=row.get("package"),
            status="suspended" if state.startswith("suspend") else "active",
            disk_usage_mb=to_number(row.get("diskUsed")),
            ip_address=row.get("ipAddress"),
        )

    def _mail_info(self, row: dict[str, Any], domain: str) -> AccountInfoResult:
        address = str(row["email"])
        return AccountInfoResult(
            success=True,
            message="Mail account retrieved",
            account_id=address,
            domain=domain,
            username=address.partition("@")[0],
            email=address,
            status="active",
            disk_usage_mb=to_number(row.get("DiskUsage")),
        )

    def _database_info(self, row: dict[str, Any], domain: str) -> AccountInfoResult:
        name = str(row["dbName"])
        return AccountInfoResult(
            success=True,
            message="Database retrieved",
            account_id=f"{domain}/{name}",
            domain=domain,
            username=row.get("dbUser"),
            status="active",
            additional_info={"id": row["id"]} if "id" in row else {},
        )

    # ------------------------------------------------------------------
    # Web hosting accounts
    # ------------------------------------------------------------------

    @panel_operation(HostingAccountResult)
    async def create_web_hosting_account(
        self, request: HostingAccountRequest
    ) -> HostingAccountResult:
        validate_hosting_request(request, require_email=True)
        payload = map_fields(request, CREATE_WEBSITE_FIELDS)
        payload.setdefault("packageName", DEFAULT_PACKAGE)
        merge_additional(payload, request.additional_settings)
        await self._call("createWebsite", payload)
        logger.info(
            f"Created CyberPanel website {request.domain}", extra={"provider": self.PROVIDER}
        )
        return HostingAccountResult(
            success=True,
            message=f"Website {request.domain} created",
            account_id=request.domain,
            domain=request.domain,
            username=request.username,
            email=request.email,
            plan=payload["packageName"],
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def update_web_hosting_account(
        self, account_id: str, request: HostingAccountRequest
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_limits(request)
        if any(getattr(request, name) is not None for name in PACKAGE_LIMIT_FIELDS):
            raise self.not_supported("per-account limits (assign a package instead)")
        if not request.plan:
            return update_result(account_id, "No changes requested")
        await self._call(
            "changePackageAPI", {"websiteName": account_id, "packageName": request.plan}
        )
        logger.info(f"Moved CyberPanel website {account_id} to package {request.plan}")
        return update_result(
            account_id, f"Website {account_id} updated", field="plan", new_value=request.plan
        )

    @panel_operation(AccountUpdateResult)
    async def suspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._call("submitWebsiteStatus", {"websiteName": account_id, "state": "Suspend"})
        logger.info(f"Suspended CyberPanel website {account_id}")
        return update_result(
            account_id, f"Website {account_id} suspended", field="status", new_value="suspended"
        )

    @panel_operation(AccountUpdateResult)
    async def unsuspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._call("submitWebsiteStatus", {"websiteName": account_id, "state": "Unsuspend"})
        logger.info(f"Unsuspended CyberPanel website {account_id}")
        return update_result(
            account_id, f"Website {account_id} unsuspended", field="status", new_value="active"
        )

    @panel_operation(AccountUpdateResult)
    async def delete_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._call("deleteWebsite", {"domainName": account_id})
        logger.info(f"Deleted CyberPanel website {account_id}")
        return update_result(account_id, f"Website {account_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_web_hosting_account_info(self, account_id: str) -> AccountInfoResult:
        account_id = require_account_id(account_id)
        for row in await self._websites():
            if str(row.get("domain", "")).lower() == account_id.lower():
                return self._website_info(row)
        raise PanelNotFoundError(f"Website {account_id} not found")

    @list_operation
    async def list_web_hosting_accounts(self) -> list[AccountInfoResult]:
        return [self._website_info(row) for row in await self._websites() if row.get("domain")]

    # ------------------------------------------------------------------
    # Mail accounts
    # ------------------------------------------------------------------

    @panel_operation(MailAccountResult)
    async def create_mail_account(self, request: MailAccountRequest) -> MailAccountResult:
        local_part, domain = validate_mail_request(request)
        if request.quota_mb is not None:
            raise self.not_supported("mailbox quotas")
        await self._call(
            "submitEmailCreation",
            {"domainName": domain, "userName": local_part, "passwordByPass": request.password},
        )
        address = f"{local_part}@{domain}"
        logger.info(f"Created CyberPanel mailbox {address}")
        return MailAccountResult(
            success=True,
            message=f"Mail account {address} created",
            account_id=address,
            email_address=address,
            domain=domain,
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def update_mail_account(
        self, account_id: str, request: MailAccountRequest
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        split_email(account_id)
        validate_quota(request.quota_mb)
        if request.quota_mb is not None:
            raise self.not_supported("mailbox quotas")
        if not request.password:
            return update_result(account_id, "No changes requested")
        await self._call(
            "submitPasswordChange", {"email": account_id, "passwordByPass": request.password}
        )
        return update_result(account_id, f"Mail account {account_id} updated", field="password")

    @panel_operation(AccountUpdateResult)
    async def delete_mail_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        split_email(account_id)
        await self._call("submitEmailDeletion", {"email": account_id})
        logger.info(f"Deleted CyberPanel mailbox {account_id}")
        return update_result(account_id, f"Mail account {account_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_mail_account_info(self, account_id: str) -> AccountInfoResult:
        account_id = require_account_id(account_id)
        _, domain = split_email(account_id)
        for row in await self._mailboxes(domain):
            if str(row.get("email", "")).lower() == account_id.lower():
                return self._mail_info(row, domain)
        raise PanelNotFoundError(f"Mail account {account_id} not found")

    @list_operation
    async def list_mail_accounts(self, domain: str) -> list[AccountInfoResult]:
        domain = domain.strip().lower()
        return [
            self._mail_info(row, domain)
            for row in await self._mailboxes(domain)
            if row.get("email")
        ]

    @panel_operation(AccountUpdateResult)
    async def change_mail_password(
        self, account_id: str, new_password: str
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        split_email(account_id)
        require_password(new_password)
        await self._call(
            "submitPasswordChange", {"email": account_id, "passwordByPass": new_password}
        )
        logger.info(f"Changed password of CyberPanel mailbox {account_id}")
        return update_result(account_id, "Mail password changed", field="password")

    # ------------------------------------------------------------------
    # Account limits
    # ------------------------------------------------------------------

    @panel_operation(AccountUpdateResult)
    async def set_disk_quota(self, account_id: str, quota_mb: int) -> AccountUpdateResult:
        raise self.not_supported("set_disk_quota")

    @panel_operation(AccountUpdateResult)
    async def set_bandwidth_limit(
        self, account_id: str, bandwidth_mb: int
    ) -> AccountUpdateResult:
        raise self.not_supported("set_bandwidth_limit")

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    @panel_operation(DatabaseResult)
    async def create_database(self, request: DatabaseRequest) -> DatabaseResult:
        name = validate_database_request(request)
        domain = require(
            request.account_id or request.domain,
            ErrorCode.INVALID_DOMAIN,
            "CyberPanel databases need the owning website (account_id or domain)",
        )
        require(
            request.username,
            ErrorCode.INVALID_USERNAME,
            "CyberPanel creates the database user together with the database",
        )
        require_password(request.password)
        payload = {
            "databaseWebsite": domain,
            "dbName": name,
            "dbUsername": request.username,
            "dbPassword": request.password,
        }
        await self._call("submitDBCreation", merge_additional(payload, request.additional_settings))
        logger.info(f"Created CyberPanel database {name}", extra={"domain": domain})
        return DatabaseResult(
            success=True,
            message=f"Database {name} created",
            database_id=f"{domain}/{name}",
            database_name=name,
            database_type=request.database_type,
            username=request.username,
            user_id=request.username,
            server="localhost",
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def delete_database(self, database_id: str) -> AccountUpdateResult:
        database_id = require_database_id(database_id)
        _, name = _split_database_id(database_id)
        await self._call("submitDatabaseDeletion", {"dbName": name})
        logger.info(f"Deleted CyberPanel database {database_id}")
        return update_result(database_id, f"Database {name} deleted")

    @panel_operation(AccountInfoResult)
    async def get_database_info(self, database_id: str) -> AccountInfoResult:
        database_id = require_database_id(database_id)
        domain, name = _split_database_id(database_id)
        for row in await self._databases(domain):
            if row.get("dbName") == name:
                return self._database_info(row, domain)
        raise PanelNotFoundError(f"Database {database_id} not found")

    @list_operation
    async def list_databases(self, domain: str) -> list[AccountInfoResult]:
        return [
            self._database_info(row, domain)
            for row in await self._databases(domain)
            if row.get("dbName")
        ]

    @panel_operation(DatabaseResult)
    async def create_database_user(self, request: DatabaseUserRequest) -> DatabaseResult:
        raise self.not_supported("create_database_user")

    @panel_operation(AccountUpdateResult)
    async def delete_database_user(self, user_id: str) -> AccountUpdateResult:
        raise self.not_supported("delete_database_user")

    @panel_operation(AccountUpdateResult)
    async def grant_database_privileges(
        self, user_id: str, database_id: str, privileges: list[str]
    ) -> AccountUpdateResult:
        raise self.not_supported("grant_database_privileges")

    @panel_operation(AccountUpdateResult)
    async def change_database_password(
        self, user_id: str, new_password: str
    ) -> AccountUpdateResult:
        user_id = require_user_id(user_id)
        require_password(new_password)
        await self._call("changeDBPassword", {"dbUserName": user_id, "dbPassword": new_password})
        logger.info(f"Changed password of CyberPanel database user {user_id}")
        return update_result(user_id, "Database password changed", field="password")
