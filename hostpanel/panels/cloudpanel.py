"""
CloudPanel adapter.

JSON REST under ``/api/v1`` with an ``X-API-Key`` header. Every response is
wrapped as ``{"success": bool, "message": str, "data": ...}``.

CloudPanel has no mail service and no bandwidth limiting; those operations
fail with NOT_SUPPORTED without a request, and listing mailboxes returns an
empty list.

Identifiers:
    account_id   the numeric site id
    database id  the numeric database id
    user id      the numeric database user id
"""

import logging
from datetime import datetime
from typing import Any

import httpx

from hostpanel.panels.base import HostingPanel, update_result, utc_now
from hostpanel.panels.config import CloudPanelConfig
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
    require_account_id,
    require_database_id,
    require_password,
    require_user_id,
    validate_database_request,
    validate_database_user_request,
    validate_hosting_request,
    validate_limits,
    validate_quota,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8443

CREATE_SITE_FIELDS = (
    FieldMap("domain", "domainName"),
    FieldMap("username", "siteUser"),
    FieldMap("password", "siteUserPassword"),
    FieldMap("email", "email"),
    FieldMap("plan", "plan"),
    FieldMap("disk_quota_mb", "diskQuotaMb"),
)

UPDATE_SITE_FIELDS = (
    FieldMap("email", "email"),
    FieldMap("plan", "plan"),
    FieldMap("disk_quota_mb", "diskQuotaMb"),
)

READ_ONLY_PERMISSION = "read-only"
READ_WRITE_PERMISSION = "read-write"


def _permission_for(privileges: list[str]) -> str:
    normalized = {p.strip().upper() for p in privileges if p.strip()}
    if normalized and normalized <= {"SELECT"}:
        return READ_ONLY_PERMISSION
    return READ_WRITE_PERMISSION


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


class CloudPanelAdapter(HostingPanel):
    """CloudPanel REST adapter."""

    PROVIDER = PanelProvider.CLOUDPANEL

    def __init__(
        self,
        config: CloudPanelConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        if not config.api_key or not config.api_key.strip():
            raise PanelConfigError("CloudPanel api_key is required")
        self.config = config
        self._transport = PanelTransport(
            config,
            default_port=DEFAULT_PORT,
            headers={"X-API-Key": config.api_key, "Accept": "application/json"},
            transport=transport,
            retry_policy=retry_policy,
        )

    async def aclose(self) -> None:
        await self._transport.aclose()

    # ------------------------------------------------------------------
    # Wire helpers
    # ------------------------------------------------------------------

    async def _call(
        self,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Perform one REST call and return the envelope's ``data``."""
        logger.debug(f"CloudPanel {method} {path}", extra={"provider": self.PROVIDER})
        response = await self._transport.request(
            method, f"/api/v1{path}", json=body, params=params
        )
        envelope = decode_json_object(response)
        if envelope.get("success") is not True:
            raise self.vendor_error(envelope.get("message") or f"CloudPanel {method} {path} failed")
        return envelope.get("data")

    @staticmethod
    def _id_of(data: Any, what: str) -> str:
        if not isinstance(data, dict) or data.get("id") in (None, ""):
            raise PanelParseError(
                f"CloudPanel response for {what} has no id", ErrorCode.RESPONSE_PARSE_ERROR
            )
        return str(data["id"])

    async def _sites(self) -> list[dict[str, Any]]:
        data = await self._call("GET", "/sites")
        return [site for site in data or [] if isinstance(site, dict)]

    async def _site_id_for_domain(self, domain: str) -> str:
        for site in await self._sites():
            if str(site.get("domainName", "")).lower() == domain.lower() and site.get("id"):
                return str(site["id"])
        raise PanelNotFoundError(f"Site {domain} not found")

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _site_info(self, site: dict[str, Any]) -> AccountInfoResult:
        status = str(site.get("status") or "active").lower()
        return AccountInfoResult(
            success=True,
            message="Site retrieved",
            account_id=str(site["id"]),
            domain=site.get("domainName"),
            username=site.get("siteUser"),
            email=site.get("email"),
            plan=site.get("plan"),
            status="suspended" if status == "suspended" else "active",
            disk_usage_mb=to_number(site.get("diskUsageMb")),
            disk_quota_mb=to_number(site.get("diskQuotaMb")),
            ip_address=site.get("ipAddress"),
            created_date=_parse_timestamp(site.get("createdAt")),
            additional_info={
                key: site[key] for key in ("type", "phpVersion", "rootDirectory") if key in site
            },
        )

    def _database_info(self, database: dict[str, Any]) -> AccountInfoResult:
        return AccountInfoResult(
            success=True,
            message="Database retrieved",
            account_id=str(database["id"]),
            domain=database.get("domainName"),
            username=database.get("user"),
            status="active",
            disk_usage_mb=to_number(database.get("sizeMb")),
            created_date=_parse_timestamp(database.get("createdAt")),
            additional_info={"name": database.get("name"), "site_id": database.get("siteId")},
        )

    # ------------------------------------------------------------------
    # Web hosting accounts
    # ------------------------------------------------------------------

    @panel_operation(HostingAccountResult)
    async def create_web_hosting_account(
        self, request: HostingAccountRequest
    ) -> HostingAccountResult:
        validate_hosting_request(request)
        if request.bandwidth_limit_mb is not None:
            raise self.not_supported("bandwidth limits")
        body = merge_additional(
            map_fields(request, CREATE_SITE_FIELDS), request.additional_settings
        )
        body.setdefault("type", "php")
        site_id = self._id_of(await self._call("POST", "/sites", body=body), "site")
        logger.info(
            f"Created CloudPanel site {request.domain}",
            extra={"provider": self.PROVIDER, "site_id": site_id},
        )
        return HostingAccountResult(
            success=True,
            message=f"Site {request.domain} created",
            account_id=site_id,
            domain=request.domain,
            username=request.username,
            email=request.email,
            plan=request.plan,
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def update_web_hosting_account(
        self, account_id: str, request: HostingAccountRequest
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_limits(request)
        if request.bandwidth_limit_mb is not None:
            raise self.not_supported("bandwidth limits")
        body = map_fields(request, UPDATE_SITE_FIELDS)
        if not body:
            return update_result(account_id, "No changes requested")
        await self._call("PUT", f"/sites/{account_id}", body=body)
        updated = [entry.canonical for entry in UPDATE_SITE_FIELDS if entry.vendor in body]
        logger.info(f"Updated CloudPanel site {account_id}: {', '.join(updated)}")
        return update_result(
            account_id,
            f"Site {account_id} updated",
            field=", ".join(updated),
            new_value={name: getattr(request, name) for name in updated},
        )

    @panel_operation(AccountUpdateResult)
    async def suspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._call("POST", f"/sites/{account_id}/suspend")
        logger.info(f"Suspended CloudPanel site {account_id}")
        return update_result(
            account_id, f"Site {account_id} suspended", field="status", new_value="suspended"
        )

    @panel_operation(AccountUpdateResult)
    async def unsuspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._call("POST", f"/sites/{account_id}/unsuspend")
        logger.info(f"Unsuspended CloudPanel site {account_id}")
        return update_result(
            account_id, f"Site {account_id} unsuspended", field="status", new_value="active"
        )

    @panel_operation(AccountUpdateResult)
    async def delete_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._call("DELETE", f"/sites/{account_id}")
        logger.info(f"Deleted CloudPanel site {account_id}")
        return update_result(account_id, f"Site {account_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_web_hosting_account_info(self, account_id: str) -> AccountInfoResult:
        account_id = require_account_id(account_id)
        site = await self._call("GET", f"/sites/{account_id}")
        if not isinstance(site, dict) or not site.get("id"):
            raise PanelNotFoundError(f"Site {account_id} not found")
        return self._site_info(site)

    @list_operation
    async def list_web_hosting_accounts(self) -> list[AccountInfoResult]:
        return [self._site_info(site) for site in await self._sites() if site.get("id")]

    # ------------------------------------------------------------------
    # Mail accounts
    # ------------------------------------------------------------------

    @panel_operation(MailAccountResult)
    async def create_mail_account(self, request: MailAccountRequest) -> MailAccountResult:
        raise self.not_supported("create_mail_account")

    @panel_operation(AccountUpdateResult)
    async def update_mail_account(
        self, account_id: str, request: MailAccountRequest
    ) -> AccountUpdateResult:
        raise self.not_supported("update_mail_account")

    @panel_operation(AccountUpdateResult)
    async def delete_mail_account(self, account_id: str) -> AccountUpdateResult:
        raise self.not_supported("delete_mail_account")

    @panel_operation(AccountInfoResult)
    async def get_mail_account_info(self, account_id: str) -> AccountInfoResult:
        raise self.not_supported("get_mail_account_info")

    @list_operation
    async def list_mail_accounts(self, domain: str) -> list[AccountInfoResult]:
        raise self.not_supported("list_mail_accounts")

    @panel_operation(AccountUpdateResult)
    async def change_mail_password(
        self, account_id: str, new_password: str
    ) -> AccountUpdateResult:
        raise self.not_supported("change_mail_password")

    # ------------------------------------------------------------------
    # Account limits
    # ------------------------------------------------------------------

    @panel_operation(AccountUpdateResult)
    async def set_disk_quota(self, account_id: str, quota_mb: int) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_quota(quota_mb)
        await self._call("PUT", f"/sites/{account_id}", body={"diskQuotaMb": quota_mb})
        return update_result(
            account_id, f"Disk quota set to {quota_mb} MB", field="disk_quota_mb", new_value=quota_mb
        )

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
        if request.account_id:
            site_id = request.account_id
        elif request.domain:
            site_id = await self._site_id_for_domain(request.domain)
        else:
            raise PanelValidationError(
                "CloudPanel databases need account_id or domain", ErrorCode.INVALID_ACCOUNT_ID
            )

        body: dict[str, Any] = {"name": name, "type": request.database_type}
        if request.username and request.password:
            body["user"] = request.username
            body["password"] = request.password
        merge_additional(body, request.additional_settings)
        data = await self._call("POST", f"/sites/{site_id}/databases", body=body)
        database_id = self._id_of(data, "database")
        user_id = data.get("userId")

        logger.info(f"Created CloudPanel database {name}", extra={"database_id": database_id})
        return DatabaseResult(
            success=True,
            message=f"Database {name} created",
            database_id=database_id,
            database_name=name,
            database_type=request.database_type,
            username=body.get("user"),
            user_id=str(user_id) if user_id is not None else None,
            server=data.get("host") or "localhost",
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def delete_database(self, database_id: str) -> AccountUpdateResult:
        database_id = require_database_id(database_id)
        await self._call("DELETE", f"/databases/{database_id}")
        logger.info(f"Deleted CloudPanel database {database_id}")
        return update_result(database_id, f"Database {database_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_database_info(self, database_id: str) -> AccountInfoResult:
        database_id = require_database_id(database_id)
        database = await self._call("GET", f"/databases/{database_id}")
        if not isinstance(database, dict) or not database.get("id"):
            raise PanelNotFoundError(f"Database {database_id} not found")
        return self._database_info(database)

    @list_operation
    async def list_databases(self, domain: str) -> list[AccountInfoResult]:
        data = await self._call("GET", "/databases", params={"domain": domain})
        return [
            self._database_info(database)
            for database in data or []
            if isinstance(database, dict) and database.get("id")
        ]

    @panel_operation(DatabaseResult)
    async def create_database_user(self, request: DatabaseUserRequest) -> DatabaseResult:
        validate_database_user_request(request)
        body: dict[str, Any] = {
            "username": request.username,
            "password": request.password,
            "permissions": _permission_for(request.privileges),
        }
        if request.database_id:
            body["databaseId"] = request.database_id
        if request.database_name:
            body["databaseName"] = request.database_name
        merge_additional(body, request.additional_settings)
        user_id = self._id_of(await self._call("POST", "/database-users", body=body), "user")
        logger.info(f"Created CloudPanel database user {request.username}")
        return DatabaseResult(
            success=True,
            message=f"Database user {request.username} created",
            database_id=request.database_id,
            database_name=request.database_name,
            username=request.username,
            user_id=user_id,
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def delete_database_user(self, user_id: str) -> AccountUpdateResult:
        user_id = require_user_id(user_id)
        await self._call("DELETE", f"/database-users/{user_id}")
        logger.info(f"Deleted CloudPanel database user {user_id}")
        return update_result(user_id, f"Database user {user_id} deleted")

    @panel_operation(AccountUpdateResult)
    async def grant_database_privileges(
        self, user_id: str, database_id: str, privileges: list[str]
    ) -> AccountUpdateResult:
        user_id = require_user_id(user_id)
        database_id = require_database_id(database_id)
        permission = _permission_for(list(privileges or ["ALL PRIVILEGES"]))
        await self._call(
            "PUT",
            f"/database-users/{user_id}",
            body={"databaseId": database_id, "permissions": permission},
        )
        return update_result(
            user_id,
            f"Permission {permission} on {database_id} granted to {user_id}",
            field="privileges",
            new_value=permission,
        )

    @panel_operation(AccountUpdateResult)
    async def change_database_password(
        self, user_id: str, new_password: str
    ) -> AccountUpdateResult:
        user_id = require_user_id(user_id)
        require_password(new_password)
        await self._call("PUT", f"/database-users/{user_id}", body={"password": new_password})
        logger.info(f"Changed password of CloudPanel database user {user_id}")
        return update_result(user_id, "Database password changed", field="password")
