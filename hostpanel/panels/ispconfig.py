"""
ISPConfig adapter (remote JSON API).

Each method is a POST to ``<remote>/json.php?<method>``. The first business
call logs in with ``login`` and caches the returned session id; every later
call sends it as ``session_id``. Responses look like
``{"code": "ok" | "remote_fault", "message": str, "response": ...}``.

A hosting account is an ISPConfig client plus its web domain. Creating one
adds a client (``client_add``) carrying the login, the plan as its client
template and the account limits, then the web domain under that client.
Passing ``additional_settings["client_id"]`` attaches the web domain to an
existing client instead. Mail and database records are created for that
client id (default 0, the admin) on ``additional_settings["server_id"]``
(default 1).

Identifiers:
    account_id   the numeric web domain id
    mail id      the numeric mail user id
    database id  the numeric database id
    user id      the numeric database user id
"""

import logging
from typing import Any

import httpx

from hostpanel.panels.base import HostingPanel, update_result, utc_now
from hostpanel.panels.config import ISPConfigConfig
from hostpanel.panels.errors import (
    PanelConfigError,
    PanelError,
    PanelHttpError,
    PanelNotFoundError,
    PanelParseError,
    PanelSessionExpiredError,
    PanelValidationError,
    PanelVendorError,
    list_operation,
    panel_operation,
)
from hostpanel.panels.mapping import (
    FieldMap,
    as_flag,
    bytes_to_mb,
    map_fields,
    mb_to_bytes,
    merge_additional,
    to_number,
)
from hostpanel.panels.session import SessionManager
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
    validate_mail_request,
    validate_quota,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
REMOTE_PATH = "/remote/json.php"
DEFAULT_SERVER_ID = 1
DEFAULT_CLIENT_ID = 0

yes_no = as_flag("y", "n")

WEB_DOMAIN_FIELDS = (
    FieldMap("domain", "domain"),
    FieldMap("disk_quota_mb", "hd_quota"),
    FieldMap("bandwidth_limit_mb", "traffic_quota"),
    FieldMap("cgi_access", "cgi", yes_no),
)

CLIENT_FIELDS = (
    FieldMap("username", "username"),
    FieldMap("username", "contact_name"),
    FieldMap("password", "password"),
    FieldMap("email", "email"),
    FieldMap("plan", "template_master"),
    FieldMap("disk_quota_mb", "limit_web_quota"),
    FieldMap("bandwidth_limit_mb", "limit_traffic_quota"),
    FieldMap("max_email_accounts", "limit_mailbox"),
    FieldMap("max_databases", "limit_database"),
    FieldMap("max_ftp_accounts", "limit_ftp_user"),
    FieldMap("max_subdomains", "limit_web_subdomain"),
    FieldMap("shell_access", "limit_shell_user", lambda allowed: 1 if allowed else 0),
    FieldMap("cgi_access", "limit_cgi", yes_no),
)

# Limits that only exist on the client record
CLIENT_ONLY_LIMITS = (
    "max_email_accounts",
    "max_databases",
    "max_ftp_accounts",
    "max_subdomains",
    "shell_access",
)


def _read_only(privileges: list[str]) -> bool:
    normalized = {p.strip().upper() for p in privileges if p.strip()}
    return bool(normalized) and normalized <= {"SELECT"}


class ISPConfigAdapter(HostingPanel):
    """ISPConfig remote API adapter with a lazily established session."""

    PROVIDER = PanelProvider.ISPCONFIG

    def __init__(
        self,
        config: ISPConfigConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        if not config.username or not config.username.strip():
            raise PanelConfigError("ISPConfig username is required")
        if not config.password:
            raise PanelConfigError("ISPConfig password is required")
        self.config = config
        self._transport = PanelTransport(
            config,
            default_port=DEFAULT_PORT,
            transport=transport,
            retry_policy=retry_policy,
        )
        self._endpoint = config.remote_api_url or REMOTE_PATH
        self.session = SessionManager(self._login)

    async def aclose(self) -> None:
        session_id = self.session.session_id
        try:
            if session_id:
                try:
                    await self._invoke("logout", {"session_id": session_id})
                except PanelError as e:
                    logger.warning(f"ISPConfig logout failed: {e.message}")
                self.session.invalidate(session_id)
        finally:
            await self._transport.aclose()

    # ------------------------------------------------------------------
    # Wire helpers
    # ------------------------------------------------------------------

    async def _invoke(self, method: str, body: dict[str, Any]) -> Any:
        """One remote call; returns ``response`` of an ``ok`` envelope."""
        logger.debug(f"ISPConfig call {method}", extra={"provider": self.PROVIDER})
        response = await self._transport.request("POST", f"{self._endpoint}?{method}", json=body)
        envelope = decode_json_object(response)
        if envelope.get("code") != "ok":
            message = envelope.get("message") or f"ISPConfig {method} failed"
            if "session" in str(message).lower():
                raise PanelSessionExpiredError(str(message))
            raise self.vendor_error(str(message), envelope.get("code"))
        return envelope.get("response")

    async def _login(self) -> str:
        try:
            session_id = await self._invoke(
                "login", {"username": self.config.username, "password": self.config.password}
            )
        except PanelHttpError:
            raise
        except PanelVendorError as e:
            raise PanelVendorError(
                f"ISPConfig login failed: {e.message}", ErrorCode.LOGIN_FAILED
            ) from e
        if not session_id or not isinstance(session_id, str):
            raise PanelVendorError(
                "ISPConfig login returned no session id", ErrorCode.LOGIN_FAILED
            )
        logger.info("Logged in to ISPConfig", extra={"provider": self.PROVIDER})
        return session_id

    async def _call(self, method: str, body: dict[str, Any] | None = None) -> Any:
        """Run ``method`` with the cached session, logging in again once on expiry."""

        async def call(session_id: str) -> Any:
            return await self._invoke(method, {"session_id": session_id, **(body or {})})

        return await self.session.run(call)

    @staticmethod
    def _new_id(value: Any, method: str) -> str:
        if value in (None, False, "", 0):
            raise PanelParseError(
                f"ISPConfig {method} returned no record id", ErrorCode.RESPONSE_PARSE_ERROR
            )
        return str(value)

    async def _get_one(self, method: str, primary_id: str, what: str) -> dict[str, Any]:
        record = await self._call(method, {"primary_id": primary_id})
        if not isinstance(record, dict) or not record:
            raise PanelNotFoundError(f"{what} {primary_id} not found")
        return record

    async def _get_many(self, method: str, criteria: dict[str, Any]) -> list[dict[str, Any]]:
        records = await self._call(method, {"primary_id": criteria})
        if isinstance(records, dict):
            records = list(records.values())
        return [record for record in records or [] if isinstance(record, dict)]

    async def _domain_id(self, domain: str) -> str:
        for record in await self._get_many("sites_web_domain_get", {"domain": domain}):
            if record.get("domain_id"):
                return str(record["domain_id"])
        raise PanelNotFoundError(f"Web domain {domain} not found")

    @staticmethod
    def _owner(additional: dict[str, Any]) -> tuple[int, int]:
        """Read ``(client_id, server_id)`` from additional settings."""
        ids = []
        for key, default in (("client_id", DEFAULT_CLIENT_ID), ("server_id", DEFAULT_SERVER_ID)):
            value = additional.get(key, default)
            try:
                ids.append(int(value))
            except (TypeError, ValueError):
                raise PanelValidationError(
                    f"ISPConfig {key} must be numeric, got {value!r}",
                    ErrorCode.INVALID_ACCOUNT_ID,
                ) from None
        return ids[0], ids[1]

    async def _roll_back(self, method: str, primary_id: str, what: str) -> str:
        """Delete a record left by a failed multi-step create; return a note for the caller."""
        try:
            await self._call(method, {"primary_id": primary_id})
        except PanelError as e:
            logger.warning(
                f"Could not roll back ISPConfig {what} {primary_id}: {e.message}",
                extra={"provider": self.PROVIDER},
            )
            return f" ({what} {primary_id} was created and could not be removed)"
        return f" ({what} {primary_id} was rolled back)"

    async def _update(
        self,
        method: str,
        primary_id: str,
        params: dict[str, Any],
        client_id: int = DEFAULT_CLIENT_ID,
    ) -> None:
        await self._call(
            method, {"client_id": client_id, "primary_id": primary_id, "params": params}
        )

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _web_domain_info(
        self, record: dict[str, Any], client: dict[str, Any] | None = None
    ) -> AccountInfoResult:
        client = client or {}
        return AccountInfoResult(
            success=True,
            message="Web domain retrieved",
            account_id=str(record["domain_id"]),
            domain=record.get("domain"),
            username=client.get("username") or record.get("system_user"),
            email=client.get("email"),
            plan=str(client["template_master"]) if client.get("template_master") else None,
            status="active" if record.get("active", "y") == "y" else "suspended",
            disk_quota_mb=to_number(record.get("hd_quota")),
            bandwidth_limit_mb=to_number(record.get("traffic_quota")),
            ip_address=record.get("ip_address"),
            additional_info={
                key: record[key]
                for key in ("server_id", "sys_groupid", "document_root", "php")
                if key in record
            },
        )

    def _mail_info(self, record: dict[str, Any]) -> AccountInfoResult:
        address = str(record.get("email") or "")
        return AccountInfoResult(
            success=True,
            message="Mail account retrieved",
            account_id=str(record["mailuser_id"]),
            domain=address.partition("@")[2] or None,
            username=record.get("login"),
            email=address or None,
            status="suspended" if record.get("disableimap") == "y" else "active",
            disk_quota_mb=bytes_to_mb(record.get("quota")),
        )

    def _database_info(self, record: dict[str, Any]) -> AccountInfoResult:
        return AccountInfoResult(
            success=True,
            message="Database retrieved",
            account_id=str(record["database_id"]),
            username=str(record["database_user_id"]) if record.get("database_user_id") else None,
            status="active" if record.get("active", "y") == "y" else "suspended",
            additional_info={
                "name": record.get("database_name"),
                "type": record.get("type"),
                "parent_domain_id": record.get("parent_domain_id"),
            },
        )

    # ------------------------------------------------------------------
    # Web hosting accounts
    # ------------------------------------------------------------------

    @panel_operation(HostingAccountResult)
    async def create_web_hosting_account(
        self, request: HostingAccountRequest
    ) -> HostingAccountResult:
        validate_hosting_request(request)
        extra = dict(request.additional_settings)
        client_id, server_id = self._owner(extra)
        existing_client = extra.pop("client_id", None) is not None
        if existing_client:
            client_limits = [
                name for name in CLIENT_ONLY_LIMITS if getattr(request, name) is not None
            ]
            if client_limits:
                raise self.not_supported(
                    f"Setting {', '.join(client_limits)} on an existing client"
                )
        params = map_fields(request, WEB_DOMAIN_FIELDS)
        params.update({"server_id": server_id, "type": "vhost", "active": "y"})
        merge_additional(params, extra)

        new_client_id = None
        if not existing_client:
            client_params = map_fields(request, CLIENT_FIELDS)
            new_client_id = self._new_id(
                await self._call("client_add", {"reseller_id": 0, "params": client_params}),
                "client_add",
            )
            client_id = int(new_client_id)
        try:
            domain_id = self._new_id(
                await self._call(
                    "sites_web_domain_add", {"client_id": client_id, "params": params}
                ),
                "sites_web_domain_add",
            )
        except PanelError as e:
            if new_client_id:
                e.message += await self._roll_back("client_delete", new_client_id, "client")
            raise
        logger.info(
            f"Created ISPConfig web domain {request.domain}",
            extra={"provider": self.PROVIDER, "domain_id": domain_id},
        )
        return HostingAccountResult(
            success=True,
            message=f"Web domain {request.domain} created",
            account_id=domain_id,
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
        params = map_fields(request, WEB_DOMAIN_FIELDS)
        params.pop("domain", None)
        if not params:
            return update_result(account_id, "No changes requested")
        await self._update("sites_web_domain_update", account_id, params)
        updated = [entry.canonical for entry in WEB_DOMAIN_FIELDS if entry.vendor in params]
        logger.info(f"Updated ISPConfig web domain {account_id}: {', '.join(updated)}")
        return update_result(
            account_id,
            f"Web domain {account_id} updated",
            field=", ".join(updated),
            new_value={name: getattr(request, name) for name in updated},
        )

    @panel_operation(AccountUpdateResult)
    async def suspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._update("sites_web_domain_update", account_id, {"active": "n"})
        logger.info(f"Deactivated ISPConfig web domain {account_id}")
        return update_result(
            account_id, f"Web domain {account_id} suspended", field="status", new_value="suspended"
        )

    @panel_operation(AccountUpdateResult)
    async def unsuspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._update("sites_web_domain_update", account_id, {"active": "y"})
        logger.info(f"Activated ISPConfig web domain {account_id}")
        return update_result(
            account_id, f"Web domain {account_id} activated", field="status", new_value="active"
        )

    @panel_operation(AccountUpdateResult)
    async def delete_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._call("sites_web_domain_delete", {"primary_id": account_id})
        logger.info(f"Deleted ISPConfig web domain {account_id}")
        return update_result(account_id, f"Web domain {account_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_web_hosting_account_info(self, account_id: str) -> AccountInfoResult:
        account_id = require_account_id(account_id)
        record = await self._get_one("sites_web_domain_get", account_id, "Web domain")
        client = None
        if record.get("sys_groupid"):
            found = await self._call("client_get_by_groupid", {"group_id": record["sys_groupid"]})
            client = found if isinstance(found, dict) else None
        return self._web_domain_info({"domain_id": account_id, **record}, client)

    @list_operation
    async def list_web_hosting_accounts(self) -> list[AccountInfoResult]:
        records = await self._get_many("sites_web_domain_get", {"type": "vhost"})
        return [self._web_domain_info(record) for record in records if record.get("domain_id")]

    # ------------------------------------------------------------------
    # Mail accounts
    # ------------------------------------------------------------------

    @panel_operation(MailAccountResult)
    async def create_mail_account(self, request: MailAccountRequest) -> MailAccountResult:
        local_part, domain = validate_mail_request(request)
        extra = dict(request.additional_settings)
        client_id, server_id = self._owner(extra)
        extra.pop("client_id", None)
        address = f"{local_part}@{domain}"
        params = {
            "server_id": server_id,
            "email": address,
            "login": address,
            "password": request.password,
            "quota": mb_to_bytes(request.quota_mb) if request.quota_mb is not None else 0,
            "maildir": f"/var/vmail/{domain}/{local_part}",
            "homedir": "/var/vmail",
            "uid": 5000,
            "gid": 5000,
            "postfix": "y",
            "disableimap": "n",
            "disablepop3": "n",
        }
        merge_additional(params, extra)
        mailuser_id = self._new_id(
            await self._call("mail_user_add", {"client_id": client_id, "params": params}),
            "mail_user_add",
        )
        logger.info(f"Created ISPConfig mailbox {address}", extra={"mailuser_id": mailuser_id})
        return MailAccountResult(
            success=True,
            message=f"Mail account {address} created",
            account_id=mailuser_id,
            email_address=address,
            domain=domain,
            quota_mb=request.quota_mb,
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def update_mail_account(
        self, account_id: str, request: MailAccountRequest
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_quota(request.quota_mb)
        params: dict[str, Any] = {}
        updated = []
        if request.quota_mb is not None:
            params["quota"] = mb_to_bytes(request.quota_mb)
            updated.append("quota_mb")
        if request.password:
            params["password"] = request.password
            updated.append("password")
        if not params:
            return update_result(account_id, "No changes requested")
        await self._update("mail_user_update", account_id, params)
        return update_result(
            account_id,
            f"Mail account {account_id} updated",
            field=", ".join(updated),
            new_value=request.quota_mb,
        )

    @panel_operation(AccountUpdateResult)
    async def delete_mail_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._call("mail_user_delete", {"primary_id": account_id})
        logger.info(f"Deleted ISPConfig mailbox {account_id}")
        return update_result(account_id, f"Mail account {account_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_mail_account_info(self, account_id: str) -> AccountInfoResult:
        account_id = require_account_id(account_id)
        record = await self._get_one("mail_user_get", account_id, "Mail account")
        return self._mail_info({"mailuser_id": account_id, **record})

    @list_operation
    async def list_mail_accounts(self, domain: str) -> list[AccountInfoResult]:
        domain = domain.strip().lower()
        records = await self._get_many("mail_user_get", {"email": f"%@{domain}"})
        return [self._mail_info(record) for record in records if record.get("mailuser_id")]

    @panel_operation(AccountUpdateResult)
    async def change_mail_password(
        self, account_id: str, new_password: str
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        require_password(new_password)
        await self._update("mail_user_update", account_id, {"password": new_password})
        logger.info(f"Changed password of ISPConfig mailbox {account_id}")
        return update_result(account_id, "Mail password changed", field="password")

    # ------------------------------------------------------------------
    # Account limits
    # ------------------------------------------------------------------

    @panel_operation(AccountUpdateResult)
    async def set_disk_quota(self, account_id: str, quota_mb: int) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_quota(quota_mb)
        await self._update("sites_web_domain_update", account_id, {"hd_quota": quota_mb})
        return update_result(
            account_id, f"Disk quota set to {quota_mb} MB", field="disk_quota_mb", new_value=quota_mb
        )

    @panel_operation(AccountUpdateResult)
    async def set_bandwidth_limit(
        self, account_id: str, bandwidth_mb: int
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_quota(bandwidth_mb)
        await self._update("sites_web_domain_update", account_id, {"traffic_quota": bandwidth_mb})
        return update_result(
            account_id,
            f"Bandwidth limit set to {bandwidth_mb} MB",
            field="bandwidth_limit_mb",
            new_value=bandwidth_mb,
        )

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def _add_database_user(
        self, username: str, password: str, additional: dict[str, Any]
    ) -> str:
        client_id, server_id = self._owner(additional)
        params = {
            "server_id": server_id,
            "database_user": username,
            "database_password": password,
        }
        return self._new_id(
            await self._call(
                "sites_database_user_add", {"client_id": client_id, "params": params}
            ),
            "sites_database_user_add",
        )

    @panel_operation(DatabaseResult)
    async def create_database(self, request: DatabaseRequest) -> DatabaseResult:
        name = validate_database_request(request)
        if request.account_id:
            domain_id = request.account_id
        elif request.domain:
            domain_id = await self._domain_id(request.domain)
        else:
            raise PanelValidationError(
                "ISPConfig databases need account_id or domain", ErrorCode.INVALID_ACCOUNT_ID
            )

        extra = dict(request.additional_settings)
        client_id, server_id = self._owner(extra)
        extra.pop("client_id", None)

        user_id = None
        if request.username and request.password:
            user_id = await self._add_database_user(
                request.username, request.password, request.additional_settings
            )

        params: dict[str, Any] = {
            "server_id": server_id,
            "parent_domain_id": domain_id,
            "type": request.database_type,
            "database_name": name,
            "database_charset": "utf8",
            "remote_access": "n",
            "active": "y",
        }
        if user_id:
            params["database_user_id"] = user_id
        merge_additional(params, extra)
        try:
            database_id = self._new_id(
                await self._call("sites_database_add", {"client_id": client_id, "params": params}),
                "sites_database_add",
            )
        except PanelError as e:
            if user_id:
                e.message += await self._roll_back(
                    "sites_database_user_delete", user_id, "database user"
                )
            raise
        logger.info(f"Created ISPConfig database {name}", extra={"database_id": database_id})
        return DatabaseResult(
            success=True,
            message=f"Database {name} created",
            database_id=database_id,
            database_name=name,
            database_type=request.database_type,
            username=request.username if user_id else None,
            user_id=user_id,
            server="localhost",
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def delete_database(self, database_id: str) -> AccountUpdateResult:
        database_id = require_database_id(database_id)
        await self._call("sites_database_delete", {"primary_id": database_id})
        logger.info(f"Deleted ISPConfig database {database_id}")
        return update_result(database_id, f"Database {database_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_database_info(self, database_id: str) -> AccountInfoResult:
        database_id = require_database_id(database_id)
        record = await self._get_one("sites_database_get", database_id, "Database")
        return self._database_info({"database_id": database_id, **record})

    @list_operation
    async def list_databases(self, domain: str) -> list[AccountInfoResult]:
        domain_id = await self._domain_id(domain)
        records = await self._get_many("sites_database_get", {"parent_domain_id": domain_id})
        return [
            self._database_info(record) for record in records if record.get("database_id")
        ]

    async def _assign_user(self, database_id: str, user_id: str, privileges: list[str]) -> str:
        column = "database_ro_user_id" if _read_only(privileges) else "database_user_id"
        await self._update("sites_database_update", database_id, {column: user_id})
        return column

    @panel_operation(DatabaseResult)
    async def create_database_user(self, request: DatabaseUserRequest) -> DatabaseResult:
        validate_database_user_request(request)
        user_id = await self._add_database_user(
            request.username, request.password, request.additional_settings
        )
        if request.database_id:
            await self._assign_user(request.database_id, user_id, request.privileges)
        logger.info(
            f"Created ISPConfig database user {request.username}", extra={"user_id": user_id}
        )
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
        await self._call("sites_database_user_delete", {"primary_id": user_id})
        logger.info(f"Deleted ISPConfig database user {user_id}")
        return update_result(user_id, f"Database user {user_id} deleted")

    @panel_operation(AccountUpdateResult)
    async def grant_database_privileges(
        self, user_id: str, database_id: str, privileges: list[str]
    ) -> AccountUpdateResult:
        user_id = require_user_id(user_id)
        database_id = require_database_id(database_id)
        granted = list(privileges or ["ALL PRIVILEGES"])
        column = await self._assign_user(database_id, user_id, granted)
        access = "read-only" if column == "database_ro_user_id" else "read-write"
        return update_result(
            user_id,
            f"User {user_id} granted {access} access to database {database_id}",
            field="privileges",
            new_value=granted,
        )

    @panel_operation(AccountUpdateResult)
    async def change_database_password(
        self, user_id: str, new_password: str
    ) -> AccountUpdateResult:
        user_id = require_user_id(user_id)
        require_password(new_password)
        await self._update(
            "sites_database_user_update", user_id, {"database_password": new_password}
        )
        logger.info(f"Changed password of ISPConfig database user {user_id}")
        return update_result(user_id, "Database password changed", field="password")
