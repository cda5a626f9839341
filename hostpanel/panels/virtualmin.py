"""
Virtualmin adapter.

Every call is a form POST to ``/virtual-server/remote.cgi`` naming the
Virtualmin command in ``program``; ``json=1`` selects the JSON envelope
``{"status": "success" | "failure", "error": ..., "data": [...]}``.
Command flags are sent as empty-valued fields.

Sizes: disk and mailbox quotas are in 1 KB blocks; bandwidth limits are in
bytes.

Virtualmin keeps one database login per virtual server (the domain owner),
so database users cannot be created, deleted or granted individually; only
the owner's database password can be changed (user id = domain).

Identifiers:
    account_id   the virtual server's domain
    mail id      the full email address
    database id  ``<domain>/<database name>``
"""

import logging
from typing import Any

import httpx

from hostpanel.panels.base import HostingPanel, update_result, utc_now
from hostpanel.panels.config import VirtualminConfig
from hostpanel.panels.errors import (
    PanelConfigError,
    PanelNotFoundError,
    PanelValidationError,
    list_operation,
    panel_operation,
)
from hostpanel.panels.mapping import (
    FieldMap,
    bytes_to_mb,
    map_fields,
    mb_to_bytes,
    mb_to_kb,
    merge_additional,
    stringify_values,
    to_number,
)
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

DEFAULT_PORT = 10000
REMOTE_PATH = "/virtual-server/remote.cgi"

# Mailbox quota applied when a create request names none
DEFAULT_MAIL_QUOTA_MB = 100

# Empty value: the field is a command flag
FLAG = ""

CREATE_DOMAIN_FIELDS = (
    FieldMap("domain", "domain"),
    FieldMap("username", "user"),
    FieldMap("password", "pass"),
    FieldMap("email", "email"),
    FieldMap("plan", "plan"),
    FieldMap("disk_quota_mb", "quota", mb_to_kb),
    FieldMap("bandwidth_limit_mb", "bw-limit", mb_to_bytes),
)

MODIFY_DOMAIN_FIELDS = (
    FieldMap("password", "pass"),
    FieldMap("plan", "apply-plan"),
    FieldMap("disk_quota_mb", "quota", mb_to_kb),
    FieldMap("bandwidth_limit_mb", "bw-limit", mb_to_bytes),
)

MODIFY_LIMITS_FIELDS = (
    FieldMap("max_email_accounts", "max-mailboxes"),
    FieldMap("max_databases", "max-dbs"),
    FieldMap("max_subdomains", "max-doms"),
)


def _values(entry: dict[str, Any]) -> dict[str, Any]:
    values = entry.get("values")
    return values if isinstance(values, dict) else {}


def _value(values: dict[str, Any], key: str) -> str | None:
    """Multiline output wraps every value in a list."""
    value = values.get(key)
    if isinstance(value, list):
        value = value[0] if value else None
    return None if value in (None, "") else str(value)


def _blocks_to_mb(value: str | None) -> float | None:
    number = to_number(value)
    return None if number is None else round(number / 1024, 2)


def _split_database_id(database_id: str) -> tuple[str, str]:
    domain, sep, name = database_id.partition("/")
    if not sep or not domain or not name:
        raise PanelValidationError(
            f"Invalid database id {database_id}; expected <domain>/<name>",
            ErrorCode.INVALID_DATABASE_ID,
        )
    return domain, name


class VirtualminAdapter(HostingPanel):
    """Virtualmin remote API adapter (HTTP basic auth)."""

    PROVIDER = PanelProvider.VIRTUALMIN

    def __init__(
        self,
        config: VirtualminConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        if not config.username or not config.username.strip():
            raise PanelConfigError("Virtualmin username is required")
        if not config.password:
            raise PanelConfigError("Virtualmin password is required")
        self.config = config
        self._transport = PanelTransport(
            config,
            default_port=DEFAULT_PORT,
            auth=(config.username, config.password),
            transport=transport,
            retry_policy=retry_policy,
        )

    async def aclose(self) -> None:
        await self._transport.aclose()

    # ------------------------------------------------------------------
    # Wire helpers
    # ------------------------------------------------------------------

    async def _run(self, program: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        form = {"program": program, "json": "1", **stringify_values(params or {})}
        logger.debug(f"Virtualmin program {program}", extra={"provider": self.PROVIDER})
        response = await self._transport.request("POST", REMOTE_PATH, data=form)
        payload = decode_json_object(response)
        if payload.get("status") != "success":
            raise self.vendor_error(payload.get("error") or f"Virtualmin {program} failed")
        return payload

    async def _list(self, program: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        payload = await self._run(program, {**params, "multiline": FLAG})
        data = payload.get("data")
        return [entry for entry in data or [] if isinstance(entry, dict) and entry.get("name")]

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _domain_info(self, entry: dict[str, Any]) -> AccountInfoResult:
        values = _values(entry)
        domain = str(entry["name"])
        return AccountInfoResult(
            success=True,
            message="Virtual server retrieved",
            account_id=domain,
            domain=domain,
            username=_value(values, "username"),
            email=_value(values, "contact_email"),
            plan=_value(values, "plan"),
            status="suspended" if _value(values, "disabled") else "active",
            disk_usage_mb=_blocks_to_mb(_value(values, "server_block_quota_used")),
            disk_quota_mb=_blocks_to_mb(_value(values, "server_block_quota")),
            bandwidth_used_mb=bytes_to_mb(_value(values, "bandwidth_usage")),
            bandwidth_limit_mb=bytes_to_mb(_value(values, "bandwidth_limit")),
            ip_address=_value(values, "ip_address"),
            additional_info={
                key: _value(values, key)
                for key in ("id", "home_directory", "created_on", "disabled")
                if key in values
            },
        )

    def _mail_info(self, entry: dict[str, Any], domain: str) -> AccountInfoResult:
        values = _values(entry)
        address = _value(values, "email_address") or f"{entry['name']}@{domain}"
        return AccountInfoResult(
            success=True,
            message="Mail account retrieved",
            account_id=address,
            domain=domain,
            username=str(entry["name"]),
            email=address,
            status="suspended" if _value(values, "disabled") else "active",
            disk_usage_mb=_blocks_to_mb(_value(values, "home_block_quota_used")),
            disk_quota_mb=_blocks_to_mb(_value(values, "home_block_quota")),
        )

    def _database_info(self, entry: dict[str, Any], domain: str) -> AccountInfoResult:
        values = _values(entry)
        return AccountInfoResult(
            success=True,
            message="Database retrieved",
            account_id=f"{domain}/{entry['name']}",
            domain=domain,
            status="active",
            additional_info={"name": entry["name"], "type": _value(values, "type")},
        )

    # ------------------------------------------------------------------
    # Web hosting accounts
    # ------------------------------------------------------------------

    @panel_operation(HostingAccountResult)
    async def create_web_hosting_account(
        self, request: HostingAccountRequest
    ) -> HostingAccountResult:
        validate_hosting_request(request)
        params = map_fields(request, CREATE_DOMAIN_FIELDS)
        params.update({"unix": FLAG, "dir": FLAG, "web": FLAG, "mail": FLAG})
        if request.plan:
            params["limits-from-plan"] = FLAG
        merge_additional(params, request.additional_settings, stringify=True)
        await self._run("create-domain", params)
        logger.info(
            f"Created Virtualmin server {request.domain}", extra={"provider": self.PROVIDER}
        )
        return HostingAccountResult(
            success=True,
            message=f"Virtual server {request.domain} created",
            account_id=request.domain,
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
        domain_changes = map_fields(request, MODIFY_DOMAIN_FIELDS)
        limit_changes = map_fields(request, MODIFY_LIMITS_FIELDS)
        if domain_changes:
            await self._run("modify-domain", {"domain": account_id, **domain_changes})
        if limit_changes:
            await self._run("modify-limits", {"domain": account_id, **limit_changes})

        updated = [
            entry.canonical
            for entry in (*MODIFY_DOMAIN_FIELDS, *MODIFY_LIMITS_FIELDS)
            if entry.vendor in domain_changes or entry.vendor in limit_changes
        ]
        if not updated:
            return update_result(account_id, "No changes requested")
        logger.info(f"Updated Virtualmin server {account_id}: {', '.join(updated)}")
        return update_result(
            account_id,
            f"Virtual server {account_id} updated",
            field=", ".join(updated),
            new_value={name: getattr(request, name) for name in updated if name != "password"},
        )

    @panel_operation(AccountUpdateResult)
    async def suspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._run("disable-domain", {"domain": account_id})
        logger.info(f"Disabled Virtualmin server {account_id}")
        return update_result(
            account_id, f"Virtual server {account_id} disabled", field="status", new_value="suspended"
        )

    @panel_operation(AccountUpdateResult)
    async def unsuspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._run("enable-domain", {"domain": account_id})
        logger.info(f"Enabled Virtualmin server {account_id}")
        return update_result(
            account_id, f"Virtual server {account_id} enabled", field="status", new_value="active"
        )

    @panel_operation(AccountUpdateResult)
    async def delete_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._run("delete-domain", {"domain": account_id})
        logger.info(f"Deleted Virtualmin server {account_id}")
        return update_result(account_id, f"Virtual server {account_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_web_hosting_account_info(self, account_id: str) -> AccountInfoResult:
        account_id = require_account_id(account_id)
        for entry in await self._list("list-domains", {"domain": account_id}):
            if str(entry["name"]).lower() == account_id.lower():
                return self._domain_info(entry)
        raise PanelNotFoundError(f"Virtual server {account_id} not found")

    @list_operation
    async def list_web_hosting_accounts(self) -> list[AccountInfoResult]:
        entries = await self._list("list-domains", {"toplevel": FLAG})
        return [self._domain_info(entry) for entry in entries]

    # ------------------------------------------------------------------
    # Mail accounts
    # ------------------------------------------------------------------

    @panel_operation(MailAccountResult)
    async def create_mail_account(self, request: MailAccountRequest) -> MailAccountResult:
        local_part, domain = validate_mail_request(request)
        quota_mb = request.quota_mb if request.quota_mb is not None else DEFAULT_MAIL_QUOTA_MB
        params = {
            "domain": domain,
            "user": local_part,
            "pass": request.password,
            "quota": mb_to_kb(quota_mb),
        }
        await self._run(
            "create-user", merge_additional(params, request.additional_settings, stringify=True)
        )
        address = f"{local_part}@{domain}"
        logger.info(f"Created Virtualmin mailbox {address}")
        return MailAccountResult(
            success=True,
            message=f"Mail account {address} created",
            account_id=address,
            email_address=address,
            domain=domain,
            quota_mb=quota_mb,
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def update_mail_account(
        self, account_id: str, request: MailAccountRequest
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        local_part, domain = split_email(account_id)
        validate_quota(request.quota_mb)
        params: dict[str, Any] = {}
        if request.quota_mb is not None:
            params["quota"] = mb_to_kb(request.quota_mb)
        if request.password:
            params["pass"] = request.password
        if not params:
            return update_result(account_id, "No changes requested")
        await self._run("modify-user", {"domain": domain, "user": local_part, **params})
        updated = ["quota_mb"] if "quota" in params else []
        if "pass" in params:
            updated.append("password")
        return update_result(
            account_id,
            f"Mail account {account_id} updated",
            field=", ".join(updated),
            new_value=request.quota_mb,
        )

    @panel_operation(AccountUpdateResult)
    async def delete_mail_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        local_part, domain = split_email(account_id)
        await self._run("delete-user", {"domain": domain, "user": local_part})
        logger.info(f"Deleted Virtualmin mailbox {account_id}")
        return update_result(account_id, f"Mail account {account_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_mail_account_info(self, account_id: str) -> AccountInfoResult:
        account_id = require_account_id(account_id)
        local_part, domain = split_email(account_id)
        for entry in await self._list("list-users", {"domain": domain, "user": local_part}):
            info = self._mail_info(entry, domain)
            if str(entry["name"]) == local_part or (info.email or "").lower() == account_id.lower():
                return info
        raise PanelNotFoundError(f"Mail account {account_id} not found")

    @list_operation
    async def list_mail_accounts(self, domain: str) -> list[AccountInfoResult]:
        domain = domain.strip().lower()
        entries = await self._list("list-users", {"domain": domain})
        return [self._mail_info(entry, domain) for entry in entries]

    @panel_operation(AccountUpdateResult)
    async def change_mail_password(
        self, account_id: str, new_password: str
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        local_part, domain = split_email(account_id)
        require_password(new_password)
        await self._run("modify-user", {"domain": domain, "user": local_part, "pass": new_password})
        logger.info(f"Changed password of Virtualmin mailbox {account_id}")
        return update_result(account_id, "Mail password changed", field="password")

    # ------------------------------------------------------------------
    # Account limits
    # ------------------------------------------------------------------

    @panel_operation(AccountUpdateResult)
    async def set_disk_quota(self, account_id: str, quota_mb: int) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_quota(quota_mb)
        await self._run("modify-domain", {"domain": account_id, "quota": mb_to_kb(quota_mb)})
        return update_result(
            account_id, f"Disk quota set to {quota_mb} MB", field="disk_quota_mb", new_value=quota_mb
        )

    @panel_operation(AccountUpdateResult)
    async def set_bandwidth_limit(
        self, account_id: str, bandwidth_mb: int
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_quota(bandwidth_mb)
        await self._run(
            "modify-domain", {"domain": account_id, "bw-limit": mb_to_bytes(bandwidth_mb)}
        )
        return update_result(
            account_id,
            f"Bandwidth limit set to {bandwidth_mb} MB",
            field="bandwidth_limit_mb",
            new_value=bandwidth_mb,
        )

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    @panel_operation(DatabaseResult)
    async def create_database(self, request: DatabaseRequest) -> DatabaseResult:
        name = validate_database_request(request)
        domain = require(
            request.account_id or request.domain,
            ErrorCode.INVALID_DOMAIN,
            "Virtualmin databases need the owning virtual server (account_id or domain)",
        )
        params = {"domain": domain, "name": name, "type": request.database_type}
        await self._run(
            "create-database", merge_additional(params, request.additional_settings, stringify=True)
        )
        logger.info(f"Created Virtualmin database {name}", extra={"domain": domain})
        return DatabaseResult(
            success=True,
            message=f"Database {name} created",
            database_id=f"{domain}/{name}",
            database_name=name,
            database_type=request.database_type,
            server="localhost",
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def delete_database(self, database_id: str) -> AccountUpdateResult:
        database_id = require_database_id(database_id)
        domain, name = _split_database_id(database_id)
        await self._run("delete-database", {"domain": domain, "name": name, "type": "mysql"})
        logger.info(f"Deleted Virtualmin database {database_id}")
        return update_result(database_id, f"Database {name} deleted")

    @panel_operation(AccountInfoResult)
    async def get_database_info(self, database_id: str) -> AccountInfoResult:
        database_id = require_database_id(database_id)
        domain, name = _split_database_id(database_id)
        for entry in await self._list("list-databases", {"domain": domain}):
            if entry["name"] == name:
                return self._database_info(entry, domain)
        raise PanelNotFoundError(f"Database {database_id} not found")

    @list_operation
    async def list_databases(self, domain: str) -> list[AccountInfoResult]:
        entries = await self._list("list-databases", {"domain": domain})
        return [self._database_info(entry, domain) for entry in entries]

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
        await self._run("modify-database-pass", {"domain": user_id, "pass": new_password})
        logger.info(f"Changed database password of Virtualmin server {user_id}")
        return update_result(user_id, "Database password changed", field="password")
