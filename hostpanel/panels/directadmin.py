"""
DirectAdmin adapter.

DirectAdmin answers ``CMD_API_*`` commands with url-encoded bodies such as
``error=0&text=Success&details=...`` or plain ``key=value`` listings. A
logged-out or mistyped request gets the HTML login page back, which is
treated as a parse failure.

User-level commands (mailboxes, databases) run as the domain owner through
the ``admin|owner`` login-as form of basic auth; the owner comes from
``CMD_API_DOMAIN_OWNERS``.

Identifiers:
    account_id   the account's main domain
    mail id      the full email address
    database id  the prefixed database name (``owner_name``)
    user id      ``<database id>:<prefixed user name>``
"""

import logging
from typing import Any

import httpx

from hostpanel.panels.base import HostingPanel, update_result, utc_now
from hostpanel.panels.config import DirectAdminConfig
from hostpanel.panels.errors import (
    PanelConfigError,
    PanelNotFoundError,
    PanelParseError,
    PanelValidationError,
    list_operation,
    panel_operation,
)
from hostpanel.panels.mapping import (
    FieldMap,
    as_flag,
    map_fields,
    merge_additional,
    stringify_values,
    to_number,
)
from hostpanel.panels.transport import PanelTransport, RetryPolicy, decode_form
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
    split_email,
    validate_database_request,
    validate_database_user_request,
    validate_hosting_request,
    validate_limits,
    validate_mail_request,
    validate_quota,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 2222

on_off = as_flag("ON", "OFF")

LIMIT_FIELDS = (
    FieldMap("disk_quota_mb", "quota"),
    FieldMap("bandwidth_limit_mb", "bandwidth"),
    FieldMap("max_email_accounts", "nemails"),
    FieldMap("max_databases", "mysql"),
    FieldMap("max_ftp_accounts", "ftp"),
    FieldMap("max_subdomains", "nsubdomains"),
    FieldMap("shell_access", "ssh", on_off),
    FieldMap("cgi_access", "cgi", on_off),
)

CREATE_ACCOUNT_FIELDS = (
    FieldMap("username", "username"),
    FieldMap("email", "email"),
    FieldMap("password", "passwd"),
    FieldMap("password", "passwd2"),
    FieldMap("domain", "domain"),
    FieldMap("plan", "package"),
    *LIMIT_FIELDS,
)

STATUS_KEYS = frozenset({"error", "text", "details"})

# Column flags understood by CMD_API_DB_USER_PRIVS
PRIVILEGE_FLAGS = (
    "alter",
    "create",
    "delete",
    "drop",
    "index",
    "insert",
    "lock_tables",
    "references",
    "select",
    "update",
)


def _first(parsed: dict[str, list[str]], key: str) -> str | None:
    values = parsed.get(key)
    return values[0] if values else None


def _list_values(parsed: dict[str, list[str]]) -> list[str]:
    return [value for value in parsed.get("list[]", []) if value]


def _owner_from_prefix(name: str, code: ErrorCode) -> str:
    owner, sep, rest = name.partition("_")
    if not sep or not owner or not rest:
        raise PanelValidationError(
            f"Cannot determine the owning user of {name}; expected <user>_<name>", code
        )
    return owner


def _split_user_id(user_id: str) -> tuple[str, str]:
    database, sep, user = user_id.partition(":")
    if not sep or not database or not user:
        raise PanelValidationError(
            f"Invalid database user id {user_id}; expected <database>:<user>",
            ErrorCode.INVALID_USER_ID,
        )
    return database, user


def _privilege_flags(privileges: list[str]) -> dict[str, str]:
    requested = {p.strip().lower().replace(" ", "_") for p in privileges if p.strip()}
    grant_all = "all_privileges" in requested or "all" in requested
    return {
        flag: "Y" if grant_all or flag in requested else "N" for flag in PRIVILEGE_FLAGS
    }


class DirectAdminAdapter(HostingPanel):
    """DirectAdmin admin-level adapter (HTTP basic auth)."""

    PROVIDER = PanelProvider.DIRECTADMIN

    def __init__(
        self,
        config: DirectAdminConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        if not config.username or not config.username.strip():
            raise PanelConfigError("DirectAdmin username is required")
        if not config.password:
            raise PanelConfigError("DirectAdmin password is required")
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

    async def _call(
        self,
        method: str,
        command: str,
        params: dict[str, Any] | None = None,
        *,
        as_user: str | None = None,
        require_status: bool | None = None,
    ) -> dict[str, list[str]]:
        """Run ``command`` and return the decoded body.

        Raises ``PanelVendorError`` when the body carries ``error`` other
        than ``0``. Mutations must report ``error``; listings (``GET``)
        may omit it unless ``require_status`` says otherwise.
        """
        if require_status is None:
            require_status = method != "GET"
        rendered = stringify_values(params or {})
        auth = (f"{self.config.username}|{as_user}", self.config.password) if as_user else None
        logger.debug(
            f"DirectAdmin call {command}",
            extra={"provider": self.PROVIDER, "as_user": as_user},
        )
        if method == "GET":
            response = await self._transport.request("GET", f"/{command}", params=rendered, auth=auth)
        else:
            response = await self._transport.request("POST", f"/{command}", data=rendered, auth=auth)

        text = response.text.strip()
        if text.startswith("<"):
            raise PanelParseError(
                f"DirectAdmin {command} returned HTML instead of an API response",
                ErrorCode.RESPONSE_PARSE_ERROR,
            )
        parsed = decode_form(text)
        error = _first(parsed, "error")
        if error is None and require_status:
            raise PanelParseError(
                f"DirectAdmin {command} returned no status", ErrorCode.RESPONSE_PARSE_ERROR
            )
        if error is not None and error != "0":
            message = " ".join(
                part for part in (_first(parsed, "text"), _first(parsed, "details")) if part
            )
            raise self.vendor_error(message or f"DirectAdmin {command} failed")
        return parsed

    async def _domain_owners(self, domain: str | None = None) -> dict[str, str]:
        params = {"domain": domain} if domain else None
        parsed = await self._call("GET", "CMD_API_DOMAIN_OWNERS", params)
        return {
            key: values[0]
            for key, values in parsed.items()
            if values and values[0] and key not in STATUS_KEYS
        }

    async def _domain_owner(self, domain: str) -> str:
        owners = await self._domain_owners(domain)
        # Dots in keys come back as underscores on some versions
        owner = owners.get(domain) or owners.get(domain.replace(".", "_"))
        if not owner:
            raise PanelNotFoundError(f"No user owns domain {domain}")
        return owner

    async def _select_users(self, owner: str, action: dict[str, str]) -> None:
        await self._call(
            "POST",
            "CMD_API_SELECT_USERS",
            {"location": "CMD_SELECT_USERS", **action, "select0": owner},
        )

    async def _customize(self, owner: str, changes: dict[str, Any]) -> None:
        await self._call(
            "POST", "CMD_API_MODIFY_USER", {"action": "customize", "user": owner, **changes}
        )

    # ------------------------------------------------------------------
    # Web hosting accounts
    # ------------------------------------------------------------------

    @panel_operation(HostingAccountResult)
    async def create_web_hosting_account(
        self, request: HostingAccountRequest
    ) -> HostingAccountResult:
        validate_hosting_request(request, require_email=True)
        params = {"action": "create", "add": "Submit", "notify": "no"}
        params.update(map_fields(request, CREATE_ACCOUNT_FIELDS))
        merge_additional(params, request.additional_settings, stringify=True)
        await self._call("POST", "CMD_API_ACCOUNT_USER", params)
        logger.info(
            f"Created DirectAdmin user {request.username}",
            extra={"provider": self.PROVIDER, "domain": request.domain},
        )
        return HostingAccountResult(
            success=True,
            message=f"User {request.username} created",
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
        changes = map_fields(request, LIMIT_FIELDS)
        if not changes and not request.plan:
            return update_result(account_id, "No changes requested")

        owner = await self._domain_owner(account_id)
        updated = [entry.canonical for entry in LIMIT_FIELDS if entry.vendor in changes]
        if changes:
            await self._customize(owner, changes)
        if request.plan:
            await self._call(
                "POST",
                "CMD_API_MODIFY_USER",
                {"action": "package", "user": owner, "package": request.plan},
            )
            updated.append("plan")
        logger.info(f"Updated DirectAdmin user {owner}: {', '.join(updated)}")
        return update_result(
            account_id,
            f"Account {account_id} updated",
            field=", ".join(updated),
            new_value={name: getattr(request, name) for name in updated},
        )

    @panel_operation(AccountUpdateResult)
    async def suspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        owner = await self._domain_owner(account_id)
        await self._select_users(owner, {"suspend": "Suspend", "dosuspend": "1"})
        logger.info(f"Suspended DirectAdmin user {owner}")
        return update_result(
            account_id, f"Account {account_id} suspended", field="status", new_value="suspended"
        )

    @panel_operation(AccountUpdateResult)
    async def unsuspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        owner = await self._domain_owner(account_id)
        await self._select_users(owner, {"suspend": "Unsuspend", "dounsuspend": "1"})
        logger.info(f"Unsuspended DirectAdmin user {owner}")
        return update_result(
            account_id, f"Account {account_id} unsuspended", field="status", new_value="active"
        )

    @panel_operation(AccountUpdateResult)
    async def delete_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        owner = await self._domain_owner(account_id)
        await self._select_users(owner, {"confirmed": "Confirm", "delete": "yes"})
        logger.info(f"Deleted DirectAdmin user {owner}")
        return update_result(account_id, f"Account {account_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_web_hosting_account_info(self, account_id: str) -> AccountInfoResult:
        account_id = require_account_id(account_id)
        owner = await self._domain_owner(account_id)
        config = await self._call("GET", "CMD_API_SHOW_USER_CONFIG", {"user": owner})
        usage = await self._call("GET", "CMD_API_SHOW_USER_USAGE", {"user": owner})
        suspended = _first(config, "suspended") == "yes"
        return AccountInfoResult(
            success=True,
            message="Account retrieved",
            account_id=account_id,
            domain=_first(config, "domain") or account_id,
            username=owner,
            email=_first(config, "email"),
            plan=_first(config, "package"),
            status="suspended" if suspended else "active",
            disk_usage_mb=to_number(_first(usage, "quota")),
            disk_quota_mb=to_number(_first(config, "quota")),
            bandwidth_used_mb=to_number(_first(usage, "bandwidth")),
            bandwidth_limit_mb=to_number(_first(config, "bandwidth")),
            ip_address=_first(config, "ip"),
            additional_info={
                key: _first(config, key)
                for key in ("creator", "date_created", "ssh", "cgi", "nemails", "mysql")
                if key in config
            },
        )

    @list_operation
    async def list_web_hosting_accounts(self) -> list[AccountInfoResult]:
        owners = await self._domain_owners()
        return [
            AccountInfoResult(
                success=True,
                message="Account retrieved",
                account_id=domain,
                domain=domain,
                username=owner,
            )
            for domain, owner in owners.items()
            if domain and owner
        ]

    # ------------------------------------------------------------------
    # Mail accounts
    # ------------------------------------------------------------------

    async def _pop(self, domain: str, params: dict[str, Any], method: str = "POST") -> dict:
        owner = await self._domain_owner(domain)
        return await self._call(
            method, "CMD_API_POP", {"domain": domain, **params}, as_user=owner
        )

    @panel_operation(MailAccountResult)
    async def create_mail_account(self, request: MailAccountRequest) -> MailAccountResult:
        local_part, domain = validate_mail_request(request)
        params: dict[str, Any] = {
            "action": "create",
            "user": local_part,
            "passwd": request.password,
            "passwd2": request.password,
        }
        if request.quota_mb is not None:
            params["quota"] = request.quota_mb
        await self._pop(domain, merge_additional(params, request.additional_settings))
        address = f"{local_part}@{domain}"
        logger.info(f"Created DirectAdmin mailbox {address}")
        return MailAccountResult(
            success=True,
            message=f"Mail account {address} created",
            account_id=address,
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
        local_part, domain = split_email(account_id)
        validate_quota(request.quota_mb)
        if request.quota_mb is None and not request.password:
            return update_result(account_id, "No changes requested")

        params: dict[str, Any] = {"action": "modify", "user": local_part}
        updated = []
        if request.quota_mb is not None:
            params["quota"] = request.quota_mb
            updated.append("quota_mb")
        if request.password:
            params["passwd"] = request.password
            params["passwd2"] = request.password
            updated.append("password")
        await self._pop(domain, params)
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
        await self._pop(domain, {"action": "delete", "user": local_part, "select0": local_part})
        logger.info(f"Deleted DirectAdmin mailbox {account_id}")
        return update_result(account_id, f"Mail account {account_id} deleted")

    def _mail_info(self, local_part: str, domain: str) -> AccountInfoResult:
        address = f"{local_part}@{domain}"
        return AccountInfoResult(
            success=True,
            message="Mail account retrieved",
            account_id=address,
            domain=domain,
            username=local_part,
            email=address,
            status="active",
        )

    async def _mailboxes(self, domain: str) -> list[str]:
        parsed = await self._pop(domain, {"action": "list"}, method="GET")
        return _list_values(parsed)

    @panel_operation(AccountInfoResult)
    async def get_mail_account_info(self, account_id: str) -> AccountInfoResult:
        account_id = require_account_id(account_id)
        local_part, domain = split_email(account_id)
        if local_part not in await self._mailboxes(domain):
            raise PanelNotFoundError(f"Mail account {account_id} not found")
        return self._mail_info(local_part, domain)

    @list_operation
    async def list_mail_accounts(self, domain: str) -> list[AccountInfoResult]:
        domain = domain.strip().lower()
        return [self._mail_info(local_part, domain) for local_part in await self._mailboxes(domain)]

    @panel_operation(AccountUpdateResult)
    async def change_mail_password(
        self, account_id: str, new_password: str
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        local_part, domain = split_email(account_id)
        require_password(new_password)
        await self._pop(
            domain,
            {"action": "modify", "user": local_part, "passwd": new_password, "passwd2": new_password},
        )
        logger.info(f"Changed password of DirectAdmin mailbox {account_id}")
        return update_result(account_id, "Mail password changed", field="password")

    # ------------------------------------------------------------------
    # Account limits
    # ------------------------------------------------------------------

    @panel_operation(AccountUpdateResult)
    async def set_disk_quota(self, account_id: str, quota_mb: int) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_quota(quota_mb)
        owner = await self._domain_owner(account_id)
        await self._customize(owner, {"quota": quota_mb})
        return update_result(
            account_id, f"Disk quota set to {quota_mb} MB", field="disk_quota_mb", new_value=quota_mb
        )

    @panel_operation(AccountUpdateResult)
    async def set_bandwidth_limit(
        self, account_id: str, bandwidth_mb: int
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_quota(bandwidth_mb)
        owner = await self._domain_owner(account_id)
        await self._customize(owner, {"bandwidth": bandwidth_mb})
        return update_result(
            account_id,
            f"Bandwidth limit set to {bandwidth_mb} MB",
            field="bandwidth_limit_mb",
            new_value=bandwidth_mb,
        )

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def _databases(self, owner: str) -> list[str]:
        parsed = await self._call("GET", "CMD_API_DATABASES", as_user=owner)
        return _list_values(parsed)

    def _database_info(self, database: str, owner: str) -> AccountInfoResult:
        return AccountInfoResult(
            success=True,
            message="Database retrieved",
            account_id=database,
            username=owner,
            status="active",
        )

    @panel_operation(DatabaseResult)
    async def create_database(self, request: DatabaseRequest) -> DatabaseResult:
        name = validate_database_request(request)
        domain = request.account_id or request.domain
        if domain:
            owner = await self._domain_owner(domain)
        else:
            owner = _owner_from_prefix(name, ErrorCode.INVALID_DATABASE_NAME)
        short_name = name.removeprefix(f"{owner}_")

        params: dict[str, Any] = {"action": "create", "name": short_name}
        db_user = None
        if request.username and request.password:
            user_short = request.username.removeprefix(f"{owner}_")
            params.update(
                {"user": user_short, "passwd": request.password, "passwd2": request.password}
            )
            db_user = f"{owner}_{user_short}"
        merge_additional(params, request.additional_settings)
        await self._call("POST", "CMD_API_DATABASES", params, as_user=owner)

        database = f"{owner}_{short_name}"
        logger.info(f"Created DirectAdmin database {database}")
        return DatabaseResult(
            success=True,
            message=f"Database {database} created",
            database_id=database,
            database_name=database,
            database_type=request.database_type,
            username=db_user,
            user_id=f"{database}:{db_user}" if db_user else None,
            server="localhost",
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def delete_database(self, database_id: str) -> AccountUpdateResult:
        database_id = require_database_id(database_id)
        owner = _owner_from_prefix(database_id, ErrorCode.INVALID_DATABASE_ID)
        await self._call(
            "POST", "CMD_API_DATABASES", {"action": "delete", "select0": database_id}, as_user=owner
        )
        logger.info(f"Deleted DirectAdmin database {database_id}")
        return update_result(database_id, f"Database {database_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_database_info(self, database_id: str) -> AccountInfoResult:
        database_id = require_database_id(database_id)
        owner = _owner_from_prefix(database_id, ErrorCode.INVALID_DATABASE_ID)
        if database_id not in await self._databases(owner):
            raise PanelNotFoundError(f"Database {database_id} not found")
        return self._database_info(database_id, owner)

    @list_operation
    async def list_databases(self, domain: str) -> list[AccountInfoResult]:
        owner = await self._domain_owner(domain)
        return [self._database_info(database, owner) for database in await self._databases(owner)]

    @panel_operation(DatabaseResult)
    async def create_database_user(self, request: DatabaseUserRequest) -> DatabaseResult:
        validate_database_user_request(request)
        database = request.database_id or request.database_name
        if not database:
            raise PanelValidationError(
                "DirectAdmin database users belong to a database", ErrorCode.INVALID_DATABASE_ID
            )
        owner = _owner_from_prefix(database, ErrorCode.INVALID_DATABASE_ID)
        user_short = request.username.removeprefix(f"{owner}_")
        await self._call(
            "POST",
            "CMD_API_DB_USER",
            {
                "action": "create",
                "name": database,
                "user": user_short,
                "passwd": request.password,
                "passwd2": request.password,
            },
            as_user=owner,
        )
        db_user = f"{owner}_{user_short}"
        logger.info(f"Created DirectAdmin database user {db_user}")
        return DatabaseResult(
            success=True,
            message=f"Database user {db_user} created",
            database_id=database,
            database_name=database,
            username=db_user,
            user_id=f"{database}:{db_user}",
            server="localhost",
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def delete_database_user(self, user_id: str) -> AccountUpdateResult:
        database, user = _split_user_id(require_user_id(user_id))
        owner = _owner_from_prefix(database, ErrorCode.INVALID_USER_ID)
        await self._call(
            "POST",
            "CMD_API_DB_USER",
            {"action": "delete", "name": database, "select0": user},
            as_user=owner,
        )
        logger.info(f"Deleted DirectAdmin database user {user_id}")
        return update_result(user_id, f"Database user {user} deleted")

    @panel_operation(AccountUpdateResult)
    async def grant_database_privileges(
        self, user_id: str, database_id: str, privileges: list[str]
    ) -> AccountUpdateResult:
        _, user = _split_user_id(require_user_id(user_id))
        database_id = require_database_id(database_id)
        owner = _owner_from_prefix(database_id, ErrorCode.INVALID_DATABASE_ID)
        granted = list(privileges or ["ALL PRIVILEGES"])
        await self._call(
            "POST",
            "CMD_API_DB_USER_PRIVS",
            {"name": database_id, "user": user, **_privilege_flags(granted)},
            as_user=owner,
        )
        return update_result(
            user_id,
            f"Privileges on {database_id} granted to {user}",
            field="privileges",
            new_value=granted,
        )

    @panel_operation(AccountUpdateResult)
    async def change_database_password(
        self, user_id: str, new_password: str
    ) -> AccountUpdateResult:
        database, user = _split_user_id(require_user_id(user_id))
        require_password(new_password)
        owner = _owner_from_prefix(database, ErrorCode.INVALID_USER_ID)
        await self._call(
            "POST",
            "CMD_API_DB_USER",
            {
                "action": "modify",
                "name": database,
                "user": user,
                "passwd": new_password,
                "passwd2": new_password,
            },
            as_user=owner,
        )
        logger.info(f"Changed password of DirectAdmin database user {user_id}")
        return update_result(user_id, "Database password changed", field="password")
