"""
cPanel/WHM adapter.

Account operations use WHM API 1 (``/json-api/<function>?api.version=1``).
Mail and database operations are cPanel UAPI functions proxied through WHM
(``/json-api/cpanel``), which run as the owning cPanel user; the owner is
resolved with ``getdomainowner`` or from the database name prefix.

Identifiers:
    account_id   the account's Unix username
    mail id      the full email address
    database id  the prefixed database name (``owner_name``)
    user id      the prefixed database user name (``owner_user``)
"""

import logging
from datetime import UTC, datetime
from typing import Any

import httpx

from hostpanel.panels.base import HostingPanel, update_result, utc_now
from hostpanel.panels.config import CpanelConfig
from hostpanel.panels.errors import (
    PanelConfigError,
    PanelError,
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
    split_email,
    validate_database_request,
    validate_database_user_request,
    validate_hosting_request,
    validate_limits,
    validate_mail_request,
    validate_quota,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 2087
UAPI_VERSION = "3"

CREATE_ACCOUNT_FIELDS = (
    FieldMap("username", "username"),
    FieldMap("domain", "domain"),
    FieldMap("password", "password"),
    FieldMap("email", "contactemail"),
    FieldMap("plan", "plan"),
    FieldMap("disk_quota_mb", "quota"),
    FieldMap("bandwidth_limit_mb", "bwlimit"),
    FieldMap("max_email_accounts", "maxpop"),
    FieldMap("max_databases", "maxsql"),
    FieldMap("max_ftp_accounts", "maxftp"),
    FieldMap("max_subdomains", "maxsub"),
    FieldMap("shell_access", "hasshell", as_flag()),
    FieldMap("cgi_access", "cgi", as_flag()),
)

MODIFY_ACCOUNT_FIELDS = (
    FieldMap("email", "contactemail"),
    FieldMap("disk_quota_mb", "QUOTA"),
    FieldMap("bandwidth_limit_mb", "BWLIMIT"),
    FieldMap("max_email_accounts", "MAXPOP"),
    FieldMap("max_databases", "MAXSQL"),
    FieldMap("max_ftp_accounts", "MAXFTP"),
    FieldMap("max_subdomains", "MAXSUB"),
    FieldMap("shell_access", "HASSHELL", as_flag()),
    FieldMap("cgi_access", "HASCGI", as_flag()),
)


def _owner_from_prefix(name: str, code: ErrorCode) -> str:
    """cPanel prefixes database objects with ``<owner>_``."""
    owner, sep, rest = name.partition("_")
    if not sep or not owner or not rest:
        raise PanelValidationError(
            f"Cannot determine the owning account of {name}; expected <account>_<name>", code
        )
    return owner


def _with_prefix(owner: str, name: str) -> str:
    return name if name.startswith(f"{owner}_") else f"{owner}_{name}"


def _epoch(value: Any) -> datetime | None:
    number = to_number(value)
    return None if number is None else datetime.fromtimestamp(number, UTC)


class CpanelAdapter(HostingPanel):
    """WHM API token adapter.

    Example:
        >>> config = CpanelConfig(api_url="whm.example.com", api_token="TOKEN")
        >>> async with CpanelAdapter(config) as panel:
        ...     result = await panel.suspend_web_hosting_account("exuser")
    """

    PROVIDER = PanelProvider.CPANEL

    def __init__(
        self,
        config: CpanelConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        if not config.api_token or not config.api_token.strip():
            raise PanelConfigError("cPanel api_token is required")
        if not config.username or not config.username.strip():
            raise PanelConfigError("cPanel username is required")
        self.config = config
        self._transport = PanelTransport(
            config,
            default_port=DEFAULT_PORT,
            headers={"Authorization": f"whm {config.username}:{config.api_token}"},
            transport=transport,
            retry_policy=retry_policy,
        )

    async def aclose(self) -> None:
        await self._transport.aclose()

    # ------------------------------------------------------------------
    # Wire helpers
    # ------------------------------------------------------------------

    async def _whm(self, function: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Call a WHM API 1 function and return its ``data`` object."""
        query = {"api.version": "1", **stringify_values(params or {})}
        logger.debug(f"WHM call {function}", extra={"provider": self.PROVIDER})
        response = await self._transport.request("GET", f"/json-api/{function}", params=query)
        payload = decode_json_object(response)

        metadata = payload.get("metadata")
        if not isinstance(metadata, dict):
            raise PanelParseError(
                f"WHM {function} response has no metadata", ErrorCode.RESPONSE_PARSE_ERROR
            )
        if str(metadata.get("result")) != "1":
            raise self.vendor_error(metadata.get("reason") or f"WHM {function} failed")

        data = payload.get("data")
        return data if isinstance(data, dict) else {}

    async def _uapi(
        self, user: str, module: str, function: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Call a UAPI function as ``user`` and return its ``data``."""
        query = {
            "cpanel_jsonapi_user": user,
            "cpanel_jsonapi_apiversion": UAPI_VERSION,
            "cpanel_jsonapi_module": module,
            "cpanel_jsonapi_func": function,
            **stringify_values(params or {}),
        }
        logger.debug(f"UAPI call {module}::{function}", extra={"provider": self.PROVIDER})
        response = await self._transport.request("GET", "/json-api/cpanel", params=query)
        payload = decode_json_object(response)

        result = payload.get("result")
        if not isinstance(result, dict):
            raise PanelParseError(
                f"UAPI {module}::{function} response has no result",
                ErrorCode.RESPONSE_PARSE_ERROR,
            )
        if str(result.get("status")) != "1":
            errors = result.get("errors") or []
            message = "; ".join(str(e) for e in errors) if isinstance(errors, list) else str(errors)
            raise self.vendor_error(message or f"UAPI {module}::{function} failed")
        return result.get("data")

    async def _domain_owner(self, domain: str) -> str:
        data = await self._whm("getdomainowner", {"domain": domain})
        owner = data.get("user")
        if not owner:
            raise PanelNotFoundError(f"No account owns domain {domain}")
        return str(owner)

    async def _account_entry(self, username: str) -> dict[str, Any]:
        data = await self._whm("accountsummary", {"user": username})
        accounts = data.get("acct")
        if not isinstance(accounts, list) or not accounts or not isinstance(accounts[0], dict):
            raise PanelNotFoundError(f"Account {username} not found")
        return accounts[0]

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _account_info(self, entry: dict[str, Any]) -> AccountInfoResult:
        suspended = str(entry.get("suspended", "0")) == "1"
        return AccountInfoResult(
            success=True,
            message="Account retrieved",
            account_id=str(entry["user"]),
            domain=entry.get("domain"),
            username=str(entry["user"]),
            email=entry.get("email") or None,
            plan=entry.get("plan"),
            status="suspended" if suspended else "active",
            disk_usage_mb=to_number(entry.get("diskused")),
            disk_quota_mb=to_number(entry.get("disklimit")),
            ip_address=entry.get("ip"),
            created_date=_epoch(entry.get("unix_startdate")),
            additional_info={
                key: entry[key]
                for key in ("owner", "shell", "theme", "suspendreason", "maxpop", "maxsql")
                if key in entry
            },
        )

    def _mail_info(self, entry: dict[str, Any]) -> AccountInfoResult:
        address = str(entry["email"])
        return AccountInfoResult(
            success=True,
            message="Mail account retrieved",
            account_id=address,
            domain=entry.get("domain") or address.partition("@")[2],
            username=entry.get("user") or address.partition("@")[0],
            email=address,
            status="suspended" if str(entry.get("suspended_login", "0")) == "1" else "active",
            disk_usage_mb=to_number(entry.get("diskused")),
            disk_quota_mb=to_number(entry.get("diskquota")),
            additional_info={"login": entry["login"]} if "login" in entry else {},
        )

    def _database_info(self, entry: dict[str, Any], owner: str) -> AccountInfoResult:
        usage = to_number(entry.get("disk_usage"))
        return AccountInfoResult(
            success=True,
            message="Database retrieved",
            account_id=str(entry["database"]),
            username=owner,
            status="active",
            disk_usage_mb=None if usage is None else round(usage / (1024 * 1024), 2),
            additional_info={"users": entry.get("users") or []},
        )

    # ------------------------------------------------------------------
    # Web hosting accounts
    # ------------------------------------------------------------------

    @panel_operation(HostingAccountResult)
    async def create_web_hosting_account(
        self, request: HostingAccountRequest
    ) -> HostingAccountResult:
        validate_hosting_request(request)
        params = merge_additional(
            map_fields(request, CREATE_ACCOUNT_FIELDS), request.additional_settings, stringify=True
        )
        await self._whm("createacct", params)
        logger.info(
            f"Created cPanel account {request.username}",
            extra={"provider": self.PROVIDER, "domain": request.domain},
        )
        return HostingAccountResult(
            success=True,
            message=f"Account {request.username} created",
            account_id=request.username,
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
        if request.email:
            split_email(request.email)
        changes = map_fields(request, MODIFY_ACCOUNT_FIELDS)
        updated = [entry.canonical for entry in MODIFY_ACCOUNT_FIELDS if entry.vendor in changes]
        if changes:
            await self._whm("modifyacct", {"user": account_id, **changes})
        if request.plan:
            await self._whm("changepackage", {"user": account_id, "pkg": request.plan})
            updated.append("plan")
        if not updated:
            return update_result(account_id, "No changes requested")

        logger.info(f"Updated cPanel account {account_id}: {', '.join(updated)}")
        return update_result(
            account_id,
            f"Account {account_id} updated",
            field=", ".join(updated),
            new_value={name: getattr(request, name) for name in updated},
        )

    @panel_operation(AccountUpdateResult)
    async def suspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._whm("suspendacct", {"user": account_id})
        logger.info(f"Suspended cPanel account {account_id}")
        return update_result(
            account_id, f"Account {account_id} suspended", field="status", new_value="suspended"
        )

    @panel_operation(AccountUpdateResult)
    async def unsuspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._whm("unsuspendacct", {"user": account_id})
        logger.info(f"Unsuspended cPanel account {account_id}")
        return update_result(
            account_id, f"Account {account_id} unsuspended", field="status", new_value="active"
        )

    @panel_operation(AccountUpdateResult)
    async def delete_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._whm("removeacct", {"username": account_id})
        logger.info(f"Deleted cPanel account {account_id}")
        return update_result(account_id, f"Account {account_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_web_hosting_account_info(self, account_id: str) -> AccountInfoResult:
        account_id = require_account_id(account_id)
        entry = await self._account_entry(account_id)
        if not entry.get("user"):
            raise PanelParseError(
                "accountsummary entry has no user", ErrorCode.RESPONSE_PARSE_ERROR
            )
        return self._account_info(entry)

    @list_operation
    async def list_web_hosting_accounts(self) -> list[AccountInfoResult]:
        data = await self._whm("listaccts")
        return [
            self._account_info(entry)
            for entry in data.get("acct") or []
            if isinstance(entry, dict) and entry.get("user")
        ]

    # ------------------------------------------------------------------
    # Mail accounts
    # ------------------------------------------------------------------

    @panel_operation(MailAccountResult)
    async def create_mail_account(self, request: MailAccountRequest) -> MailAccountResult:
        local_part, domain = validate_mail_request(request)
        owner = await self._domain_owner(domain)
        params: dict[str, Any] = {
            "email": local_part,
            "domain": domain,
            "password": request.password,
        }
        if request.quota_mb is not None:
            params["quota"] = request.quota_mb
        merge_additional(params, request.additional_settings, stringify=True)
        await self._uapi(owner, "Email", "add_pop", params)
        address = f"{local_part}@{domain}"
        logger.info(f"Created cPanel mailbox {address}", extra={"provider": self.PROVIDER})
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
        local_part, domain = split_email(require_account_id(account_id))
        validate_quota(request.quota_mb)
        owner = await self._domain_owner(domain)
        updated = []
        if request.quota_mb is not None:
            await self._uapi(
                owner,
                "Email",
                "edit_pop_quota",
                {"email": local_part, "domain": domain, "quota": request.quota_mb},
            )
            updated.append("quota_mb")
        if request.password:
            await self._uapi(
                owner,
                "Email",
                "passwd_pop",
                {"email": local_part, "domain": domain, "password": request.password},
            )
            updated.append("password")
        if not updated:
            return update_result(account_id, "No changes requested")
        return update_result(
            account_id,
            f"Mail account {account_id} updated",
            field=", ".join(updated),
            new_value=request.quota_mb if "quota_mb" in updated else None,
        )

    @panel_operation(AccountUpdateResult)
    async def delete_mail_account(self, account_id: str) -> AccountUpdateResult:
        local_part, domain = split_email(require_account_id(account_id))
        owner = await self._domain_owner(domain)
        await self._uapi(owner, "Email", "delete_pop", {"email": local_part, "domain": domain})
        logger.info(f"Deleted cPanel mailbox {account_id}")
        return update_result(account_id, f"Mail account {account_id} deleted")

    async def _list_mailboxes(self, domain: str) -> list[dict[str, Any]]:
        owner = await self._domain_owner(domain)
        data = await self._uapi(owner, "Email", "list_pops_with_disk", {"domain": domain})
        return [entry for entry in data or [] if isinstance(entry, dict) and entry.get("email")]

    @panel_operation(AccountInfoResult)
    async def get_mail_account_info(self, account_id: str) -> AccountInfoResult:
        _, domain = split_email(require_account_id(account_id))
        for entry in await self._list_mailboxes(domain):
            if str(entry["email"]).lower() == account_id.lower():
                return self._mail_info(entry)
        raise PanelNotFoundError(f"Mail account {account_id} not found")

    @list_operation
    async def list_mail_accounts(self, domain: str) -> list[AccountInfoResult]:
        return [self._mail_info(entry) for entry in await self._list_mailboxes(domain)]

    @panel_operation(AccountUpdateResult)
    async def change_mail_password(
        self, account_id: str, new_password: str
    ) -> AccountUpdateResult:
        local_part, domain = split_email(require_account_id(account_id))
        require_password(new_password)
        owner = await self._domain_owner(domain)
        await self._uapi(
            owner,
            "Email",
            "passwd_pop",
            {"email": local_part, "domain": domain, "password": new_password},
        )
        logger.info(f"Changed password of cPanel mailbox {account_id}")
        return update_result(account_id, "Mail password changed", field="password")

    # ------------------------------------------------------------------
    # Account limits
    # ------------------------------------------------------------------

    @panel_operation(AccountUpdateResult)
    async def set_disk_quota(self, account_id: str, quota_mb: int) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_quota(quota_mb)
        await self._whm("editquota", {"user": account_id, "quota": quota_mb})
        return update_result(
            account_id, f"Disk quota set to {quota_mb} MB", field="disk_quota_mb", new_value=quota_mb
        )

    @panel_operation(AccountUpdateResult)
    async def set_bandwidth_limit(
        self, account_id: str, bandwidth_mb: int
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_quota(bandwidth_mb)
        await self._whm("limitbw", {"user": account_id, "bwlimit": bandwidth_mb})
        return update_result(
            account_id,
            f"Bandwidth limit set to {bandwidth_mb} MB",
            field="bandwidth_limit_mb",
            new_value=bandwidth_mb,
        )

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def _database_owner(self, request: DatabaseRequest, name: str) -> str:
        if request.account_id:
            return request.account_id
        if request.domain:
            return await self._domain_owner(request.domain)
        return _owner_from_prefix(name, ErrorCode.INVALID_DATABASE_NAME)

    @panel_operation(DatabaseResult)
    async def create_database(self, request: DatabaseRequest) -> DatabaseResult:
        name = validate_database_request(request)
        owner = await self._database_owner(request, name)
        database = _with_prefix(owner, name)
        await self._uapi(owner, "Mysql", "create_database", {"name": database})

        db_user = None
        user_created = False
        if request.username and request.password:
            db_user = _with_prefix(owner, request.username)
            try:
                await self._uapi(
                    owner, "Mysql", "create_user", {"name": db_user, "password": request.password}
                )
                user_created = True
                await self._uapi(
                    owner,
                    "Mysql",
                    "set_privileges_on_database",
                    {"user": db_user, "database": database, "privileges": "ALL PRIVILEGES"},
                )
            except PanelError as e:
                created_user = db_user if user_created else None
                e.message += await self._roll_back_database(owner, database, created_user)
                raise

        logger.info(f"Created cPanel database {database}", extra={"owner": owner})
        return DatabaseResult(
            success=True,
            message=f"Database {database} created",
            database_id=database,
            database_name=database,
            database_type=request.database_type,
            username=db_user,
            user_id=db_user,
            server="localhost",
            created_date=utc_now(),
        )

    async def _roll_back_database(self, owner: str, database: str, db_user: str | None) -> str:
        """Remove what a failed ``create_database`` left behind; return a note for the caller."""
        try:
            if db_user:
                await self._uapi(owner, "Mysql", "delete_user", {"name": db_user})
            await self._uapi(owner, "Mysql", "delete_database", {"name": database})
        except PanelError as e:
            logger.warning(
                f"Could not roll back cPanel database {database}: {e.message}",
                extra={"provider": self.PROVIDER, "owner": owner},
            )
            return f" (database {database} was created and could not be removed)"
        return f" (database {database} was rolled back)"

    @panel_operation(AccountUpdateResult)
    async def delete_database(self, database_id: str) -> AccountUpdateResult:
        database_id = require_database_id(database_id)
        owner = _owner_from_prefix(database_id, ErrorCode.INVALID_DATABASE_ID)
        await self._uapi(owner, "Mysql", "delete_database", {"name": database_id})
        logger.info(f"Deleted cPanel database {database_id}")
        return update_result(database_id, f"Database {database_id} deleted")

    @panel_operation(AccountInfoResult)
    async def get_database_info(self, database_id: str) -> AccountInfoResult:
        database_id = require_database_id(database_id)
        owner = _owner_from_prefix(database_id, ErrorCode.INVALID_DATABASE_ID)
        data = await self._uapi(owner, "Mysql", "list_databases")
        for entry in data or []:
            if isinstance(entry, dict) and entry.get("database") == database_id:
                return self._database_info(entry, owner)
        raise PanelNotFoundError(f"Database {database_id} not found")

    @list_operation
    async def list_databases(self, domain: str) -> list[AccountInfoResult]:
        owner = await self._domain_owner(domain)
        data = await self._uapi(owner, "Mysql", "list_databases")
        return [
            self._database_info(entry, owner)
            for entry in data or []
            if isinstance(entry, dict) and entry.get("database")
        ]

    @panel_operation(DatabaseResult)
    async def create_database_user(self, request: DatabaseUserRequest) -> DatabaseResult:
        validate_database_user_request(request)
        database = request.database_id or request.database_name
        if request.account_id:
            owner = request.account_id
        else:
            owner = _owner_from_prefix(database or request.username, ErrorCode.INVALID_USERNAME)
        db_user = _with_prefix(owner, request.username)
        await self._uapi(
            owner, "Mysql", "create_user", {"name": db_user, "password": request.password}
        )
        if database:
            database = _with_prefix(owner, database)
            await self._uapi(
                owner,
                "Mysql",
                "set_privileges_on_database",
                {"user": db_user, "database": database, "privileges": ",".join(request.privileges)},
            )
        logger.info(f"Created cPanel database user {db_user}", extra={"owner": owner})
        return DatabaseResult(
            success=True,
            message=f"Database user {db_user} created",
            database_id=database,
            database_name=database,
            username=db_user,
            user_id=db_user,
            server="localhost",
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def delete_database_user(self, user_id: str) -> AccountUpdateResult:
        user_id = require_user_id(user_id)
        owner = _owner_from_prefix(user_id, ErrorCode.INVALID_USER_ID)
        await self._uapi(owner, "Mysql", "delete_user", {"name": user_id})
        logger.info(f"Deleted cPanel database user {user_id}")
        return update_result(user_id, f"Database user {user_id} deleted")

    @panel_operation(AccountUpdateResult)
    async def grant_database_privileges(
        self, user_id: str, database_id: str, privileges: list[str]
    ) -> AccountUpdateResult:
        user_id = require_user_id(user_id)
        database_id = require_database_id(database_id)
        owner = _owner_from_prefix(database_id, ErrorCode.INVALID_DATABASE_ID)
        granted = list(privileges or ["ALL PRIVILEGES"])
        await self._uapi(
            owner,
            "Mysql",
            "set_privileges_on_database",
            {"user": user_id, "database": database_id, "privileges": ",".join(granted)},
        )
        return update_result(
            user_id,
            f"Privileges on {database_id} granted to {user_id}",
            field="privileges",
            new_value=granted,
        )

    @panel_operation(AccountUpdateResult)
    async def change_database_password(
        self, user_id: str, new_password: str
    ) -> AccountUpdateResult:
        user_id = require_user_id(user_id)
        require_password(new_password)
        owner = _owner_from_prefix(user_id, ErrorCode.INVALID_USER_ID)
        await self._uapi(owner, "Mysql", "set_password", {"user": user_id, "password": new_password})
        logger.info(f"Changed password of cPanel database user {user_id}")
        return update_result(user_id, "Database password changed", field="password")
