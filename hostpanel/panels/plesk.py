"""
Plesk adapter (XML API).

Every call POSTs one ``<packet>`` to ``/enterprise/control/agent.php``. Each
operation answers with ``<result>`` elements carrying ``<status>ok</status>``
or ``<status>error</status>`` plus ``<errcode>``/``<errtext>``; authentication
and malformed-packet failures come back under ``packet/system`` instead.

Identifiers:
    account_id   the webspace (subscription) id
    mail id      the full email address; the site id is looked up by domain
    database id  the numeric database id
    user id      the numeric database user id
"""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Any

import httpx

from hostpanel.panels.base import HostingPanel, update_result, utc_now
from hostpanel.panels.config import PleskConfig
from hostpanel.panels.errors import (
    PanelConfigError,
    PanelNotFoundError,
    PanelParseError,
    PanelValidationError,
    list_operation,
    panel_operation,
)
from hostpanel.panels.mapping import FieldMap, as_str, bytes_to_mb, map_fields, mb_to_bytes
from hostpanel.panels.transport import PanelTransport, RetryPolicy, decode_xml
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

DEFAULT_PORT = 8443
AGENT_PATH = "/enterprise/control/agent.php"

# errcode for "object does not exist"
OBJECT_NOT_FOUND = "1013"

# Webspace status values
STATUS_ACTIVE = "0"
STATUS_SUSPENDED_BY_ADMIN = "16"

LIMIT_FIELDS = (
    FieldMap("disk_quota_mb", "disk_space", mb_to_bytes),
    FieldMap("bandwidth_limit_mb", "max_traffic", mb_to_bytes),
    FieldMap("max_email_accounts", "max_box", as_str),
    FieldMap("max_databases", "max_db", as_str),
    FieldMap("max_ftp_accounts", "max_subftp_users", as_str),
    FieldMap("max_subdomains", "max_subdom", as_str),
)

WEBSPACE_DATASETS = ("gen_info", "hosting", "limits", "stat")


def _element(parent: ET.Element, tag: str, text: Any = None) -> ET.Element:
    child = ET.SubElement(parent, tag)
    if text is not None:
        child.text = str(text)
    return child


def _text(element: ET.Element | None, path: str) -> str | None:
    if element is None:
        return None
    found = element.find(path)
    if found is None or found.text is None:
        return None
    return found.text.strip()


def _named_values(container: ET.Element | None, item_tag: str) -> dict[str, str]:
    """Flatten ``<item><name>k</name><value>v</value></item>`` lists."""
    values: dict[str, str] = {}
    if container is None:
        return values
    for item in container.findall(item_tag):
        name = _text(item, "name")
        if name:
            values[name] = _text(item, "value") or ""
    return values


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _role_for(privileges: list[str]) -> str:
    normalized = {p.strip().upper() for p in privileges if p.strip()}
    if normalized and normalized <= {"SELECT"}:
        return "readOnly"
    return "readWrite"


def _property_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _limits(parent: ET.Element, limits: dict[str, Any]) -> None:
    container = _element(parent, "limits")
    for name, value in limits.items():
        limit = _element(container, "limit")
        _element(limit, "name", name)
        _element(limit, "value", value)


class PleskAdapter(HostingPanel):
    """Plesk XML API adapter.

    Authenticates with the ``KEY`` header, or with ``HTTP_AUTH_LOGIN`` /
    ``HTTP_AUTH_PASSWD`` when a username and password are configured.
    """

    PROVIDER = PanelProvider.PLESK

    def __init__(
        self,
        config: PleskConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        headers = {"Content-Type": "text/xml", "HTTP_PRETTY_PRINT": "TRUE"}
        if config.username and config.password:
            headers["HTTP_AUTH_LOGIN"] = config.username
            headers["HTTP_AUTH_PASSWD"] = config.password
        elif config.api_key and config.api_key.strip():
            headers["KEY"] = config.api_key
        else:
            raise PanelConfigError("Plesk requires api_key or both username and password")
        self.config = config
        self._transport = PanelTransport(
            config,
            default_port=DEFAULT_PORT,
            headers=headers,
            transport=transport,
            retry_policy=retry_policy,
        )

    async def aclose(self) -> None:
        await self._transport.aclose()

    # ------------------------------------------------------------------
    # Wire helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _packet(operator: str, operation: str) -> tuple[ET.Element, ET.Element]:
        packet = ET.Element("packet")
        return packet, _element(_element(packet, operator), operation)

    def _check_status(self, element: ET.Element) -> None:
        if _text(element, "status") == "ok":
            return
        code = _text(element, "errcode")
        message = _text(element, "errtext") or "Plesk request failed"
        if code == OBJECT_NOT_FOUND:
            raise PanelNotFoundError(message)
        raise self.vendor_error(message, code)

    async def _send(
        self, packet: ET.Element, operator: str, operation: str
    ) -> list[ET.Element]:
        """POST ``packet`` and return the successful ``<result>`` elements."""
        body = '<?xml version="1.0" encoding="UTF-8"?>' + ET.tostring(packet, encoding="unicode")
        logger.debug(f"Plesk call {operator}/{operation}", extra={"provider": self.PROVIDER})
        response = await self._transport.request("POST", AGENT_PATH, content=body)
        root = decode_xml(response)

        system = root.find("system")
        if system is not None:
            self._check_status(system)

        node = root.find(f"{operator}/{operation}")
        if node is None:
            raise PanelParseError(
                f"Plesk response has no {operator}/{operation} node", ErrorCode.XML_PARSE_ERROR
            )
        results = node.findall("result")
        if not results:
            raise PanelParseError(
                f"Plesk {operator}/{operation} response has no result", ErrorCode.XML_PARSE_ERROR
            )
        for result in results:
            self._check_status(result)
        return results

    async def _site_id(self, domain: str) -> str:
        packet, get = self._packet("site", "get")
        _element(_element(get, "filter"), "name", domain)
        _element(_element(get, "dataset"), "gen_info")
        results = await self._send(packet, "site", "get")
        site_id = _text(results[0], "id")
        if not site_id:
            raise PanelNotFoundError(f"Site {domain} not found")
        return site_id

    async def _webspace_id(self, domain: str) -> str:
        packet, get = self._packet("webspace", "get")
        _element(_element(get, "filter"), "name", domain)
        _element(_element(get, "dataset"), "gen_info")
        results = await self._send(packet, "webspace", "get")
        webspace_id = _text(results[0], "id")
        if not webspace_id:
            raise PanelNotFoundError(f"Webspace {domain} not found")
        return webspace_id

    async def _set_webspace(self, account_id: str, build: Any) -> None:
        packet, set_ = self._packet("webspace", "set")
        _element(_element(set_, "filter"), "id", account_id)
        build(_element(set_, "values"))
        await self._send(packet, "webspace", "set")

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _webspace_info(self, result: ET.Element) -> AccountInfoResult:
        data = result.find("data")
        gen_info = data.find("gen_info") if data is not None else None
        hosting = _named_values(
            data.find("hosting/vrt_hst") if data is not None else None, "property"
        )
        limits = _named_values(data.find("limits") if data is not None else None, "limit")
        status = _text(gen_info, "status")
        created = _text(gen_info, "cr_date")
        return AccountInfoResult(
            success=True,
            message="Webspace retrieved",
            account_id=_text(result, "id"),
            domain=_text(gen_info, "name"),
            username=hosting.get("ftp_login"),
            status="active" if status in (None, STATUS_ACTIVE) else "suspended",
            disk_usage_mb=bytes_to_mb(_text(gen_info, "real_size")),
            disk_quota_mb=bytes_to_mb(limits.get("disk_space")),
            bandwidth_used_mb=bytes_to_mb(_text(data, "stat/traffic")),
            bandwidth_limit_mb=bytes_to_mb(limits.get("max_traffic")),
            ip_address=_text(gen_info, "dns_ip_address") or _text(data, "hosting/vrt_hst/ip_address"),
            created_date=_parse_date(created),
            additional_info={
                "guid": _text(gen_info, "guid"),
                "status_code": status,
                "limits": limits,
            },
        )

    def _mailbox_info(self, mailname: ET.Element, domain: str) -> AccountInfoResult:
        name = _text(mailname, "name")
        address = f"{name}@{domain}"
        return AccountInfoResult(
            success=True,
            message="Mail account retrieved",
            account_id=address,
            domain=domain,
            username=name,
            email=address,
            status="active" if _text(mailname, "mailbox/enabled") != "false" else "suspended",
            disk_quota_mb=bytes_to_mb(_text(mailname, "mailbox/quota")),
            additional_info={"mailname_id": _text(mailname, "id")},
        )

    def _database_info(self, result: ET.Element) -> AccountInfoResult:
        return AccountInfoResult(
            success=True,
            message="Database retrieved",
            account_id=_text(result, "id"),
            domain=_text(result, "webspace-name"),
            status="active",
            additional_info={
                "name": _text(result, "name"),
                "type": _text(result, "type"),
                "webspace_id": _text(result, "webspace-id"),
                "db_server_id": _text(result, "db-server-id"),
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
        ip_address = extra.pop("ip_address", None)

        packet, add = self._packet("webspace", "add")
        gen_setup = _element(add, "gen_setup")
        _element(gen_setup, "name", request.domain)
        if extra.get("owner_login"):
            _element(gen_setup, "owner-login", extra.pop("owner_login"))
        _element(gen_setup, "htype", "vrt_hst")
        if ip_address:
            _element(gen_setup, "ip_address", ip_address)

        # Remaining additional settings become hosting properties (php, ssl, shell, ...)
        properties = {"ftp_login": request.username, "ftp_password": request.password}
        for name, value in extra.items():
            properties.setdefault(name, _property_value(value))
        vrt_hst = _element(_element(add, "hosting"), "vrt_hst")
        for name, value in properties.items():
            prop = _element(vrt_hst, "property")
            _element(prop, "name", name)
            _element(prop, "value", value)
        if ip_address:
            _element(vrt_hst, "ip_address", ip_address)

        limits = map_fields(request, LIMIT_FIELDS)
        if limits:
            _limits(add, limits)
        if request.plan:
            _element(add, "plan-name", request.plan)

        results = await self._send(packet, "webspace", "add")
        webspace_id = _text(results[0], "id")
        if not webspace_id:
            raise PanelParseError("Plesk webspace/add returned no id", ErrorCode.XML_PARSE_ERROR)

        logger.info(
            f"Created Plesk webspace {request.domain}",
            extra={"provider": self.PROVIDER, "webspace_id": webspace_id},
        )
        return HostingAccountResult(
            success=True,
            message=f"Webspace {request.domain} created",
            account_id=webspace_id,
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
        if request.plan:
            # Switching subscriptions needs the plan guid, not its name
            raise self.not_supported("changing the service plan")
        limits = map_fields(request, LIMIT_FIELDS)
        if not limits:
            return update_result(account_id, "No changes requested")
        await self._set_webspace(account_id, lambda values: _limits(values, limits))
        updated = [entry.canonical for entry in LIMIT_FIELDS if entry.vendor in limits]
        logger.info(f"Updated Plesk webspace {account_id}: {', '.join(updated)}")
        return update_result(
            account_id,
            f"Webspace {account_id} updated",
            field=", ".join(updated),
            new_value={name: getattr(request, name) for name in updated},
        )

    async def _set_status(self, account_id: str, status: str) -> None:
        await self._set_webspace(
            account_id, lambda values: _element(_element(values, "gen_setup"), "status", status)
        )

    @panel_operation(AccountUpdateResult)
    async def suspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._set_status(account_id, STATUS_SUSPENDED_BY_ADMIN)
        logger.info(f"Suspended Plesk webspace {account_id}")
        return update_result(
            account_id, f"Webspace {account_id} suspended", field="status", new_value="suspended"
        )

    @panel_operation(AccountUpdateResult)
    async def unsuspend_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        await self._set_status(account_id, STATUS_ACTIVE)
        logger.info(f"Activated Plesk webspace {account_id}")
        return update_result(
            account_id, f"Webspace {account_id} activated", field="status", new_value="active"
        )

    @panel_operation(AccountUpdateResult)
    async def delete_web_hosting_account(self, account_id: str) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        packet, delete = self._packet("webspace", "del")
        _element(_element(delete, "filter"), "id", account_id)
        await self._send(packet, "webspace", "del")
        logger.info(f"Deleted Plesk webspace {account_id}")
        return update_result(account_id, f"Webspace {account_id} deleted")

    async def _get_webspaces(self, account_id: str | None) -> list[ET.Element]:
        packet, get = self._packet("webspace", "get")
        filter_ = _element(get, "filter")
        if account_id is not None:
            _element(filter_, "id", account_id)
        dataset = _element(get, "dataset")
        for name in WEBSPACE_DATASETS:
            _element(dataset, name)
        return await self._send(packet, "webspace", "get")

    @panel_operation(AccountInfoResult)
    async def get_web_hosting_account_info(self, account_id: str) -> AccountInfoResult:
        account_id = require_account_id(account_id)
        results = await self._get_webspaces(account_id)
        if not _text(results[0], "id"):
            raise PanelNotFoundError(f"Webspace {account_id} not found")
        return self._webspace_info(results[0])

    @list_operation
    async def list_web_hosting_accounts(self) -> list[AccountInfoResult]:
        return [
            self._webspace_info(result)
            for result in await self._get_webspaces(None)
            if _text(result, "id")
        ]

    # ------------------------------------------------------------------
    # Mail accounts
    # ------------------------------------------------------------------

    @staticmethod
    def _password(parent: ET.Element, password: str) -> None:
        element = _element(parent, "password")
        _element(element, "value", password)
        _element(element, "type", "plain")

    @panel_operation(MailAccountResult)
    async def create_mail_account(self, request: MailAccountRequest) -> MailAccountResult:
        local_part, domain = validate_mail_request(request)
        site_id = await self._site_id(domain)

        packet, create = self._packet("mail", "create")
        filter_ = _element(create, "filter")
        _element(filter_, "site-id", site_id)
        mailname = _element(filter_, "mailname")
        _element(mailname, "name", local_part)
        mailbox = _element(mailname, "mailbox")
        _element(mailbox, "enabled", "true")
        if request.quota_mb is not None:
            _element(mailbox, "quota", mb_to_bytes(request.quota_mb))
        self._password(mailname, request.password)
        await self._send(packet, "mail", "create")

        address = f"{local_part}@{domain}"
        logger.info(f"Created Plesk mailbox {address}", extra={"site_id": site_id})
        return MailAccountResult(
            success=True,
            message=f"Mail account {address} created",
            account_id=address,
            email_address=address,
            domain=domain,
            quota_mb=request.quota_mb,
            created_date=utc_now(),
        )

    async def _update_mailname(
        self, address: str, quota_mb: int | None, password: str | None
    ) -> None:
        local_part, domain = split_email(address)
        site_id = await self._site_id(domain)
        packet, update = self._packet("mail", "update")
        filter_ = _element(_element(update, "set"), "filter")
        _element(filter_, "site-id", site_id)
        mailname = _element(filter_, "mailname")
        _element(mailname, "name", local_part)
        if quota_mb is not None:
            _element(_element(mailname, "mailbox"), "quota", mb_to_bytes(quota_mb))
        if password:
            self._password(mailname, password)
        await self._send(packet, "mail", "update")

    @panel_operation(AccountUpdateResult)
    async def update_mail_account(
        self, account_id: str, request: MailAccountRequest
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        split_email(account_id)
        validate_quota(request.quota_mb)
        if request.quota_mb is None and not request.password:
            return update_result(account_id, "No changes requested")
        await self._update_mailname(account_id, request.quota_mb, request.password)
        updated = [
            name
            for name, present in (
                ("quota_mb", request.quota_mb is not None),
                ("password", bool(request.password)),
            )
            if present
        ]
        return update_result(
            account_id,
            f"Mail account {account_id} updated",
            field=", ".join(updated),
            new_value=request.quota_mb,
        )

    @panel_operation(AccountUpdateResult)
    async def delete_mail_account(self, account_id: str) -> AccountUpdateResult:
        local_part, domain = split_email(require_account_id(account_id))
        site_id = await self._site_id(domain)
        packet, remove = self._packet("mail", "remove")
        filter_ = _element(remove, "filter")
        _element(filter_, "site-id", site_id)
        _element(filter_, "name", local_part)
        await self._send(packet, "mail", "remove")
        logger.info(f"Deleted Plesk mailbox {account_id}")
        return update_result(account_id, f"Mail account {account_id} deleted")

    async def _mailnames(self, domain: str, name: str | None = None) -> list[ET.Element]:
        site_id = await self._site_id(domain)
        packet, get_info = self._packet("mail", "get_info")
        filter_ = _element(get_info, "filter")
        _element(filter_, "site-id", site_id)
        if name is not None:
            _element(filter_, "name", name)
        _element(get_info, "mailbox")
        results = await self._send(packet, "mail", "get_info")
        return [
            mailname
            for result in results
            for mailname in result.findall("mailname")
            if _text(mailname, "name")
        ]

    @panel_operation(AccountInfoResult)
    async def get_mail_account_info(self, account_id: str) -> AccountInfoResult:
        local_part, domain = split_email(require_account_id(account_id))
        mailnames = await self._mailnames(domain, local_part)
        if not mailnames:
            raise PanelNotFoundError(f"Mail account {account_id} not found")
        return self._mailbox_info(mailnames[0], domain)

    @list_operation
    async def list_mail_accounts(self, domain: str) -> list[AccountInfoResult]:
        domain = domain.strip().lower()
        return [self._mailbox_info(mailname, domain) for mailname in await self._mailnames(domain)]

    @panel_operation(AccountUpdateResult)
    async def change_mail_password(
        self, account_id: str, new_password: str
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        split_email(account_id)
        require_password(new_password)
        await self._update_mailname(account_id, None, new_password)
        logger.info(f"Changed password of Plesk mailbox {account_id}")
        return update_result(account_id, "Mail password changed", field="password")

    # ------------------------------------------------------------------
    # Account limits
    # ------------------------------------------------------------------

    async def _set_limit(self, account_id: str, name: str, value: int) -> None:
        await self._set_webspace(account_id, lambda values: _limits(values, {name: value}))

    @panel_operation(AccountUpdateResult)
    async def set_disk_quota(self, account_id: str, quota_mb: int) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_quota(quota_mb)
        await self._set_limit(account_id, "disk_space", mb_to_bytes(quota_mb))
        return update_result(
            account_id, f"Disk quota set to {quota_mb} MB", field="disk_quota_mb", new_value=quota_mb
        )

    @panel_operation(AccountUpdateResult)
    async def set_bandwidth_limit(
        self, account_id: str, bandwidth_mb: int
    ) -> AccountUpdateResult:
        account_id = require_account_id(account_id)
        validate_quota(bandwidth_mb)
        await self._set_limit(account_id, "max_traffic", mb_to_bytes(bandwidth_mb))
        return update_result(
            account_id,
            f"Bandwidth limit set to {bandwidth_mb} MB",
            field="bandwidth_limit_mb",
            new_value=bandwidth_mb,
        )

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def _add_db_user(
        self,
        parent_tag: str,
        parent_id: str,
        login: str,
        password: str,
        privileges: list[str] | None = None,
    ) -> str:
        packet, add = self._packet("database", "add-db-user")
        _element(add, parent_tag, parent_id)
        _element(add, "login", login)
        _element(add, "password", password)
        if privileges:
            _element(add, "role", _role_for(privileges))
        results = await self._send(packet, "database", "add-db-user")
        user_id = _text(results[0], "id")
        if not user_id:
            raise PanelParseError("Plesk add-db-user returned no id", ErrorCode.XML_PARSE_ERROR)
        return user_id

    @panel_operation(DatabaseResult)
    async def create_database(self, request: DatabaseRequest) -> DatabaseResult:
        name = validate_database_request(request)
        if request.account_id:
            webspace_id = request.account_id
        elif request.domain:
            webspace_id = await self._webspace_id(request.domain)
        else:
            raise PanelValidationError(
                "Plesk databases need account_id or domain", ErrorCode.INVALID_ACCOUNT_ID
            )

        packet, add = self._packet("database", "add-db")
        _element(add, "webspace-id", webspace_id)
        _element(add, "name", name)
        _element(add, "type", request.database_type)
        results = await self._send(packet, "database", "add-db")
        database_id = _text(results[0], "id")
        if not database_id:
            raise PanelParseError("Plesk add-db returned no id", ErrorCode.XML_PARSE_ERROR)

        user_id = None
        if request.username and request.password:
            user_id = await self._add_db_user(
                "db-id", database_id, request.username, request.password
            )

        logger.info(f"Created Plesk database {name}", extra={"database_id": database_id})
        return DatabaseResult(
            success=True,
            message=f"Database {name} created",
            database_id=database_id,
            database_name=name,
            database_type=request.database_type,
            username=request.username if user_id else None,
            user_id=user_id,
            created_date=utc_now(),
        )

    @panel_operation(AccountUpdateResult)
    async def delete_database(self, database_id: str) -> AccountUpdateResult:
        database_id = require_database_id(database_id)
        packet, delete = self._packet("database", "del-db")
        _element(_element(delete, "filter"), "id", database_id)
        await self._send(packet, "database", "del-db")
        logger.info(f"Deleted Plesk database {database_id}")
        return update_result(database_id, f"Database {database_id} deleted")

    async def _get_databases(self, tag: str, value: str) -> list[ET.Element]:
        packet, get = self._packet("database", "get-db")
        _element(_element(get, "filter"), tag, value)
        return await self._send(packet, "database", "get-db")

    @panel_operation(AccountInfoResult)
    async def get_database_info(self, database_id: str) -> AccountInfoResult:
        database_id = require_database_id(database_id)
        results = await self._get_databases("id", database_id)
        if not _text(results[0], "id"):
            raise PanelNotFoundError(f"Database {database_id} not found")
        return self._database_info(results[0])

    @list_operation
    async def list_databases(self, domain: str) -> list[AccountInfoResult]:
        return [
            self._database_info(result)
            for result in await self._get_databases("webspace-name", domain)
            if _text(result, "id")
        ]

    @panel_operation(DatabaseResult)
    async def create_database_user(self, request: DatabaseUserRequest) -> DatabaseResult:
        validate_database_user_request(request)
        if request.database_id:
            parent = ("db-id", request.database_id)
        elif request.account_id:
            parent = ("webspace-id", request.account_id)
        else:
            raise PanelValidationError(
                "Plesk database users need database_id or account_id",
                ErrorCode.INVALID_DATABASE_ID,
            )
        user_id = await self._add_db_user(
            *parent, request.username, request.password, request.privileges
        )
        logger.info(f"Created Plesk database user {request.username}", extra={"user_id": user_id})
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
        packet, delete = self._packet("database", "del-db-user")
        _element(_element(delete, "filter"), "id", user_id)
        await self._send(packet, "database", "del-db-user")
        logger.info(f"Deleted Plesk database user {user_id}")
        return update_result(user_id, f"Database user {user_id} deleted")

    async def _set_db_user(self, user_id: str, tag: str, value: str) -> None:
        packet, set_ = self._packet("database", "set-db-user")
        _element(set_, "id", user_id)
        _element(set_, tag, value)
        await self._send(packet, "database", "set-db-user")

    @panel_operation(AccountUpdateResult)
    async def grant_database_privileges(
        self, user_id: str, database_id: str, privileges: list[str]
    ) -> AccountUpdateResult:
        user_id = require_user_id(user_id)
        database_id = require_database_id(database_id)
        granted = list(privileges or ["ALL PRIVILEGES"])
        role = _role_for(granted)
        # Plesk users are bound to their database at creation; only the role changes
        await self._set_db_user(user_id, "role", role)
        return update_result(
            user_id, f"Role {role} set for user {user_id}", field="privileges", new_value=role
        )

    @panel_operation(AccountUpdateResult)
    async def change_database_password(
        self, user_id: str, new_password: str
    ) -> AccountUpdateResult:
        user_id = require_user_id(user_id)
        require_password(new_password)
        await self._set_db_user(user_id, "password", new_password)
        logger.info(f"Changed password of Plesk database user {user_id}")
        return update_result(user_id, "Database password changed", field="password")
