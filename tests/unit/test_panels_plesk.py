"""
Unit tests for PleskAdapter (XML API).

Packets are inspected by parsing the request body; responses are canned XML.
"""

import xml.etree.ElementTree as ET

import httpx
import pytest

from hostpanel.panels.config import PleskConfig
from hostpanel.panels.errors import PanelConfigError
from hostpanel.panels.plesk import PleskAdapter
from hostpanel.panels.types import (
    DatabaseRequest,
    DatabaseUserRequest,
    ErrorKind,
    HostingAccountRequest,
    MailAccountRequest,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def adapter(panel_http) -> PleskAdapter:
    config = PleskConfig(api_url="plesk.example.com", api_key="KEY123")
    return PleskAdapter(config, transport=panel_http.transport)


def _ok(inner: str = "") -> str:
    return f"<result><status>ok</status>{inner}</result>"


def _error(code: str, text: str) -> str:
    return f"<result><status>error</status><errcode>{code}</errcode><errtext>{text}</errtext></result>"


def _reply(operator: str, operation: str, *results: str) -> httpx.Response:
    body = f"<packet><{operator}><{operation}>{''.join(results)}</{operation}></{operator}></packet>"
    return httpx.Response(200, text=body)


def _sent(request: httpx.Request) -> ET.Element:
    return ET.fromstring(request.content)


def _hosting() -> HostingAccountRequest:
    return HostingAccountRequest(
        domain="example.com", username="exuser", password="Str0ngP@ss", disk_quota_mb=1
    )


# ============================================================================
# Construction and transport
# ============================================================================


class TestConstruction:
    def test_credentials_required(self):
        with pytest.raises(PanelConfigError):
            PleskAdapter(PleskConfig(api_url="plesk.example.com"))

    @pytest.mark.asyncio
    async def test_key_header(self, adapter, panel_http):
        panel_http.queue(_reply("webspace", "del", _ok("<id>7</id>")))

        await adapter.delete_web_hosting_account("7")

        request = panel_http.last
        assert request.headers["KEY"] == "KEY123"
        assert request.headers["Content-Type"] == "text/xml"
        assert request.url.path == "/enterprise/control/agent.php"
        assert request.url.port == 8443

    @pytest.mark.asyncio
    async def test_login_headers(self, panel_http):
        config = PleskConfig(api_url="plesk.example.com", username="admin", password="secret")
        adapter = PleskAdapter(config, transport=panel_http.transport)
        panel_http.queue(_reply("webspace", "del", _ok()))

        await adapter.delete_web_hosting_account("7")

        assert panel_http.last.headers["HTTP_AUTH_LOGIN"] == "admin"
        assert "KEY" not in panel_http.last.headers


# ============================================================================
# Web hosting accounts
# ============================================================================


class TestWebspaces:
    @pytest.mark.asyncio
    async def test_create(self, adapter, panel_http):
        panel_http.queue(_reply("webspace", "add", _ok("<id>42</id><guid>abc</guid>")))

        result = await adapter.create_web_hosting_account(_hosting())

        assert result.success
        assert result.account_id == "42"
        packet = _sent(panel_http.last)
        assert packet.findtext("webspace/add/gen_setup/name") == "example.com"
        assert packet.findtext("webspace/add/gen_setup/htype") == "vrt_hst"
        props = {
            p.findtext("name"): p.findtext("value")
            for p in packet.findall("webspace/add/hosting/vrt_hst/property")
        }
        assert props == {"ftp_login": "exuser", "ftp_password": "Str0ngP@ss"}
        limit = packet.find("webspace/add/limits/limit")
        assert limit.findtext("name") == "disk_space"
        assert limit.findtext("value") == "1048576"

    @pytest.mark.asyncio
    async def test_create_passes_additional_settings_as_properties(self, adapter, panel_http):
        panel_http.queue(_reply("webspace", "add", _ok("<id>42</id>")))
        request = _hosting().model_copy(
            update={
                "additional_settings": {
                    "ip_address": "192.0.2.10",
                    "owner_login": "reseller1",
                    "php": True,
                    "ssl": False,
                    "shell": "/bin/bash",
                }
            }
        )

        result = await adapter.create_web_hosting_account(request)

        assert result.success
        packet = _sent(panel_http.last)
        assert packet.findtext("webspace/add/gen_setup/owner-login") == "reseller1"
        assert packet.findtext("webspace/add/gen_setup/ip_address") == "192.0.2.10"
        props = {
            p.findtext("name"): p.findtext("value")
            for p in packet.findall("webspace/add/hosting/vrt_hst/property")
        }
        assert props == {
            "ftp_login": "exuser",
            "ftp_password": "Str0ngP@ss",
            "php": "true",
            "ssl": "false",
            "shell": "/bin/bash",
        }

    @pytest.mark.asyncio
    async def test_create_validation(self, adapter, panel_http):
        result = await adapter.create_web_hosting_account(
            _hosting().model_copy(update={"password": None})
        )
        assert result.error_code == "INVALID_PASSWORD"
        assert panel_http.requests == []

    @pytest.mark.asyncio
    async def test_operation_error(self, adapter, panel_http):
        panel_http.queue(_reply("webspace", "add", _error("1007", "Domain already exists")))

        result = await adapter.create_web_hosting_account(_hosting())

        assert not result.success
        assert result.error_code == "1007"
        assert result.error_kind is ErrorKind.VENDOR
        assert result.message == "Domain already exists"

    @pytest.mark.asyncio
    async def test_system_error(self, adapter, panel_http):
        panel_http.queue(
            httpx.Response(
                200,
                text="<packet><system><status>error</status><errcode>1001</errcode>"
                "<errtext>Authentication failed</errtext></system></packet>",
            )
        )

        result = await adapter.delete_web_hosting_account("7")

        assert result.error_code == "1001"
        assert result.message == "Authentication failed"

    @pytest.mark.asyncio
    async def test_invalid_xml(self, adapter, panel_http):
        panel_http.queue(httpx.Response(200, text="definitely not xml"))

        result = await adapter.delete_web_hosting_account("7")

        assert result.error_code == "XML_PARSE_ERROR"
        assert result.error_kind is ErrorKind.PARSE

    @pytest.mark.asyncio
    async def test_missing_operation_node(self, adapter, panel_http):
        panel_http.queue(httpx.Response(200, text="<packet><webspace/></packet>"))

        result = await adapter.delete_web_hosting_account("7")

        assert result.error_code == "XML_PARSE_ERROR"

    @pytest.mark.asyncio
    async def test_http_error(self, adapter, panel_http):
        panel_http.queue(httpx.Response(500, text="Internal Server Error"))

        result = await adapter.suspend_web_hosting_account("7")

        assert result.error_code == "500"

    @pytest.mark.asyncio
    async def test_suspend_and_unsuspend(self, adapter, panel_http):
        panel_http.queue(_reply("webspace", "set", _ok()), _reply("webspace", "set", _ok()))

        suspended = await adapter.suspend_web_hosting_account("7")
        activated = await adapter.unsuspend_web_hosting_account("7")

        assert suspended.new_value == "suspended"
        assert activated.new_value == "active"
        first, second = (_sent(r) for r in panel_http.requests)
        assert first.findtext("webspace/set/filter/id") == "7"
        assert first.findtext("webspace/set/values/gen_setup/status") == "16"
        assert second.findtext("webspace/set/values/gen_setup/status") == "0"

    @pytest.mark.asyncio
    async def test_update_plan_not_supported(self, adapter, panel_http):
        result = await adapter.update_web_hosting_account("7", HostingAccountRequest(plan="Gold"))

        assert result.error_code == "NOT_SUPPORTED"
        assert result.error_kind is ErrorKind.NOT_SUPPORTED
        assert panel_http.requests == []

    @pytest.mark.asyncio
    async def test_update_rejects_negative_limits(self, adapter, panel_http):
        result = await adapter.update_web_hosting_account(
            "7", HostingAccountRequest(disk_quota_mb=-5, max_databases=-1)
        )

        assert result.error_code == "INVALID_QUOTA"
        assert result.error_kind is ErrorKind.VALIDATION
        assert panel_http.requests == []

    @pytest.mark.asyncio
    async def test_update_limits(self, adapter, panel_http):
        panel_http.queue(_reply("webspace", "set", _ok()))

        result = await adapter.update_web_hosting_account(
            "7", HostingAccountRequest(max_databases=5)
        )

        assert result.updated_field == "max_databases"
        limit = _sent(panel_http.last).find("webspace/set/values/limits/limit")
        assert limit.findtext("name") == "max_db"
        assert limit.findtext("value") == "5"

    @pytest.mark.asyncio
    async def test_info(self, adapter, panel_http):
        panel_http.queue(
            _reply(
                "webspace",
                "get",
                _ok(
                    "<id>7</id><data><gen_info><name>example.com</name><status>16</status>"
                    "<cr_date>2024-03-01</cr_date><real_size>2097152</real_size>"
                    "<dns_ip_address>192.0.2.5</dns_ip_address><guid>g-1</guid></gen_info>"
                    "<hosting><vrt_hst><property><name>ftp_login</name><value>exuser</value>"
                    "</property></vrt_hst></hosting>"
                    "<limits><limit><name>disk_space</name><value>10485760</value></limit></limits>"
                    "</data>"
                ),
            )
        )

        result = await adapter.get_web_hosting_account_info("7")

        assert result.success
        assert result.domain == "example.com"
        assert result.username == "exuser"
        assert result.status == "suspended"
        assert result.disk_usage_mb == 2.0
        assert result.disk_quota_mb == 10.0
        assert result.ip_address == "192.0.2.5"
        assert result.created_date.year == 2024
        assert result.additional_info["guid"] == "g-1"

    @pytest.mark.asyncio
    async def test_info_not_found(self, adapter, panel_http):
        panel_http.queue(_reply("webspace", "get", _error("1013", "Webspace does not exist")))

        result = await adapter.get_web_hosting_account_info("99")

        assert result.error_code == "NOT_FOUND"
        assert result.error_kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_skips_results_without_id(self, adapter, panel_http):
        panel_http.queue(
            _reply(
                "webspace",
                "get",
                _ok("<id>1</id><data><gen_info><name>one.com</name></gen_info></data>"),
                _ok("<data/>"),
                _ok("<id>2</id>"),
            )
        )

        accounts = await adapter.list_web_hosting_accounts()

        assert [a.account_id for a in accounts] == ["1", "2"]
        assert accounts[1].status == "active"

    @pytest.mark.asyncio
    async def test_list_error_returns_empty(self, adapter, panel_http):
        panel_http.queue(_reply("webspace", "get", _error("1006", "Permission denied")))
        assert await adapter.list_web_hosting_accounts() == []

    @pytest.mark.asyncio
    async def test_bandwidth_limit(self, adapter, panel_http):
        panel_http.queue(_reply("webspace", "set", _ok()))

        result = await adapter.set_bandwidth_limit("7", 2)

        assert result.updated_field == "bandwidth_limit_mb"
        limit = _sent(panel_http.last).find("webspace/set/values/limits/limit")
        assert limit.findtext("name") == "max_traffic"
        assert limit.findtext("value") == str(2 * 1024 * 1024)


# ============================================================================
# Mail accounts
# ============================================================================


class TestMail:
    @pytest.mark.asyncio
    async def test_create_looks_up_site(self, adapter, panel_http):
        panel_http.queue(
            _reply("site", "get", _ok("<id>3</id>")),
            _reply("mail", "create", _ok("<mailname><id>11</id><name>info</name></mailname>")),
        )

        result = await adapter.create_mail_account(
            MailAccountRequest(email_address="info@example.com", password="pw", quota_mb=1)
        )

        assert result.success
        assert result.account_id == "info@example.com"
        lookup, create = (_sent(r) for r in panel_http.requests)
        assert lookup.findtext("site/get/filter/name") == "example.com"
        assert create.findtext("mail/create/filter/site-id") == "3"
        assert create.findtext("mail/create/filter/mailname/name") == "info"
        assert create.findtext("mail/create/filter/mailname/mailbox/quota") == "1048576"
        assert create.findtext("mail/create/filter/mailname/password/value") == "pw"

    @pytest.mark.asyncio
    async def test_unknown_site(self, adapter, panel_http):
        panel_http.queue(_reply("site", "get", _error("1013", "Site does not exist")))

        result = await adapter.delete_mail_account("info@nowhere.com")

        assert result.error_code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_info_and_list(self, adapter, panel_http):
        mailnames = _ok(
            "<mailname><id>11</id><name>info</name><mailbox><enabled>true</enabled>"
            "<quota>1048576</quota></mailbox></mailname>"
            "<mailname><id>12</id><name>old</name><mailbox><enabled>false</enabled></mailbox>"
            "</mailname>"
        )
        panel_http.queue(
            _reply("site", "get", _ok("<id>3</id>")),
            _reply("mail", "get_info", mailnames),
            _reply("site", "get", _ok("<id>3</id>")),
            _reply("mail", "get_info", mailnames),
        )

        info = await adapter.get_mail_account_info("info@example.com")
        listed = await adapter.list_mail_accounts("Example.com")

        assert info.disk_quota_mb == 1.0
        assert info.additional_info == {"mailname_id": "11"}
        assert [m.email for m in listed] == ["info@example.com", "old@example.com"]
        assert listed[1].status == "suspended"

    @pytest.mark.asyncio
    async def test_change_password(self, adapter, panel_http):
        panel_http.queue(_reply("site", "get", _ok("<id>3</id>")), _reply("mail", "update", _ok()))

        result = await adapter.change_mail_password("info@example.com", "N3w!")

        assert result.updated_field == "password"
        packet = _sent(panel_http.last)
        assert packet.findtext("mail/update/set/filter/mailname/password/value") == "N3w!"

    @pytest.mark.asyncio
    async def test_update_nothing(self, adapter, panel_http):
        result = await adapter.update_mail_account("info@example.com", MailAccountRequest())
        assert result.message == "No changes requested"
        assert panel_http.requests == []


# ============================================================================
# Databases
# ============================================================================


class TestDatabases:
    @pytest.mark.asyncio
    async def test_create_with_user(self, adapter, panel_http):
        panel_http.queue(
            _reply("database", "add-db", _ok("<id>5</id>")),
            _reply("database", "add-db-user", _ok("<id>9</id>")),
        )

        result = await adapter.create_database(
            DatabaseRequest(database_name="shop", account_id="7", username="app", password="pw")
        )

        assert result.database_id == "5"
        assert result.user_id == "9"
        add_db, add_user = (_sent(r) for r in panel_http.requests)
        assert add_db.findtext("database/add-db/webspace-id") == "7"
        assert add_db.findtext("database/add-db/type") == "mysql"
        assert add_user.findtext("database/add-db-user/db-id") == "5"

    @pytest.mark.asyncio
    async def test_create_needs_owner(self, adapter, panel_http):
        result = await adapter.create_database(DatabaseRequest(database_name="shop"))
        assert result.error_code == "INVALID_ACCOUNT_ID"
        assert result.error_kind is ErrorKind.VALIDATION
        assert panel_http.requests == []

    @pytest.mark.asyncio
    async def test_create_resolves_webspace_by_domain(self, adapter, panel_http):
        panel_http.queue(
            _reply("webspace", "get", _ok("<id>7</id>")),
            _reply("database", "add-db", _ok("<id>5</id>")),
        )

        result = await adapter.create_database(
            DatabaseRequest(database_name="shop", domain="example.com")
        )

        assert result.success
        assert result.user_id is None

    @pytest.mark.asyncio
    async def test_info_and_list(self, adapter, panel_http):
        entry = _ok(
            "<id>5</id><name>shop</name><type>mysql</type><webspace-id>7</webspace-id>"
            "<webspace-name>example.com</webspace-name><db-server-id>1</db-server-id>"
        )
        panel_http.queue(
            _reply("database", "get-db", entry), _reply("database", "get-db", entry, _ok())
        )

        info = await adapter.get_database_info("5")
        listed = await adapter.list_databases("example.com")

        assert info.domain == "example.com"
        assert info.additional_info["name"] == "shop"
        assert len(listed) == 1
        assert _sent(panel_http.last).findtext("database/get-db/filter/webspace-name") == (
            "example.com"
        )

    @pytest.mark.asyncio
    async def test_user_with_select_only_is_read_only(self, adapter, panel_http):
        panel_http.queue(_reply("database", "add-db-user", _ok("<id>9</id>")))

        result = await adapter.create_database_user(
            DatabaseUserRequest(username="ro", password="pw", database_id="5", privileges=["select"])
        )

        assert result.user_id == "9"
        assert _sent(panel_http.last).findtext("database/add-db-user/role") == "readOnly"

    @pytest.mark.asyncio
    async def test_grant_sets_role(self, adapter, panel_http):
        panel_http.queue(_reply("database", "set-db-user", _ok()))

        result = await adapter.grant_database_privileges("9", "5", ["SELECT", "INSERT"])

        assert result.new_value == "readWrite"
        assert _sent(panel_http.last).findtext("database/set-db-user/role") == "readWrite"

    @pytest.mark.asyncio
    async def test_delete_and_password(self, adapter, panel_http):
        panel_http.queue(
            _reply("database", "set-db-user", _ok()),
            _reply("database", "del-db-user", _ok()),
            _reply("database", "del-db", _ok()),
        )

        changed = await adapter.change_database_password("9", "n3w")
        deleted_user = await adapter.delete_database_user("9")
        deleted_db = await adapter.delete_database("5")

        assert changed.updated_field == "password"
        assert deleted_user.success
        assert deleted_db.success
        assert _sent(panel_http.requests[0]).findtext("database/set-db-user/password") == "n3w"
