"""
Unit tests for CpanelAdapter.

All tests run against httpx.MockTransport; no real WHM server is contacted.
"""

import httpx
import pytest

from hostpanel.panels.config import CpanelConfig
from hostpanel.panels.cpanel import CpanelAdapter
from hostpanel.panels.errors import PanelConfigError
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
def config() -> CpanelConfig:
    return CpanelConfig(api_url="whm.example.com", api_token="TOKEN123")


@pytest.fixture
def adapter(config, panel_http) -> CpanelAdapter:
    return CpanelAdapter(config, transport=panel_http.transport)


def _whm(data: dict | None = None, result: int = 1, reason: str = "OK") -> httpx.Response:
    """Build a WHM API 1 response."""
    return httpx.Response(
        200, json={"metadata": {"result": result, "reason": reason}, "data": data or {}}
    )


def _uapi(data=None, status: int = 1, errors: list | None = None) -> httpx.Response:
    """Build a UAPI response proxied through WHM."""
    return httpx.Response(
        200, json={"result": {"status": status, "errors": errors, "data": data}}
    )


def _owner(user: str = "exuser") -> httpx.Response:
    return _whm({"user": user})


def _request() -> HostingAccountRequest:
    return HostingAccountRequest(
        domain="example.com",
        username="exuser",
        password="Str0ngP@ss",
        email="a@example.com",
        plan="default",
    )


# ============================================================================
# Construction
# ============================================================================


class TestConstruction:
    def test_missing_token_rejected(self):
        with pytest.raises(PanelConfigError):
            CpanelAdapter(CpanelConfig(api_url="whm.example.com"))

    @pytest.mark.asyncio
    async def test_auth_header_and_default_port(self, adapter, panel_http):
        panel_http.queue(_whm())
        await adapter.suspend_web_hosting_account("exuser")

        request = panel_http.last
        assert request.headers["Authorization"] == "whm root:TOKEN123"
        assert request.url.port == 2087
        assert request.url.path == "/json-api/suspendacct"
        assert request.url.params["api.version"] == "1"

    @pytest.mark.asyncio
    async def test_context_manager_closes_transport(self, config, panel_http):
        async with CpanelAdapter(config, transport=panel_http.transport) as panel:
            pass
        assert panel._transport.is_closed


# ============================================================================
# Web hosting accounts
# ============================================================================


class TestCreateAccount:
    @pytest.mark.asyncio
    async def test_create_success(self, adapter, panel_http):
        panel_http.queue(_whm({"pkg": "default"}))

        result = await adapter.create_web_hosting_account(_request())

        assert result.success
        assert result.account_id == "exuser"
        assert result.domain == "example.com"
        assert result.created_date is not None
        params = panel_http.last.url.params
        assert panel_http.last.url.path == "/json-api/createacct"
        assert params["username"] == "exuser"
        assert params["domain"] == "example.com"
        assert params["contactemail"] == "a@example.com"
        assert params["plan"] == "default"
        assert "quota" not in params

    @pytest.mark.asyncio
    async def test_empty_domain_makes_no_request(self, adapter, panel_http):
        request = _request().model_copy(update={"domain": ""})

        result = await adapter.create_web_hosting_account(request)

        assert not result.success
        assert result.error_code == "INVALID_DOMAIN"
        assert result.error_kind is ErrorKind.VALIDATION
        assert panel_http.requests == []

    @pytest.mark.asyncio
    async def test_limits_and_additional_settings(self, adapter, panel_http):
        panel_http.queue(_whm())
        request = _request().model_copy(
            update={
                "disk_quota_mb": 1024,
                "shell_access": True,
                "additional_settings": {"language": "en", "quota": 1},
            }
        )

        await adapter.create_web_hosting_account(request)

        params = panel_http.last.url.params
        assert params["quota"] == "1024"
        assert params["hasshell"] == "1"
        assert params["language"] == "en"

    @pytest.mark.asyncio
    async def test_http_error(self, adapter, panel_http):
        panel_http.queue(httpx.Response(500, text="Internal Server Error"))

        result = await adapter.create_web_hosting_account(_request())

        assert not result.success
        assert result.error_code == "500"
        assert "Internal Server Error" in result.message

    @pytest.mark.asyncio
    async def test_unparsable_body(self, adapter, panel_http):
        panel_http.queue(httpx.Response(200, text="<html>login</html>"))

        result = await adapter.create_web_hosting_account(_request())

        assert result.error_code == "JSON_PARSE_ERROR"
        assert result.error_kind is ErrorKind.PARSE

    @pytest.mark.asyncio
    async def test_missing_metadata(self, adapter, panel_http):
        panel_http.queue(httpx.Response(200, json={"data": {}}))

        result = await adapter.create_web_hosting_account(_request())

        assert result.error_code == "RESPONSE_PARSE_ERROR"

    @pytest.mark.asyncio
    async def test_vendor_failure(self, adapter, panel_http):
        panel_http.queue(_whm(result=0, reason="Sorry, a group for that username already exists."))

        result = await adapter.create_web_hosting_account(_request())

        assert not result.success
        assert result.error_code == "CPANEL_ERROR"
        assert result.error_kind is ErrorKind.VENDOR
        assert result.message == "Sorry, a group for that username already exists."

    @pytest.mark.asyncio
    async def test_network_error(self, adapter, panel_http):
        panel_http.queue(httpx.ConnectError("connection refused"))

        result = await adapter.create_web_hosting_account(_request())

        assert result.error_code == "NETWORK_ERROR"
        assert result.error_kind is ErrorKind.NETWORK


class TestAccountLifecycle:
    @pytest.mark.asyncio
    async def test_suspend(self, adapter, panel_http):
        panel_http.queue(_whm())

        result = await adapter.suspend_web_hosting_account("exuser")

        assert result.success
        assert result.updated_field == "status"
        assert result.new_value == "suspended"
        assert panel_http.last.url.params["user"] == "exuser"

    @pytest.mark.asyncio
    async def test_unsuspend(self, adapter, panel_http):
        panel_http.queue(_whm())

        result = await adapter.unsuspend_web_hosting_account("exuser")

        assert result.new_value == "active"
        assert panel_http.last.url.path == "/json-api/unsuspendacct"

    @pytest.mark.asyncio
    async def test_delete_uses_username_param(self, adapter, panel_http):
        panel_http.queue(_whm())

        result = await adapter.delete_web_hosting_account("exuser")

        assert result.success
        assert panel_http.last.url.path == "/json-api/removeacct"
        assert panel_http.last.url.params["username"] == "exuser"

    @pytest.mark.asyncio
    async def test_blank_account_id(self, adapter, panel_http):
        result = await adapter.delete_web_hosting_account(" ")
        assert result.error_code == "INVALID_ACCOUNT_ID"
        assert panel_http.requests == []

    @pytest.mark.asyncio
    async def test_update_limits_and_plan(self, adapter, panel_http):
        panel_http.queue(_whm(), _whm())

        result = await adapter.update_web_hosting_account(
            "exuser", HostingAccountRequest(disk_quota_mb=2048, plan="gold")
        )

        assert result.success
        assert result.updated_field == "disk_quota_mb, plan"
        assert result.new_value == {"disk_quota_mb": 2048, "plan": "gold"}
        modify, change = panel_http.requests
        assert modify.url.path == "/json-api/modifyacct"
        assert modify.url.params["QUOTA"] == "2048"
        assert change.url.path == "/json-api/changepackage"
        assert change.url.params["pkg"] == "gold"

    @pytest.mark.asyncio
    async def test_update_nothing_requested(self, adapter, panel_http):
        result = await adapter.update_web_hosting_account("exuser", HostingAccountRequest())
        assert result.success
        assert result.message == "No changes requested"
        assert panel_http.requests == []

    @pytest.mark.asyncio
    async def test_update_rejects_negative_limits(self, adapter, panel_http):
        result = await adapter.update_web_hosting_account(
            "exuser", HostingAccountRequest(disk_quota_mb=-5, max_databases=-1)
        )

        assert result.error_code == "INVALID_QUOTA"
        assert result.error_kind is ErrorKind.VALIDATION
        assert panel_http.requests == []

    @pytest.mark.asyncio
    async def test_set_quota_and_bandwidth(self, adapter, panel_http):
        panel_http.queue(_whm(), _whm())

        quota = await adapter.set_disk_quota("exuser", 500)
        bandwidth = await adapter.set_bandwidth_limit("exuser", 10000)

        assert quota.updated_field == "disk_quota_mb"
        assert bandwidth.new_value == 10000
        assert panel_http.requests[0].url.params["quota"] == "500"
        assert panel_http.requests[1].url.params["bwlimit"] == "10000"

    @pytest.mark.asyncio
    async def test_negative_quota_rejected(self, adapter, panel_http):
        result = await adapter.set_disk_quota("exuser", -1)
        assert result.error_code == "INVALID_QUOTA"
        assert panel_http.requests == []


class TestAccountQueries:
    @pytest.mark.asyncio
    async def test_info(self, adapter, panel_http):
        panel_http.queue(
            _whm(
                {
                    "acct": [
                        {
                            "user": "exuser",
                            "domain": "example.com",
                            "email": "a@example.com",
                            "plan": "default",
                            "suspended": 1,
                            "diskused": "120M",
                            "disklimit": "unlimited",
                            "ip": "192.0.2.10",
                            "unix_startdate": 1700000000,
                            "owner": "root",
                        }
                    ]
                }
            )
        )

        result = await adapter.get_web_hosting_account_info("exuser")

        assert result.success
        assert result.status == "suspended"
        assert result.disk_usage_mb == 120.0
        assert result.disk_quota_mb is None
        assert result.created_date.year == 2023
        assert result.additional_info == {"owner": "root"}

    @pytest.mark.asyncio
    async def test_info_not_found(self, adapter, panel_http):
        panel_http.queue(_whm({"acct": []}))

        result = await adapter.get_web_hosting_account_info("ghost")

        assert result.error_code == "NOT_FOUND"
        assert result.error_kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_skips_malformed_entries(self, adapter, panel_http):
        panel_http.queue(
            _whm(
                {
                    "acct": [
                        {"user": "one", "domain": "one.com", "suspended": 0},
                        {"domain": "nouser.com"},
                        "garbage",
                        {"user": "two", "domain": "two.com"},
                    ]
                }
            )
        )

        accounts = await adapter.list_web_hosting_accounts()

        assert [a.account_id for a in accounts] == ["one", "two"]
        assert accounts[0].status == "active"

    @pytest.mark.asyncio
    async def test_list_failure_returns_empty(self, adapter, panel_http):
        panel_http.queue(httpx.Response(503, text="unavailable"))
        assert await adapter.list_web_hosting_accounts() == []


# ============================================================================
# Mail accounts
# ============================================================================


class TestMail:
    @pytest.mark.asyncio
    async def test_create_resolves_owner(self, adapter, panel_http):
        panel_http.queue(_owner(), _uapi())

        result = await adapter.create_mail_account(
            MailAccountRequest(email_address="info@example.com", password="pw", quota_mb=250)
        )

        assert result.success
        assert result.account_id == "info@example.com"
        lookup, create = panel_http.requests
        assert lookup.url.path == "/json-api/getdomainowner"
        params = create.url.params
        assert params["cpanel_jsonapi_user"] == "exuser"
        assert params["cpanel_jsonapi_module"] == "Email"
        assert params["cpanel_jsonapi_func"] == "add_pop"
        assert params["email"] == "info"
        assert params["quota"] == "250"

    @pytest.mark.asyncio
    async def test_create_without_quota_leaves_default(self, adapter, panel_http):
        panel_http.queue(_owner(), _uapi())

        result = await adapter.create_mail_account(
            MailAccountRequest(email_address="info@example.com", password="pw")
        )

        assert result.success
        assert "quota" not in panel_http.last.url.params

    @pytest.mark.asyncio
    async def test_create_invalid_address(self, adapter, panel_http):
        result = await adapter.create_mail_account(
            MailAccountRequest(email_address="a@b@c", password="pw")
        )
        assert result.error_code == "INVALID_EMAIL_FORMAT"
        assert panel_http.requests == []

    @pytest.mark.asyncio
    async def test_uapi_errors_joined(self, adapter, panel_http):
        panel_http.queue(_owner(), _uapi(status=0, errors=["Quota exceeded", "Try later"]))

        result = await adapter.create_mail_account(
            MailAccountRequest(email_address="info@example.com", password="pw")
        )

        assert result.error_code == "CPANEL_ERROR"
        assert result.message == "Quota exceeded; Try later"

    @pytest.mark.asyncio
    async def test_unknown_domain_owner(self, adapter, panel_http):
        panel_http.queue(_whm({"user": None}))

        result = await adapter.delete_mail_account("info@nowhere.com")

        assert result.error_code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_info_found_and_missing(self, adapter, panel_http):
        mailboxes = [
            {"email": "info@example.com", "user": "info", "diskused": 1, "diskquota": 250},
            {"email": "sales@example.com", "user": "sales"},
        ]
        panel_http.queue(_owner(), _uapi(mailboxes), _owner(), _uapi(mailboxes))

        found = await adapter.get_mail_account_info("INFO@example.com")
        missing = await adapter.get_mail_account_info("ghost@example.com")

        assert found.success
        assert found.disk_quota_mb == 250.0
        assert missing.error_code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_list(self, adapter, panel_http):
        panel_http.queue(_owner(), _uapi([{"email": "info@example.com"}, {"user": "broken"}]))

        mailboxes = await adapter.list_mail_accounts("example.com")

        assert [m.email for m in mailboxes] == ["info@example.com"]
        assert mailboxes[0].domain == "example.com"

    @pytest.mark.asyncio
    async def test_change_password(self, adapter, panel_http):
        panel_http.queue(_owner(), _uapi())

        result = await adapter.change_mail_password("info@example.com", "N3wPass!")

        assert result.success
        assert result.updated_field == "password"
        assert result.new_value is None
        assert panel_http.last.url.params["cpanel_jsonapi_func"] == "passwd_pop"


# ============================================================================
# Databases
# ============================================================================


class TestDatabases:
    @pytest.mark.asyncio
    async def test_create_with_user(self, adapter, panel_http):
        panel_http.queue(_uapi(), _uapi(), _uapi())

        result = await adapter.create_database(
            DatabaseRequest(database_name="shop", account_id="exuser", username="app", password="pw")
        )

        assert result.success
        assert result.database_id == "exuser_shop"
        assert result.user_id == "exuser_app"
        funcs = [r.url.params["cpanel_jsonapi_func"] for r in panel_http.requests]
        assert funcs == ["create_database", "create_user", "set_privileges_on_database"]

    @pytest.mark.asyncio
    async def test_failed_user_rolls_back_database(self, adapter, panel_http):
        panel_http.queue(_uapi(), _uapi(status=0, errors=["Password too weak"]), _uapi())

        result = await adapter.create_database(
            DatabaseRequest(database_name="shop", account_id="exuser", username="app", password="pw")
        )

        assert not result.success
        assert result.error_code == "CPANEL_ERROR"
        assert result.message == "Password too weak (database exuser_shop was rolled back)"
        cleanup = panel_http.last.url.params
        assert cleanup["cpanel_jsonapi_func"] == "delete_database"
        assert cleanup["name"] == "exuser_shop"

    @pytest.mark.asyncio
    async def test_failed_grant_removes_user_and_database(self, adapter, panel_http):
        panel_http.queue(
            _uapi(), _uapi(), _uapi(status=0, errors=["No such privilege"]), _uapi(), _uapi()
        )

        result = await adapter.create_database(
            DatabaseRequest(database_name="shop", account_id="exuser", username="app", password="pw")
        )

        assert not result.success
        funcs = [r.url.params["cpanel_jsonapi_func"] for r in panel_http.requests[3:]]
        assert funcs == ["delete_user", "delete_database"]

    @pytest.mark.asyncio
    async def test_failed_rollback_reports_leftover(self, adapter, panel_http):
        panel_http.queue(
            _uapi(),
            _uapi(status=0, errors=["Password too weak"]),
            _uapi(status=0, errors=["Database busy"]),
        )

        result = await adapter.create_database(
            DatabaseRequest(database_name="shop", account_id="exuser", username="app", password="pw")
        )

        assert result.error_code == "CPANEL_ERROR"
        assert "exuser_shop was created and could not be removed" in result.message

    @pytest.mark.asyncio
    async def test_create_owner_from_prefix(self, adapter, panel_http):
        panel_http.queue(_uapi())

        result = await adapter.create_database(DatabaseRequest(database_name="exuser_shop"))

        assert result.database_id == "exuser_shop"
        assert panel_http.last.url.params["cpanel_jsonapi_user"] == "exuser"

    @pytest.mark.asyncio
    async def test_create_without_owner(self, adapter, panel_http):
        result = await adapter.create_database(DatabaseRequest(database_name="shop"))
        assert result.error_code == "INVALID_DATABASE_NAME"
        assert panel_http.requests == []

    @pytest.mark.asyncio
    async def test_delete(self, adapter, panel_http):
        panel_http.queue(_uapi())

        result = await adapter.delete_database("exuser_shop")

        assert result.success
        assert panel_http.last.url.params["name"] == "exuser_shop"

    @pytest.mark.asyncio
    async def test_info(self, adapter, panel_http):
        panel_http.queue(
            _uapi([{"database": "exuser_shop", "disk_usage": 2097152, "users": ["exuser_app"]}])
        )

        result = await adapter.get_database_info("exuser_shop")

        assert result.success
        assert result.disk_usage_mb == 2.0
        assert result.additional_info == {"users": ["exuser_app"]}

    @pytest.mark.asyncio
    async def test_list(self, adapter, panel_http):
        panel_http.queue(_owner(), _uapi([{"database": "exuser_shop"}, {"disk_usage": 1}]))

        databases = await adapter.list_databases("example.com")

        assert [d.account_id for d in databases] == ["exuser_shop"]

    @pytest.mark.asyncio
    async def test_user_lifecycle(self, adapter, panel_http):
        panel_http.queue(_uapi(), _uapi(), _uapi(), _uapi(), _uapi())

        created = await adapter.create_database_user(
            DatabaseUserRequest(
                username="reader", password="pw", database_id="exuser_shop", privileges=["SELECT"]
            )
        )
        granted = await adapter.grant_database_privileges(
            "exuser_reader", "exuser_shop", ["SELECT", "INSERT"]
        )
        changed = await adapter.change_database_password("exuser_reader", "n3w")
        deleted = await adapter.delete_database_user("exuser_reader")

        assert created.user_id == "exuser_reader"
        assert panel_http.requests[1].url.params["privileges"] == "SELECT"
        assert granted.new_value == ["SELECT", "INSERT"]
        assert panel_http.requests[2].url.params["privileges"] == "SELECT,INSERT"
        assert changed.updated_field == "password"
        assert deleted.success
        assert panel_http.last.url.params["cpanel_jsonapi_func"] == "delete_user"

    @pytest.mark.asyncio
    async def test_user_without_prefix(self, adapter, panel_http):
        result = await adapter.delete_database_user("noprefix")
        assert result.error_code == "INVALID_USER_ID"
        assert panel_http.requests == []
