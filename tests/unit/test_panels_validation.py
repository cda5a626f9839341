"""
Unit tests for hostpanel.panels.validation - pre-call request checks.
"""

import pytest

from hostpanel.panels.errors import PanelValidationError
from hostpanel.panels.types import (
    DatabaseRequest,
    DatabaseUserRequest,
    ErrorKind,
    HostingAccountRequest,
    MailAccountRequest,
)
from hostpanel.panels.validation import (
    require_account_id,
    split_email,
    validate_database_request,
    validate_database_user_request,
    validate_hosting_request,
    validate_mail_request,
    validate_quota,
)


def _hosting(**overrides) -> HostingAccountRequest:
    fields = {
        "domain": "example.com",
        "username": "exuser",
        "password": "Str0ngP@ss",
        "email": "a@example.com",
    }
    fields.update(overrides)
    return HostingAccountRequest(**fields)


def _code(exc_info) -> str:
    return exc_info.value.code


# ============================================================================
# Hosting requests
# ============================================================================


class TestHostingRequest:
    def test_valid_request_passes(self):
        validate_hosting_request(_hosting())

    @pytest.mark.parametrize(
        ("field", "code"),
        [
            ("domain", "INVALID_DOMAIN"),
            ("username", "INVALID_USERNAME"),
            ("password", "INVALID_PASSWORD"),
        ],
    )
    def test_missing_required_field(self, field, code):
        with pytest.raises(PanelValidationError) as exc_info:
            validate_hosting_request(_hosting(**{field: ""}))
        assert _code(exc_info) == code
        assert exc_info.value.kind is ErrorKind.VALIDATION

    def test_blank_domain_is_invalid(self):
        with pytest.raises(PanelValidationError) as exc_info:
            validate_hosting_request(_hosting(domain="   "))
        assert _code(exc_info) == "INVALID_DOMAIN"

    def test_domain_checked_before_username(self):
        with pytest.raises(PanelValidationError) as exc_info:
            validate_hosting_request(_hosting(domain=None, username=None))
        assert _code(exc_info) == "INVALID_DOMAIN"

    def test_email_optional_by_default(self):
        validate_hosting_request(_hosting(email=None))

    def test_email_required_when_asked(self):
        with pytest.raises(PanelValidationError) as exc_info:
            validate_hosting_request(_hosting(email=None), require_email=True)
        assert _code(exc_info) == "INVALID_EMAIL"

    def test_malformed_email(self):
        with pytest.raises(PanelValidationError) as exc_info:
            validate_hosting_request(_hosting(email="not-an-email"))
        assert _code(exc_info) == "INVALID_EMAIL_FORMAT"

    def test_negative_quota(self):
        with pytest.raises(PanelValidationError) as exc_info:
            validate_hosting_request(_hosting(disk_quota_mb=-1))
        assert _code(exc_info) == "INVALID_QUOTA"


# ============================================================================
# Email addresses
# ============================================================================


class TestSplitEmail:
    def test_splits_and_lowercases_domain(self):
        assert split_email("Info@Example.COM") == ("Info", "example.com")

    @pytest.mark.parametrize("address", ["a@b@c", "@example.com", "info@", "plain"])
    def test_bad_format(self, address):
        with pytest.raises(PanelValidationError) as exc_info:
            split_email(address)
        assert _code(exc_info) == "INVALID_EMAIL_FORMAT"

    def test_missing(self):
        with pytest.raises(PanelValidationError) as exc_info:
            split_email(None)
        assert _code(exc_info) == "INVALID_EMAIL"


class TestMailRequest:
    def test_returns_local_part_and_domain(self):
        request = MailAccountRequest(email_address="info@example.com", password="pw")
        assert validate_mail_request(request) == ("info", "example.com")

    def test_password_required(self):
        request = MailAccountRequest(email_address="info@example.com")
        with pytest.raises(PanelValidationError) as exc_info:
            validate_mail_request(request)
        assert _code(exc_info) == "INVALID_PASSWORD"

    def test_domain_mismatch(self):
        request = MailAccountRequest(
            email_address="info@example.com", password="pw", domain="other.org"
        )
        with pytest.raises(PanelValidationError) as exc_info:
            validate_mail_request(request)
        assert _code(exc_info) == "INVALID_DOMAIN"

    def test_negative_quota(self):
        with pytest.raises(PanelValidationError):
            validate_quota(-5)


# ============================================================================
# Databases and ids
# ============================================================================


class TestDatabaseRequests:
    def test_database_name_returned(self):
        assert validate_database_request(DatabaseRequest(database_name="shop")) == "shop"

    def test_database_name_required(self):
        with pytest.raises(PanelValidationError) as exc_info:
            validate_database_request(DatabaseRequest())
        assert _code(exc_info) == "INVALID_DATABASE_NAME"

    def test_user_requires_password(self):
        with pytest.raises(PanelValidationError) as exc_info:
            validate_database_user_request(DatabaseUserRequest(username="u"))
        assert _code(exc_info) == "INVALID_PASSWORD"

    def test_account_id_required(self):
        with pytest.raises(PanelValidationError) as exc_info:
            require_account_id("")
        assert _code(exc_info) == "INVALID_ACCOUNT_ID"

    def test_account_id_returned_unchanged(self):
        assert require_account_id("exuser") == "exuser"
