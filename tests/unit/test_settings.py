"""
Unit tests for hostpanel.settings - Centralized Configuration

Tests default values, environment variable overrides, nested provider
sections, .env file loading, panel_config(), build_retry_policy() and
clear_settings_cache().
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from hostpanel.panels.config import CpanelConfig, ISPConfigConfig
from hostpanel.panels.errors import PanelConfigError
from hostpanel.panels.transport import NoRetry, RetryOnNetworkError
from hostpanel.settings import HostPanelSettings, clear_settings_cache, get_settings


@pytest.fixture(autouse=True)
def _clean_env():
    """Clear the settings cache so tests are isolated."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# ============================================================================
# Default Values
# ============================================================================


class TestDefaults:
    def test_default_env(self):
        settings = HostPanelSettings(_env_file=None)
        assert settings.env == "development"
        assert settings.log_level == "INFO"

    def test_no_provider_by_default(self):
        settings = HostPanelSettings(_env_file=None)
        assert settings.provider is None
        assert settings.configured_providers() == []

    def test_single_attempt_by_default(self):
        settings = HostPanelSettings(_env_file=None)
        assert settings.max_attempts == 1
        assert isinstance(settings.build_retry_policy(), NoRetry)


# ============================================================================
# Environment Variable Overrides
# ============================================================================


class TestEnvOverrides:
    def test_prefix_overrides(self):
        env = {
            "HOSTPANEL_ENV": "production",
            "HOSTPANEL_LOG_LEVEL": "DEBUG",
            "HOSTPANEL_PROVIDER": "plesk",
            "HOSTPANEL_MAX_ATTEMPTS": "3",
        }
        with patch.dict(os.environ, env, clear=False):
            settings = HostPanelSettings(_env_file=None)
            assert settings.env == "production"
            assert settings.log_level == "DEBUG"
            assert settings.provider == "plesk"
            assert settings.max_attempts == 3

    def test_nested_provider_section(self):
        env = {
            "HOSTPANEL_CPANEL__API_URL": "whm.example.com",
            "HOSTPANEL_CPANEL__API_TOKEN": "TOKEN",
            "HOSTPANEL_CPANEL__PORT": "2087",
            "HOSTPANEL_CPANEL__VERIFY_SSL": "false",
        }
        with patch.dict(os.environ, env, clear=False):
            settings = HostPanelSettings(_env_file=None)

        assert isinstance(settings.cpanel, CpanelConfig)
        assert settings.cpanel.api_url == "whm.example.com"
        assert settings.cpanel.api_token == "TOKEN"
        assert settings.cpanel.port == 2087
        assert settings.cpanel.verify_ssl is False
        assert settings.cpanel.username == "root"

    def test_unrelated_sections_stay_empty(self):
        with patch.dict(os.environ, {"HOSTPANEL_PLESK__API_URL": "plesk.example.com"}, clear=False):
            settings = HostPanelSettings(_env_file=None)
            assert settings.configured_providers() == ["plesk"]
            assert settings.cpanel is None


# ============================================================================
# .env File Loading
# ============================================================================


class TestDotenvLoading:
    def test_loads_from_env_file(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "HOSTPANEL_PROVIDER=ispconfig\n"
            "HOSTPANEL_ISPCONFIG__API_URL=https://panel.example.com\n"
            "HOSTPANEL_ISPCONFIG__USERNAME=remote\n"
            "HOSTPANEL_ISPCONFIG__PASSWORD=secret\n"
        )

        settings = HostPanelSettings(_env_file=str(env_file))
        config = settings.panel_config(settings.provider)
        assert isinstance(config, ISPConfigConfig)
        assert config.username == "remote"
        assert config.password == "secret"

    def test_env_vars_override_env_file(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text("HOSTPANEL_ENV=staging\n")

        with patch.dict(os.environ, {"HOSTPANEL_ENV": "production"}, clear=False):
            settings = HostPanelSettings(_env_file=str(env_file))
            assert settings.env == "production"


# ============================================================================
# panel_config()
# ============================================================================


class TestPanelConfig:
    def test_returns_section(self):
        config = CpanelConfig(api_url="whm.example.com", api_token="TOKEN")
        settings = HostPanelSettings(_env_file=None, cpanel=config)
        assert settings.panel_config("CPanel") is config

    def test_unconfigured_section(self):
        settings = HostPanelSettings(_env_file=None)
        with pytest.raises(PanelConfigError, match="HOSTPANEL_DIRECTADMIN__API_URL"):
            settings.panel_config("directadmin")

    def test_unknown_section(self):
        settings = HostPanelSettings(_env_file=None)
        with pytest.raises(PanelConfigError, match="No configuration section"):
            settings.panel_config("hestia")


# ============================================================================
# build_retry_policy()
# ============================================================================


class TestBuildRetryPolicy:
    def test_retries_network_errors_when_enabled(self):
        settings = HostPanelSettings(_env_file=None, max_attempts=4, retry_backoff_seconds=0.1)
        policy = settings.build_retry_policy()
        assert isinstance(policy, RetryOnNetworkError)
        assert policy.max_attempts == 4

    def test_zero_attempts_means_no_retry(self):
        settings = HostPanelSettings(_env_file=None, max_attempts=0)
        assert isinstance(settings.build_retry_policy(), NoRetry)


# ============================================================================
# Singleton
# ============================================================================


class TestSingleton:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_clear_settings_cache(self):
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first
