"""Tests for configuration validation."""
import os
import pytest
from unittest.mock import patch

from optionshouse.config import Settings, get_settings, reload_settings


class TestSettingsValidation:
    """Tests for Settings validation."""

    def test_default_values(self):
        """Test that default values are set correctly."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.optionshouse_base_url == "https://api.optionshouse.com"
        assert settings.request_timeout == 30.0
        assert settings.request_interval_seconds == 1.0
        assert settings.debug_msg_tracing is False
        assert settings.log_level == "INFO"
        assert settings.optionshouse_user == ""

    def test_timeout_must_be_positive(self):
        """Test that request_timeout must be > 0."""
        with pytest.raises(ValueError, match="must be > 0"):
            Settings(request_timeout=0)

        with pytest.raises(ValueError, match="must be > 0"):
            Settings(request_timeout=-1.5)

    def test_interval_may_be_zero(self):
        """Test that request pacing can be disabled but not negative."""
        assert Settings(request_interval_seconds=0).request_interval_seconds == 0

        with pytest.raises(ValueError, match="must be >= 0"):
            Settings(request_interval_seconds=-1)

    def test_base_url_must_be_http(self):
        """Test base URL scheme validation."""
        with pytest.raises(ValueError, match="http"):
            Settings(optionshouse_base_url="ftp://api.optionshouse.com")

    def test_base_url_trailing_slash_stripped(self):
        settings = Settings(optionshouse_base_url="https://api.optionshouse.com/")
        assert settings.optionshouse_base_url == "https://api.optionshouse.com"

    def test_log_level_normalized(self):
        """Test log level is upper-cased and checked."""
        assert Settings(log_level="debug").log_level == "DEBUG"

        with pytest.raises(ValueError, match="Invalid log_level"):
            Settings(log_level="chatty")

    def test_validate_credentials(self):
        """Test OptionsHouse credentials validation method."""
        settings = Settings(optionshouse_user="", optionshouse_password="")
        with pytest.raises(ValueError, match="OPTIONSHOUSE_USER"):
            settings.validate_credentials()

        settings = Settings(optionshouse_user="user", optionshouse_password="")
        with pytest.raises(ValueError, match="OPTIONSHOUSE_PASSWORD"):
            settings.validate_credentials()

        settings = Settings(optionshouse_user="user", optionshouse_password="secret")
        settings.validate_credentials()  # Should not raise


class TestSettingsFromEnvironment:
    """Tests for loading settings from environment variables."""

    def test_load_from_env(self):
        """Test that settings are loaded from environment."""
        env = {
            "OPTIONSHOUSE_USER": "ann",
            "OPTIONSHOUSE_PASSWORD": "secret",
            "OPTIONSHOUSE_ACCOUNT_ID": "12345",
            "REQUEST_TIMEOUT": "10",
            "DEBUG_MSG_TRACING": "true",
            "REQUEST_INTERVAL_SECONDS": "2.5",
        }

        with patch.dict(os.environ, env, clear=True):
            settings = Settings()

        assert settings.optionshouse_user == "ann"
        assert settings.optionshouse_password == "secret"
        assert settings.optionshouse_account_id == "12345"
        assert settings.request_timeout == 10.0
        assert settings.debug_msg_tracing is True
        assert settings.request_interval_seconds == 2.5

    def test_reload_settings(self):
        """Test that reload_settings picks up environment changes."""
        with patch.dict(os.environ, {"OPTIONSHOUSE_ACCOUNT_ID": "111"}):
            first = reload_settings()
            assert get_settings() is first
            assert first.optionshouse_account_id == "111"

        with patch.dict(os.environ, {"OPTIONSHOUSE_ACCOUNT_ID": "222"}):
            second = reload_settings()

        assert second is not first
        assert second.optionshouse_account_id == "222"
