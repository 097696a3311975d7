from __future__ import annotations

from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings with validation.

    All settings are loaded from environment variables (or ``.env``).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OptionsHouse credentials
    optionshouse_user: str = ""
    optionshouse_password: str = ""
    optionshouse_account_id: str = ""
    optionshouse_base_url: str = "https://api.optionshouse.com"

    # Transport
    request_timeout: float = 30.0
    debug_msg_tracing: bool = False

    # Vendor asks for one request per second; applied by the caller
    request_interval_seconds: float = 1.0

    log_level: str = "INFO"

    @field_validator("request_timeout")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"request_timeout must be > 0, got {v}")
        return v

    @field_validator("request_interval_seconds")
    @classmethod
    def interval_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"request_interval_seconds must be >= 0, got {v}")
        return v

    @field_validator("optionshouse_base_url")
    @classmethod
    def base_url_https(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"optionshouse_base_url must be an http(s) URL, got {v}")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def log_level_known(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log_level: {v}")
        return level

    def validate_credentials(self) -> None:
        """Raise if OptionsHouse credentials are missing."""
        if not self.optionshouse_user or not self.optionshouse_password:
            raise ValueError(
                "OPTIONSHOUSE_USER and OPTIONSHOUSE_PASSWORD must be set"
            )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings
