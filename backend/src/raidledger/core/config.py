"""Configuration management for the Raid Ledger backend.

Uses Pydantic Settings for type-safe, environment-based configuration.
"""

import json
import zoneinfo
from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Load environment variables from .env file
load_dotenv(override=True)


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # App configuration
    app_name: str = Field("Raid Ledger", alias="RAIDLEDGER_APP_NAME")
    debug: bool = Field(False, alias="RAIDLEDGER_DEBUG")
    version: str = Field("0.0.0-dev", alias="RAIDLEDGER_APP_VERSION")
    environment: str = Field("development", alias="RAIDLEDGER_ENVIRONMENT")

    # API configuration. Admin routes are mounted under this prefix; empty keeps them at /admin/...
    api_prefix: str = Field("", alias="RAIDLEDGER_API_PREFIX")
    api_host: str = Field("127.0.0.1", alias="RAIDLEDGER_API_HOST")
    api_port: int = Field(3000, alias="RAIDLEDGER_API_PORT")
    allowed_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"], alias="RAIDLEDGER_ALLOWED_ORIGINS")

    # Database configuration
    database_url: str = Field(alias="RAIDLEDGER_DATABASE_URL")
    database_pool_size: int = 10
    database_max_overflow: int = 20
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600

    # JWT configuration (tokens are minted by the auth subsystem; we only verify them)
    jwt_secret_key: str | None = Field(None, alias="JWT_SECRET_KEY")
    jwt_access_token_expire_minutes: int = Field(60, alias="JWT_ACCESS_TOKEN_EXPIRE_MINUTES")
    # Tier 0 access: "Authorization: ApiKey <key>" is treated as an administrator
    api_key: str | None = Field(None, alias="RAIDLEDGER_API_KEY")

    # Logging configuration
    log_level: str = Field("INFO", alias="RAIDLEDGER_LOG_LEVEL")
    log_format: str = Field("text", alias="RAIDLEDGER_LOG_FORMAT")  # text or json
    log_dir: str | None = Field(None, alias="RAIDLEDGER_LOG_DIR")

    # Plugin host configuration
    plugin_modules: Annotated[list[str], NoDecode] = Field(default_factory=list, alias="RAIDLEDGER_PLUGIN_MODULES")
    plugin_entry_point_group: str = Field("raidledger.plugins", alias="RAIDLEDGER_PLUGIN_ENTRY_POINT_GROUP")
    scheduler_enabled: bool = Field(True, alias="RAIDLEDGER_SCHEDULER_ENABLED")
    scheduler_timezone: str = Field("UTC", alias="RAIDLEDGER_SCHEDULER_TIMEZONE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @staticmethod
    def _repo_root_from_this_file() -> Path:
        # <repo>/backend/src/raidledger/core/config.py
        return Path(__file__).resolve().parents[4]

    @field_validator("log_dir")
    @classmethod
    def _resolve_log_dir(cls, v: str | None) -> str | None:
        if not v:
            return None
        p = Path(v)
        if p.is_absolute():
            return str(p)
        return str((cls._repo_root_from_this_file() / p).resolve())

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only async drivers are usable by the session factory."""
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError("Database URL must use an async driver (postgresql+asyncpg:// or sqlite+aiosqlite://)")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in ("text", "json"):
            raise ValueError("Log format must be 'text' or 'json'")
        return v.lower()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid = ["development", "staging", "production", "test"]
        if v.lower() not in valid:
            raise ValueError(f"Environment must be one of {valid}")
        return v.lower()

    @field_validator("scheduler_timezone")
    @classmethod
    def validate_scheduler_timezone(cls, v: str) -> str:
        try:
            zoneinfo.ZoneInfo(v)
        except Exception:
            raise ValueError(f"Invalid scheduler timezone: {v}")
        return v

    @field_validator("plugin_modules", "allowed_origins", mode="before")
    @classmethod
    def validate_str_list(cls, v: str | list) -> list:
        """Accept a JSON list or a comma-separated string from the environment."""
        if isinstance(v, str):
            raw = v.strip()
            if not raw:
                return []
            if raw.startswith("["):
                return [str(item).strip() for item in json.loads(raw) if str(item).strip()]
            return [item.strip() for item in raw.split(",") if item.strip()]
        return v


def get_settings() -> Settings:
    """Build a fresh settings instance from the environment."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance - created when first accessed
settings = None


def get_settings_instance() -> Settings:
    """Get the global settings instance, creating it if necessary."""
    global settings  # noqa: PLW0603
    if settings is None:
        settings = get_settings()
    return settings
