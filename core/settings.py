from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_flag(value, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if value is None or value == "":
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


class ShiftpaySettings(BaseSettings):
    """Centralized application configuration pulled from environment/.env."""

    database_url: Optional[str] = Field(None, alias="DATABASE_URL")
    # Bounded pool shared by every request; ignored for SQLite
    db_pool_size: int = Field(3, alias="SHIFTPAY_DB_POOL_SIZE")
    auto_apply_ddl: bool = Field(True, alias="SHIFTPAY_AUTO_APPLY_DDL")
    enforce_alembic_migrations: bool = Field(False, alias="SHIFTPAY_ENFORCE_ALEMBIC")
    # Password given to new users and to users reset by an admin
    default_password: str = Field("Qwer4321", alias="SHIFTPAY_DEFAULT_PASSWORD")
    token_header: str = Field("P-Token", alias="SHIFTPAY_TOKEN_HEADER")
    assets_dir: str = Field("assets", alias="SHIFTPAY_ASSETS_DIR")
    app_version: str = Field("dev", alias="APP_VERSION")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def _strip_database_url(cls, value: str | None) -> Optional[str]:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("db_pool_size", mode="before")
    @classmethod
    def _parse_pool_size(cls, value) -> int:
        try:
            size = int(value)
        except (TypeError, ValueError):
            return 3
        return size if size > 0 else 3

    @field_validator("auto_apply_ddl", mode="before")
    @classmethod
    def _parse_auto_ddl(cls, value) -> bool:
        return _parse_flag(value, True)

    @field_validator("enforce_alembic_migrations", mode="before")
    @classmethod
    def _parse_enforce(cls, value) -> bool:
        return _parse_flag(value, False)

    @field_validator("default_password", mode="before")
    @classmethod
    def _normalize_default_password(cls, value: str | None) -> str:
        val = (value or "").strip()
        return val or "Qwer4321"

    @field_validator("token_header", mode="before")
    @classmethod
    def _normalize_token_header(cls, value: str | None) -> str:
        val = (value or "").strip()
        return val or "P-Token"


@lru_cache(maxsize=1)
def get_settings() -> ShiftpaySettings:
    return ShiftpaySettings()


def reset_settings_cache() -> None:
    """Testing helper to clear cached settings."""
    get_settings.cache_clear()
