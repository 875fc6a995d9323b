"""Typed settings configuration - single source of truth."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TENANTSCOPE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Storage
    storage_backend: Literal["memory", "sql"] = "memory"
    database_url: str | None = None

    # Auth
    api_tokens: dict[str, str] = {}
    allow_dev_tokens: bool = True

    # Identity validation
    tenant_id_pattern: str = r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$"

    # Logging
    log_level: str = "INFO"

    # Dev data
    seed_dev_data: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
