"""
Configuration settings for the card transaction ledger.

Uses Pydantic Settings to load environment variables (and an optional .env
file) for the store backend, logging, and gateway defaults.
"""
from __future__ import annotations

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Transaction store
    store_backend: str = Field("json", alias="STORE_BACKEND")  # memory | json | sql
    store_path: str = Field("logs/all-transactions.json", alias="STORE_PATH")
    store_max_records: int = Field(1000, alias="STORE_MAX_RECORDS")
    database_url: str = Field("sqlite:///./transactions.db", alias="DATABASE_URL")

    # Gateway defaults
    default_currency: str = Field("USD", alias="DEFAULT_CURRENCY")
    reporting_lookback_days: int = Field(3, alias="REPORTING_LOOKBACK_DAYS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
