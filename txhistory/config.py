"""
Configuration settings for transaction history ingestion and verification.

Uses Pydantic Settings to load environment variables for database connections,
logging, batching and the names of the legacy and shadow tables. Table identity
is configuration: the same code path writes and reads either table.
"""
from __future__ import annotations

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("txhistory", alias="DB_NAME")
    db_statement_timeout_ms: int = Field(0, alias="DB_STATEMENT_TIMEOUT_MS")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Ingestion / verification
    ingest_batch_size: int = Field(1_000, alias="INGEST_BATCH_SIZE", ge=0)
    verify_concurrency: int = Field(4, alias="VERIFY_CONCURRENCY", ge=1)

    # Tables
    legacy_transactions_table: str = Field(
        "history_transactions", alias="LEGACY_TRANSACTIONS_TABLE"
    )
    shadow_transactions_table: str = Field(
        "exp_history_transactions", alias="SHADOW_TRANSACTIONS_TABLE"
    )
    legacy_participants_table: str = Field(
        "history_transaction_participants", alias="LEGACY_PARTICIPANTS_TABLE"
    )
    shadow_participants_table: str = Field(
        "exp_history_transaction_participants", alias="SHADOW_PARTICIPANTS_TABLE"
    )
    accounts_table: str = Field("history_accounts", alias="ACCOUNTS_TABLE")
    ledgers_table: str = Field("history_ledgers", alias="LEDGERS_TABLE")

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
