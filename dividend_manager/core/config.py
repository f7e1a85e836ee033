"""Configuration management for the dividend manager."""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = Field(default="Dividend Manager")
    version: str = Field(default="0.1.0")
    docs_url: str | None = Field(default="/docs")
    redoc_url: str | None = Field(default="/redoc")
    openapi_url: str = Field(default="/openapi.json")

    database_url: str = Field(default="sqlite+pysqlite:///./dividends.db")

    ledger_gateway_url: str = Field(default="http://localhost:8545/ledger")
    balance_oracle_url: str = Field(default="http://localhost:8545/oracle")
    collaborator_timeout_seconds: float = Field(default=30.0)

    issuer_address: str = Field(default="0x0000000000000000000000000000000000000000")
    token_symbol: str = Field(default="DEMO")
    default_currency: str = Field(default="PRIMARY_TOKEN")
    attach_module_if_missing: bool = Field(default=False)

    gas_price: int | None = Field(default=None)
    gas_multiplier: float = Field(default=1.2)

    maturity_grace_seconds: int | None = Field(default=300)
    default_expiry_window_seconds: int = Field(default=600)

    enable_metrics: bool = Field(default=True)
    log_level: str | None = Field(default=None)
    logging_config: str | None = Field(default=None)

    model_config = SettingsConfigDict(
        env_prefix="DIVIDENDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]
