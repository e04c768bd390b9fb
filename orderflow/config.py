"""
Settings — environment-driven configuration.

Every knob can be set with an ORDERFLOW_ prefixed environment variable
(ORDERFLOW_QUOTE_TTL_SECONDS=900) or a .env file.
"""

from datetime import timedelta
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ORDERFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        "sqlite+aiosqlite:///orderflow.db",
        description="SQLAlchemy async URL for quotes and the transaction ledger",
    )
    database_echo: bool = Field(False, description="Log SQL statements")

    # Shipping quotes
    quote_ttl_seconds: int = Field(1800, gt=0, description="Lifetime of a persisted quote")
    carrier_timeout_seconds: float = Field(5.0, gt=0, description="Per-call carrier timeout")
    carrier_retry_times: int = Field(2, ge=1, description="Attempts per carrier, including the first")
    carrier_retry_delay_seconds: float = Field(0.1, ge=0, description="Delay between carrier attempts")

    # Tax
    tax_mandatory: bool = Field(
        False,
        description="Reject carts with no applicable tax rule instead of charging zero tax",
    )

    # Ledger
    ledger_retry_times: int = Field(3, ge=1, description="Attempts when a ledger write loses a race")

    # Logging
    log_level: str = Field("INFO", description="structlog filtering level")
    log_json: bool = Field(True, description="Render log lines as JSON")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def quote_ttl(self) -> timedelta:
        return timedelta(seconds=self.quote_ttl_seconds)


@lru_cache
def get_settings() -> Settings:
    """Cached settings, environment is read once per process."""
    return Settings()


__all__ = ("Settings", "get_settings")
