"""
Configuration for the Expense Tracker API.

Loaded from environment variables (prefix ``EXPENSE_TRACKER_``) and an
optional ``.env`` file.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EXPENSE_TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Personal Expense Tracker API"

    database_url: str = Field(
        default="sqlite:///./expenses.db",
        description="SQLAlchemy database URL",
    )

    # Tokens
    secret_key: str = Field(
        default="change-me-in-production",
        description="HMAC key used to sign access tokens",
    )
    algorithm: str = "HS256"
    access_token_expire_days: int = Field(default=7, ge=1)

    min_password_length: int = Field(default=6, ge=1)

    cors_origins: List[str] = Field(
        default=["http://localhost:5173", "http://127.0.0.1:5173"],
    )

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    host: str = "127.0.0.1"
    port: int = 8000

    @field_validator("database_url")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        # Hosting providers hand out postgres://, SQLAlchemy wants postgresql://
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload after changing the environment.
    """
    return Settings()
