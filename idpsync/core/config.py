"""Application configuration using Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="IDP_",
        extra="ignore",
    )

    environment: Literal["local", "test", "staging", "production"] = Field(default="local")
    service_name: str = Field(default="idp-message-sync")
    database_url: str = Field(default="sqlite:///./data/idpsync.db")
    sql_echo: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)

    gateway_timeout_seconds: float = Field(default=30.0)
    max_poll_pages: int = Field(default=10, ge=1)
    default_lookback_hours: int = Field(default=48, ge=1)

    max_api_call_logs: int = Field(default=1000)
    api_call_log_ttl_days: int = Field(default=7)
    message_ttl_days: int = Field(default=90)

    event_topic_arn: str | None = Field(default=None)
    event_source: str = Field(default="idp_message_sync")
    aws_region: str = Field(default="us-east-1")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("event_topic_arn", mode="before")
    @classmethod
    def empty_string_to_none(cls, value: str | None) -> str | None:
        if value == "":
            return None
        return value

    @field_validator("max_api_call_logs", mode="before")
    @classmethod
    def ensure_retention_floor(cls, value: int | str | None) -> int:
        # Retention never trims below ten rows; the watermark lives in the newest ones.
        if value in (None, ""):
            return 1000
        return max(int(value), 10)


@lru_cache
def get_settings() -> AppSettings:
    """Return cached application settings instance."""

    return AppSettings()
