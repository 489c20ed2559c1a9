"""Application settings and logging configuration."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any, Literal

import structlog
from pydantic import AnyHttpUrl, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GOOGLE_PUBLIC_KEYS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)
ISSUER_PREFIX = "https://securetoken.google.com/"

_LOG_CONTEXT: dict[str, str] = {"environment": "development", "service": "tsumitan-api"}


class AppSettings(BaseModel):
    """Application identity and runtime settings."""

    environment: Literal["local", "development", "staging", "production"] = "production"
    service: str = "tsumitan-api"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class FirebaseSettings(BaseModel):
    """Identity provider project and public key retrieval settings."""

    project_id: str
    public_keys_url: AnyHttpUrl = AnyHttpUrl(GOOGLE_PUBLIC_KEYS_URL)
    fetch_timeout_seconds: float = Field(default=5.0, gt=0)
    cache_ttl_seconds: int | None = Field(
        default=None,
        ge=1,
        description="Fixed key cache lifetime. Unset means honour Cache-Control max-age.",
    )

    @field_validator("project_id")
    @classmethod
    def validate_project_id(cls, value: str) -> str:
        """Reject blank project identifiers; every token check depends on it."""
        stripped = value.strip()
        if not stripped:
            raise ValueError("firebase.project_id must not be blank.")
        return stripped


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = Field(description="Async SQLAlchemy URL using asyncpg driver.")

    @field_validator("url")
    @classmethod
    def validate_asyncpg_url(cls, value: str) -> str:
        """Ensure SQLAlchemy uses the asyncpg driver."""
        if not value.startswith("postgresql+asyncpg://"):
            raise ValueError("database.url must start with 'postgresql+asyncpg://'.")
        return value


_SETTINGS_CONFIG = SettingsConfigDict(
    env_nested_delimiter="__",
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
)


class Settings(BaseSettings):
    """Root application settings loaded from environment variables."""

    model_config = _SETTINGS_CONFIG

    app: AppSettings = AppSettings()
    firebase: FirebaseSettings
    database: DatabaseSettings


class KeyFetchSettings(BaseSettings):
    """Settings subset for operational commands that only talk to the identity provider."""

    model_config = _SETTINGS_CONFIG

    firebase: FirebaseSettings


def _standard_log_fields(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Inject required structured logging fields."""
    context_vars = structlog.contextvars.get_contextvars()
    event_dict.setdefault("correlation_id", str(context_vars.get("correlation_id", "unknown")))
    event_dict.setdefault("environment", _LOG_CONTEXT["environment"])
    event_dict.setdefault("service", _LOG_CONTEXT["service"])
    event_dict.setdefault("timestamp", datetime.now(UTC).isoformat())
    return event_dict


def configure_structlog(settings: Settings) -> None:
    """Configure structlog for JSON output with required fields."""
    _LOG_CONTEXT["environment"] = settings.app.environment
    _LOG_CONTEXT["service"] = settings.app.service

    log_level = getattr(logging, settings.app.log_level, logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _standard_log_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Load and cache application settings from environment variables."""
    return Settings()
