"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file and not os.getenv("TESTING"):
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_limiter_settings() -> "LimiterSettings":
    """Build limiter settings from environment.

    Static type checkers treat BaseSettings fields as constructor arguments,
    which is not how BaseSettings is intended to be used.
    """

    return LimiterSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class LimiterSettings(BaseSettings):
    """Attempt limiter thresholds, backoff schedule and storage backend."""

    max_attempts: int = Field(
        5,
        description="Attempt count at which blocking begins",
        ge=1,
    )
    warning_threshold: int = Field(
        4,
        description="Attempt count at which callers display a pre-block warning",
        ge=1,
    )
    start_tracking_after: int = Field(
        3,
        description="Floor applied to the first recorded failure",
        ge=0,
    )
    wait_times_minutes: list[int] = Field(
        default_factory=lambda: [1, 2, 5, 10, 30],
        description="Escalating block durations in minutes, indexed by attempts past max_attempts",
    )
    expiry_hours: int = Field(
        24,
        description="Idle period after which a record is discarded",
        ge=1,
    )
    key_prefix: str = Field(
        "attempt_limiter_",
        description="Namespace prepended to the action type when persisting records",
    )
    serialize_per_key: bool = Field(
        True,
        description="Serialize read-modify-write cycles per action type within the process",
    )
    store_backend: Literal["memory", "file"] = Field(
        "file",
        description="Persistence backend for attempt records",
    )
    store_path: str = Field(
        "data/attempts",
        description="Directory used by the file store",
    )
    locale: Literal["en", "fr"] = Field(
        "en",
        description="Language used for remaining-time messages",
    )
    record_policy: Literal["gated", "all"] = Field(
        "gated",
        description=(
            "'gated' records a failure only once the live count reached start_tracking_after; "
            "'all' records every failure"
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="LIMITER_",
        case_sensitive=False,
    )

    @field_validator("wait_times_minutes")
    @classmethod
    def _check_wait_times(cls, value: list[int]) -> list[int]:
        if not value:
            raise ValueError("wait_times_minutes must not be empty")
        if any(minutes < 1 for minutes in value):
            raise ValueError("wait_times_minutes entries must be >= 1")
        return value

    @model_validator(mode="after")
    def _check_thresholds(self) -> "LimiterSettings":
        if self.start_tracking_after >= self.max_attempts:
            raise ValueError("start_tracking_after must be lower than max_attempts")
        if self.warning_threshold > self.max_attempts:
            raise ValueError("warning_threshold must not exceed max_attempts")
        return self


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )
    include_retry_headers: bool = Field(
        True,
        description="Include Retry-After and X-Attempts-* headers when an action is blocked",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log line format",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where log lines are written",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (default logs/app.log)",
    )
    max_bytes: int = Field(
        0,
        description="Rotate the log file at this size; 0 disables rotation",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
        ge=0,
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are inconsistent.
    """

    app_env: str = APP_ENV
    limiter: LimiterSettings = Field(default_factory=_build_limiter_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
