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

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

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


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file and not os.getenv("TESTING"):
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_throttle_settings() -> "ThrottleSettings":
    """Build throttle settings from environment."""

    return ThrottleSettings()


def _build_log_settings() -> "LogSettings":
    return LogSettings()


class ThrottleSettings(BaseSettings):
    """Rate limiting configuration.

    These are constructor-time values: the decider is built once from them
    and never reconfigured while serving.
    """

    requests_per_hour: int = Field(
        60,
        description="Maximum number of admitted requests per identity per hour",
        ge=1,
    )
    cache: Literal["memory", "redis"] = Field(
        "memory",
        description="Counter store backend selector",
    )
    auth: bool = Field(
        True,
        description="Require an identity; requests without one get 400 Bad Request",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Connection URL used when cache=redis",
    )
    redis_socket_timeout_seconds: float = Field(
        0.5,
        description="Socket timeout for Redis calls; expiry surfaces as store unavailability",
        gt=0,
    )
    key_prefix: str = Field(
        "throttle:",
        description="Namespace prepended to keys in shared stores",
    )
    key_ttl_seconds: int | None = Field(
        7200,
        description="Natural expiry for counters; None keeps them until evicted",
        ge=1,
    )
    include_headers: bool = Field(
        False,
        description="Include X-RateLimit-Limit/Remaining headers on throttled responses",
    )
    exempt_paths: list[str] = Field(
        default_factory=lambda: ["/health"],
        description="Paths that bypass throttling entirely",
    )

    model_config = SettingsConfigDict(
        env_prefix="THROTTLE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
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
    Raises validation errors on startup if a setting is invalid.
    """

    app_env: str = APP_ENV
    throttle: ThrottleSettings = Field(default_factory=_build_throttle_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
