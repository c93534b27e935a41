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

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file and os.getenv("TESTING") != "true":
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_storage_settings() -> "StorageSettings":
    """Build storage settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return StorageSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_storage_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class StorageSettings(BaseSettings):
    """Backing store for timestamp logs and quota limits.

    Validation of backend-specific requirements happens in the factory.
    """

    backend: Literal["memory", "redis"] = Field(
        "memory",
        description="Storage backend: 'memory' (single process) or 'redis' (shared)",
    )
    redis_url: str | None = Field(
        None,
        description="Redis connection URL (required when backend is 'redis')",
    )
    redis_socket_timeout_seconds: float = Field(
        5.0,
        description="Socket timeout for Redis commands in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
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
        description="Where logs are written",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output is 'file' (default logs/app.log)",
    )
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    admin_api_key_required: bool = Field(
        True,
        description="Whether the quota admin API requires an X-API-Key",
    )
    admin_api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid admin API keys",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-token, per-endpoint rate limiting",
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Sliding window size in seconds (shared by all keys)",
        ge=1,
    )
    rate_limit_evaluator: Literal["retry_delay", "count"] = Field(
        "retry_delay",
        description="Window evaluation strategy",
    )
    rate_limit_cleanup: bool = Field(
        True,
        description="Prune stale timestamps before each evaluation",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers when throttling",
    )
    quota_namespace: str = Field(
        "user-limit",
        description="Key prefix for configured limits",
    )
    request_log_namespace: str = Field(
        "user-request",
        description="Key prefix for request timestamp logs",
    )
    seed_limits: str | None = Field(
        None,
        description="Comma-separated 'endpoint:identity:limit' triples written at startup",
    )
    simulate_delay_seconds: float = Field(
        1.0,
        description="Artificial processing delay of the simulated API endpoint",
        ge=0,
    )
    host: str = Field("0.0.0.0", description="Bind address for the uvicorn server")
    port: int = Field(3000, description="Bind port for the uvicorn server")

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    storage: StorageSettings = Field(default_factory=_build_storage_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
