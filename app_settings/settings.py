"""
Pydantic Settings for the classification relay.

This module provides type-safe, validated configuration using Pydantic BaseSettings.
Environment variables are loaded once at startup; a local .env file is read
best-effort before the environment is parsed.

Usage:
    from app_settings import load_settings

    settings = load_settings()
    api_key = settings.require_api_key()  # raises ConfigError if unset
"""

import logging
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("classify-relay")


class ConfigError(Exception):
    """Raised when a required setting is missing. Fatal at startup."""


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Only GEMINI_API_KEY is required, and it is checked explicitly through
    require_api_key() so that tests can build settings without it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # =========================================================================
    # ENVIRONMENT
    # =========================================================================

    environment: Literal["local", "development", "production", "test"] = Field(
        default="local",
        description="Application environment",
    )

    # =========================================================================
    # CLASSIFICATION PROVIDER
    # =========================================================================

    gemini_api_key: Optional[str] = Field(
        default=None,
        description="Google Gemini API key",
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used for classification",
    )
    classify_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Deadline for a single upload + classification round trip",
    )
    delete_remote_files: bool = Field(
        default=True,
        description="Delete the uploaded image from the provider once answered",
    )
    default_mime_type: str = Field(
        default="image/jpeg",
        description="Media type declared when the client does not send an image/* type",
    )
    disconnect_poll_seconds: float = Field(
        default=0.5,
        gt=0,
        description="How often an in-flight classification checks whether the caller hung up",
    )

    # =========================================================================
    # UPLOADS
    # =========================================================================

    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Largest accepted upload in bytes",
    )
    scratch_dir: Optional[str] = Field(
        default=None,
        description="Directory for per-request scratch files (system temp dir if unset)",
    )

    # =========================================================================
    # API SETTINGS
    # =========================================================================

    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=5000,
        description="API server port",
    )

    # =========================================================================
    # LOGGING
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Application log level",
    )

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def resolved_scratch_dir(self) -> Path:
        """Get the directory scratch files are written to."""
        if self.scratch_dir:
            return Path(self.scratch_dir)
        return Path(tempfile.gettempdir())

    # =========================================================================
    # VALIDATION
    # =========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        return v.upper() if isinstance(v, str) else v

    def require_api_key(self) -> str:
        """
        Return the provider credential.

        Call this at startup to fail fast if misconfigured.

        Raises:
            ConfigError: If GEMINI_API_KEY is unset or blank
        """
        key = (self.gemini_api_key or "").strip()
        if not key:
            raise ConfigError("Environment variable GEMINI_API_KEY not set")
        return key


def load_settings(env_file: str | Path = ".env") -> Settings:
    """
    Load settings, reading a local .env file first if one exists.

    A missing .env file is not an error; the environment alone is enough.
    """
    if not load_dotenv(env_file):
        logger.warning(f"[CONFIG] No .env file loaded from {env_file}, using process environment")
    return Settings()


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return load_settings()
