"""
Configuration settings for Weather Proxy.

This module provides type-safe configuration management using Pydantic.
Settings are loaded from environment variables and .env file.

Usage:
    from config.settings import get_settings

    settings = get_settings()
    print(settings.cache_ttl)
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Get the project root directory (parent of config/)
PROJECT_ROOT = Path(__file__).parent.parent


class Settings(BaseSettings):
    """
    Application settings with validation.

    Settings are loaded from environment variables, with fallback to .env file.
    Only presence is checked for the upstream credentials; they are used
    verbatim.
    """

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Upstream API
    # ==========================================================================
    weatherapi_key: str = Field(
        default="",
        description="API key for the upstream weather provider"
    )

    weatherapi_base_url: str = Field(
        default="https://api.weatherapi.com/v1",
        description="Base URL of the upstream weather provider"
    )

    request_timeout: int = Field(
        default=10,
        ge=1,
        le=120,
        description="Upstream request timeout in seconds"
    )

    # ==========================================================================
    # Cache
    # ==========================================================================
    cache_ttl: int = Field(
        default=600,
        ge=1,
        description="Seconds a cached lookup stays valid"
    )

    max_cache_entries: int = Field(
        default=100,
        ge=1,
        description="Maximum number of cached lookups"
    )

    # ==========================================================================
    # Rate Limiting
    # ==========================================================================
    rate_limit_max_requests: int = Field(
        default=100,
        ge=1,
        description="Maximum upstream requests per window"
    )

    rate_limit_window_seconds: int = Field(
        default=900,
        ge=1,
        description="Rate limit window length in seconds (15 minutes)"
    )

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = Field(
        default="INFO",
        description="Root log level for the command line front end"
    )

    # ==========================================================================
    # Validators
    # ==========================================================================
    @field_validator("weatherapi_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require a base URL and strip trailing slashes."""
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("WEATHERAPI_BASE_URL must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        valid_levels = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v_upper

    # ==========================================================================
    # Properties
    # ==========================================================================
    @property
    def has_api_key(self) -> bool:
        """Check if a valid API key is configured."""
        return bool(self.weatherapi_key and self.weatherapi_key != "your_api_key_here")

    # ==========================================================================
    # Methods
    # ==========================================================================
    def get_api_key(self) -> str:
        """
        Get the API key, raising an error if not configured.

        Raises:
            ValueError: If API key is not configured
        """
        if not self.has_api_key:
            raise ValueError(
                "Weather API key not configured!\n"
                "Please set WEATHERAPI_KEY in your .env file."
            )
        return self.weatherapi_key


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance (cached for performance)

    Note:
        Uses lru_cache to avoid re-reading .env file on every call.
        Call get_settings.cache_clear() to reload settings if needed.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Force reload settings from environment.

    Returns:
        Fresh Settings instance
    """
    get_settings.cache_clear()
    return get_settings()
