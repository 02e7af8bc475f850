"""Process settings for a docrelay actor.

Only the gateway entry point reads these; the core components receive
their collaborators by injection and never consult settings directly.

Environment variables use the ``DOCRELAY_`` prefix, e.g.
``DOCRELAY_ENDPOINT=https://forms.example.com``.
"""

import re
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# URL pattern for HTTP/HTTPS endpoints
_URL_PATTERN = re.compile(r'^https?://[^\s/$.?#].[^\s]*$', re.IGNORECASE)


class Settings(BaseSettings):
    """Actor settings."""

    # =========================================================================
    # IDENTITY
    # =========================================================================
    # Base URL other actors use to reach this one; subscribe() derives
    # webhooks from it as {endpoint}/{schemaType}
    endpoint: str = "http://localhost:8000"

    # =========================================================================
    # API CONFIGURATION
    # =========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8000, ge=1, le=65535)
    api_reload: bool = False

    # =========================================================================
    # DELIVERY
    # =========================================================================
    delivery_timeout_seconds: float = Field(default=30.0, gt=0, le=600)
    delivery_history_size: int = Field(default=100, ge=0, le=10000)

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================
    allow_command_subscriptions: bool = False
    subscription_ttl_seconds: Optional[float] = Field(default=None, gt=0)

    # =========================================================================
    # LOGGING
    # =========================================================================
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator('endpoint', mode='after')
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        """Validate that the endpoint is an HTTP/HTTPS URL."""
        if not _URL_PATTERN.match(v):
            raise ValueError(f"Invalid URL format: {v}. Must be http:// or https://")
        return v.rstrip("/")

    model_config = SettingsConfigDict(
        env_prefix="DOCRELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# =============================================================================
# GLOBAL SETTINGS (Lazy Initialization)
# =============================================================================

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance, creating it lazily.

    Prefer dependency injection over this global getter for testability.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings_instance: Settings) -> None:
    """Set the global settings instance (bootstrap and tests)."""
    global _settings
    _settings = settings_instance


def reset_settings() -> None:
    """Reset the global settings instance.

    Forces re-creation on next get_settings() call.
    """
    global _settings
    _settings = None
