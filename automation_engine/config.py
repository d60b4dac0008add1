"""
Configuration for the Automation Engine service
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Automation Engine configuration settings
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTOMATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core Service Configuration
    service_name: str = Field(default="automation-engine", description="Service name")
    version: str = Field(default="1.0.0", description="Service version")
    host: str = Field(default="0.0.0.0", description="Service host")
    port: int = Field(default=8010, description="Service port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    # Execution limits
    http_timeout_seconds: float = Field(default=30.0, description="Per-request upstream timeout")
    max_run_seconds: float = Field(
        default=300.0, description="Wall-clock budget for one run (0 disables the limit)"
    )
    rate_limit: str = Field(default="100/minute", description="Per-workflow trigger rate limit")
    preserve_placeholder_types: bool = Field(
        default=False,
        description="Keep the raw value when a config field is exactly one placeholder",
    )

    # Provider endpoints
    openai_base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI API")
    resend_base_url: str = Field(default="https://api.resend.com", description="Resend API")
    google_token_url: str = Field(
        default="https://oauth2.googleapis.com/token", description="Google OAuth token endpoint"
    )

    # Host-side credentials
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    resend_api_key: Optional[str] = Field(default=None, description="Resend API key")
    resend_from_email: Optional[str] = Field(default=None, description="Default sender address")
    google_service_account_json: Optional[str] = Field(
        default=None, description="Google service account key (JSON document)"
    )


@lru_cache()
def get_settings() -> Settings:
    """Get settings instance (cached)"""
    return Settings()


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings"]
