"""Application configuration via environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )

    # TikTok OAuth
    tiktok_client_key: str | None = Field(default=None, description="TikTok Client Key")
    tiktok_client_secret: str | None = Field(default=None, description="TikTok Client Secret")
    tiktok_redirect_uri: str = Field(
        default="http://localhost:8085/tiktok/callback",
        description="TikTok OAuth redirect URI",
    )
    tiktok_access_token: str | None = Field(
        default=None,
        description="Access token used by the CLI when --token is not given",
    )

    # TikTok API
    tiktok_api_base_url: str = Field(
        default="https://open.tiktokapis.com/v2/",
        description="Base URL of the TikTok v2 API",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for authenticated API calls",
    )
    upload_timeout_seconds: float = Field(
        default=600.0,
        description="Timeout for the media PUT (10 minutes)",
    )

    # Publishing
    publish_poll_interval_seconds: float = Field(
        default=5.0,
        description="Seconds between publish status checks",
    )
    publish_max_wait_seconds: float | None = Field(
        default=600.0,
        description="Maximum seconds to wait for a terminal publish status (None = unbounded)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


# Convenience alias
settings = get_settings()
