"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    genius_api_token: str | None = Field(None, description="Genius API bearer token")

    # Genius Client Configuration
    genius_api_base_url: str = Field(
        default="https://api.genius.com", description="Base URL of the Genius API"
    )
    genius_timeout: float = Field(
        default=10.0, description="Request timeout in seconds for Genius API calls"
    )
    genius_connect_timeout: float = Field(
        default=5.0, description="Connection-open timeout in seconds for Genius API calls"
    )
    genius_max_retries: int = Field(
        default=3, description="Max retry attempts on connection failures and timeouts"
    )
    genius_retry_interval: float = Field(
        default=0.5, description="Base delay in seconds before the first retry"
    )
    genius_backoff_factor: float = Field(
        default=2.0, description="Multiplier applied to the retry delay after each attempt"
    )

    # Genius Rate Limiting Configuration
    genius_rate_limit: int = Field(
        default=300, description="Max Genius API requests per minute"
    )
    genius_max_concurrent: int = Field(
        default=10, description="Max concurrent Genius API requests"
    )

    # Cache Configuration
    cache_version: str = Field(
        default="v1", description="Cache format version token (bump to invalidate entries)"
    )
    mapping_cache_ttl: int = Field(
        default=86400, description="TTL in seconds for name-to-id mappings (default: 24 hours)"
    )
    page_cache_ttl: int = Field(
        default=3600, description="TTL in seconds for cached song pages (default: 1 hour)"
    )
    cache_maxsize: int = Field(
        default=1000, description="Maximum entries in the in-memory cache store"
    )
    database_url_cache: str | None = Field(
        None,
        description="PostgreSQL connection URL for the shared cache store",
    )

    # Inbound Rate Limiting Configuration
    enable_rate_limiting: bool = Field(default=True, description="Enable per-IP throttling")
    api_rate_limit: int = Field(
        default=60, description="Max API requests per minute per client IP"
    )
    search_rate_limit: int = Field(
        default=10, description="Max song searches per minute per client IP"
    )

    # Application Configuration
    host: str = Field(default="0.0.0.0", description="Host to bind the server to")
    port: int = Field(default=8000, description="Port to run the server on")
    log_level: str = Field(default="INFO", description="Logging level")

    # Feature Flags
    enable_telemetry: bool = Field(default=True, description="Enable PostHog telemetry")

    # PostHog Configuration
    posthog_api_key: str | None = Field(None, description="PostHog API key for telemetry")
    posthog_host: str = Field(default="https://us.i.posthog.com", description="PostHog host URL")

    # Sentry Configuration
    sentry_dsn: str | None = Field(None, description="Sentry DSN for error tracking")

    # Application Metadata
    app_name: str = Field(default="Artist-Song-Lookup", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
