"""Application configuration using pydantic-settings."""
from enum import StrEnum
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncStrategy(StrEnum):
    """How the bookmark feed keeps itself in step with the backend."""

    PUSH = "push"
    POLL = "poll"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Supabase - shared with frontend tooling (NEXT_PUBLIC_ prefix accepted)
    supabase_url: str = Field(
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
    )
    supabase_anon_key: str = Field(
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"),
    )

    # OAuth
    oauth_provider: str = Field(default="google", validation_alias="OAUTH_PROVIDER")
    # Overrides the request origin when building the OAuth redirect target
    site_url: str | None = Field(default=None, validation_alias="SITE_URL")

    # Bookmark feed synchronization
    sync_strategy: SyncStrategy = Field(
        default=SyncStrategy.PUSH, validation_alias="SYNC_STRATEGY",
    )
    poll_interval_seconds: float = Field(
        default=3.0, gt=0, validation_alias="POLL_INTERVAL_SECONDS",
    )
    reconcile_interval_seconds: float = Field(
        default=30.0, gt=0, validation_alias="RECONCILE_INTERVAL_SECONDS",
    )
    reconnect_base_delay_seconds: float = Field(
        default=1.0, gt=0, validation_alias="RECONNECT_BASE_DELAY_SECONDS",
    )
    reconnect_max_delay_seconds: float = Field(
        default=30.0, gt=0, validation_alias="RECONNECT_MAX_DELAY_SECONDS",
    )
    stream_keepalive_seconds: float = Field(
        default=15.0, gt=0, validation_alias="STREAM_KEEPALIVE_SECONDS",
    )

    # Pause after a successful insert so the change event can reach open feeds
    submit_settle_delay_seconds: float = Field(
        default=0.1, ge=0, validation_alias="SUBMIT_SETTLE_DELAY_SECONDS",
    )

    # Session cookies
    cookie_secure: bool = Field(default=True, validation_alias="COOKIE_SECURE")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def supabase_auth_health_url(self) -> str:
        """Get the Supabase auth health endpoint used by the health check."""
        return f"{self.supabase_url.rstrip('/')}/auth/v1/health"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
