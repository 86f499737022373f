"""Service configuration via pydantic-settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables.

    All variables are prefixed with ``THROTTLE_`` (e.g. ``THROTTLE_RATE_LIMIT_LOCATION``).
    """

    # Rate limiting (requests per window, per client address)
    rate_limit_enabled: bool = True
    rate_limit_window_seconds: int = 60
    rate_limit_auth_send: int = 3
    rate_limit_admin_auth: int = 3
    rate_limit_location: int = 10
    rate_limit_events: int = 10
    rate_limit_community_events: int = 20
    rate_limit_create_event: int = 5

    # How often expired entries are reclaimed
    rate_limit_sweep_interval_seconds: float = 60.0

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_prefix="THROTTLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""
    return Settings()
