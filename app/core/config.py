# app/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Supabase env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - SUPABASE_JWT_SECRET (JWT signing secret, used by the HTTP surface)

    Optional:
      - SUPABASE_SERVICE_ROLE_KEY (server-side client, bypasses RLS)

    When SUPABASE_URL / SUPABASE_KEY are missing (or still point at the
    placeholder project) the whole app runs in demo mode: reads return
    fixed sample data and every mutation is disabled.
    """

    PROJECT_NAME: str = "Inspiration Wall"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Supabase config
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # JWT verification (HTTP surface)
    SUPABASE_JWT_SECRET: str | None = None
    SUPABASE_JWT_ALG: str = "HS256"

    # Where the confirmation email sends users back to
    SITE_URL: str = "http://localhost:3000"

    # Storage
    IMAGE_BUCKET: str = "inspiration-images"
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024

    # Content loading
    LOAD_TIMEOUT_SECONDS: float = 10.0
    PUBLIC_FEED_LIMIT: int = 20

    # Visibility watchdog
    VISIBILITY_POLICY: Literal["freshness", "hidden_duration"] = "freshness"
    VISIBILITY_DEBOUNCE_SECONDS: float = 1.0
    VISIBILITY_SETTLE_SECONDS: float = 1.0
    FRESHNESS_WINDOW_SECONDS: float = 5 * 60
    HIDDEN_RELOAD_THRESHOLD_SECONDS: float = 2.0

    # Session tracker
    RELOAD_ON_SPURIOUS_SIGN_IN: bool = True

    # Writes
    MUTATION_MAX_ATTEMPTS: int = 3
    RETRY_BASE_DELAY_SECONDS: float = 0.5
    RETRY_MAX_DELAY_SECONDS: float = 4.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_supabase_configured(self) -> bool:
        """True only for real credentials (not unset, not the placeholder project)."""
        if not self.SUPABASE_URL or not self.SUPABASE_KEY:
            return False
        return "placeholder" not in self.SUPABASE_URL

    @property
    def backend_key(self) -> str | None:
        """Service role key when present, anon key otherwise."""
        return self.SUPABASE_SERVICE_ROLE_KEY or self.SUPABASE_KEY


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
