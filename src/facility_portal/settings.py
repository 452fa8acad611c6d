"""
facility_portal.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., the backend API key).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FACILITY_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "facility-portal"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Hosted backend (REST query API + auth API under one base url)
    backend_url: str = "http://localhost:54321"
    backend_anon_key: str = Field(default="dev-anon-key-change-me", repr=False)
    backend_timeout_seconds: float = 10.0

    # Browser sessions
    session_cookie_name: str = "facility_sid"
    session_resolve_timeout: float = 5.0
    session_idle_seconds: float = Field(default=1800.0, gt=0)

    # Request cache
    query_stale_seconds: float = 30.0
    query_retries: int = Field(default=3, ge=0)
    query_retry_base_delay: float = 1.0
    query_retry_max_delay: float = 30.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Tests construct `Settings(...)` directly and pass it to `create_app`; only the
# process entrypoint goes through `get_settings()`.
