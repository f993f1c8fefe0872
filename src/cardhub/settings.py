"""
cardhub.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for server and client layers.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single settings object shared by the API, the services and the client session layer.
    """

    model_config = SettingsConfigDict(env_prefix="CARDHUB_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "cardhub-api"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Identity / claims tokens
    jwt_alg: str = "HS256"
    jwt_issuer: str = "cardhub-identity"
    jwt_audience: str = "cardhub-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    token_ttl_minutes: int = Field(default=60, ge=1, le=24 * 60)
    # Single-use password reset tokens; delivered by `on_password_reset_requested` hooks.
    password_reset_ttl_minutes: int = Field(default=30, ge=1, le=24 * 60)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./cardhub.db"

    # Profile role assigned to self-registered principals; None means "no role".
    default_profile_role: Literal["admin", "employee"] | None = None

    # Only enable behind a proxy that overwrites X-Forwarded-For.
    trust_forwarded_for: bool = False

    # Client session layer
    profile_fetch_timeout: float = Field(default=5.0, gt=0)
    locale: str = "en"

    activity_page_limit: int = Field(default=100, ge=1, le=500)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# The client session layer reads `profile_fetch_timeout` and `locale`; everything else
# is consumed by the API process.
