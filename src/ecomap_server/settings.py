"""
ecomap_server.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (JWT signing key).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration, one object injected across layers.
    Defaults target local development.
    """

    model_config = SettingsConfigDict(env_prefix="ECOMAP_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "ecomap-server"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "ecomap-server"
    jwt_audience: str = "ecomap-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    jwt_ttl_hours: int = Field(default=24, ge=1)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./ecomap.db"

    # Transactions
    tx_max_attempts: int = Field(default=3, ge=1)
    operation_timeout_seconds: float | None = Field(default=30.0, gt=0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cached so env vars are parsed once per process.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Rotating `jwt_secret` invalidates every token issued with the previous key.
