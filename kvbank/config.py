"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env
file as a fallback. The .env file is gitignored; secrets never live in source.

Pydantic Settings resolves each field in this order:
  1. Environment variables (highest priority)
  2. Values from the .env file
  3. Defaults defined here (lowest priority)

Usage:
    from kvbank.config import get_settings
    settings = get_settings()
    print(settings.STORAGE_BACKEND)
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the KV Bank API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "KV Bank API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Storage ---
    # "memory" keeps everything in-process (tests, local demos),
    # "redis" talks to Upstash Redis over REST,
    # "sql" stores the same key layout in relational tables.
    STORAGE_BACKEND: Literal["memory", "redis", "sql"] = "sql"

    # SQLite for local runs; swap to a PostgreSQL URL (asyncpg driver) in production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/bank.db"

    UPSTASH_REDIS_REST_URL: str | None = None
    UPSTASH_REDIS_REST_TOKEN: str | None = None

    # --- Authentication ---
    # REQUIRED: No default, forces the operator to set a real secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Fixed login name of the single shared administrator
    ADMIN_LOGIN: str = "admin"
    # Hashed and stored on first start; change it afterwards via PUT /admin/profile
    ADMIN_DEFAULT_PASSWORD: str = "admin123"

    # --- Activity log ---
    # Entries kept per calendar day; older entries are dropped
    ACTIVITY_LOG_CAPACITY: int = 100

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["standard", "json"] = "standard"

    # --- CORS ---
    # Origins allowed to make cross-origin requests (frontend URLs)
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once on first use."""
    return Settings()
