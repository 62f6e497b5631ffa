# app/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string; sqlite:// accepted for dev/tests)
      - JWT_SECRET (signing secret for access tokens)

    Optional:
      - SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY (image storage)
      - SMTP_* (transactional email; emails are skipped when unset)
    """

    PROJECT_NAME: str = "Community Commerce API"
    API_PREFIX: str = "/api"
    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    DATABASE_URL: str

    # Access tokens
    JWT_SECRET: str
    JWT_ALG: str = "HS256"
    JWT_EXPIRE_DAYS: int = 7
    AUTH_COOKIE_NAME: str = "token"

    # Supabase Storage (media delegate)
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    STORAGE_BUCKET: str = "assets"

    # SMTP (notification delegate)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "Inshuti y'Umuryango"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    # Blogs are attached to this service
    DEFAULT_BLOG_SERVICE_SLUG: str = "default-service"

    # Product policy: when enabled, approving a cart takes its quantities out of stock
    CART_APPROVAL_DECREMENTS_STOCK: bool = False

    LOW_STOCK_THRESHOLD: int = 10

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
