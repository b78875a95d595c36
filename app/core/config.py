# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Everything has a default so the service boots without a .env file.

    Commonly overridden (.env):
      - BACKEND_API_URL (pharmacy backend, e.g. https://api.example.com)
      - DATABASE_URL (local key-value store for guest carts)
      - JWT_SECRET (only if tokens should be verified here as well)
    """

    PROJECT_NAME: str = "Pharmacy Storefront Cart Service"
    API_V1_STR: str = "/api/v1"

    # Upstream pharmacy backend
    BACKEND_API_URL: str = "http://localhost:5000"
    BACKEND_API_PREFIX: str = "/api/v1"

    # None => no timeout (the backend calls have no cancellation)
    BACKEND_TIMEOUT_SECONDS: float | None = None

    # Guest cart snapshots live here
    DATABASE_URL: str = "sqlite:///./storefront.db"

    # Cookies
    JWT_COOKIE_NAME: str = "jwt"
    SESSION_COOKIE_NAME: str = "sid"

    # JWT verification is optional: the backend stays the authority.
    JWT_SECRET: str | None = None
    JWT_ALG: str = "HS256"

    # Cart
    CART_STORAGE_KEY: str = "cart"
    CART_MERGE_KEEP_FAILED: bool = False

    # In-memory cart sessions: idle ones are dropped after the TTL
    CART_SESSION_TTL_SECONDS: float = 3600
    CART_SESSION_MAX: int = 10_000

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://[::1]:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def backend_base_url(self) -> str:
        return self.BACKEND_API_URL.rstrip("/") + self.BACKEND_API_PREFIX


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
