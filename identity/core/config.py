# identity/core/config.py
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string; sqlite:// for local runs)

    Optional:
      - {GOOGLE,NAVER,KAKAO}_CLIENT_ID / _CLIENT_SECRET
        A provider login path is only enabled when both values are set.
      - ADMIN_EMAIL / ADMIN_PASSWORD
        Bootstrap admin account ensured on startup.
    """

    PROJECT_NAME: str = "Identity Service"
    API_PREFIX: str = "/api"

    DATABASE_URL: str

    # Where the browser reaches this service; provider callbacks are built on it.
    PUBLIC_BASE_URL: str = "http://localhost:5000"
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5000"]

    # Sessions
    SESSION_TTL_SECONDS: int = 7 * 24 * 60 * 60
    SESSION_COOKIE_NAME: str = "sid"
    SESSION_COOKIE_SECURE: bool = False
    SESSION_COOKIE_SAMESITE: str = "lax"

    # scrypt cost parameters (N must be a power of two)
    SCRYPT_N: int = 16384
    SCRYPT_R: int = 8
    SCRYPT_P: int = 1
    SCRYPT_DKLEN: int = 64

    # Federated providers
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    NAVER_CLIENT_ID: str | None = None
    NAVER_CLIENT_SECRET: str | None = None
    KAKAO_CLIENT_ID: str | None = None
    KAKAO_CLIENT_SECRET: str | None = None

    # Attach a provider identity to an existing account when the emails match.
    FEDERATED_EMAIL_LINKING: bool = True

    ADMIN_EMAIL: str | None = None
    ADMIN_PASSWORD: str | None = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def provider_credentials(self, provider: str) -> tuple[str, str] | None:
        """Return (client_id, client_secret) for a provider, or None if unset."""
        prefix = provider.upper()
        client_id = getattr(self, f"{prefix}_CLIENT_ID", None)
        client_secret = getattr(self, f"{prefix}_CLIENT_SECRET", None)
        if not client_id or not client_secret:
            return None
        return client_id, client_secret


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
