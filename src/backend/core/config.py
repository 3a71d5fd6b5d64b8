"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import Any, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "E-Vote Gateway"
    APP_ENV: str = "development"
    DEBUG: bool = False
    SECRET_KEY: str = ""  # Required - signs session tokens

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Session tokens
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Vote ledger HTTP API
    LEDGER_API_URL: str = "http://localhost:3000"
    LEDGER_TIMEOUT_SECONDS: float = 10.0
    LEDGER_MAX_RETRIES: int = 2  # Connection-level retries only

    # Firebase Realtime Database (voters, candidates, elections)
    FIREBASE_DATABASE_URL: str = "http://localhost:9000"
    FIREBASE_AUTH_TOKEN: str | None = None  # Database secret or ID token for ?auth=
    REALTIME_TIMEOUT_SECONDS: float = 10.0
    REALTIME_MAX_RECONNECTS: int = 5

    # Firebase Authentication (email/password sign-in)
    # When FIREBASE_API_KEY is unset, login falls back to the voter record password.
    FIREBASE_API_KEY: str | None = None
    FIREBASE_AUTH_URL: str = "https://identitytoolkit.googleapis.com/v1"

    # Which voter attribute is sent to /hasVotedInElection
    ELIGIBILITY_LOOKUP_KEY: Literal["voter_id", "email"] = "voter_id"
    # Most (election, voter) states the gate remembers; least recently used go first
    ELIGIBILITY_CACHE_SIZE: int = 10_000

    # CORS - stored as comma-separated string to avoid pydantic-settings JSON parsing issues
    CORS_ORIGINS: str = "http://localhost:8081"

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_required_secrets(cls, v: str, info: Any) -> str:
        """Validate that required secrets are set."""
        if not v:
            raise ValueError(f"{info.field_name} must be set in environment")
        return v

    @field_validator("LEDGER_API_URL", "FIREBASE_DATABASE_URL", "FIREBASE_AUTH_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        import json

        try:
            return json.loads(self.CORS_ORIGINS)
        except json.JSONDecodeError:
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
