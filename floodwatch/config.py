"""
FloodWatch — Application Configuration
All settings loaded from environment variables via pydantic-settings.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Database ──────────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./floodwatch.db"

    # ── Auth ──────────────────────────────────────────────────────────────────
    # No default: the process must not start without a signing secret.
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_DAYS: int = 7
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    # ── Two-factor ────────────────────────────────────────────────────────────
    TWO_FACTOR_CODE_TTL_MINUTES: int = 10
    TWO_FACTOR_MAX_ATTEMPTS: int = 5

    # ── Rate limiting (requests per minute per client IP) ─────────────────────
    AUTH_RATE_LIMIT_PER_MINUTE: int = 20
    API_RATE_LIMIT_PER_MINUTE: int = 300
    # Peers whose X-Forwarded-For header is believed; "*" trusts any peer.
    FORWARDED_ALLOW_IPS: List[str] = []

    # ── Email (SMTP) ──────────────────────────────────────────────────────────
    EMAIL_HOST: Optional[str] = None
    EMAIL_PORT: int = 587
    EMAIL_USER: Optional[str] = None
    EMAIL_PASS: Optional[str] = None
    FROM_EMAIL: Optional[str] = None
    FROM_NAME: str = "FloodWatch.ph"
    FRONTEND_URL: str = "https://floodwatch.ph"

    # ── Application Settings ──────────────────────────────────────────────────
    ENVIRONMENT: str = "development"  # development | staging | production
    APP_TITLE: str = "FloodWatch.ph API"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("JWT_SECRET must be set to a non-empty value")
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown LOG_LEVEL {v!r}")
        return level

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def email_configured(self) -> bool:
        return bool(self.EMAIL_HOST and self.EMAIL_USER and self.EMAIL_PASS)


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton — safe for FastAPI Depends()."""
    return Settings()
