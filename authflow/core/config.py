# authflow/core/config.py
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, EmailStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,  # .env keys may be upper or lower case
        extra="ignore",
    )

    # ------------------------------------------------------------
    # 🧭 General
    # ------------------------------------------------------------
    APP_NAME: str = "authflow"
    # the console mail backend is only accepted in "development"
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"
    SECRET_KEY: str = Field(..., min_length=16)

    # Base URL for links in outgoing mails
    PUBLIC_BASE_URL: str = "http://127.0.0.1:8000"

    # ------------------------------------------------------------
    # 🗄️ Database
    # ------------------------------------------------------------
    DB_URL: str = "sqlite:///./authflow.db"

    # ------------------------------------------------------------
    # 🪙 Sessions
    # ------------------------------------------------------------
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(15, gt=0)
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(7, gt=0)
    # Refresh rows expired for longer than this are dropped at login
    REFRESH_TOKEN_RETENTION_DAYS: int = Field(7, ge=0)
    # Presented refresh token is invalidated when a new one is issued
    REFRESH_TOKEN_ROTATION: bool = True

    # ------------------------------------------------------------
    # ✉️ Verification / 🔐 Password reset
    # ------------------------------------------------------------
    VERIFICATION_TOKEN_EXPIRE_MINUTES: int = Field(15, gt=0)
    RESET_TOKEN_EXPIRE_MINUTES: int = Field(15, gt=0)

    # ------------------------------------------------------------
    # 📩 SMTP / Mail
    # ------------------------------------------------------------
    MAIL_BACKEND: str = "console"  # "smtp" | "console"
    MAIL_FROM: EmailStr = "no-reply@authflow.example.com"
    MAIL_FROM_NAME: str = "authflow"
    MAIL_SERVER: str | None = None
    MAIL_PORT: int = 587
    MAIL_USERNAME: str | None = None
    MAIL_PASSWORD: str | None = None
    MAIL_USE_TLS: bool = True
    MAIL_TIMEOUT_SECONDS: float = Field(10, gt=0)


@lru_cache
def get_settings() -> Settings:
    return Settings()
