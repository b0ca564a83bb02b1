# careerhive/config.py

from __future__ import annotations
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    # --- Core ---
    SECRET_KEY: str = Field("change-me", description="JWT signing key")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60, ge=5, le=60 * 24)
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    DATABASE_URL: str = Field("sqlite:///./careerhive.db")
    # Alembic reads DATABASE_URL from env as well.

    # --- Listing / search ---
    MAX_PAGE_SIZE: int = 100
    SEARCH_PAGE_SIZE: int = 10
    SEARCH_MIN_KEYWORD_LENGTH: int = 2

    # --- Google Safe Browsing ---
    # Without a key every link is reported safe.
    SAFE_BROWSING_API_KEY: Optional[str] = None
    SAFE_BROWSING_URL: str = "https://safebrowsing.googleapis.com/v4/threatMatches:find"
    SAFE_BROWSING_CLIENT_ID: str = "careerhive"
    SAFE_BROWSING_TIMEOUT_SECONDS: float = 5.0

    # --- Outgoing mail ---
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    MAIL_FROM: str = "no-reply@careerhive.local"

    # --- Subscriber notifications ---
    NOTIFY_MAX_WORKERS: int = Field(4, ge=1)
    NOTIFY_SEND_TIMEOUT_SECONDS: float = 10.0  # per message
    NOTIFY_DEADLINE_SECONDS: float = 300.0  # whole fan-out

    # --- Rate limits (slowapi syntax, per client address) ---
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_GET: str = "60/minute"
    RATE_LIMIT_POST: str = "10/minute"
    RATE_LIMIT_PUT: str = "20/minute"
    RATE_LIMIT_DELETE: str = "20/minute"

    # --- Response headers ---
    CONTENT_SECURITY_POLICY: str = "default-src 'self'; script-src 'self'"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
