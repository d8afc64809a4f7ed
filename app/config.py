# app/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from urllib.parse import quote_plus
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────────────────
    DATABASE_URL: Optional[str] = None   # Overrides the DB_* parts when set
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "alpr_data"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_SSL: bool = False                 # AWS RDS requires SSL connections

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_FAIL_FAST: bool = True            # Exit the process on unrecoverable pool errors

    # ── Detection table ───────────────────────────────────────────────────
    DB_TABLE: str = "alpr_data"
    DB_SCHEMA: Optional[str] = None
    DB_TIMESTAMP_KIND: str = "timestamp"   # timestamp | epoch_ms | epoch_s

    # ── Auth tables (users, otp_tokens, user_sessions) ────────────────────
    AUTH_SCHEMA: Optional[str] = None

    # ── Network ───────────────────────────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    API_PREFIX: str = "/api"
    CORS_ORIGINS: str = "*"              # Comma-separated list

    # ── Security ──────────────────────────────────────────────────────────
    SESSION_SECRET: str = "CHANGE_ME"
    OTP_EXPIRE_MINUTES: int = 5
    OTP_MAX_ATTEMPTS: int = 5
    SESSION_EXPIRE_DAYS: int = 7

    # ── OTP email transport ───────────────────────────────────────────────
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM: Optional[str] = None
    SMTP_USE_SSL: bool = True            # False → plain SMTP + STARTTLS
    SMTP_TIMEOUT_SECONDS: int = 10

    # ── Response cache ────────────────────────────────────────────────────
    CACHE_TTL_SECONDS: int = 30 * 60

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    @property
    def SQLALCHEMY_URL(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        password = quote_plus(self.DB_PASSWORD)
        url = f"postgresql+psycopg2://{self.DB_USER}:{password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        if self.DB_SSL:
            url += "?sslmode=require"
        return url

    @property
    def CORS_ORIGIN_LIST(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
