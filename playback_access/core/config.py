# playback_access/core/config.py
from __future__ import annotations

"""
# Playback Access • Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; explicit where prod needs secrets.
- One place that knows how Redis, PostgreSQL and the object store are reached.
- Optional storage credentials so imports never crash in dev.

## Usage
    from playback_access.core.config import settings
"""

from typing import Annotated, List, Literal, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


def _is_local_host(dsn: str) -> bool:
    return "localhost" in dsn or "127.0.0.1" in dsn


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Notes:
        - `DATABASE_URL` wins over the discrete `POSTGRES_*` keys when set.
        - `ENV` also reads `APP_ENV`; only `production` hides debug details
          from error responses.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
        populate_by_name=True,
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "Playback Access API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENV: Literal["development", "staging", "production"] = Field(
        "development", validation_alias=AliasChoices("ENV", "APP_ENV")
    )
    ENABLE_DOCS: bool = True

    # ── Redis ─────────────────────────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"

    # ── Database (PostgreSQL) ─────────────────────────────────
    DATABASE_URL_OVERRIDE: Optional[str] = Field(None, validation_alias=AliasChoices("DATABASE_URL"))
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = SecretStr("postgres")
    POSTGRES_DB: str = "playback"
    DB_POOL_SIZE: int = Field(25, ge=1, le=200)
    DB_MAX_OVERFLOW: int = Field(5, ge=0, le=200)
    DB_POOL_RECYCLE_SECONDS: int = Field(300, ge=30, le=24 * 60 * 60)
    DB_STATEMENT_TIMEOUT_MS: int = Field(5000, ge=100, le=120_000)

    # ── CORS ──────────────────────────────────────────────────
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["*"])

    # ── Share links / object storage ──────────────────────────
    LINK_ISSUER: Literal["s3", "static"] = "s3"
    S3_VIDEO_BUCKET: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None  # e.g. https://gateway.storjshare.io
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[SecretStr] = None
    AWS_REGION: str = "us-east-1"
    SHARE_LINK_TTL_SECONDS: int = Field(4 * 60 * 60, ge=60, le=7 * 24 * 60 * 60)
    STATIC_LINK_BASE_URL: str = "https://example.com/video"

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _assemble_cors_origins(cls, v: str | List[str]):
        if isinstance(v, str):
            return _split_csv(v)
        return v

    @field_validator("ENV", mode="before")
    @classmethod
    def _normalize_env(cls, v: str | None) -> str:
        return (v or "development").strip().lower()

    @field_validator("STATIC_LINK_BASE_URL", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, v: str | None) -> str:
        return (v or "").strip().rstrip("/")

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def DATABASE_URL(self) -> str:
        """Sync DSN."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        """Async SQLAlchemy DSN (asyncpg)."""
        url = self.DATABASE_URL
        for prefix in ("postgresql://", "postgres://"):
            if url.startswith(prefix):
                url = "postgresql+asyncpg://" + url[len(prefix):]
                break
        # asyncpg does not understand libpq's sslmode
        return url.replace("sslmode=", "ssl=")

    @property
    def database_connect_args(self) -> dict:
        """Driver connect args: UTC, bounded statements, no TLS for local hosts."""
        args: dict = {
            "server_settings": {
                "TimeZone": "UTC",
                "statement_timeout": str(self.DB_STATEMENT_TIMEOUT_MS),
            }
        }
        dsn = self.DATABASE_URL
        if _is_local_host(dsn) and "ssl" not in dsn:
            args["ssl"] = False
        return args

    @property
    def cors_origins_list(self) -> List[str]:
        return list(self.BACKEND_CORS_ORIGINS or [])


# Singleton instance
settings = Settings()
