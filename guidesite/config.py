"""
Configuration and settings for the guide site backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Database. Postgres when DATABASE_URL is set, SQLite file otherwise.
    database_url: Optional[str] = Field(default=None)
    database_sslmode: Optional[str] = Field(default=None)
    sqlite_path: str = Field(default="database.sqlite")

    # Hosted (Vercel) deployments only have /tmp as writable storage.
    vercel: bool = Field(default=False)

    # Uploads: local directory unless an S3-compatible bucket is configured
    uploads_dir: str = Field(default="uploads")
    uploads_url_prefix: str = Field(default="/uploads")
    s3_bucket: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    s3_endpoint: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    s3_public_base_url: Optional[str] = Field(default=None)

    # First-run content
    initial_data_path: Optional[str] = Field(default="initial-data.json")

    # Admin session
    default_admin_password: str = Field(default="admin1234")
    session_cookie_name: str = Field(default="guidesite.sid")
    session_ttl_seconds: int = Field(default=24 * 60 * 60)
    session_cookie_secure: bool = Field(default=False)
    session_cookie_samesite: str = Field(default="lax")

    log_level: str = Field(default="INFO")

    @property
    def effective_sqlite_path(self) -> str:
        if self.vercel:
            return "/tmp/database.sqlite"
        return self.sqlite_path

    @property
    def effective_uploads_dir(self) -> str:
        if self.vercel:
            return "/tmp/uploads"
        return self.uploads_dir


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
