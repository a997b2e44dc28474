from __future__ import annotations

import re
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Database settings.

    Reads from environment variables (or .env via pydantic-settings). Either a
    full DATABASE_URL is given, or the POSTGRES_* parts are used to build one:
      - POSTGRES_USER
      - POSTGRES_PASSWORD
      - POSTGRES_DB
      - POSTGRES_HOST
      - POSTGRES_PORT
    Without any of these, a local SQLite file is used.
    """

    DATABASE_URL: Optional[str] = Field(
        default=None, description="If provided, full SQLAlchemy connection URL."
    )
    POSTGRES_USER: Optional[str] = Field(default=None, description="DB username")
    POSTGRES_PASSWORD: Optional[str] = Field(default=None, description="DB password")
    POSTGRES_DB: Optional[str] = Field(default=None, description="Database name")
    POSTGRES_PORT: Optional[int] = Field(
        default=5432, description="Database port (default 5432)"
    )
    POSTGRES_HOST: Optional[str] = Field(
        default="localhost", description="Database host (default localhost)"
    )
    SQLITE_PATH: str = Field(
        default="./orders.db", description="SQLite file used when no server database is configured"
    )

    # SQLAlchemy engine options
    SQL_ECHO: bool = Field(
        default=False, description="Echo SQL statements for debugging (default False)"
    )

    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def database_url(self) -> str:
        """
        Compute the base (driver-neutral) database URL. Prefers DATABASE_URL,
        then the POSTGRES_* variables, then the SQLite file.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        parts = [self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_DB]
        if any(parts):
            if not all(parts):
                raise ValueError(
                    "Database configuration incomplete. Set DATABASE_URL or all of "
                    "POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB."
                )
            host = self.POSTGRES_HOST or "localhost"
            port = self.POSTGRES_PORT or 5432
            return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{host}:{port}/{self.POSTGRES_DB}"

        return f"sqlite:///{self.SQLITE_PATH}"

    @property
    def async_database_url(self) -> str:
        """
        Convert the base URL to its asyncio driver variant (asyncpg / aiosqlite),
        required for AsyncEngine.
        """
        url = self.database_url
        if url.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            return url
        url = re.sub(r"^postgresql(\+\w+)?://", "postgresql+asyncpg://", url)
        return re.sub(r"^sqlite(\+\w+)?://", "sqlite+aiosqlite://", url)

    @property
    def sync_database_url(self) -> str:
        """Driver-neutral URL (async driver tag stripped), used for Alembic offline mode."""
        url = self.database_url
        url = re.sub(r"^postgresql\+\w+://", "postgresql://", url)
        return re.sub(r"^sqlite\+\w+://", "sqlite://", url)


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return a settings object populated from the environment."""
    return Settings()
