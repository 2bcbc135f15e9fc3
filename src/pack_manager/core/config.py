"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

FETCHER_BACKENDS = ("worktree", "http")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./pack_manager.db",
        description="Async SQLAlchemy connection string for the operations store",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # Manifest fetching
    fetcher_backend: str = Field(
        default="worktree",
        description="Where raw manifests are read from: 'worktree' (local checkouts) or 'http'",
    )
    worktree_root: str = Field(
        default="./worktrees",
        description="Directory holding one checked-out worktree per repository",
    )
    manifest_filename: str = Field(
        default="manifest.yml",
        description="Manifest file name inside a repository",
        min_length=1,
    )
    fetch_timeout: float = Field(
        default=30.0,
        description="HTTP manifest fetch timeout in seconds",
        gt=0,
    )

    @field_validator("fetcher_backend")
    @classmethod
    def validate_fetcher_backend(cls, v: str) -> str:
        backend = v.strip().lower()
        if backend not in FETCHER_BACKENDS:
            msg = f"fetcher_backend must be one of {', '.join(FETCHER_BACKENDS)}"
            raise ValueError(msg)
        return backend

    # Operations
    operations_list_default_limit: int = Field(
        default=50,
        description="Default number of operations returned by list queries",
        ge=1,
        le=500,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )
    cors_origin_regex: str = Field(
        default="",
        description="Regex pattern for allowed CORS origins",
    )

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
