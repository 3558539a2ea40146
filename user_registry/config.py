"""Application configuration using Pydantic Settings.

Environment Variable Strategy:
- Every field has a development default for local/CI convenience
- DATABASE_URL wins over the discrete DB_* parameters when both are set
- Validation thresholds come from a named profile, never from literals in code
"""

from functools import cached_property
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

from user_registry.services.validation import ValidationPolicy, get_policy


def parse_comma_list(value: str | list[str] | None, default: list[str]) -> list[str]:
    """Parse comma-separated string into list."""
    if value is None:
        return default
    if isinstance(value, list):
        return value
    return [item.strip() for item in value.split(",") if item.strip()]


def normalize_database_url(url: str) -> str:
    """Rewrite sync driver URLs to their async SQLAlchemy equivalents.

    - postgres://    -> postgresql+asyncpg://  (hosted providers)
    - postgresql://  -> postgresql+asyncpg://
    - sqlite:///     -> sqlite+aiosqlite:///
    """
    url = url.strip()
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Store location:
        DATABASE_URL, or DB_HOST / DB_PORT / DB_NAME / DB_USER / DB_PASSWORD

    Optional (with defaults):
        All other fields
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ================================================================
    # Server
    # ================================================================
    host: str = "0.0.0.0"
    port: int = 5000
    environment: str = Field(
        default="development", validation_alias=AliasChoices("ENVIRONMENT", "ENV")
    )
    debug: bool = False

    # CORS origins - stored as string, parsed via property
    # Env format: CORS_ORIGINS="http://localhost:3000,http://localhost:5500"
    cors_origins_str: str | None = Field(default=None, validation_alias="CORS_ORIGINS")

    # ================================================================
    # Relational store
    # ================================================================
    database_url_str: str | None = Field(default=None, validation_alias="DATABASE_URL")
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "registry"
    db_user: str = "postgres"
    db_password: str = ""
    database_ssl: bool = False

    # Pool limits: max connections, blocking-acquire timeout, idle eviction
    db_pool_max: int = Field(default=5, ge=1)
    db_pool_acquire_timeout: float = Field(default=30.0, gt=0)
    db_pool_idle_timeout: int = Field(default=10, ge=1)

    # ================================================================
    # Credentials
    # ================================================================
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    validation_profile: Literal["standard", "strict"] = "standard"

    @field_validator("database_url_str", mode="before")
    @classmethod
    def _normalize_url(cls, v: str | None) -> str | None:
        if v is None or not str(v).strip():
            return None
        return normalize_database_url(str(v))

    @cached_property
    def database_url(self) -> str:
        """Resolved async connection URL."""
        if self.database_url_str:
            return self.database_url_str
        url = URL.create(
            "postgresql+asyncpg",
            username=self.db_user,
            password=self.db_password or None,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )
        return url.render_as_string(hide_password=False)

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.database_url).get_backend_name() == "sqlite"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @cached_property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from env string or allow any origin."""
        return parse_comma_list(self.cors_origins_str, ["*"])

    @property
    def validation_policy(self) -> ValidationPolicy:
        return get_policy(self.validation_profile)


settings = Settings()
