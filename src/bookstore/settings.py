from __future__ import annotations

"""Centralized configuration using pydantic-settings.

All configuration is loaded from environment variables and .env files.
This is the single source of truth for the bookstore service configuration.
"""

from enum import Enum
from urllib.parse import quote_plus

from pydantic import BaseModel, Field, RedisDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bookstore.durations import ttl_seconds


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Main application settings.

    All settings can be overridden via environment variables.
    For nested settings, use double underscore: SESSION__DURATION="2 hours"
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ============================================================
    # Core Application Settings
    # ============================================================

    # Also used as the namespace of every session key in Redis
    app_name: str = Field("bookstore-api", description="Application name")
    app_version: str = Field("1.0.0", description="Application version")
    environment: Environment = Field(Environment.DEVELOPMENT, description="Deployment environment")
    debug: bool = Field(False, description="Debug mode")

    # Server Configuration
    host: str = Field("0.0.0.0", description="Server host")
    port: int = Field(8000, description="Server port")

    # ============================================================
    # Database Configuration
    # ============================================================

    class DatabaseSettings(BaseModel):
        """Database configuration."""

        url: str | None = Field(None, description="Full async SQLAlchemy database URL")
        host: str = Field("localhost", description="Database host")
        port: int = Field(5432, description="Database port")
        database: str = Field("bookstore", description="Database name")
        username: str = Field("bookstore", description="Database username")
        password: str = Field("", description="Database password")

        # Connection pool
        pool_size: int = Field(10, description="Connection pool size")
        max_overflow: int = Field(20, description="Max overflow connections")
        pool_timeout: int = Field(30, description="Pool timeout in seconds")
        pool_pre_ping: bool = Field(True, description="Test connections before use")

        echo: bool = Field(False, description="Echo SQL statements")

    database: DatabaseSettings = DatabaseSettings()  # type: ignore[call-arg]

    # ============================================================
    # Redis Configuration
    # ============================================================

    class RedisSettings(BaseModel):
        """Redis configuration."""

        url: RedisDsn | None = Field(None, description="Full Redis URL")
        host: str = Field("localhost", description="Redis host")
        port: int = Field(6379, description="Redis port")
        password: str = Field("", description="Redis password")
        session_db: int = Field(0, description="Session database number")

        max_connections: int = Field(50, description="Max connections in pool")
        socket_timeout: float = Field(5.0, description="Socket timeout in seconds")
        socket_connect_timeout: float = Field(5.0, description="Socket connect timeout")

        @property
        def session_url(self) -> str:
            """Build session Redis URL."""
            if self.url:
                return str(self.url)
            if self.password:
                return f"redis://:{self.password}@{self.host}:{self.port}/{self.session_db}"
            return f"redis://{self.host}:{self.port}/{self.session_db}"

    redis: RedisSettings = RedisSettings()  # type: ignore[call-arg]

    # ============================================================
    # Sessions
    # ============================================================

    class SessionSettings(BaseModel):
        """Login session configuration."""

        duration: str = Field("1d", description="Session lifetime, e.g. '1d', '12 hours'")
        store_timeout_seconds: float = Field(
            5.0, description="Deadline for a single session store call"
        )

        @field_validator("duration")
        @classmethod
        def validate_duration(cls, v: str) -> str:
            """Reject durations that cannot become a positive TTL."""
            ttl_seconds(v)
            return v

        @property
        def ttl(self) -> int:
            return ttl_seconds(self.duration)

    session: SessionSettings = SessionSettings()  # type: ignore[call-arg]

    # ============================================================
    # Subscriptions
    # ============================================================

    class SubscriptionSettings(BaseModel):
        """Subscription ledger configuration."""

        billing_period_days: int = Field(
            30, ge=1, description="Length of one billing period for a new subscription"
        )
        store_timeout_seconds: float = Field(
            10.0, description="Deadline for a single ledger/catalog transaction"
        )

    subscription: SubscriptionSettings = SubscriptionSettings()  # type: ignore[call-arg]

    # ============================================================
    # Observability
    # ============================================================

    class ObservabilitySettings(BaseModel):
        """Logging configuration."""

        log_level: LogLevel = Field(LogLevel.INFO, description="Log level")
        log_format: str = Field("console", description="Log format: json or console")

    observability: ObservabilitySettings = ObservabilitySettings()  # type: ignore[call-arg]

    # ============================================================
    # Validation & Helpers
    # ============================================================

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment."""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @property
    def database_url(self) -> str:
        """Async SQLAlchemy URL for the relational store."""
        if self.database.url:
            return self.database.url

        # In development, use SQLite if PostgreSQL is not configured
        if self.is_development and not self.database.password:
            return "sqlite+aiosqlite:///./bookstore_dev.sqlite"

        username = quote_plus(self.database.username)
        password = quote_plus(self.database.password) if self.database.password else ""
        return (
            f"postgresql+asyncpg://{username}:{password}"
            f"@{self.database.host}:{self.database.port}/{self.database.database}"
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == Environment.DEVELOPMENT


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore
    return _settings


# Convenience export
settings = get_settings()
