"""Configuration management for the pgweb service.

This module defines the service settings using Pydantic for validation and
type safety. Settings are loaded from environment variables (and an optional
``.env`` file) with sensible defaults. Database credentials are not settings:
they are supplied at runtime through ``POST /connect``.
"""

from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class ServerConfig(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="PGWEB_SERVER_")

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["*"], description="Origins allowed by CORS"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_comma_separated_list(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated string or list."""
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v


class PoolConfig(BaseSettings):
    """Settings applied to every pool opened through ``POST /connect``."""

    model_config = SettingsConfigDict(env_prefix="PGWEB_POOL_")

    min_size: int = Field(default=1, ge=0, le=100, description="Minimum pool size")
    max_size: int = Field(default=10, ge=1, le=100, description="Maximum pool size")
    connect_timeout: float = Field(
        default=5.0, ge=0.5, le=120.0, description="Timeout for opening a connection in seconds"
    )
    close_timeout: float = Field(
        default=5.0,
        ge=0.1,
        le=120.0,
        description="Graceful close timeout before the pool is terminated, in seconds",
    )


class TimeoutConfig(BaseSettings):
    """Per-operation deadlines in seconds."""

    model_config = SettingsConfigDict(env_prefix="PGWEB_TIMEOUT_")

    ping: float = Field(default=2.0, gt=0, le=60.0, description="Ping deadline")
    query: float = Field(default=15.0, gt=0, le=600.0, description="Ad-hoc query deadline")
    catalog: float = Field(default=2.0, gt=0, le=60.0, description="Catalog query deadline")
    table_data: float = Field(default=5.0, gt=0, le=600.0, description="Table data deadline")


class ObservabilityConfig(BaseSettings):
    """Observability and monitoring configuration."""

    model_config = SettingsConfigDict(env_prefix="PGWEB_OBSERVABILITY_")

    metrics_enabled: bool = Field(default=False, description="Enable Prometheus metrics")
    metrics_port: int = Field(
        default=9090, ge=1024, le=65535, description="Metrics HTTP server port"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: Literal["json", "text"] = Field(default="text", description="Log format")


class MigrationConfig(BaseSettings):
    """Settings read by the migration runner."""

    model_config = SettingsConfigDict(env_prefix="PGWEB_")

    database_url: str = Field(default="", description="Target database URL")
    atlas_bin: str = Field(default="atlas", description="Atlas binary to invoke")
    migrations_dir: str = Field(default="migrations", description="Migrations directory")


class Settings(BaseSettings):
    """Main application settings aggregating all config sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    pool: PoolConfig = Field(default_factory=PoolConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    migration: MigrationConfig = Field(default_factory=MigrationConfig)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance.

    Returns:
        Settings: The global settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset global settings instance. Useful for testing."""
    global _settings
    _settings = None
