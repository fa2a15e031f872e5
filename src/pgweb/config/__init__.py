"""Configuration management module."""

from pgweb.config.settings import (
    MigrationConfig,
    ObservabilityConfig,
    PoolConfig,
    ServerConfig,
    Settings,
    TimeoutConfig,
    get_settings,
    reset_settings,
)

__all__ = [
    "MigrationConfig",
    "ObservabilityConfig",
    "PoolConfig",
    "ServerConfig",
    "Settings",
    "TimeoutConfig",
    "get_settings",
    "reset_settings",
]
