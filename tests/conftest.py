"""Pytest configuration and shared fixtures.

This module provides shared fixtures and configuration for all tests. Pools
and connections are MagicMock stand-ins shaped like asyncpg objects (see
``mocks``), so no database server is needed.
"""

import os
from unittest.mock import MagicMock

import pytest
from mocks import make_connection, make_pool

from pgweb.config.settings import PoolConfig, TimeoutConfig, reset_settings
from pgweb.db.manager import ConnectionManager
from pgweb.models.connection import ActiveConnection, ConnectionConfig


@pytest.fixture(autouse=True)
def reset_config() -> None:
    """Reset global settings before each test."""
    reset_settings()


@pytest.fixture(autouse=True)
def disable_metrics_for_tests():
    """Disable metrics for tests to avoid port conflicts."""
    os.environ["PGWEB_OBSERVABILITY_METRICS_ENABLED"] = "false"
    yield
    # Clean up
    if "PGWEB_OBSERVABILITY_METRICS_ENABLED" in os.environ:
        del os.environ["PGWEB_OBSERVABILITY_METRICS_ENABLED"]


@pytest.fixture
def connection_config() -> ConnectionConfig:
    """Create a connection configuration for testing."""
    return ConnectionConfig(
        host="localhost",
        port=5432,
        username="testuser",
        password="testpass",
        database="testdb",
    )


@pytest.fixture
def timeouts() -> TimeoutConfig:
    """Short deadlines so timeout tests finish quickly."""
    return TimeoutConfig(ping=0.2, query=0.2, catalog=0.2, table_data=0.2)


@pytest.fixture
def pool_config() -> PoolConfig:
    """Create a pool configuration for testing."""
    return PoolConfig(close_timeout=0.2)


@pytest.fixture
def mock_connection() -> MagicMock:
    """Create a mock asyncpg connection."""
    return make_connection()


@pytest.fixture
def mock_pool(mock_connection: MagicMock) -> MagicMock:
    """Create a mock asyncpg connection pool."""
    return make_pool(mock_connection)


@pytest.fixture
def manager(pool_config: PoolConfig, timeouts: TimeoutConfig) -> ConnectionManager:
    """Create a connection manager with nothing connected."""
    return ConnectionManager(pool_config, timeouts)


@pytest.fixture
def connected_manager(
    manager: ConnectionManager,
    mock_pool: MagicMock,
    connection_config: ConnectionConfig,
) -> ConnectionManager:
    """Create a connection manager whose active pool is ``mock_pool``."""
    manager._active = ActiveConnection(pool=mock_pool, config=connection_config)
    return manager
