"""Unit tests for ConnectionManager.

Pools are created through a patched ``create_pool`` that hands out mock pools
keyed by database name; pinging and closing run the real pool helpers
against those mocks.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from mocks import make_pool

from pgweb.db.manager import ConnectionManager
from pgweb.models.connection import ConnectionConfig
from pgweb.models.errors import (
    CloseError,
    ConnectionValidationError,
    DatabaseConnectionError,
    HealthCheckError,
    NoActiveConnectionError,
)


def config_for(database: str) -> ConnectionConfig:
    return ConnectionConfig(host="localhost", port=5432, database=database)


@pytest.fixture
def pools(monkeypatch: pytest.MonkeyPatch) -> dict[str, MagicMock]:
    """Patch pool creation; returns the pools created so far by database."""
    created: dict[str, MagicMock] = {}

    async def fake_create_pool(config: ConnectionConfig, pool_config: object) -> MagicMock:
        pool = make_pool()
        created[config.database] = pool
        return pool

    monkeypatch.setattr("pgweb.db.manager.create_pool", fake_create_pool)
    return created


class TestConnect:
    """Test opening and swapping the active connection."""

    @pytest.mark.asyncio
    async def test_current_without_connection(self, manager: ConnectionManager) -> None:
        """Test current() before any connect."""
        assert not manager.is_active
        with pytest.raises(NoActiveConnectionError, match="POST /connect"):
            await manager.current()

    @pytest.mark.asyncio
    async def test_connect_installs_pool(
        self, manager: ConnectionManager, pools: dict[str, MagicMock]
    ) -> None:
        """Test a successful connect pings the pool and makes it current."""
        active = await manager.connect(config_for("a"))

        assert manager.is_active
        assert active.pool is pools["a"]
        assert active.healthy
        pools["a"].connection.fetchval.assert_awaited_once_with("SELECT 1")
        assert (await manager.current()).config.database == "a"

    @pytest.mark.asyncio
    async def test_second_connect_closes_first(
        self, manager: ConnectionManager, pools: dict[str, MagicMock]
    ) -> None:
        """Test connecting again closes the previous pool."""
        await manager.connect(config_for("a"))
        await manager.connect(config_for("b"))

        pools["a"].close.assert_awaited_once()
        pools["b"].close.assert_not_awaited()
        current = await manager.current()
        assert current.config.database == "b"
        assert current.pool is pools["b"]

    @pytest.mark.asyncio
    async def test_open_failure_keeps_previous(
        self, manager: ConnectionManager, pools: dict[str, MagicMock], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a failed open leaves the previous connection untouched."""
        await manager.connect(config_for("a"))
        monkeypatch.setattr(
            "pgweb.db.manager.create_pool",
            AsyncMock(side_effect=OSError("connection refused")),
        )

        with pytest.raises(DatabaseConnectionError, match="Failed to open database connection"):
            await manager.connect(config_for("b"))

        pools["a"].close.assert_not_awaited()
        assert (await manager.current()).pool is pools["a"]

    @pytest.mark.asyncio
    async def test_ping_failure_discards_new_pool(
        self, manager: ConnectionManager, pools: dict[str, MagicMock], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a pool failing its first ping is closed and not installed."""
        await manager.connect(config_for("a"))
        bad = make_pool()
        bad.connection.fetchval = AsyncMock(side_effect=OSError("server closed the connection"))
        monkeypatch.setattr("pgweb.db.manager.create_pool", AsyncMock(return_value=bad))

        with pytest.raises(ConnectionValidationError) as exc_info:
            await manager.connect(config_for("b"))

        assert isinstance(exc_info.value, DatabaseConnectionError)
        assert "Failed to validate database connection" in exc_info.value.message
        bad.close.assert_awaited_once()
        assert (await manager.current()).pool is pools["a"]

    @pytest.mark.asyncio
    async def test_ping_timeout_message(
        self, manager: ConnectionManager, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a hanging ping reports the deadline."""
        slow = make_pool()

        async def hang(*args: object) -> None:
            await asyncio.sleep(10)

        slow.connection.fetchval = hang
        monkeypatch.setattr("pgweb.db.manager.create_pool", AsyncMock(return_value=slow))

        with pytest.raises(ConnectionValidationError, match="ping timed out"):
            await manager.connect(config_for("a"))
        assert not manager.is_active

    @pytest.mark.asyncio
    async def test_swap_terminates_previous_when_close_fails(
        self, manager: ConnectionManager, pools: dict[str, MagicMock]
    ) -> None:
        """Test a previous pool that refuses to close is terminated and replaced."""
        await manager.connect(config_for("a"))
        pools["a"].close = AsyncMock(side_effect=RuntimeError("close failed"))

        await manager.connect(config_for("b"))

        pools["a"].terminate.assert_called_once()
        assert (await manager.current()).config.database == "b"

    @pytest.mark.asyncio
    async def test_readers_never_see_mixed_state(
        self, manager: ConnectionManager, pools: dict[str, MagicMock]
    ) -> None:
        """Test concurrent readers always see a pool paired with its own config."""
        await manager.connect(config_for("a"))

        async def read_many() -> list[tuple[str, MagicMock]]:
            seen = []
            for _ in range(50):
                active = await manager.current()
                seen.append((active.config.database, active.pool))
                await asyncio.sleep(0)
            return seen

        results = await asyncio.gather(
            read_many(),
            manager.connect(config_for("b")),
            read_many(),
            manager.connect(config_for("c")),
            read_many(),
        )

        for seen in (results[0], results[2], results[4]):
            for database, pool in seen:
                assert pools[database] is pool


class TestValidate:
    """Test health checks of the active pool."""

    @pytest.mark.asyncio
    async def test_validate_healthy(
        self, connected_manager: ConnectionManager, connection_config: ConnectionConfig
    ) -> None:
        """Test a healthy pool returns its config."""
        assert await connected_manager.validate() == connection_config

    @pytest.mark.asyncio
    async def test_validate_without_connection(self, manager: ConnectionManager) -> None:
        """Test validate() before any connect."""
        with pytest.raises(NoActiveConnectionError):
            await manager.validate()

    @pytest.mark.asyncio
    async def test_validate_ping_failure(
        self, connected_manager: ConnectionManager, mock_connection: MagicMock
    ) -> None:
        """Test a failing ping is reported as a health check failure."""
        mock_connection.fetchval = AsyncMock(side_effect=OSError("connection reset"))

        with pytest.raises(HealthCheckError, match="Database ping failed: connection reset"):
            await connected_manager.validate()
        assert connected_manager.is_active


class TestClose:
    """Test closing the active connection."""

    @pytest.mark.asyncio
    async def test_close_clears_connection(
        self, connected_manager: ConnectionManager, mock_pool: MagicMock
    ) -> None:
        """Test close() releases the pool and leaves nothing active."""
        config = await connected_manager.close()

        assert config.database == "testdb"
        mock_pool.close.assert_awaited_once()
        assert not connected_manager.is_active
        with pytest.raises(NoActiveConnectionError):
            await connected_manager.current()

    @pytest.mark.asyncio
    async def test_close_twice(self, connected_manager: ConnectionManager) -> None:
        """Test a second close reports that nothing is connected."""
        await connected_manager.close()

        with pytest.raises(NoActiveConnectionError, match="No active connection to close"):
            await connected_manager.close()

    @pytest.mark.asyncio
    async def test_close_failure_marks_unhealthy(
        self, connected_manager: ConnectionManager, mock_pool: MagicMock
    ) -> None:
        """Test a pool that fails to close stays referenced but unhealthy."""
        mock_pool.close = AsyncMock(side_effect=RuntimeError("close failed"))

        with pytest.raises(CloseError, match="Failed to close database connection"):
            await connected_manager.close()

        active = await connected_manager.current()
        assert active.pool is mock_pool
        assert not active.healthy

    @pytest.mark.asyncio
    async def test_close_timeout_terminates(
        self, connected_manager: ConnectionManager, mock_pool: MagicMock
    ) -> None:
        """Test a slow close is forced and still counts as closed."""

        async def hang() -> None:
            await asyncio.sleep(10)

        mock_pool.close = hang

        await connected_manager.close()

        mock_pool.terminate.assert_called_once()
        assert not connected_manager.is_active

    @pytest.mark.asyncio
    async def test_shutdown(self, connected_manager: ConnectionManager, mock_pool: MagicMock) -> None:
        """Test shutdown releases the pool and is a no-op afterwards."""
        await connected_manager.shutdown()
        await connected_manager.shutdown()

        mock_pool.close.assert_awaited_once()
        assert not connected_manager.is_active
