"""Connection manager owning the single active database pool.

The manager is the only component that opens or closes pools. Everything else
obtains the active pool through ``current()`` and runs its own I/O outside the
manager's lock.
"""

import asyncio
import logging

from asyncpg import Pool

from pgweb.config.settings import PoolConfig, TimeoutConfig
from pgweb.db.locks import ReadWriteLock
from pgweb.db.pool import close_pool, create_pool, ping_pool
from pgweb.models.connection import ActiveConnection, ConnectionConfig
from pgweb.models.errors import (
    CloseError,
    ConnectionValidationError,
    DatabaseConnectionError,
    HealthCheckError,
    NoActiveConnectionError,
    error_text,
)
from pgweb.observability.metrics import MetricsCollector, metrics

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Holds at most one live pool and the config that produced it.

    State is guarded by a readers-writer lock. ``current()`` takes the shared
    side just long enough to copy the reference; ``connect()`` takes the
    exclusive side for the swap and ``close()`` for the whole close sequence.

    Example:
        >>> manager = ConnectionManager(PoolConfig(), TimeoutConfig())
        >>> await manager.connect(config)
        >>> active = await manager.current()
        >>> async with active.pool.acquire() as conn:
        ...     await conn.fetchval("SELECT 1")
    """

    def __init__(
        self,
        pool_config: PoolConfig,
        timeouts: TimeoutConfig,
        metrics_collector: MetricsCollector | None = None,
    ) -> None:
        """Initialize connection manager.

        Args:
            pool_config: Settings applied to every pool this manager opens.
            timeouts: Per-operation deadlines; ``ping`` is used here.
            metrics_collector: Metrics sink, the process-wide collector by default.
        """
        self.pool_config = pool_config
        self.timeouts = timeouts
        self.metrics = metrics_collector or metrics
        self._lock = ReadWriteLock()
        self._active: ActiveConnection | None = None

    @property
    def is_active(self) -> bool:
        """Whether a connection is installed, without waiting on the lock."""
        return self._active is not None

    async def current(self) -> ActiveConnection:
        """Return the active connection.

        Raises:
            NoActiveConnectionError: If nothing is connected.
        """
        async with self._lock.read():
            active = self._active
        if active is None:
            raise NoActiveConnectionError()
        return active

    async def connect(self, config: ConnectionConfig) -> ActiveConnection:
        """Open, ping and install a pool for ``config``.

        The new pool is opened and pinged before the lock is taken. If either
        step fails the previous connection is left untouched. On success the
        previous pool is closed and the new one installed under the exclusive
        lock.

        Args:
            config: Validated connection configuration.

        Returns:
            ActiveConnection: The newly installed connection.

        Raises:
            DatabaseConnectionError: If the pool cannot be opened.
            ConnectionValidationError: If the opened pool fails its ping.
        """
        logger.info("Opening connection pool for %s", config.safe_dsn)
        try:
            pool = await create_pool(config, self.pool_config)
        except Exception as e:
            self.metrics.increment_connection_swap("failed")
            logger.error("Error opening database %s: %s", config.database, error_text(e))
            raise DatabaseConnectionError(
                f"Failed to open database connection: {error_text(e)}",
                details={"database": config.database},
            ) from e

        try:
            await ping_pool(pool, self.timeouts.ping)
        except asyncio.CancelledError:
            pool.terminate()
            raise
        except Exception as e:
            self.metrics.increment_connection_swap("failed")
            await self._discard(pool)
            message = (
                f"ping timed out after {self.timeouts.ping}s"
                if isinstance(e, TimeoutError)
                else error_text(e)
            )
            logger.error("Error validating database %s: %s", config.database, message)
            raise ConnectionValidationError(
                f"Failed to validate database connection: {message}",
                details={"database": config.database},
            ) from e

        installed = ActiveConnection(pool=pool, config=config)
        try:
            async with self._lock.write():
                previous, self._active = self._active, installed
                if previous is not None:
                    await self._retire(previous)
        except BaseException:
            if self._active is not installed:
                pool.terminate()
            raise

        self.metrics.increment_connection_swap("replaced" if previous else "connected")
        self.metrics.set_active_connection(True)
        logger.info("Connected to %s", config.safe_dsn)
        return installed

    async def validate(self) -> ConnectionConfig:
        """Ping the active pool.

        Returns:
            ConnectionConfig: Config of the connection that answered.

        Raises:
            NoActiveConnectionError: If nothing is connected.
            HealthCheckError: If the ping fails or times out.
        """
        active = await self.current()
        try:
            await ping_pool(active.pool, self.timeouts.ping)
        except Exception as e:
            message = (
                f"ping timed out after {self.timeouts.ping}s"
                if isinstance(e, TimeoutError)
                else error_text(e)
            )
            logger.warning("Health check for %s failed: %s", active.config.database, message)
            raise HealthCheckError(
                f"Database ping failed: {message}",
                details={"database": active.config.database},
            ) from e
        return active.config

    async def close(self) -> ConnectionConfig:
        """Close the active pool and clear the active connection.

        If the pool refuses to close, it stays referenced and is marked
        unhealthy so a later close can retry.

        Returns:
            ConnectionConfig: Config of the connection that was closed.

        Raises:
            NoActiveConnectionError: If nothing is connected.
            CloseError: If the pool cannot be closed.
        """
        async with self._lock.write():
            active = self._active
            if active is None:
                raise NoActiveConnectionError("No active connection to close")
            try:
                await close_pool(active.pool, self.pool_config.close_timeout)
            except Exception as e:
                self._active = active.mark_unhealthy()
                logger.error(
                    "Failed to close pool for %s: %s", active.config.database, error_text(e)
                )
                raise CloseError(
                    f"Failed to close database connection: {error_text(e)}",
                    details={"database": active.config.database},
                ) from e
            self._active = None

        self.metrics.set_active_connection(False)
        logger.info("Closed connection to %s", active.config.safe_dsn)
        return active.config

    async def shutdown(self) -> None:
        """Release the active pool, if any, during process shutdown."""
        async with self._lock.write():
            active, self._active = self._active, None
            if active is None:
                return
            await self._retire(active)
        self.metrics.set_active_connection(False)
        logger.info("Connection to %s released on shutdown", active.config.safe_dsn)

    async def _retire(self, previous: ActiveConnection) -> None:
        """Close a pool that is being replaced; terminate it if that fails."""
        try:
            await close_pool(previous.pool, self.pool_config.close_timeout)
        except asyncio.CancelledError:
            previous.pool.terminate()
            raise
        except Exception as e:
            logger.warning(
                "Closing previous pool for %s failed, terminating it: %s",
                previous.config.database,
                error_text(e),
            )
            previous.pool.terminate()

    async def _discard(self, pool: Pool) -> None:
        try:
            await close_pool(pool, self.pool_config.close_timeout)
        except Exception as e:
            logger.warning("Closing rejected pool failed, terminating it: %s", error_text(e))
            pool.terminate()
