"""Database connection pool management.

This module provides the low-level pool operations the connection manager is
built from: opening an asyncpg pool for runtime-supplied credentials, pinging
it under a deadline, and closing it gracefully with a forced fallback.
"""

import asyncio
import logging

import asyncpg
from asyncpg import Pool

from pgweb.config.settings import PoolConfig
from pgweb.models.connection import ConnectionConfig

logger = logging.getLogger(__name__)


async def create_pool(config: ConnectionConfig, pool_config: PoolConfig) -> Pool:
    """Create a connection pool for the given credentials.

    Args:
        config: Validated connection configuration.
        pool_config: Pool sizing and timeout settings.

    Returns:
        Pool: An initialized asyncpg connection pool.

    Raises:
        asyncpg.PostgresError: If the server rejects the connection.
        OSError: If the host cannot be reached.
        TimeoutError: If opening a connection exceeds the connect timeout.

    Example:
        >>> config = ConnectionConfig(host="localhost", port=5432, database="app")
        >>> pool = await create_pool(config, PoolConfig())
        >>> async with pool.acquire() as conn:
        ...     result = await conn.fetch("SELECT 1")
    """
    pool = await asyncpg.create_pool(
        **config.connect_kwargs(),
        min_size=pool_config.min_size,
        max_size=max(pool_config.max_size, pool_config.min_size),
        timeout=pool_config.connect_timeout,
    )

    if pool is None:
        raise RuntimeError(f"Failed to create connection pool for {config.database}")

    return pool


async def ping_pool(pool: Pool, timeout: float) -> None:  # noqa: ASYNC109
    """Round-trip a trivial statement through the pool.

    Args:
        pool: Pool to check.
        timeout: Deadline in seconds covering acquire and query.

    Raises:
        TimeoutError: If the deadline expires.
        asyncpg.PostgresError: If the server reports an error.
    """
    async with asyncio.timeout(timeout), pool.acquire() as conn:
        await conn.fetchval("SELECT 1")


async def close_pool(pool: Pool, timeout: float = 10.0) -> bool:  # noqa: ASYNC109
    """Close a connection pool gracefully.

    The pool is given ``timeout`` seconds to release its connections. If
    graceful shutdown takes too long, the pool is terminated instead.

    Args:
        pool: Pool to close.
        timeout: Maximum time in seconds to wait for graceful shutdown
            before forcing termination.

    Returns:
        bool: True if the pool closed gracefully, False if it was terminated.

    Raises:
        Exception: Whatever ``pool.close()`` raises other than a timeout; the
            pool is left as it was so the caller can decide what to do.
    """
    try:
        await asyncio.wait_for(pool.close(), timeout=timeout)
    except TimeoutError:
        logger.warning("Graceful pool close timed out after %.1fs, forcing termination", timeout)
        pool.terminate()
        return False
    return True
