"""Readers-writer lock for asyncio tasks.

asyncio ships mutexes and semaphores but no shared/exclusive lock. This one
lets any number of readers hold it together while a writer holds it alone.
Writers are preferred: once a writer is waiting, new readers queue behind it,
so a pending connection swap is not starved by a steady stream of reads.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class ReadWriteLock:
    """Async readers-writer lock with writer preference.

    Example:
        >>> lock = ReadWriteLock()
        >>> async with lock.read():
        ...     snapshot = shared_state
        >>> async with lock.write():
        ...     shared_state = new_state
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @property
    def readers(self) -> int:
        """Number of tasks currently holding the shared lock."""
        return self._readers

    @property
    def writer_active(self) -> bool:
        """Whether a task currently holds the exclusive lock."""
        return self._writer

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        """Hold the lock in shared mode for the duration of the block."""
        async with self._cond:
            await self._cond.wait_for(self._can_read)
            self._readers += 1
        try:
            yield
        finally:
            await asyncio.shield(self._release_read())

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        """Hold the lock exclusively for the duration of the block."""
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(self._can_write)
            except BaseException:
                # A cancelled writer must wake readers it was holding back.
                self._writers_waiting -= 1
                self._cond.notify_all()
                raise
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            await asyncio.shield(self._release_write())

    def _can_read(self) -> bool:
        return not self._writer and self._writers_waiting == 0

    def _can_write(self) -> bool:
        return not self._writer and self._readers == 0

    async def _release_read(self) -> None:
        async with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    async def _release_write(self) -> None:
        async with self._cond:
            self._writer = False
            self._cond.notify_all()
