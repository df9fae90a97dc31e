"""Lock client abstraction - Redis or in-process fallback."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis
import redis.asyncio as aioredis
from redis.exceptions import LockError, RedisError

logger = logging.getLogger(__name__)


class LockTimeoutError(TimeoutError):
    """Raised when a named lock could not be acquired within the timeout."""


class LockClient:
    """Named mutual exclusion - uses Redis if available, else per-process asyncio locks.

    Redis locks serialize callers across worker processes; the in-memory
    backend only serializes callers that share this event loop.
    """

    def __init__(self, redis_url: Optional[str] = None):
        self.backend = "memory"
        self.redis: aioredis.Redis | None = None
        # name -> [lock, number of holders and waiters]
        self._memory_locks: dict[str, list] = {}

        if redis_url:
            try:
                redis.from_url(redis_url).ping()
                self.redis = aioredis.from_url(redis_url)
                self.backend = "redis"
                logger.info("Using Redis for locks")
            except (RedisError, ValueError) as e:
                logger.warning(f"Redis not available, using in-process locks: {e}")
        else:
            logger.info("Using in-process locks (Redis URL not provided)")

    @asynccontextmanager
    async def lock(self, name: str, timeout: float) -> AsyncIterator[None]:
        """Hold the lock ``name`` for the duration of the block.

        Raises:
            LockTimeoutError: If the lock is not acquired within ``timeout`` seconds
        """
        if self.backend == "redis":
            async with self._redis_lock(name, timeout):
                yield
        else:
            async with self._memory_lock(name, timeout):
                yield

    def is_locked(self, name: str) -> bool:
        """Whether an in-process lock is currently held (always False for Redis)."""
        entry = self._memory_locks.get(name)
        return bool(entry and entry[0].locked())

    @asynccontextmanager
    async def _redis_lock(self, name: str, timeout: float) -> AsyncIterator[None]:
        # The lease matches the wait so a crashed holder cannot block the key forever
        lock = self.redis.lock(f"lock:{name}", timeout=timeout, blocking_timeout=timeout)
        acquired = await lock.acquire()
        if not acquired:
            raise LockTimeoutError(f"Timed out after {timeout}s waiting for lock {name}")
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                logger.warning(f"Lock {name} expired before release: {e}")

    @asynccontextmanager
    async def _memory_lock(self, name: str, timeout: float) -> AsyncIterator[None]:
        entry = self._memory_locks.get(name)
        if entry is None:
            entry = [asyncio.Lock(), 0]
            self._memory_locks[name] = entry
        entry[1] += 1
        try:
            try:
                # wait_for on 3.11 can time out after acquire() already won the lock
                async with asyncio.timeout(timeout):
                    await entry[0].acquire()
            except TimeoutError as exc:
                raise LockTimeoutError(f"Timed out after {timeout}s waiting for lock {name}") from exc
            try:
                yield
            finally:
                entry[0].release()
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                self._memory_locks.pop(name, None)
