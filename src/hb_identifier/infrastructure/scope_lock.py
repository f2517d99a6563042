"""Per-scope allocation locks.

RedisScopeLock serialises allocate+insert for one scope across every
application instance. It only reduces conflicts: the unique constraint on
patients (id_scope, patient_id) is still what guarantees uniqueness, so an
unreachable Redis downgrades to unlocked allocation instead of failing.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from redis.exceptions import LockError, RedisError

from src.hb_common.redis_client import get_redis

logger = logging.getLogger(__name__)

_KEY_PREFIX = "patient-id-lock"


class NullScopeLock:
    """No serialisation; conflicts are resolved by constraint + retry."""

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[bool]:
        yield False


class RedisScopeLock:
    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        blocking_timeout: float = 5.0,
        lease_seconds: float = 30.0,
    ) -> None:
        self._redis_factory = redis_factory
        self._blocking_timeout = blocking_timeout
        self._lease_seconds = lease_seconds

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[bool]:
        lock = None
        try:
            client = await self._redis_factory()
            candidate = client.lock(
                f"{_KEY_PREFIX}:{key}",
                timeout=self._lease_seconds,
                blocking_timeout=self._blocking_timeout,
            )
            if await candidate.acquire():
                lock = candidate
            else:
                logger.warning("Timed out waiting for allocation lock %s; continuing unlocked", key)
        except RedisError as exc:
            logger.warning("Allocation lock %s unavailable (%s); continuing unlocked", key, exc)

        try:
            yield lock is not None
        finally:
            if lock is not None:
                try:
                    await lock.release()
                except LockError:
                    logger.warning("Allocation lock %s expired before release", key)
                except RedisError as exc:
                    logger.warning("Failed to release allocation lock %s: %s", key, exc)
