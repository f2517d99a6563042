"""Unit tests for RedisScopeLock / NullScopeLock with a mocked Redis client."""

from unittest.mock import AsyncMock, MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import LockNotOwnedError

from src.hb_identifier.infrastructure.scope_lock import NullScopeLock, RedisScopeLock


def _redis_with_lock(acquired: bool = True):
    lock = MagicMock()
    lock.acquire = AsyncMock(return_value=acquired)
    lock.release = AsyncMock()
    client = MagicMock()
    client.lock.return_value = lock
    return client, lock


class TestNullScopeLock:
    async def test_yields_false(self) -> None:
        async with NullScopeLock().hold(":PAT-202511") as held:
            assert held is False


class TestRedisScopeLock:
    async def test_acquires_and_releases(self) -> None:
        client, lock = _redis_with_lock()
        scope_lock = RedisScopeLock(AsyncMock(return_value=client), blocking_timeout=2.0)

        async with scope_lock.hold("clinic-a:PAT-202511") as held:
            assert held is True
            lock.release.assert_not_awaited()

        lock.release.assert_awaited_once()
        name = client.lock.call_args.args[0]
        assert name == "patient-id-lock:clinic-a:PAT-202511"
        assert client.lock.call_args.kwargs["blocking_timeout"] == 2.0

    async def test_released_when_body_raises(self) -> None:
        client, lock = _redis_with_lock()
        scope_lock = RedisScopeLock(AsyncMock(return_value=client))

        try:
            async with scope_lock.hold("k"):
                raise ValueError("boom")
        except ValueError:
            pass

        lock.release.assert_awaited_once()

    async def test_not_acquired_continues_unlocked(self, caplog) -> None:
        client, lock = _redis_with_lock(acquired=False)
        scope_lock = RedisScopeLock(AsyncMock(return_value=client))

        async with scope_lock.hold("k") as held:
            assert held is False

        lock.release.assert_not_awaited()
        assert "continuing unlocked" in caplog.text

    async def test_redis_down_continues_unlocked(self, caplog) -> None:
        client = MagicMock()
        client.lock.return_value.acquire = AsyncMock(side_effect=RedisConnectionError("refused"))
        scope_lock = RedisScopeLock(AsyncMock(return_value=client))

        async with scope_lock.hold("k") as held:
            assert held is False

        assert "unavailable" in caplog.text

    async def test_expired_lease_is_logged(self, caplog) -> None:
        client, lock = _redis_with_lock()
        lock.release = AsyncMock(side_effect=LockNotOwnedError("expired"))
        scope_lock = RedisScopeLock(AsyncMock(return_value=client))

        async with scope_lock.hold("k"):
            pass

        assert "expired before release" in caplog.text
