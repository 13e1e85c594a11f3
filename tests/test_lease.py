"""
Tests for provisioning leases
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from agent_provisioning.services.lease_service import (
    Lease,
    LocalLeaseManager,
    RedisLeaseManager,
    EXTEND_SCRIPT,
    RELEASE_SCRIPT,
    create_lease_manager,
)

from conftest import FakeClock


class TestLocalLeaseManager:
    """Tests for the in-process lease manager"""

    @pytest.mark.asyncio
    async def test_acquire_and_release(self):
        manager = LocalLeaseManager()

        lease = await manager.acquire("company:7", ttl=30)

        assert lease is not None
        assert lease.key == "company:7"
        assert await manager.release(lease) is True
        assert await manager.acquire("company:7", ttl=30) is not None

    @pytest.mark.asyncio
    async def test_busy_key_is_refused(self):
        manager = LocalLeaseManager()
        await manager.acquire("company:7", ttl=30)

        assert await manager.acquire("company:7", ttl=30) is None
        assert await manager.acquire("company:8", ttl=30) is not None

    @pytest.mark.asyncio
    async def test_expired_lease_can_be_reacquired(self):
        clock = FakeClock()
        manager = LocalLeaseManager(clock=clock)
        stale = await manager.acquire("company:7", ttl=30)

        clock.now += 31
        fresh = await manager.acquire("company:7", ttl=30)

        assert fresh is not None
        assert fresh.token != stale.token
        # The old holder can no longer release the new lease
        assert await manager.release(stale) is False
        assert await manager.release(fresh) is True

    @pytest.mark.asyncio
    async def test_release_requires_token(self):
        manager = LocalLeaseManager()
        lease = await manager.acquire("company:7", ttl=30)

        forged = Lease(key="company:7", ttl_seconds=30)

        assert await manager.release(forged) is False
        assert await manager.acquire("company:7", ttl=30) is None
        assert await manager.release(lease) is True

    @pytest.mark.asyncio
    async def test_waits_for_release(self):
        manager = LocalLeaseManager(poll_interval=0.01)
        lease = await manager.acquire("company:7", ttl=30)

        waiter = asyncio.create_task(manager.acquire("company:7", ttl=30, wait=1.0))
        await asyncio.sleep(0.03)
        assert not waiter.done()

        await manager.release(lease)
        acquired = await waiter

        assert acquired is not None

    @pytest.mark.asyncio
    async def test_extend_pushes_out_expiry(self):
        clock = FakeClock()
        manager = LocalLeaseManager(clock=clock)
        lease = await manager.acquire("company:7", ttl=30)

        clock.now += 20
        assert await manager.extend(lease) is True
        clock.now += 20

        # Still held 40s after acquiring a 30s lease
        assert await manager.acquire("company:7", ttl=30) is None
        assert await manager.extend(lease, ttl=5) is True
        clock.now += 6
        assert await manager.acquire("company:7", ttl=30) is not None

    @pytest.mark.asyncio
    async def test_extend_fails_once_expired_or_taken_over(self):
        clock = FakeClock()
        manager = LocalLeaseManager(clock=clock)
        stale = await manager.acquire("company:7", ttl=30)

        clock.now += 31
        assert await manager.extend(stale) is False

        fresh = await manager.acquire("company:7", ttl=30)
        assert await manager.extend(stale) is False
        assert await manager.extend(fresh) is True


class TestRedisLeaseManager:
    """Tests for the Redis lease manager"""

    @pytest.fixture
    def redis_client(self):
        client = MagicMock()
        client.set = AsyncMock(return_value=True)
        client.eval = AsyncMock(return_value=1)
        client.aclose = AsyncMock()
        return client

    @pytest.mark.asyncio
    async def test_acquire_uses_set_nx_px(self, redis_client):
        manager = RedisLeaseManager(redis_client)

        lease = await manager.acquire("company:7", ttl=300)

        assert lease is not None
        redis_client.set.assert_awaited_once_with(
            "provisioning:lease:company:7",
            lease.token,
            nx=True,
            px=300000
        )

    @pytest.mark.asyncio
    async def test_acquire_refused_when_key_exists(self, redis_client):
        redis_client.set = AsyncMock(return_value=None)
        manager = RedisLeaseManager(redis_client)

        assert await manager.acquire("company:7", ttl=300) is None

    @pytest.mark.asyncio
    async def test_acquire_retries_until_wait_expires(self, redis_client):
        redis_client.set = AsyncMock(side_effect=[None, None, True])
        manager = RedisLeaseManager(redis_client, poll_interval=0.01)

        lease = await manager.acquire("company:7", ttl=300, wait=1.0)

        assert lease is not None
        assert redis_client.set.await_count == 3

    @pytest.mark.asyncio
    async def test_release_is_token_checked(self, redis_client):
        manager = RedisLeaseManager(redis_client)
        lease = Lease(key="company:7", ttl_seconds=300)

        assert await manager.release(lease) is True
        redis_client.eval.assert_awaited_once_with(
            RELEASE_SCRIPT, 1, "provisioning:lease:company:7", lease.token
        )

        redis_client.eval = AsyncMock(return_value=0)
        assert await manager.release(lease) is False

    @pytest.mark.asyncio
    async def test_extend_is_token_checked(self, redis_client):
        manager = RedisLeaseManager(redis_client)
        lease = Lease(key="company:7", ttl_seconds=300)

        assert await manager.extend(lease) is True
        redis_client.eval.assert_awaited_once_with(
            EXTEND_SCRIPT, 1, "provisioning:lease:company:7", lease.token, 300000
        )

        redis_client.eval = AsyncMock(return_value=0)
        assert await manager.extend(lease, ttl=1.5) is False
        redis_client.eval.assert_awaited_once_with(
            EXTEND_SCRIPT, 1, "provisioning:lease:company:7", lease.token, 1500
        )


class TestLeaseManagerFactory:
    """Tests for backend selection"""

    def test_memory_backend(self):
        assert isinstance(create_lease_manager("memory"), LocalLeaseManager)

    def test_redis_backend(self):
        assert isinstance(create_lease_manager("redis"), RedisLeaseManager)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_lease_manager("zookeeper")
