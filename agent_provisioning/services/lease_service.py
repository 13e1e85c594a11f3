"""
Provisioning Leases
Per-key mutual exclusion with expiry, so only one provisioning run per
company is in flight at a time.

Two backends:
- LocalLeaseManager: in-process, for a single worker
- RedisLeaseManager: SET NX PX plus token-checked renew and delete, across workers
"""

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple
from uuid import uuid4

import redis.asyncio as redis
from pydantic import BaseModel, Field

from agent_provisioning.core.config import settings
from agent_provisioning.core.logging import get_logger

logger = get_logger(__name__)

# Deletes the key only if it still holds the caller's token
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

# Pushes the expiry out only if the key still holds the caller's token
EXTEND_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("pexpire", KEYS[1], ARGV[2])
else
    return 0
end
"""


class Lease(BaseModel):
    """A held lease. Only the holder of the token can release it."""
    key: str
    token: str = Field(default_factory=lambda: uuid4().hex)
    ttl_seconds: float
    acquired_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class LeaseManager(ABC):
    """Grants expiring, token-checked leases keyed by string"""

    @abstractmethod
    async def acquire(self, key: str, ttl: float, wait: float = 0.0) -> Optional[Lease]:
        """
        Acquire the lease for a key.

        Args:
            key: Lease key
            ttl: Seconds until the lease expires on its own
            wait: Seconds to keep trying while another holder has it

        Returns:
            The lease, or None if it could not be obtained within `wait`
        """
        pass

    @abstractmethod
    async def release(self, lease: Lease) -> bool:
        """Release a lease. Returns False if it expired or was taken over."""
        pass

    @abstractmethod
    async def extend(self, lease: Lease, ttl: Optional[float] = None) -> bool:
        """
        Renew a held lease.

        Args:
            lease: Lease to renew
            ttl: New time to live in seconds (the lease's own ttl if omitted)

        Returns:
            False if the lease already expired or another holder took it
        """
        pass

    async def close(self) -> None:
        """Release backend resources"""
        return None


class LocalLeaseManager(LeaseManager):
    """In-process lease manager"""

    def __init__(
        self,
        poll_interval: float = 0.05,
        clock: Callable[[], float] = time.monotonic
    ):
        self.poll_interval = poll_interval
        self._clock = clock
        # key -> (token, deadline)
        self._leases: Dict[str, Tuple[str, float]] = {}

    def _try_acquire(self, key: str, ttl: float) -> Optional[Lease]:
        now = self._clock()
        current = self._leases.get(key)
        if current is not None and current[1] > now:
            return None

        if current is not None:
            logger.warning(f"Lease expired and taken over: {key}")

        lease = Lease(key=key, ttl_seconds=ttl)
        self._leases[key] = (lease.token, now + ttl)
        return lease

    async def acquire(self, key: str, ttl: float, wait: float = 0.0) -> Optional[Lease]:
        deadline = self._clock() + wait

        while True:
            lease = self._try_acquire(key, ttl)
            if lease is not None:
                logger.debug(f"Lease acquired: {key}")
                return lease

            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.debug(f"Lease busy: {key}")
                return None
            await asyncio.sleep(min(self.poll_interval, remaining))

    async def release(self, lease: Lease) -> bool:
        current = self._leases.get(lease.key)
        if current is None or current[0] != lease.token:
            logger.warning(f"Lease no longer held by releaser: {lease.key}")
            return False

        del self._leases[lease.key]
        logger.debug(f"Lease released: {lease.key}")
        return True

    async def extend(self, lease: Lease, ttl: Optional[float] = None) -> bool:
        now = self._clock()
        current = self._leases.get(lease.key)
        if current is None or current[0] != lease.token or current[1] <= now:
            logger.warning(f"Lease lost before renewal: {lease.key}")
            return False

        self._leases[lease.key] = (lease.token, now + (ttl or lease.ttl_seconds))
        return True


class RedisLeaseManager(LeaseManager):
    """Redis-backed lease manager shared by all workers"""

    def __init__(
        self,
        redis_client: redis.Redis,
        prefix: str = "provisioning:lease",
        poll_interval: float = 0.1
    ):
        self.redis = redis_client
        self.prefix = prefix
        self.poll_interval = poll_interval

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def acquire(self, key: str, ttl: float, wait: float = 0.0) -> Optional[Lease]:
        lease = Lease(key=key, ttl_seconds=ttl)
        deadline = time.monotonic() + wait

        while True:
            acquired = await self.redis.set(
                self._key(key),
                lease.token,
                nx=True,
                px=max(1, int(ttl * 1000))
            )
            if acquired:
                logger.debug(f"Lease acquired: {key}")
                return lease

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.debug(f"Lease busy: {key}")
                return None
            await asyncio.sleep(min(self.poll_interval, remaining))

    async def release(self, lease: Lease) -> bool:
        result = await self.redis.eval(RELEASE_SCRIPT, 1, self._key(lease.key), lease.token)
        if not result:
            logger.warning(f"Lease no longer held by releaser: {lease.key}")
            return False

        logger.debug(f"Lease released: {lease.key}")
        return True

    async def extend(self, lease: Lease, ttl: Optional[float] = None) -> bool:
        ttl_ms = max(1, int((ttl or lease.ttl_seconds) * 1000))
        result = await self.redis.eval(EXTEND_SCRIPT, 1, self._key(lease.key), lease.token, ttl_ms)
        if not result:
            logger.warning(f"Lease lost before renewal: {lease.key}")
            return False
        return True

    async def close(self) -> None:
        await self.redis.aclose()


# Singleton instance
_lease_manager: Optional[LeaseManager] = None


def create_lease_manager(backend: Optional[str] = None) -> LeaseManager:
    """Create a lease manager for the configured backend"""
    backend = (backend or settings.lease_backend).lower()

    if backend == "redis":
        pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            max_connections=20,
            decode_responses=True
        )
        return RedisLeaseManager(redis.Redis(connection_pool=pool))

    if backend != "memory":
        raise ValueError(f"Unknown lease backend: {backend}")

    return LocalLeaseManager()


def get_lease_manager() -> LeaseManager:
    """Get or create the lease manager singleton"""
    global _lease_manager
    if _lease_manager is None:
        _lease_manager = create_lease_manager()
        logger.info(f"Using {settings.lease_backend} lease backend")
    return _lease_manager


async def close_lease_manager() -> None:
    """Close the lease manager singleton"""
    global _lease_manager
    if _lease_manager is not None:
        await _lease_manager.close()
        _lease_manager = None
