"""
Identity Lock Service - serializes event processing per phone.

Duplicate webhook deliveries for the same phone would otherwise race on the
conversation row (last writer wins on the quote state). Redis-backed lock
across workers, with an in-process fallback for development.
"""
import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import redis.asyncio as aioredis
from redis.exceptions import LockError

from brokerbot.core.config import settings
from brokerbot.core.logging import logger


class IdentityLockTimeout(Exception):
    """Raised when the lock for a phone could not be acquired in time."""

    def __init__(self, phone: str, timeout: float):
        self.phone = phone
        self.timeout = timeout
        super().__init__(f"Could not acquire lock for {phone} within {timeout}s")


class IdentityLock(ABC):
    """Abstract base class for per-identity locks."""

    @abstractmethod
    def hold(self, phone: str):
        """Async context manager holding the lock for one phone."""
        pass


class InMemoryIdentityLock(IdentityLock):
    """asyncio lock registry for a single process."""

    def __init__(self, timeout_seconds: float = 60):
        self.timeout_seconds = timeout_seconds
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, phone: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(phone, asyncio.Lock())
        self._waiters[phone] = self._waiters.get(phone, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                raise IdentityLockTimeout(phone, self.timeout_seconds)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._waiters[phone] -= 1
            # Drop idle locks so the registry does not grow with every phone
            if self._waiters[phone] == 0:
                self._waiters.pop(phone, None)
                self._locks.pop(phone, None)

    def active_count(self) -> int:
        """Number of phones with an event in flight or waiting."""
        return len(self._locks)


class RedisIdentityLock(IdentityLock):
    """Redis-backed lock shared by every worker."""

    def __init__(self, redis_url: str, timeout_seconds: float = 60):
        self._redis = aioredis.from_url(redis_url)
        self._prefix = "brokerbot:lock:"
        self.timeout_seconds = timeout_seconds

    def _key(self, phone: str) -> str:
        return f"{self._prefix}{phone}"

    @asynccontextmanager
    async def hold(self, phone: str) -> AsyncIterator[None]:
        # The lock auto-expires so a crashed worker cannot block a phone forever
        lock = self._redis.lock(
            self._key(phone),
            timeout=self.timeout_seconds,
            blocking_timeout=self.timeout_seconds,
        )
        acquired = await lock.acquire()
        if not acquired:
            raise IdentityLockTimeout(phone, self.timeout_seconds)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                logger.warning(f"Lock for {phone} expired before release: {e}")


# Singleton lock instance
_identity_lock: Optional[IdentityLock] = None


def get_identity_lock() -> IdentityLock:
    """Get the identity lock instance (creates if needed)."""
    global _identity_lock

    if _identity_lock is not None:
        return _identity_lock

    timeout = settings.IDENTITY_LOCK_TIMEOUT_SECONDS
    if settings.REDIS_URL and settings.APP_ENV != "development":
        _identity_lock = RedisIdentityLock(settings.REDIS_URL, timeout)
        logger.info("Using Redis identity lock")
    else:
        logger.info("Using in-memory identity lock (development mode)")
        _identity_lock = InMemoryIdentityLock(timeout)

    return _identity_lock
