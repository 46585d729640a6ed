import asyncio
import time
from abc import ABC, abstractmethod
from typing import Optional


class DistributedLockInterface(ABC):
    """Mutual exclusion across processes, keyed by resource name.

    Locks carry a TTL so a crashed holder can never wedge a resource forever.
    Release is token-checked: only the holder that acquired a lock may free it.
    """

    @abstractmethod
    async def acquire_lock(
        self, resource_key: str, timeout_seconds: int = 30
    ) -> Optional[str]:
        """
        Try once to take the lock.

        Args:
            resource_key: The resource to lock (e.g., "reconcile:tenant:42")
            timeout_seconds: Lock expiration time in seconds

        Returns:
            Lock token if acquired, None if someone else holds it
        """
        pass

    @abstractmethod
    async def release_lock(self, resource_key: str, lock_token: str) -> bool:
        """Release the lock. False when the token no longer owns it."""
        pass

    @abstractmethod
    async def extend_lock(
        self, resource_key: str, lock_token: str, timeout_seconds: int
    ) -> bool:
        """Reset the expiry of a lock we still hold. False when the token lost it."""
        pass

    @abstractmethod
    async def is_locked(self, resource_key: str) -> bool:
        pass

    async def acquire_lock_with_retry(
        self,
        resource_key: str,
        lock_ttl_seconds: int = 30,
        acquire_timeout_seconds: float = 5.0,
        retry_interval_ms: int = 50,
    ) -> Optional[str]:
        """
        Poll ``acquire_lock`` until it succeeds or the wait budget runs out.

        At least one attempt is always made, even with a zero budget.

        Returns:
            Lock token if acquired, None if timeout exceeded
        """
        end_time = time.monotonic() + acquire_timeout_seconds
        while True:
            token = await self.acquire_lock(resource_key, lock_ttl_seconds)
            if token:
                return token
            if time.monotonic() >= end_time:
                return None
            await asyncio.sleep(retry_interval_ms / 1000)
