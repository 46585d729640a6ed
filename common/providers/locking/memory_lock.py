import time
import uuid
from typing import Dict, Optional, Tuple

from .interface import DistributedLockInterface


class MemoryLock(DistributedLockInterface):
    """Process-local lock for single-instance deployments and tests."""

    def __init__(self):
        # resource_key -> (token, expires_at)
        self._locks: Dict[str, Tuple[str, float]] = {}

    def _live(self, resource_key: str) -> Optional[Tuple[str, float]]:
        held = self._locks.get(resource_key)
        if held and held[1] <= time.monotonic():
            del self._locks[resource_key]
            return None
        return held

    async def acquire_lock(
        self, resource_key: str, timeout_seconds: int = 30
    ) -> Optional[str]:
        if self._live(resource_key):
            return None
        token = str(uuid.uuid4())
        self._locks[resource_key] = (token, time.monotonic() + timeout_seconds)
        return token

    async def release_lock(self, resource_key: str, lock_token: str) -> bool:
        held = self._live(resource_key)
        if not held or held[0] != lock_token:
            return False
        del self._locks[resource_key]
        return True

    async def extend_lock(
        self, resource_key: str, lock_token: str, timeout_seconds: int
    ) -> bool:
        held = self._live(resource_key)
        if not held or held[0] != lock_token:
            return False
        self._locks[resource_key] = (lock_token, time.monotonic() + timeout_seconds)
        return True

    async def is_locked(self, resource_key: str) -> bool:
        return self._live(resource_key) is not None
