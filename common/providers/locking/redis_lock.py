import uuid
from typing import Optional

import redis.asyncio as redis

from common.core.config import settings
from common.core.exceptions import DataSourceError
from common.core.otel_axiom_exporter import get_logger
from .interface import DistributedLockInterface

logger = get_logger(__name__)

# Delete only if we still own it
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


# Push the expiry out only if we still own it
EXTEND_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("expire", KEYS[1], ARGV[2])
else
    return 0
end
"""


class RedisLock(DistributedLockInterface):
    """SET NX EX lock. Backend failures surface as DataSourceError, never as 'busy'."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self._client = client
        self._lock_prefix = "lock:"

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                settings.redis_connection_url, decode_responses=True
            )
        return self._client

    async def acquire_lock(
        self, resource_key: str, timeout_seconds: int = 30
    ) -> Optional[str]:
        lock_key = f"{self._lock_prefix}{resource_key}"
        lock_token = str(uuid.uuid4())

        try:
            acquired = await self._get_client().set(
                lock_key, lock_token, nx=True, ex=timeout_seconds
            )
        except redis.RedisError as e:
            logger.error(f"Error acquiring lock for {resource_key}: {e}")
            raise DataSourceError(f"Lock backend unavailable: {e}") from e

        if acquired:
            logger.debug(f"Acquired lock for {resource_key}")
            return lock_token
        logger.debug(f"Lock for {resource_key} is held elsewhere")
        return None

    async def release_lock(self, resource_key: str, lock_token: str) -> bool:
        lock_key = f"{self._lock_prefix}{resource_key}"
        try:
            result = await self._get_client().eval(
                RELEASE_SCRIPT, 1, lock_key, lock_token
            )
        except redis.RedisError as e:
            # The TTL frees it eventually
            logger.error(f"Error releasing lock for {resource_key}: {e}")
            return False

        if not result:
            logger.warning(
                f"Cannot release lock for {resource_key} - token mismatch or lock expired"
            )
        return bool(result)

    async def extend_lock(
        self, resource_key: str, lock_token: str, timeout_seconds: int
    ) -> bool:
        lock_key = f"{self._lock_prefix}{resource_key}"
        try:
            result = await self._get_client().eval(
                EXTEND_SCRIPT, 1, lock_key, lock_token, timeout_seconds
            )
        except redis.RedisError as e:
            logger.error(f"Error extending lock for {resource_key}: {e}")
            raise DataSourceError(f"Lock backend unavailable: {e}") from e

        if not result:
            logger.warning(
                f"Cannot extend lock for {resource_key} - token mismatch or lock expired"
            )
        return bool(result)

    async def is_locked(self, resource_key: str) -> bool:
        try:
            return bool(
                await self._get_client().exists(f"{self._lock_prefix}{resource_key}")
            )
        except redis.RedisError as e:
            raise DataSourceError(f"Lock backend unavailable: {e}") from e
