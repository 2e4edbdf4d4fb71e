# simreco/utils/locks.py
from __future__ import annotations
from typing import Optional
from redis.asyncio import Redis
import asyncio
import logging
import uuid

logger = logging.getLogger(__name__)

# Compare-and-act on the owner token in one server-side step
_RELEASE_LUA = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""

_EXTEND_LUA = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('expire', KEYS[1], ARGV[2])
end
return 0
"""

class RedisLock:
    """
    Simple, single-instance lock using SET NX EX.
    Keeps two sync runs from reconciling the same namespace at once.
    Long runs keep the lock alive with `keep_alive`; release and extend only
    ever touch a lock this instance still owns.
    """
    def __init__(self, redis: Redis, key: str, ttl: int = 20):
        self.redis = redis
        self.key = f"lock:{key}"
        self.ttl = ttl
        self._token: Optional[str] = None

    async def acquire(self) -> bool:
        token = uuid.uuid4().hex
        ok = await self.redis.set(self.key, token, nx=True, ex=self.ttl)
        if ok:
            self._token = token
            return True
        return False

    async def extend(self) -> bool:
        """Reset the TTL; False when the lock expired or belongs to someone else now."""
        if self._token is None:
            return False
        return bool(await self.redis.eval(_EXTEND_LUA, 1, self.key, self._token, self.ttl))

    async def keep_alive(self, interval: float) -> None:
        """Extend every `interval` seconds until cancelled or the lock is lost."""
        while True:
            await asyncio.sleep(interval)
            if not await self.extend():
                logger.error(f"[lock] lost {self.key} before the holder finished")
                return

    async def release(self) -> None:
        if self._token is None:
            return
        deleted = await self.redis.eval(_RELEASE_LUA, 1, self.key, self._token)
        if not deleted:
            logger.warning(f"[lock] {self.key} had expired before release")
        self._token = None
