"""
Resolution Cache

Read-through / write-through accelerator in front of the link registry.
Maps "short_code:<code>" to the raw destination URL string in Redis.

Design Decisions:
- The cache is never authoritative: every set follows a durable write and
  every miss falls through to the database
- Fails open: backend errors and timeouts are logged and turned into a miss
  (reads) or a no-op (writes), so a slow or dead Redis never blocks redirects
- Every operation is bounded by a short timeout
- TTL expiry is delegated to Redis; an expired entry is simply absent
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Optional, TypeVar

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

SHORT_CODE_KEY_PREFIX = "short_code:"

F = TypeVar("F", bound=Callable[..., Any])


def short_code_key(short_code: str) -> str:
    """Build the cache key for a short code."""
    return f"{SHORT_CODE_KEY_PREFIX}{short_code}"


def fail_open(default: Any) -> Callable[[F], F]:
    """
    Wrap a cache coroutine so backend failures return `default` instead of raising.

    Args:
        default: Value returned when Redis is disabled, errors or times out
    """

    def decorator(method: F) -> F:
        @functools.wraps(method)
        async def wrapper(self: "ResolutionCache", *args, **kwargs):
            if self.redis is None:
                return default
            try:
                return await asyncio.wait_for(method(self, *args, **kwargs), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Cache {method.__name__} timed out after {self.timeout}s")
            except (RedisError, OSError) as e:
                logger.warning(f"Cache {method.__name__} error: {e}")
            return default

        return wrapper

    return decorator


class ResolutionCache:
    """
    Best-effort key/value cache with per-entry TTL.

    Args:
        redis: Shared async Redis client, or None to run without a cache
        default_ttl: Seconds an entry survives when no TTL is given
        timeout: Seconds to wait on any single operation
    """

    def __init__(self, redis: Optional[Redis], default_ttl: int = 86400, timeout: float = 0.25):
        self.redis = redis
        self.default_ttl = default_ttl
        self.timeout = timeout

    @fail_open(default=None)
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when absent, expired or unreachable."""
        value = await self.redis.get(key)
        if isinstance(value, bytes):
            value = value.decode()
        return value

    @fail_open(default=False)
    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """
        Store a value with an expiry.

        Returns:
            True if stored, False if the write was skipped or failed
        """
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return False
        await self.redis.set(key, value, ex=ttl)
        return True

    @fail_open(default=False)
    async def delete(self, key: str) -> bool:
        """Drop a key. Returns True if a key was removed."""
        return bool(await self.redis.delete(key))

    @fail_open(default=0)
    async def increment(self, key: str, ttl: Optional[int] = None) -> int:
        """
        Atomically increment a counter.

        The expiry is set only on the first increment (result == 1) so a
        window starts with its first hit. Returns 0 if the backend failed.
        """
        value = await self.redis.incr(key)
        if ttl and value == 1:
            await self.redis.expire(key, ttl)
        return value

    @fail_open(default=False)
    async def ping(self) -> bool:
        """Return True if the backend answers."""
        return bool(await self.redis.ping())

    async def get_short_code(self, short_code: str) -> Optional[str]:
        return await self.get(short_code_key(short_code))

    async def set_short_code(self, short_code: str, original_url: str, ttl: Optional[int] = None) -> bool:
        return await self.set(short_code_key(short_code), original_url, ttl)

    async def invalidate_short_code(self, short_code: str) -> bool:
        return await self.delete(short_code_key(short_code))
