"""
Shared Resource Manager

This module manages process-wide resources created once at start-up and
shared across requests:
- The async Redis client behind the resolution cache
- The code generator built from the immutable short code configuration

Design:
- Initialized on application startup, released on shutdown
- A Redis that is down at start-up is logged and tolerated; the cache fails
  open and every lookup falls through to the database
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shortlink.core.setting import Settings, settings
from shortlink.services.code_generator import CodeGenerator
from shortlink.services.resolution_cache import ResolutionCache

logger = logging.getLogger(__name__)

# Global Redis client (initialized on startup)
_redis_client: Optional[redis.Redis] = None

# Global code generator (initialized on startup)
_code_generator: Optional[CodeGenerator] = None


def get_code_generator() -> CodeGenerator:
    """
    Get the shared code generator.

    Falls back to building one from settings if start-up hasn't run
    (e.g. in scripts); the result is kept for later calls.
    """
    global _code_generator
    if _code_generator is None:
        _code_generator = CodeGenerator(settings.short_code)
    return _code_generator


def get_resolution_cache() -> ResolutionCache:
    """
    Get a resolution cache bound to the shared Redis client.

    Returns a cache with no backend (always miss) if Redis isn't initialized.
    """
    return ResolutionCache(
        _redis_client,
        default_ttl=settings.CACHE_TTL,
        timeout=settings.CACHE_TIMEOUT,
    )


async def initialize_resources(config: Settings = settings) -> None:
    """Create the Redis client and code generator."""
    global _redis_client, _code_generator

    _code_generator = CodeGenerator(config.short_code)
    logger.info(
        f"Code generator ready: alphabet size={_code_generator.base}, "
        f"length={_code_generator.default_length}"
    )

    if _redis_client is not None:
        logger.warning("Redis client already initialized")
        return

    _redis_client = redis.from_url(
        config.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=config.CACHE_TIMEOUT,
        socket_timeout=config.CACHE_TIMEOUT,
    )
    try:
        await _redis_client.ping()
        logger.info("Redis connected")
    except (RedisError, OSError) as e:
        logger.warning(f"Redis unavailable at start-up, cache disabled until it recovers: {e}")


async def shutdown_resources() -> None:
    """Close the Redis client."""
    global _redis_client

    if _redis_client is not None:
        try:
            await _redis_client.aclose()
            logger.info("Redis connection closed")
        except (RedisError, OSError) as e:
            logger.warning(f"Failed to close Redis connection: {e}")
        _redis_client = None
