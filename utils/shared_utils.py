"""
Shared utility functions for routers and services
"""
import json
import logging
from typing import Optional, Callable, Any, Awaitable
from datetime import datetime

import redis

from config.settings import settings

logger = logging.getLogger(__name__)

# Redis client for caching
_redis_cache_client = None
_redis_cache_available = False

if settings.redis_url:
    try:
        # Parse Redis URL (supports redis:// and redis://:password@host:port)
        _redis_cache_client = redis.from_url(settings.redis_url, decode_responses=True)
        # Test connection
        _redis_cache_client.ping()
        _redis_cache_available = True
        logger.info("Redis connected successfully for caching")
    except redis.RedisError as e:
        logger.warning(f"Redis connection failed: {e}. Caching will fall back to direct execution.")
        _redis_cache_client = None
        _redis_cache_available = False
else:
    logger.info("REDIS_URL not set. Caching will fall back to direct execution.")


async def get_cached(key: str, fallback_func: Callable[[], Awaitable[Any]], ttl_seconds: int) -> Any:
    """
    Distributed caching utility with Redis fallback.

    Attempts to fetch data from Redis cache. If not found or Redis is unavailable,
    executes the fallback function and stores the result in Redis with TTL.

    Args:
        key: Redis cache key (e.g., "user:123")
        fallback_func: Async callable that returns the data to cache
        ttl_seconds: Time-to-live in seconds for the cached value

    Returns:
        The cached value or the result from fallback_func
    """
    if _redis_cache_available and _redis_cache_client:
        try:
            cached_value = _redis_cache_client.get(key)
            if cached_value is not None:
                try:
                    return json.loads(cached_value)
                except (json.JSONDecodeError, TypeError):
                    return cached_value
        except redis.RedisError as e:
            logger.warning(f"Redis cache get failed for key '{key}': {e}. Executing fallback.")

    result = await fallback_func()

    if _redis_cache_available and _redis_cache_client:
        try:
            if isinstance(result, (dict, list)):
                cache_value = json.dumps(result, default=str)
            else:
                cache_value = str(result)
            _redis_cache_client.setex(key, ttl_seconds, cache_value)
        except redis.RedisError as e:
            logger.warning(f"Redis cache set failed for key '{key}': {e}. Result not cached.")

    return result


def invalidate_cached(key: str) -> None:
    """Drop a cached entry after the underlying row changed."""
    if _redis_cache_available and _redis_cache_client:
        try:
            _redis_cache_client.delete(key)
        except redis.RedisError as e:
            logger.warning(f"Redis cache delete failed for key '{key}': {e}")


def log_endpoint_event(endpoint: str, user_id: Optional[Any] = None, result: str = "success", details: Optional[dict] = None):
    """Log endpoint execution to app.log"""
    logger.info(
        f"{endpoint} | user={user_id or 'none'} | {result} | "
        f"{json.dumps(details or {}, default=str)} | {datetime.utcnow().isoformat()}"
    )
