"""Redis caching utilities.

Read-through caching for listing queries. Cached values are the already
scoped, already authorized listing payloads; authorization decisions are
never cached. Keys for scoped listings include the caller's
DataScopeFilter token so differently scoped callers never share an entry.
"""

import functools
import hashlib
import json
import logging
from datetime import date, datetime
from typing import Callable, Optional

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)

# Shared client, created lazily on first use
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
    return _redis_client


async def close_redis():
    """Called from the app lifespan on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def cache_key(*args, **kwargs) -> str:
    """Deterministic hash of the given arguments."""
    if not args and not kwargs:
        return "default"

    key_data = json.dumps({"args": args, "kwargs": kwargs}, sort_keys=True, default=str)
    return hashlib.md5(key_data.encode()).hexdigest()


def _simple_kwargs(kwargs: dict) -> dict:
    # Dependency-injected objects (sessions, principals) never enter the key
    simple = {}
    for k, v in kwargs.items():
        if k.startswith("_"):
            continue
        if isinstance(v, (int, str, bool, float, type(None))):
            simple[k] = v
        elif isinstance(v, (date, datetime)):
            simple[k] = v.isoformat()
    return simple


def cached(
    ttl: int = 300,
    prefix: str = "cache",
    key_builder: Optional[Callable] = None,
):
    """Decorator to cache JSON-serializable function results in Redis.

    Args:
        ttl: Time-to-live in seconds (default: 300 = 5 minutes)
        prefix: Cache key prefix for namespacing
        key_builder: Custom function to build cache key from args/kwargs

    Example:
        @cached(ttl=60, prefix="orders", key_builder=_orders_key)
        async def list_orders(db, scope, *, status=None, limit=50, offset=0):
            ...

    Default keys: {prefix}:{function_name}:{kwargs_hash}
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            if not settings.cache_enabled:
                return await func(*args, **kwargs)

            if key_builder:
                key = f"{prefix}:{key_builder(*args, **kwargs)}"
            else:
                key = f"{prefix}:{func.__name__}:{cache_key(**_simple_kwargs(kwargs))}"

            try:
                redis_client = await get_redis()
                cached_value = await redis_client.get(key)
            except redis.RedisError as e:
                logger.warning("Redis unavailable for %s, serving uncached: %s", key, e)
                return await func(*args, **kwargs)

            if cached_value:
                logger.debug("Cache HIT: %s", key)
                return json.loads(cached_value)

            logger.debug("Cache MISS: %s", key)
            result = await func(*args, **kwargs)

            try:
                await redis_client.setex(key, ttl, json.dumps(result, default=str))
            except redis.RedisError as e:
                logger.warning("Failed to store cache entry %s: %s", key, e)

            return result

        return wrapper

    return decorator


async def invalidate_cache(pattern: str):
    """Invalidate cache keys matching a pattern.

    Example:
        await invalidate_cache("orders:*")
    """
    if not settings.cache_enabled:
        return

    try:
        redis_client = await get_redis()
        keys = []
        async for key in redis_client.scan_iter(match=pattern):
            keys.append(key)

        if keys:
            await redis_client.delete(*keys)
            logger.debug("Invalidated %d cache keys matching %s", len(keys), pattern)
    except redis.RedisError as e:
        logger.warning("Failed to invalidate %s: %s", pattern, e)
