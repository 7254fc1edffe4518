"""
Redis cache-aside helpers.

Values are stored as JSON under CACHE_KEY_PREFIX on the Redis instance that
rate limiting also uses. Reads and writes are synchronous redis-py calls, so
async callers go through asyncio.to_thread (or cache_aside below). A disabled
or unreachable cache behaves as a permanent miss.
"""
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)

KEY_SITE_SETTINGS = "settings:site"
KEY_CATEGORY_COUNTS = "catalog:category_counts"
KEY_ADMIN_DASHBOARD = "stats:admin:dashboard"
PREFIX_CATALOG = "catalog:"

_redis_client = None


def _get_redis():
    global _redis_client
    if _redis_client is None:
        try:
            import redis
            _redis_client = redis.Redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=1,
                socket_timeout=1,
            )
        except Exception as e:
            logger.warning("Cache Redis unavailable, caching disabled: %s", e)
    return _redis_client


def _full_key(name: str) -> str:
    return f"{settings.CACHE_KEY_PREFIX}{name}"


def _call(op: str, key: str, fn: Callable, default):
    """Run fn(redis) unless caching is off; Redis errors are logged and yield default."""
    if not settings.CACHE_ENABLED:
        return default
    client = _get_redis()
    if client is None:
        return default
    try:
        return fn(client)
    except Exception as e:
        logger.debug("cache %s failed for %s: %s", op, key, e)
        return default


def get(key: str) -> Optional[Any]:
    """Decoded value, or None on a miss."""
    raw = _call("get", key, lambda r: r.get(_full_key(key)), None)
    return json.loads(raw) if raw is not None else None


def set(key: str, value: Any, ttl: Optional[int] = None) -> bool:
    payload = json.dumps(value, ensure_ascii=False, default=str)
    seconds = ttl if ttl is not None else settings.CACHE_TTL_LIST
    return _call("set", key, lambda r: bool(r.setex(_full_key(key), seconds, payload)), False)


def delete(key: str) -> bool:
    return _call("delete", key, lambda r: r.delete(_full_key(key)) > 0, False)


def delete_by_prefix(prefix: str) -> int:
    """Remove every key under prefix; returns the number removed."""
    def _scan_delete(r) -> int:
        keys = list(r.scan_iter(match=f"{_full_key(prefix)}*"))
        return r.delete(*keys) if keys else 0
    return _call("delete_by_prefix", prefix, _scan_delete, 0)


async def cache_aside(key: str, ttl: int, loader: Callable[[], Awaitable[Any]]) -> Any:
    """Return the cached value for key, or await loader(), cache its result and return it."""
    cached = await asyncio.to_thread(get, key)
    if cached is not None:
        return cached
    value = await loader()
    await asyncio.to_thread(set, key, value, ttl)
    return value


def invalidate_catalog() -> None:
    """Drop catalog aggregates and dashboard counters after product, category or store changes."""
    delete_by_prefix(PREFIX_CATALOG)
    delete(KEY_ADMIN_DASHBOARD)
