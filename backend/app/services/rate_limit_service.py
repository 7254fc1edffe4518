"""
Per-IP fixed-window rate limits on sensitive endpoints, counted in Redis
"""
import time
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

_redis_client = None


def _get_redis():
    """Lazily build the Redis client"""
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
            logger.warning("Redis unavailable, rate limiting disabled: %s", e)
    return _redis_client


def check_and_incr(action: str, client_ip: str) -> tuple[bool, int, int, int]:
    """
    Count one request for (action, ip) in the current window.
    Returns (allowed, count, limit, window_seconds). Limits come from
    RATE_LIMIT_<ACTION>; when disabled or Redis is down every request passes.
    """
    limit, window = settings.rate_limit(action)
    if not settings.RATE_LIMIT_ENABLED:
        return True, 0, limit, window
    r = _get_redis()
    if not r:
        return True, 0, limit, window
    bucket = int(time.time()) // window
    key = f"rate:{action}:ip:{client_ip}:w:{bucket}"
    try:
        n = r.incr(key)
        if n == 1:
            r.expire(key, window * 2)
        return (n <= limit, n, limit, window)
    except Exception as e:
        logger.warning("Rate limit Redis call failed: %s", e)
        return True, 0, limit, window
