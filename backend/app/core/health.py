"""
Health checks: database, Redis and the upload disk
"""
import logging
from typing import Tuple

from app.core.config import settings

logger = logging.getLogger(__name__)


async def check_db() -> Tuple[bool, str]:
    if not settings.DATABASE_URL or not settings.DATABASE_URL.strip():
        return False, "DATABASE_URL is not configured"
    try:
        from app.core.database import engine
        from sqlalchemy import text
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True, "ok"
    except Exception as e:
        logger.warning("Health check DB failed: %s", e)
        return False, str(e)


def check_redis() -> Tuple[bool, str]:
    if not settings.REDIS_URL or not settings.REDIS_URL.strip():
        return False, "REDIS_URL is not configured"
    try:
        from app.services.rate_limit_service import _get_redis
        r = _get_redis()
        if not r:
            return False, "Redis client not initialised"
        r.ping()
        return True, "ok"
    except Exception as e:
        logger.warning("Health check Redis failed: %s", e)
        return False, str(e)


def check_storage() -> Tuple[bool, str]:
    try:
        root = settings.STORAGE_ROOT
        root.mkdir(parents=True, exist_ok=True)
        marker = root / ".health"
        marker.write_text("ok")
        marker.unlink()
        return True, "ok"
    except Exception as e:
        logger.warning("Health check storage failed: %s", e)
        return False, str(e)
