"""
Promotion expiry tasks.

One delayed task is enqueued per placement with eta = its end time; beat also
runs a periodic sweep. Each handler only flips a placement that is still
active and past due, so duplicates and early deliveries are harmless.
Tasks build their own engine/session (create_async_engine_and_session_for_celery);
the module-level AsyncSessionLocal belongs to another event loop.
"""
import asyncio
import logging
from typing import Any, Dict

from app.celery_app import celery_app
from app.core.database import create_async_engine_and_session_for_celery
from app.services.promotion_service import PromotionService

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Run a coroutine to completion inside a synchronous Celery task"""
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _with_celery_db(async_fn):
    """Wrap async_fn(db) with an engine/session bound to the current loop, disposed afterwards."""
    async def _run():
        engine, session_factory = create_async_engine_and_session_for_celery()
        try:
            async with session_factory() as db:
                return await async_fn(db)
        finally:
            await engine.dispose()
    return _run


@celery_app.task(bind=True, name="promotions.expire_featured")
def expire_featured_product_task(self, featured_id: int) -> Dict[str, Any]:
    """Deactivate one featured placement at its finish time"""
    async def _run(db):
        changed = await PromotionService(db).expire_featured_if_due(featured_id)
        return {"featured_id": featured_id, "deactivated": changed}

    try:
        result = _run_async(_with_celery_db(_run)())
        logger.info("expire_featured featured_id=%s deactivated=%s", featured_id, result["deactivated"])
        return result
    except Exception as e:
        logger.exception("expire_featured_product_task failed: %s", e)
        raise


@celery_app.task(bind=True, name="promotions.expire_hot_deal")
def expire_hot_deal_task(self, hot_deal_id: int) -> Dict[str, Any]:
    """Deactivate one hot deal at its end time"""
    async def _run(db):
        changed = await PromotionService(db).expire_hot_deal_if_due(hot_deal_id)
        return {"hot_deal_id": hot_deal_id, "deactivated": changed}

    try:
        result = _run_async(_with_celery_db(_run)())
        logger.info("expire_hot_deal hot_deal_id=%s deactivated=%s", hot_deal_id, result["deactivated"])
        return result
    except Exception as e:
        logger.exception("expire_hot_deal_task failed: %s", e)
        raise


@celery_app.task(bind=True, name="promotions.sweep_expired")
def sweep_expired_promotions_task(self) -> Dict[str, Any]:
    """Periodic safety net for placements whose delayed task never ran"""
    async def _run(db):
        featured, deals = await PromotionService(db).sweep_expired()
        return {"featured": featured, "hot_deals": deals}

    try:
        return _run_async(_with_celery_db(_run)())
    except Exception as e:
        logger.exception("sweep_expired_promotions_task failed: %s", e)
        raise
