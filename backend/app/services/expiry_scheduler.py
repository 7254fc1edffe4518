"""
Enqueue the delayed per-placement expiry tasks.

Enqueueing is best effort: a broker outage is logged and the read-time sweep
plus the periodic sweep still deactivate the placement.
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


async def _submit(task, object_id: int, eta: datetime) -> Optional[str]:
    """Run task.apply_async in a worker thread with a timeout; returns the task id or None."""
    loop = asyncio.get_running_loop()
    try:
        result = await asyncio.wait_for(
            loop.run_in_executor(None, lambda: task.apply_async(args=[object_id], eta=eta, retry=False)),
            timeout=settings.CELERY_SUBMIT_TIMEOUT,
        )
        logger.info("Scheduled %s for id=%s at %s (task_id=%s)", task.name, object_id, eta.isoformat(), result.id)
        return result.id
    except asyncio.TimeoutError:
        logger.warning("Timed out scheduling %s for id=%s; the sweep will expire it", task.name, object_id)
    except Exception as e:
        logger.warning("Could not schedule %s for id=%s: %s", task.name, object_id, e)
    return None


async def schedule_featured_expiry(featured_id: int, finish_time: datetime) -> Optional[str]:
    from app.tasks.promotion_tasks import expire_featured_product_task
    return await _submit(expire_featured_product_task, featured_id, finish_time)


async def schedule_hot_deal_expiry(hot_deal_id: int, deal_end_at: datetime) -> Optional[str]:
    from app.tasks.promotion_tasks import expire_hot_deal_task
    return await _submit(expire_hot_deal_task, hot_deal_id, deal_end_at)
