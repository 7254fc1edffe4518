"""
Subscription lapse sweep run by Celery beat
"""
import logging
from typing import Any, Dict

from app.celery_app import celery_app
from app.services.subscription_service import SubscriptionService
from app.tasks.promotion_tasks import _run_async, _with_celery_db

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="subscriptions.expire_due")
def expire_due_subscriptions_task(self) -> Dict[str, Any]:
    """Expire active subscriptions past ends_at; stores revert to basic"""
    async def _run(db):
        return {"expired": await SubscriptionService(db).expire_due()}

    try:
        result = _run_async(_with_celery_db(_run)())
        if result["expired"]:
            logger.info("expire_due_subscriptions expired=%s", result["expired"])
        return result
    except Exception as e:
        logger.exception("expire_due_subscriptions_task failed: %s", e)
        raise
