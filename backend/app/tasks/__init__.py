"""
Celery tasks: promotion expiry, subscription lapse sweeps and mail delivery
"""
from app.tasks.promotion_tasks import (
    expire_featured_product_task,
    expire_hot_deal_task,
    sweep_expired_promotions_task,
)
from app.tasks.subscription_tasks import expire_due_subscriptions_task
from app.tasks.notification_tasks import send_email_task

__all__ = [
    "expire_featured_product_task",
    "expire_hot_deal_task",
    "sweep_expired_promotions_task",
    "expire_due_subscriptions_task",
    "send_email_task",
]
