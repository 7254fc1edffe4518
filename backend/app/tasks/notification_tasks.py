"""
Mail delivery task; SMTP errors are retried with backoff
"""
import logging
import smtplib
from typing import Any, Dict

from app.celery_app import celery_app
from app.services import email_service

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="notifications.send_email",
    autoretry_for=(smtplib.SMTPException, ConnectionError, TimeoutError),
    retry_backoff=True,
    max_retries=5,
)
def send_email_task(self, to_email: str, subject: str, body: str) -> Dict[str, Any]:
    try:
        sent = email_service.send_email(to_email, subject, body)
    except Exception as e:
        logger.warning("send_email_task attempt %s failed for %s: %s", self.request.retries + 1, to_email, e)
        raise
    return {"to": to_email, "sent": sent}
