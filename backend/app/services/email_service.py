"""
Outgoing mail over SMTP.

Called from the Celery worker only; request handlers enqueue through
notification_service instead of talking to the mail server.
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


def build_message(to_email: str, subject: str, text_content: str, html_content: Optional[str] = None) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.MAIL_FROM_NAME} <{settings.MAIL_FROM_EMAIL}>"
    msg["To"] = to_email
    msg.attach(MIMEText(text_content, "plain", "utf-8"))
    if html_content:
        msg.attach(MIMEText(html_content, "html", "utf-8"))
    return msg


def send_email(to_email: str, subject: str, text_content: str, html_content: Optional[str] = None) -> bool:
    """
    Deliver one message. Returns False when mail is switched off or SMTP_HOST
    is unset; SMTP failures propagate so the task can retry.
    """
    if not settings.MAIL_ENABLED or not settings.SMTP_HOST:
        logger.info("Mail disabled, not sending %r to %s", subject, to_email)
        return False

    msg = build_message(to_email, subject, text_content, html_content)
    if settings.SMTP_USE_TLS:
        server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30)
        server.starttls()
    else:
        server = smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30)
    try:
        if settings.SMTP_USER:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.send_message(msg)
    finally:
        server.quit()
    logger.info("Sent %r to %s", subject, to_email)
    return True
