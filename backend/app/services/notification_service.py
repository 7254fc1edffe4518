"""
Account and review notifications.

Each helper renders a plain-text mail and hands it to the
notifications.send_email task. Enqueueing is best effort: a broker outage is
logged and never fails the request that triggered the mail.
"""
import asyncio
import logging
from typing import Optional
from urllib.parse import urlencode

from app.core import clock
from app.core.config import settings

logger = logging.getLogger(__name__)

SIGN_OFF = "Best regards,\nHeritage Energy Team"


async def dispatch(to_email: str, subject: str, body: str) -> Optional[str]:
    """Queue one mail; returns the task id or None when it could not be queued."""
    from app.tasks.notification_tasks import send_email_task

    loop = asyncio.get_running_loop()
    try:
        result = await asyncio.wait_for(
            loop.run_in_executor(None, lambda: send_email_task.apply_async(args=[to_email, subject, body], retry=False)),
            timeout=settings.CELERY_SUBMIT_TIMEOUT,
        )
        return result.id
    except asyncio.TimeoutError:
        logger.warning("Timed out queueing mail %r to %s", subject, to_email)
    except Exception as e:
        logger.warning("Could not queue mail %r to %s: %s", subject, to_email, e)
    return None


def _format_day(value) -> str:
    return clock.as_utc(value).strftime("%b %d, %Y") if value else "-"


async def password_reset_link(email: str, name: str, token: str) -> Optional[str]:
    url = f"{settings.FRONTEND_URL}/reset-password?{urlencode({'token': token, 'email': email})}"
    body = (
        f"Hello {name}!\n\n"
        "You are receiving this email because we received a password reset request for your account.\n\n"
        f"Reset your password: {url}\n\n"
        f"This password reset link will expire in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes.\n"
        "If you did not request a password reset, no further action is required.\n\n"
        f"{SIGN_OFF}"
    )
    return await dispatch(email, "Reset Your Password", body)


async def verify_email_link(email: str, name: str, url: str) -> Optional[str]:
    body = (
        f"Hello {name}!\n\n"
        "Thank you for registering with Heritage Oil & Gas Marketplace.\n"
        "Please verify your email address to activate your account.\n\n"
        f"Verify your email: {url}\n\n"
        "If you did not create this account, no further action is required.\n"
        f"This verification link will expire in {settings.EMAIL_VERIFICATION_EXPIRE_MINUTES} minutes."
    )
    return await dispatch(email, "Verify Your Email Address - Heritage Oil & Gas", body)


async def store_registration_submitted(store) -> Optional[str]:
    owner = store.owner
    body = (
        f"Hello {owner.name}!\n\n"
        "Thank you for submitting your seller registration to Heritage Oil & Gas Marketplace.\n"
        f"Store Name: {store.name}\n"
        "Registration Status: Pending Review\n\n"
        "Our team will review your application, documents and business information within 24-48 hours. "
        "You will receive an email with the verification result.\n\n"
        f"Dashboard: {settings.DASHBOARD_URL}/seller/dashboard\n\n"
        f"{SIGN_OFF}"
    )
    return await dispatch(owner.email, "Store Registration Submitted - Heritage Oil & Gas", body)


async def store_verification(store, approved: bool) -> Optional[str]:
    owner = store.owner
    if approved:
        subject = "Your Store Has Been Approved! - Heritage Oil & Gas"
        body = (
            f"Hello {owner.name}!\n\n"
            f"Congratulations! Your store {store.name} has been verified and approved by our team.\n\n"
            "You can now access your seller dashboard and upload your products. "
            "Choose a subscription plan that suits your business to start promoting them.\n\n"
            f"Dashboard: {settings.DASHBOARD_URL}/seller/dashboard\n\n"
            f"{SIGN_OFF}"
        )
    else:
        subject = "Store Verification Update - Heritage Oil & Gas"
        reason = store.rejection_reason or "Please contact our support team for more information."
        body = (
            f"Hello {owner.name}!\n\n"
            f"Unfortunately, your store application for {store.name} could not be approved at this time.\n\n"
            f"Reason for rejection:\n{reason}\n\n"
            "You can reapply after addressing the issues mentioned above.\n"
            f"Support: {settings.SUPPORT_EMAIL}\n\n"
            f"{SIGN_OFF}"
        )
    return await dispatch(owner.email, subject, body)


async def subscription_approved(subscription) -> Optional[str]:
    store = subscription.store
    owner = store.owner
    body = (
        f"Hello {owner.name}!\n\n"
        f"Great news! Your subscription for {store.name} has been approved by our team.\n\n"
        f"Plan: {subscription.plan.name}\n"
        f"Subscription Code: {subscription.subscription_code}\n"
        f"Active Period: {_format_day(subscription.starts_at)} to {_format_day(subscription.ends_at)}\n\n"
        f"Dashboard: {settings.DASHBOARD_URL}/seller/dashboard\n\n"
        f"{SIGN_OFF}"
    )
    return await dispatch(owner.email, "Subscription Approved! - Heritage Oil & Gas", body)


async def subscription_rejected(subscription) -> Optional[str]:
    store = subscription.store
    owner = store.owner
    body = (
        f"Hello {owner.name}!\n\n"
        f"Your subscription request for {store.name} has been reviewed and rejected.\n\n"
        f"Reason for Rejection:\n{subscription.rejection_reason}\n\n"
        "You can resubmit your subscription request after addressing the issues mentioned above.\n"
        f"Support: {settings.SUPPORT_EMAIL}\n\n"
        f"{SIGN_OFF}"
    )
    return await dispatch(owner.email, "Subscription Rejected - Heritage Oil & Gas", body)
