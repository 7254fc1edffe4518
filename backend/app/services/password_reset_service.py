"""
Forgotten-password flow: emailed one-time token, verification, reset
"""
import hashlib
import hmac
import logging
import secrets
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core import clock
from app.core.config import settings
from app.core.exceptions import ValidationFailedError
from app.models.account_token import PasswordResetToken
from app.services import notification_service
from app.services.auth_service import AuthService, get_password_hash

logger = logging.getLogger(__name__)

LINK_SENT = "We have emailed your password reset link."
PASSWORD_RESET = "Your password has been reset."


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _token_error(message: str) -> ValidationFailedError:
    return ValidationFailedError(message, errors={"token": [message]})


class PasswordResetService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.auth = AuthService(db)

    async def send_reset_link(self, email: str) -> str:
        user = await self.auth.get_user_by_email(email)
        if user is None:
            message = "We can't find a user with that email address."
            raise ValidationFailedError(message, errors={"email": [message]})

        now = clock.utcnow()
        row = await self.db.get(PasswordResetToken, user.email)
        if row is not None:
            if clock.as_utc(row.created_at) + timedelta(seconds=settings.PASSWORD_RESET_THROTTLE_SECONDS) > now:
                message = "Please wait before retrying."
                raise ValidationFailedError(message, errors={"email": [message]})
            await self.db.delete(row)
            await self.db.flush()

        token = secrets.token_urlsafe(48)
        self.db.add(PasswordResetToken(email=user.email, token_hash=_digest(token), created_at=now))
        await self.db.commit()
        await notification_service.password_reset_link(user.email, user.name, token)
        logger.info("Password reset link issued for user %s", user.id)
        return LINK_SENT

    async def _valid_row(self, email: str, token: str) -> PasswordResetToken:
        row = await self.db.get(PasswordResetToken, email.strip().lower())
        if row is None or not hmac.compare_digest(row.token_hash, _digest(token)):
            raise _token_error("This password reset link is invalid or has expired.")
        expires = clock.as_utc(row.created_at) + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
        if expires <= clock.utcnow():
            raise _token_error("This password reset link has expired.")
        return row

    async def verify_token(self, email: str, token: str) -> None:
        await self._valid_row(email, token)

    async def reset_password(self, email: str, token: str, password: str) -> str:
        row = await self._valid_row(email, token)
        user = await self.auth.get_user_by_email(email)
        if user is None:
            raise _token_error("This password reset link is invalid or has expired.")
        user.password_hash = get_password_hash(password)
        await self.db.delete(row)
        await self.db.commit()
        logger.info("Password reset completed for user %s", user.id)
        return PASSWORD_RESET
