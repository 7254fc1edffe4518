"""
Authentication: bcrypt password hashing, JWT access tokens and verified sign-up
"""
import hashlib
import hmac
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
import bcrypt
from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, func, select

from app.core import clock
from app.core.config import settings
from app.core.exceptions import InvalidRequestError, ValidationFailedError
from app.core.permissions import Role
from app.models.account_token import PendingUser, RevokedToken
from app.models.user import User
from app.schemas.auth import UserCreate

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def _truncate_password_72(password: str) -> bytes:
    b = password.encode("utf-8")
    if len(b) <= BCRYPT_MAX_BYTES:
        return b
    return b[:BCRYPT_MAX_BYTES]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(
            _truncate_password_72(plain_password),
            hashed_password.encode("utf-8"),
        )
    except Exception:
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(
        _truncate_password_72(password),
        bcrypt.gensalt(),
    ).decode("utf-8")


class AuthService:
    """Login, registration and token resolution"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        expire = clock.utcnow() + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode.update({"exp": expire})
        to_encode.setdefault("jti", uuid.uuid4().hex)
        return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        user = await self.get_user_by_email(email)
        if not user:
            return None
        if not (user.password_hash and user.password_hash.strip()):
            return None
        if not verify_password(password, user.password_hash):
            return None
        user.last_login_at = clock.utcnow()
        await self.db.commit()
        return user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
        return result.scalar_one_or_none()

    async def register_user(self, user_data: UserCreate) -> User:
        if await self.email_exists(user_data.email):
            raise ValidationFailedError(
                "The email has already been taken.",
                errors={"email": ["The email has already been taken."]},
            )
        user = User(
            name=user_data.name,
            email=user_data.email.lower(),
            password_hash=get_password_hash(user_data.password),
            phone=user_data.phone,
            role=Role.BUYER.value,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    def _decode(self, token: str) -> Optional[dict]:
        try:
            return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        except JWTError:
            return None

    async def get_user_from_token(self, token: str) -> Optional[User]:
        """Resolve a bearer token to its user; None when invalid, expired or logged out."""
        payload = self._decode(token)
        if payload is None:
            return None
        subject = payload.get("sub")
        if subject is None:
            return None
        try:
            user_id = int(subject)
        except (TypeError, ValueError):
            return None
        jti = payload.get("jti")
        if jti and await self.db.get(RevokedToken, jti):
            return None
        return await self.db.get(User, user_id)

    async def revoke_token(self, token: str) -> None:
        """Logout: the token stops resolving; expired revocations are purged on the way."""
        payload = self._decode(token)
        if payload is None or not payload.get("jti"):
            return
        now = clock.utcnow()
        await self.db.execute(delete(RevokedToken).where(RevokedToken.expires_at < now))
        if await self.db.get(RevokedToken, payload["jti"]) is None:
            self.db.add(RevokedToken(
                jti=payload["jti"],
                user_id=int(payload["sub"]) if str(payload.get("sub", "")).isdigit() else None,
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            ))
        await self.db.commit()

    # ---------- sign-up with email verification ---------- #

    async def email_exists(self, email: str) -> bool:
        """True when the address belongs to an account or a sign-up awaiting verification."""
        if await self.get_user_by_email(email):
            return True
        pending = await self.db.scalar(
            select(PendingUser.id).where(func.lower(PendingUser.email) == email.strip().lower())
        )
        return pending is not None

    @staticmethod
    def verification_signature(pending_id: int, email: str) -> str:
        message = f"{pending_id}:{email.lower()}".encode("utf-8")
        return hmac.new(settings.JWT_SECRET_KEY.encode("utf-8"), message, hashlib.sha256).hexdigest()

    async def register_pending(self, user_data: UserCreate) -> PendingUser:
        """Hold a buyer sign-up until the emailed link is opened; expired holds are replaced."""
        email = user_data.email.lower()
        if await self.get_user_by_email(email):
            raise ValidationFailedError(
                "The email has already been taken.",
                errors={"email": ["The email has already been taken."]},
            )
        existing = (await self.db.execute(select(PendingUser).where(PendingUser.email == email))).scalar_one_or_none()
        now = clock.utcnow()
        if existing is not None:
            if clock.as_utc(existing.expires_at) > now:
                raise ValidationFailedError(
                    "This email is already pending verification. Please check your email for the verification link.",
                    errors={"email": ["Email already pending verification"]},
                )
            await self.db.delete(existing)
            await self.db.flush()
        pending = PendingUser(
            name=user_data.name,
            email=email,
            phone=user_data.phone,
            password_hash=get_password_hash(user_data.password),
            role=Role.BUYER.value,
            expires_at=now + timedelta(minutes=settings.EMAIL_VERIFICATION_EXPIRE_MINUTES),
        )
        self.db.add(pending)
        await self.db.commit()
        await self.db.refresh(pending)
        logger.info("Pending sign-up %s created for %s", pending.id, email)
        return pending

    async def verify_email(self, pending_id: int, signature: str) -> User:
        """Turn a pending sign-up into a verified account."""
        pending = await self.db.get(PendingUser, pending_id)
        if pending is None:
            raise InvalidRequestError("Invalid verification link")
        if clock.as_utc(pending.expires_at) <= clock.utcnow():
            await self.db.delete(pending)
            await self.db.commit()
            raise InvalidRequestError("Verification link has expired. Please register again.")
        if not hmac.compare_digest(self.verification_signature(pending.id, pending.email), signature):
            raise InvalidRequestError("Invalid verification link")
        if await self.get_user_by_email(pending.email):
            await self.db.delete(pending)
            await self.db.commit()
            raise InvalidRequestError("This email has already been verified")

        user = User(
            name=pending.name,
            email=pending.email,
            phone=pending.phone,
            password_hash=pending.password_hash,
            role=pending.role,
            email_verified_at=clock.utcnow(),
        )
        self.db.add(user)
        await self.db.delete(pending)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info("Email verified, user %s created", user.id)
        return user
