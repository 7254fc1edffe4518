"""
Account lifecycle records: unverified sign-ups, password reset tokens, revoked access tokens
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from app.core.database import Base


class PendingUser(Base):
    """Sign-up waiting for email verification; moved to users once the link is opened"""
    __tablename__ = "pending_users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(30), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="buyer")
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class PasswordResetToken(Base):
    """One outstanding reset token per email, stored as a sha256 digest"""
    __tablename__ = "password_reset_tokens"

    email = Column(String(255), primary_key=True)
    token_hash = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class RevokedToken(Base):
    """Access tokens ended by logout, kept until they would have expired anyway"""
    __tablename__ = "revoked_tokens"

    jti = Column(String(64), primary_key=True)
    user_id = Column(Integer, nullable=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
