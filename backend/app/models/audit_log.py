"""
Audit trail: approvals, rejections, plan purchases, settings changes, logins
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.core.database import Base


class AuditLog(Base):
    """Audit log table"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    user_name = Column(String(255), nullable=True)
    user_email = Column(String(255), nullable=True)
    action = Column(String(64), nullable=False, index=True)  # store_approved, subscription_upgrade_requested, ...
    category = Column(String(32), nullable=False, index=True)  # user, store, product, subscription, settings, security
    resource_id = Column(String(64), nullable=True)
    detail = Column(Text, nullable=True)  # JSON
    ip = Column(String(64), nullable=True)
    request_id = Column(String(64), nullable=True, index=True)  # X-Request-ID
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
