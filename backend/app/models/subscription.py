"""
Subscription model: one row per store per purchase cycle
"""
import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class SubscriptionStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    REJECTED = "rejected"


class Subscription(Base):
    """Subscriptions table"""
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False)
    # correlates every promotion bought under this cycle
    subscription_code = Column(String(40), nullable=False, unique=True, index=True)
    status = Column(
        SQLEnum(SubscriptionStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        default=SubscriptionStatus.PENDING,
        nullable=False,
        index=True,
    )
    starts_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)
    payment_receipt_path = Column(String(500), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    activated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    store = relationship("Store", back_populates="subscriptions", lazy="selectin")
    plan = relationship("SubscriptionPlan", back_populates="subscriptions", lazy="selectin")
