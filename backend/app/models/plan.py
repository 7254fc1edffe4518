"""
Subscription plan model
"""
from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class SubscriptionPlan(Base):
    """Plan tiers: product limit, price and promotion quotas"""
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(20), nullable=False, unique=True, index=True)  # basic, silver, gold, platinum
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    product_limit = Column(Integer, nullable=False, default=0)
    featured_slot_max = Column(Integer, nullable=False, default=0)
    hot_deal_max = Column(Integer, nullable=False, default=0)
    featured_duration_days = Column(Integer, nullable=False, default=3)
    bank_account_name = Column(String(255), nullable=True)
    bank_account_number = Column(String(50), nullable=True)
    bank_name = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    subscriptions = relationship("Subscription", back_populates="plan")
