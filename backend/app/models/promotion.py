"""
Promotion ledgers: featured placements and hot deals.
Rows are never deleted; quota usage counts every row under a subscription_code.
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class FeaturedProduct(Base):
    """Featured placements"""
    __tablename__ = "featured_products"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)
    subscription_code = Column(String(40), nullable=True, index=True)
    plan_type = Column(String(20), nullable=False, default="basic")
    start_time = Column(DateTime(timezone=True), nullable=False)
    finish_time = Column(DateTime(timezone=True), nullable=False, index=True)
    is_active = Column(Boolean, default=True, index=True)
    rotated_out_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    product = relationship("Product", lazy="selectin")
    store = relationship("Store", lazy="selectin")


class HotDeal(Base):
    """Time-boxed discounted prices"""
    __tablename__ = "hot_deals"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)
    subscription_code = Column(String(40), nullable=True, index=True)
    plan_type = Column(String(20), nullable=False, default="basic")
    original_price = Column(Numeric(12, 2), nullable=False)
    deal_price = Column(Numeric(12, 2), nullable=False)
    discount_percentage = Column(Integer, nullable=False, default=0)
    deal_description = Column(Text, nullable=True)
    deal_start_at = Column(DateTime(timezone=True), nullable=False)
    deal_end_at = Column(DateTime(timezone=True), nullable=False, index=True)
    is_active = Column(Boolean, default=True, index=True)
    activated_at = Column(DateTime(timezone=True), nullable=True)
    deactivated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", lazy="selectin")
    store = relationship("Store", lazy="selectin")
