"""
Featured placement and hot deal schemas
"""
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional

from app.core import clock
from app.schemas.common import StorageUrl, UtcDatetime


class PromotedProduct(BaseModel):
    id: int
    name: str
    slug: str
    new_price: Optional[float] = None
    old_price: Optional[float] = None
    primary_image: StorageUrl = None
    store_id: int

    class Config:
        from_attributes = True


class FeaturedProductResponse(BaseModel):
    id: int
    product_id: Optional[int] = None
    store_id: int
    subscription_code: Optional[str] = None
    plan_type: str
    start_time: UtcDatetime
    finish_time: UtcDatetime
    is_active: bool
    rotated_out_at: Optional[UtcDatetime] = None
    product: Optional[PromotedProduct] = None

    class Config:
        from_attributes = True


class HotDealCreate(BaseModel):
    product_id: int
    deal_price: Decimal = Field(..., ge=0)
    deal_start_at: datetime
    deal_end_at: datetime
    deal_description: Optional[str] = Field(None, max_length=1000)

    @field_validator("deal_start_at", "deal_end_at")
    @classmethod
    def to_utc(cls, value: datetime) -> datetime:
        return clock.as_utc(value)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.deal_end_at <= self.deal_start_at:
            raise ValueError("The deal end time must be after the deal start time.")
        return self


class HotDealUpdate(BaseModel):
    deal_price: Optional[Decimal] = Field(None, ge=0)
    deal_end_at: Optional[datetime] = None
    deal_description: Optional[str] = Field(None, max_length=1000)

    @field_validator("deal_end_at")
    @classmethod
    def to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return clock.as_utc(value)


class HotDealResponse(BaseModel):
    id: int
    product_id: Optional[int] = None
    store_id: int
    subscription_code: Optional[str] = None
    plan_type: str
    original_price: float
    deal_price: float
    discount_percentage: int
    deal_description: Optional[str] = None
    deal_start_at: UtcDatetime
    deal_end_at: UtcDatetime
    is_active: bool
    activated_at: Optional[UtcDatetime] = None
    deactivated_at: Optional[UtcDatetime] = None
    product: Optional[PromotedProduct] = None

    class Config:
        from_attributes = True


class SlotUsage(BaseModel):
    used: int
    max: int
    remaining: int


class QuotaSummary(BaseModel):
    plan: str
    subscription_code: Optional[str] = None
    featured: SlotUsage
    hot_deals: SlotUsage
