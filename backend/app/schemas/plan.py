"""
Subscription plan schemas
"""
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional


class PlanResponse(BaseModel):
    id: int
    slug: str
    name: str
    description: Optional[str] = None
    price: float
    product_limit: int
    featured_slot_max: int
    hot_deal_max: int
    featured_duration_days: int
    bank_account_name: Optional[str] = None
    bank_account_number: Optional[str] = None
    bank_name: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


class PlanUpdate(BaseModel):
    """Admin edit of a plan tier; the slug is fixed"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    product_limit: Optional[int] = Field(None, ge=0)
    featured_slot_max: Optional[int] = Field(None, ge=0)
    hot_deal_max: Optional[int] = Field(None, ge=0)
    featured_duration_days: Optional[int] = Field(None, ge=1)
    bank_account_name: Optional[str] = Field(None, max_length=255)
    bank_account_number: Optional[str] = Field(None, max_length=50)
    bank_name: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None
