"""
Subscription schemas
"""
from pydantic import BaseModel, Field
from typing import List, Optional

from app.models.subscription import SubscriptionStatus
from app.schemas.common import StorageUrl, UtcDatetime
from app.schemas.plan import PlanResponse


class SubscriptionStore(BaseModel):
    id: int
    name: str
    email: str
    subscription: str

    class Config:
        from_attributes = True


class SubscriptionResponse(BaseModel):
    id: int
    store_id: int
    plan_id: int
    subscription_code: str
    status: SubscriptionStatus
    starts_at: Optional[UtcDatetime] = None
    ends_at: Optional[UtcDatetime] = None
    payment_receipt_path: StorageUrl = None
    approved_at: Optional[UtcDatetime] = None
    activated_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[UtcDatetime] = None
    plan: Optional[PlanResponse] = None
    store: Optional[SubscriptionStore] = None

    class Config:
        from_attributes = True


class SubscriptionRejectRequest(BaseModel):
    rejection_reason: str = Field(..., min_length=1, max_length=1000)


class PlanStoreEntry(BaseModel):
    store_id: int
    store_name: str
    subscription_code: str
    ends_at: Optional[UtcDatetime] = None


class PlanGroup(BaseModel):
    """Active stores grouped by plan for the analytics chart"""
    plan: str
    name: str
    color: str
    count: int
    stores: List[PlanStoreEntry] = []
