"""
Admin subscription API: review upgrade requests, payment receipts, plan analytics, plan tiers
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import PageParams, get_client_ip, request_id, require_capability
from app.core.database import get_db
from app.core.pagination import paginated
from app.core.permissions import Capability
from app.models.subscription import SubscriptionStatus
from app.models.user import User
from app.schemas.plan import PlanResponse, PlanUpdate
from app.schemas.subscription import PlanGroup, SubscriptionRejectRequest, SubscriptionResponse
from app.services import notification_service, storage_service
from app.services.audit_service import log_audit
from app.services.plan_service import PlanService
from app.services.subscription_service import SubscriptionService

router = APIRouter()

subscription_reviewer = require_capability(Capability.REVIEW_SUBSCRIPTIONS)
plan_admin = require_capability(Capability.MANAGE_PLANS)


@router.get("/subscriptions")
async def list_subscriptions(
    paging: PageParams = Depends(),
    status: Optional[SubscriptionStatus] = Query(None),
    plan: Optional[str] = Query(None, description="Plan slug"),
    search: Optional[str] = Query(None, description="Store, owner or subscription code"),
    current_user: User = Depends(subscription_reviewer),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await SubscriptionService(db).list_subscriptions(paging.page, paging.per_page, status, plan, search)
    return paginated([SubscriptionResponse.model_validate(s) for s in items], meta)


@router.get("/subscriptions/analytics/by-plan")
async def stores_by_plan(
    current_user: User = Depends(require_capability(Capability.VIEW_SUBSCRIPTION_ANALYTICS)),
    db: AsyncSession = Depends(get_db),
):
    groups = await SubscriptionService(db).stores_by_plan()
    return {"data": [PlanGroup(**g) for g in groups]}


@router.get("/subscriptions/{subscription_id}")
async def get_subscription(
    subscription_id: int,
    current_user: User = Depends(subscription_reviewer),
    db: AsyncSession = Depends(get_db),
):
    sub = await SubscriptionService(db).get_subscription(subscription_id)
    return {"data": SubscriptionResponse.model_validate(sub)}


@router.patch("/subscriptions/{subscription_id}/approve")
async def approve_subscription(
    subscription_id: int,
    request: Request,
    current_user: User = Depends(subscription_reviewer),
    db: AsyncSession = Depends(get_db),
):
    """Activate a pending subscription for one month from now"""
    sub = await SubscriptionService(db).approve(subscription_id, current_user)
    data = SubscriptionResponse.model_validate(sub)
    await log_audit(
        db, current_user, "subscription_approved", "subscription", sub.id,
        {"store_id": sub.store_id, "plan": sub.plan.slug, "subscription_code": sub.subscription_code},
        get_client_ip(request), request_id(request),
    )
    await notification_service.subscription_approved(sub)
    return {"message": "Subscription approved successfully", "data": data}


@router.patch("/subscriptions/{subscription_id}/reject")
async def reject_subscription(
    subscription_id: int,
    body: SubscriptionRejectRequest,
    request: Request,
    current_user: User = Depends(subscription_reviewer),
    db: AsyncSession = Depends(get_db),
):
    sub = await SubscriptionService(db).reject(subscription_id, body.rejection_reason)
    data = SubscriptionResponse.model_validate(sub)
    await log_audit(
        db, current_user, "subscription_rejected", "subscription", sub.id,
        {"store_id": sub.store_id, "reason": body.rejection_reason},
        get_client_ip(request), request_id(request),
    )
    await notification_service.subscription_rejected(sub)
    return {"message": "Subscription rejected", "data": data}


@router.get("/subscriptions/{subscription_id}/payment-receipt")
async def payment_receipt(
    subscription_id: int,
    current_user: User = Depends(subscription_reviewer),
    db: AsyncSession = Depends(get_db),
):
    path = await SubscriptionService(db).receipt_path(subscription_id)
    return FileResponse(storage_service.absolute_path(path))


@router.get("/subscription-plans")
async def list_plans(
    current_user: User = Depends(plan_admin),
    db: AsyncSession = Depends(get_db),
):
    plans = await PlanService(db).list_plans(active_only=False)
    return {"data": [PlanResponse.model_validate(p) for p in plans]}


@router.get("/subscription-plans/{plan_id}")
async def get_plan(
    plan_id: int,
    current_user: User = Depends(plan_admin),
    db: AsyncSession = Depends(get_db),
):
    plan = await PlanService(db).get_plan(plan_id)
    return {"data": PlanResponse.model_validate(plan)}


@router.patch("/subscription-plans/{plan_id}")
async def update_plan(
    plan_id: int,
    body: PlanUpdate,
    request: Request,
    current_user: User = Depends(plan_admin),
    db: AsyncSession = Depends(get_db),
):
    """Edit price, limits or bank details; applies to placements created afterwards"""
    plan = await PlanService(db).update_plan(plan_id, body)
    data = PlanResponse.model_validate(plan)
    await log_audit(
        db, current_user, "plan_updated", "subscription", plan.id,
        body.model_dump(exclude_unset=True, mode="json"), get_client_ip(request), request_id(request),
    )
    return {"message": "Plan updated successfully", "data": data}
