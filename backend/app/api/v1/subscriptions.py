"""
Store-owner subscription API: upgrade with payment receipt, current subscription
"""
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_client_ip, request_id, require_capability
from app.core.database import get_db
from app.core.permissions import Capability
from app.models.user import User
from app.schemas.subscription import SubscriptionResponse
from app.services.audit_service import log_audit
from app.services.subscription_service import SubscriptionService

router = APIRouter()


@router.post("/upgrade", status_code=status.HTTP_201_CREATED)
async def request_upgrade(
    request: Request,
    plan_id: int = Form(...),
    payment_receipt: UploadFile = File(...),
    current_user: User = Depends(require_capability(Capability.PURCHASE_SUBSCRIPTION)),
    db: AsyncSession = Depends(get_db),
):
    """
    Start a new subscription cycle. Earlier pending/active subscriptions
    expire and the store's running placements end immediately; the new
    subscription waits for admin approval.
    """
    sub = await SubscriptionService(db).request_upgrade(current_user.id, plan_id, payment_receipt)
    data = SubscriptionResponse.model_validate(sub)
    await log_audit(
        db, current_user, "subscription_requested", "subscription", sub.id,
        {"plan": sub.plan.slug, "subscription_code": sub.subscription_code},
        get_client_ip(request), request_id(request),
    )
    return {
        "message": "Upgrade request submitted. It will be activated once payment is confirmed.",
        "data": data,
    }


@router.get("/current")
async def current_subscription(
    current_user: User = Depends(require_capability(Capability.PURCHASE_SUBSCRIPTION)),
    db: AsyncSession = Depends(get_db),
):
    sub = await SubscriptionService(db).current_for_owner(current_user.id)
    return {"data": SubscriptionResponse.model_validate(sub) if sub else None}
