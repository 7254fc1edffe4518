"""
Admin dashboard statistics and site settings API
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_client_ip, request_id, require_capability
from app.core.config import settings
from app.core.database import get_db
from app.core.permissions import Capability, Role
from app.models.plan import SubscriptionPlan
from app.models.product import Product, ProductStatus
from app.models.store import Store, StoreStatus
from app.models.store_report import ReportStatus, StoreReport
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.user import User
from app.services import cache_service
from app.services.audit_service import log_audit
from app.services.settings_service import SettingsService

router = APIRouter()


async def _count(db: AsyncSession, model, *where) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*where)) or 0


async def _collect_stats(db: AsyncSession) -> dict:
    revenue = await db.scalar(
        select(func.coalesce(func.sum(SubscriptionPlan.price), 0))
        .select_from(Subscription)
        .join(SubscriptionPlan, Subscription.plan_id == SubscriptionPlan.id)
        .where(Subscription.status.in_([SubscriptionStatus.ACTIVE, SubscriptionStatus.EXPIRED]))
    )
    return {
        "users": {
            "total": await _count(db, User),
            "buyers": await _count(db, User, User.role == Role.BUYER.value),
            "store_owners": await _count(db, User, User.role == Role.STORE_OWNER.value),
        },
        "stores": {
            "total": await _count(db, Store),
            **{s.value: await _count(db, Store, Store.status == s) for s in StoreStatus},
        },
        "products": {
            "total": await _count(db, Product),
            "active": await _count(db, Product, Product.status == ProductStatus.ACTIVE),
        },
        "subscriptions": {
            "active": await _count(db, Subscription, Subscription.status == SubscriptionStatus.ACTIVE),
            "pending": await _count(db, Subscription, Subscription.status == SubscriptionStatus.PENDING),
            "revenue": float(revenue or 0),
        },
        "reports": {
            "pending": await _count(db, StoreReport, StoreReport.status == ReportStatus.PENDING),
        },
    }


@router.get("/dashboard/stats")
async def get_dashboard_stats(
    current_user: User = Depends(require_capability(Capability.VIEW_DASHBOARD)),
    db: AsyncSession = Depends(get_db),
):
    """Marketplace-wide counters (Redis cached for CACHE_TTL_STATS)"""
    data = await cache_service.cache_aside(
        cache_service.KEY_ADMIN_DASHBOARD, settings.CACHE_TTL_STATS, lambda: _collect_stats(db),
    )
    return {"data": data}


@router.patch("/settings")
async def update_settings(
    request: Request,
    site_name: Optional[str] = Form(None, max_length=255),
    site_title: Optional[str] = Form(None, max_length=255),
    meta_description: Optional[str] = Form(None, max_length=500),
    meta_keywords: Optional[str] = Form(None, max_length=500),
    logo: Optional[UploadFile] = File(None),
    favicon: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_capability(Capability.MANAGE_SETTINGS)),
    db: AsyncSession = Depends(get_db),
):
    """Update site settings; the cached copy is dropped on write"""
    values = {
        "site_name": site_name,
        "site_title": site_title,
        "meta_description": meta_description,
        "meta_keywords": meta_keywords,
    }
    data = await SettingsService(db).update_settings(
        values,
        logo=logo if logo and logo.filename else None,
        favicon=favicon if favicon and favicon.filename else None,
    )
    changed = sorted(k for k, v in values.items() if v is not None)
    changed += [name for name, f in (("logo", logo), ("favicon", favicon)) if f and f.filename]
    await log_audit(db, current_user, "settings_updated", "settings", None, {"fields": changed}, get_client_ip(request), request_id(request))
    return {"message": "Settings updated successfully", "data": data}
