"""
Promotion slot quotas.

A store's quota is scoped to its current subscription_code (the latest
subscription, whatever its status). Every FeaturedProduct/HotDeal row under
that code consumes a slot for good, active or not; a new purchase mints a new
code and so a fresh quota.
"""
import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import QuotaExceededError
from app.models.plan import SubscriptionPlan
from app.models.promotion import FeaturedProduct, HotDeal
from app.models.subscription import Subscription
from app.services.plan_service import PlanQuota, PlanService


@dataclass
class QuotaContext:
    subscription: Optional[Subscription]
    plan: PlanQuota

    @property
    def code(self) -> Optional[str]:
        return self.subscription.subscription_code if self.subscription else None


def _code_clause(column, code: Optional[str]):
    return column.is_(None) if code is None else column == code


_owner_locks: Dict[int, asyncio.Lock] = {}
_owner_holders: Dict[int, int] = {}


@asynccontextmanager
async def owner_quota_lock(user_id: int):
    """Serialize check-then-insert quota writes of one store owner within this process.

    Other worker processes are held off by the store row lock (SELECT ... FOR UPDATE)
    taken inside; entries are dropped once nobody holds or waits on them.
    """
    lock = _owner_locks.setdefault(user_id, asyncio.Lock())
    _owner_holders[user_id] = _owner_holders.get(user_id, 0) + 1
    try:
        async with lock:
            yield
    finally:
        _owner_holders[user_id] -= 1
        if not _owner_holders[user_id]:
            del _owner_holders[user_id]
            _owner_locks.pop(user_id, None)


class QuotaService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def latest_subscription(self, store_id: int) -> Optional[Subscription]:
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.store_id == store_id)
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def context_for_store(self, store_id: int) -> QuotaContext:
        subscription = await self.latest_subscription(store_id)
        if subscription is not None:
            plan = await self.db.get(SubscriptionPlan, subscription.plan_id)
            if plan is not None:
                return QuotaContext(subscription, PlanQuota.from_plan(plan))
        return QuotaContext(subscription, await PlanService(self.db).default_quota())

    async def featured_used(self, store_id: int, code: Optional[str]) -> int:
        return await self.db.scalar(
            select(func.count()).select_from(FeaturedProduct).where(
                FeaturedProduct.store_id == store_id,
                _code_clause(FeaturedProduct.subscription_code, code),
            )
        ) or 0

    async def hot_deals_used(self, store_id: int, code: Optional[str]) -> int:
        return await self.db.scalar(
            select(func.count()).select_from(HotDeal).where(
                HotDeal.store_id == store_id,
                _code_clause(HotDeal.subscription_code, code),
            )
        ) or 0

    async def ensure_featured_slot(self, store_id: int, ctx: QuotaContext) -> int:
        """Raise QuotaExceededError when the cycle's featured slots are used up; returns slots used."""
        used = await self.featured_used(store_id, ctx.code)
        limit = ctx.plan.featured_slot_max
        if used >= limit:
            raise QuotaExceededError(
                f"Your {ctx.plan.slug} plan allows only {limit} featured products per subscription. "
                "Upgrade your plan to feature more products.",
                current=used,
                max_allowed=limit,
            )
        return used

    async def ensure_hot_deal_slot(self, store_id: int, ctx: QuotaContext) -> int:
        used = await self.hot_deals_used(store_id, ctx.code)
        limit = ctx.plan.hot_deal_max
        if used >= limit:
            raise QuotaExceededError(
                f"Your {ctx.plan.slug} plan allows only {limit} hot deals per subscription. "
                "Upgrade your plan to create more hot deals.",
                current=used,
                max_allowed=limit,
            )
        return used

    async def summary(self, store_id: int, ctx: QuotaContext) -> dict:
        featured = await self.featured_used(store_id, ctx.code)
        deals = await self.hot_deals_used(store_id, ctx.code)
        return {
            "plan": ctx.plan.slug,
            "subscription_code": ctx.code,
            "featured": {
                "used": featured,
                "max": ctx.plan.featured_slot_max,
                "remaining": max(0, ctx.plan.featured_slot_max - featured),
            },
            "hot_deals": {
                "used": deals,
                "max": ctx.plan.hot_deal_max,
                "remaining": max(0, ctx.plan.hot_deal_max - deals),
            },
        }
