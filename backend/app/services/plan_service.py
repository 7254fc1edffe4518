"""
Plan registry: default tiers, idempotent seeding and quota lookups
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models.plan import SubscriptionPlan
from app.schemas.plan import PlanUpdate

logger = logging.getLogger(__name__)

BANK_ACCOUNT = {
    "bank_account_name": "Heritage Energy Optimum Global Limited",
    "bank_account_number": "1013259887",
    "bank_name": "Keystone Bank",
}

DEFAULT_PLANS = [
    {
        "slug": "basic",
        "name": "Basic Store",
        "description": "Free listing with a store profile. Upgrade to list products.",
        "price": Decimal("0"),
        "product_limit": 0,
        "featured_slot_max": 2,
        "hot_deal_max": 1,
        "featured_duration_days": 3,
    },
    {
        "slug": "silver",
        "name": "Silver",
        "description": "Up to 5 products, 5 featured placements and 4 hot deals per cycle.",
        "price": Decimal("5000"),
        "product_limit": 5,
        "featured_slot_max": 5,
        "hot_deal_max": 4,
        "featured_duration_days": 7,
    },
    {
        "slug": "gold",
        "name": "Gold",
        "description": "Up to 10 products, 10 featured placements and 8 hot deals per cycle.",
        "price": Decimal("7500"),
        "product_limit": 10,
        "featured_slot_max": 10,
        "hot_deal_max": 8,
        "featured_duration_days": 14,
    },
    {
        "slug": "platinum",
        "name": "Platinum",
        "description": "Up to 20 products, 20 featured placements and 15 hot deals per cycle.",
        "price": Decimal("12000"),
        "product_limit": 20,
        "featured_slot_max": 20,
        "hot_deal_max": 15,
        "featured_duration_days": 30,
    },
]

# display order for placements: platinum first
PLAN_RANK = {"platinum": 0, "gold": 1, "silver": 2, "basic": 3}


@dataclass(frozen=True)
class PlanQuota:
    """The quota-relevant slice of a plan"""
    slug: str
    product_limit: int
    featured_slot_max: int
    hot_deal_max: int
    featured_duration_days: int

    @classmethod
    def from_plan(cls, plan: SubscriptionPlan) -> "PlanQuota":
        return cls(
            slug=plan.slug,
            product_limit=plan.product_limit,
            featured_slot_max=plan.featured_slot_max,
            hot_deal_max=plan.hot_deal_max,
            featured_duration_days=plan.featured_duration_days,
        )

    @classmethod
    def default(cls, slug: str) -> "PlanQuota":
        for plan_row in DEFAULT_PLANS:
            if plan_row["slug"] == slug:
                return cls(
                    slug=slug,
                    product_limit=plan_row["product_limit"],
                    featured_slot_max=plan_row["featured_slot_max"],
                    hot_deal_max=plan_row["hot_deal_max"],
                    featured_duration_days=plan_row["featured_duration_days"],
                )
        raise KeyError(slug)


class PlanService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_plans(self, active_only: bool = True) -> List[SubscriptionPlan]:
        stmt = select(SubscriptionPlan).order_by(SubscriptionPlan.price, SubscriptionPlan.id)
        if active_only:
            stmt = stmt.where(SubscriptionPlan.is_active == True)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_plan(self, plan_id: int) -> SubscriptionPlan:
        plan = await self.db.get(SubscriptionPlan, plan_id)
        if not plan:
            raise NotFoundError("Subscription plan not found")
        return plan

    async def get_by_slug(self, slug: str) -> Optional[SubscriptionPlan]:
        result = await self.db.execute(select(SubscriptionPlan).where(SubscriptionPlan.slug == slug))
        return result.scalar_one_or_none()

    async def default_quota(self) -> PlanQuota:
        """Quota for stores without a subscription: the stored basic plan, else the built-in one."""
        plan = await self.get_by_slug(settings.DEFAULT_PLAN_SLUG)
        if plan:
            return PlanQuota.from_plan(plan)
        return PlanQuota.default(settings.DEFAULT_PLAN_SLUG)

    async def update_plan(self, plan_id: int, data: PlanUpdate) -> SubscriptionPlan:
        plan = await self.get_plan(plan_id)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(plan, field, value)
        await self.db.commit()
        await self.db.refresh(plan)
        return plan

    async def seed_defaults(self) -> int:
        """Insert missing default plans by slug; existing rows are left as edited."""
        created = 0
        for plan_row in DEFAULT_PLANS:
            if await self.get_by_slug(plan_row["slug"]):
                continue
            bank = BANK_ACCOUNT if plan_row["price"] > 0 else {}
            self.db.add(SubscriptionPlan(is_active=True, **plan_row, **bank))
            created += 1
        if created:
            await self.db.commit()
            logger.info("Seeded %s subscription plans", created)
        return created
