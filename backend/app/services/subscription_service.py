"""
Subscription lifecycle: upgrade requests with payment receipts, admin
approval/rejection, lapse handling and plan analytics.

pending -> active | rejected, active -> expired. Nothing leaves rejected or expired.
"""
import logging
import secrets
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import UploadFile
from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import clock
from app.core.config import settings
from app.core.exceptions import InvalidTransitionError, NotFoundError, ValidationFailedError
from app.core.pagination import paginate
from app.models.plan import SubscriptionPlan
from app.models.product import Product, ProductStatus
from app.models.store import Store
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.user import User
from app.services import storage_service
from app.services.promotion_service import PromotionService
from app.services.store_service import store_for_owner

logger = logging.getLogger(__name__)

PLAN_COLORS = {
    "silver": "#94a3b8",
    "gold": "#f59e0b",
    "platinum": "#a855f7",
}
DEFAULT_PLAN_COLOR = "#888888"


def generate_subscription_code(store_id: int, now: Optional[datetime] = None) -> str:
    """SUB-YYYYMMDD-<store id, 3 digits>-<6 hex>"""
    now = now or clock.utcnow()
    return f"SUB-{now:%Y%m%d}-{store_id:03d}-{secrets.token_hex(3).upper()}"


class SubscriptionService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_subscription(self, subscription_id: int) -> Subscription:
        sub = await self.db.get(Subscription, subscription_id)
        if sub is None:
            raise NotFoundError("Subscription not found")
        return sub

    async def _reload(self, subscription_id: int) -> Subscription:
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.id == subscription_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    # ---------- store side ---------- #

    async def request_upgrade(self, user_id: int, plan_id: int, receipt: UploadFile) -> Subscription:
        """
        Start a new purchase cycle: expire the store's pending/active
        subscriptions, force-deactivate their placements and open a pending
        subscription under a fresh code.
        """
        store = await store_for_owner(self.db, user_id, lock=True)
        plan = await self.db.get(SubscriptionPlan, plan_id)
        if plan is None or not plan.is_active:
            raise ValidationFailedError(
                "The selected plan is invalid.",
                errors={"plan_id": ["The selected plan is invalid."]},
            )
        stored = await storage_service.save_upload(
            receipt,
            "subscriptions",
            settings.receipt_file_types_list,
            settings.MAX_DOCUMENT_SIZE,
            field="payment_receipt",
        )
        try:
            expired = await self.db.execute(
                update(Subscription)
                .where(
                    Subscription.store_id == store.id,
                    Subscription.status.in_([SubscriptionStatus.PENDING, SubscriptionStatus.ACTIVE]),
                )
                .values(status=SubscriptionStatus.EXPIRED)
                .execution_options(synchronize_session="fetch")
            )
            featured, deals = await PromotionService(self.db).deactivate_store_placements(store.id)

            sub = Subscription(
                store=store,
                plan=plan,
                subscription_code=generate_subscription_code(store.id),
                status=SubscriptionStatus.PENDING,
                payment_receipt_path=stored.path,
            )
            self.db.add(sub)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            await storage_service.delete(stored.path)
            raise
        logger.info(
            "Upgrade requested store=%s plan=%s code=%s (expired %s subscriptions, deactivated %s featured, %s hot deals)",
            store.id, plan.slug, sub.subscription_code, expired.rowcount, featured, deals,
        )
        return await self._reload(sub.id)

    async def current_for_store(self, store: Store) -> Optional[Subscription]:
        """Latest subscription of the store, lapsing it first if its period is over."""
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.store_id == store.id)
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            .limit(1)
        )
        sub = result.scalar_one_or_none()
        if sub is not None and await self._lapse_if_due(sub):
            await self.db.commit()
            sub = await self._reload(sub.id)
        return sub

    async def current_for_owner(self, user_id: int) -> Optional[Subscription]:
        store = await store_for_owner(self.db, user_id)
        return await self.current_for_store(store)

    async def _lapse_if_due(self, sub: Subscription) -> bool:
        """Active and past ends_at: expire it, drop the store to basic, suspend its products. Caller commits."""
        if sub.status != SubscriptionStatus.ACTIVE or sub.ends_at is None:
            return False
        if clock.as_utc(sub.ends_at) > clock.utcnow():
            return False
        sub.status = SubscriptionStatus.EXPIRED
        store = await self.db.get(Store, sub.store_id)
        store.subscription = settings.DEFAULT_PLAN_SLUG
        await self.db.execute(
            update(Product)
            .where(Product.store_id == sub.store_id, Product.status == ProductStatus.ACTIVE)
            .values(status=ProductStatus.SUSPENDED)
            .execution_options(synchronize_session="fetch")
        )
        logger.info("Subscription %s lapsed; store %s reverted to %s", sub.subscription_code, store.id, store.subscription)
        return True

    async def expire_due(self) -> int:
        """Periodic sweep: lapse every active subscription past its end date."""
        result = await self.db.execute(
            select(Subscription).where(
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.ends_at <= clock.utcnow(),
            )
        )
        count = 0
        for sub in result.scalars().all():
            if await self._lapse_if_due(sub):
                count += 1
        if count:
            await self.db.commit()
        return count

    # ---------- administration ---------- #

    async def list_subscriptions(
        self,
        page: int,
        per_page: int,
        status: Optional[SubscriptionStatus] = None,
        plan: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[Sequence[Subscription], Dict[str, Any]]:
        stmt = (
            select(Subscription)
            .join(Store, Subscription.store_id == Store.id)
            .join(User, Store.user_id == User.id)
            .join(SubscriptionPlan, Subscription.plan_id == SubscriptionPlan.id)
        )
        if status:
            stmt = stmt.where(Subscription.status == status)
        if plan:
            stmt = stmt.where(SubscriptionPlan.slug == plan)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(or_(
                Store.name.ilike(like),
                User.name.ilike(like),
                Subscription.subscription_code.ilike(like),
            ))
        stmt = stmt.order_by(Subscription.created_at.desc(), Subscription.id.desc())
        return await paginate(self.db, stmt, page, per_page)

    async def approve(self, subscription_id: int, admin: User) -> Subscription:
        sub = await self.get_subscription(subscription_id)
        if sub.status != SubscriptionStatus.PENDING:
            raise InvalidTransitionError(f"Only pending subscriptions can be approved (this one is {sub.status.value}).")
        now = clock.utcnow()
        sub.status = SubscriptionStatus.ACTIVE
        sub.starts_at = now
        sub.ends_at = clock.add_months(now, settings.SUBSCRIPTION_PERIOD_MONTHS)
        sub.approved_at = now
        sub.activated_by = admin.id
        sub.rejection_reason = None
        store = await self.db.get(Store, sub.store_id)
        plan = await self.db.get(SubscriptionPlan, sub.plan_id)
        store.subscription = plan.slug
        await self.db.commit()
        logger.info("Subscription %s approved by %s; store %s now %s", sub.subscription_code, admin.id, store.id, plan.slug)
        return await self._reload(sub.id)

    async def reject(self, subscription_id: int, reason: str) -> Subscription:
        sub = await self.get_subscription(subscription_id)
        if sub.status != SubscriptionStatus.PENDING:
            raise InvalidTransitionError(f"Only pending subscriptions can be rejected (this one is {sub.status.value}).")
        sub.status = SubscriptionStatus.REJECTED
        sub.rejection_reason = reason
        await self.db.commit()
        return await self._reload(sub.id)

    async def receipt_path(self, subscription_id: int) -> str:
        sub = await self.get_subscription(subscription_id)
        if not sub.payment_receipt_path or not storage_service.exists(sub.payment_receipt_path):
            raise NotFoundError("Payment receipt not found")
        return sub.payment_receipt_path

    async def stores_by_plan(self) -> List[Dict[str, Any]]:
        """Active subscriptions grouped by plan, with chart colors."""
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.status == SubscriptionStatus.ACTIVE)
            .order_by(Subscription.id)
        )
        groups: Dict[str, Dict[str, Any]] = {}
        for sub in result.scalars().all():
            slug = sub.plan.slug
            group = groups.setdefault(slug, {
                "plan": slug,
                "name": sub.plan.name,
                "color": PLAN_COLORS.get(slug, DEFAULT_PLAN_COLOR),
                "count": 0,
                "stores": [],
            })
            group["count"] += 1
            group["stores"].append({
                "store_id": sub.store_id,
                "store_name": sub.store.name,
                "subscription_code": sub.subscription_code,
                "ends_at": sub.ends_at,
            })
        return sorted(groups.values(), key=lambda g: -g["count"])
