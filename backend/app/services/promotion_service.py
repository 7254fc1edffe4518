"""
Promotion lifecycle: featuring products, hot deals, expiry and the
store-owner dashboard views over both ledgers.
"""
import logging
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import clock
from app.core.exceptions import (
    BusinessRuleError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from app.models.product import Product
from app.models.promotion import FeaturedProduct, HotDeal
from app.models.store import Store
from app.schemas.promotion import HotDealCreate, HotDealUpdate
from app.services import expiry_scheduler
from app.services.quota_service import QuotaService, owner_quota_lock
from app.services.store_service import store_for_owner

logger = logging.getLogger(__name__)

PROMOTION_TYPES = ("featured", "hot_deal")


def discount_percentage(original: Decimal, deal: Decimal) -> int:
    """Whole-percent discount, half up: (original - deal) / original * 100."""
    if original <= 0:
        return 0
    pct = (Decimal(original) - Decimal(deal)) / Decimal(original) * 100
    return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def days_left(end, now) -> int:
    end = clock.as_utc(end)
    if end <= now:
        return 0
    return (end - now).days


class PromotionService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.quota = QuotaService(db)

    # ---------- expiry ---------- #

    async def sweep_expired(self, store_id: Optional[int] = None, commit: bool = True) -> Tuple[int, int]:
        """Deactivate every active placement whose end time has passed. Returns (featured, hot_deals) counts."""
        now = clock.utcnow()
        featured_stmt = (
            update(FeaturedProduct)
            .where(FeaturedProduct.is_active == True, FeaturedProduct.finish_time <= now)
            .values(is_active=False, rotated_out_at=now)
            .execution_options(synchronize_session="fetch")
        )
        deals_stmt = (
            update(HotDeal)
            .where(HotDeal.is_active == True, HotDeal.deal_end_at <= now)
            .values(is_active=False, deactivated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        if store_id is not None:
            featured_stmt = featured_stmt.where(FeaturedProduct.store_id == store_id)
            deals_stmt = deals_stmt.where(HotDeal.store_id == store_id)
        featured = (await self.db.execute(featured_stmt)).rowcount or 0
        deals = (await self.db.execute(deals_stmt)).rowcount or 0
        if commit:
            await self.db.commit()
        if featured or deals:
            logger.info("Swept expired promotions store=%s featured=%s hot_deals=%s", store_id, featured, deals)
        return featured, deals

    async def expire_featured_if_due(self, featured_id: int) -> bool:
        """Idempotent handler for the delayed task: deactivate only if still active and past due."""
        fp = await self.db.get(FeaturedProduct, featured_id)
        if fp is None or not fp.is_active:
            return False
        now = clock.utcnow()
        if clock.as_utc(fp.finish_time) > now:
            return False
        fp.is_active = False
        fp.rotated_out_at = now
        await self.db.commit()
        return True

    async def expire_hot_deal_if_due(self, hot_deal_id: int) -> bool:
        deal = await self.db.get(HotDeal, hot_deal_id)
        if deal is None or not deal.is_active:
            return False
        now = clock.utcnow()
        if clock.as_utc(deal.deal_end_at) > now:
            return False
        deal.is_active = False
        deal.deactivated_at = now
        await self.db.commit()
        return True

    async def deactivate_store_placements(self, store_id: int) -> Tuple[int, int]:
        """Force-deactivate every active placement of a store (plan change). Caller commits."""
        now = clock.utcnow()
        featured = await self.db.execute(
            update(FeaturedProduct)
            .where(FeaturedProduct.store_id == store_id, FeaturedProduct.is_active == True)
            .values(is_active=False, rotated_out_at=now)
            .execution_options(synchronize_session="fetch")
        )
        deals = await self.db.execute(
            update(HotDeal)
            .where(HotDeal.store_id == store_id, HotDeal.is_active == True)
            .values(is_active=False, deal_end_at=now, deactivated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        return featured.rowcount or 0, deals.rowcount or 0

    # ---------- featured placements ---------- #

    async def _owned_product(self, store: Store, product_id: int) -> Product:
        product = await self.db.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product not found")
        if product.store_id != store.id:
            raise PermissionDeniedError("You can only promote products from your own store.")
        return product

    async def _active_featured(self, product_id: int) -> Optional[FeaturedProduct]:
        result = await self.db.execute(
            select(FeaturedProduct)
            .where(FeaturedProduct.product_id == product_id, FeaturedProduct.is_active == True)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def feature_product(self, user_id: int, product_id: int) -> FeaturedProduct:
        async with owner_quota_lock(user_id):
            return await self._feature_product(user_id, product_id)

    async def _feature_product(self, user_id: int, product_id: int) -> FeaturedProduct:
        store = await store_for_owner(self.db, user_id, lock=True)
        product = await self._owned_product(store, product_id)
        await self.sweep_expired(store_id=store.id, commit=False)
        if await self._active_featured(product.id):
            raise BusinessRuleError("Product is already featured.")

        ctx = await self.quota.context_for_store(store.id)
        await self.quota.ensure_featured_slot(store.id, ctx)

        now = clock.utcnow()
        featured = FeaturedProduct(
            product=product,
            store=store,
            subscription_code=ctx.code,
            plan_type=ctx.plan.slug,
            start_time=now,
            finish_time=now + timedelta(days=ctx.plan.featured_duration_days),
            is_active=True,
        )
        self.db.add(featured)
        await self.db.commit()
        await self.db.refresh(featured)
        await expiry_scheduler.schedule_featured_expiry(featured.id, clock.as_utc(featured.finish_time))
        logger.info(
            "Featured product=%s store=%s code=%s until %s",
            product.id, store.id, ctx.code, featured.finish_time,
        )
        return featured

    async def unfeature_product(self, user_id: int, product_id: int) -> FeaturedProduct:
        store = await store_for_owner(self.db, user_id)
        product = await self._owned_product(store, product_id)
        featured = await self._active_featured(product.id)
        if featured is None:
            raise BusinessRuleError("Product is not featured")
        featured.is_active = False
        featured.rotated_out_at = clock.utcnow()
        await self.db.commit()
        return featured

    # ---------- hot deals ---------- #

    async def _running_deal(self, product_id: int) -> Optional[HotDeal]:
        """An active deal that has not ended yet (upcoming deals included)."""
        result = await self.db.execute(
            select(HotDeal)
            .where(
                HotDeal.product_id == product_id,
                HotDeal.is_active == True,
                HotDeal.deal_end_at > clock.utcnow(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_hot_deal(self, user_id: int, data: HotDealCreate) -> HotDeal:
        async with owner_quota_lock(user_id):
            return await self._create_hot_deal(user_id, data)

    async def _create_hot_deal(self, user_id: int, data: HotDealCreate) -> HotDeal:
        store = await store_for_owner(self.db, user_id, lock=True)
        product = await self._owned_product(store, data.product_id)
        await self.sweep_expired(store_id=store.id, commit=False)
        if await self._running_deal(product.id):
            raise BusinessRuleError("This product already has an active hot deal.")

        original = Decimal(product.new_price or 0)
        if original <= 0:
            raise BusinessRuleError("The product needs a price before it can go on a hot deal.")
        if data.deal_price >= original:
            raise BusinessRuleError("The deal price must be lower than the product price.")

        ctx = await self.quota.context_for_store(store.id)
        await self.quota.ensure_hot_deal_slot(store.id, ctx)

        deal = HotDeal(
            product=product,
            store=store,
            subscription_code=ctx.code,
            plan_type=ctx.plan.slug,
            original_price=original,
            deal_price=data.deal_price,
            discount_percentage=discount_percentage(original, data.deal_price),
            deal_description=data.deal_description,
            deal_start_at=data.deal_start_at,
            deal_end_at=data.deal_end_at,
            is_active=True,
            activated_at=clock.utcnow(),
        )
        self.db.add(deal)
        await self.db.commit()
        await self.db.refresh(deal)
        await expiry_scheduler.schedule_hot_deal_expiry(deal.id, clock.as_utc(deal.deal_end_at))
        logger.info("Hot deal product=%s store=%s code=%s %s%% off", product.id, store.id, ctx.code, deal.discount_percentage)
        return deal

    async def _owned_deal(self, store: Store, hot_deal_id: int) -> HotDeal:
        deal = await self.db.get(HotDeal, hot_deal_id)
        if deal is None:
            raise NotFoundError("Hot deal not found")
        if deal.store_id != store.id:
            raise PermissionDeniedError("You can only manage hot deals of your own store.")
        return deal

    async def update_hot_deal(self, user_id: int, hot_deal_id: int, data: HotDealUpdate) -> HotDeal:
        store = await store_for_owner(self.db, user_id)
        deal = await self._owned_deal(store, hot_deal_id)
        await self.sweep_expired(store_id=store.id, commit=False)
        if not deal.is_active:
            raise BusinessRuleError("This hot deal has ended and can no longer be changed.")

        now = clock.utcnow()
        reschedule = False
        if data.deal_end_at is not None:
            if data.deal_end_at <= now:
                raise BusinessRuleError("The deal end time must be in the future.")
            if data.deal_end_at <= clock.as_utc(deal.deal_start_at):
                raise BusinessRuleError("The deal end time must be after the deal start time.")
            deal.deal_end_at = data.deal_end_at
            reschedule = True
        if data.deal_price is not None:
            original = Decimal(deal.original_price)
            if data.deal_price >= original:
                raise BusinessRuleError("The deal price must be lower than the product price.")
            deal.deal_price = data.deal_price
            deal.discount_percentage = discount_percentage(original, data.deal_price)
        if data.deal_description is not None:
            deal.deal_description = data.deal_description
        await self.db.commit()
        await self.db.refresh(deal)
        if reschedule:
            # the earlier task finds the deal not yet due and does nothing
            await expiry_scheduler.schedule_hot_deal_expiry(deal.id, clock.as_utc(deal.deal_end_at))
        return deal

    async def end_hot_deal(self, user_id: int, hot_deal_id: int) -> HotDeal:
        store = await store_for_owner(self.db, user_id)
        deal = await self._owned_deal(store, hot_deal_id)
        if deal.is_active:
            now = clock.utcnow()
            deal.is_active = False
            deal.deal_end_at = now
            deal.deactivated_at = now
            await self.db.commit()
            await self.db.refresh(deal)
        return deal

    async def expire_manually(self, user_id: int, promotion_type: str, promotion_id: int):
        """Owner-initiated expiry of one placement of either kind."""
        if promotion_type not in PROMOTION_TYPES:
            raise InvalidRequestError("Invalid promotion type. Use 'featured' or 'hot_deal'.")
        store = await store_for_owner(self.db, user_id)
        now = clock.utcnow()
        if promotion_type == "featured":
            row = await self.db.get(FeaturedProduct, promotion_id)
            if row is None:
                raise NotFoundError("Featured product not found")
            if row.store_id != store.id:
                raise PermissionDeniedError("You can only manage promotions of your own store.")
            if row.is_active:
                row.is_active = False
                row.rotated_out_at = now
        else:
            row = await self._owned_deal(store, promotion_id)
            if row.is_active:
                row.is_active = False
                row.deactivated_at = now
        await self.db.commit()
        return row

    # ---------- dashboard views ---------- #

    async def featured_and_deals(self, user_id: int) -> Dict:
        """Active placements under the current code plus slot usage."""
        store = await store_for_owner(self.db, user_id)
        await self.sweep_expired(store_id=store.id)
        ctx = await self.quota.context_for_store(store.id)
        featured = await self._rows(FeaturedProduct, store.id, ctx.code, active_only=True)
        deals = await self._rows(HotDeal, store.id, ctx.code, active_only=True)
        return {
            "featured_products": featured,
            "hot_deals": deals,
            "quota": await self.quota.summary(store.id, ctx),
        }

    async def promotion_status(self, user_id: int) -> Dict:
        """Every placement under the current code with expired flag and days left."""
        store = await store_for_owner(self.db, user_id)
        await self.sweep_expired(store_id=store.id)
        ctx = await self.quota.context_for_store(store.id)
        now = clock.utcnow()
        featured = [
            {"record": fp, "expired": clock.as_utc(fp.finish_time) <= now, "days_left": days_left(fp.finish_time, now)}
            for fp in await self._rows(FeaturedProduct, store.id, ctx.code)
        ]
        deals = [
            {"record": d, "expired": clock.as_utc(d.deal_end_at) <= now, "days_left": days_left(d.deal_end_at, now)}
            for d in await self._rows(HotDeal, store.id, ctx.code)
        ]
        return {
            "featured_products": featured,
            "hot_deals": deals,
            "quota": await self.quota.summary(store.id, ctx),
        }

    async def _rows(self, model, store_id: int, code: Optional[str], active_only: bool = False) -> List:
        code_clause = model.subscription_code.is_(None) if code is None else model.subscription_code == code
        stmt = select(model).where(model.store_id == store_id, code_clause)
        if active_only:
            stmt = stmt.where(model.is_active == True)
        stmt = stmt.order_by(model.created_at.desc(), model.id.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
