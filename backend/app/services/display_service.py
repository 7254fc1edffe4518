"""
Public storefront reads: hot deals, featured products, catalog, stores.
Only active products of approved stores are visible. Placements are ordered
platinum, gold, silver, basic and newest first within a tier.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import clock
from app.core.exceptions import NotFoundError
from app.core.pagination import paginate
from app.models.category import Category
from app.models.product import Product, ProductStatus
from app.models.promotion import FeaturedProduct, HotDeal
from app.models.store import Store, StoreStatus
from app.services.plan_service import PLAN_RANK
from app.services.promotion_service import PromotionService


def _plan_order(column):
    return case(PLAN_RANK, value=column, else_=len(PLAN_RANK))


def _visible_product_clause():
    return (Product.status == ProductStatus.ACTIVE) & (Store.status == StoreStatus.APPROVED)


class DisplayService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def hot_deals(self, limit: int = 20) -> List[HotDeal]:
        await PromotionService(self.db).sweep_expired()
        now = clock.utcnow()
        result = await self.db.execute(
            select(HotDeal)
            .join(Product, HotDeal.product_id == Product.id)
            .join(Store, Product.store_id == Store.id)
            .where(
                HotDeal.is_active == True,
                HotDeal.deal_start_at <= now,
                HotDeal.deal_end_at > now,
                _visible_product_clause(),
            )
            .order_by(_plan_order(HotDeal.plan_type), HotDeal.deal_start_at.desc(), HotDeal.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def featured_products(self, limit: int = 20) -> List[FeaturedProduct]:
        await PromotionService(self.db).sweep_expired()
        now = clock.utcnow()
        result = await self.db.execute(
            select(FeaturedProduct)
            .join(Product, FeaturedProduct.product_id == Product.id)
            .join(Store, Product.store_id == Store.id)
            .where(
                FeaturedProduct.is_active == True,
                FeaturedProduct.finish_time > now,
                _visible_product_clause(),
            )
            .order_by(_plan_order(FeaturedProduct.plan_type), FeaturedProduct.start_time.desc(), FeaturedProduct.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def products(
        self,
        page: int,
        per_page: int,
        category: Optional[str] = None,
        search: Optional[str] = None,
        store_id: Optional[int] = None,
    ) -> Tuple[Sequence[Product], Dict[str, Any]]:
        stmt = select(Product).join(Store, Product.store_id == Store.id).where(_visible_product_clause())
        if category:
            stmt = stmt.join(Category, Product.category_id == Category.id).where(
                or_(func.lower(Category.name) == category.lower(), Category.slug == category.lower())
            )
        if search:
            like = f"%{search}%"
            stmt = stmt.where(or_(Product.name.ilike(like), Product.description.ilike(like)))
        if store_id:
            stmt = stmt.where(Product.store_id == store_id)
        stmt = stmt.order_by(Product.created_at.desc(), Product.id.desc())
        return await paginate(self.db, stmt, page, per_page)

    async def product_detail(self, product_id: int) -> Dict[str, Any]:
        result = await self.db.execute(
            select(Product)
            .join(Store, Product.store_id == Store.id)
            .where(Product.id == product_id, _visible_product_clause())
        )
        product = result.scalar_one_or_none()
        if product is None:
            raise NotFoundError("Product not found")
        now = clock.utcnow()
        deal = (await self.db.execute(
            select(HotDeal)
            .where(
                HotDeal.product_id == product.id,
                HotDeal.is_active == True,
                HotDeal.deal_start_at <= now,
                HotDeal.deal_end_at > now,
            )
            .limit(1)
        )).scalar_one_or_none()
        return {"product": product, "hot_deal": deal}

    async def stores(self, page: int, per_page: int, search: Optional[str] = None) -> Tuple[Sequence[Store], Dict[str, Any]]:
        stmt = select(Store).where(Store.status == StoreStatus.APPROVED)
        if search:
            stmt = stmt.where(Store.name.ilike(f"%{search}%"))
        stmt = stmt.order_by(_plan_order(Store.subscription), Store.name)
        return await paginate(self.db, stmt, page, per_page)

    async def approved_store(self, store_id: int) -> Store:
        store = await self.db.get(Store, store_id)
        if store is None or store.status != StoreStatus.APPROVED:
            raise NotFoundError("Store not found")
        return store
