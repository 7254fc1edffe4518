"""
Seller product catalog with plan product limits and image handling
"""
import logging
import re
import secrets
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import UploadFile
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import clock
from app.core.config import settings
from app.core.exceptions import NotFoundError, PermissionDeniedError, QuotaExceededError, ValidationFailedError
from app.core.pagination import paginate
from app.models.category import Category
from app.models.plan import SubscriptionPlan
from app.models.product import Product, ProductImage, ProductStatus
from app.models.promotion import FeaturedProduct, HotDeal
from app.models.store import Store
from app.models.subscription import Subscription, SubscriptionStatus
from app.schemas.product import ProductData, ProductPatch
from app.services import storage_service
from app.services.plan_service import PlanQuota, PlanService
from app.services.quota_service import owner_quota_lock
from app.services.store_service import store_for_owner

logger = logging.getLogger(__name__)


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "item"


class ProductService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _reload(self, product_id: int) -> Product:
        result = await self.db.execute(
            select(Product).where(Product.id == product_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def active_plan(self, store_id: int) -> PlanQuota:
        """Plan of the store's running active subscription, else the basic plan."""
        result = await self.db.execute(
            select(SubscriptionPlan)
            .join(Subscription, Subscription.plan_id == SubscriptionPlan.id)
            .where(
                Subscription.store_id == store_id,
                Subscription.status == SubscriptionStatus.ACTIVE,
                or_(Subscription.ends_at.is_(None), Subscription.ends_at > clock.utcnow()),
            )
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            .limit(1)
        )
        plan = result.scalar_one_or_none()
        if plan is not None:
            return PlanQuota.from_plan(plan)
        return await PlanService(self.db).default_quota()

    async def product_usage(self, store_id: int) -> Dict[str, Any]:
        plan = await self.active_plan(store_id)
        count = await self.db.scalar(select(func.count()).select_from(Product).where(Product.store_id == store_id)) or 0
        return {"plan": plan.slug, "used": count, "max": plan.product_limit, "remaining": max(0, plan.product_limit - count)}

    async def _category_by_name(self, name: str) -> Category:
        result = await self.db.execute(select(Category).where(func.lower(Category.name) == name.strip().lower()))
        category = result.scalar_one_or_none()
        if category is None:
            raise ValidationFailedError(
                "The selected category is invalid.",
                errors={"category": ["The selected category is invalid."]},
            )
        return category

    def _check_image_count(self, count: int) -> None:
        if count > settings.PRODUCT_MAX_IMAGES:
            raise ValidationFailedError(
                f"A product may have at most {settings.PRODUCT_MAX_IMAGES} images.",
                errors={"images": [f"The images may not have more than {settings.PRODUCT_MAX_IMAGES} items."]},
            )

    async def _save_images(self, product: Product, uploads: List[UploadFile], start: int, saved: List[str]) -> None:
        """Store uploads in order, recording each written path in saved as soon as it lands."""
        for offset, upload in enumerate(uploads):
            stored = await storage_service.save_upload(
                upload,
                "products",
                settings.image_file_types_list,
                settings.MAX_IMAGE_SIZE,
                field=f"images.{offset}",
            )
            saved.append(stored.path)
            product.images.append(ProductImage(image_path=stored.path, sort_order=start + offset))

    @staticmethod
    def _mark_primary(product: Product) -> None:
        for index, image in enumerate(sorted(product.images, key=lambda i: i.sort_order)):
            image.is_primary = index == 0

    async def create_product(self, user_id: int, data: ProductData, images: List[UploadFile]) -> Product:
        async with owner_quota_lock(user_id):
            return await self._create_product(user_id, data, images)

    async def _create_product(self, user_id: int, data: ProductData, images: List[UploadFile]) -> Product:
        store = await store_for_owner(self.db, user_id, lock=True)
        plan = await self.active_plan(store.id)
        count = await self.db.scalar(select(func.count()).select_from(Product).where(Product.store_id == store.id)) or 0
        if count >= plan.product_limit:
            raise QuotaExceededError(
                f"Product limit reached. Your {plan.slug} plan allows {plan.product_limit} products. "
                "Upgrade your plan to add more products.",
                current=count,
                max_allowed=plan.product_limit,
            )
        category = await self._category_by_name(data.category)
        self._check_image_count(len(images))

        product = Product(
            store_id=store.id,
            category_id=category.id,
            name=data.name,
            slug=f"{slugify(data.name)}-{secrets.token_hex(4)}",
            description=data.description,
            old_price=data.old_price,
            new_price=data.new_price,
            specifications=data.specifications,
            status=data.status,
            images=[],
        )
        self.db.add(product)
        saved: List[str] = []
        try:
            await self._save_images(product, images, 0, saved)
            self._mark_primary(product)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            for path in saved:
                await storage_service.delete(path)
            raise
        logger.info("Product %s created for store %s (%s/%s)", product.id, store.id, count + 1, plan.product_limit)
        return await self._reload(product.id)

    async def get_owned(self, user_id: int, product_id: int) -> Product:
        store = await store_for_owner(self.db, user_id)
        product = await self.db.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product not found")
        if product.store_id != store.id:
            raise PermissionDeniedError("You can only manage products from your own store.")
        return product

    async def list_owned(
        self,
        user_id: int,
        page: int,
        per_page: int,
        search: Optional[str] = None,
        status: Optional[ProductStatus] = None,
    ) -> Tuple[Sequence[Product], Dict[str, Any]]:
        store = await store_for_owner(self.db, user_id)
        stmt = select(Product).where(Product.store_id == store.id)
        if search:
            stmt = stmt.where(Product.name.ilike(f"%{search}%"))
        if status:
            stmt = stmt.where(Product.status == status)
        stmt = stmt.order_by(Product.created_at.desc(), Product.id.desc())
        return await paginate(self.db, stmt, page, per_page)

    async def update_product(
        self,
        user_id: int,
        product_id: int,
        data: ProductPatch,
        images: List[UploadFile],
        keep_image_ids: Optional[List[int]] = None,
    ) -> Product:
        """Patch fields; when keep_image_ids is given, images not listed are removed before new ones are appended."""
        product = await self.get_owned(user_id, product_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "category" in changes:
            product.category_id = (await self._category_by_name(changes.pop("category"))).id
        for field, value in changes.items():
            setattr(product, field, value)

        removed: List[str] = []
        if keep_image_ids is not None:
            keep = set(keep_image_ids)
            for image in list(product.images):
                if image.id not in keep:
                    removed.append(image.image_path)
                    product.images.remove(image)
        self._check_image_count(len(product.images) + len(images))

        saved: List[str] = []
        try:
            start = max((i.sort_order for i in product.images), default=-1) + 1
            await self._save_images(product, images, start, saved)
            self._mark_primary(product)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            for path in saved:
                await storage_service.delete(path)
            raise
        for path in removed:
            await storage_service.delete(path)
        return await self._reload(product.id)

    async def delete_product(self, user_id: int, product_id: int) -> None:
        """Delete a product; its promotion rows stay in the ledgers (inactive) so used slots remain counted."""
        product = await self.get_owned(user_id, product_id)
        now = clock.utcnow()
        await self.db.execute(
            update(FeaturedProduct)
            .where(FeaturedProduct.product_id == product.id)
            .values(is_active=False, rotated_out_at=now, product_id=None)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.execute(
            update(HotDeal)
            .where(HotDeal.product_id == product.id)
            .values(is_active=False, deactivated_at=now, product_id=None)
            .execution_options(synchronize_session="fetch")
        )
        paths = [image.image_path for image in product.images]
        await self.db.delete(product)
        await self.db.commit()
        for path in paths:
            await storage_service.delete(path)

    # ---------- administration ---------- #

    async def list_all(
        self,
        page: int,
        per_page: int,
        search: Optional[str] = None,
        status: Optional[ProductStatus] = None,
        store_id: Optional[int] = None,
        category_id: Optional[int] = None,
    ) -> Tuple[Sequence[Product], Dict[str, Any]]:
        stmt = select(Product).join(Store, Product.store_id == Store.id)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(or_(Product.name.ilike(like), Store.name.ilike(like)))
        if status:
            stmt = stmt.where(Product.status == status)
        if store_id:
            stmt = stmt.where(Product.store_id == store_id)
        if category_id:
            stmt = stmt.where(Product.category_id == category_id)
        stmt = stmt.order_by(Product.created_at.desc(), Product.id.desc())
        return await paginate(self.db, stmt, page, per_page)

    async def get_product(self, product_id: int) -> Product:
        product = await self.db.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product
