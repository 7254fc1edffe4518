"""
Category service
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BusinessRuleError, NotFoundError, ValidationFailedError
from app.core.pagination import paginate
from app.models.category import Category
from app.models.product import Product, ProductStatus
from app.models.store import Store, StoreStatus
from app.schemas.category import CategoryCreate, CategoryUpdate
from app.services.product_service import slugify

DEFAULT_CATEGORIES = [
    "Drilling Equipment",
    "Pipes & Fittings",
    "Valves",
    "Pumps & Compressors",
    "Safety Equipment",
    "Electrical & Instrumentation",
    "Chemicals & Lubricants",
    "Services",
]


class CategoryService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_category(self, category_id: int) -> Category:
        category = await self.db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category not found")
        return category

    async def list_categories(
        self,
        page: int,
        per_page: int,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Tuple[Sequence[Category], Dict[str, Any]]:
        stmt = select(Category)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(or_(Category.name.ilike(like), Category.description.ilike(like)))
        if is_active is not None:
            stmt = stmt.where(Category.is_active == is_active)
        stmt = stmt.order_by(Category.name)
        return await paginate(self.db, stmt, page, per_page)

    async def _ensure_unique(self, name: Optional[str], slug: Optional[str], exclude_id: Optional[int] = None) -> None:
        errors = {}
        for field, column, value in (("name", Category.name, name), ("slug", Category.slug, slug)):
            if value is None:
                continue
            stmt = select(Category.id).where(func.lower(column) == value.lower())
            if exclude_id is not None:
                stmt = stmt.where(Category.id != exclude_id)
            if (await self.db.execute(stmt)).first():
                errors[field] = [f"The {field} has already been taken."]
        if errors:
            raise ValidationFailedError(next(iter(errors.values()))[0], errors=errors)

    async def create_category(self, data: CategoryCreate) -> Category:
        slug = data.slug or slugify(data.name)
        await self._ensure_unique(data.name, slug)
        category = Category(name=data.name, slug=slug, description=data.description, is_active=data.is_active)
        self.db.add(category)
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def update_category(self, category_id: int, data: CategoryUpdate) -> Category:
        category = await self.get_category(category_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes and "slug" not in changes:
            changes["slug"] = slugify(changes["name"])
        await self._ensure_unique(changes.get("name"), changes.get("slug"), exclude_id=category.id)
        for field, value in changes.items():
            setattr(category, field, value)
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def delete_category(self, category_id: int) -> None:
        category = await self.get_category(category_id)
        in_use = await self.db.scalar(
            select(func.count()).select_from(Product).where(Product.category_id == category.id)
        ) or 0
        if in_use:
            raise BusinessRuleError(
                f"Cannot delete a category that has {in_use} products. Move or delete them first.",
                product_count=in_use,
            )
        await self.db.delete(category)
        await self.db.commit()

    async def category_counts(self) -> List[Dict[str, Any]]:
        """Active categories with their count of publicly visible products."""
        visible = (
            select(Product.category_id, func.count(Product.id).label("product_count"))
            .join(Store, Product.store_id == Store.id)
            .where(Product.status == ProductStatus.ACTIVE, Store.status == StoreStatus.APPROVED)
            .group_by(Product.category_id)
            .subquery()
        )
        result = await self.db.execute(
            select(Category.id, Category.name, Category.slug, func.coalesce(visible.c.product_count, 0))
            .outerjoin(visible, visible.c.category_id == Category.id)
            .where(Category.is_active == True)
            .order_by(Category.name)
        )
        return [
            {"id": row[0], "name": row[1], "slug": row[2], "product_count": int(row[3])}
            for row in result.all()
        ]

    async def seed_defaults(self) -> int:
        if await self.db.scalar(select(func.count()).select_from(Category)):
            return 0
        for name in DEFAULT_CATEGORIES:
            self.db.add(Category(name=name, slug=slugify(name), is_active=True))
        await self.db.commit()
        return len(DEFAULT_CATEGORIES)
