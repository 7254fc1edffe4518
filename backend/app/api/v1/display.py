"""
Public storefront API: hot deals, featured products, catalog, stores, plans, site settings
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import PageParams
from app.core.config import settings
from app.core.database import get_db
from app.core.pagination import paginated
from app.schemas.category import CategoryCount
from app.schemas.plan import PlanResponse
from app.schemas.product import ProductResponse
from app.schemas.promotion import FeaturedProductResponse, HotDealResponse
from app.schemas.store import StoreSummary
from app.services import cache_service
from app.services.category_service import CategoryService
from app.services.display_service import DisplayService
from app.services.plan_service import PlanService
from app.services.settings_service import SettingsService

router = APIRouter()


@router.get("/hot-deals")
async def hot_deals(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Running hot deals, best plan first"""
    deals = await DisplayService(db).hot_deals(limit)
    return {"data": [HotDealResponse.model_validate(d) for d in deals]}


@router.get("/featured-products")
async def featured_products(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    rows = await DisplayService(db).featured_products(limit)
    return {"data": [FeaturedProductResponse.model_validate(r) for r in rows]}


@router.get("/showcase")
async def showcase(
    limit: int = Query(12, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    """Home page block: featured products and hot deals together"""
    service = DisplayService(db)
    featured = await service.featured_products(limit)
    deals = await service.hot_deals(limit)
    return {
        "data": {
            "featured_products": [FeaturedProductResponse.model_validate(r) for r in featured],
            "hot_deals": [HotDealResponse.model_validate(d) for d in deals],
        }
    }


@router.get("/products")
async def list_products(
    paging: PageParams = Depends(),
    category: Optional[str] = Query(None, description="Category name or slug"),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await DisplayService(db).products(paging.page, paging.per_page, category, search)
    return paginated([ProductResponse.model_validate(p) for p in items], meta)


@router.get("/products/{product_id}")
async def product_detail(product_id: int, db: AsyncSession = Depends(get_db)):
    detail = await DisplayService(db).product_detail(product_id)
    deal = detail["hot_deal"]
    return {
        "data": {
            "product": ProductResponse.model_validate(detail["product"]),
            "hot_deal": HotDealResponse.model_validate(deal) if deal else None,
        }
    }


@router.get("/stores")
async def list_stores(
    paging: PageParams = Depends(),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await DisplayService(db).stores(paging.page, paging.per_page, search)
    return paginated([StoreSummary.model_validate(s) for s in items], meta)


@router.get("/stores/{store_id}/products")
async def store_products(
    store_id: int,
    paging: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    service = DisplayService(db)
    store = await service.approved_store(store_id)
    store_data = StoreSummary.model_validate(store)
    items, meta = await service.products(paging.page, paging.per_page, store_id=store.id)
    body = paginated([ProductResponse.model_validate(p) for p in items], meta)
    body["store"] = store_data
    return body


@router.get("/category-counts")
async def category_counts(db: AsyncSession = Depends(get_db)):
    """Active categories with visible product counts (cached)"""
    async def _load():
        return [CategoryCount(**row).model_dump() for row in await CategoryService(db).category_counts()]

    counts = await cache_service.cache_aside(cache_service.KEY_CATEGORY_COUNTS, settings.CACHE_TTL_LIST, _load)
    return {"data": counts}


@router.get("/subscription-plans")
async def list_plans(db: AsyncSession = Depends(get_db)):
    plans = await PlanService(db).list_plans(active_only=True)
    return {"data": [PlanResponse.model_validate(p) for p in plans]}


@router.get("/subscription-plans/{plan_id}")
async def get_plan(plan_id: int, db: AsyncSession = Depends(get_db)):
    plan = await PlanService(db).get_plan(plan_id)
    return {"data": PlanResponse.model_validate(plan)}


@router.get("/settings")
async def site_settings(db: AsyncSession = Depends(get_db)):
    return {"data": await SettingsService(db).get_settings()}
