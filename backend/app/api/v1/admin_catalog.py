"""
Admin catalog API: categories and a read-only view over all products
"""
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import PageParams, get_client_ip, request_id, require_capability
from app.core.database import get_db
from app.core.pagination import paginated
from app.core.permissions import Capability
from app.models.product import ProductStatus
from app.models.user import User
from app.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from app.schemas.product import ProductResponse
from app.services import cache_service
from app.services.audit_service import log_audit
from app.services.category_service import CategoryService
from app.services.product_service import ProductService

router = APIRouter()

category_admin = require_capability(Capability.MANAGE_CATEGORIES)
product_viewer = require_capability(Capability.VIEW_ALL_PRODUCTS)


@router.get("/categories")
async def list_categories(
    paging: PageParams = Depends(),
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    current_user: User = Depends(category_admin),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await CategoryService(db).list_categories(paging.page, paging.per_page, search, is_active)
    return paginated([CategoryResponse.model_validate(c) for c in items], meta)


@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryCreate,
    request: Request,
    current_user: User = Depends(category_admin),
    db: AsyncSession = Depends(get_db),
):
    category = await CategoryService(db).create_category(body)
    data = CategoryResponse.model_validate(category)
    await asyncio.to_thread(cache_service.invalidate_catalog)
    await log_audit(db, current_user, "category_created", "product", category.id, {"name": category.name}, get_client_ip(request), request_id(request))
    return {"message": "Category created successfully", "data": data}


@router.get("/categories/{category_id}")
async def get_category(
    category_id: int,
    current_user: User = Depends(category_admin),
    db: AsyncSession = Depends(get_db),
):
    category = await CategoryService(db).get_category(category_id)
    return {"data": CategoryResponse.model_validate(category)}


@router.patch("/categories/{category_id}")
async def update_category(
    category_id: int,
    body: CategoryUpdate,
    request: Request,
    current_user: User = Depends(category_admin),
    db: AsyncSession = Depends(get_db),
):
    category = await CategoryService(db).update_category(category_id, body)
    data = CategoryResponse.model_validate(category)
    await asyncio.to_thread(cache_service.invalidate_catalog)
    await log_audit(
        db, current_user, "category_updated", "product", category.id,
        body.model_dump(exclude_unset=True), get_client_ip(request), request_id(request),
    )
    return {"message": "Category updated successfully", "data": data}


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: int,
    request: Request,
    current_user: User = Depends(category_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete an unused category; categories with products are refused"""
    await CategoryService(db).delete_category(category_id)
    await asyncio.to_thread(cache_service.invalidate_catalog)
    await log_audit(db, current_user, "category_deleted", "product", category_id, None, get_client_ip(request), request_id(request))
    return {"message": "Category deleted successfully"}


@router.get("/products")
async def list_products(
    paging: PageParams = Depends(),
    search: Optional[str] = Query(None),
    status: Optional[ProductStatus] = Query(None),
    store_id: Optional[int] = Query(None),
    category_id: Optional[int] = Query(None),
    current_user: User = Depends(product_viewer),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await ProductService(db).list_all(paging.page, paging.per_page, search, status, store_id, category_id)
    return paginated([ProductResponse.model_validate(p) for p in items], meta)


@router.get("/products/{product_id}")
async def get_product(
    product_id: int,
    current_user: User = Depends(product_viewer),
    db: AsyncSession = Depends(get_db),
):
    product = await ProductService(db).get_product(product_id)
    return {"data": ProductResponse.model_validate(product)}
