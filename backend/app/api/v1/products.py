"""
Seller product catalog API (multipart forms with images)
"""
import asyncio
import json
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import PageParams, form_model, get_client_ip, request_id, require_capability
from app.core.database import get_db
from app.core.exceptions import ValidationFailedError
from app.core.pagination import paginated
from app.core.permissions import Capability
from app.models.product import ProductStatus
from app.models.user import User
from app.schemas.product import ProductData, ProductPatch, ProductResponse
from app.services import cache_service
from app.services.audit_service import log_audit
from app.services.product_service import ProductService
from app.services.store_service import store_for_owner

router = APIRouter()

seller = require_capability(Capability.MANAGE_OWN_PRODUCTS)


def _specifications(raw: Optional[str]):
    """specifications arrive as a JSON object string"""
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        value = None
    if not isinstance(value, dict):
        raise ValidationFailedError(
            "The specifications must be a JSON object.",
            errors={"specifications": ["The specifications must be a JSON object."]},
        )
    return value


def _uploads(images: Optional[List[UploadFile]]) -> List[UploadFile]:
    return [f for f in (images or []) if f.filename]


@router.get("/my-products")
async def list_my_products(
    paging: PageParams = Depends(),
    search: Optional[str] = Query(None),
    status_filter: Optional[ProductStatus] = Query(None, alias="status"),
    current_user: User = Depends(seller),
    db: AsyncSession = Depends(get_db),
):
    service = ProductService(db)
    items, meta = await service.list_owned(current_user.id, paging.page, paging.per_page, search, status_filter)
    body = paginated([ProductResponse.model_validate(p) for p in items], meta)
    store = await store_for_owner(db, current_user.id)
    body["usage"] = await service.product_usage(store.id)
    return body


@router.post("/my-products", status_code=status.HTTP_201_CREATED)
async def create_product(
    request: Request,
    name: str = Form(...),
    category: str = Form(...),
    description: str = Form(...),
    new_price: str = Form(...),
    old_price: Optional[str] = Form(None),
    specifications: Optional[str] = Form(None),
    product_status: Optional[ProductStatus] = Form(None, alias="status"),
    images: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(seller),
    db: AsyncSession = Depends(get_db),
):
    fields = dict(
        name=name,
        category=category,
        description=description,
        new_price=new_price,
        old_price=old_price or None,
        specifications=_specifications(specifications),
    )
    if product_status is not None:
        fields["status"] = product_status
    data = form_model(ProductData, **fields)

    product = await ProductService(db).create_product(current_user.id, data, _uploads(images))
    body = ProductResponse.model_validate(product)
    await asyncio.to_thread(cache_service.invalidate_catalog)
    await log_audit(db, current_user, "product_created", "product", product.id, {"name": product.name}, get_client_ip(request), request_id(request))
    return {"message": "Product created successfully", "data": body}


@router.get("/my-products/{product_id}")
async def get_my_product(
    product_id: int,
    current_user: User = Depends(seller),
    db: AsyncSession = Depends(get_db),
):
    product = await ProductService(db).get_owned(current_user.id, product_id)
    return {"data": ProductResponse.model_validate(product)}


@router.patch("/my-products/{product_id}")
async def update_my_product(
    product_id: int,
    request: Request,
    name: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    new_price: Optional[str] = Form(None),
    old_price: Optional[str] = Form(None),
    specifications: Optional[str] = Form(None),
    product_status: Optional[ProductStatus] = Form(None, alias="status"),
    keep_images: Optional[List[int]] = Form(None, description="Image ids to keep; others are removed"),
    images: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(seller),
    db: AsyncSession = Depends(get_db),
):
    """Partial update; omitted fields stay unchanged"""
    fields = {
        "name": name,
        "category": category,
        "description": description,
        "new_price": new_price or None,
        "old_price": old_price or None,
        "specifications": _specifications(specifications),
        "status": product_status,
    }
    data = form_model(ProductPatch, **{k: v for k, v in fields.items() if v is not None})

    product = await ProductService(db).update_product(
        current_user.id, product_id, data, _uploads(images), keep_image_ids=keep_images,
    )
    body = ProductResponse.model_validate(product)
    await asyncio.to_thread(cache_service.invalidate_catalog)
    await log_audit(
        db, current_user, "product_updated", "product", product.id,
        data.model_dump(exclude_unset=True, mode="json"), get_client_ip(request), request_id(request),
    )
    return {"message": "Product updated successfully", "data": body}


@router.delete("/my-products/{product_id}")
async def delete_my_product(
    product_id: int,
    request: Request,
    current_user: User = Depends(seller),
    db: AsyncSession = Depends(get_db),
):
    await ProductService(db).delete_product(current_user.id, product_id)
    await asyncio.to_thread(cache_service.invalidate_catalog)
    await log_audit(db, current_user, "product_deleted", "product", product_id, None, get_client_ip(request), request_id(request))
    return {"message": "Product deleted successfully"}
