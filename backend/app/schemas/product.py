"""
Product schemas
"""
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from app.models.product import ProductStatus
from app.schemas.common import StorageUrl, UtcDatetime


class ProductData(BaseModel):
    """Validated text fields of the multipart product form"""
    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    old_price: Optional[Decimal] = Field(None, ge=0)
    new_price: Decimal = Field(..., ge=0)
    specifications: Optional[Dict[str, Any]] = None
    status: ProductStatus = ProductStatus.ACTIVE


class ProductPatch(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = None
    description: Optional[str] = None
    old_price: Optional[Decimal] = Field(None, ge=0)
    new_price: Optional[Decimal] = Field(None, ge=0)
    specifications: Optional[Dict[str, Any]] = None
    status: Optional[ProductStatus] = None


class ProductImageResponse(BaseModel):
    id: int
    image_path: StorageUrl = None
    is_primary: bool

    class Config:
        from_attributes = True


class ProductCategory(BaseModel):
    id: int
    name: str
    slug: str

    class Config:
        from_attributes = True


class ProductStore(BaseModel):
    id: int
    name: str
    subscription: str
    logo: StorageUrl = None

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    id: int
    store_id: int
    name: str
    slug: str
    description: Optional[str] = None
    old_price: Optional[float] = None
    new_price: Optional[float] = None
    specifications: Optional[Dict[str, Any]] = None
    status: ProductStatus
    primary_image: StorageUrl = None
    category: Optional[ProductCategory] = None
    store: Optional[ProductStore] = None
    images: List[ProductImageResponse] = []
    created_at: Optional[UtcDatetime] = None

    class Config:
        from_attributes = True
