"""
Category schemas
"""
from pydantic import BaseModel, Field
from typing import Optional

from app.schemas.common import UtcDatetime


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    is_active: bool
    created_at: Optional[UtcDatetime] = None

    class Config:
        from_attributes = True


class CategoryCount(BaseModel):
    id: int
    name: str
    slug: str
    product_count: int
