"""
Admin user management schemas
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional

from app.core.config import settings
from app.core.permissions import Role


class AdminUserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=settings.PASSWORD_MIN_LENGTH)
    phone: Optional[str] = Field(None, max_length=30)
    role: Role = Role.BUYER
    is_active: bool = True


class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=settings.PASSWORD_MIN_LENGTH)
