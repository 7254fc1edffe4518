"""Audit log schemas"""
from typing import Optional
from pydantic import BaseModel

from app.schemas.common import UtcDatetime


class AuditLogItem(BaseModel):
    id: int
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    action: str
    category: str
    resource_id: Optional[str] = None
    detail: Optional[str] = None
    ip: Optional[str] = None
    request_id: Optional[str] = None
    created_at: UtcDatetime

    class Config:
        from_attributes = True
