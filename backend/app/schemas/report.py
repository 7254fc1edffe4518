"""
Store report schemas
"""
from pydantic import BaseModel, Field
from typing import Optional

from app.models.store_report import ReportReason, ReportStatus
from app.schemas.common import UtcDatetime


class StoreReportCreate(BaseModel):
    reason: ReportReason
    description: Optional[str] = Field(None, max_length=1000)


class StoreReportStatusUpdate(BaseModel):
    status: ReportStatus
    admin_notes: Optional[str] = Field(None, max_length=2000)


class ReportStore(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class ReportUser(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class StoreReportResponse(BaseModel):
    id: int
    store_id: int
    reported_by: int
    reason: ReportReason
    description: Optional[str] = None
    status: ReportStatus
    admin_notes: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[UtcDatetime] = None
    created_at: Optional[UtcDatetime] = None
    store: Optional[ReportStore] = None
    reporter: Optional[ReportUser] = None

    class Config:
        from_attributes = True
