"""
Store, document and seller registration schemas
"""
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional

from app.models.store import DocumentStatus, StoreStatus
from app.schemas.common import StorageUrl, UtcDatetime


class StoreDocumentResponse(BaseModel):
    id: int
    type: str
    file_path: StorageUrl = None
    original_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    is_mandatory: bool
    status: DocumentStatus
    rejection_reason: Optional[str] = None
    reviewed_at: Optional[UtcDatetime] = None

    class Config:
        from_attributes = True


class StoreOwner(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None

    class Config:
        from_attributes = True


class StoreSummary(BaseModel):
    """Public store card"""
    id: int
    name: str
    description: Optional[str] = None
    city: Optional[str] = None
    states: Optional[List[str]] = None
    business_lines: Optional[List[str]] = None
    logo: StorageUrl = None
    subscription: str
    status: StoreStatus

    class Config:
        from_attributes = True


class StoreResponse(StoreSummary):
    """Full store record for the owner and administrators"""
    user_id: int
    rc_number: str
    email: str
    phone: str
    alternate_phone: Optional[str] = None
    address: str
    website: Optional[str] = None
    opening_hours: Optional[str] = None
    contact_person: str
    product_line: Optional[str] = None
    rejection_reason: Optional[str] = None
    suspension_reason: Optional[str] = None
    approved_at: Optional[UtcDatetime] = None
    created_at: Optional[UtcDatetime] = None
    owner: Optional[StoreOwner] = None
    documents: List[StoreDocumentResponse] = []


class SellerRegistrationData(BaseModel):
    """Text fields of the multipart seller registration form"""
    company_name: str = Field(..., min_length=1, max_length=255)
    rc_number: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=30)
    email: EmailStr
    address: str = Field(..., min_length=1)
    contact_person: str = Field(..., min_length=1, max_length=255)
    business_lines: List[str] = Field(..., min_length=1)
    product_line: Optional[str] = None
    states: List[str] = Field(..., min_length=1)


class MyStoreUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    alternate_phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=255)
    opening_hours: Optional[str] = Field(None, max_length=255)
    contact_person: Optional[str] = Field(None, max_length=255)
    business_lines: Optional[List[str]] = None
    product_line: Optional[str] = None
    states: Optional[List[str]] = None


class RegistrationStatusResponse(BaseModel):
    store_id: int
    status: StoreStatus
    rejection_reason: Optional[str] = None
    documents: List[StoreDocumentResponse] = []


class StoreRejectRequest(BaseModel):
    rejection_reason: str = Field(..., min_length=1, max_length=500)


class StoreSuspendRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class DocumentRejectRequest(BaseModel):
    rejection_reason: str = Field(..., min_length=1, max_length=500)
