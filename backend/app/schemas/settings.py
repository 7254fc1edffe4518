"""
Site settings schemas
"""
from pydantic import BaseModel
from typing import Optional

from app.schemas.common import StorageUrl


class SiteSettingsResponse(BaseModel):
    site_name: Optional[str] = None
    site_title: Optional[str] = None
    meta_description: Optional[str] = None
    meta_keywords: Optional[str] = None
    logo: StorageUrl = None
    favicon: StorageUrl = None

    class Config:
        from_attributes = True
