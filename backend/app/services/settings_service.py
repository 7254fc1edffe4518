"""
Site settings with cache-aside reads (CACHE_TTL_SETTINGS) and invalidation on write
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.site_setting import SiteSetting
from app.schemas.settings import SiteSettingsResponse
from app.services import cache_service, storage_service

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "site_name": "Heritage Oil & Gas Marketplace",
    "site_title": "Heritage Oil & Gas Marketplace",
    "meta_description": "Verified oil and gas equipment suppliers and service providers.",
    "meta_keywords": "oil and gas, equipment, suppliers, marketplace",
}

TEXT_FIELDS = ("site_name", "site_title", "meta_description", "meta_keywords")


class SettingsService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _row(self) -> SiteSetting:
        row = (await self.db.execute(select(SiteSetting).order_by(SiteSetting.id).limit(1))).scalar_one_or_none()
        if row is None:
            row = SiteSetting(**DEFAULT_SETTINGS)
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
        return row

    async def get_settings(self) -> Dict[str, Any]:
        """Cached settings payload; on a miss read the row and populate the cache."""
        async def _load():
            return SiteSettingsResponse.model_validate(await self._row()).model_dump()

        return await cache_service.cache_aside(cache_service.KEY_SITE_SETTINGS, settings.CACHE_TTL_SETTINGS, _load)

    async def update_settings(
        self,
        values: Dict[str, Optional[str]],
        logo: Optional[UploadFile] = None,
        favicon: Optional[UploadFile] = None,
    ) -> Dict[str, Any]:
        row = await self._row()
        for field in TEXT_FIELDS:
            if values.get(field) is not None:
                setattr(row, field, values[field])
        replaced = []
        for field, upload in (("logo", logo), ("favicon", favicon)):
            if upload is None:
                continue
            stored = await storage_service.save_upload(
                upload,
                "settings",
                settings.branding_file_types_list,
                settings.MAX_IMAGE_SIZE,
                field=field,
            )
            if getattr(row, field):
                replaced.append(getattr(row, field))
            setattr(row, field, stored.path)
        await self.db.commit()
        await self.db.refresh(row)
        for path in replaced:
            await storage_service.delete(path)
        await asyncio.to_thread(cache_service.delete, cache_service.KEY_SITE_SETTINGS)
        logger.info("Site settings updated")
        return SiteSettingsResponse.model_validate(row).model_dump()

    async def seed_defaults(self) -> None:
        await self._row()
