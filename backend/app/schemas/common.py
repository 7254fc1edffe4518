"""
Shared schema pieces: UTC datetimes and public upload URLs
"""
from datetime import datetime
from typing import Annotated, Optional
from pydantic import AfterValidator, BaseModel

from app.core import clock
from app.services.storage_service import public_url

# sqlite returns naive datetimes; everything leaves the API as aware UTC
UtcDatetime = Annotated[datetime, AfterValidator(clock.as_utc)]

# relative storage path rendered as /storage/{path}
StorageUrl = Annotated[Optional[str], AfterValidator(public_url)]


class MessageResponse(BaseModel):
    message: str
