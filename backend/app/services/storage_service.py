"""
Local public disk for uploads. Records keep the relative path; clients get
/storage/{path}.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import ValidationFailedError
from app.services import file_security_service

logger = logging.getLogger(__name__)


@dataclass
class StoredFile:
    path: str
    original_name: str
    mime_type: str
    size: int


def public_url(path: Optional[str]) -> Optional[str]:
    """Relative storage path -> URL under /storage; absolute URLs pass through."""
    if not path:
        return path
    if path.startswith(("http://", "https://", "/")):
        return path
    return f"{settings.STORAGE_URL_PREFIX}/{path}"


def absolute_path(path: str) -> Path:
    root = Path(settings.STORAGE_ROOT).resolve()
    target = (root / path).resolve()
    if root not in target.parents:
        raise ValueError("Path escapes the storage root")
    return target


async def save_upload(
    upload: UploadFile,
    directory: str,
    allowed: List[str],
    max_bytes: int,
    field: str = "file",
) -> StoredFile:
    """Validate and write one upload under STORAGE_ROOT/directory."""
    content = await upload.read()
    filename = upload.filename or ""
    try:
        file_security_service.validate_filename(filename)
        file_security_service.validate_size(content, max_bytes)
        ext = file_security_service.extension_of(filename)
        file_security_service.validate_file_content(content, ext, allowed)
    except ValueError as e:
        raise ValidationFailedError(str(e), errors={field: [str(e)]})

    relative = f"{directory.strip('/')}/{uuid.uuid4().hex}.{ext}"
    target = absolute_path(relative)
    await asyncio.to_thread(_write, target, content)
    logger.info("Stored upload %s (%s bytes) as %s", filename, len(content), relative)
    return StoredFile(
        path=relative,
        original_name=filename,
        mime_type=file_security_service.MIME_BY_TYPE.get(ext, upload.content_type or "application/octet-stream"),
        size=len(content),
    )


def _write(target: Path, content: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)


async def delete(path: Optional[str]) -> None:
    """Remove a stored file; missing files are ignored."""
    if not path:
        return
    try:
        target = absolute_path(path)
    except ValueError:
        logger.warning("Refusing to delete path outside storage: %s", path)
        return
    await asyncio.to_thread(target.unlink, True)


def exists(path: Optional[str]) -> bool:
    if not path:
        return False
    try:
        return absolute_path(path).is_file()
    except ValueError:
        return False
