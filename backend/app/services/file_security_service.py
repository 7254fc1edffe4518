"""
Upload checks: magic bytes against the claimed extension, size, filename
"""
from typing import List, Optional

from app.core.config import settings


# extension -> accepted leading bytes; stops renamed executables passing as images
_MAGIC_BY_TYPE: dict[str, list[bytes]] = {
    "pdf": [b"%PDF"],
    "png": [b"\x89PNG\r\n\x1a\n"],
    "jpeg": [b"\xff\xd8\xff"],
    "jpg": [b"\xff\xd8\xff"],
    "gif": [b"GIF87a", b"GIF89a"],
    "ico": [b"\x00\x00\x01\x00"],
}

MIME_BY_TYPE: dict[str, str] = {
    "pdf": "application/pdf",
    "png": "image/png",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "gif": "image/gif",
    "ico": "image/x-icon",
}


def _get_magic_for_extension(ext: str) -> Optional[list[bytes]]:
    ext = (ext or "").strip().lower()
    return _MAGIC_BY_TYPE.get(ext)


def extension_of(filename: str) -> str:
    name = (filename or "").strip()
    return name.rsplit(".", 1)[-1].lower() if "." in name else ""


def validate_file_content(content: bytes, extension: str, allowed: List[str]) -> None:
    """
    Check the extension against the allowed list and the leading bytes against
    the extension. Raises ValueError on mismatch.
    """
    if not content:
        raise ValueError("The uploaded file is empty.")
    ext = (extension or "").strip().lower()
    if ext not in allowed:
        raise ValueError(f"The file must be of type: {', '.join(allowed)}.")
    magics = _get_magic_for_extension(ext)
    if not magics:
        return
    for magic in magics:
        if content[: len(magic)] == magic:
            return
    raise ValueError(f"The file content does not match its .{ext} extension.")


def validate_filename(filename: str) -> None:
    """Length, path traversal and executable extensions."""
    if not filename or not filename.strip():
        raise ValueError("The file name is empty.")
    name = filename.strip()
    max_len = settings.FILE_NAME_MAX_LENGTH
    if len(name) > max_len:
        raise ValueError(f"The file name may not be greater than {max_len} characters.")
    if ".." in name or "/" in name or "\\" in name or "\x00" in name:
        raise ValueError("The file name contains invalid characters.")
    if extension_of(name) in settings.forbidden_file_extensions_list:
        raise ValueError(f"Files of type .{extension_of(name)} are not allowed.")


def validate_size(content: bytes, max_bytes: int) -> None:
    if len(content) > max_bytes:
        raise ValueError(f"The file may not be greater than {max_bytes // 1024} kilobytes.")
