"""
Audit trail: write one audit_logs row per state-changing action
"""
import json
import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

CATEGORIES = ("user", "store", "product", "subscription", "settings", "security")


async def log_audit(
    db: AsyncSession,
    user: Any,
    action: str,
    category: str,
    resource_id: Optional[Any] = None,
    detail: Optional[dict[str, Any]] = None,
    ip: Optional[str] = None,
    request_id: Optional[str] = None,
) -> None:
    """Write an audit entry. Skipped when AUDIT_LOG_ENABLED is off; failures are logged, not raised."""
    if not settings.AUDIT_LOG_ENABLED:
        return
    try:
        detail_str = json.dumps(detail, ensure_ascii=False, default=str) if isinstance(detail, dict) else (str(detail) if detail else None)
        entry = AuditLog(
            user_id=getattr(user, "id", None),
            user_name=getattr(user, "name", None),
            user_email=getattr(user, "email", None),
            action=action,
            category=category if category in CATEGORIES else "user",
            resource_id=str(resource_id) if resource_id is not None else None,
            detail=detail_str,
            ip=ip,
            request_id=request_id,
        )
        db.add(entry)
        await db.commit()
    except Exception as e:
        logger.warning("Audit log write failed: %s", e)
        try:
            await db.rollback()
        except Exception:
            pass
