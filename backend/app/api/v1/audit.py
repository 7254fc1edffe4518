"""Audit log API"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import PageParams, require_capability
from app.core.database import get_db
from app.core.pagination import paginate, paginated
from app.core.permissions import Capability
from app.models.audit_log import AuditLog
from app.models.user import User
from app.schemas.audit import AuditLogItem

router = APIRouter()


@router.get("/audit-logs")
async def list_audit_logs(
    paging: PageParams = Depends(),
    action: Optional[str] = Query(None, description="Filter by action"),
    category: Optional[str] = Query(None, description="user, store, product, subscription, settings, security"),
    user_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="User name or email"),
    current_user: User = Depends(require_capability(Capability.VIEW_AUDIT_LOGS)),
    db: AsyncSession = Depends(get_db),
):
    """Audit trail across all users, newest first."""
    stmt = select(AuditLog)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if category:
        stmt = stmt.where(AuditLog.category == category)
    if user_id:
        stmt = stmt.where(AuditLog.user_id == user_id)
    if search:
        like = f"%{search}%"
        stmt = stmt.where(or_(AuditLog.user_name.ilike(like), AuditLog.user_email.ilike(like)))
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    items, meta = await paginate(db, stmt, paging.page, paging.per_page)
    return paginated([AuditLogItem.model_validate(x) for x in items], meta)
