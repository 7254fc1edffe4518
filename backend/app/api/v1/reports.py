"""Store reports filed by signed-in users"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_client_ip, rate_limit, request_id, require_capability
from app.core.database import get_db
from app.core.permissions import Capability
from app.models.user import User
from app.schemas.report import StoreReportCreate, StoreReportResponse
from app.services.audit_service import log_audit
from app.services.report_service import ReportService

router = APIRouter()


@router.post(
    "/stores/{store_id}/report",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("report"))],
)
async def report_store(
    store_id: int,
    body: StoreReportCreate,
    request: Request,
    current_user: User = Depends(require_capability(Capability.REPORT_STORE)),
    db: AsyncSession = Depends(get_db),
):
    report = await ReportService(db).file_report(current_user, store_id, body)
    data = StoreReportResponse.model_validate(report)
    await log_audit(
        db, current_user, "store_reported", "store", store_id,
        {"report_id": report.id, "reason": report.reason.value}, get_client_ip(request), request_id(request),
    )
    return {"message": "Report submitted. Thank you for helping keep the marketplace safe.", "data": data}
