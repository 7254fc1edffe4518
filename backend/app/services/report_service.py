"""
Store reports: filing by users, moderation by administrators
"""
from typing import Any, Dict, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import clock
from app.core.exceptions import BusinessRuleError, NotFoundError
from app.core.pagination import paginate
from app.models.store import Store
from app.models.store_report import ReportReason, ReportStatus, StoreReport
from app.models.user import User
from app.schemas.report import StoreReportCreate, StoreReportStatusUpdate


class ReportService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _reload(self, report_id: int) -> StoreReport:
        result = await self.db.execute(
            select(StoreReport).where(StoreReport.id == report_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def file_report(self, user: User, store_id: int, data: StoreReportCreate) -> StoreReport:
        store = await self.db.get(Store, store_id)
        if store is None:
            raise NotFoundError("Store not found")
        if store.user_id == user.id:
            raise BusinessRuleError("You cannot report your own store.")
        duplicate = await self.db.scalar(
            select(StoreReport.id).where(StoreReport.store_id == store.id, StoreReport.reported_by == user.id)
        )
        if duplicate:
            raise BusinessRuleError("You have already reported this store.")
        report = StoreReport(
            store_id=store.id,
            reported_by=user.id,
            reason=data.reason,
            description=data.description,
            status=ReportStatus.PENDING,
        )
        self.db.add(report)
        await self.db.commit()
        return await self._reload(report.id)

    async def list_reports(
        self,
        page: int,
        per_page: int,
        status: Optional[ReportStatus] = None,
        reason: Optional[ReportReason] = None,
        store_id: Optional[int] = None,
    ) -> Tuple[Sequence[StoreReport], Dict[str, Any]]:
        stmt = select(StoreReport)
        if status:
            stmt = stmt.where(StoreReport.status == status)
        if reason:
            stmt = stmt.where(StoreReport.reason == reason)
        if store_id:
            stmt = stmt.where(StoreReport.store_id == store_id)
        stmt = stmt.order_by(StoreReport.created_at.desc(), StoreReport.id.desc())
        return await paginate(self.db, stmt, page, per_page)

    async def get_report(self, report_id: int) -> StoreReport:
        report = await self.db.get(StoreReport, report_id)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    async def update_status(self, report_id: int, admin: User, data: StoreReportStatusUpdate) -> StoreReport:
        report = await self.get_report(report_id)
        report.status = data.status
        if data.admin_notes is not None:
            report.admin_notes = data.admin_notes
        report.reviewed_by = admin.id
        report.reviewed_at = clock.utcnow()
        await self.db.commit()
        return await self._reload(report.id)
