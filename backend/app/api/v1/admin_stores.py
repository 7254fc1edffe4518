"""
Admin store review API: stores, verification documents, store reports
"""
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import PageParams, get_client_ip, request_id, require_capability
from app.core.database import get_db
from app.core.pagination import paginated
from app.core.permissions import Capability
from app.models.store import StoreStatus
from app.models.store_report import ReportReason, ReportStatus
from app.models.user import User
from app.schemas.report import StoreReportResponse, StoreReportStatusUpdate
from app.schemas.store import (
    DocumentRejectRequest,
    StoreDocumentResponse,
    StoreRejectRequest,
    StoreResponse,
    StoreSuspendRequest,
)
from app.services import cache_service, notification_service
from app.services.audit_service import log_audit
from app.services.report_service import ReportService
from app.services.store_service import StoreService

router = APIRouter()

reviewer = require_capability(Capability.REVIEW_STORES)
document_reviewer = require_capability(Capability.REVIEW_DOCUMENTS)
moderator = require_capability(Capability.MODERATE_REPORTS)


@router.get("/stores")
async def list_stores(
    paging: PageParams = Depends(),
    search: Optional[str] = Query(None, description="Store name, owner name or email"),
    status: Optional[StoreStatus] = Query(None),
    state: Optional[str] = Query(None),
    current_user: User = Depends(reviewer),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await StoreService(db).list_stores(paging.page, paging.per_page, search, status, state)
    return paginated([StoreResponse.model_validate(s) for s in items], meta)


@router.get("/stores/{store_id}")
async def get_store(
    store_id: int,
    current_user: User = Depends(reviewer),
    db: AsyncSession = Depends(get_db),
):
    store = await StoreService(db).get_store(store_id)
    return {"data": StoreResponse.model_validate(store)}


@router.patch("/stores/{store_id}/approve")
async def approve_store(
    store_id: int,
    request: Request,
    current_user: User = Depends(reviewer),
    db: AsyncSession = Depends(get_db),
):
    """Approve a store; every document must already be approved"""
    store = await StoreService(db).approve(store_id)
    data = StoreResponse.model_validate(store)
    await asyncio.to_thread(cache_service.invalidate_catalog)
    await log_audit(db, current_user, "store_approved", "store", store.id, {"name": store.name}, get_client_ip(request), request_id(request))
    await notification_service.store_verification(store, approved=True)
    return {"message": "Store approved successfully", "data": data}


@router.patch("/stores/{store_id}/reject")
async def reject_store(
    store_id: int,
    body: StoreRejectRequest,
    request: Request,
    current_user: User = Depends(reviewer),
    db: AsyncSession = Depends(get_db),
):
    store = await StoreService(db).reject(store_id, body.rejection_reason)
    data = StoreResponse.model_validate(store)
    await asyncio.to_thread(cache_service.invalidate_catalog)
    await log_audit(
        db, current_user, "store_rejected", "store", store.id,
        {"reason": body.rejection_reason}, get_client_ip(request), request_id(request),
    )
    await notification_service.store_verification(store, approved=False)
    return {"message": "Store rejected", "data": data}


@router.patch("/stores/{store_id}/suspend")
async def suspend_store(
    store_id: int,
    body: StoreSuspendRequest,
    request: Request,
    current_user: User = Depends(reviewer),
    db: AsyncSession = Depends(get_db),
):
    store = await StoreService(db).suspend(store_id, body.reason)
    data = StoreResponse.model_validate(store)
    await asyncio.to_thread(cache_service.invalidate_catalog)
    await log_audit(
        db, current_user, "store_suspended", "store", store.id,
        {"reason": body.reason}, get_client_ip(request), request_id(request),
    )
    return {"message": "Store suspended", "data": data}


@router.patch("/documents/{document_id}/approve")
async def approve_document(
    document_id: int,
    request: Request,
    current_user: User = Depends(document_reviewer),
    db: AsyncSession = Depends(get_db),
):
    doc = await StoreService(db).approve_document(document_id)
    data = StoreDocumentResponse.model_validate(doc)
    await log_audit(
        db, current_user, "document_approved", "store", doc.store_id,
        {"document_id": doc.id, "type": doc.type}, get_client_ip(request), request_id(request),
    )
    return {"message": "Document approved", "data": data}


@router.patch("/documents/{document_id}/reject")
async def reject_document(
    document_id: int,
    body: DocumentRejectRequest,
    request: Request,
    current_user: User = Depends(document_reviewer),
    db: AsyncSession = Depends(get_db),
):
    doc = await StoreService(db).reject_document(document_id, body.rejection_reason)
    data = StoreDocumentResponse.model_validate(doc)
    await log_audit(
        db, current_user, "document_rejected", "store", doc.store_id,
        {"document_id": doc.id, "type": doc.type, "reason": body.rejection_reason},
        get_client_ip(request), request_id(request),
    )
    return {"message": "Document rejected", "data": data}


@router.get("/reports")
async def list_reports(
    paging: PageParams = Depends(),
    status: Optional[ReportStatus] = Query(None),
    reason: Optional[ReportReason] = Query(None),
    store_id: Optional[int] = Query(None),
    current_user: User = Depends(moderator),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await ReportService(db).list_reports(paging.page, paging.per_page, status, reason, store_id)
    return paginated([StoreReportResponse.model_validate(r) for r in items], meta)


@router.get("/reports/{report_id}")
async def get_report(
    report_id: int,
    current_user: User = Depends(moderator),
    db: AsyncSession = Depends(get_db),
):
    report = await ReportService(db).get_report(report_id)
    return {"data": StoreReportResponse.model_validate(report)}


@router.patch("/reports/{report_id}/status")
async def update_report_status(
    report_id: int,
    body: StoreReportStatusUpdate,
    request: Request,
    current_user: User = Depends(moderator),
    db: AsyncSession = Depends(get_db),
):
    report = await ReportService(db).update_status(report_id, current_user, body)
    data = StoreReportResponse.model_validate(report)
    await log_audit(
        db, current_user, "report_status_updated", "store", report.store_id,
        {"report_id": report.id, "status": report.status.value}, get_client_ip(request), request_id(request),
    )
    return {"message": "Report status updated", "data": data}
