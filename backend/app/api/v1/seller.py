"""
Seller onboarding and own-store API
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile as StarletteUploadFile

from app.api.deps import form_model, get_client_ip, rate_limit, request_id, require_capability
from app.core.database import get_db
from app.core.permissions import Capability, has_capability
from app.models.store import DocumentType
from app.models.user import User
from app.schemas.store import (
    MyStoreUpdate,
    RegistrationStatusResponse,
    SellerRegistrationData,
    StoreDocumentResponse,
    StoreResponse,
)
from app.schemas.subscription import SubscriptionResponse
from app.services import notification_service
from app.services.audit_service import log_audit
from app.services.product_service import ProductService
from app.services.quota_service import QuotaService
from app.services.store_service import StoreService, store_for_owner
from app.services.subscription_service import SubscriptionService

router = APIRouter()


@router.post(
    "/seller/register",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("seller_register"))],
)
async def register_seller(
    request: Request,
    company_name: str = Form(...),
    rc_number: str = Form(...),
    phone: str = Form(...),
    email: str = Form(...),
    address: str = Form(...),
    contact_person: str = Form(...),
    business_lines: List[str] = Form(...),
    states: List[str] = Form(...),
    product_line: Optional[str] = Form(None),
    current_user: User = Depends(require_capability(Capability.REGISTER_STORE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Multipart registration. Each verification document is a file field named
    after its type (cac_certificate, company_logo, live_photos, tin_certificate, ...);
    the first three are mandatory.
    """
    data = form_model(
        SellerRegistrationData,
        company_name=company_name,
        rc_number=rc_number,
        phone=phone,
        email=email,
        address=address,
        contact_person=contact_person,
        business_lines=business_lines,
        states=states,
        product_line=product_line,
    )

    form = await request.form()
    documents = {}
    for doc_type in DocumentType:
        value = form.get(doc_type.value)
        if isinstance(value, StarletteUploadFile) and value.filename:
            documents[doc_type.value] = value

    store = await StoreService(db).register_seller(current_user, data, documents)
    body = StoreResponse.model_validate(store)
    await log_audit(
        db, current_user, "seller_registered", "store", store.id,
        {"name": store.name, "documents": sorted(documents)},
        get_client_ip(request), request_id(request),
    )
    await notification_service.store_registration_submitted(store)
    return {
        "message": "Registration submitted. Your store will be reviewed shortly.",
        "data": body,
    }


@router.get("/seller/registration/{store_id}/status")
async def registration_status(
    store_id: int,
    current_user: User = Depends(require_capability(Capability.VIEW_REGISTRATION_STATUS)),
    db: AsyncSession = Depends(get_db),
):
    is_admin = has_capability(current_user.role, Capability.REVIEW_STORES)
    store = await StoreService(db).registration_status(store_id, current_user, is_admin)
    return {
        "data": RegistrationStatusResponse(
            store_id=store.id,
            status=store.status,
            rejection_reason=store.rejection_reason,
            documents=[StoreDocumentResponse.model_validate(d) for d in store.documents],
        )
    }


@router.get("/my-store")
async def my_store(
    current_user: User = Depends(require_capability(Capability.MANAGE_OWN_STORE)),
    db: AsyncSession = Depends(get_db),
):
    """Own store with current subscription, promotion quota and product usage"""
    store = await store_for_owner(db, current_user.id)
    subscription = await SubscriptionService(db).current_for_store(store)
    quota = QuotaService(db)
    ctx = await quota.context_for_store(store.id)
    return {
        "data": {
            "store": StoreResponse.model_validate(store),
            "subscription": SubscriptionResponse.model_validate(subscription) if subscription else None,
            "quota": await quota.summary(store.id, ctx),
            "products": await ProductService(db).product_usage(store.id),
        }
    }


@router.patch("/my-store")
async def update_my_store(
    body: MyStoreUpdate,
    request: Request,
    current_user: User = Depends(require_capability(Capability.MANAGE_OWN_STORE)),
    db: AsyncSession = Depends(get_db),
):
    store = await StoreService(db).update_my_store(current_user.id, body)
    data = StoreResponse.model_validate(store)
    await log_audit(
        db, current_user, "store_updated", "store", store.id,
        body.model_dump(exclude_unset=True, mode="json"), get_client_ip(request), request_id(request),
    )
    return {"message": "Store updated successfully", "data": data}


@router.post("/my-store/upload-logo")
async def upload_logo(
    request: Request,
    logo: UploadFile = File(...),
    current_user: User = Depends(require_capability(Capability.MANAGE_OWN_STORE)),
    db: AsyncSession = Depends(get_db),
):
    store = await StoreService(db).upload_logo(current_user.id, logo)
    data = StoreResponse.model_validate(store)
    await log_audit(db, current_user, "store_logo_uploaded", "store", store.id, None, get_client_ip(request), request_id(request))
    return {"message": "Logo uploaded successfully", "data": data}
