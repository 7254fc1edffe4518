"""
Stores: seller registration, owner profile edits and administrative review
"""
import logging
from typing import Any, Dict, Optional, Sequence, Tuple

from fastapi import UploadFile
from sqlalchemy import String, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import clock
from app.core.config import settings
from app.core.exceptions import (
    BusinessRuleError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from app.core.pagination import paginate
from app.core.permissions import Role
from app.models.store import (
    DocumentStatus,
    DocumentType,
    MANDATORY_DOCUMENTS,
    Store,
    StoreDocument,
    StoreStatus,
)
from app.models.user import User
from app.schemas.store import MyStoreUpdate, SellerRegistrationData
from app.services import storage_service

logger = logging.getLogger(__name__)


async def store_for_owner(db: AsyncSession, user_id: int, lock: bool = False) -> Store:
    """The caller's store; lock=True takes a row lock to serialize quota checks."""
    stmt = select(Store).where(Store.user_id == user_id)
    if lock:
        stmt = stmt.with_for_update()
    store = (await db.execute(stmt)).scalar_one_or_none()
    if store is None:
        raise BusinessRuleError("No store found for your account. Register a store first.")
    return store


class StoreService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_store(self, store_id: int) -> Store:
        store = await self.db.get(Store, store_id)
        if store is None:
            raise NotFoundError("Store not found")
        return store

    # ---------- seller registration ---------- #

    async def register_seller(
        self,
        user: User,
        data: SellerRegistrationData,
        documents: Dict[str, Optional[UploadFile]],
    ) -> Store:
        """Create a pending store with its verification documents and make the user a store owner."""
        if await self.db.scalar(select(Store.id).where(Store.user_id == user.id)):
            raise BusinessRuleError("You already have a registered store.")
        if await self.db.scalar(select(Store.id).where(Store.rc_number == data.rc_number)):
            raise ValidationFailedError(
                "The rc number has already been taken.",
                errors={"rc_number": ["The rc number has already been taken."]},
            )
        missing = [d.value for d in MANDATORY_DOCUMENTS if not documents.get(d.value)]
        if missing:
            raise ValidationFailedError(
                "Required documents are missing.",
                errors={name: [f"The {name.replace('_', ' ')} is required."] for name in missing},
            )

        store = Store(
            user_id=user.id,
            name=data.company_name,
            rc_number=data.rc_number,
            phone=data.phone,
            email=data.email,
            address=data.address,
            contact_person=data.contact_person,
            business_lines=data.business_lines,
            product_line=data.product_line,
            states=data.states,
            status=StoreStatus.PENDING,
            subscription=settings.DEFAULT_PLAN_SLUG,
        )
        self.db.add(store)
        await self.db.flush()

        stored_paths = []
        try:
            for doc_type in DocumentType:
                upload = documents.get(doc_type.value)
                if not upload:
                    continue
                stored = await storage_service.save_upload(
                    upload,
                    f"store-documents/{store.id}",
                    settings.document_file_types_list,
                    settings.MAX_DOCUMENT_SIZE,
                    field=doc_type.value,
                )
                stored_paths.append(stored.path)
                self.db.add(StoreDocument(
                    store_id=store.id,
                    type=doc_type.value,
                    file_path=stored.path,
                    original_name=stored.original_name,
                    mime_type=stored.mime_type,
                    file_size=stored.size,
                    is_mandatory=doc_type in MANDATORY_DOCUMENTS,
                    status=DocumentStatus.PENDING,
                ))
            db_user = await self.db.get(User, user.id)
            if db_user.role != Role.SUPER_ADMIN.value:
                db_user.role = Role.STORE_OWNER.value
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            for path in stored_paths:
                await storage_service.delete(path)
            raise
        logger.info("Seller registration store=%s user=%s", store.id, user.id)
        return await self._reload(store.id)

    async def registration_status(self, store_id: int, user: User, is_admin: bool) -> Store:
        store = await self.get_store(store_id)
        if store.user_id != user.id and not is_admin:
            raise PermissionDeniedError("You can only view your own registration.")
        return store

    async def _reload(self, store_id: int) -> Store:
        result = await self.db.execute(
            select(Store).where(Store.id == store_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    # ---------- owner profile ---------- #

    async def update_my_store(self, user_id: int, data: MyStoreUpdate) -> Store:
        store = await store_for_owner(self.db, user_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(store, field, value)
        await self.db.commit()
        return await self._reload(store.id)

    async def upload_logo(self, user_id: int, upload: UploadFile) -> Store:
        """Replace the company_logo document with a new image."""
        store = await store_for_owner(self.db, user_id)
        stored = await storage_service.save_upload(
            upload,
            f"store-documents/{store.id}",
            settings.image_file_types_list,
            settings.MAX_IMAGE_SIZE,
            field="logo",
        )
        doc = store.document(DocumentType.COMPANY_LOGO.value)
        old_path = None
        if doc is None:
            doc = StoreDocument(store_id=store.id, type=DocumentType.COMPANY_LOGO.value, is_mandatory=True)
            store.documents.append(doc)
        else:
            old_path = doc.file_path
        doc.file_path = stored.path
        doc.original_name = stored.original_name
        doc.mime_type = stored.mime_type
        doc.file_size = stored.size
        await self.db.commit()
        if old_path:
            await storage_service.delete(old_path)
        return await self._reload(store.id)

    # ---------- administration ---------- #

    async def list_stores(
        self,
        page: int,
        per_page: int,
        search: Optional[str] = None,
        status: Optional[StoreStatus] = None,
        state: Optional[str] = None,
    ) -> Tuple[Sequence[Store], Dict[str, Any]]:
        stmt = select(Store).join(User, Store.user_id == User.id)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(or_(Store.name.ilike(like), User.email.ilike(like), User.name.ilike(like)))
        if status:
            stmt = stmt.where(Store.status == status)
        if state:
            # states is a JSON list; match the serialized value
            stmt = stmt.where(Store.states.cast(String).ilike(f'%"{state}"%'))
        stmt = stmt.order_by(Store.created_at.desc(), Store.id.desc())
        return await paginate(self.db, stmt, page, per_page)

    async def approve(self, store_id: int) -> Store:
        store = await self.get_store(store_id)
        if store.status == StoreStatus.APPROVED:
            raise InvalidTransitionError("Store is already approved.")
        pending = [doc.type for doc in store.documents if doc.status != DocumentStatus.APPROVED]
        if pending:
            raise BusinessRuleError(
                "All documents must be approved before the store can be approved.",
                pending_documents=pending,
            )
        store.status = StoreStatus.APPROVED
        store.approved_at = clock.utcnow()
        store.rejection_reason = None
        store.suspension_reason = None
        await self.db.commit()
        return await self._reload(store.id)

    async def reject(self, store_id: int, reason: str) -> Store:
        store = await self.get_store(store_id)
        if store.status == StoreStatus.REJECTED:
            raise InvalidTransitionError("Store is already rejected.")
        store.status = StoreStatus.REJECTED
        store.rejection_reason = reason
        await self.db.commit()
        return await self._reload(store.id)

    async def suspend(self, store_id: int, reason: str) -> Store:
        store = await self.get_store(store_id)
        if store.status != StoreStatus.APPROVED:
            raise InvalidTransitionError("Only approved stores can be suspended.")
        store.status = StoreStatus.SUSPENDED
        store.suspension_reason = reason
        await self.db.commit()
        return await self._reload(store.id)

    async def _document(self, document_id: int) -> StoreDocument:
        doc = await self.db.get(StoreDocument, document_id)
        if doc is None:
            raise NotFoundError("Document not found")
        return doc

    async def approve_document(self, document_id: int) -> StoreDocument:
        doc = await self._document(document_id)
        doc.status = DocumentStatus.APPROVED
        doc.rejection_reason = None
        doc.reviewed_at = clock.utcnow()
        await self.db.commit()
        return doc

    async def reject_document(self, document_id: int, reason: str) -> StoreDocument:
        doc = await self._document(document_id)
        doc.status = DocumentStatus.REJECTED
        doc.rejection_reason = reason
        doc.reviewed_at = clock.utcnow()
        await self.db.commit()
        return doc
