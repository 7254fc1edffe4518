"""
User service: profile, password change and admin user management
"""
from typing import Any, Dict, Optional, Sequence, Tuple

from fastapi import UploadFile
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import BusinessRuleError, NotFoundError, ValidationFailedError
from app.core.pagination import paginate
from app.models.store import Store
from app.models.user import User
from app.schemas.auth import ChangePasswordRequest, ProfileUpdate
from app.schemas.user import AdminUserCreate, AdminUserUpdate
from app.services import storage_service
from app.services.auth_service import get_password_hash, verify_password


class UserService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def _ensure_email_free(self, email: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(User.id).where(func.lower(User.email) == email.lower())
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        if (await self.db.execute(stmt)).first():
            raise ValidationFailedError(
                "The email has already been taken.",
                errors={"email": ["The email has already been taken."]},
            )

    async def update_profile(self, user_id: int, data: ProfileUpdate) -> User:
        user = await self.get_user(user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in changes:
            await self._ensure_email_free(changes["email"], exclude_id=user.id)
            changes["email"] = changes["email"].lower()
        for field, value in changes.items():
            setattr(user, field, value)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def upload_profile_image(self, user_id: int, upload: UploadFile) -> User:
        """Store a new avatar under profile-images/ and delete the one it replaces."""
        user = await self.get_user(user_id)
        stored = await storage_service.save_upload(
            upload,
            "profile-images",
            settings.image_file_types_list,
            settings.MAX_PROFILE_IMAGE_SIZE,
            field="profile_image",
        )
        previous = user.profile_image
        user.profile_image = stored.path
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            await storage_service.delete(stored.path)
            raise
        await storage_service.delete(previous)
        await self.db.refresh(user)
        return user

    async def change_password(self, user_id: int, data: ChangePasswordRequest) -> None:
        user = await self.get_user(user_id)
        if not verify_password(data.current_password, user.password_hash):
            raise ValidationFailedError(
                "The current password is incorrect.",
                errors={"current_password": ["The current password is incorrect."]},
            )
        user.password_hash = get_password_hash(data.new_password)
        await self.db.commit()

    async def list_users(
        self,
        page: int,
        per_page: int,
        search: Optional[str] = None,
        role: Optional[str] = None,
    ) -> Tuple[Sequence[User], Dict[str, Any]]:
        stmt = select(User)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(or_(User.name.ilike(like), User.email.ilike(like)))
        if role:
            stmt = stmt.where(User.role == role)
        stmt = stmt.order_by(User.created_at.desc(), User.id.desc())
        return await paginate(self.db, stmt, page, per_page)

    async def create_user(self, data: AdminUserCreate) -> User:
        await self._ensure_email_free(data.email)
        user = User(
            name=data.name,
            email=data.email.lower(),
            password_hash=get_password_hash(data.password),
            phone=data.phone,
            role=data.role.value,
            is_active=data.is_active,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def update_user(self, user_id: int, data: AdminUserUpdate) -> User:
        user = await self.get_user(user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in changes:
            await self._ensure_email_free(changes["email"], exclude_id=user.id)
            changes["email"] = changes["email"].lower()
        if "password" in changes:
            user.password_hash = get_password_hash(changes.pop("password"))
        if "role" in changes:
            changes["role"] = changes["role"].value
        for field, value in changes.items():
            setattr(user, field, value)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def delete_user(self, user_id: int, acting_user_id: int) -> None:
        if user_id == acting_user_id:
            raise BusinessRuleError("You cannot delete your own account.")
        user = await self.get_user(user_id)
        owns_store = await self.db.scalar(select(Store.id).where(Store.user_id == user.id))
        if owns_store:
            raise BusinessRuleError("This user owns a store and cannot be deleted; suspend the store instead.")
        await self.db.delete(user)
        await self.db.commit()
