"""
Profile API: update own details, profile image, change password
"""
from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_client_ip, get_current_active_user, request_id
from app.core.database import get_db
from app.models.user import User
from app.schemas.auth import ChangePasswordRequest, ProfileUpdate, UserResponse
from app.services.audit_service import log_audit
from app.services.user_service import UserService

router = APIRouter()


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).update_profile(current_user.id, body)
    data = UserResponse.model_validate(user)
    await log_audit(db, user, "profile_updated", "user", user.id, body.model_dump(exclude_none=True), get_client_ip(request), request_id(request))
    return {"message": "Profile updated successfully", "data": data}


@router.post("/profile/upload-image")
async def upload_profile_image(
    request: Request,
    profile_image: UploadFile = File(...),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).upload_profile_image(current_user.id, profile_image)
    data = UserResponse.model_validate(user)
    await log_audit(db, user, "profile_image_updated", "user", user.id, None, get_client_ip(request), request_id(request))
    return {
        "message": "Profile image uploaded successfully",
        "profile_image": data.profile_image,
        "data": data,
    }


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).change_password(current_user.id, body)
    await log_audit(db, current_user, "password_changed", "security", current_user.id, None, get_client_ip(request), request_id(request))
    return {"message": "Password changed successfully"}
