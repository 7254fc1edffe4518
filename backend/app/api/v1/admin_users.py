"""Admin user management API"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import PageParams, get_client_ip, request_id, require_capability
from app.core.database import get_db
from app.core.pagination import paginated
from app.core.permissions import Capability, Role
from app.models.user import User
from app.schemas.auth import UserResponse
from app.schemas.user import AdminUserCreate, AdminUserUpdate
from app.services.audit_service import log_audit
from app.services.user_service import UserService

router = APIRouter()

user_admin = require_capability(Capability.MANAGE_USERS)


@router.get("/users")
async def list_users(
    paging: PageParams = Depends(),
    search: Optional[str] = Query(None),
    role: Optional[Role] = Query(None),
    current_user: User = Depends(user_admin),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await UserService(db).list_users(paging.page, paging.per_page, search, role.value if role else None)
    return paginated([UserResponse.model_validate(u) for u in items], meta)


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: AdminUserCreate,
    request: Request,
    current_user: User = Depends(user_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).create_user(body)
    data = UserResponse.model_validate(user)
    await log_audit(
        db, current_user, "user_created", "user", user.id,
        {"email": user.email, "role": user.role}, get_client_ip(request), request_id(request),
    )
    return {"message": "User created successfully", "data": data}


@router.get("/users/{user_id}")
async def get_user(
    user_id: int,
    current_user: User = Depends(user_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).get_user(user_id)
    return {"data": UserResponse.model_validate(user)}


@router.put("/users/{user_id}")
async def update_user(
    user_id: int,
    body: AdminUserUpdate,
    request: Request,
    current_user: User = Depends(user_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).update_user(user_id, body)
    data = UserResponse.model_validate(user)
    await log_audit(
        db, current_user, "user_updated", "user", user.id,
        body.model_dump(exclude_unset=True, exclude={"password"}, mode="json"),
        get_client_ip(request), request_id(request),
    )
    return {"message": "User updated successfully", "data": data}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    request: Request,
    current_user: User = Depends(user_admin),
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).delete_user(user_id, current_user.id)
    await log_audit(db, current_user, "user_deleted", "user", user_id, None, get_client_ip(request), request_id(request))
    return {"message": "User deleted successfully"}
