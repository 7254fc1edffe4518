"""
Shared dependencies: current user, capability checks, per-IP rate limits, paging
"""
from typing import Optional

from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import PermissionDeniedError, RateLimitedError
from app.core.permissions import Capability, has_capability
from app.models.user import User
from app.services.auth_service import AuthService
from app.services.rate_limit_service import check_and_incr

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login", auto_error=False)


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token; 401 when missing or invalid"""
    user = await AuthService(db).get_user_from_token(token) if token else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthenticated.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    if not current_user.is_active:
        raise PermissionDeniedError("Your account has been deactivated.")
    return current_user


def require_capability(capability: Capability):
    """Dependency factory: 403 unless the caller's role grants capability."""
    async def _check(current_user: User = Depends(get_current_active_user)) -> User:
        if not has_capability(current_user.role, capability):
            raise PermissionDeniedError("You are not authorized to perform this action.")
        return current_user
    return _check


def get_client_ip(request: Request) -> Optional[str]:
    """Client IP, honouring X-Forwarded-For from a reverse proxy"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def rate_limit(action: str):
    """Dependency factory: 429 once the client IP exceeds RATE_LIMIT_<ACTION>."""
    async def _check(request: Request) -> None:
        allowed, _, limit, window = check_and_incr(action, get_client_ip(request) or "unknown")
        if not allowed:
            raise RateLimitedError(
                f"Too many attempts. Please try again in {window} seconds.",
                limit=limit,
                window_seconds=window,
            )
    return _check


class PageParams:
    """page / per_page query parameters"""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        per_page: int = Query(15, ge=1, le=100),
    ):
        self.page = page
        self.per_page = per_page


def form_model(model, **values):
    """Build a pydantic model from multipart form fields; errors render like body validation."""
    try:
        return model(**values)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))
