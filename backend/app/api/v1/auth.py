"""
Auth API: registration, email verification, login/logout, current user, password reset
"""
from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_client_ip, get_current_active_user, oauth2_scheme, rate_limit, request_id
from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import PermissionDeniedError
from app.models.user import User
from app.schemas.auth import (
    EmailRequest,
    PendingUserResponse,
    ResetPasswordRequest,
    ResetTokenRequest,
    Token,
    UserCreate,
    UserResponse,
)
from app.services import notification_service
from app.services.audit_service import log_audit
from app.services.auth_service import AuthService
from app.services.password_reset_service import PasswordResetService

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED, dependencies=[Depends(rate_limit("register"))])
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Create a buyer account and return an access token. With
    EMAIL_VERIFICATION_ENABLED the sign-up is held until the emailed link is
    opened and no token is issued.
    """
    auth_service = AuthService(db)
    if settings.EMAIL_VERIFICATION_ENABLED:
        pending = await auth_service.register_pending(user_data)
        signature = auth_service.verification_signature(pending.id, pending.email)
        await notification_service.verify_email_link(
            pending.email, pending.name, f"{settings.FRONTEND_URL}/verify-email/{pending.id}/{signature}",
        )
        return {
            "message": "Registration successful! Please check your email to verify your account.",
            "data": PendingUserResponse.model_validate(pending),
        }

    user = await auth_service.register_user(user_data)
    token = auth_service.create_access_token({"sub": str(user.id)})
    return {
        "message": "Registration successful",
        "data": Token(access_token=token, user=UserResponse.model_validate(user)),
    }


@router.post("/check-email", dependencies=[Depends(rate_limit("check_email"))])
async def check_email(body: EmailRequest, db: AsyncSession = Depends(get_db)):
    """Whether an address is taken by an account or a pending sign-up"""
    exists = await AuthService(db).email_exists(body.email)
    return {"exists": exists, "message": "Email already registered" if exists else "Email is available"}


@router.get("/verify-email/{pending_id}/{signature}", dependencies=[Depends(rate_limit("verify_email"))])
async def verify_email(
    pending_id: int,
    signature: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    user = await AuthService(db).verify_email(pending_id, signature)
    await log_audit(db, user, "email_verified", "security", user.id, None, get_client_ip(request), request_id(request))
    return {"message": "Email verified successfully", "data": {"email": user.email}}


@router.post("/login", response_model=Token, dependencies=[Depends(rate_limit("login"))])
async def login(
    request: Request,
    email: str = Form(..., description="Account email"),
    password: str = Form(..., description="Password"),
    db: AsyncSession = Depends(get_db),
):
    """Form login (email + password) returning a bearer token"""
    auth_service = AuthService(db)
    user = await auth_service.authenticate_user(email, password)
    if not user:
        await log_audit(db, None, "login_failed", "security", None, {"email": email}, get_client_ip(request), request_id(request))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise PermissionDeniedError("Your account has been deactivated.")
    token = auth_service.create_access_token({"sub": str(user.id), "role": user.role})
    result = Token(access_token=token, user=UserResponse.model_validate(user))
    await log_audit(db, user, "login", "security", user.id, None, get_client_ip(request), request_id(request))
    return result


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    token: str = Depends(oauth2_scheme),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Revoke the bearer token used for this request"""
    await AuthService(db).revoke_token(token)
    await log_audit(db, current_user, "logout", "security", current_user.id, None, get_client_ip(request), request_id(request))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_active_user)):
    """Current user profile"""
    return {"data": UserResponse.model_validate(current_user)}


@router.post("/forgot-password", dependencies=[Depends(rate_limit("password_reset"))])
async def forgot_password(body: EmailRequest, db: AsyncSession = Depends(get_db)):
    """Email a one-time reset link"""
    return {"status": await PasswordResetService(db).send_reset_link(body.email)}


@router.post("/verify-reset-token", dependencies=[Depends(rate_limit("check_email"))])
async def verify_reset_token(body: ResetTokenRequest, db: AsyncSession = Depends(get_db)):
    await PasswordResetService(db).verify_token(body.email, body.token)
    return {"valid": True, "message": "Token is valid"}


@router.post("/reset-password", dependencies=[Depends(rate_limit("password_reset"))])
async def reset_password(body: ResetPasswordRequest, request: Request, db: AsyncSession = Depends(get_db)):
    message = await PasswordResetService(db).reset_password(body.email, body.token, body.password)
    user = await AuthService(db).get_user_by_email(body.email)
    await log_audit(db, user, "password_reset", "security", user.id, None, get_client_ip(request), request_id(request))
    return {"status": message}
