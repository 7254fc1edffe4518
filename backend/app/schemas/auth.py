"""
Auth and profile schemas
"""
from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional

from app.core.config import settings
from app.schemas.common import StorageUrl, UtcDatetime


class UserCreate(BaseModel):
    """Self-registration; new accounts are buyers"""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=settings.PASSWORD_MIN_LENGTH)
    password_confirmation: str
    phone: Optional[str] = Field(None, max_length=30)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirmation:
            raise ValueError("The password confirmation does not match.")
        return self


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    profile_image: StorageUrl = None
    role: str
    is_active: bool
    created_at: Optional[UtcDatetime] = None
    last_login_at: Optional[UtcDatetime] = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=settings.PASSWORD_MIN_LENGTH)
    new_password_confirmation: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.new_password_confirmation:
            raise ValueError("The new password confirmation does not match.")
        return self


class EmailRequest(BaseModel):
    email: EmailStr


class ResetTokenRequest(BaseModel):
    email: EmailStr
    token: str = Field(..., min_length=1)


class ResetPasswordRequest(ResetTokenRequest):
    password: str = Field(..., min_length=settings.PASSWORD_MIN_LENGTH)
    password_confirmation: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirmation:
            raise ValueError("The password confirmation does not match.")
        return self


class PendingUserResponse(BaseModel):
    """Sign-up awaiting email verification"""
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    expires_at: UtcDatetime

    class Config:
        from_attributes = True
