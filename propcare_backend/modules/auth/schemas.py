"""Identity schemas for PropCare."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from .models import RoleSlug

# ----- Auth Schemas -----


class SignupRequest(BaseModel):
    """Schema for sign-up. The role is only honoured when the profile is created."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str | None = Field(None, max_length=255)
    role: RoleSlug = RoleSlug.TENANT


class LoginRequest(BaseModel):
    """Schema for login request."""

    email: EmailStr
    password: str
    remember_me: bool = False


class TokenResponse(BaseModel):
    """Schema for token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    role: RoleSlug


class RefreshTokenRequest(BaseModel):
    """Schema for refresh token request."""

    refresh_token: str


# ----- Profile Schemas -----


class ProfileResponse(BaseModel):
    """Schema for profile response."""

    id: UUID
    email: str
    full_name: str | None = None
    role: RoleSlug
    last_login: datetime | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuthenticatedUser(BaseModel):
    """The acting identity passed explicitly into every operation."""

    id: UUID
    email: str
    full_name: str | None = None
    role: RoleSlug
    contractor_id: UUID | None = None

    class Config:
        from_attributes = True
