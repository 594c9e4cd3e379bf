"""Authentication API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.exceptions import NotFoundError
from ...database import get_db
from ..commons import BaseResponse
from . import crud, services
from .dependencies import CurrentActor
from .schemas import (
    LoginRequest,
    ProfileResponse,
    RefreshTokenRequest,
    SignupRequest,
    TokenResponse,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_client_info(request: Request) -> tuple[str | None, str | None]:
    """Extract client info from request."""
    user_agent = request.headers.get("user-agent")
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        ip_address = forwarded_for.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return user_agent, ip_address


@router.post("/signup", response_model=BaseResponse[TokenResponse])
async def signup(
    request: Request,
    signup_data: SignupRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a tenant or landlord account and sign it in."""
    user_agent, ip_address = get_client_info(request)

    profile, tokens = await services.sign_up(
        db=db, data=signup_data, user_agent=user_agent, ip_address=ip_address
    )

    return BaseResponse(
        success=True,
        message=f"Account created for {profile.email}",
        data=tokens,
    )


@router.post("/login", response_model=BaseResponse[TokenResponse])
async def login(
    request: Request,
    login_data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Authenticate and return access/refresh tokens."""
    user_agent, ip_address = get_client_info(request)

    profile, tokens = await services.authenticate(
        db=db,
        email=login_data.email,
        password=login_data.password,
        remember_me=login_data.remember_me,
        user_agent=user_agent,
        ip_address=ip_address,
    )

    return BaseResponse(
        success=True,
        message=f"Welcome back, {profile.full_name or profile.email}!",
        data=tokens,
    )


@router.post("/refresh", response_model=BaseResponse[TokenResponse])
async def refresh_token(
    request: Request,
    refresh_data: RefreshTokenRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Refresh access token using refresh token."""
    user_agent, ip_address = get_client_info(request)

    tokens = await services.refresh_access_token(
        db=db,
        refresh_token=refresh_data.refresh_token,
        user_agent=user_agent,
        ip_address=ip_address,
    )

    return BaseResponse(
        success=True,
        message="Token refreshed successfully",
        data=tokens,
    )


@router.post("/logout", response_model=BaseResponse[None])
async def logout(
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Sign out by revoking every refresh token of the profile."""
    count = await services.sign_out(db=db, profile_id=actor.id)

    return BaseResponse(
        success=True,
        message=f"Logged out successfully. {count} session(s) terminated.",
    )


@router.get("/me", response_model=BaseResponse[ProfileResponse])
async def get_me(
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get the current profile."""
    profile = await crud.get_profile_by_id(db, actor.id)
    if not profile:
        raise NotFoundError("Profile not found")

    return BaseResponse(success=True, data=ProfileResponse.model_validate(profile))
