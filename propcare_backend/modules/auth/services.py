"""Identity business logic: sign-up, sign-in, token refresh and sign-out."""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ...core.exceptions import AuthenticationError, ValidationError
from ...core.logging import get_logger
from ...core.utils import bounded
from . import crud
from .jwt_service import (
    create_access_token,
    create_refresh_token,
    get_token_expiry_seconds,
    hash_refresh_token,
)
from .models import SELF_SERVICE_ROLES, Profile, RoleSlug
from .password_service import verify_password
from .schemas import SignupRequest, TokenResponse

logger = get_logger(__name__)


async def _issue_tokens(
    db: AsyncSession,
    profile: Profile,
    remember_me: bool = False,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> TokenResponse:
    access_token = create_access_token(
        profile_id=profile.id, email=profile.email, role=profile.role.value
    )
    refresh_token, refresh_expires = create_refresh_token(remember_me)
    await crud.create_refresh_token(
        db=db,
        profile=profile,
        token=refresh_token,
        expires_at=refresh_expires,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=get_token_expiry_seconds(),
        role=profile.role,
    )


async def sign_up(
    db: AsyncSession,
    data: SignupRequest,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[Profile, TokenResponse]:
    """Create a profile with the requested role and open a session.

    Raises:
        ValidationError: If the email is taken or the role is a team role
    """
    if data.role not in SELF_SERVICE_ROLES:
        raise ValidationError(
            "Helpdesk and contractor accounts are provisioned by an administrator",
            field="role",
        )

    if await crud.get_profile_by_email(db, data.email):
        raise ValidationError(f"An account for '{data.email}' already exists")

    profile = await crud.create_profile(
        db,
        email=data.email,
        password=data.password,
        role=data.role,
        full_name=data.full_name,
    )
    tokens = await _issue_tokens(
        db, profile, user_agent=user_agent, ip_address=ip_address
    )
    await bounded(db.commit(), "sign up")

    logger.info(
        "Profile created",
        extra={"profile_id": str(profile.id), "role": profile.role.value},
    )
    return profile, tokens


async def provision_profile(
    db: AsyncSession,
    email: str,
    password: str,
    role: RoleSlug,
    full_name: str | None = None,
) -> Profile:
    """Create a profile for any role (used to set up helpdesk and contractor staff)."""
    if await crud.get_profile_by_email(db, email):
        raise ValidationError(f"An account for '{email}' already exists")
    profile = await crud.create_profile(
        db, email=email, password=password, role=role, full_name=full_name
    )
    await bounded(db.commit(), "provision profile")
    return profile


async def authenticate(
    db: AsyncSession,
    email: str,
    password: str,
    remember_me: bool = False,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[Profile, TokenResponse]:
    """Authenticate a profile and return tokens.

    The role stored on the profile is used as-is; signing in never changes it.

    Raises:
        AuthenticationError: If authentication fails
    """
    profile = await crud.get_profile_by_email(db, email)
    if not profile or not verify_password(password, profile.password_hash):
        raise AuthenticationError("Invalid email or password")

    await crud.update_last_login(db, profile)
    tokens = await _issue_tokens(
        db,
        profile,
        remember_me=remember_me,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    await bounded(db.commit(), "sign in")
    return profile, tokens


async def refresh_access_token(
    db: AsyncSession,
    refresh_token: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> TokenResponse:
    """Rotate a refresh token and issue a new access token.

    Raises:
        AuthenticationError: If refresh token is invalid, revoked or expired
    """
    stored_token = await crud.get_refresh_token_by_hash(
        db, hash_refresh_token(refresh_token)
    )

    if not stored_token:
        raise AuthenticationError("Invalid refresh token")
    if stored_token.is_revoked:
        raise AuthenticationError("Refresh token has been revoked")
    if stored_token.is_expired:
        raise AuthenticationError("Refresh token has expired")

    profile = await crud.get_profile_by_id(db, stored_token.profile_id)
    if not profile:
        raise AuthenticationError("Profile not found")

    await crud.revoke_refresh_token(db, stored_token)
    tokens = await _issue_tokens(
        db, profile, user_agent=user_agent, ip_address=ip_address
    )
    await bounded(db.commit(), "refresh session")
    return tokens


async def sign_out(db: AsyncSession, profile_id: uuid.UUID) -> int:
    """Sign out by revoking all refresh tokens. Returns number revoked."""
    count = await crud.revoke_all_profile_tokens(db, profile_id)
    await bounded(db.commit(), "sign out")
    return count
