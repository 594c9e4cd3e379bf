"""CRUD operations for the identity module."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.utils import bounded
from .jwt_service import hash_refresh_token
from .models import Profile, RefreshToken, RoleSlug
from .password_service import hash_password

# ----- Profile CRUD -----


async def get_profile_by_id(db: AsyncSession, profile_id: uuid.UUID) -> Profile | None:
    """Get a profile by its identity user id."""
    result = await bounded(
        db.execute(select(Profile).where(Profile.id == profile_id)), "load profile"
    )
    return result.scalar_one_or_none()


async def get_profile_by_email(db: AsyncSession, email: str) -> Profile | None:
    """Get a profile by (case-insensitive) email."""
    result = await bounded(
        db.execute(select(Profile).where(Profile.email == email.lower())),
        "load profile",
    )
    return result.scalar_one_or_none()


async def create_profile(
    db: AsyncSession,
    email: str,
    password: str,
    role: RoleSlug,
    full_name: str | None = None,
) -> Profile:
    """Create a new profile."""
    profile = Profile(
        id=uuid.uuid4(),
        email=email.lower(),
        password_hash=hash_password(password),
        full_name=full_name,
        role=role,
    )
    db.add(profile)
    await bounded(db.flush(), "create profile")
    return profile


async def update_last_login(db: AsyncSession, profile: Profile) -> None:
    """Update profile's last login timestamp. The role is never touched here."""
    profile.last_login = datetime.now(timezone.utc)
    await bounded(db.flush(), "update profile")


# ----- Refresh Token CRUD -----


async def create_refresh_token(
    db: AsyncSession,
    profile: Profile,
    token: str,
    expires_at: datetime,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> RefreshToken:
    """Create a new refresh token."""
    refresh_token = RefreshToken(
        profile_id=profile.id,
        token_hash=hash_refresh_token(token),
        expires_at=expires_at,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    db.add(refresh_token)
    await bounded(db.flush(), "store refresh token")
    return refresh_token


async def get_refresh_token_by_hash(
    db: AsyncSession, token_hash: str
) -> RefreshToken | None:
    """Get a refresh token by its hash."""
    result = await bounded(
        db.execute(select(RefreshToken).where(RefreshToken.token_hash == token_hash)),
        "load refresh token",
    )
    return result.scalar_one_or_none()


async def revoke_refresh_token(db: AsyncSession, token: RefreshToken) -> None:
    """Revoke a refresh token."""
    token.revoked_at = datetime.now(timezone.utc)
    await bounded(db.flush(), "revoke refresh token")


async def revoke_all_profile_tokens(db: AsyncSession, profile_id: uuid.UUID) -> int:
    """Revoke all refresh tokens for a profile. Returns count of revoked tokens."""
    result = await bounded(
        db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.profile_id == profile_id,
                RefreshToken.revoked_at.is_(None),
            )
            .values(revoked_at=datetime.now(timezone.utc))
        ),
        "revoke refresh tokens",
    )
    return result.rowcount
