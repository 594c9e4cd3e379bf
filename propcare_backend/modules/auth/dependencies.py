"""Authentication dependencies for FastAPI."""

import uuid
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.exceptions import AuthenticationError, Unauthorized
from ...core.logging import set_actor_id
from ...database import get_db
from . import crud
from .jwt_service import decode_access_token
from .models import RoleSlug
from .schemas import AuthenticatedUser

security = HTTPBearer(auto_error=False)


async def resolve_actor(db: AsyncSession, token: str | None) -> AuthenticatedUser:
    """Turn an access token into the acting identity.

    The role is always read from the profile row rather than the token, so a
    role changed elsewhere applies from the next request on.

    Raises:
        AuthenticationError: If the token is missing, invalid or its profile is gone
    """
    if not token:
        raise AuthenticationError("Not signed in")

    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    try:
        profile_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError) as e:
        raise AuthenticationError(f"Invalid token payload: {e}") from e

    profile = await crud.get_profile_by_id(db, profile_id)
    if profile is None:
        raise AuthenticationError("Profile not found")

    contractor_id = None
    if profile.role == RoleSlug.CONTRACTOR:
        from ..directory.crud import get_contractor_by_profile

        contractor = await get_contractor_by_profile(db, profile.id)
        contractor_id = contractor.id if contractor else None

    set_actor_id(str(profile.id))
    return AuthenticatedUser(
        id=profile.id,
        email=profile.email,
        full_name=profile.full_name,
        role=profile.role,
        contractor_id=contractor_id,
    )


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuthenticatedUser:
    """Resolve the bearer token of the current request into an actor."""
    return await resolve_actor(db, credentials.credentials if credentials else None)


def require_role(*allowed_roles: RoleSlug):
    """Dependency factory restricting an endpoint to some roles.

    Usage:
        @router.post("/contractors")
        async def create_contractor(
            actor: Annotated[
                AuthenticatedUser, Depends(require_role(RoleSlug.HELPDESK))
            ],
        ):
            ...
    """
    allowed = frozenset(allowed_roles)

    async def role_checker(
        actor: Annotated[AuthenticatedUser, Depends(get_current_actor)],
    ) -> AuthenticatedUser:
        if actor.role not in allowed:
            raise Unauthorized(
                "use this endpoint",
                f"requires one of: {', '.join(sorted(r.value for r in allowed))}",
            )
        return actor

    return role_checker


# Type aliases for dependency injection
CurrentActor = Annotated[AuthenticatedUser, Depends(get_current_actor)]
HelpdeskActor = Annotated[AuthenticatedUser, Depends(require_role(RoleSlug.HELPDESK))]
