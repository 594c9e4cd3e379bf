"""Identity module for PropCare: profiles, sessions and the role gate."""

from .dependencies import (
    CurrentActor,
    HelpdeskActor,
    get_current_actor,
    require_role,
    resolve_actor,
)
from .models import Profile, RefreshToken, RoleSlug
from .role_gate import Action, AuthorizationResult, authorize, require
from .routers import router
from .schemas import AuthenticatedUser

__all__ = [
    # Models
    "Profile",
    "RefreshToken",
    "RoleSlug",
    # Router
    "router",
    # Dependencies
    "get_current_actor",
    "resolve_actor",
    "require_role",
    "CurrentActor",
    "HelpdeskActor",
    # Role gate
    "Action",
    "AuthorizationResult",
    "authorize",
    "require",
    # Schemas
    "AuthenticatedUser",
]
