"""Role gate: decides which actor may perform which action on which resource.

``authorize`` never raises. It returns an ``AuthorizationResult`` so callers
can decide how to surface a denial; ``require`` is the convenience used by
services, turning a denial into an ``Unauthorized`` error that the API layer
answers with a 403 and a redirect hint.

Resource ownership is checked by shape rather than by type:

* reports carry ``created_by`` (tenant) and ``property.owner_id`` (landlord)
* assignments carry ``landlord_id`` and ``contractor_id``
"""

import enum
from typing import Any

from pydantic import BaseModel

from ...core.exceptions import Unauthorized
from ...core.logging import get_logger
from .models import RoleSlug
from .schemas import AuthenticatedUser

logger = get_logger(__name__)


class Action(str, enum.Enum):
    """Operations guarded by the role gate."""

    CREATE_REPORT = "create_report"
    VIEW_REPORT = "view_report"
    REVIEW_REPORT = "review_report"
    UPLOAD_ATTACHMENT = "upload_attachment"
    DELETE_REPORT = "delete_report"
    VIEW_ASSIGNMENTS = "view_assignments"
    ASSIGN_CONTRACTOR = "assign_contractor"
    REOPEN_ASSIGNMENT = "reopen_assignment"
    RESPOND_TO_ASSIGNMENT = "respond_to_assignment"
    SUBMIT_FINAL_REPORT = "submit_final_report"
    MANAGE_PROPERTIES = "manage_properties"
    MANAGE_CONTRACTORS = "manage_contractors"
    SUBSCRIBE_NOTIFICATIONS = "subscribe_notifications"


ROLE_ACTIONS: dict[RoleSlug, frozenset[Action]] = {
    RoleSlug.TENANT: frozenset(
        {
            Action.CREATE_REPORT,
            Action.VIEW_REPORT,
            Action.UPLOAD_ATTACHMENT,
            Action.DELETE_REPORT,
        }
    ),
    RoleSlug.LANDLORD: frozenset(
        {
            Action.VIEW_REPORT,
            Action.REVIEW_REPORT,
            Action.VIEW_ASSIGNMENTS,
            Action.ASSIGN_CONTRACTOR,
            Action.MANAGE_PROPERTIES,
        }
    ),
    RoleSlug.HELPDESK: frozenset(
        {
            Action.VIEW_REPORT,
            Action.VIEW_ASSIGNMENTS,
            Action.ASSIGN_CONTRACTOR,
            Action.REOPEN_ASSIGNMENT,
            Action.MANAGE_CONTRACTORS,
            Action.SUBSCRIBE_NOTIFICATIONS,
        }
    ),
    RoleSlug.CONTRACTOR: frozenset(
        {
            Action.VIEW_ASSIGNMENTS,
            Action.RESPOND_TO_ASSIGNMENT,
            Action.SUBMIT_FINAL_REPORT,
            Action.SUBSCRIBE_NOTIFICATIONS,
        }
    ),
}


class AuthorizationResult(BaseModel):
    """Outcome of an authorization check."""

    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = AuthorizationResult(allowed=True)


def _owns(actor: AuthenticatedUser, resource: Any) -> bool:
    if actor.role == RoleSlug.HELPDESK:
        return True
    if actor.role == RoleSlug.TENANT:
        return getattr(resource, "created_by", None) == actor.id
    if actor.role == RoleSlug.LANDLORD:
        if hasattr(resource, "landlord_id"):
            return resource.landlord_id == actor.id
        prop = getattr(resource, "property", None)
        return prop is not None and prop.owner_id == actor.id
    if actor.role == RoleSlug.CONTRACTOR:
        return (
            actor.contractor_id is not None
            and getattr(resource, "contractor_id", None) == actor.contractor_id
        )
    return False


def authorize(
    actor: AuthenticatedUser, action: Action, resource: Any = None
) -> AuthorizationResult:
    """Decide whether ``actor`` may perform ``action`` on ``resource``.

    Args:
        actor: The authenticated actor, with its role already resolved
        action: The action being attempted
        resource: The record acted on, or None for collection-level checks

    Returns:
        AuthorizationResult; falsy when denied
    """
    if action not in ROLE_ACTIONS.get(actor.role, frozenset()):
        return AuthorizationResult(
            allowed=False, reason=f"role '{actor.role.value}' may not {action.value}"
        )
    if resource is not None and not _owns(actor, resource):
        return AuthorizationResult(
            allowed=False, reason="resource belongs to someone else"
        )
    return ALLOW


def require(actor: AuthenticatedUser, action: Action, resource: Any = None) -> None:
    """Raise Unauthorized unless ``authorize`` allows the action."""
    result = authorize(actor, action, resource)
    if not result:
        logger.warning(
            "Authorization denied",
            extra={
                "actor_id": str(actor.id),
                "role": actor.role.value,
                "action": action.value,
                "reason": result.reason,
            },
        )
        raise Unauthorized(action.value.replace("_", " "), result.reason)
