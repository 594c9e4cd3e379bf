import uuid
from types import SimpleNamespace

import pytest

from propcare_backend.core.exceptions import Unauthorized
from propcare_backend.modules.auth.models import RoleSlug
from propcare_backend.modules.auth.role_gate import Action, authorize, require
from propcare_backend.modules.auth.schemas import AuthenticatedUser


def make_actor(role: RoleSlug, contractor_id=None) -> AuthenticatedUser:
    return AuthenticatedUser(
        id=uuid.uuid4(),
        email=f"{role.value}@example.com",
        role=role,
        contractor_id=contractor_id,
    )


@pytest.mark.parametrize(
    "role,action,allowed",
    [
        (RoleSlug.TENANT, Action.CREATE_REPORT, True),
        (RoleSlug.TENANT, Action.ASSIGN_CONTRACTOR, False),
        (RoleSlug.LANDLORD, Action.REVIEW_REPORT, True),
        (RoleSlug.LANDLORD, Action.CREATE_REPORT, False),
        (RoleSlug.HELPDESK, Action.ASSIGN_CONTRACTOR, True),
        (RoleSlug.HELPDESK, Action.RESPOND_TO_ASSIGNMENT, False),
        (RoleSlug.CONTRACTOR, Action.SUBMIT_FINAL_REPORT, True),
        (RoleSlug.CONTRACTOR, Action.REVIEW_REPORT, False),
        (RoleSlug.TENANT, Action.SUBSCRIBE_NOTIFICATIONS, False),
    ],
)
def test_role_table(role, action, allowed):
    assert bool(authorize(make_actor(role), action)) is allowed


def test_denial_carries_a_reason():
    result = authorize(make_actor(RoleSlug.TENANT), Action.REOPEN_ASSIGNMENT)
    assert not result
    assert "tenant" in result.reason


def test_tenant_owns_only_their_reports():
    tenant = make_actor(RoleSlug.TENANT)
    own = SimpleNamespace(created_by=tenant.id)
    other = SimpleNamespace(created_by=uuid.uuid4())
    assert authorize(tenant, Action.VIEW_REPORT, own)
    assert not authorize(tenant, Action.VIEW_REPORT, other)


def test_landlord_owns_reports_through_the_property():
    landlord = make_actor(RoleSlug.LANDLORD)
    report = SimpleNamespace(property=SimpleNamespace(owner_id=landlord.id))
    foreign = SimpleNamespace(property=SimpleNamespace(owner_id=uuid.uuid4()))
    assert authorize(landlord, Action.REVIEW_REPORT, report)
    assert not authorize(landlord, Action.REVIEW_REPORT, foreign)


def test_landlord_owns_assignments_by_landlord_id():
    landlord = make_actor(RoleSlug.LANDLORD)
    assignment = SimpleNamespace(landlord_id=landlord.id, contractor_id=None)
    assert authorize(landlord, Action.VIEW_ASSIGNMENTS, assignment)


def test_contractor_needs_a_directory_link():
    contractor_id = uuid.uuid4()
    assignment = SimpleNamespace(contractor_id=contractor_id)
    linked = make_actor(RoleSlug.CONTRACTOR, contractor_id=contractor_id)
    unlinked = make_actor(RoleSlug.CONTRACTOR)
    assert authorize(linked, Action.RESPOND_TO_ASSIGNMENT, assignment)
    assert not authorize(unlinked, Action.RESPOND_TO_ASSIGNMENT, assignment)


def test_helpdesk_sees_everything():
    helpdesk = make_actor(RoleSlug.HELPDESK)
    assignment = SimpleNamespace(landlord_id=uuid.uuid4(), contractor_id=uuid.uuid4())
    assert authorize(helpdesk, Action.REOPEN_ASSIGNMENT, assignment)


def test_require_raises_with_redirect_hint():
    with pytest.raises(Unauthorized) as exc:
        require(make_actor(RoleSlug.CONTRACTOR), Action.CREATE_REPORT)
    assert exc.value.status_code == 403
    assert exc.value.redirect_to == "/"
