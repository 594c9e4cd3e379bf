import pytest

from propcare_backend.core.exceptions import InvalidTransition
from propcare_backend.modules.assignments.models import AssignmentStatus as S
from propcare_backend.modules.assignments.state_machine import (
    ASSIGNABLE,
    FINAL_REPORTABLE,
    REOPENABLE,
    RESPONDABLE,
    can_transition,
    ensure_transition,
    sources_for,
)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.PENDING, S.ASSIGNED),
        (S.ASSIGNED, S.ASSIGNED),
        (S.ASSIGNED, S.ACCEPTED),
        (S.ASSIGNED, S.REJECTED),
        (S.ASSIGNED, S.PENDING),
        (S.REJECTED, S.ASSIGNED),
        (S.REJECTED, S.PENDING),
        (S.ACCEPTED, S.COMPLETED),
        (S.COMPLETED, S.COMPLETED),
    ],
)
def test_allowed_moves(current, target):
    assert can_transition(current, target)
    ensure_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.PENDING, S.ACCEPTED),
        (S.PENDING, S.COMPLETED),
        (S.ACCEPTED, S.ASSIGNED),
        (S.ACCEPTED, S.REJECTED),
        (S.ACCEPTED, S.PENDING),
        (S.COMPLETED, S.ASSIGNED),
        (S.COMPLETED, S.PENDING),
        (S.REJECTED, S.ACCEPTED),
    ],
)
def test_forbidden_moves(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidTransition) as exc:
        ensure_transition(current, target)
    assert exc.value.current == current.value
    assert exc.value.target == target.value


def test_missing_current_state_is_rejected():
    with pytest.raises(InvalidTransition):
        ensure_transition(None, S.ASSIGNED)


def test_source_sets():
    assert ASSIGNABLE == {S.PENDING, S.ASSIGNED, S.REJECTED}
    assert RESPONDABLE == {S.ASSIGNED}
    assert REOPENABLE == {S.ASSIGNED, S.REJECTED}
    assert FINAL_REPORTABLE == {S.ACCEPTED, S.COMPLETED}
    assert sources_for(S.ACCEPTED) == {S.ASSIGNED}
