"""Assignment state machine.

Pure transition rules. Persistence enforces them with conditional updates
whose WHERE clause names the allowed source states, so a move that lost a
race updates no rows instead of overwriting a newer state.
"""

from ...core.exceptions import InvalidTransition
from .models import AssignmentStatus

S = AssignmentStatus

TRANSITIONS: dict[AssignmentStatus, frozenset[AssignmentStatus]] = {
    S.PENDING: frozenset({S.ASSIGNED}),
    S.ASSIGNED: frozenset({S.ASSIGNED, S.ACCEPTED, S.REJECTED, S.PENDING}),
    S.REJECTED: frozenset({S.ASSIGNED, S.PENDING}),
    S.ACCEPTED: frozenset({S.COMPLETED}),
    S.COMPLETED: frozenset({S.COMPLETED}),
}


def can_transition(current: AssignmentStatus, target: AssignmentStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def sources_for(target: AssignmentStatus) -> frozenset[AssignmentStatus]:
    """States from which ``target`` may be reached."""
    return frozenset(
        source for source, targets in TRANSITIONS.items() if target in targets
    )


def ensure_transition(
    current: AssignmentStatus | None, target: AssignmentStatus
) -> None:
    """Raise InvalidTransition unless ``current -> target`` is allowed."""
    if current is None or not can_transition(current, target):
        raise InvalidTransition(
            "assignment", current.value if current else None, target.value
        )


# Source sets used by the conditional updates
ASSIGNABLE = sources_for(S.ASSIGNED)
RESPONDABLE = frozenset({S.ASSIGNED})
REOPENABLE = sources_for(S.PENDING)
FINAL_REPORTABLE = sources_for(S.COMPLETED)
