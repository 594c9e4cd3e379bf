"""
Assignment business logic.

Every status change runs as one conditional UPDATE inside the request's
transaction. When the UPDATE matches no row the transaction is rolled back,
the current row is re-read and InvalidTransition is raised, so the caller
always sees either its own change or the state that beat it.

Change events are published only after the transaction commits.
"""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ...core.exceptions import (
    InvalidTransition,
    ResourceNotFoundError,
    Unauthorized,
    ValidationError,
)
from ...core.logging import get_logger
from ...core.utils import bounded, sanitize_string, utc_now
from ..auth.models import RoleSlug
from ..auth.role_gate import Action, require
from ..auth.schemas import AuthenticatedUser
from ..directory import crud as directory_crud
from ..maintenance import crud as maintenance_crud
from ..maintenance.models import ReportStatus
from ..notifications.feed import change_feed, snapshot
from . import crud
from .models import (
    Assignment,
    AssignmentStatus,
    ContractorFinalReport,
    ContractorResponse,
    ResponseDecision,
)
from .schemas import (
    AssignmentContractorInfo,
    AssignmentReportInfo,
    AssignmentResponse,
    ContractorBuckets,
)
from .state_machine import (
    ASSIGNABLE,
    REOPENABLE,
    RESPONDABLE,
    ensure_transition,
)

logger = get_logger(__name__)

ASSIGNMENTS = "helpdesk_assignments"
RESPONSES = "contractor_responses"
FINAL_REPORTS = "contractor_final_reports"
REPORTS = "maintenance_reports"


async def _load(db: AsyncSession, assignment_id: uuid.UUID) -> Assignment:
    assignment = await crud.get_assignment_by_id(db, assignment_id)
    if not assignment:
        raise ResourceNotFoundError("Assignment", assignment_id)
    return assignment


async def _rejected(
    db: AsyncSession, assignment_id: uuid.UUID, target: AssignmentStatus
) -> InvalidTransition:
    """Roll back a lost transition and describe the state that won."""
    await db.rollback()
    current = await crud.get_assignment_by_id(db, assignment_id)
    logger.info(
        "Assignment transition rejected",
        extra={
            "assignment_id": str(assignment_id),
            "current_status": current.status.value if current else None,
            "target_status": target.value,
        },
    )
    return InvalidTransition(
        "assignment", current.status.value if current else None, target.value
    )


def _contractor_id(actor: AuthenticatedUser, action: Action) -> uuid.UUID:
    if actor.contractor_id is None:
        raise Unauthorized(
            action.value.replace("_", " "), "profile is not linked to a contractor"
        )
    return actor.contractor_id


def assignment_view(assignment: Assignment) -> AssignmentResponse:
    """Flatten an assignment with its report and contractor for the API."""
    report = assignment.report
    report_info = None
    if report is not None:
        prop = report.property
        report_info = AssignmentReportInfo(
            id=report.id,
            property_id=report.property_id,
            property_name=prop.name if prop else None,
            property_address=prop.address if prop else None,
            title=report.title,
            description=report.description,
            category=report.category,
            location=report.location,
            urgency=report.urgency,
            status=report.status,
            created_at=report.created_at,
        )
    return AssignmentResponse(
        id=assignment.id,
        report_id=assignment.report_id,
        contractor_id=assignment.contractor_id,
        landlord_id=assignment.landlord_id,
        status=assignment.status,
        assigned_at=assignment.assigned_at,
        response_at=assignment.response_at,
        reassignment_count=assignment.reassignment_count,
        created_at=assignment.created_at,
        updated_at=assignment.updated_at,
        report=report_info,
        contractor=(
            AssignmentContractorInfo.model_validate(assignment.contractor)
            if assignment.contractor
            else None
        ),
    )


# ----- Transitions -----


async def assign(
    db: AsyncSession,
    actor: AuthenticatedUser,
    report_id: uuid.UUID,
    contractor_id: uuid.UUID,
) -> Assignment:
    """Assign (or reassign) a report to a contractor.

    Creates the assignment record on first use. Every successful call bumps
    ``reassignment_count`` by exactly one, including under concurrency.

    Raises:
        Unauthorized: If the actor may not assign this report
        ResourceNotFoundError: If the report or contractor does not exist
        InvalidTransition: If the job was accepted/completed or the landlord
            rejected the report
    """
    require(actor, Action.ASSIGN_CONTRACTOR)
    report = await maintenance_crud.get_report_by_id(db, report_id)
    if not report:
        raise ResourceNotFoundError("Report", report_id)
    require(actor, Action.ASSIGN_CONTRACTOR, report)
    if report.status == ReportStatus.REJECTED:
        raise InvalidTransition("report", report.status.value, "assigned")

    contractor = await directory_crud.get_contractor_by_id(db, contractor_id)
    if not contractor:
        raise ResourceNotFoundError("Contractor", contractor_id)

    landlord_id = report.property.owner_id if report.property else None
    assignment, created = await crud.get_or_create_assignment(
        db, report_id, landlord_id
    )
    previous = snapshot(assignment)
    assignment_id = assignment.id

    changed = await crud.assign_contractor(
        db, assignment_id, contractor_id, ASSIGNABLE, utc_now()
    )
    if not changed:
        raise await _rejected(db, assignment_id, AssignmentStatus.ASSIGNED)
    await bounded(db.commit(), "assign contractor")

    assignment = await crud.get_assignment_by_id(db, assignment_id)
    if created:
        change_feed.publish(ASSIGNMENTS, "INSERT", new=snapshot(assignment))
    else:
        change_feed.publish(
            ASSIGNMENTS, "UPDATE", new=snapshot(assignment), old=previous
        )

    logger.info(
        "Contractor assigned",
        extra={
            "assignment_id": str(assignment_id),
            "report_id": str(report_id),
            "contractor_id": str(contractor_id),
            "from_status": previous["status"],
            "reassignment_count": assignment.reassignment_count,
        },
    )
    return assignment


async def respond(
    db: AsyncSession,
    actor: AuthenticatedUser,
    assignment_id: uuid.UUID,
    decision: ResponseDecision,
    reason: str | None = None,
) -> Assignment:
    """Record the assigned contractor's accept/reject decision.

    The status change and the audit row are written in one transaction.
    Accepting also moves the report to ``working``.

    Raises:
        Unauthorized: If the actor is not the assigned contractor
        InvalidTransition: If the assignment is not awaiting a response
    """
    require(actor, Action.RESPOND_TO_ASSIGNMENT)
    contractor_id = _contractor_id(actor, Action.RESPOND_TO_ASSIGNMENT)
    assignment = await _load(db, assignment_id)
    require(actor, Action.RESPOND_TO_ASSIGNMENT, assignment)

    target = (
        AssignmentStatus.ACCEPTED
        if decision == ResponseDecision.ACCEPTED
        else AssignmentStatus.REJECTED
    )
    ensure_transition(assignment.status, target)

    previous = snapshot(assignment)
    report_id = assignment.report_id
    previous_report_status = assignment.report.status if assignment.report else None

    changed = await crud.record_response(
        db, assignment_id, contractor_id, target, RESPONDABLE, utc_now()
    )
    if not changed:
        raise await _rejected(db, assignment_id, target)

    response = await crud.create_response(
        db,
        assignment_id=assignment_id,
        contractor_id=contractor_id,
        response=decision,
        reason=sanitize_string(reason, 1000) or None,
    )
    response_row = snapshot(response)

    if decision == ResponseDecision.ACCEPTED:
        moved = await maintenance_crud.set_report_status(
            db,
            report_id,
            ReportStatus.WORKING,
            {ReportStatus.PENDING, ReportStatus.APPROVED},
        )
        if not moved:
            await db.rollback()
            current = await maintenance_crud.get_report_by_id(db, report_id)
            raise InvalidTransition(
                "report",
                current.status.value if current else None,
                ReportStatus.WORKING.value,
            )

    await bounded(db.commit(), "record contractor response")

    assignment = await crud.get_assignment_by_id(db, assignment_id)
    change_feed.publish(RESPONSES, "INSERT", new=response_row)
    change_feed.publish(ASSIGNMENTS, "UPDATE", new=snapshot(assignment), old=previous)
    if decision == ResponseDecision.ACCEPTED and assignment.report is not None:
        change_feed.publish(
            REPORTS,
            "UPDATE",
            new=snapshot(assignment.report),
            old={
                "id": str(report_id),
                "status": previous_report_status.value
                if previous_report_status
                else None,
            },
        )

    logger.info(
        "Contractor responded",
        extra={
            "assignment_id": str(assignment_id),
            "contractor_id": str(contractor_id),
            "decision": decision.value,
        },
    )
    return assignment


async def submit_final_report(
    db: AsyncSession,
    actor: AuthenticatedUser,
    assignment_id: uuid.UUID,
    report_text: str,
    appliance_name: str | None = None,
    appliance_brand: str | None = None,
) -> ContractorFinalReport:
    """Create or update the contractor's final report.

    The first submission on an accepted assignment completes it and marks the
    report fixed. Re-submitting on a completed assignment updates the same row.

    Raises:
        ValidationError: If the text is empty (checked before touching the store)
        Unauthorized: If the actor is not the assignment's contractor
        InvalidTransition: If the assignment is not accepted or completed
    """
    text = (report_text or "").strip()
    if not text:
        raise ValidationError("a final report needs some text", field="report_text")

    require(actor, Action.SUBMIT_FINAL_REPORT)
    contractor_id = _contractor_id(actor, Action.SUBMIT_FINAL_REPORT)
    assignment = await _load(db, assignment_id)
    require(actor, Action.SUBMIT_FINAL_REPORT, assignment)
    ensure_transition(assignment.status, AssignmentStatus.COMPLETED)

    previous = snapshot(assignment)
    report_id = assignment.report_id
    completed_now = False
    if assignment.status == AssignmentStatus.ACCEPTED:
        changed = await crud.complete_assignment(
            db, assignment_id, contractor_id, {AssignmentStatus.ACCEPTED}
        )
        completed_now = bool(changed)
        if not changed:
            # Lost to a concurrent submission; continue only once it completed
            current = await crud.get_assignment_by_id(
                db, assignment_id, for_update=True
            )
            if (
                current is None
                or current.status != AssignmentStatus.COMPLETED
                or current.contractor_id != contractor_id
            ):
                raise await _rejected(db, assignment_id, AssignmentStatus.COMPLETED)

    final_report, created = await crud.upsert_final_report(
        db,
        assignment_id=assignment_id,
        contractor_id=contractor_id,
        report_text=text,
        appliance_name=sanitize_string(appliance_name),
        appliance_brand=sanitize_string(appliance_brand),
    )

    if completed_now:
        fixed = await maintenance_crud.set_report_status(
            db, report_id, ReportStatus.FIXED, {ReportStatus.WORKING}
        )
        if not fixed:
            logger.warning(
                "Report was not in progress when its job completed",
                extra={"report_id": str(report_id)},
            )

    await bounded(db.commit(), "submit final report")

    change_feed.publish(
        FINAL_REPORTS, "INSERT" if created else "UPDATE", new=snapshot(final_report)
    )
    if completed_now:
        assignment = await crud.get_assignment_by_id(db, assignment_id)
        change_feed.publish(
            ASSIGNMENTS, "UPDATE", new=snapshot(assignment), old=previous
        )
        if assignment.report is not None:
            change_feed.publish(REPORTS, "UPDATE", new=snapshot(assignment.report))

    logger.info(
        "Final report submitted",
        extra={
            "assignment_id": str(assignment_id),
            "contractor_id": str(contractor_id),
            "completed": completed_now,
        },
    )
    return final_report


async def reopen(
    db: AsyncSession, actor: AuthenticatedUser, assignment_id: uuid.UUID
) -> Assignment:
    """Send an assigned or rejected job back to the pending queue.

    The contractor is cleared; the reassignment count is kept.
    """
    require(actor, Action.REOPEN_ASSIGNMENT)
    assignment = await _load(db, assignment_id)
    ensure_transition(assignment.status, AssignmentStatus.PENDING)
    previous = snapshot(assignment)

    changed = await crud.reopen_assignment(db, assignment_id, REOPENABLE)
    if not changed:
        raise await _rejected(db, assignment_id, AssignmentStatus.PENDING)
    await bounded(db.commit(), "reopen assignment")

    assignment = await crud.get_assignment_by_id(db, assignment_id)
    change_feed.publish(ASSIGNMENTS, "UPDATE", new=snapshot(assignment), old=previous)
    logger.info(
        "Assignment reopened",
        extra={"assignment_id": str(assignment_id), "from_status": previous["status"]},
    )
    return assignment


# ----- Read side -----


async def get_assignment(
    db: AsyncSession, actor: AuthenticatedUser, assignment_id: uuid.UUID
) -> Assignment:
    """Load an assignment the actor may view."""
    require(actor, Action.VIEW_ASSIGNMENTS)
    assignment = await _load(db, assignment_id)
    require(actor, Action.VIEW_ASSIGNMENTS, assignment)
    return assignment


async def list_assignments(
    db: AsyncSession,
    actor: AuthenticatedUser,
    skip: int = 0,
    limit: int = 100,
    status: AssignmentStatus | None = None,
    property_id: uuid.UUID | None = None,
    search: str | None = None,
) -> tuple[list[Assignment], int]:
    """Helpdesk triage listing; landlords and contractors see only their own."""
    require(actor, Action.VIEW_ASSIGNMENTS)
    scope = {}
    if actor.role == RoleSlug.LANDLORD:
        scope["landlord_id"] = actor.id
    elif actor.role == RoleSlug.CONTRACTOR:
        scope["contractor_id"] = _contractor_id(actor, Action.VIEW_ASSIGNMENTS)
    return await crud.get_assignments(
        db,
        skip=skip,
        limit=limit,
        status=status,
        property_id=property_id,
        search=search,
        **scope,
    )


async def contractor_buckets(
    db: AsyncSession, actor: AuthenticatedUser
) -> ContractorBuckets:
    """Split the contractor's jobs into awaiting response, active and history."""
    require(actor, Action.RESPOND_TO_ASSIGNMENT)
    contractor_id = _contractor_id(actor, Action.VIEW_ASSIGNMENTS)
    assignments = await crud.get_contractor_assignments(
        db,
        contractor_id,
        [
            AssignmentStatus.ASSIGNED,
            AssignmentStatus.ACCEPTED,
            AssignmentStatus.REJECTED,
            AssignmentStatus.COMPLETED,
        ],
    )

    pending = sorted(
        (a for a in assignments if a.status == AssignmentStatus.ASSIGNED),
        key=lambda a: a.assigned_at or a.created_at,
    )
    active = sorted(
        (a for a in assignments if a.status == AssignmentStatus.ACCEPTED),
        key=lambda a: a.response_at or a.created_at,
    )
    history = [
        a
        for a in assignments
        if a.status in (AssignmentStatus.REJECTED, AssignmentStatus.COMPLETED)
    ]
    return ContractorBuckets(
        pending=[assignment_view(a) for a in pending],
        active=[assignment_view(a) for a in active],
        history=[assignment_view(a) for a in history],
    )


async def list_responses(
    db: AsyncSession, actor: AuthenticatedUser, assignment_id: uuid.UUID
) -> list[ContractorResponse]:
    """Audit trail of contractor responses, oldest first."""
    await get_assignment(db, actor, assignment_id)
    return await crud.get_responses(db, assignment_id)


async def list_rejections(
    db: AsyncSession, actor: AuthenticatedUser, assignment_id: uuid.UUID
) -> set[uuid.UUID]:
    """Contractors who already rejected the job, for the reassignment picker."""
    require(actor, Action.ASSIGN_CONTRACTOR)
    await get_assignment(db, actor, assignment_id)
    return await crud.get_rejecting_contractor_ids(db, assignment_id)


async def get_final_report(
    db: AsyncSession, actor: AuthenticatedUser, assignment_id: uuid.UUID
) -> ContractorFinalReport:
    """Current final report of an assignment."""
    await get_assignment(db, actor, assignment_id)
    final_report = await crud.get_final_report(db, assignment_id)
    if not final_report:
        raise ResourceNotFoundError("Final report for assignment", assignment_id)
    return final_report
