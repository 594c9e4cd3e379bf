"""CRUD operations for the assignments module.

Status changes are single conditional UPDATE statements. Each returns the
number of rows it changed; zero means the expected source state no longer
holds and the caller must treat the move as rejected.
"""

import uuid
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.utils import bounded
from ..directory.models import Contractor
from ..maintenance.models import MaintenanceReport
from .models import (
    Assignment,
    AssignmentStatus,
    ContractorFinalReport,
    ContractorResponse,
    ResponseDecision,
)

# ----- Assignment reads -----


async def get_assignment_by_id(
    db: AsyncSession, assignment_id: uuid.UUID, for_update: bool = False
) -> Assignment | None:
    """Get an assignment by ID, always reflecting the stored row.

    With ``for_update`` the row is read with a locking read, which sees the
    latest committed version instead of the transaction snapshot.
    """
    query = (
        select(Assignment)
        .where(Assignment.id == assignment_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await bounded(db.execute(query), "load assignment")
    return result.unique().scalar_one_or_none()


async def get_assignment_by_report(
    db: AsyncSession, report_id: uuid.UUID
) -> Assignment | None:
    """Get the assignment record of a report, if one exists."""
    result = await bounded(
        db.execute(
            select(Assignment)
            .where(Assignment.report_id == report_id)
            .execution_options(populate_existing=True)
        ),
        "load assignment",
    )
    return result.unique().scalar_one_or_none()


async def get_statuses_for_reports(
    db: AsyncSession, report_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, AssignmentStatus]:
    """Map report id -> assignment status for the given reports."""
    ids = list(report_ids)
    if not ids:
        return {}
    result = await bounded(
        db.execute(
            select(Assignment.report_id, Assignment.status).where(
                Assignment.report_id.in_(ids)
            )
        ),
        "load assignment statuses",
    )
    return {report_id: status for report_id, status in result.all()}


async def get_assignments(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 100,
    status: AssignmentStatus | None = None,
    property_id: uuid.UUID | None = None,
    landlord_id: uuid.UUID | None = None,
    contractor_id: uuid.UUID | None = None,
    search: str | None = None,
) -> tuple[list[Assignment], int]:
    """Get assignments with filtering and pagination, most recently updated first."""
    filters = []
    if status:
        filters.append(Assignment.status == status)
    if landlord_id:
        filters.append(Assignment.landlord_id == landlord_id)
    if contractor_id:
        filters.append(Assignment.contractor_id == contractor_id)
    if property_id:
        filters.append(MaintenanceReport.property_id == property_id)
    if search:
        search_filter = f"%{search}%"
        filters.append(
            or_(
                MaintenanceReport.title.ilike(search_filter),
                MaintenanceReport.description.ilike(search_filter),
                MaintenanceReport.location.ilike(search_filter),
                Contractor.full_name.ilike(search_filter),
            )
        )

    base = (
        select(Assignment.id)
        .join(MaintenanceReport, MaintenanceReport.id == Assignment.report_id)
        .outerjoin(Contractor, Contractor.id == Assignment.contractor_id)
        .where(*filters)
    )

    total_result = await bounded(
        db.execute(select(func.count()).select_from(base.subquery())),
        "count assignments",
    )
    total = total_result.scalar_one()

    data_query = (
        select(Assignment)
        .where(Assignment.id.in_(base))
        .order_by(Assignment.updated_at.desc(), Assignment.id)
        .offset(skip)
        .limit(limit)
    )
    result = await bounded(db.execute(data_query), "list assignments")
    return list(result.unique().scalars().all()), total


async def get_contractor_assignments(
    db: AsyncSession,
    contractor_id: uuid.UUID,
    statuses: Iterable[AssignmentStatus],
) -> list[Assignment]:
    """Get a contractor's assignments in the given states."""
    result = await bounded(
        db.execute(
            select(Assignment)
            .where(
                Assignment.contractor_id == contractor_id,
                Assignment.status.in_(list(statuses)),
            )
            .order_by(Assignment.updated_at.desc(), Assignment.id)
        ),
        "list contractor assignments",
    )
    return list(result.unique().scalars().all())


# ----- Assignment writes -----


async def create_assignment(
    db: AsyncSession, report_id: uuid.UUID, landlord_id: uuid.UUID | None
) -> Assignment:
    """Create the pending assignment record for a report."""
    assignment = Assignment(
        report_id=report_id,
        landlord_id=landlord_id,
        status=AssignmentStatus.PENDING,
        reassignment_count=0,
    )
    db.add(assignment)
    await bounded(db.flush(), "create assignment")
    return assignment


async def get_or_create_assignment(
    db: AsyncSession, report_id: uuid.UUID, landlord_id: uuid.UUID | None
) -> tuple[Assignment, bool]:
    """Return the report's assignment record, creating it on first use.

    Must run before any other write of the transaction: losing a concurrent
    insert rolls the transaction back before re-reading the winner's row.

    Returns:
        The assignment and whether this call created it
    """
    existing = await get_assignment_by_report(db, report_id)
    if existing:
        return existing, False
    try:
        return await create_assignment(db, report_id, landlord_id), True
    except IntegrityError:
        await db.rollback()
        return await get_assignment_by_report(db, report_id), False


async def assign_contractor(
    db: AsyncSession,
    assignment_id: uuid.UUID,
    contractor_id: uuid.UUID,
    sources: Iterable[AssignmentStatus],
    now: datetime,
) -> int:
    """Point the assignment at a contractor and bump the counter atomically."""
    result = await bounded(
        db.execute(
            update(Assignment)
            .where(
                Assignment.id == assignment_id,
                Assignment.status.in_(list(sources)),
            )
            .values(
                contractor_id=contractor_id,
                status=AssignmentStatus.ASSIGNED,
                assigned_at=now,
                response_at=None,
                reassignment_count=Assignment.reassignment_count + 1,
            )
            .execution_options(synchronize_session=False)
        ),
        "assign contractor",
    )
    return result.rowcount


async def record_response(
    db: AsyncSession,
    assignment_id: uuid.UUID,
    contractor_id: uuid.UUID,
    target: AssignmentStatus,
    sources: Iterable[AssignmentStatus],
    now: datetime,
) -> int:
    """Move an assignment to accepted/rejected if it is still the contractor's."""
    result = await bounded(
        db.execute(
            update(Assignment)
            .where(
                Assignment.id == assignment_id,
                Assignment.contractor_id == contractor_id,
                Assignment.status.in_(list(sources)),
            )
            .values(status=target, response_at=now)
            .execution_options(synchronize_session=False)
        ),
        "record contractor response",
    )
    return result.rowcount


async def complete_assignment(
    db: AsyncSession,
    assignment_id: uuid.UUID,
    contractor_id: uuid.UUID,
    sources: Iterable[AssignmentStatus],
) -> int:
    result = await bounded(
        db.execute(
            update(Assignment)
            .where(
                Assignment.id == assignment_id,
                Assignment.contractor_id == contractor_id,
                Assignment.status.in_(list(sources)),
            )
            .values(status=AssignmentStatus.COMPLETED)
            .execution_options(synchronize_session=False)
        ),
        "complete assignment",
    )
    return result.rowcount


async def reopen_assignment(
    db: AsyncSession,
    assignment_id: uuid.UUID,
    sources: Iterable[AssignmentStatus],
) -> int:
    """Return an assignment to pending, clearing the contractor."""
    result = await bounded(
        db.execute(
            update(Assignment)
            .where(
                Assignment.id == assignment_id,
                Assignment.status.in_(list(sources)),
            )
            .values(
                status=AssignmentStatus.PENDING,
                contractor_id=None,
                assigned_at=None,
                response_at=None,
            )
            .execution_options(synchronize_session=False)
        ),
        "reopen assignment",
    )
    return result.rowcount


# ----- Contractor responses -----


async def create_response(
    db: AsyncSession,
    assignment_id: uuid.UUID,
    contractor_id: uuid.UUID,
    response: ResponseDecision,
    reason: str | None = None,
) -> ContractorResponse:
    """Append a contractor response to the audit trail."""
    row = ContractorResponse(
        assignment_id=assignment_id,
        contractor_id=contractor_id,
        response=response,
        reason=reason,
    )
    db.add(row)
    await bounded(db.flush(), "record contractor response")
    return row


async def get_responses(
    db: AsyncSession, assignment_id: uuid.UUID
) -> list[ContractorResponse]:
    result = await bounded(
        db.execute(
            select(ContractorResponse)
            .where(ContractorResponse.assignment_id == assignment_id)
            .order_by(ContractorResponse.created_at.asc())
        ),
        "list contractor responses",
    )
    return list(result.scalars().all())


async def get_rejecting_contractor_ids(
    db: AsyncSession, assignment_id: uuid.UUID
) -> set[uuid.UUID]:
    """Contractors who have rejected this assignment at some point."""
    result = await bounded(
        db.execute(
            select(ContractorResponse.contractor_id)
            .where(
                ContractorResponse.assignment_id == assignment_id,
                ContractorResponse.response == ResponseDecision.REJECTED,
            )
            .distinct()
        ),
        "list rejections",
    )
    return set(result.scalars().all())


# ----- Final reports -----


async def get_final_report(
    db: AsyncSession,
    assignment_id: uuid.UUID,
    contractor_id: uuid.UUID | None = None,
) -> ContractorFinalReport | None:
    """Get the latest final report of an assignment (optionally by one contractor)."""
    query = select(ContractorFinalReport).where(
        ContractorFinalReport.assignment_id == assignment_id
    )
    if contractor_id is not None:
        query = query.where(ContractorFinalReport.contractor_id == contractor_id)
    result = await bounded(
        db.execute(
            query.order_by(ContractorFinalReport.updated_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        ),
        "load final report",
    )
    return result.scalar_one_or_none()


async def count_final_reports(db: AsyncSession, assignment_id: uuid.UUID) -> int:
    result = await bounded(
        db.execute(
            select(func.count(ContractorFinalReport.id)).where(
                ContractorFinalReport.assignment_id == assignment_id
            )
        ),
        "count final reports",
    )
    return result.scalar_one()


async def upsert_final_report(
    db: AsyncSession,
    assignment_id: uuid.UUID,
    contractor_id: uuid.UUID,
    report_text: str,
    appliance_name: str | None = None,
    appliance_brand: str | None = None,
) -> tuple[ContractorFinalReport, bool]:
    """Insert or update the (assignment, contractor) final report.

    A concurrent submitter may insert the row between the lookup and the
    insert; the insert then runs in a savepoint and the conflict falls back
    to updating the stored row.

    Returns:
        The stored row and whether it was newly created
    """
    existing = await get_final_report(db, assignment_id, contractor_id)
    if existing is None:
        row = ContractorFinalReport(
            assignment_id=assignment_id,
            contractor_id=contractor_id,
            report_text=report_text,
            appliance_name=appliance_name,
            appliance_brand=appliance_brand,
        )
        try:
            async with db.begin_nested():
                db.add(row)
                await bounded(db.flush(), "create final report")
            return row, True
        except IntegrityError:
            existing = await get_final_report(db, assignment_id, contractor_id)
            if existing is None:
                raise

    existing.report_text = report_text
    existing.appliance_name = appliance_name
    existing.appliance_brand = appliance_brand
    await bounded(db.flush(), "update final report")
    return existing, False
