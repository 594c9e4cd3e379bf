"""Assignment API routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ...database import get_db
from ..auth.dependencies import CurrentActor, HelpdeskActor
from ..commons import BaseResponse, PaginatedResponse
from . import services
from .models import AssignmentStatus
from .schemas import (
    AssignmentResponse,
    AssignRequest,
    ContractorBuckets,
    FinalReportRequest,
    FinalReportResponse,
    RejectionsResponse,
    RespondRequest,
    ResponseRecord,
)

router = APIRouter(prefix="/assignments", tags=["Assignments"])
report_assign_router = APIRouter(prefix="/reports", tags=["Assignments"])


@report_assign_router.post(
    "/{report_id}/assign", response_model=BaseResponse[AssignmentResponse]
)
async def assign_contractor(
    report_id: UUID,
    data: AssignRequest,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Assign or reassign a report to a contractor."""
    assignment = await services.assign(db, actor, report_id, data.contractor_id)

    return BaseResponse(
        success=True,
        message="Contractor assigned",
        data=services.assignment_view(assignment),
    )


@router.get("", response_model=BaseResponse[PaginatedResponse[AssignmentResponse]])
async def list_assignments(
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: AssignmentStatus | None = Query(None),
    property_id: UUID | None = Query(None),
    search: str | None = Query(None),
):
    """List assignments, most recently updated first."""
    skip = (page - 1) * page_size
    assignments, total = await services.list_assignments(
        db,
        actor,
        skip=skip,
        limit=page_size,
        status=status,
        property_id=property_id,
        search=search,
    )

    return BaseResponse(
        success=True,
        data=PaginatedResponse.from_items(
            items=[services.assignment_view(a) for a in assignments],
            total=total,
            page=page,
            page_size=page_size,
        ),
    )


@router.get("/mine", response_model=BaseResponse[ContractorBuckets])
async def my_assignments(
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """The signed-in contractor's dashboard."""
    buckets = await services.contractor_buckets(db, actor)
    return BaseResponse(success=True, data=buckets)


@router.get("/{assignment_id}", response_model=BaseResponse[AssignmentResponse])
async def get_assignment(
    assignment_id: UUID,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get an assignment by ID."""
    assignment = await services.get_assignment(db, actor, assignment_id)
    return BaseResponse(success=True, data=services.assignment_view(assignment))


@router.post(
    "/{assignment_id}/respond", response_model=BaseResponse[AssignmentResponse]
)
async def respond(
    assignment_id: UUID,
    data: RespondRequest,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Accept or reject an assignment."""
    assignment = await services.respond(
        db, actor, assignment_id, data.decision, data.reason
    )

    return BaseResponse(
        success=True,
        message=f"Assignment {data.decision.value}",
        data=services.assignment_view(assignment),
    )


@router.post(
    "/{assignment_id}/final-report", response_model=BaseResponse[FinalReportResponse]
)
async def submit_final_report(
    assignment_id: UUID,
    data: FinalReportRequest,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Submit or update the final report of a job."""
    final_report = await services.submit_final_report(
        db,
        actor,
        assignment_id,
        report_text=data.report_text,
        appliance_name=data.appliance_name,
        appliance_brand=data.appliance_brand,
    )

    return BaseResponse(
        success=True,
        message="Final report saved",
        data=FinalReportResponse.model_validate(final_report),
    )


@router.get(
    "/{assignment_id}/final-report", response_model=BaseResponse[FinalReportResponse]
)
async def get_final_report(
    assignment_id: UUID,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get the current final report of a job."""
    final_report = await services.get_final_report(db, actor, assignment_id)
    return BaseResponse(
        success=True, data=FinalReportResponse.model_validate(final_report)
    )


@router.post(
    "/{assignment_id}/reopen", response_model=BaseResponse[AssignmentResponse]
)
async def reopen(
    assignment_id: UUID,
    actor: HelpdeskActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Return a job to the pending queue."""
    assignment = await services.reopen(db, actor, assignment_id)

    return BaseResponse(
        success=True,
        message="Assignment reopened",
        data=services.assignment_view(assignment),
    )


@router.get(
    "/{assignment_id}/responses", response_model=BaseResponse[list[ResponseRecord]]
)
async def list_responses(
    assignment_id: UUID,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Contractor response audit trail."""
    responses = await services.list_responses(db, actor, assignment_id)
    return BaseResponse(
        success=True, data=[ResponseRecord.model_validate(r) for r in responses]
    )


@router.get(
    "/{assignment_id}/rejections", response_model=BaseResponse[RejectionsResponse]
)
async def list_rejections(
    assignment_id: UUID,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Contractors who already rejected this job."""
    contractor_ids = await services.list_rejections(db, actor, assignment_id)
    return BaseResponse(
        success=True,
        data=RejectionsResponse(
            assignment_id=assignment_id, contractor_ids=sorted(contractor_ids, key=str)
        ),
    )
