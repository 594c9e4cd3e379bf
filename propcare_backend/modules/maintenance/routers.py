"""Maintenance report API routes."""

import mimetypes
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.exceptions import NotFoundError
from ...database import get_db
from ...storage import decode_file_token
from ..auth.dependencies import CurrentActor
from ..commons import BaseResponse, PaginatedResponse
from . import services
from .models import ReportCategory, ReportStatus
from .schemas import AttachmentResponse, ReportCreate, ReportResponse, ReportSummary

router = APIRouter(prefix="/reports", tags=["Maintenance Reports"])
files_router = APIRouter(prefix="/files", tags=["Files"])


@router.post("", response_model=BaseResponse[ReportResponse])
async def create_report(
    data: ReportCreate,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """File a maintenance report."""
    report = await services.create_report(db, actor, data)
    views = await services.build_report_views(db, [report])

    return BaseResponse(
        success=True,
        message="Maintenance request submitted",
        data=views[0],
    )


@router.get("", response_model=BaseResponse[PaginatedResponse[ReportResponse]])
async def list_reports(
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    property_id: UUID | None = Query(None),
    status: ReportStatus | None = Query(None),
    category: ReportCategory | None = Query(None),
    search: str | None = Query(None),
):
    """List reports visible to the actor, newest first."""
    skip = (page - 1) * page_size
    reports, total = await services.list_reports(
        db,
        actor,
        skip=skip,
        limit=page_size,
        property_id=property_id,
        status=status,
        category=category,
        search=search,
    )

    return BaseResponse(
        success=True,
        data=PaginatedResponse.from_items(
            items=await services.build_report_views(db, reports),
            total=total,
            page=page,
            page_size=page_size,
        ),
    )


@router.get("/summary", response_model=BaseResponse[ReportSummary])
async def get_summary(
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Report counts by landlord-facing status."""
    summary = await services.get_summary(db, actor)
    return BaseResponse(success=True, data=summary)


@router.get("/{report_id}", response_model=BaseResponse[ReportResponse])
async def get_report(
    report_id: UUID,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get a report by ID."""
    report = await services.get_report(db, actor, report_id)
    views = await services.build_report_views(db, [report])
    return BaseResponse(success=True, data=views[0])


@router.delete("/{report_id}", response_model=BaseResponse[None])
async def delete_report(
    report_id: UUID,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Withdraw a report that has not been reviewed yet."""
    await services.delete_report(db, actor, report_id)
    return BaseResponse(success=True, message="Report deleted successfully")


@router.post("/{report_id}/approve", response_model=BaseResponse[ReportResponse])
async def approve_report(
    report_id: UUID,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Landlord approval of a report."""
    report = await services.approve_report(db, actor, report_id)
    views = await services.build_report_views(db, [report])
    return BaseResponse(success=True, message="Report approved", data=views[0])


@router.post("/{report_id}/reject", response_model=BaseResponse[ReportResponse])
async def reject_report(
    report_id: UUID,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Landlord rejection of a report."""
    report = await services.reject_report(db, actor, report_id)
    views = await services.build_report_views(db, [report])
    return BaseResponse(success=True, message="Report rejected", data=views[0])


@router.post(
    "/{report_id}/attachments", response_model=BaseResponse[AttachmentResponse]
)
async def upload_attachment(
    report_id: UUID,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
    file: UploadFile = File(...),
    duration: float | None = Form(None),
):
    """Attach a photo or video to a report."""
    data = await file.read()
    attachment = await services.add_attachment(
        db,
        actor,
        report_id,
        file_name=file.filename or "upload",
        content_type=file.content_type,
        data=data,
        duration=duration,
    )

    return BaseResponse(
        success=True,
        message="Attachment uploaded",
        data=services.attachment_view(attachment),
    )


@files_router.get("/{token}")
async def download_file(token: str):
    """Serve a blob through a signed, time-limited URL."""
    path = decode_file_token(token)
    if path is None:
        raise NotFoundError("File link is invalid or has expired")

    content = await services.read_attachment(path)
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=content, media_type=media_type)
