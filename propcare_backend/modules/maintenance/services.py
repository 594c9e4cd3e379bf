"""Maintenance report business logic: filing, landlord review and attachments."""

import asyncio
import mimetypes
import time
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ...config import settings
from ...core.exceptions import (
    ExternalServiceError,
    InvalidTransition,
    ResourceNotFoundError,
    UpstreamTimeout,
    ValidationError,
)
from ...core.logging import get_logger
from ...core.utils import bounded, sanitize_string
from ...storage import get_storage
from ..assignments import crud as assignment_crud
from ..assignments.models import AssignmentStatus
from ..auth.models import RoleSlug
from ..auth.role_gate import Action, require
from ..auth.schemas import AuthenticatedUser
from ..directory import crud as directory_crud
from ..notifications.feed import change_feed, snapshot
from . import crud
from .models import Attachment, FileType, MaintenanceReport, ReportStatus
from .schemas import AttachmentResponse, ReportCreate, ReportResponse, ReportSummary

logger = get_logger(__name__)

APPROVABLE = frozenset({ReportStatus.PENDING, ReportStatus.REJECTED})
REJECTABLE = frozenset({ReportStatus.PENDING})


def derive_landlord_status(
    report_status: ReportStatus, assignment_status: AssignmentStatus | None
) -> ReportStatus:
    """Status shown to landlords, combining the report and its assignment."""
    if report_status == ReportStatus.REJECTED:
        return ReportStatus.REJECTED
    if (
        assignment_status == AssignmentStatus.COMPLETED
        or report_status == ReportStatus.FIXED
    ):
        return ReportStatus.FIXED
    if report_status in (ReportStatus.APPROVED, ReportStatus.WORKING) and (
        assignment_status == AssignmentStatus.ACCEPTED
    ):
        return ReportStatus.WORKING
    if report_status == ReportStatus.APPROVED:
        return ReportStatus.APPROVED
    return ReportStatus.PENDING


def attachment_view(attachment: Attachment) -> AttachmentResponse:
    view = AttachmentResponse.model_validate(attachment)
    view.url = get_storage().resolve(
        attachment.file_path, settings.signed_url_expire_seconds
    )
    return view


async def build_report_views(
    db: AsyncSession, reports: list[MaintenanceReport]
) -> list[ReportResponse]:
    """Attach derived status, assignment status and signed URLs to reports."""
    statuses = await assignment_crud.get_statuses_for_reports(
        db, [r.id for r in reports]
    )
    views = []
    for report in reports:
        assignment_status = statuses.get(report.id)
        views.append(
            ReportResponse(
                id=report.id,
                property_id=report.property_id,
                property_name=report.property.name if report.property else None,
                created_by=report.created_by,
                title=report.title,
                description=report.description,
                category=report.category,
                location=report.location,
                urgency=report.urgency,
                status=report.status,
                landlord_status=derive_landlord_status(
                    report.status, assignment_status
                ),
                assignment_status=assignment_status,
                latitude=report.latitude,
                longitude=report.longitude,
                formatted_address=report.formatted_address,
                created_at=report.created_at,
                updated_at=report.updated_at,
                attachments=[attachment_view(a) for a in report.attachments],
            )
        )
    return views


def _scope_for(actor: AuthenticatedUser) -> dict:
    if actor.role == RoleSlug.TENANT:
        return {"created_by": actor.id}
    if actor.role == RoleSlug.LANDLORD:
        return {"owner_id": actor.id}
    return {}


async def create_report(
    db: AsyncSession, actor: AuthenticatedUser, data: ReportCreate
) -> MaintenanceReport:
    """File a new pending report on behalf of a tenant."""
    require(actor, Action.CREATE_REPORT)

    prop = await directory_crud.get_property_by_id(db, data.property_id)
    if not prop:
        raise ResourceNotFoundError("Property", data.property_id)

    report = await crud.create_report(
        db,
        property_id=prop.id,
        created_by=actor.id,
        title=sanitize_string(data.title),
        description=data.description,
        category=data.category,
        location=sanitize_string(data.location),
        urgency=data.urgency,
        latitude=data.latitude,
        longitude=data.longitude,
        formatted_address=sanitize_string(data.formatted_address, 500),
    )
    await bounded(db.commit(), "create report")

    report = await crud.get_report_by_id(db, report.id)
    change_feed.publish("maintenance_reports", "INSERT", new=snapshot(report))
    logger.info(
        "Report filed",
        extra={"report_id": str(report.id), "property_id": str(prop.id)},
    )
    return report


async def get_report(
    db: AsyncSession, actor: AuthenticatedUser, report_id: uuid.UUID
) -> MaintenanceReport:
    """Load a report the actor may view."""
    require(actor, Action.VIEW_REPORT)
    report = await crud.get_report_by_id(db, report_id)
    if not report:
        raise ResourceNotFoundError("Report", report_id)
    require(actor, Action.VIEW_REPORT, report)
    return report


async def list_reports(
    db: AsyncSession,
    actor: AuthenticatedUser,
    skip: int = 0,
    limit: int = 100,
    **filters,
) -> tuple[list[MaintenanceReport], int]:
    """Reports visible to the actor: tenants see their own, landlords their properties'."""
    require(actor, Action.VIEW_REPORT)
    return await crud.get_reports(
        db, skip=skip, limit=limit, **_scope_for(actor), **filters
    )


async def get_summary(db: AsyncSession, actor: AuthenticatedUser) -> ReportSummary:
    """Count visible reports by landlord-facing status."""
    require(actor, Action.VIEW_REPORT)
    reports = await crud.get_all_reports(db, **_scope_for(actor))
    statuses = await assignment_crud.get_statuses_for_reports(
        db, [r.id for r in reports]
    )
    summary = ReportSummary(total=len(reports))
    for report in reports:
        derived = derive_landlord_status(report.status, statuses.get(report.id))
        setattr(summary, derived.value, getattr(summary, derived.value) + 1)
    return summary


async def delete_report(
    db: AsyncSession, actor: AuthenticatedUser, report_id: uuid.UUID
) -> None:
    """Withdraw a report that nobody has acted on yet."""
    report = await crud.get_report_by_id(db, report_id)
    if not report:
        raise ResourceNotFoundError("Report", report_id)
    require(actor, Action.DELETE_REPORT, report)

    assignment = await assignment_crud.get_assignment_by_report(db, report_id)
    if report.status != ReportStatus.PENDING or (
        assignment and assignment.status != AssignmentStatus.PENDING
    ):
        raise InvalidTransition("report", report.status.value, "deleted")

    old = snapshot(report)
    paths = [a.file_path for a in report.attachments]
    await crud.delete_report(db, report)
    await bounded(db.commit(), "delete report")
    change_feed.publish("maintenance_reports", "DELETE", old=old)

    storage = get_storage()
    for path in paths:
        await _discard_blob(storage, path)


async def _discard_blob(storage, path: str) -> None:
    """Best-effort blob removal; failures are logged and left for cleanup."""
    try:
        await bounded(asyncio.to_thread(storage.delete, path), "delete attachment")
    except (OSError, ValueError, UpstreamTimeout):
        logger.warning(
            "Could not remove attachment blob", extra={"path": path}, exc_info=True
        )


async def _review(
    db: AsyncSession,
    actor: AuthenticatedUser,
    report_id: uuid.UUID,
    target: ReportStatus,
    sources: frozenset[ReportStatus],
) -> MaintenanceReport:
    report = await crud.get_report_by_id(db, report_id)
    if not report:
        raise ResourceNotFoundError("Report", report_id)
    require(actor, Action.REVIEW_REPORT, report)

    previous = report.status
    created = False
    if target == ReportStatus.APPROVED:
        # Approved reports always have an assignment record for the helpdesk
        _, created = await assignment_crud.get_or_create_assignment(
            db, report_id, report.property.owner_id if report.property else None
        )

    changed = await crud.set_report_status(db, report_id, target, sources)
    if not changed:
        await db.rollback()
        current = await crud.get_report_by_id(db, report_id)
        raise InvalidTransition(
            "report", current.status.value if current else None, target.value
        )
    await bounded(db.commit(), f"{target.value} report")

    report = await crud.get_report_by_id(db, report_id)
    change_feed.publish(
        "maintenance_reports",
        "UPDATE",
        new=snapshot(report),
        old={"id": str(report.id), "status": previous.value},
    )
    if created:
        assignment = await assignment_crud.get_assignment_by_report(db, report_id)
        change_feed.publish(
            "helpdesk_assignments", "INSERT", new=snapshot(assignment)
        )

    logger.info(
        "Report reviewed",
        extra={
            "report_id": str(report_id),
            "from_status": previous.value,
            "to_status": target.value,
        },
    )
    return report


async def approve_report(
    db: AsyncSession, actor: AuthenticatedUser, report_id: uuid.UUID
) -> MaintenanceReport:
    """Landlord approval: the report becomes ready for helpdesk triage."""
    return await _review(db, actor, report_id, ReportStatus.APPROVED, APPROVABLE)


async def reject_report(
    db: AsyncSession, actor: AuthenticatedUser, report_id: uuid.UUID
) -> MaintenanceReport:
    """Landlord rejection of a pending report."""
    return await _review(db, actor, report_id, ReportStatus.REJECTED, REJECTABLE)


def _file_type_for(content_type: str | None, file_name: str) -> FileType:
    mime = content_type or mimetypes.guess_type(file_name)[0] or ""
    if mime.startswith("image/"):
        return FileType.IMAGE
    if mime.startswith("video/"):
        return FileType.VIDEO
    raise ValidationError("only image and video files are accepted", field="file")


def _extension_for(file_name: str, content_type: str | None) -> str:
    if "." in file_name:
        ext = file_name.rsplit(".", 1)[1].lower()
        if ext.isalnum():
            return ext
    guessed = mimetypes.guess_extension(content_type or "") or ".bin"
    return guessed.lstrip(".")


async def add_attachment(
    db: AsyncSession,
    actor: AuthenticatedUser,
    report_id: uuid.UUID,
    file_name: str,
    content_type: str | None,
    data: bytes,
    duration: float | None = None,
) -> Attachment:
    """Upload a photo or video and record it against the report.

    Each upload stands alone: a failure leaves the report and earlier
    attachments untouched.
    """
    report = await crud.get_report_by_id(db, report_id)
    if not report:
        raise ResourceNotFoundError("Report", report_id)
    require(actor, Action.UPLOAD_ATTACHMENT, report)

    file_type = _file_type_for(content_type, file_name)
    if not data:
        raise ValidationError("file is empty", field="file")
    if len(data) > settings.max_upload_bytes:
        raise ValidationError(
            f"file exceeds {settings.max_upload_bytes} bytes", field="file"
        )

    ext = _extension_for(file_name, content_type)
    path = f"{report_id}/{int(time.time() * 1000)}.{ext}"
    storage = get_storage()
    try:
        await bounded(asyncio.to_thread(storage.upload, data, path), "upload attachment")
    except OSError as e:
        logger.error("Attachment upload failed", extra={"path": path}, exc_info=True)
        raise ExternalServiceError("blob store", "upload") from e

    try:
        attachment = await crud.create_attachment(
            db,
            report_id=report_id,
            file_name=sanitize_string(file_name) or path,
            file_path=path,
            file_type=file_type,
            file_size=len(data),
            duration=duration,
        )
        await bounded(db.commit(), "record attachment")
    except Exception:
        # The blob has no row pointing at it
        await _discard_blob(storage, path)
        await db.rollback()
        raise
    return attachment


async def read_attachment(path: str) -> bytes:
    """Read a stored blob named by a verified signed URL."""
    storage = get_storage()
    try:
        return await bounded(asyncio.to_thread(storage.open, path), "read attachment")
    except FileNotFoundError as e:
        raise ResourceNotFoundError("File", path) from e
    except (OSError, ValueError) as e:
        raise ExternalServiceError("blob store", "read") from e
