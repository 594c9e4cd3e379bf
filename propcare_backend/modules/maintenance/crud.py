"""CRUD operations for maintenance reports and attachments."""

import uuid
from collections.abc import Iterable

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.utils import bounded
from ..directory.models import Property
from .models import (
    Attachment,
    FileType,
    MaintenanceReport,
    ReportCategory,
    ReportStatus,
)

# ----- Report CRUD -----


async def get_report_by_id(
    db: AsyncSession, report_id: uuid.UUID
) -> MaintenanceReport | None:
    """Get a report by ID, always reflecting the stored row."""
    result = await bounded(
        db.execute(
            select(MaintenanceReport)
            .where(MaintenanceReport.id == report_id)
            .execution_options(populate_existing=True)
        ),
        "load report",
    )
    return result.unique().scalar_one_or_none()


def _report_filters(
    created_by: uuid.UUID | None = None,
    owner_id: uuid.UUID | None = None,
    property_id: uuid.UUID | None = None,
    status: ReportStatus | None = None,
    category: ReportCategory | None = None,
    search: str | None = None,
) -> list:
    filters = []
    if created_by:
        filters.append(MaintenanceReport.created_by == created_by)
    if owner_id:
        filters.append(
            MaintenanceReport.property_id.in_(
                select(Property.id).where(Property.owner_id == owner_id)
            )
        )
    if property_id:
        filters.append(MaintenanceReport.property_id == property_id)
    if status:
        filters.append(MaintenanceReport.status == status)
    if category:
        filters.append(MaintenanceReport.category == category)
    if search:
        search_filter = f"%{search}%"
        filters.append(
            MaintenanceReport.title.ilike(search_filter)
            | MaintenanceReport.description.ilike(search_filter)
            | MaintenanceReport.location.ilike(search_filter)
        )
    return filters


async def get_reports(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 100,
    **filter_kwargs,
) -> tuple[list[MaintenanceReport], int]:
    """Get reports with filtering and pagination, newest first."""
    filters = _report_filters(**filter_kwargs)

    total_result = await bounded(
        db.execute(select(func.count(MaintenanceReport.id)).where(*filters)),
        "count reports",
    )
    total = total_result.scalar_one()

    data_query = (
        select(MaintenanceReport)
        .where(*filters)
        .order_by(MaintenanceReport.created_at.desc(), MaintenanceReport.id)
        .offset(skip)
        .limit(limit)
    )
    result = await bounded(db.execute(data_query), "list reports")
    return list(result.unique().scalars().all()), total


async def get_all_reports(db: AsyncSession, **filter_kwargs) -> list[MaintenanceReport]:
    """Get every report matching the filters (used for summaries)."""
    result = await bounded(
        db.execute(select(MaintenanceReport).where(*_report_filters(**filter_kwargs))),
        "list reports",
    )
    return list(result.unique().scalars().all())


async def create_report(db: AsyncSession, **kwargs) -> MaintenanceReport:
    """Create a new pending report."""
    report = MaintenanceReport(status=ReportStatus.PENDING, **kwargs)
    db.add(report)
    await bounded(db.flush(), "create report")
    return report


async def set_report_status(
    db: AsyncSession,
    report_id: uuid.UUID,
    target: ReportStatus,
    sources: Iterable[ReportStatus],
) -> int:
    """Conditionally move a report to ``target``. Returns the rows changed."""
    result = await bounded(
        db.execute(
            update(MaintenanceReport)
            .where(
                MaintenanceReport.id == report_id,
                MaintenanceReport.status.in_(list(sources)),
            )
            .values(status=target)
            .execution_options(synchronize_session=False)
        ),
        "update report status",
    )
    return result.rowcount


async def delete_report(db: AsyncSession, report: MaintenanceReport) -> None:
    await bounded(db.delete(report), "delete report")
    await bounded(db.flush(), "delete report")


# ----- Attachment CRUD -----


async def create_attachment(
    db: AsyncSession,
    report_id: uuid.UUID,
    file_name: str,
    file_path: str,
    file_type: FileType,
    file_size: int,
    duration: float | None = None,
) -> Attachment:
    """Record an uploaded attachment."""
    attachment = Attachment(
        report_id=report_id,
        file_name=file_name,
        file_path=file_path,
        file_type=file_type,
        file_size=file_size,
        duration=duration,
    )
    db.add(attachment)
    await bounded(db.flush(), "create attachment")
    return attachment
