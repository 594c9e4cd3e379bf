"""Maintenance report module for PropCare."""

from .models import (
    Attachment,
    FileType,
    MaintenanceReport,
    ReportCategory,
    ReportStatus,
    Urgency,
)
from .routers import files_router, router

__all__ = [
    # Models
    "MaintenanceReport",
    "Attachment",
    # Enums
    "ReportCategory",
    "ReportStatus",
    "Urgency",
    "FileType",
    # Routers
    "router",
    "files_router",
]
