"""Maintenance report schemas for PropCare."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from ..assignments.models import AssignmentStatus
from .models import FileType, ReportCategory, ReportStatus, Urgency

# ----- Report Schemas -----


class ReportCreate(BaseModel):
    """Schema for filing a report. The creator is the acting tenant."""

    property_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: ReportCategory
    location: str | None = Field(None, max_length=255)
    urgency: Urgency = Urgency.MEDIUM
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    formatted_address: str | None = Field(None, max_length=500)

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class AttachmentResponse(BaseModel):
    """Attachment with a time-limited download URL."""

    id: UUID
    file_name: str
    file_path: str
    file_type: FileType
    file_size: int
    duration: float | None = None
    created_at: datetime
    url: str | None = None

    class Config:
        from_attributes = True


class ReportResponse(BaseModel):
    """Schema for report response."""

    id: UUID
    property_id: UUID
    property_name: str | None = None
    created_by: UUID
    title: str
    description: str
    category: ReportCategory
    location: str | None = None
    urgency: Urgency
    status: ReportStatus
    landlord_status: ReportStatus
    assignment_status: AssignmentStatus | None = None
    latitude: float | None = None
    longitude: float | None = None
    formatted_address: str | None = None
    created_at: datetime
    updated_at: datetime
    attachments: list[AttachmentResponse] = Field(default_factory=list)


class ReportSummary(BaseModel):
    """Report counts by landlord-facing status."""

    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    working: int = 0
    fixed: int = 0
