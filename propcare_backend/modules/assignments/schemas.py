"""Assignment schemas for PropCare."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from ..maintenance.models import ReportCategory, ReportStatus, Urgency
from .models import AssignmentStatus, ResponseDecision

# ----- Requests -----


class AssignRequest(BaseModel):
    """Schema for (re)assigning a report to a contractor."""

    contractor_id: UUID


class RespondRequest(BaseModel):
    """A contractor's decision on an assignment."""

    decision: ResponseDecision
    reason: str | None = Field(None, max_length=1000)


class FinalReportRequest(BaseModel):
    """Contractor write-up. Blank text is rejected by the service."""

    report_text: str = Field(..., max_length=20000)
    appliance_name: str | None = Field(None, max_length=255)
    appliance_brand: str | None = Field(None, max_length=255)


# ----- Responses -----


class AssignmentReportInfo(BaseModel):
    """The report an assignment is about."""

    id: UUID
    property_id: UUID
    property_name: str | None = None
    property_address: str | None = None
    title: str
    description: str
    category: ReportCategory
    location: str | None = None
    urgency: Urgency
    status: ReportStatus
    created_at: datetime


class AssignmentContractorInfo(BaseModel):
    id: UUID
    full_name: str
    email: str | None = None
    phone: str | None = None

    class Config:
        from_attributes = True


class AssignmentResponse(BaseModel):
    """Schema for assignment response."""

    id: UUID
    report_id: UUID
    contractor_id: UUID | None = None
    landlord_id: UUID | None = None
    status: AssignmentStatus
    assigned_at: datetime | None = None
    response_at: datetime | None = None
    reassignment_count: int
    created_at: datetime
    updated_at: datetime
    report: AssignmentReportInfo | None = None
    contractor: AssignmentContractorInfo | None = None


class ContractorBuckets(BaseModel):
    """A contractor's dashboard."""

    pending: list[AssignmentResponse] = Field(
        default_factory=list, description="Awaiting the contractor's response"
    )
    active: list[AssignmentResponse] = Field(
        default_factory=list, description="Accepted and in progress"
    )
    history: list[AssignmentResponse] = Field(
        default_factory=list, description="Rejected or completed"
    )


class ResponseRecord(BaseModel):
    """One entry of the contractor response audit trail."""

    id: UUID
    assignment_id: UUID
    contractor_id: UUID
    response: ResponseDecision
    reason: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class RejectionsResponse(BaseModel):
    """Contractors who already turned this job down."""

    assignment_id: UUID
    contractor_ids: list[UUID] = Field(default_factory=list)


class FinalReportResponse(BaseModel):
    """Schema for final report response."""

    id: UUID
    assignment_id: UUID
    contractor_id: UUID
    report_text: str
    appliance_name: str | None = None
    appliance_brand: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
