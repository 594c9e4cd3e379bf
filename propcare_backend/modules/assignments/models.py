"""Assignment models for PropCare.

Each maintenance report has at most one assignment record, reused for every
assignment cycle of that report. Contractor responses are an append-only
audit trail; final reports are one per (assignment, contractor).
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ...core.database_types import UUID as UUID_DB
from ...core.utils import utc_now
from ...database import Base, TimestampMixin, UUIDKeyed


class AssignmentStatus(str, enum.Enum):
    """Assignment states. See ``state_machine.TRANSITIONS`` for the allowed moves."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class ResponseDecision(str, enum.Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Assignment(UUIDKeyed, TimestampMixin, Base):
    """The helpdesk's assignment of a report to a contractor."""

    __tablename__ = "helpdesk_assignments"

    report_id: Mapped[uuid.UUID] = mapped_column(
        UUID_DB(),
        ForeignKey("maintenance_reports.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    contractor_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID_DB(), ForeignKey("contractors.id", ondelete="SET NULL"), nullable=True
    )
    landlord_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID_DB(), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[AssignmentStatus] = mapped_column(
        Enum(AssignmentStatus), nullable=False, default=AssignmentStatus.PENDING
    )
    assigned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    response_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reassignment_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    report = relationship("MaintenanceReport", lazy="joined")
    contractor = relationship("Contractor", lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "reassignment_count >= 0", name="ck_assignments_reassignment_count"
        ),
        Index("ix_assignments_contractor_status", "contractor_id", "status"),
        Index("ix_assignments_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Assignment(id={self.id}, status={self.status})>"


class ContractorResponse(UUIDKeyed, Base):
    """A contractor's accept/reject decision on an assignment."""

    __tablename__ = "contractor_responses"

    assignment_id: Mapped[uuid.UUID] = mapped_column(
        UUID_DB(),
        ForeignKey("helpdesk_assignments.id", ondelete="CASCADE"),
        nullable=False,
    )
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        UUID_DB(), ForeignKey("contractors.id", ondelete="CASCADE"), nullable=False
    )
    response: Mapped[ResponseDecision] = mapped_column(
        Enum(ResponseDecision), nullable=False
    )
    reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_contractor_responses_assignment", "assignment_id", "response"),
    )


class ContractorFinalReport(UUIDKeyed, TimestampMixin, Base):
    """The contractor's write-up of a finished job."""

    __tablename__ = "contractor_final_reports"

    assignment_id: Mapped[uuid.UUID] = mapped_column(
        UUID_DB(),
        ForeignKey("helpdesk_assignments.id", ondelete="CASCADE"),
        nullable=False,
    )
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        UUID_DB(), ForeignKey("contractors.id", ondelete="CASCADE"), nullable=False
    )
    report_text: Mapped[str] = mapped_column(Text, nullable=False)
    appliance_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    appliance_brand: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "assignment_id", "contractor_id", name="uq_final_report_assignment"
        ),
    )
