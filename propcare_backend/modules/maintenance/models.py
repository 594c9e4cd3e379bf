"""Maintenance report models for PropCare.

A report is filed by a tenant against a property, reviewed by the property's
landlord and, once a contractor takes the job, worked on and fixed. Its
creator and property never change after creation.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ...core.database_types import UUID as UUID_DB
from ...core.utils import utc_now
from ...database import Base, TimestampMixin, UUIDKeyed


class ReportCategory(str, enum.Enum):
    """Kinds of maintenance problem."""

    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    HVAC = "hvac"
    APPLIANCES = "appliances"
    STRUCTURAL = "structural"
    PEST = "pest"
    SECURITY = "security"
    WINDOWS = "windows"
    FLOORING = "flooring"
    OTHER = "other"


class Urgency(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"


class ReportStatus(str, enum.Enum):
    """Report lifecycle.

    pending -> approved | rejected (landlord review)
    rejected -> approved (landlord reconsiders)
    pending | approved -> working (contractor accepted)
    working -> fixed (final report submitted)
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    WORKING = "working"
    FIXED = "fixed"


class FileType(str, enum.Enum):
    IMAGE = "image"
    VIDEO = "video"


class MaintenanceReport(UUIDKeyed, TimestampMixin, Base):
    """A tenant's maintenance request."""

    __tablename__ = "maintenance_reports"

    property_id: Mapped[uuid.UUID] = mapped_column(
        UUID_DB(), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID_DB(), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[ReportCategory] = mapped_column(
        Enum(ReportCategory), nullable=False
    )
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    urgency: Mapped[Urgency] = mapped_column(
        Enum(Urgency), nullable=False, default=Urgency.MEDIUM
    )
    status: Mapped[ReportStatus] = mapped_column(
        Enum(ReportStatus), nullable=False, default=ReportStatus.PENDING
    )

    # Geolocation is stored exactly as submitted
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    formatted_address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    property = relationship("Property", lazy="joined")
    attachments = relationship(
        "Attachment",
        back_populates="report",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Attachment.created_at",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_maintenance_reports_property", "property_id"),
        Index("ix_maintenance_reports_created_by", "created_by"),
        Index("ix_maintenance_reports_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<MaintenanceReport(id={self.id}, status={self.status})>"


class Attachment(UUIDKeyed, Base):
    """A photo or video attached to a report."""

    __tablename__ = "attachments"

    report_id: Mapped[uuid.UUID] = mapped_column(
        UUID_DB(),
        ForeignKey("maintenance_reports.id", ondelete="CASCADE"),
        nullable=False,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_type: Mapped[FileType] = mapped_column(Enum(FileType), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )

    report = relationship("MaintenanceReport", back_populates="attachments")

    __table_args__ = (Index("ix_attachments_report", "report_id"),)
