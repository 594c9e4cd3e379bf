"""Reference data for PropCare: properties and the contractor directory."""

import uuid

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ...core.database_types import UUID as UUID_DB
from ...database import Base, TimestampMixin, UUIDKeyed


class Property(UUIDKeyed, TimestampMixin, Base):
    """A property owned by a landlord profile."""

    __tablename__ = "properties"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID_DB(), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (Index("ix_properties_owner", "owner_id"),)

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, name={self.name})>"


class Contractor(UUIDKeyed, TimestampMixin, Base):
    """A contractor in the directory.

    ``profile_id`` links the entry to a contractor login; directory-only
    entries leave it empty.
    """

    __tablename__ = "contractors"

    profile_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID_DB(),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    services_provided: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("ix_contractors_full_name", "full_name"),)

    def __repr__(self) -> str:
        return f"<Contractor(id={self.id}, full_name={self.full_name})>"
