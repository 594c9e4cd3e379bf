"""Identity models for PropCare.

A profile row is keyed by the identity's user id and carries the role that
every authorization decision is based on.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ...core.database_types import UUID as UUID_DB
from ...core.utils import utc_now
from ...database import Base, TimestampMixin, UUIDKeyed


class RoleSlug(str, enum.Enum):
    """Available actor roles."""

    TENANT = "tenant"
    LANDLORD = "landlord"
    HELPDESK = "helpdesk"
    CONTRACTOR = "contractor"


# Roles a person may pick for themselves at sign-up. Team roles are provisioned.
SELF_SERVICE_ROLES = frozenset({RoleSlug.TENANT, RoleSlug.LANDLORD})


class Profile(UUIDKeyed, TimestampMixin, Base):
    """Profile of an authenticated identity."""

    __tablename__ = "profiles"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[RoleSlug] = mapped_column(Enum(RoleSlug), nullable=False)
    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("ix_profiles_role", "role"),)

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email={self.email}, role={self.role})>"


class RefreshToken(UUIDKeyed, Base):
    """Refresh tokens for JWT authentication."""

    __tablename__ = "refresh_tokens"

    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID_DB(), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    token_hash: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    __table_args__ = (Index("ix_refresh_tokens_profile", "profile_id"),)

    @property
    def is_expired(self) -> bool:
        """Check if token is expired."""
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            # SQLite drops tzinfo; values are always stored as UTC
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) > expires_at

    @property
    def is_revoked(self) -> bool:
        """Check if token is revoked."""
        return self.revoked_at is not None

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, profile_id={self.profile_id})>"
