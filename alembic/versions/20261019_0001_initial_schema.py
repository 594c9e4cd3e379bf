"""Initial schema for PropCare Maintenance Ticketing

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for:
- Auth (profiles, refresh_tokens)
- Directory (properties, contractors)
- Maintenance (maintenance_reports, attachments)
- Assignments (helpdesk_assignments, contractor_responses, contractor_final_reports)

Enum columns hold the member names, matching SQLAlchemy's default Enum mapping.
"""
from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create all tables."""

    # =====================
    # AUTH TABLES
    # =====================

    # profiles - one row per identity, carries the role
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(128), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", sa.Enum("TENANT", "LANDLORD", "HELPDESK", "CONTRACTOR", name="roleslug"), nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_profiles_role", "profiles", ["role"])

    # refresh_tokens - hashed refresh tokens
    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("profile_id", sa.String(36), nullable=False),
        sa.Column("token_hash", sa.String(128), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["profile_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("token_hash"),
    )
    op.create_index("ix_refresh_tokens_profile", "refresh_tokens", ["profile_id"])

    # =====================
    # DIRECTORY TABLES
    # =====================

    op.create_table(
        "properties",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("owner_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["profiles.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_properties_owner", "properties", ["owner_id"])

    # contractors - directory entries, optionally linked to a login
    op.create_table(
        "contractors",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("profile_id", sa.String(36), nullable=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("services_provided", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["profile_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("profile_id"),
    )
    op.create_index("ix_contractors_full_name", "contractors", ["full_name"])

    # =====================
    # MAINTENANCE TABLES
    # =====================

    op.create_table(
        "maintenance_reports",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("property_id", sa.String(36), nullable=False),
        sa.Column("created_by", sa.String(36), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "category",
            sa.Enum(
                "PLUMBING", "ELECTRICAL", "HVAC", "APPLIANCES", "STRUCTURAL",
                "PEST", "SECURITY", "WINDOWS", "FLOORING", "OTHER",
                name="reportcategory",
            ),
            nullable=False,
        ),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("urgency", sa.Enum("LOW", "MEDIUM", "HIGH", "EMERGENCY", name="urgency"), nullable=False, server_default="MEDIUM"),
        sa.Column("status", sa.Enum("PENDING", "APPROVED", "REJECTED", "WORKING", "FIXED", name="reportstatus"), nullable=False, server_default="PENDING"),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("formatted_address", sa.String(500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_maintenance_reports_property", "maintenance_reports", ["property_id"])
    op.create_index("ix_maintenance_reports_created_by", "maintenance_reports", ["created_by"])
    op.create_index("ix_maintenance_reports_status", "maintenance_reports", ["status"])

    op.create_table(
        "attachments",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("report_id", sa.String(36), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("file_type", sa.Enum("IMAGE", "VIDEO", name="filetype"), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("duration", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["report_id"], ["maintenance_reports.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_attachments_report", "attachments", ["report_id"])

    # =====================
    # ASSIGNMENT TABLES
    # =====================

    # helpdesk_assignments - one row per report, reused across assignment cycles
    op.create_table(
        "helpdesk_assignments",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("report_id", sa.String(36), nullable=False),
        sa.Column("contractor_id", sa.String(36), nullable=True),
        sa.Column("landlord_id", sa.String(36), nullable=True),
        sa.Column(
            "status",
            sa.Enum("PENDING", "ASSIGNED", "ACCEPTED", "REJECTED", "COMPLETED", name="assignmentstatus"),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("response_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reassignment_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["report_id"], ["maintenance_reports.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["contractor_id"], ["contractors.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["landlord_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("report_id"),
        sa.CheckConstraint("reassignment_count >= 0", name="ck_assignments_reassignment_count"),
    )
    op.create_index("ix_assignments_contractor_status", "helpdesk_assignments", ["contractor_id", "status"])
    op.create_index("ix_assignments_status", "helpdesk_assignments", ["status"])

    # contractor_responses - append-only accept/reject trail
    op.create_table(
        "contractor_responses",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("assignment_id", sa.String(36), nullable=False),
        sa.Column("contractor_id", sa.String(36), nullable=False),
        sa.Column("response", sa.Enum("ACCEPTED", "REJECTED", name="responsedecision"), nullable=False),
        sa.Column("reason", sa.String(1000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["assignment_id"], ["helpdesk_assignments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["contractor_id"], ["contractors.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_contractor_responses_assignment", "contractor_responses", ["assignment_id", "response"])

    op.create_table(
        "contractor_final_reports",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("assignment_id", sa.String(36), nullable=False),
        sa.Column("contractor_id", sa.String(36), nullable=False),
        sa.Column("report_text", sa.Text(), nullable=False),
        sa.Column("appliance_name", sa.String(255), nullable=True),
        sa.Column("appliance_brand", sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["assignment_id"], ["helpdesk_assignments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["contractor_id"], ["contractors.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("assignment_id", "contractor_id", name="uq_final_report_assignment"),
    )


def downgrade() -> None:
    """Drop all tables in reverse order."""

    # Drop assignment tables
    op.drop_table("contractor_final_reports")
    op.drop_table("contractor_responses")
    op.drop_table("helpdesk_assignments")

    # Drop maintenance tables
    op.drop_table("attachments")
    op.drop_table("maintenance_reports")

    # Drop directory tables
    op.drop_table("contractors")
    op.drop_table("properties")

    # Drop auth tables
    op.drop_table("refresh_tokens")
    op.drop_table("profiles")
