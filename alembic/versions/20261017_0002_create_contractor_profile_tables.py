"""create contractor profile tables

Revision ID: 20261017_0002
Revises: 20261017_0001
Create Date: 2026-10-17 09:30:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0002"
down_revision = "20261017_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "contractor_profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("canonical_name", sa.String(length=512), nullable=False),
        sa.Column("display_name", sa.String(length=512), nullable=False),
        sa.Column("total_ueis", sa.Integer(), nullable=False),
        sa.Column("total_contracts", sa.Integer(), nullable=False),
        sa.Column("total_obligated", sa.Numeric(24, 2), nullable=False),
        sa.Column("avg_contract_value", sa.Numeric(24, 2), nullable=False),
        sa.Column("primary_agency", sa.String(length=255), nullable=True),
        sa.Column("total_agencies", sa.Integer(), nullable=False),
        sa.Column("agency_diversity", sa.Integer(), nullable=False),
        sa.Column("headquarters_state", sa.String(length=64), nullable=True),
        sa.Column("total_states", sa.Integer(), nullable=False),
        sa.Column("primary_naics", sa.String(length=16), nullable=True),
        sa.Column("primary_naics_description", sa.String(length=512), nullable=True),
        sa.Column("industry_cluster", sa.String(length=128), nullable=True),
        sa.Column("size_tier", sa.String(length=64), nullable=True),
        sa.Column("lifecycle_stage", sa.String(length=64), nullable=True),
        sa.Column("performance_score", sa.Integer(), nullable=False),
        sa.Column("risk_score", sa.Integer(), nullable=False),
        sa.Column("growth_trend", sa.String(length=16), nullable=False),
        sa.Column("data_completeness_score", sa.Integer(), nullable=False),
        sa.Column("agencies", postgresql.ARRAY(sa.Text()), nullable=False),
        sa.Column("states", postgresql.ARRAY(sa.Text()), nullable=False),
        sa.Column("first_seen_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_active_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("profile_metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("canonical_name", name="uq_contractor_profiles_canonical_name"),
    )
    op.create_index(
        "ix_contractor_profiles_total_obligated",
        "contractor_profiles",
        ["total_obligated"],
        unique=False,
    )
    op.create_index("ix_contractor_profiles_is_active", "contractor_profiles", ["is_active"], unique=False)

    op.create_table(
        "contractor_uei_mappings",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("uei", sa.String(length=32), nullable=False),
        sa.Column("profile_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("confidence_score", sa.Integer(), nullable=False),
        sa.Column("mapping_method", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["profile_id"], ["contractor_profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("uei", name="uq_contractor_uei_mappings_uei"),
    )
    op.create_index(
        "ix_contractor_uei_mappings_profile_id",
        "contractor_uei_mappings",
        ["profile_id"],
        unique=False,
    )

    op.create_table(
        "contractor_agency_relationships",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("profile_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("agency", sa.String(length=255), nullable=False),
        sa.Column("total_obligated", sa.Numeric(24, 2), nullable=False),
        sa.Column("contract_count", sa.Integer(), nullable=False),
        sa.Column("uei_count", sa.Integer(), nullable=False),
        sa.Column("relationship_strength", sa.String(length=16), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["profile_id"], ["contractor_profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "profile_id",
            "agency",
            name="uq_contractor_agency_relationships_profile_agency",
        ),
    )

    op.create_table(
        "contractor_profile_stats",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("run_started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("run_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("profiles_created", sa.Integer(), nullable=False),
        sa.Column("ueis_mapped", sa.Integer(), nullable=False),
        sa.Column("profiles_deactivated", sa.Integer(), nullable=False),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("error_count", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_contractor_profile_stats_run_started_at",
        "contractor_profile_stats",
        ["run_started_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_contractor_profile_stats_run_started_at", table_name="contractor_profile_stats")
    op.drop_table("contractor_profile_stats")
    op.drop_table("contractor_agency_relationships")
    op.drop_index("ix_contractor_uei_mappings_profile_id", table_name="contractor_uei_mappings")
    op.drop_table("contractor_uei_mappings")
    op.drop_index("ix_contractor_profiles_is_active", table_name="contractor_profiles")
    op.drop_index("ix_contractor_profiles_total_obligated", table_name="contractor_profiles")
    op.drop_table("contractor_profiles")
