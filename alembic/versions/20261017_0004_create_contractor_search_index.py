"""create contractor_search_index table

Revision ID: 20261017_0004
Revises: 20261017_0003
Create Date: 2026-10-17 10:30:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0004"
down_revision = "20261017_0003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "contractor_search_index",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("entity_uei", sa.String(length=32), nullable=False),
        sa.Column("entity_type", sa.String(length=32), nullable=False),
        sa.Column("searchable_name", sa.String(length=512), nullable=True),
        sa.Column("display_name", sa.String(length=512), nullable=True),
        sa.Column("alternate_names", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("search_vector", sa.Text(), nullable=True),
        sa.Column("search_tags", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("search_keywords", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("primary_industry", sa.String(length=255), nullable=True),
        sa.Column("primary_agency", sa.String(length=255), nullable=True),
        sa.Column("location", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("relevance_score", sa.Integer(), nullable=True),
        sa.Column("activity_score", sa.Integer(), nullable=True),
        sa.Column("revenue_rank", sa.Integer(), nullable=True),
        sa.Column("summary", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_indexed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("entity_uei", "entity_type", name="uq_contractor_search_index_uei_type"),
    )
    op.create_index(
        "ix_contractor_search_index_searchable_name",
        "contractor_search_index",
        ["searchable_name"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_contractor_search_index_searchable_name", table_name="contractor_search_index")
    op.drop_table("contractor_search_index")
