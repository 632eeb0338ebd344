"""create contractor ETL destination tables and run log

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def _id_column() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False)


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _money(name: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(20, 6), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "contractor_universe",
        _id_column(),
        sa.Column("uei", sa.String(length=32), nullable=False),
        sa.Column("legal_business_name", sa.String(length=512), nullable=True),
        sa.Column("registration_status", sa.String(length=32), nullable=False),
        sa.Column("last_updated_date", sa.Date(), nullable=True),
        sa.Column("entity_type", sa.String(length=32), nullable=True),
        _money("lifetime_revenue"),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_prime", sa.Boolean(), nullable=False),
        sa.Column("is_subcontractor", sa.Boolean(), nullable=False),
        sa.Column("is_hybrid", sa.Boolean(), nullable=False),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("uei", name="uq_contractor_universe_uei"),
    )
    op.create_index("ix_contractor_universe_entity_type", "contractor_universe", ["entity_type"], unique=False)
    op.create_index("ix_contractor_universe_is_active", "contractor_universe", ["is_active"], unique=False)

    op.create_table(
        "contractor_metrics_monthly",
        _id_column(),
        sa.Column("contractor_uei", sa.String(length=32), nullable=False),
        sa.Column("contractor_name", sa.String(length=512), nullable=True),
        sa.Column("month_year", sa.Date(), nullable=False),
        _money("monthly_revenue"),
        _money("monthly_awards"),
        sa.Column("monthly_contracts", sa.Integer(), nullable=False),
        sa.Column("active_contracts", sa.Integer(), nullable=False),
        _money("avg_contract_value"),
        sa.Column("revenue_growth_yoy", sa.Numeric(12, 4), nullable=True),
        sa.Column("activity_status", sa.String(length=64), nullable=True),
        sa.Column("days_inactive", sa.Integer(), nullable=True),
        _money("pipeline_value"),
        sa.Column("primary_agency", sa.String(length=255), nullable=True),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contractor_uei", "month_year", name="uq_contractor_metrics_monthly_uei_month"),
    )
    op.create_index(
        "ix_contractor_metrics_monthly_month_year",
        "contractor_metrics_monthly",
        ["month_year"],
        unique=False,
    )

    op.create_table(
        "peer_comparisons_monthly",
        _id_column(),
        sa.Column("contractor_uei", sa.String(length=32), nullable=False),
        sa.Column("contractor_name", sa.String(length=512), nullable=True),
        sa.Column("month_year", sa.Date(), nullable=False),
        sa.Column("peer_group", sa.String(length=64), nullable=False),
        sa.Column("peer_group_size", sa.Integer(), nullable=True),
        sa.Column("revenue_percentile", sa.Integer(), nullable=False),
        sa.Column("revenue_rank", sa.Integer(), nullable=True),
        sa.Column("revenue_quartile", sa.Integer(), nullable=True),
        sa.Column("growth_percentile", sa.Integer(), nullable=False),
        sa.Column("growth_rank", sa.Integer(), nullable=True),
        sa.Column("overall_performance_score", sa.Integer(), nullable=True),
        sa.Column("competitive_positioning", sa.String(length=64), nullable=True),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("imported_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "contractor_uei",
            "peer_group",
            "month_year",
            name="uq_peer_comparisons_monthly_uei_group_month",
        ),
    )
    op.create_index("ix_peer_comparisons_monthly_uei", "peer_comparisons_monthly", ["contractor_uei"], unique=False)

    op.create_table(
        "portfolio_breakdowns_monthly",
        _id_column(),
        sa.Column("contractor_uei", sa.String(length=32), nullable=False),
        sa.Column("contractor_name", sa.String(length=512), nullable=True),
        sa.Column("month_year", sa.Date(), nullable=False),
        sa.Column("top_agencies", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("agency_hhi", sa.Numeric(10, 6), nullable=False),
        sa.Column("agency_count", sa.Integer(), nullable=False),
        _money("primary_agency_revenue"),
        sa.Column("primary_agency_percentage", sa.Numeric(7, 2), nullable=False),
        sa.Column("top_naics", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("naics_hhi", sa.Numeric(10, 6), nullable=False),
        sa.Column("naics_count", sa.Integer(), nullable=False),
        _money("primary_naics_revenue"),
        sa.Column("primary_naics_percentage", sa.Numeric(7, 2), nullable=False),
        sa.Column("top_psc", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("psc_hhi", sa.Numeric(10, 6), nullable=False),
        sa.Column("psc_count", sa.Integer(), nullable=False),
        sa.Column("concentration_risk_score", sa.Integer(), nullable=False),
        sa.Column("diversification_score", sa.Integer(), nullable=False),
        sa.Column("portfolio_stability", sa.String(length=32), nullable=False),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("imported_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contractor_uei", "month_year", name="uq_portfolio_breakdowns_monthly_uei_month"),
    )
    op.create_index(
        "ix_portfolio_breakdowns_monthly_uei",
        "portfolio_breakdowns_monthly",
        ["contractor_uei"],
        unique=False,
    )

    op.create_table(
        "subcontractor_metrics_monthly",
        _id_column(),
        sa.Column("subcontractor_uei", sa.String(length=32), nullable=False),
        sa.Column("subcontractor_name", sa.String(length=512), nullable=True),
        sa.Column("month_year", sa.Date(), nullable=False),
        _money("monthly_subcontract_revenue"),
        sa.Column("monthly_subcontracts", sa.Integer(), nullable=False),
        sa.Column("active_subcontracts", sa.Integer(), nullable=False),
        sa.Column("sub_revenue_growth_yoy", sa.Numeric(12, 4), nullable=True),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "subcontractor_uei",
            "month_year",
            name="uq_subcontractor_metrics_monthly_uei_month",
        ),
    )
    op.create_index(
        "ix_subcontractor_metrics_monthly_month_year",
        "subcontractor_metrics_monthly",
        ["month_year"],
        unique=False,
    )

    op.create_table(
        "contractor_network_metrics",
        _id_column(),
        sa.Column("prime_uei", sa.String(length=32), nullable=False),
        sa.Column("prime_name", sa.String(length=512), nullable=True),
        sa.Column("sub_uei", sa.String(length=32), nullable=False),
        sa.Column("sub_name", sa.String(length=512), nullable=True),
        sa.Column("month_year", sa.Date(), nullable=False),
        _money("monthly_shared_revenue"),
        sa.Column("relationship_strength_score", sa.Integer(), nullable=True),
        sa.Column("collaboration_frequency", sa.String(length=32), nullable=True),
        sa.Column("prime_network_size", sa.Integer(), nullable=True),
        sa.Column("exclusivity_score", sa.Numeric(7, 4), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "prime_uei",
            "sub_uei",
            "month_year",
            name="uq_contractor_network_metrics_prime_sub_month",
        ),
    )
    op.create_index("ix_contractor_network_metrics_sub_uei", "contractor_network_metrics", ["sub_uei"], unique=False)

    op.create_table(
        "contractor_iceberg_opportunities",
        _id_column(),
        sa.Column("contractor_uei", sa.String(length=32), nullable=False),
        sa.Column("contractor_name", sa.String(length=512), nullable=True),
        _money("prime_revenue"),
        _money("subcontractor_revenue"),
        _money("total_revenue"),
        sa.Column("sub_to_prime_ratio", sa.Numeric(24, 4), nullable=True),
        sa.Column("hidden_revenue_percentage", sa.Numeric(7, 2), nullable=False),
        sa.Column("iceberg_score", sa.Integer(), nullable=False),
        sa.Column("opportunity_tier", sa.String(length=16), nullable=False),
        _money("potential_prime_value"),
        sa.Column("competitive_advantages", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("risk_factors", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("scale_tier", sa.String(length=64), nullable=True),
        sa.Column("entity_type", sa.String(length=32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("analysis_date", sa.Date(), server_default=sa.text("CURRENT_DATE"), nullable=False),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contractor_uei", name="uq_contractor_iceberg_opportunities_uei"),
    )
    op.create_index(
        "ix_contractor_iceberg_opportunities_score",
        "contractor_iceberg_opportunities",
        ["iceberg_score"],
        unique=False,
    )
    op.create_index(
        "ix_contractor_iceberg_opportunities_tier",
        "contractor_iceberg_opportunities",
        ["opportunity_tier"],
        unique=False,
    )

    op.create_table(
        "contractors_cache",
        _id_column(),
        sa.Column("contractor_uei", sa.String(length=32), nullable=False),
        sa.Column("contractor_name", sa.String(length=512), nullable=False),
        sa.Column("primary_agency", sa.String(length=255), nullable=True),
        sa.Column("primary_sub_agency_code", sa.String(length=32), nullable=True),
        sa.Column("country", sa.String(length=64), nullable=True),
        sa.Column("state", sa.String(length=64), nullable=True),
        sa.Column("city", sa.String(length=128), nullable=True),
        sa.Column("zip_code", sa.String(length=16), nullable=True),
        sa.Column("primary_naics_code", sa.String(length=16), nullable=True),
        sa.Column("primary_naics_description", sa.String(length=512), nullable=True),
        sa.Column("industry_cluster", sa.String(length=128), nullable=True),
        sa.Column("lifecycle_stage", sa.String(length=64), nullable=True),
        sa.Column("size_tier", sa.String(length=64), nullable=True),
        sa.Column("size_quartile", sa.Integer(), nullable=True),
        sa.Column("peer_group_refined", sa.String(length=128), nullable=True),
        sa.Column("total_contracts", sa.Integer(), nullable=False),
        sa.Column("total_obligated", sa.Numeric(24, 2), nullable=False),
        sa.Column("agency_diversity", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("source_last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cache_created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("cache_updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contractor_uei", name="uq_contractors_cache_uei"),
    )
    op.create_index("ix_contractors_cache_name", "contractors_cache", ["contractor_name"], unique=False)

    op.create_table(
        "contractor_etl_metadata",
        _id_column(),
        sa.Column("table_name", sa.String(length=128), nullable=False),
        sa.Column("source_file", sa.Text(), nullable=True),
        sa.Column("records_processed", sa.Integer(), nullable=False),
        sa.Column("records_inserted", sa.Integer(), nullable=False),
        sa.Column("records_updated", sa.Integer(), nullable=False),
        sa.Column("records_skipped", sa.Integer(), nullable=False),
        sa.Column("records_failed", sa.Integer(), nullable=False),
        sa.Column("load_start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("load_end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("load_duration_ms", sa.Integer(), nullable=True),
        sa.Column("load_status", sa.String(length=32), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("data_quality_checks", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("loaded_by", sa.String(length=64), nullable=False),
        sa.Column("load_type", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contractor_etl_metadata_table_name", "contractor_etl_metadata", ["table_name"], unique=False)
    op.create_index("ix_contractor_etl_metadata_load_status", "contractor_etl_metadata", ["load_status"], unique=False)
    op.create_index("ix_contractor_etl_metadata_created_at", "contractor_etl_metadata", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_contractor_etl_metadata_created_at", table_name="contractor_etl_metadata")
    op.drop_index("ix_contractor_etl_metadata_load_status", table_name="contractor_etl_metadata")
    op.drop_index("ix_contractor_etl_metadata_table_name", table_name="contractor_etl_metadata")
    op.drop_table("contractor_etl_metadata")
    op.drop_index("ix_contractors_cache_name", table_name="contractors_cache")
    op.drop_table("contractors_cache")
    op.drop_index("ix_contractor_iceberg_opportunities_tier", table_name="contractor_iceberg_opportunities")
    op.drop_index("ix_contractor_iceberg_opportunities_score", table_name="contractor_iceberg_opportunities")
    op.drop_table("contractor_iceberg_opportunities")
    op.drop_index("ix_contractor_network_metrics_sub_uei", table_name="contractor_network_metrics")
    op.drop_table("contractor_network_metrics")
    op.drop_index("ix_subcontractor_metrics_monthly_month_year", table_name="subcontractor_metrics_monthly")
    op.drop_table("subcontractor_metrics_monthly")
    op.drop_index("ix_portfolio_breakdowns_monthly_uei", table_name="portfolio_breakdowns_monthly")
    op.drop_table("portfolio_breakdowns_monthly")
    op.drop_index("ix_peer_comparisons_monthly_uei", table_name="peer_comparisons_monthly")
    op.drop_table("peer_comparisons_monthly")
    op.drop_index("ix_contractor_metrics_monthly_month_year", table_name="contractor_metrics_monthly")
    op.drop_table("contractor_metrics_monthly")
    op.drop_index("ix_contractor_universe_is_active", table_name="contractor_universe")
    op.drop_index("ix_contractor_universe_entity_type", table_name="contractor_universe")
    op.drop_table("contractor_universe")
