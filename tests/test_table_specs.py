"""
tests/test_table_specs.py

Row transforms for each destination table. No database involved.
"""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal

import pytest

from etl.errors import UnknownTableError
from etl.specs import (
    CONTRACTOR_CACHE,
    HYBRID_ENTITIES,
    ICEBERG_OPPORTUNITIES,
    MONTHLY_METRICS,
    NETWORK_METRICS,
    PEER_COMPARISONS,
    PORTFOLIO_BREAKDOWNS,
    SEARCH_INDEX,
    TABLE_SPECS,
    UNIVERSE,
    get_table_spec,
    resolve_table_specs,
)


# ---------------------------------------------------------------------------
# Universe / hybrid
# ---------------------------------------------------------------------------


def test_universe_row_maps_flags_and_status() -> None:
    record = UNIVERSE.transform(
        {
            "RECIPIENT_UEI": "ABC123DEF456",
            "RECIPIENT_NAME": "Acme Widgets Inc",
            "ENTITY_TYPE": "hybrid",
            "TOTAL_REVENUE_LIFETIME_MILLIONS": "12.5",
            "HAS_PRIME_ACTIVITY": "true",
            "HAS_SUB_ACTIVITY": "false",
            "DATA_QUALITY_FLAG": "REVENUE_ANOMALY",
            "LAST_UPDATED": "2024-05-01",
        }
    )

    assert record is not None
    assert record["uei"] == "ABC123DEF456"
    assert record["lifetime_revenue"] == Decimal("12.5")
    assert record["registration_status"] == "needs_review"
    assert record["is_active"] is True
    assert record["is_hybrid"] is True
    assert record["last_updated_date"] == date(2024, 5, 1)


def test_universe_row_without_activity_is_inactive() -> None:
    record = UNIVERSE.transform(
        {"RECIPIENT_UEI": "U1", "HAS_PRIME_ACTIVITY": "\\N", "HAS_SUB_ACTIVITY": "0"}
    )
    assert record is not None
    assert record["is_active"] is False
    assert record["registration_status"] == "active"


def test_universe_row_without_uei_is_skipped() -> None:
    assert UNIVERSE.transform({"RECIPIENT_UEI": "\\N", "RECIPIENT_NAME": "x"}) is None


def test_hybrid_entities_force_hybrid_flags_and_narrow_updates() -> None:
    record = HYBRID_ENTITIES.transform(
        {"RECIPIENT_UEI": "U1", "RECIPIENT_NAME": "Hybrid Co", "TOTAL_REVENUE_LIFETIME_MILLIONS": "3"}
    )
    assert record is not None
    assert record["entity_type"] == "HYBRID"
    assert record["is_prime"] and record["is_subcontractor"] and record["is_hybrid"]

    update_fields = HYBRID_ENTITIES.conflict_update_fields(list(record))
    assert "legal_business_name" not in update_fields
    assert "uei" not in update_fields
    assert "is_hybrid" in update_fields


def test_default_update_fields_exclude_natural_key() -> None:
    fields = MONTHLY_METRICS.conflict_update_fields(["contractor_uei", "month_year", "monthly_revenue"])
    assert fields == ["monthly_revenue"]


# ---------------------------------------------------------------------------
# Monthly metrics / peers / network
# ---------------------------------------------------------------------------


def test_monthly_metrics_avg_contract_value_from_ttm_revenue() -> None:
    record = MONTHLY_METRICS.transform(
        {
            "RECIPIENT_UEI": "U1",
            "SNAPSHOT_MONTH": "2024-06-01",
            "REVENUE_TTM_MILLIONS": "10",
            "ACTIVE_CONTRACT_COUNT": "4",
        }
    )
    assert record is not None
    assert record["avg_contract_value"] == 2.5
    assert record["monthly_contracts"] == 4


def test_monthly_metrics_zero_contracts_average_is_zero() -> None:
    record = MONTHLY_METRICS.transform(
        {"RECIPIENT_UEI": "U1", "SNAPSHOT_MONTH": "2024-06-01", "REVENUE_TTM_MILLIONS": "10"}
    )
    assert record is not None
    assert record["avg_contract_value"] == 0.0


def test_monthly_metrics_requires_month() -> None:
    assert MONTHLY_METRICS.transform({"RECIPIENT_UEI": "U1", "SNAPSHOT_MONTH": ""}) is None


def test_peer_scores_become_percentiles_and_group_defaults() -> None:
    record = PEER_COMPARISONS.transform(
        {
            "RECIPIENT_UEI": "U1",
            "SNAPSHOT_MONTH": "2024-06-01",
            "REVENUE_SCORE": "0.905",
            "GROWTH_SCORE": "\\N",
        }
    )
    assert record is not None
    assert record["revenue_percentile"] == 91
    assert record["growth_percentile"] == 0
    assert record["peer_group"] == "default"


def test_network_row_without_prime_is_skipped() -> None:
    row = {"DOMINANT_PRIME_UEI": "\\N", "RECIPIENT_UEI": "SUB1", "SNAPSHOT_MONTH": "2024-06-01"}
    assert NETWORK_METRICS.transform(row) is None


def test_network_exclusivity_is_concentration_share() -> None:
    record = NETWORK_METRICS.transform(
        {
            "DOMINANT_PRIME_UEI": "PRIME1",
            "RECIPIENT_UEI": "SUB1",
            "SNAPSHOT_MONTH": "2024-06-01",
            "MAX_CONCENTRATION_PCT": "62.5",
        }
    )
    assert record is not None
    assert record["exclusivity_score"] == 0.625


# ---------------------------------------------------------------------------
# Portfolio / iceberg / cache
# ---------------------------------------------------------------------------


def test_portfolio_breakdown_derives_concentration() -> None:
    record = PORTFOLIO_BREAKDOWNS.transform(
        {
            "RECIPIENT_UEI": "U1",
            "SNAPSHOT_MONTH": "2024-06-01",
            "AGENCY_AWARD_BREAKDOWN": json.dumps({"DOD": 100}),
            "NAICS_AWARD_BREAKDOWN": json.dumps({"541512": 50, "541511": 50}),
            "PSC_AWARD_BREAKDOWN": "\\N",
        }
    )

    assert record is not None
    assert record["agency_hhi"] == 1.0
    assert record["top_agencies"] == [{"name": "DOD", "revenue": 100.0, "percentage": 100.0}]
    assert record["concentration_risk_score"] == 100
    assert record["diversification_score"] == 0
    assert record["portfolio_stability"] == "concentrated"
    assert record["naics_hhi"] == 0.5
    assert record["naics_count"] == 2
    assert record["psc_hhi"] == 0.0
    assert record["top_psc"] == []
    assert record["contractor_name"] == "U1"


def test_iceberg_row_with_score_is_kept() -> None:
    record = ICEBERG_OPPORTUNITIES.transform(
        {
            "RECIPIENT_UEI": "U1",
            "PRIME_REVENUE_TTM_MILLIONS": "1",
            "SUB_REVENUE_TTM_MILLIONS": "3",
            "TOTAL_REVENUE_TTM_MILLIONS": "4",
        }
    )
    assert record is not None
    assert record["sub_to_prime_ratio"] == 3.0
    assert record["hidden_revenue_percentage"] == 75.0
    assert record["iceberg_score"] == 100
    assert record["opportunity_tier"] == "high"
    assert record["scale_tier"] == "Unknown"
    assert record["is_active"] is True


def test_iceberg_score_falling_to_zero_still_overwrites() -> None:
    first = ICEBERG_OPPORTUNITIES.transform(
        {
            "RECIPIENT_UEI": "U1",
            "PRIME_REVENUE_TTM_MILLIONS": "1",
            "SUB_REVENUE_TTM_MILLIONS": "9",
            "TOTAL_REVENUE_TTM_MILLIONS": "10",
        }
    )
    second = ICEBERG_OPPORTUNITIES.transform(
        {
            "RECIPIENT_UEI": "U1",
            "PRIME_REVENUE_TTM_MILLIONS": "10",
            "SUB_REVENUE_TTM_MILLIONS": "0",
            "TOTAL_REVENUE_TTM_MILLIONS": "10",
        }
    )

    assert first is not None and first["iceberg_score"] == 100
    assert second is not None
    assert second["iceberg_score"] == 0
    assert second["opportunity_tier"] == "low"
    assert "iceberg_score" in ICEBERG_OPPORTUNITIES.conflict_update_fields(list(second))


def test_cache_row_prefers_contractor_columns_and_flags_dormant() -> None:
    record = CONTRACTOR_CACHE.transform(
        {
            "CONTRACTOR_UEI": "\\N",
            "RECIPIENT_UEI": "U9",
            "CONTRACTOR_NAME": "Acme",
            "LIFECYCLE_STAGE": "Dormant",
            "TOTAL_OBLIGATED": "1,000.25",
        }
    )
    assert record is not None
    assert record["contractor_uei"] == "U9"
    assert record["is_active"] is False
    assert record["total_obligated"] == Decimal("1000.25")


def test_search_index_row_from_lowercase_export() -> None:
    record = SEARCH_INDEX.transform(
        {
            "uei": "U7",
            "name": "Acme Federal",
            "alternate_names": '["ACME FED", "Acme Federal LLC"]',
            "search_tags": '["cyber"]',
            "location": '{"state": "VA"}',
            "relevance_score": "87",
            "revenue_rank": "\\N",
            "summary": "{not json",
            "is_active": "1",
        }
    )

    assert record is not None
    assert record["entity_uei"] == "U7"
    assert record["entity_type"] == "contractor"
    assert record["searchable_name"] == "Acme Federal"
    assert record["display_name"] == "Acme Federal"
    assert record["alternate_names"] == ["ACME FED", "Acme Federal LLC"]
    assert record["search_tags"] == ["cyber"]
    assert record["location"] == {"state": "VA"}
    assert record["relevance_score"] == 87
    assert record["revenue_rank"] is None
    assert record["summary"] is None
    assert record["is_active"] is True


def test_search_index_key_is_uei_and_type() -> None:
    record = SEARCH_INDEX.transform(
        {"entity_uei": "U7", "entity_type": "vehicle", "display_name": "Shown", "searchable_name": "shown"}
    )

    assert SEARCH_INDEX.natural_key(record) == ("U7", "vehicle")
    assert record["display_name"] == "Shown"
    assert record["is_active"] is False
    assert SEARCH_INDEX.transform({"name": "No Key"}) is None


def test_search_index_reload_keeps_first_vector_and_location() -> None:
    update_fields = SEARCH_INDEX.conflict_update_fields(list(SEARCH_INDEX.update_fields or ()))

    assert "display_name" in update_fields
    assert "is_active" in update_fields
    assert "search_vector" not in update_fields
    assert "location" not in update_fields
    assert "primary_agency" not in update_fields
    assert SEARCH_INDEX.touch_fields == ("last_indexed_at", "updated_at")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_resolve_keeps_load_order() -> None:
    specs = resolve_table_specs(["hybrid", "Universe"])
    assert [spec.name for spec in specs] == ["universe", "hybrid"]


def test_resolve_all_when_empty() -> None:
    assert resolve_table_specs(None) == list(TABLE_SPECS)


def test_unknown_table_raises() -> None:
    with pytest.raises(UnknownTableError):
        get_table_spec("nope")


def test_every_spec_keys_are_model_columns() -> None:
    for spec in TABLE_SPECS:
        columns = set(spec.model.__table__.c.keys())
        assert set(spec.key_fields) <= columns, spec.name
        assert {column.field for column in spec.columns} <= columns, spec.name
        assert set(spec.touch_fields) <= columns, spec.name


def test_search_index_loads_after_iceberg_from_the_same_export() -> None:
    names = [spec.name for spec in TABLE_SPECS]

    assert names.index("search") == names.index("iceberg") + 1
    assert names[-1] == "cache"
    assert SEARCH_INDEX.source_pattern == ICEBERG_OPPORTUNITIES.source_pattern
