"""
etl/specs.py

Declarative column mappings from Snowflake exports to destination tables.

Each destination table is described by a ``TableSpec``: where its files live
under the staging directory, which model it writes to, its natural key, how
each destination field is parsed from the raw CSV columns, and an optional
``derive`` hook for fields computed from other fields (HHI, iceberg score).
The loader itself is generic; adding a table means adding a spec here.

Source column names are the upper-case Snowflake names. A ``ColumnSpec`` may
list several candidates; the first one holding a non-null value wins.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from analytics.concentration import (
    concentration_risk_score,
    diversification_score,
    portfolio_stability,
    summarize_breakdown,
)
from analytics.iceberg import assess_iceberg
from analytics.numeric import round_half_up, to_float
from db.base import Base
from db.models.contractor_cache import ContractorCache
from db.models.contractor_metrics_monthly import ContractorMetricsMonthly
from db.models.contractor_search_index import ContractorSearchIndex
from db.models.contractor_universe import ContractorUniverse
from db.models.iceberg_opportunity import ContractorIcebergOpportunity
from db.models.network_metric import ContractorNetworkMetric
from db.models.peer_comparison import PeerComparisonMonthly
from db.models.portfolio_breakdown import PortfolioBreakdownMonthly
from db.models.subcontractor_metrics import SubcontractorMetricsMonthly
from etl.errors import UnknownTableError
from etl.parsers import (
    is_null,
    parse_boolean,
    parse_date,
    parse_datetime,
    parse_decimal,
    parse_integer,
    parse_json_object,
    parse_json_value,
    parse_nullable_decimal,
    parse_nullable_integer,
    parse_score_percentile,
    parse_text,
)

Parser = Callable[[Any], Any]
Record = dict[str, Any]


@dataclass(frozen=True)
class ColumnSpec:
    """
    One destination field.

    ``sources`` are tried in order; the first non-null raw value is handed
    to ``parser``. When none is present the parser receives ``None`` and
    returns its own default.
    """

    field: str
    sources: tuple[str, ...]
    parser: Parser
    required: bool = False

    def extract(self, raw_row: Mapping[str, Any]) -> Any:
        raw_value = None
        for source in self.sources:
            candidate = raw_row.get(source)
            if not is_null(candidate):
                raw_value = candidate
                break
        return self.parser(raw_value)


@dataclass(frozen=True)
class TableSpec:
    name: str
    label: str
    model: type[Base]
    source_pattern: str
    key_fields: tuple[str, ...]
    columns: tuple[ColumnSpec, ...]
    batch_size: int = 1000
    derive: Callable[[Record, Mapping[str, Any]], Record] | None = None
    update_fields: tuple[str, ...] | None = None
    touch_fields: tuple[str, ...] = ()
    constants: Mapping[str, Any] = field(default_factory=dict)

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    def transform(self, raw_row: Mapping[str, Any]) -> Record | None:
        """
        Map one raw CSV row to a destination record.

        Returns ``None`` when a required field or a natural-key field is
        null; the loader counts those rows as skipped.
        """
        record: Record = {}
        for column in self.columns:
            value = column.extract(raw_row)
            if column.required and (value is None or value == ""):
                return None
            record[column.field] = value

        record.update(self.constants)
        if self.derive is not None:
            record = self.derive(record, raw_row)

        for key in self.key_fields:
            if record.get(key) in (None, ""):
                return None
        return record

    def natural_key(self, record: Mapping[str, Any]) -> tuple[Any, ...]:
        return tuple(record[key] for key in self.key_fields)

    def conflict_update_fields(self, record_fields: list[str] | tuple[str, ...]) -> list[str]:
        """Fields overwritten on conflict: last load wins for every non-key field."""
        candidates = self.update_fields if self.update_fields is not None else tuple(record_fields)
        return [name for name in candidates if name not in self.key_fields]


# ---------------------------------------------------------------------------
# Derive hooks
# ---------------------------------------------------------------------------

_REVENUE_ANOMALY_FLAG = "REVENUE_ANOMALY"
_HYBRID_ENTITY_TYPE = "HYBRID"


def _derive_universe(record: Record, raw_row: Mapping[str, Any]) -> Record:
    quality_flag = parse_text(raw_row.get("DATA_QUALITY_FLAG"))
    record["registration_status"] = (
        "needs_review" if quality_flag == _REVENUE_ANOMALY_FLAG else "active"
    )
    record["is_active"] = bool(record["is_prime"] or record["is_subcontractor"])
    record["is_hybrid"] = (record.get("entity_type") or "").upper() == _HYBRID_ENTITY_TYPE
    return record


def _derive_monthly_metrics(record: Record, raw_row: Mapping[str, Any]) -> Record:
    revenue_ttm = to_float(parse_decimal(raw_row.get("REVENUE_TTM_MILLIONS")))
    active_contracts = record["active_contracts"]
    record["monthly_contracts"] = active_contracts
    record["avg_contract_value"] = (
        round_half_up(revenue_ttm / active_contracts, 6) if active_contracts > 0 else 0.0
    )
    return record


def _derive_portfolio(record: Record, raw_row: Mapping[str, Any]) -> Record:
    agencies = summarize_breakdown(parse_json_object(raw_row.get("AGENCY_AWARD_BREAKDOWN")))
    naics = summarize_breakdown(parse_json_object(raw_row.get("NAICS_AWARD_BREAKDOWN")))
    psc = summarize_breakdown(parse_json_object(raw_row.get("PSC_AWARD_BREAKDOWN")))

    if not record.get("contractor_name"):
        record["contractor_name"] = record.get("contractor_uei")

    record.update(
        {
            "top_agencies": [share.to_dict() for share in agencies.top],
            "agency_hhi": round_half_up(agencies.hhi, 6),
            "agency_count": agencies.count,
            "primary_agency_revenue": agencies.primary_revenue,
            "primary_agency_percentage": agencies.primary_percentage,
            "top_naics": [share.to_dict() for share in naics.top],
            "naics_hhi": round_half_up(naics.hhi, 6),
            "naics_count": naics.count,
            "primary_naics_revenue": naics.primary_revenue,
            "primary_naics_percentage": naics.primary_percentage,
            "top_psc": [share.to_dict() for share in psc.top],
            "psc_hhi": round_half_up(psc.hhi, 6),
            "psc_count": psc.count,
            "concentration_risk_score": concentration_risk_score(agencies.hhi),
            "diversification_score": diversification_score(agencies.hhi),
            "portfolio_stability": portfolio_stability(agencies.hhi),
        }
    )
    return record


def _derive_network(record: Record, raw_row: Mapping[str, Any]) -> Record:
    concentration_pct = parse_nullable_decimal(raw_row.get("MAX_CONCENTRATION_PCT"))
    record["exclusivity_score"] = (
        round_half_up(concentration_pct / 100, 4) if concentration_pct is not None else None
    )
    return record


def _derive_iceberg(record: Record, raw_row: Mapping[str, Any]) -> Record:
    assessment = assess_iceberg(
        prime_revenue=to_float(record["prime_revenue"]),
        sub_revenue=to_float(record["subcontractor_revenue"]),
        total_revenue=to_float(record["total_revenue"]),
    )
    record.update(
        {
            "sub_to_prime_ratio": assessment.sub_to_prime_ratio,
            "hidden_revenue_percentage": assessment.hidden_revenue_percentage,
            "iceberg_score": assessment.iceberg_score,
            "opportunity_tier": assessment.opportunity_tier,
            "potential_prime_value": assessment.potential_prime_value,
            "competitive_advantages": assessment.competitive_advantages,
            "risk_factors": assessment.risk_factors,
        }
    )
    return record


def _derive_contractor_cache(record: Record, raw_row: Mapping[str, Any]) -> Record:
    record["is_active"] = (record.get("lifecycle_stage") or "").lower() != "dormant"
    return record


# ---------------------------------------------------------------------------
# Table specs
# ---------------------------------------------------------------------------


def _col(field_name: str, *sources: str, parser: Parser = parse_text, required: bool = False) -> ColumnSpec:
    return ColumnSpec(field=field_name, sources=sources, parser=parser, required=required)


UNIVERSE = TableSpec(
    name="universe",
    label="Contractor Universe",
    model=ContractorUniverse,
    source_pattern="full_contractor_universe*.csv.gz",
    key_fields=("uei",),
    batch_size=5000,
    columns=(
        _col("uei", "RECIPIENT_UEI", required=True),
        _col("legal_business_name", "RECIPIENT_NAME"),
        _col("last_updated_date", "LAST_UPDATED", parser=parse_date),
        _col("entity_type", "ENTITY_TYPE"),
        _col("lifetime_revenue", "TOTAL_REVENUE_LIFETIME_MILLIONS", parser=parse_decimal),
        _col("is_prime", "HAS_PRIME_ACTIVITY", parser=parse_boolean),
        _col("is_subcontractor", "HAS_SUB_ACTIVITY", parser=parse_boolean),
    ),
    derive=_derive_universe,
    touch_fields=("updated_at",),
)

MONTHLY_METRICS = TableSpec(
    name="metrics",
    label="Contractor Metrics Monthly",
    model=ContractorMetricsMonthly,
    source_pattern="full_contractor_metrics_monthly/*.csv.gz",
    key_fields=("contractor_uei", "month_year"),
    columns=(
        _col("contractor_uei", "RECIPIENT_UEI", required=True),
        _col("contractor_name", "RECIPIENT_NAME"),
        _col("month_year", "SNAPSHOT_MONTH", parser=parse_date, required=True),
        _col("monthly_revenue", "REVENUE_MONTHLY_MILLIONS", parser=parse_decimal),
        _col("monthly_awards", "AWARDS_MONTHLY_MILLIONS", parser=parse_decimal),
        _col("active_contracts", "ACTIVE_CONTRACT_COUNT", parser=parse_integer),
        _col("revenue_growth_yoy", "GROWTH_YOY_REVENUE_TTM_PCT", parser=parse_nullable_decimal),
        _col("activity_status", "ACTIVITY_CLASSIFICATION"),
        _col("days_inactive", "DAYS_SINCE_LAST_CONTRACT_START", parser=parse_nullable_integer),
        _col("pipeline_value", "ACTIVE_PIPELINE_MILLIONS", parser=parse_decimal),
        _col("primary_agency", "AWARDING_AGENCY_NAME"),
    ),
    derive=_derive_monthly_metrics,
    touch_fields=("updated_at",),
)

PEER_COMPARISONS = TableSpec(
    name="peer",
    label="Peer Comparisons Monthly",
    model=PeerComparisonMonthly,
    source_pattern="peer_comparisons_monthly/*.csv.gz",
    key_fields=("contractor_uei", "peer_group", "month_year"),
    columns=(
        _col("contractor_uei", "RECIPIENT_UEI", required=True),
        _col("contractor_name", "RECIPIENT_NAME"),
        _col("month_year", "SNAPSHOT_MONTH", parser=parse_date, required=True),
        _col("peer_group", "PEER_NAICS_CODE", "PEER_GROUP", parser=lambda v: parse_text(v) or "default"),
        _col("peer_group_size", "PEER_GROUP_SIZE", parser=parse_nullable_integer),
        _col("revenue_percentile", "REVENUE_SCORE", parser=parse_score_percentile),
        _col("revenue_rank", "REVENUE_RANK", parser=parse_nullable_integer),
        _col("revenue_quartile", "SIZE_QUARTILE", parser=parse_nullable_integer),
        _col("growth_percentile", "GROWTH_SCORE", parser=parse_score_percentile),
        _col("growth_rank", "GROWTH_RANK", parser=parse_nullable_integer),
        _col("overall_performance_score", "COMPOSITE_SCORE", parser=parse_nullable_integer),
        _col("competitive_positioning", "PERFORMANCE_CLASSIFICATION"),
        _col("calculated_at", "CREATED_AT", parser=parse_datetime),
    ),
    touch_fields=("imported_at",),
)

PORTFOLIO_BREAKDOWNS = TableSpec(
    name="portfolio",
    label="Portfolio Breakdowns Monthly",
    model=PortfolioBreakdownMonthly,
    source_pattern="portfolio_breakdowns_monthly/*.csv.gz",
    key_fields=("contractor_uei", "month_year"),
    columns=(
        _col("contractor_uei", "RECIPIENT_UEI", required=True),
        _col("contractor_name", "RECIPIENT_NAME"),
        _col("month_year", "SNAPSHOT_MONTH", parser=parse_date, required=True),
        _col("calculated_at", "CREATED_AT", parser=parse_datetime),
    ),
    derive=_derive_portfolio,
    touch_fields=("imported_at",),
)

SUBCONTRACTOR_METRICS = TableSpec(
    name="sub",
    label="Subcontractor Metrics Monthly",
    model=SubcontractorMetricsMonthly,
    source_pattern="full_subcontractor_metrics_monthly/*.csv.gz",
    key_fields=("subcontractor_uei", "month_year"),
    columns=(
        _col("subcontractor_uei", "RECIPIENT_UEI", required=True),
        _col("subcontractor_name", "RECIPIENT_NAME"),
        _col("month_year", "SNAPSHOT_MONTH", parser=parse_date, required=True),
        _col("monthly_subcontract_revenue", "REVENUE_MONTHLY_MILLIONS", parser=parse_decimal),
        _col("monthly_subcontracts", "ACTIVE_CONTRACT_COUNT", parser=parse_integer),
        _col("active_subcontracts", "ACTIVE_CONTRACT_COUNT", parser=parse_integer),
        _col("sub_revenue_growth_yoy", "GROWTH_YOY_REVENUE_TTM_PCT", parser=parse_nullable_decimal),
    ),
    touch_fields=("updated_at",),
)

NETWORK_METRICS = TableSpec(
    name="network",
    label="Subcontractor Network",
    model=ContractorNetworkMetric,
    source_pattern="subcontractor_network_metrics_monthly/*.csv.gz",
    key_fields=("prime_uei", "sub_uei", "month_year"),
    columns=(
        _col("prime_uei", "DOMINANT_PRIME_UEI", required=True),
        _col("prime_name", "DOMINANT_PRIME_NAME"),
        _col("sub_uei", "RECIPIENT_UEI", required=True),
        _col("sub_name", "RECIPIENT_NAME"),
        _col("month_year", "SNAPSHOT_MONTH", parser=parse_date, required=True),
        _col("monthly_shared_revenue", "MAX_PRIME_RELATIONSHIP_TTM", parser=parse_decimal),
        _col("relationship_strength_score", "MAX_STRENGTH_SCORE", parser=parse_nullable_integer),
        _col("collaboration_frequency", "OVERALL_STRENGTH_TIER"),
        _col("prime_network_size", "TOTAL_PRIME_RELATIONSHIPS", parser=parse_nullable_integer),
        _col("is_active", "IS_ACTIVE_TEAMING_PARTNER", parser=parse_boolean),
    ),
    derive=_derive_network,
    touch_fields=("updated_at",),
)

ICEBERG_OPPORTUNITIES = TableSpec(
    name="iceberg",
    label="Iceberg Opportunities",
    model=ContractorIcebergOpportunity,
    source_pattern="iceberg_search_union/*.csv.gz",
    key_fields=("contractor_uei",),
    columns=(
        _col("contractor_uei", "RECIPIENT_UEI", required=True),
        _col("contractor_name", "RECIPIENT_NAME"),
        _col("prime_revenue", "PRIME_REVENUE_TTM_MILLIONS", parser=parse_decimal),
        _col("subcontractor_revenue", "SUB_REVENUE_TTM_MILLIONS", parser=parse_decimal),
        _col("total_revenue", "TOTAL_REVENUE_TTM_MILLIONS", parser=parse_decimal),
        _col("scale_tier", "SCALE_TIER", parser=lambda v: parse_text(v) or "Unknown"),
        _col("entity_type", "ENTITY_TYPE", parser=lambda v: parse_text(v) or "Unknown"),
        _col("is_active", "IS_ACTIVE", parser=lambda v: True if is_null(v) else parse_boolean(v)),
    ),
    derive=_derive_iceberg,
    touch_fields=("updated_at", "analysis_date"),
)

SEARCH_INDEX = TableSpec(
    name="search",
    label="Search Index",
    model=ContractorSearchIndex,
    source_pattern="iceberg_search_union/*.csv.gz",
    key_fields=("entity_uei", "entity_type"),
    columns=(
        _col("entity_uei", "entity_uei", "ENTITY_UEI", "uei", "UEI", "RECIPIENT_UEI", required=True),
        _col("entity_type", "entity_type", parser=lambda v: parse_text(v) or "contractor"),
        _col("searchable_name", "searchable_name", "name", "contractor_name", "RECIPIENT_NAME"),
        _col("display_name", "display_name", "name", "contractor_name", "RECIPIENT_NAME"),
        _col("alternate_names", "alternate_names", parser=parse_json_value),
        _col("search_vector", "search_vector"),
        _col("search_tags", "search_tags", parser=parse_json_value),
        _col("search_keywords", "search_keywords", parser=parse_json_value),
        _col("primary_industry", "primary_industry", "industry"),
        _col("primary_agency", "primary_agency", "agency"),
        _col("location", "location", parser=parse_json_value),
        _col("relevance_score", "relevance_score", parser=parse_nullable_integer),
        _col("activity_score", "activity_score", parser=parse_nullable_integer),
        _col("revenue_rank", "revenue_rank", parser=parse_nullable_integer),
        _col("summary", "summary", parser=parse_json_value),
        _col("is_active", "is_active", "active", parser=parse_boolean),
    ),
    update_fields=(
        "searchable_name",
        "display_name",
        "alternate_names",
        "search_tags",
        "search_keywords",
        "relevance_score",
        "activity_score",
        "revenue_rank",
        "summary",
        "is_active",
    ),
    touch_fields=("last_indexed_at", "updated_at"),
)

HYBRID_ENTITIES = TableSpec(
    name="hybrid",
    label="Hybrid Entities",
    model=ContractorUniverse,
    source_pattern="hybrid_entities*.csv.gz",
    key_fields=("uei",),
    batch_size=5000,
    columns=(
        _col("uei", "RECIPIENT_UEI", required=True),
        _col("legal_business_name", "RECIPIENT_NAME"),
        _col("lifetime_revenue", "TOTAL_REVENUE_LIFETIME_MILLIONS", parser=parse_decimal),
    ),
    constants={
        "entity_type": _HYBRID_ENTITY_TYPE,
        "registration_status": "active",
        "is_active": True,
        "is_prime": True,
        "is_subcontractor": True,
        "is_hybrid": True,
    },
    update_fields=(
        "entity_type",
        "lifetime_revenue",
        "is_active",
        "is_prime",
        "is_subcontractor",
        "is_hybrid",
    ),
    touch_fields=("updated_at",),
)

CONTRACTOR_CACHE = TableSpec(
    name="cache",
    label="Contractors Cache",
    model=ContractorCache,
    source_pattern="contractors*.csv.gz",
    key_fields=("contractor_uei",),
    columns=(
        _col("contractor_uei", "CONTRACTOR_UEI", "RECIPIENT_UEI", required=True),
        _col("contractor_name", "CONTRACTOR_NAME", "RECIPIENT_NAME", required=True),
        _col("primary_agency", "PRIMARY_AGENCY"),
        _col("primary_sub_agency_code", "PRIMARY_SUB_AGENCY_CODE"),
        _col("country", "COUNTRY"),
        _col("state", "STATE"),
        _col("city", "CITY"),
        _col("zip_code", "ZIP_CODE"),
        _col("primary_naics_code", "PRIMARY_NAICS_CODE"),
        _col("primary_naics_description", "PRIMARY_NAICS_DESCRIPTION"),
        _col("industry_cluster", "INDUSTRY_CLUSTER"),
        _col("lifecycle_stage", "LIFECYCLE_STAGE"),
        _col("size_tier", "SIZE_TIER"),
        _col("size_quartile", "SIZE_QUARTILE", parser=parse_nullable_integer),
        _col("peer_group_refined", "PEER_GROUP_REFINED"),
        _col("total_contracts", "TOTAL_CONTRACTS", parser=parse_integer),
        _col("total_obligated", "TOTAL_OBLIGATED", parser=parse_decimal),
        _col("agency_diversity", "AGENCY_DIVERSITY", parser=parse_integer),
        _col("source_last_updated", "LAST_UPDATED", parser=parse_datetime),
    ),
    derive=_derive_contractor_cache,
    touch_fields=("cache_updated_at",),
)

# Load order matters: hybrid entities patch rows created by the universe load.
TABLE_SPECS: tuple[TableSpec, ...] = (
    UNIVERSE,
    MONTHLY_METRICS,
    PEER_COMPARISONS,
    PORTFOLIO_BREAKDOWNS,
    SUBCONTRACTOR_METRICS,
    NETWORK_METRICS,
    ICEBERG_OPPORTUNITIES,
    SEARCH_INDEX,
    HYBRID_ENTITIES,
    CONTRACTOR_CACHE,
)

_SPECS_BY_NAME: dict[str, TableSpec] = {spec.name: spec for spec in TABLE_SPECS}


def get_table_spec(name: str) -> TableSpec:
    try:
        return _SPECS_BY_NAME[name.strip().lower()]
    except KeyError as exc:
        raise UnknownTableError(
            f"Unknown table {name!r}. Known tables: {sorted(_SPECS_BY_NAME)}."
        ) from exc


def resolve_table_specs(names: list[str] | tuple[str, ...] | None = None) -> list[TableSpec]:
    """Return specs for ``names`` in load order; all specs when ``names`` is empty."""
    if not names:
        return list(TABLE_SPECS)
    requested = {get_table_spec(name).name for name in names}
    return [spec for spec in TABLE_SPECS if spec.name in requested]
