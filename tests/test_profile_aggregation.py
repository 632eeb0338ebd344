"""
tests/test_profile_aggregation.py

Profile grouping, payload aggregation and the rebuild pass with an
in-memory repository.
"""

from __future__ import annotations

import uuid
from contextlib import nullcontext
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from db.models.contractor_cache import ContractorCache
from db.models.contractor_profile import ProfileRunStatus
from profiles.aggregator import (
    ProfileAggregationError,
    ProfileAggregator,
    build_agency_relationships,
    build_profile_payload,
    canonicalize_name,
    group_by_canonical_name,
    relationship_strength,
)


def _cache(uei: str, name: str, **overrides) -> ContractorCache:
    values = {
        "contractor_uei": uei,
        "contractor_name": name,
        "primary_agency": None,
        "state": None,
        "primary_naics_code": None,
        "primary_naics_description": None,
        "industry_cluster": None,
        "size_tier": None,
        "lifecycle_stage": None,
        "total_contracts": 0,
        "total_obligated": Decimal("0"),
        "is_active": True,
        "cache_created_at": None,
        "cache_updated_at": None,
    }
    values.update(overrides)
    return ContractorCache(**values)


# ---------------------------------------------------------------------------
# Canonical names
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("  Acme  Widgets, Inc. ", "ACME WIDGETS"),
        ("acme widgets llc", "ACME WIDGETS"),
        ("Acme Widgets Corporation", "ACME WIDGETS"),
        ("TESCO", "TESCO"),
        ("Company", "COMPANY"),
        (None, ""),
    ],
)
def test_canonicalize_name(raw, expected: str) -> None:
    assert canonicalize_name(raw) == expected


def test_group_by_canonical_name_skips_blank_names() -> None:
    groups = group_by_canonical_name(
        [_cache("U1", "Acme Inc"), _cache("U2", "ACME LLC"), _cache("U3", "   "), _cache("U4", "Other")]
    )
    assert {name: [r.contractor_uei for r in records] for name, records in groups.items()} == {
        "ACME": ["U1", "U2"],
        "OTHER": ["U4"],
    }


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------


def test_profile_payload_aggregates_group() -> None:
    early = datetime(2020, 1, 1, tzinfo=timezone.utc)
    late = datetime(2024, 1, 1, tzinfo=timezone.utc)
    records = [
        _cache(
            "U1",
            "Acme Inc",
            primary_agency="DOD",
            state="VA",
            primary_naics_code="541512",
            primary_naics_description="Computer Systems Design",
            total_contracts=10,
            total_obligated=Decimal("1000000"),
            lifecycle_stage="Growth",
            cache_created_at=late,
            cache_updated_at=late,
        ),
        _cache(
            "U2",
            "ACME INCORPORATED HOLDINGS",
            primary_agency="VA",
            state="VA",
            primary_naics_code="541512",
            total_contracts=30,
            total_obligated=Decimal("3000000"),
            lifecycle_stage="Growth",
            cache_created_at=early,
            cache_updated_at=early,
        ),
    ]
    peers = [{"revenue_percentile": 70, "growth_percentile": 50, "overall_performance_score": 60}]

    payload = build_profile_payload("ACME", records, peers)

    assert payload["display_name"] == "ACME INCORPORATED HOLDINGS"
    assert payload["total_ueis"] == 2
    assert payload["total_contracts"] == 40
    assert payload["total_obligated"] == 4_000_000.0
    assert payload["avg_contract_value"] == 100_000.0
    assert payload["agencies"] == ["DOD", "VA"]
    assert payload["primary_agency"] == "DOD"
    assert payload["headquarters_state"] == "VA"
    assert payload["total_states"] == 1
    assert payload["primary_naics_description"] == "Computer Systems Design"
    assert payload["performance_score"] == 64
    assert payload["risk_score"] == 36
    assert payload["data_completeness_score"] == 60
    assert payload["growth_trend"] == "stable"
    assert payload["first_seen_date"] == early
    assert payload["last_active_date"] == late
    assert payload["profile_metadata"]["peer_percentiles"]["revenue_percentile"] == 70


def test_profile_payload_caps_corrupt_obligations_and_scores() -> None:
    records = [
        _cache(f"U{index}", "Big Co", primary_agency=f"A{index}", total_obligated=Decimal("1e20"))
        for index in range(12)
    ]

    payload = build_profile_payload("BIG", records)

    assert payload["total_obligated"] == 12e15
    assert payload["performance_score"] == 100
    assert payload["risk_score"] == 0


def test_profile_payload_requires_records() -> None:
    with pytest.raises(ValueError):
        build_profile_payload("EMPTY", [])


def test_agency_relationships() -> None:
    records = [
        _cache("U1", "Acme", primary_agency="DOD", total_contracts=3, total_obligated=Decimal("150000000")),
        _cache("U2", "Acme", primary_agency="DOD", total_contracts=1, total_obligated=Decimal("1")),
        _cache("U3", "Acme", primary_agency="VA", total_contracts=2, total_obligated=Decimal("20000000")),
        _cache("U4", "Acme", primary_agency=None, total_contracts=9, total_obligated=Decimal("5")),
    ]

    relationships = {row["agency"]: row for row in build_agency_relationships(records)}

    assert set(relationships) == {"DOD", "VA"}
    assert relationships["DOD"]["uei_count"] == 2
    assert relationships["DOD"]["contract_count"] == 4
    assert relationships["DOD"]["relationship_strength"] == "strong"
    assert relationships["DOD"]["is_primary"] is True
    assert relationships["VA"]["relationship_strength"] == "moderate"
    assert relationships["VA"]["is_primary"] is False


def test_relationship_strength_thresholds() -> None:
    assert relationship_strength(100_000_000) == "moderate"
    assert relationship_strength(10_000_000) == "weak"
    assert relationship_strength(100_000_001) == "strong"


# ---------------------------------------------------------------------------
# Rebuild pass
# ---------------------------------------------------------------------------


class FakeProfileSession:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    def begin_nested(self):
        return nullcontext()

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


class FakeProfileRepository:
    def __init__(self, records: list[ContractorCache], fail_for: str | None = None) -> None:
        self._records = records
        self._fail_for = fail_for
        self.profiles: dict[str, dict] = {}
        self.mappings: dict[str, uuid.UUID] = {}
        self.kept_names: list[str] | None = None
        self.started = False
        self.finished: dict | None = None
        self.since: datetime | None = None

    def iter_cache_records(self):
        return iter(self._records)

    def cache_names_updated_since(self, since: datetime) -> list[str]:
        self.since = since
        return sorted(
            {
                record.contractor_name
                for record in self._records
                if record.cache_updated_at is not None and record.cache_updated_at > since
            }
        )

    def latest_peer_rows_by_uei(self) -> dict:
        return {}

    def upsert_profile(self, payload: dict) -> uuid.UUID:
        if payload["canonical_name"] == self._fail_for:
            raise IntegrityError("INSERT", {}, Exception("duplicate key"))
        self.profiles[payload["canonical_name"]] = payload
        return uuid.uuid5(uuid.NAMESPACE_DNS, payload["canonical_name"])

    def upsert_uei_mappings(self, profile_id: uuid.UUID, ueis) -> int:
        for uei in ueis:
            self.mappings[uei] = profile_id
        return len(ueis)

    def upsert_agency_relationships(self, profile_id, relationships) -> int:
        return len(relationships)

    def deactivate_profiles_except(self, names) -> int:
        self.kept_names = list(names)
        return 1

    def start_run(self, *, started_at: datetime):
        self.started = True
        return SimpleNamespace(id=uuid.uuid4(), run_started_at=started_at)

    def finish_run(self, run_id, **fields):
        self.finished = fields

    def latest_run(self):
        return None


def test_rebuild_continues_past_failing_group() -> None:
    repository = FakeProfileRepository(
        [_cache("U1", "Acme Inc"), _cache("U2", "Acme LLC"), _cache("U3", "Broken Co"), _cache("U4", "Zeta")],
        fail_for="BROKEN",
    )
    session = FakeProfileSession()
    aggregator = ProfileAggregator(db=session, repository=repository, commit_every=1)

    summary = aggregator.build_all_profiles()

    assert summary.profiles_created == 2
    assert summary.ueis_mapped == 3
    assert summary.profiles_deactivated == 1
    assert len(summary.errors) == 1 and summary.errors[0].startswith("BROKEN:")
    assert repository.mappings["U1"] == repository.mappings["U2"]
    assert repository.kept_names == ["ACME", "BROKEN", "ZETA"]
    assert repository.finished["status"] == ProfileRunStatus.COMPLETED
    assert len(repository.finished["errors"]) == 1


def test_rebuild_with_empty_cache_skips_deactivation() -> None:
    repository = FakeProfileRepository([])
    aggregator = ProfileAggregator(db=FakeProfileSession(), repository=repository)

    summary = aggregator.build_all_profiles()

    assert summary.profiles_created == 0
    assert summary.profiles_deactivated == 0
    assert repository.kept_names is None
    assert repository.finished["status"] == ProfileRunStatus.COMPLETED


# ---------------------------------------------------------------------------
# Incremental update
# ---------------------------------------------------------------------------


def test_incremental_update_rebuilds_whole_group_of_changed_names() -> None:
    cutoff = datetime(2026, 10, 16, tzinfo=timezone.utc)
    recent = cutoff + timedelta(hours=3)
    stale = cutoff - timedelta(days=30)
    repository = FakeProfileRepository(
        [
            _cache("U1", "Acme Inc", cache_updated_at=recent, total_contracts=2),
            _cache("U2", "ACME LLC", cache_updated_at=stale, total_contracts=3),
            _cache("U3", "Zeta", cache_updated_at=stale),
        ]
    )
    session = FakeProfileSession()
    aggregator = ProfileAggregator(db=session, repository=repository)

    summary = aggregator.update_recent_profiles(cutoff)

    assert set(repository.profiles) == {"ACME"}
    assert repository.profiles["ACME"]["total_ueis"] == 2
    assert repository.profiles["ACME"]["total_contracts"] == 5
    assert repository.mappings["U1"] == repository.mappings["U2"]
    assert "U3" not in repository.mappings
    assert summary.profiles_created == 1
    assert summary.ueis_mapped == 2
    assert summary.profiles_deactivated == 0
    assert repository.kept_names is None
    assert repository.started is False
    assert repository.finished is None
    assert session.commits >= 1


def test_incremental_update_defaults_to_lookback_window() -> None:
    now = datetime.now(timezone.utc)
    repository = FakeProfileRepository(
        [
            _cache("U1", "Fresh Co", cache_updated_at=now - timedelta(hours=2)),
            _cache("U2", "Old Co", cache_updated_at=now - timedelta(hours=10)),
        ]
    )
    aggregator = ProfileAggregator(db=FakeProfileSession(), repository=repository, lookback_hours=6)

    summary = aggregator.update_recent_profiles()

    assert set(repository.profiles) == {"FRESH"}
    assert summary.profiles_created == 1
    assert now - timedelta(hours=6, minutes=1) < repository.since < now - timedelta(hours=5, minutes=59)


def test_incremental_update_treats_naive_since_as_utc() -> None:
    repository = FakeProfileRepository([])
    aggregator = ProfileAggregator(db=FakeProfileSession(), repository=repository)

    summary = aggregator.update_recent_profiles(datetime(2026, 10, 1, 12, 0))

    assert repository.since == datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
    assert summary.profiles_created == 0


def test_incremental_update_read_failure_raises() -> None:
    class UnreadableCache(FakeProfileRepository):
        def cache_names_updated_since(self, since: datetime) -> list[str]:
            raise OperationalError("SELECT", {}, Exception("connection refused"))

    session = FakeProfileSession()
    aggregator = ProfileAggregator(db=session, repository=UnreadableCache([]))

    with pytest.raises(ProfileAggregationError, match="connection refused"):
        aggregator.update_recent_profiles()

    assert session.rollbacks == 1
