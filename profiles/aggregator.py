"""
profiles/aggregator.py

Rebuilds contractor profiles from the contractors cache.

A federal contractor frequently registers several UEIs (subsidiaries,
divisions, re-registrations) under names that differ only in case,
spacing or a legal suffix. The aggregation pass groups cache rows by
canonical name and writes one ``ContractorProfile`` per group, along with
the UEI mappings and a per-agency breakdown.

The pass is a full rebuild and is safe to re-run: profiles are upserted by
canonical name, mappings by UEI and relationships by (profile, agency).
Profiles whose names no longer appear in the cache are flagged inactive,
never deleted. Each group runs inside its own savepoint, so one bad group
is recorded as an error and the rest of the run continues.

An incremental update rebuilds only the profiles whose cache rows changed
recently and never deactivates anything.
"""

from __future__ import annotations

import logging
import re
import time
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from analytics.numeric import round_half_up, to_float
from analytics.peers import average_percentiles
from app.config import get_profile_aggregation_settings
from db.models.contractor_cache import ContractorCache
from db.models.contractor_profile import ContractorProfileStats, ProfileRunStatus
from db.repositories.profile_repository import ProfileRepository

logger = logging.getLogger(__name__)

# Per-record cap on obligated dollars; guards the sum against corrupt exports.
MAX_RECORD_OBLIGATED = 1e15

STRONG_RELATIONSHIP_MIN = 100_000_000
MODERATE_RELATIONSHIP_MIN = 10_000_000

_LEGAL_SUFFIX = re.compile(
    r"[,.]?\s*\b(INC|LLC|CORP|CORPORATION|LTD|LIMITED|CO|COMPANY)\.?$",
    re.IGNORECASE,
)
_WHITESPACE = re.compile(r"\s+")

_COMPLETENESS_POINTS = 20


class ProfileAggregationError(RuntimeError):
    """
    Raised when the aggregation pass cannot run to completion.
    """


@dataclass
class ProfileAggregationSummary:
    profiles_created: int = 0
    ueis_mapped: int = 0
    profiles_deactivated: int = 0
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "profiles_created": self.profiles_created,
            "ueis_mapped": self.ueis_mapped,
            "profiles_deactivated": self.profiles_deactivated,
            "errors": list(self.errors),
            "duration_ms": self.duration_ms,
        }


# ---------------------------------------------------------------------------
# Pure aggregation helpers
# ---------------------------------------------------------------------------


def canonicalize_name(name: str | None) -> str:
    """
    Upper-case, collapse whitespace and strip one trailing legal suffix.

    >>> canonicalize_name("  Acme  Widgets, Inc. ")
    'ACME WIDGETS'
    """
    if not name:
        return ""
    cleaned = _WHITESPACE.sub(" ", name.upper()).strip()
    stripped = _LEGAL_SUFFIX.sub("", cleaned).strip()
    return stripped or cleaned


def group_by_canonical_name(
    records: Iterable[ContractorCache],
) -> dict[str, list[ContractorCache]]:
    groups: dict[str, list[ContractorCache]] = {}
    for record in records:
        canonical = canonicalize_name(record.contractor_name)
        if not canonical:
            continue
        groups.setdefault(canonical, []).append(record)
    return groups


def _most_common(values: Iterable[str | None]) -> str | None:
    """Most frequent non-empty value; ties go to the value seen first."""
    counts = Counter(value for value in values if value)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def _capped_obligated(record: ContractorCache) -> float:
    return min(to_float(record.total_obligated), MAX_RECORD_OBLIGATED)


def _growth_trend(lifecycle_stage: str | None) -> str:
    if lifecycle_stage == "New Entrant":
        return "increasing"
    if lifecycle_stage == "Dormant":
        return "declining"
    return "stable"


def _timestamps(records: Sequence[ContractorCache], attribute: str) -> list[datetime]:
    return [value for value in (getattr(record, attribute) for record in records) if value is not None]


def build_profile_payload(
    canonical_name: str,
    records: Sequence[ContractorCache],
    peer_rows: Iterable[Any] = (),
) -> dict[str, Any]:
    """
    Aggregate one group of cache rows into ``ContractorProfile`` column values.
    """
    if not records:
        raise ValueError(f"No contractor records for {canonical_name!r}.")

    display_record = max(records, key=_capped_obligated)
    total_ueis = len({record.contractor_uei for record in records})
    total_contracts = sum(record.total_contracts or 0 for record in records)
    total_obligated = sum(_capped_obligated(record) for record in records)
    avg_contract_value = total_obligated / total_contracts if total_contracts > 0 else 0.0

    agencies = list(dict.fromkeys(record.primary_agency for record in records if record.primary_agency))
    states = list(dict.fromkeys(record.state for record in records if record.state))
    primary_agency = _most_common(record.primary_agency for record in records)
    headquarters_state = _most_common(record.state for record in records)
    primary_naics = _most_common(record.primary_naics_code for record in records)
    industry_cluster = _most_common(record.industry_cluster for record in records)
    size_tier = _most_common(record.size_tier for record in records)
    lifecycle_stage = _most_common(record.lifecycle_stage for record in records)

    naics_description = next(
        (
            record.primary_naics_description
            for record in records
            if record.primary_naics_code == primary_naics and record.primary_naics_description
        ),
        None,
    )

    agency_diversity = len(agencies)
    performance_score = min(100, 50 + agency_diversity * 5 + total_ueis * 2)
    risk_score = max(0, 100 - performance_score)

    completeness = _COMPLETENESS_POINTS * sum(
        1
        for value in (primary_agency, headquarters_state, primary_naics, industry_cluster, size_tier)
        if value
    )

    created = _timestamps(records, "cache_created_at")
    updated = _timestamps(records, "cache_updated_at")
    peers = average_percentiles(peer_rows)

    return {
        "canonical_name": canonical_name,
        "display_name": display_record.contractor_name,
        "total_ueis": total_ueis,
        "total_contracts": total_contracts,
        "total_obligated": round_half_up(total_obligated, 2),
        "avg_contract_value": round_half_up(avg_contract_value, 2),
        "primary_agency": primary_agency,
        "total_agencies": len(agencies),
        "agency_diversity": agency_diversity,
        "headquarters_state": headquarters_state,
        "total_states": len(states),
        "primary_naics": primary_naics,
        "primary_naics_description": naics_description,
        "industry_cluster": industry_cluster,
        "size_tier": size_tier,
        "lifecycle_stage": lifecycle_stage,
        "performance_score": performance_score,
        "risk_score": risk_score,
        "growth_trend": _growth_trend(lifecycle_stage),
        "data_completeness_score": completeness,
        "agencies": agencies,
        "states": states,
        "first_seen_date": min(created) if created else None,
        "last_active_date": max(updated) if updated else None,
        "is_active": any(bool(record.is_active) for record in records),
        "profile_metadata": {"peer_percentiles": peers.to_dict()},
    }


def relationship_strength(total_obligated: float) -> str:
    if total_obligated > STRONG_RELATIONSHIP_MIN:
        return "strong"
    if total_obligated > MODERATE_RELATIONSHIP_MIN:
        return "moderate"
    return "weak"


def build_agency_relationships(records: Sequence[ContractorCache]) -> list[dict[str, Any]]:
    """
    Per-agency totals for one profile. The agency with the most obligated
    dollars is flagged primary.
    """
    totals: dict[str, dict[str, Any]] = {}
    for record in records:
        if not record.primary_agency:
            continue
        entry = totals.setdefault(
            record.primary_agency,
            {"contracts": 0, "obligated": 0.0, "ueis": set()},
        )
        entry["contracts"] += record.total_contracts or 0
        entry["obligated"] += _capped_obligated(record)
        entry["ueis"].add(record.contractor_uei)

    if not totals:
        return []

    primary = max(totals, key=lambda agency: totals[agency]["obligated"])
    return [
        {
            "agency": agency,
            "total_obligated": round_half_up(entry["obligated"], 2),
            "contract_count": entry["contracts"],
            "uei_count": len(entry["ueis"]),
            "relationship_strength": relationship_strength(entry["obligated"]),
            "is_primary": agency == primary,
        }
        for agency, entry in totals.items()
    ]


# ---------------------------------------------------------------------------
# Aggregation pass
# ---------------------------------------------------------------------------


class ProfileAggregator:
    """
    Runs the full profile rebuild, or an incremental update of recently
    changed profiles, against the database.
    """

    def __init__(
        self,
        *,
        db: Session,
        repository: ProfileRepository | None = None,
        commit_every: int = 100,
        lookback_hours: int = 24,
    ) -> None:
        self._db = db
        self._repository = repository or ProfileRepository(db)
        self._commit_every = max(1, commit_every)
        self._lookback_hours = max(1, lookback_hours)

    def build_all_profiles(self) -> ProfileAggregationSummary:
        """
        Rebuild every profile from the contractors cache.

        Raises:
            ProfileAggregationError: the pass failed outside a single group
                (cache unreadable, stats row not writable). The failure is
                recorded on the stats row before raising.
        """
        started = time.monotonic()
        summary = ProfileAggregationSummary()
        run = self._start_run()

        try:
            groups = group_by_canonical_name(self._repository.iter_cache_records())
            logger.info("Profile aggregation: %d candidate profiles", len(groups))
            self._build_groups(groups, summary)

            if groups:
                summary.profiles_deactivated = self._repository.deactivate_profiles_except(
                    list(groups)
                )
                self._db.commit()
            else:
                logger.warning("Profile aggregation: contractors cache is empty, skipping deactivation")

        except SQLAlchemyError as exc:
            self._db.rollback()
            summary.duration_ms = _elapsed_ms(started)
            self._finish_run(run, ProfileRunStatus.FAILED, summary, extra_error=str(exc))
            raise ProfileAggregationError(f"Profile aggregation failed: {exc}") from exc

        summary.duration_ms = _elapsed_ms(started)
        self._finish_run(run, ProfileRunStatus.COMPLETED, summary)
        logger.info(
            "Profile aggregation completed: %d profiles, %d UEIs mapped, %d deactivated, %d errors",
            summary.profiles_created,
            summary.ueis_mapped,
            summary.profiles_deactivated,
            len(summary.errors),
        )
        return summary

    def update_recent_profiles(self, since: datetime | None = None) -> ProfileAggregationSummary:
        """
        Rebuild only the profiles whose cache rows changed after ``since``.

        ``since`` defaults to the configured lookback before now; a naive
        value is taken as UTC. A profile is affected when any cache row with
        its canonical name was updated after the cutoff, and it is rebuilt
        from all of its cache rows, not only the changed ones. Nothing is
        deactivated and no stats row is written: the status endpoint keeps
        reporting the last full rebuild.

        Raises:
            ProfileAggregationError: the cache or peer rows cannot be read,
                or a commit fails.
        """
        started = time.monotonic()
        cutoff = self._incremental_cutoff(since)
        summary = ProfileAggregationSummary()

        try:
            changed = {
                canonicalize_name(name)
                for name in self._repository.cache_names_updated_since(cutoff)
            }
            changed.discard("")
            if changed:
                groups = group_by_canonical_name(
                    record
                    for record in self._repository.iter_cache_records()
                    if canonicalize_name(record.contractor_name) in changed
                )
                logger.info(
                    "Incremental profile update since %s: %d profiles to rebuild",
                    cutoff.isoformat(),
                    len(groups),
                )
                self._build_groups(groups, summary)
            else:
                logger.info("Incremental profile update since %s: no changed contractors", cutoff.isoformat())
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise ProfileAggregationError(f"Incremental profile update failed: {exc}") from exc

        summary.duration_ms = _elapsed_ms(started)
        logger.info(
            "Incremental profile update completed: %d profiles, %d UEIs mapped, %d errors",
            summary.profiles_created,
            summary.ueis_mapped,
            len(summary.errors),
        )
        return summary

    def get_status(self) -> ContractorProfileStats | None:
        return self._repository.latest_run()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _incremental_cutoff(self, since: datetime | None) -> datetime:
        if since is None:
            return _now_utc() - timedelta(hours=self._lookback_hours)
        if since.tzinfo is None:
            return since.replace(tzinfo=timezone.utc)
        return since

    def _build_groups(
        self,
        groups: dict[str, list[ContractorCache]],
        summary: ProfileAggregationSummary,
    ) -> None:
        peer_lookup = self._repository.latest_peer_rows_by_uei()
        for index, (canonical_name, records) in enumerate(groups.items(), start=1):
            self._build_group(canonical_name, records, peer_lookup, summary)
            if index % self._commit_every == 0:
                self._db.commit()
                logger.info("Profile aggregation: %d/%d groups processed", index, len(groups))
        self._db.commit()

    def _build_group(
        self,
        canonical_name: str,
        records: list[ContractorCache],
        peer_lookup: dict[str, Any],
        summary: ProfileAggregationSummary,
    ) -> None:
        ueis = list(dict.fromkeys(record.contractor_uei for record in records))
        peer_rows = [peer_lookup[uei] for uei in ueis if uei in peer_lookup]
        try:
            with self._db.begin_nested():
                payload = build_profile_payload(canonical_name, records, peer_rows)
                profile_id = self._repository.upsert_profile(payload)
                mapped = self._repository.upsert_uei_mappings(profile_id, ueis)
                self._repository.upsert_agency_relationships(
                    profile_id,
                    build_agency_relationships(records),
                )
        except (SQLAlchemyError, ValueError) as exc:
            summary.errors.append(f"{canonical_name}: {exc}")
            logger.warning("Profile aggregation failed for %r: %s", canonical_name, exc)
            return

        summary.profiles_created += 1
        summary.ueis_mapped += mapped

    def _start_run(self) -> ContractorProfileStats:
        try:
            run = self._repository.start_run(started_at=_now_utc())
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise ProfileAggregationError(f"Cannot record aggregation run: {exc}") from exc
        return run

    def _finish_run(
        self,
        run: ContractorProfileStats,
        status: str,
        summary: ProfileAggregationSummary,
        *,
        extra_error: str | None = None,
    ) -> None:
        errors = list(summary.errors)
        if extra_error:
            errors.append(extra_error)
        try:
            self._repository.finish_run(
                run.id,
                status=status,
                completed_at=_now_utc(),
                profiles_created=summary.profiles_created,
                ueis_mapped=summary.ueis_mapped,
                profiles_deactivated=summary.profiles_deactivated,
                errors=errors,
            )
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.warning("Failed to record profile aggregation status: %s", exc)


def _now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def build_profile_aggregator(db: Session) -> ProfileAggregator:
    settings = get_profile_aggregation_settings()
    return ProfileAggregator(
        db=db,
        commit_every=settings.commit_every,
        lookback_hours=settings.incremental_lookback_hours,
    )
