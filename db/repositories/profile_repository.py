"""
db/repositories/profile_repository.py

Persistence layer for contractor profiles and their satellite tables.

All methods are transaction-safe. The caller controls commit/rollback;
this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import String, all_, bindparam, func, select, update
from sqlalchemy.dialects.postgresql import ARRAY, insert
from sqlalchemy.orm import Session

from db.models.contractor_cache import ContractorCache
from db.models.contractor_profile import (
    ContractorAgencyRelationship,
    ContractorProfile,
    ContractorProfileStats,
    ContractorUeiMapping,
    ProfileRunStatus,
)
from db.models.peer_comparison import PeerComparisonMonthly
from db.models.portfolio_breakdown import PortfolioBreakdownMonthly

_PROFILE_CONSTRAINT = "uq_contractor_profiles_canonical_name"
_MAPPING_CONSTRAINT = "uq_contractor_uei_mappings_uei"
_RELATIONSHIP_CONSTRAINT = "uq_contractor_agency_relationships_profile_agency"
_CACHE_YIELD_PER = 1000


class ProfileRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Source reads
    # ------------------------------------------------------------------

    def iter_cache_records(self) -> Iterator[ContractorCache]:
        stmt = (
            select(ContractorCache)
            .order_by(ContractorCache.contractor_name, ContractorCache.contractor_uei)
            .execution_options(yield_per=_CACHE_YIELD_PER)
        )
        yield from self._session.scalars(stmt)

    def cache_names_updated_since(self, since: datetime) -> list[str]:
        """Distinct contractor names with a cache row refreshed after ``since``."""
        stmt = (
            select(ContractorCache.contractor_name)
            .where(ContractorCache.cache_updated_at > since)
            .distinct()
            .order_by(ContractorCache.contractor_name)
        )
        return list(self._session.scalars(stmt))

    def latest_peer_rows_by_uei(self) -> dict[str, PeerComparisonMonthly]:
        """Most recent peer comparison row per UEI (any peer group)."""
        stmt = (
            select(PeerComparisonMonthly)
            .distinct(PeerComparisonMonthly.contractor_uei)
            .order_by(
                PeerComparisonMonthly.contractor_uei,
                PeerComparisonMonthly.month_year.desc(),
                PeerComparisonMonthly.imported_at.desc(),
            )
        )
        return {row.contractor_uei: row for row in self._session.scalars(stmt)}

    # ------------------------------------------------------------------
    # Profile writes
    # ------------------------------------------------------------------

    def upsert_profile(self, payload: dict[str, Any]) -> uuid.UUID:
        """
        Insert or refresh the profile for ``payload["canonical_name"]``.

        Every aggregated field is overwritten; ``updated_at`` is refreshed.
        """
        stmt = insert(ContractorProfile).values(id=uuid.uuid4(), **payload)
        set_ = {
            name: stmt.excluded[name] for name in payload if name != "canonical_name"
        }
        set_["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            constraint=_PROFILE_CONSTRAINT,
            set_=set_,
        ).returning(ContractorProfile.id)
        return self._session.execute(stmt).scalar_one()

    def upsert_uei_mappings(self, profile_id: uuid.UUID, ueis: Sequence[str]) -> int:
        """
        Point every UEI at ``profile_id``. A UEI that moved to another
        profile since the last rebuild is re-pointed, not duplicated.
        """
        if not ueis:
            return 0
        payloads = [
            {
                "id": uuid.uuid4(),
                "uei": uei,
                "profile_id": profile_id,
                "confidence_score": 100,
                "mapping_method": "exact_match",
            }
            for uei in dict.fromkeys(ueis)
        ]
        stmt = insert(ContractorUeiMapping).values(payloads)
        stmt = stmt.on_conflict_do_update(
            constraint=_MAPPING_CONSTRAINT,
            set_={
                "profile_id": stmt.excluded.profile_id,
                "confidence_score": stmt.excluded.confidence_score,
                "mapping_method": stmt.excluded.mapping_method,
                "updated_at": func.now(),
            },
        )
        self._session.execute(stmt)
        return len(payloads)

    def upsert_agency_relationships(
        self,
        profile_id: uuid.UUID,
        relationships: Sequence[dict[str, Any]],
    ) -> int:
        if not relationships:
            return 0
        payloads = [
            {"id": uuid.uuid4(), "profile_id": profile_id, **relationship}
            for relationship in relationships
        ]
        stmt = insert(ContractorAgencyRelationship).values(payloads)
        stmt = stmt.on_conflict_do_update(
            constraint=_RELATIONSHIP_CONSTRAINT,
            set_={
                "total_obligated": stmt.excluded.total_obligated,
                "contract_count": stmt.excluded.contract_count,
                "uei_count": stmt.excluded.uei_count,
                "relationship_strength": stmt.excluded.relationship_strength,
                "is_primary": stmt.excluded.is_primary,
                "updated_at": func.now(),
            },
        )
        self._session.execute(stmt)
        return len(payloads)

    def deactivate_profiles_except(self, canonical_names: Sequence[str]) -> int:
        """
        Flag active profiles whose canonical name is not in ``canonical_names``
        as inactive. Profiles are never deleted.
        """
        names = bindparam("names", value=list(canonical_names), type_=ARRAY(String))
        stmt = (
            update(ContractorProfile)
            .where(
                ContractorProfile.is_active.is_(True),
                ContractorProfile.canonical_name != all_(names),
            )
            .values(is_active=False, updated_at=func.now())
        )
        result = self._session.execute(stmt)
        return int(result.rowcount or 0)

    # ------------------------------------------------------------------
    # Run stats
    # ------------------------------------------------------------------

    def start_run(self, *, started_at: datetime) -> ContractorProfileStats:
        run = ContractorProfileStats(
            run_started_at=started_at,
            status=ProfileRunStatus.RUNNING,
        )
        self._session.add(run)
        self._session.flush()
        return run

    def finish_run(
        self,
        run_id: uuid.UUID,
        *,
        status: str,
        completed_at: datetime,
        profiles_created: int = 0,
        ueis_mapped: int = 0,
        profiles_deactivated: int = 0,
        errors: Sequence[str] = (),
    ) -> ContractorProfileStats | None:
        run = self._session.get(ContractorProfileStats, run_id)
        if run is None:
            return None
        run.status = status
        run.run_completed_at = completed_at
        run.duration_ms = int((completed_at - run.run_started_at).total_seconds() * 1000)
        run.profiles_created = profiles_created
        run.ueis_mapped = ueis_mapped
        run.profiles_deactivated = profiles_deactivated
        run.error_count = len(errors)
        run.error_message = "\n".join(errors) if errors else None
        return run

    def latest_run(self) -> ContractorProfileStats | None:
        stmt = (
            select(ContractorProfileStats)
            .order_by(ContractorProfileStats.run_started_at.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    # ------------------------------------------------------------------
    # Profile reads
    # ------------------------------------------------------------------

    def get_profile(self, profile_id: uuid.UUID) -> ContractorProfile | None:
        return self._session.get(ContractorProfile, profile_id)

    def ueis_for_profile(self, profile_id: uuid.UUID) -> list[str]:
        stmt = (
            select(ContractorUeiMapping.uei)
            .where(ContractorUeiMapping.profile_id == profile_id)
            .order_by(ContractorUeiMapping.uei)
        )
        return list(self._session.scalars(stmt).all())

    def latest_peer_rows(self, ueis: Sequence[str]) -> list[PeerComparisonMonthly]:
        """Peer rows for ``ueis`` in the most recent month any of them has."""
        if not ueis:
            return []
        latest_month = self._session.execute(
            select(func.max(PeerComparisonMonthly.month_year)).where(
                PeerComparisonMonthly.contractor_uei.in_(ueis)
            )
        ).scalar_one_or_none()
        if latest_month is None:
            return []
        stmt = select(PeerComparisonMonthly).where(
            PeerComparisonMonthly.contractor_uei.in_(ueis),
            PeerComparisonMonthly.month_year == latest_month,
        )
        return list(self._session.scalars(stmt).all())

    def latest_portfolio_rows(self, ueis: Sequence[str]) -> list[PortfolioBreakdownMonthly]:
        """Portfolio rows for ``ueis`` in the most recent month any of them has."""
        if not ueis:
            return []
        latest_month = self._session.execute(
            select(func.max(PortfolioBreakdownMonthly.month_year)).where(
                PortfolioBreakdownMonthly.contractor_uei.in_(ueis)
            )
        ).scalar_one_or_none()
        if latest_month is None:
            return []
        stmt = select(PortfolioBreakdownMonthly).where(
            PortfolioBreakdownMonthly.contractor_uei.in_(ueis),
            PortfolioBreakdownMonthly.month_year == latest_month,
        )
        return list(self._session.scalars(stmt).all())
