"""
db/models/contractor_profile.py

Aggregated contractor profiles and their satellite tables.

A profile groups every UEI whose cached contractor name canonicalizes to
the same value. ``contractor_uei_mappings`` records which UEI belongs to
which profile, ``contractor_agency_relationships`` breaks the profile down
by awarding agency, and ``contractor_profile_stats`` is the run log of the
aggregation pass.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

_PROFILE_CONSTRAINT = "uq_contractor_profiles_canonical_name"
_MAPPING_CONSTRAINT = "uq_contractor_uei_mappings_uei"
_RELATIONSHIP_CONSTRAINT = "uq_contractor_agency_relationships_profile_agency"


class ProfileRunStatus:
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ContractorProfile(Base, TimestampMixin):
    __tablename__ = "contractor_profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    canonical_name: Mapped[str] = mapped_column(String(512), nullable=False)
    display_name: Mapped[str] = mapped_column(String(512), nullable=False)
    total_ueis: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_contracts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_obligated: Mapped[Decimal] = mapped_column(
        Numeric(24, 2), nullable=False, default=Decimal("0")
    )
    avg_contract_value: Mapped[Decimal] = mapped_column(
        Numeric(24, 2), nullable=False, default=Decimal("0")
    )
    primary_agency: Mapped[str | None] = mapped_column(String(255), nullable=True)
    total_agencies: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    agency_diversity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    headquarters_state: Mapped[str | None] = mapped_column(String(64), nullable=True)
    total_states: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    primary_naics: Mapped[str | None] = mapped_column(String(16), nullable=True)
    primary_naics_description: Mapped[str | None] = mapped_column(String(512), nullable=True)
    industry_cluster: Mapped[str | None] = mapped_column(String(128), nullable=True)
    size_tier: Mapped[str | None] = mapped_column(String(64), nullable=True)
    lifecycle_stage: Mapped[str | None] = mapped_column(String(64), nullable=True)
    performance_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    growth_trend: Mapped[str] = mapped_column(
        String(16), nullable=False, default="stable", comment="increasing, stable, declining"
    )
    data_completeness_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    agencies: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    states: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    first_seen_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_active_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    profile_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Averaged peer percentiles and other derived extras",
    )

    __table_args__ = (
        UniqueConstraint("canonical_name", name=_PROFILE_CONSTRAINT),
        Index("ix_contractor_profiles_total_obligated", "total_obligated"),
        Index("ix_contractor_profiles_is_active", "is_active"),
    )


class ContractorUeiMapping(Base, TimestampMixin):
    __tablename__ = "contractor_uei_mappings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    uei: Mapped[str] = mapped_column(String(32), nullable=False)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("contractor_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    confidence_score: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    mapping_method: Mapped[str] = mapped_column(String(32), nullable=False, default="exact_match")

    __table_args__ = (
        UniqueConstraint("uei", name=_MAPPING_CONSTRAINT),
        Index("ix_contractor_uei_mappings_profile_id", "profile_id"),
    )


class ContractorAgencyRelationship(Base, TimestampMixin):
    __tablename__ = "contractor_agency_relationships"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("contractor_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    agency: Mapped[str] = mapped_column(String(255), nullable=False)
    total_obligated: Mapped[Decimal] = mapped_column(
        Numeric(24, 2), nullable=False, default=Decimal("0")
    )
    contract_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    uei_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    relationship_strength: Mapped[str] = mapped_column(
        String(16), nullable=False, comment="strong, moderate, weak"
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("profile_id", "agency", name=_RELATIONSHIP_CONSTRAINT),
    )


class ContractorProfileStats(Base):
    __tablename__ = "contractor_profile_stats"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    run_started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    run_completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ProfileRunStatus.RUNNING,
    )
    profiles_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ueis_mapped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    profiles_deactivated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_contractor_profile_stats_run_started_at", "run_started_at"),
    )
