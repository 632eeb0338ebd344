"""
db/models/contractor_cache.py

Flat per-UEI contractor snapshot used as the source for profile aggregation.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Index, Integer, Numeric, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base

_UPSERT_CONSTRAINT = "uq_contractors_cache_uei"


class ContractorCache(Base):
    __tablename__ = "contractors_cache"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    contractor_uei: Mapped[str] = mapped_column(String(32), nullable=False)
    contractor_name: Mapped[str] = mapped_column(String(512), nullable=False)
    primary_agency: Mapped[str | None] = mapped_column(String(255), nullable=True)
    primary_sub_agency_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    country: Mapped[str | None] = mapped_column(String(64), nullable=True)
    state: Mapped[str | None] = mapped_column(String(64), nullable=True)
    city: Mapped[str | None] = mapped_column(String(128), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    primary_naics_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    primary_naics_description: Mapped[str | None] = mapped_column(String(512), nullable=True)
    industry_cluster: Mapped[str | None] = mapped_column(String(128), nullable=True)
    lifecycle_stage: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="e.g. New Entrant, Growth, Mature, Dormant",
    )
    size_tier: Mapped[str | None] = mapped_column(String(64), nullable=True)
    size_quartile: Mapped[int | None] = mapped_column(Integer, nullable=True)
    peer_group_refined: Mapped[str | None] = mapped_column(String(128), nullable=True)
    total_contracts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_obligated: Mapped[Decimal] = mapped_column(
        Numeric(24, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Lifetime obligated dollars (not millions)",
    )
    agency_diversity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    source_last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cache_created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    cache_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("contractor_uei", name=_UPSERT_CONSTRAINT),
        Index("ix_contractors_cache_name", "contractor_name"),
    )
