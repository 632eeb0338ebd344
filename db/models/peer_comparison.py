"""
db/models/peer_comparison.py

Monthly peer-group percentile standing per contractor.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, ImportedAtMixin

_UPSERT_CONSTRAINT = "uq_peer_comparisons_monthly_uei_group_month"


class PeerComparisonMonthly(Base, ImportedAtMixin):
    """
    Percentiles and ranks are computed upstream and copied as-is.
    ``imported_at`` is refreshed on every upsert.
    """

    __tablename__ = "peer_comparisons_monthly"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    contractor_uei: Mapped[str] = mapped_column(String(32), nullable=False)
    contractor_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    month_year: Mapped[date] = mapped_column(Date, nullable=False)
    peer_group: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="default",
        comment="Peer NAICS code or 'default'",
    )
    peer_group_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    revenue_percentile: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    revenue_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    revenue_quartile: Mapped[int | None] = mapped_column(Integer, nullable=True)
    growth_percentile: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    growth_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    overall_performance_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    competitive_positioning: Mapped[str | None] = mapped_column(String(64), nullable=True)
    calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "contractor_uei",
            "peer_group",
            "month_year",
            name=_UPSERT_CONSTRAINT,
        ),
        Index("ix_peer_comparisons_monthly_uei", "contractor_uei"),
    )
