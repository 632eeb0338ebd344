"""
db/models/portfolio_breakdown.py

Monthly agency / NAICS / PSC concentration per contractor.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Date, DateTime, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, ImportedAtMixin

_UPSERT_CONSTRAINT = "uq_portfolio_breakdowns_monthly_uei_month"


class PortfolioBreakdownMonthly(Base, ImportedAtMixin):
    """
    ``top_*`` columns hold up to three ``{"name", "revenue", "percentage"}``
    objects ordered by revenue. HHI columns are on the 0-1 scale.
    """

    __tablename__ = "portfolio_breakdowns_monthly"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    contractor_uei: Mapped[str] = mapped_column(String(32), nullable=False)
    contractor_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    month_year: Mapped[date] = mapped_column(Date, nullable=False)

    top_agencies: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    agency_hhi: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False, default=Decimal("0"))
    agency_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    primary_agency_revenue: Mapped[Decimal] = mapped_column(
        Numeric(20, 6), nullable=False, default=Decimal("0")
    )
    primary_agency_percentage: Mapped[Decimal] = mapped_column(
        Numeric(7, 2), nullable=False, default=Decimal("0")
    )

    top_naics: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    naics_hhi: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False, default=Decimal("0"))
    naics_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    primary_naics_revenue: Mapped[Decimal] = mapped_column(
        Numeric(20, 6), nullable=False, default=Decimal("0")
    )
    primary_naics_percentage: Mapped[Decimal] = mapped_column(
        Numeric(7, 2), nullable=False, default=Decimal("0")
    )

    top_psc: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    psc_hhi: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False, default=Decimal("0"))
    psc_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    concentration_risk_score: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="round(agency_hhi * 100)"
    )
    diversification_score: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="round((1 - agency_hhi) * 100)"
    )
    portfolio_stability: Mapped[str] = mapped_column(
        String(32), nullable=False, default="moderate", comment="diverse, moderate, concentrated"
    )
    calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("contractor_uei", "month_year", name=_UPSERT_CONSTRAINT),
        Index("ix_portfolio_breakdowns_monthly_uei", "contractor_uei"),
    )
