"""
db/models/contractor_metrics_monthly.py

Monthly prime-contract performance snapshot per contractor.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

_UPSERT_CONSTRAINT = "uq_contractor_metrics_monthly_uei_month"


class ContractorMetricsMonthly(Base, TimestampMixin):
    __tablename__ = "contractor_metrics_monthly"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    contractor_uei: Mapped[str] = mapped_column(String(32), nullable=False)
    contractor_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    month_year: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="First day of the snapshot month",
    )
    monthly_revenue: Mapped[Decimal] = mapped_column(
        Numeric(20, 6), nullable=False, default=Decimal("0"), comment="Millions USD"
    )
    monthly_awards: Mapped[Decimal] = mapped_column(
        Numeric(20, 6), nullable=False, default=Decimal("0"), comment="Millions USD"
    )
    monthly_contracts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active_contracts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_contract_value: Mapped[Decimal] = mapped_column(
        Numeric(20, 6),
        nullable=False,
        default=Decimal("0"),
        comment="Trailing-twelve-month revenue divided by active contracts",
    )
    revenue_growth_yoy: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 4), nullable=True, comment="Year-over-year TTM growth percentage"
    )
    activity_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    days_inactive: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pipeline_value: Mapped[Decimal] = mapped_column(
        Numeric(20, 6), nullable=False, default=Decimal("0"), comment="Millions USD"
    )
    primary_agency: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("contractor_uei", "month_year", name=_UPSERT_CONSTRAINT),
        Index("ix_contractor_metrics_monthly_month_year", "month_year"),
    )
