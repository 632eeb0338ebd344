"""
db/models/subcontractor_metrics.py

Monthly subcontract performance per subcontractor UEI.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

_UPSERT_CONSTRAINT = "uq_subcontractor_metrics_monthly_uei_month"


class SubcontractorMetricsMonthly(Base, TimestampMixin):
    __tablename__ = "subcontractor_metrics_monthly"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    subcontractor_uei: Mapped[str] = mapped_column(String(32), nullable=False)
    subcontractor_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    month_year: Mapped[date] = mapped_column(Date, nullable=False)
    monthly_subcontract_revenue: Mapped[Decimal] = mapped_column(
        Numeric(20, 6), nullable=False, default=Decimal("0"), comment="Millions USD"
    )
    monthly_subcontracts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active_subcontracts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sub_revenue_growth_yoy: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)

    __table_args__ = (
        UniqueConstraint("subcontractor_uei", "month_year", name=_UPSERT_CONSTRAINT),
        Index("ix_subcontractor_metrics_monthly_month_year", "month_year"),
    )
