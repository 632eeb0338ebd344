"""
db/models/network_metric.py

Prime/sub teaming relationship strength per month.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

_UPSERT_CONSTRAINT = "uq_contractor_network_metrics_prime_sub_month"


class ContractorNetworkMetric(Base, TimestampMixin):
    __tablename__ = "contractor_network_metrics"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    prime_uei: Mapped[str] = mapped_column(String(32), nullable=False)
    prime_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    sub_uei: Mapped[str] = mapped_column(String(32), nullable=False)
    sub_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    month_year: Mapped[date] = mapped_column(Date, nullable=False)
    monthly_shared_revenue: Mapped[Decimal] = mapped_column(
        Numeric(20, 6), nullable=False, default=Decimal("0"), comment="Millions USD, TTM"
    )
    relationship_strength_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    collaboration_frequency: Mapped[str | None] = mapped_column(
        String(32), nullable=True, comment="Upstream strength tier"
    )
    prime_network_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    exclusivity_score: Mapped[Decimal | None] = mapped_column(
        Numeric(7, 4), nullable=True, comment="Concentration share on the 0-1 scale"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("prime_uei", "sub_uei", "month_year", name=_UPSERT_CONSTRAINT),
        Index("ix_contractor_network_metrics_sub_uei", "sub_uei"),
    )
