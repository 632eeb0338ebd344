"""
db/models/iceberg_opportunity.py

Contractors whose subcontract revenue dwarfs their prime revenue.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Index, Integer, Numeric, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

_UPSERT_CONSTRAINT = "uq_contractor_iceberg_opportunities_uei"


class ContractorIcebergOpportunity(Base, TimestampMixin):
    """
    Derived columns are recomputed from the source revenue split on every
    load and overwrite the previous values, including a score that drops
    to 0 (tier "low").
    """

    __tablename__ = "contractor_iceberg_opportunities"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    contractor_uei: Mapped[str] = mapped_column(String(32), nullable=False)
    contractor_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    prime_revenue: Mapped[Decimal] = mapped_column(Numeric(20, 6), nullable=False, default=Decimal("0"))
    subcontractor_revenue: Mapped[Decimal] = mapped_column(
        Numeric(20, 6), nullable=False, default=Decimal("0")
    )
    total_revenue: Mapped[Decimal] = mapped_column(Numeric(20, 6), nullable=False, default=Decimal("0"))
    sub_to_prime_ratio: Mapped[Decimal | None] = mapped_column(Numeric(24, 4), nullable=True)
    hidden_revenue_percentage: Mapped[Decimal] = mapped_column(
        Numeric(7, 2), nullable=False, default=Decimal("0")
    )
    iceberg_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    opportunity_tier: Mapped[str] = mapped_column(String(16), nullable=False, comment="high, medium, low")
    potential_prime_value: Mapped[Decimal] = mapped_column(
        Numeric(20, 6), nullable=False, default=Decimal("0")
    )
    competitive_advantages: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    risk_factors: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    scale_tier: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entity_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    analysis_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        server_default=func.current_date(),
    )

    __table_args__ = (
        UniqueConstraint("contractor_uei", name=_UPSERT_CONSTRAINT),
        Index("ix_contractor_iceberg_opportunities_score", "iceberg_score"),
        Index("ix_contractor_iceberg_opportunities_tier", "opportunity_tier"),
    )
