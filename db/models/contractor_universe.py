"""
db/models/contractor_universe.py

Master list of federal contractors keyed by UEI.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Index, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

_UPSERT_CONSTRAINT = "uq_contractor_universe_uei"


class ContractorUniverse(Base, TimestampMixin):
    """
    One row per Unique Entity Identifier.

    Populated by the universe load and enriched by the hybrid-entity load,
    which flips the hybrid flags on UEIs that act as both prime and sub.
    Rows are never deleted; ``is_active`` carries the lifecycle.
    """

    __tablename__ = "contractor_universe"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    uei: Mapped[str] = mapped_column(String(32), nullable=False)
    legal_business_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    registration_status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="active",
        comment="active or needs_review (source flagged a revenue anomaly)",
    )
    last_updated_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    entity_type: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        comment="PRIME, SUB, HYBRID as classified upstream",
    )
    lifetime_revenue: Mapped[Decimal] = mapped_column(
        Numeric(20, 6),
        nullable=False,
        default=Decimal("0"),
        comment="Lifetime revenue in millions USD",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_prime: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_subcontractor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_hybrid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("uei", name=_UPSERT_CONSTRAINT),
        Index("ix_contractor_universe_entity_type", "entity_type"),
        Index("ix_contractor_universe_is_active", "is_active"),
    )
