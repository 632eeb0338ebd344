"""
db/models/contractor_search_index.py

Search documents for contractors, one per (entity UEI, entity type).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

_UPSERT_CONSTRAINT = "uq_contractor_search_index_uei_type"


class ContractorSearchIndex(Base, TimestampMixin):
    """
    Loaded from the ``iceberg_search_union`` export. On reload the names,
    tags, scores, summary and active flag are overwritten; the search vector,
    industry, agency and location keep the values from the first load.
    """

    __tablename__ = "contractor_search_index"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    entity_uei: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False, default="contractor")
    searchable_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    alternate_names: Mapped[Any | None] = mapped_column(JSONB(none_as_null=True), nullable=True)
    search_vector: Mapped[str | None] = mapped_column(Text, nullable=True)
    search_tags: Mapped[Any | None] = mapped_column(JSONB(none_as_null=True), nullable=True)
    search_keywords: Mapped[Any | None] = mapped_column(JSONB(none_as_null=True), nullable=True)
    primary_industry: Mapped[str | None] = mapped_column(String(255), nullable=True)
    primary_agency: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location: Mapped[Any | None] = mapped_column(JSONB(none_as_null=True), nullable=True)
    relevance_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    activity_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    revenue_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    summary: Mapped[Any | None] = mapped_column(JSONB(none_as_null=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_indexed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("entity_uei", "entity_type", name=_UPSERT_CONSTRAINT),
        Index("ix_contractor_search_index_searchable_name", "searchable_name"),
    )
