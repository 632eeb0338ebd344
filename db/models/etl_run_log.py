"""
db/models/etl_run_log.py

Append-only run log: one row per table load attempt.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class EtlLoadStatus:
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class EtlRunLog(Base):
    __tablename__ = "contractor_etl_metadata"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    table_name: Mapped[str] = mapped_column(String(128), nullable=False)
    source_file: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Source path, or glob pattern for sharded exports",
    )
    records_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_inserted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    load_start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    load_end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    load_duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    load_status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="completed, completed_with_errors, failed",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    data_quality_checks: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    loaded_by: Mapped[str] = mapped_column(String(64), nullable=False)
    load_type: Mapped[str] = mapped_column(String(32), nullable=False, default="full")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_contractor_etl_metadata_table_name", "table_name"),
        Index("ix_contractor_etl_metadata_load_status", "load_status"),
        Index("ix_contractor_etl_metadata_created_at", "created_at"),
    )
