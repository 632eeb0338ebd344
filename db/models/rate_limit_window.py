"""
db/models/rate_limit_window.py

Shared fixed-window counters for multi-instance rate limiting.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class RateLimitWindow(Base):
    __tablename__ = "rate_limit_windows"

    key: Mapped[str] = mapped_column(
        String(512),
        primary_key=True,
        comment="Limiter key, e.g. ip:203.0.113.9 or endpoint:GET:/etl/runs",
    )
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reset_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_rate_limit_windows_reset_at", "reset_at"),
    )
