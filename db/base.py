"""
db/base.py

Declarative base and the timestamp mixins shared by the contractor tables.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Declarative base for every contractor, profile and run-log model.

    Bare ``Mapped[Decimal]`` annotations map to money-sized numerics.
    """

    type_annotation_map: dict[type, Any] = {
        Decimal: Numeric(20, 2),
    }


class TimestampMixin:
    """
    ``created_at`` is set once by the database. ``updated_at`` is refreshed
    by the ORM on UPDATE and by the loaders' ``ON CONFLICT`` clause, which
    sets it to ``now()`` explicitly.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class ImportedAtMixin:
    """
    For tables copied verbatim from upstream exports: a single ``imported_at``
    stamp, refreshed on every upsert.
    """

    imported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
