"""
Schemas for ETL trigger and run-log endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ETLTriggerRequest(BaseModel):
    tables: list[str] | None = Field(
        default=None,
        description="Table mapping names to load (e.g. universe, metrics). All tables when omitted.",
    )


class ETLAcceptedResponse(BaseModel):
    status: str = "accepted"
    tables: list[str]
    requested_at: datetime


class ETLRunResponse(BaseModel):
    run_id: UUID
    table_name: str
    source_file: str | None = None
    records_processed: int
    records_inserted: int
    records_updated: int
    records_skipped: int
    records_failed: int
    load_start_time: datetime
    load_end_time: datetime | None = None
    load_duration_ms: int | None = None
    load_status: str
    error_message: str | None = None
    data_quality_checks: dict[str, Any] | None = None
    loaded_by: str
    load_type: str


class ETLRunListResponse(BaseModel):
    runs: list[ETLRunResponse] = Field(default_factory=list)
