"""
tests/test_api_routers.py

Router behaviour with the pipeline and database dependencies overridden.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import etl_router, profile_router
from app.ratelimit import enforce_rate_limit
from app.services.pipeline_service import PipelineBusyError, get_pipeline_service
from app.services.profile_analysis_service import ProfileNotFoundError, get_profile_analysis_service
from db.session import get_db
from etl.specs import resolve_table_specs


class StubPipeline:
    def __init__(self, busy: bool = False) -> None:
        self.busy = busy
        self.etl_calls: list[list[str] | None] = []
        self.profile_calls = 0
        self.incremental_since: list = []

    def trigger_etl(self, *, executor, tables=None) -> list[str]:
        names = [spec.name for spec in resolve_table_specs(tables)]
        if self.busy:
            raise PipelineBusyError("An ETL refresh is already running.")
        self.etl_calls.append(tables)
        return names

    def trigger_profile_rebuild(self, *, executor) -> None:
        if self.busy:
            raise PipelineBusyError("A profile rebuild is already running.")
        self.profile_calls += 1

    def trigger_incremental_profile_update(self, *, executor, since=None) -> None:
        if self.busy:
            raise PipelineBusyError("A profile rebuild is already running.")
        self.incremental_since.append(since)


class MissingProfiles:
    def get_peer_comparison(self, *, db, profile_id):
        raise ProfileNotFoundError(f"Contractor profile not found: {profile_id}")

    def get_risk_analysis(self, *, db, profile_id):
        raise ProfileNotFoundError(f"Contractor profile not found: {profile_id}")


def _client(pipeline: StubPipeline) -> TestClient:
    application = FastAPI()
    application.include_router(etl_router)
    application.include_router(profile_router)
    application.dependency_overrides[enforce_rate_limit] = lambda: None
    application.dependency_overrides[get_pipeline_service] = lambda: pipeline
    application.dependency_overrides[get_profile_analysis_service] = MissingProfiles
    application.dependency_overrides[get_db] = lambda: SimpleNamespace()
    return TestClient(application)


def test_trigger_all_tables() -> None:
    pipeline = StubPipeline()

    response = _client(pipeline).post("/etl/loads")

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "accepted"
    assert body["tables"][0] == "universe"
    assert body["tables"][-1] == "cache"
    assert pipeline.etl_calls == [None]


def test_trigger_selected_tables_in_load_order() -> None:
    response = _client(StubPipeline()).post("/etl/loads", json={"tables": ["hybrid", "universe"]})

    assert response.status_code == 202
    assert response.json()["tables"] == ["universe", "hybrid"]


def test_unknown_table_is_bad_request() -> None:
    response = _client(StubPipeline()).post("/etl/loads", json={"tables": ["nope"]})

    assert response.status_code == 400
    assert "nope" in response.json()["detail"]


@pytest.mark.parametrize("path", ["/etl/loads", "/profiles/rebuild", "/profiles/rebuild/incremental"])
def test_busy_pipeline_conflicts(path: str) -> None:
    response = _client(StubPipeline(busy=True)).post(path)

    assert response.status_code == 409


def test_profile_rebuild_accepted() -> None:
    pipeline = StubPipeline()

    response = _client(pipeline).post("/profiles/rebuild")

    assert response.status_code == 202
    assert pipeline.profile_calls == 1


def test_incremental_profile_update_passes_since() -> None:
    pipeline = StubPipeline()

    response = _client(pipeline).post(
        "/profiles/rebuild/incremental",
        json={"since": "2026-10-16T00:00:00Z"},
    )

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "accepted"
    assert pipeline.incremental_since == [datetime(2026, 10, 16, tzinfo=timezone.utc)]
    assert body["since"].startswith("2026-10-16T00:00:00")


def test_incremental_profile_update_without_body_uses_default_window() -> None:
    pipeline = StubPipeline()

    response = _client(pipeline).post("/profiles/rebuild/incremental")

    assert response.status_code == 202
    assert response.json()["since"] is None
    assert pipeline.incremental_since == [None]


def test_incremental_profile_update_rejects_bad_timestamp() -> None:
    response = _client(StubPipeline()).post("/profiles/rebuild/incremental", json={"since": "yesterday"})

    assert response.status_code == 422


@pytest.mark.parametrize("suffix", ["peer-comparison", "risk-analysis"])
def test_unknown_profile_is_404(suffix: str) -> None:
    response = _client(StubPipeline()).get(f"/profiles/{uuid.uuid4()}/{suffix}")

    assert response.status_code == 404


def test_malformed_profile_id_is_422() -> None:
    response = _client(StubPipeline()).get("/profiles/not-a-uuid/risk-analysis")

    assert response.status_code == 422
