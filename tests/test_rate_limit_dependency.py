"""
tests/test_rate_limit_dependency.py

The FastAPI dependency through a small app and TestClient.
"""

from __future__ import annotations

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from app.ratelimit.dependency import (
    RateLimitDependency,
    client_ip,
    combined_key,
    endpoint_key,
    tenant_key,
    user_key,
)
from app.ratelimit.limiter import FixedWindowRateLimiter
from app.ratelimit.store import InMemoryRateLimitStore


def _app(limit: int = 2, *, enabled: bool = True) -> FastAPI:
    limiter = FixedWindowRateLimiter(store=InMemoryRateLimitStore(), limit=limit, window_seconds=60)
    application = FastAPI()

    @application.get("/ping", dependencies=[Depends(RateLimitDependency(limiter, enabled=enabled))])
    def ping() -> dict[str, str]:
        return {"status": "ok"}

    return application


def _request(headers: dict[str, str] | None = None, *, method: str = "GET", path: str = "/etl/runs") -> Request:
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()],
        "client": ("10.0.0.9", 5000),
        "server": ("testserver", 80),
        "scheme": "http",
    }
    return Request(scope)


def test_admitted_requests_carry_headers() -> None:
    client = TestClient(_app())

    response = client.get("/ping")

    assert response.status_code == 200
    assert response.headers["X-Rate-Limit-Limit"] == "2"
    assert response.headers["X-Rate-Limit-Remaining"] == "1"
    assert "X-Rate-Limit-Reset" in response.headers


def test_rejected_request_gets_429() -> None:
    client = TestClient(_app(limit=1))
    client.get("/ping")

    response = client.get("/ping")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"
    assert response.headers["X-Rate-Limit-Remaining"] == "0"
    detail = response.json()["detail"]
    assert detail["code"] == "RATE_LIMIT_EXCEEDED"
    assert detail["retryAfter"] == 60
    assert detail["resetTime"]


def test_disabled_dependency_admits_everything() -> None:
    client = TestClient(_app(limit=1, enabled=False))

    statuses = {client.get("/ping").status_code for _ in range(3)}

    assert statuses == {200}


def test_forwarded_clients_are_limited_separately() -> None:
    client = TestClient(_app(limit=1))

    first = client.get("/ping", headers={"X-Forwarded-For": "203.0.113.1, 10.0.0.1"})
    second = client.get("/ping", headers={"X-Forwarded-For": "203.0.113.2"})

    assert first.status_code == 200
    assert second.status_code == 200


def test_key_strategies() -> None:
    request = _request({"X-Forwarded-For": " 203.0.113.7 , 10.0.0.1", "X-Tenant-Id": "acme"})
    assert client_ip(request) == "203.0.113.7"
    assert tenant_key(request) == "tenant:acme"
    assert user_key(request) == "ip:203.0.113.7"
    assert endpoint_key(_request(method="POST", path="/etl/loads")) == "endpoint:POST:/etl/loads"
    assert combined_key(_request({"X-User-Id": "u-42"})) == "combined:10.0.0.9:u-42"
    assert client_ip(_request({"X-Real-IP": "198.51.100.4"})) == "198.51.100.4"
