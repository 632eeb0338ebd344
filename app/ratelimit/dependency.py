"""
app/ratelimit/dependency.py

FastAPI integration for the fixed-window rate limiter.

``RateLimitDependency`` is attached to routers with ``Depends``. Admitted
requests carry ``X-Rate-Limit-*`` headers; rejected requests get HTTP 429
with the same headers plus ``Retry-After``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import lru_cache

from fastapi import HTTPException, Request, Response, status

from app.config import get_rate_limit_settings
from app.ratelimit.limiter import FixedWindowRateLimiter
from app.ratelimit.store import DatabaseRateLimitStore, InMemoryRateLimitStore, RateLimitStore

logger = logging.getLogger(__name__)

KeyFunc = Callable[[Request], str]


# ---------------------------------------------------------------------------
# Key strategies
# ---------------------------------------------------------------------------


def client_ip(request: Request) -> str:
    """
    Resolve the caller's IP: first ``X-Forwarded-For`` hop, then
    ``X-Real-IP``, then ``CF-Connecting-IP``, then the socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    for header in ("x-real-ip", "cf-connecting-ip"):
        value = request.headers.get(header, "").strip()
        if value:
            return value
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _user_id(request: Request) -> str | None:
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return str(user_id)
    header = request.headers.get("x-user-id", "").strip()
    return header or None


def ip_key(request: Request) -> str:
    return f"ip:{client_ip(request)}"


def user_key(request: Request) -> str:
    user_id = _user_id(request)
    return f"user:{user_id}" if user_id else ip_key(request)


def tenant_key(request: Request) -> str:
    tenant_id = request.headers.get("x-tenant-id", "").strip()
    return f"tenant:{tenant_id}" if tenant_id else ip_key(request)


def endpoint_key(request: Request) -> str:
    return f"endpoint:{request.method}:{request.url.path}"


def combined_key(request: Request) -> str:
    return f"combined:{client_ip(request)}:{_user_id(request) or 'anonymous'}"


KEY_STRATEGIES: dict[str, KeyFunc] = {
    "ip": ip_key,
    "user": user_key,
    "tenant": tenant_key,
    "endpoint": endpoint_key,
    "combined": combined_key,
}


# ---------------------------------------------------------------------------
# Dependency
# ---------------------------------------------------------------------------


class RateLimitDependency:
    def __init__(
        self,
        limiter: FixedWindowRateLimiter,
        *,
        key_func: KeyFunc = ip_key,
        enabled: bool = True,
    ) -> None:
        self._limiter = limiter
        self._key_func = key_func
        self._enabled = enabled

    def __call__(self, request: Request, response: Response) -> None:
        if not self._enabled:
            return

        key = self._key_func(request)
        decision = self._limiter.hit(key)
        if decision.allowed:
            response.headers.update(decision.headers())
            return

        logger.info("Rate limit exceeded key=%s retry_after=%ss", key, decision.retry_after_seconds)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Too many requests, please try again later.",
                "code": "RATE_LIMIT_EXCEEDED",
                "retryAfter": decision.retry_after_seconds,
                "resetTime": decision.reset_at_iso,
            },
            headers=decision.headers(),
        )


def _build_store(backend: str) -> RateLimitStore:
    if backend == "database":
        from db.session import SessionLocal

        return DatabaseRateLimitStore(SessionLocal)
    return InMemoryRateLimitStore()


@lru_cache(maxsize=1)
def get_rate_limiter() -> FixedWindowRateLimiter:
    settings = get_rate_limit_settings()
    return FixedWindowRateLimiter(
        store=_build_store(settings.store),
        limit=settings.max_requests,
        window_seconds=settings.window_seconds,
    )


@lru_cache(maxsize=1)
def get_rate_limit_dependency() -> RateLimitDependency:
    settings = get_rate_limit_settings()
    return RateLimitDependency(
        get_rate_limiter(),
        key_func=KEY_STRATEGIES[settings.key_strategy],
        enabled=settings.enabled,
    )


def enforce_rate_limit(request: Request, response: Response) -> None:
    """
    Router-level dependency. Resolves the configured limiter on first use,
    so importing a router never reads rate limit settings.
    """
    get_rate_limit_dependency()(request, response)
