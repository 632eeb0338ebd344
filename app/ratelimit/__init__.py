"""
app/ratelimit package marker.
"""

from app.ratelimit.dependency import (
    KEY_STRATEGIES,
    RateLimitDependency,
    client_ip,
    enforce_rate_limit,
    get_rate_limit_dependency,
    get_rate_limiter,
)
from app.ratelimit.limiter import FixedWindowRateLimiter, RateLimitDecision
from app.ratelimit.store import (
    DatabaseRateLimitStore,
    InMemoryRateLimitStore,
    RateLimitEntry,
    RateLimitStore,
)

__all__ = [
    "KEY_STRATEGIES",
    "RateLimitDependency",
    "client_ip",
    "enforce_rate_limit",
    "get_rate_limit_dependency",
    "get_rate_limiter",
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "DatabaseRateLimitStore",
    "InMemoryRateLimitStore",
    "RateLimitEntry",
    "RateLimitStore",
]
