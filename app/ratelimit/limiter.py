"""
app/ratelimit/limiter.py

Fixed-window request rate limiter.

Per key, the first request opens a window of ``window_seconds`` with a
count of 1. Requests inside the window are admitted while the count is
below ``limit`` and increment it; once the limit is reached they are
rejected and the count stays put. The first request at or after the reset
time opens a fresh window.
"""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.ratelimit.store import RateLimitEntry, RateLimitStore


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: int = 0

    @property
    def reset_at_iso(self) -> str:
        return datetime.fromtimestamp(self.reset_at, tz=timezone.utc).isoformat()

    def headers(self) -> dict[str, str]:
        headers = {
            "X-Rate-Limit-Limit": str(self.limit),
            "X-Rate-Limit-Remaining": str(self.remaining),
            "X-Rate-Limit-Reset": self.reset_at_iso,
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class FixedWindowRateLimiter:
    """
    Serializes the read-modify-write of one key at a time. Different keys
    never wait on each other, so a slow store round trip for one client does
    not stall the rest.
    """

    def __init__(
        self,
        *,
        store: RateLimitStore,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._store = store
        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._guard = threading.Lock()
        self._key_locks: dict[str, _KeyLock] = {}

    @property
    def limit(self) -> int:
        return self._limit

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request against ``key`` and decide whether to admit it."""
        with self._locked(key):
            now = self._clock()
            entry = self._store.get(key)

            if entry is None or now >= entry.reset_at:
                entry = RateLimitEntry(count=1, reset_at=now + self._window_seconds)
                self._store.put(key, entry)
                return self._admit(entry)

            if entry.count < self._limit:
                entry = RateLimitEntry(count=entry.count + 1, reset_at=entry.reset_at)
                self._store.put(key, entry)
                return self._admit(entry)

            return RateLimitDecision(
                allowed=False,
                limit=self._limit,
                remaining=0,
                reset_at=entry.reset_at,
                retry_after_seconds=max(1, math.ceil(entry.reset_at - now)),
            )

    def reset(self, key: str) -> None:
        self._store.delete(key)

    def sweep(self) -> int:
        return self._store.sweep(self._clock())

    @contextmanager
    def _locked(self, key: str) -> Iterator[None]:
        with self._guard:
            slot = self._key_locks.get(key)
            if slot is None:
                slot = self._key_locks[key] = _KeyLock()
            slot.users += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._guard:
                slot.users -= 1
                if slot.users == 0:
                    del self._key_locks[key]

    def _admit(self, entry: RateLimitEntry) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=True,
            limit=self._limit,
            remaining=max(0, self._limit - entry.count),
            reset_at=entry.reset_at,
        )
