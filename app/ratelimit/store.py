"""
app/ratelimit/store.py

Storage backends for fixed-window rate limit counters.

A store is a plain key/value map from limiter key to ``RateLimitEntry``;
the window state machine lives in ``FixedWindowRateLimiter``. The in-memory
store serves a single process. ``DatabaseRateLimitStore`` shares counters
between API instances through the ``rate_limit_windows`` table; its
read-then-write is not atomic across instances, so concurrent bursts may
admit a few requests over the limit.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import Executable, delete
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.rate_limit_window import RateLimitWindow


@dataclass(frozen=True)
class RateLimitEntry:
    count: int
    reset_at: float  # epoch seconds


class RateLimitStore(ABC):
    @abstractmethod
    def get(self, key: str) -> RateLimitEntry | None:
        raise NotImplementedError

    @abstractmethod
    def put(self, key: str, entry: RateLimitEntry) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: float) -> int:
        """Drop entries whose window has ended; return how many were dropped."""
        raise NotImplementedError


class InMemoryRateLimitStore(RateLimitStore):
    def __init__(self) -> None:
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> RateLimitEntry | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, entry: RateLimitEntry) -> None:
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def sweep(self, now: float) -> int:
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.reset_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class DatabaseRateLimitStore(RateLimitStore):
    """
    Counters persisted in PostgreSQL. Each call opens and commits its own
    short session from ``session_factory``.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, key: str) -> RateLimitEntry | None:
        session = self._session_factory()
        try:
            row = session.get(RateLimitWindow, key)
            if row is None:
                return None
            return RateLimitEntry(count=row.count, reset_at=row.reset_at.timestamp())
        finally:
            session.close()

    def put(self, key: str, entry: RateLimitEntry) -> None:
        reset_at = datetime.fromtimestamp(entry.reset_at, tz=timezone.utc)
        stmt = insert(RateLimitWindow).values(key=key, count=entry.count, reset_at=reset_at)
        stmt = stmt.on_conflict_do_update(
            index_elements=[RateLimitWindow.key],
            set_={"count": stmt.excluded.count, "reset_at": stmt.excluded.reset_at},
        )
        self._execute(stmt)

    def delete(self, key: str) -> None:
        self._execute(delete(RateLimitWindow).where(RateLimitWindow.key == key))

    def sweep(self, now: float) -> int:
        cutoff = datetime.fromtimestamp(now, tz=timezone.utc)
        return self._execute(delete(RateLimitWindow).where(RateLimitWindow.reset_at <= cutoff))

    def _execute(self, stmt: Executable) -> int:
        session = self._session_factory()
        try:
            result = session.execute(stmt)
            session.commit()
            return int(getattr(result, "rowcount", 0) or 0)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
