"""
db/session.py

Engine and session factory for the contractor database.

The engine is created on first use so importing this module (routers,
scripts, tests with overridden dependencies) never needs a database URL.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import env_bool, env_int, load_env_files, resolve_database_url


@dataclass(frozen=True)
class EngineSettings:
    url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle: int = 1800
    application_name: str = "contractor-intelligence"


def load_engine_settings() -> EngineSettings:
    """
    Read engine settings from the environment.

    Raises RuntimeError when no URL is configured or the URL is not PostgreSQL;
    the loaders depend on ``ON CONFLICT`` and ``xmax``.
    """

    url = resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")
    load_env_files()
    return EngineSettings(
        url=url,
        echo=env_bool("SQL_ECHO", default=False),
        pool_size=env_int("DB_POOL_SIZE", 5),
        max_overflow=env_int("DB_MAX_OVERFLOW", 10),
        pool_recycle=env_int("DB_POOL_RECYCLE", 1800),
        application_name=os.getenv("DB_APPLICATION_NAME", "contractor-intelligence"),
    )


def create_db_engine(settings: EngineSettings | None = None) -> Engine:
    settings = settings or load_engine_settings()
    return create_engine(
        settings.url,
        echo=settings.echo,
        pool_pre_ping=True,
        pool_recycle=settings.pool_recycle,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        connect_args={"application_name": settings.application_name},
    )


_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def get_engine() -> Engine:
    """Return the shared engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def _get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


def SessionLocal() -> Session:
    """New session from the lazily built factory. Callers own commit and close."""
    return _get_session_factory()()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def dispose_engine() -> None:
    """Close pooled connections and forget the engine (API shutdown)."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
