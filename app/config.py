"""
app/config.py

Settings for the loaders, the profile rebuild, rate limiting and the
scheduler. Each group is a frozen dataclass read once from the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from db.config import env_bool, env_int, load_env_files

_RATE_LIMIT_KEY_STRATEGIES = {"ip", "user", "tenant", "endpoint", "combined"}
_RATE_LIMIT_STORES = {"memory", "database"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    _load_env_once()
    return env_bool(name, default)


def _get_int_env(name: str, default: int) -> int:
    _load_env_once()
    return env_int(name, default)


def _get_optional_int_env(name: str) -> int | None:
    """Unset, blank or non-numeric values mean "no override"."""
    _load_env_once()
    raw_value = os.getenv(name, "").strip()
    if not raw_value:
        return None
    try:
        return int(raw_value)
    except ValueError:
        return None


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    try:
        return float(os.environ[name])
    except (KeyError, ValueError):
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = (os.getenv(name) or "").strip()
    return value or default


def _get_choice_env(name: str, default: str, allowed: set[str]) -> str:
    value = _get_str_env(name, default).lower()
    if value not in allowed:
        raise RuntimeError(
            f"{name}='{value}' is not valid. Allowed values: {sorted(allowed)}."
        )
    return value


@dataclass(frozen=True)
class ETLSettings:
    """
    Runtime settings for the Snowflake export loaders.

    ``batch_size`` overrides every table's own batch size when set.
    """

    data_dir: Path = Path("data/snowflake-staging")
    batch_size: int | None = None
    loaded_by: str = "snowflake-loader"
    load_type: str = "full"
    max_error_messages: int = 100


@dataclass(frozen=True)
class ProfileAggregationSettings:
    """
    Runtime settings for the contractor profile rebuild.
    """

    commit_every: int = 100
    incremental_lookback_hours: int = 24


@dataclass(frozen=True)
class RateLimitSettings:
    """
    Fixed-window API rate limiting.
    """

    enabled: bool = True
    max_requests: int = 100
    window_seconds: float = 60.0
    key_strategy: str = "ip"
    store: str = "memory"
    sweep_interval_seconds: int = 60


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Nightly batch schedule (UTC hours).
    """

    enabled: bool = True
    etl_hour: int = 2
    etl_minute: int = 0
    profile_hour: int = 4
    profile_minute: int = 0


@lru_cache(maxsize=1)
def get_etl_settings() -> ETLSettings:
    """
    Return cached ETL settings from environment variables.
    """

    batch_size = _get_optional_int_env("ETL_BATCH_SIZE")
    return ETLSettings(
        data_dir=Path(_get_str_env("ETL_DATA_DIR", "data/snowflake-staging")),
        batch_size=max(1, batch_size) if batch_size is not None else None,
        loaded_by=_get_str_env("ETL_LOADED_BY", "snowflake-loader"),
        load_type=_get_str_env("ETL_LOAD_TYPE", "full"),
        max_error_messages=max(1, _get_int_env("ETL_MAX_ERROR_MESSAGES", 100)),
    )


@lru_cache(maxsize=1)
def get_profile_aggregation_settings() -> ProfileAggregationSettings:
    """
    Return cached profile aggregation settings.
    """

    return ProfileAggregationSettings(
        commit_every=max(1, _get_int_env("PROFILE_COMMIT_EVERY", 100)),
        incremental_lookback_hours=max(1, _get_int_env("PROFILE_INCREMENTAL_LOOKBACK_HOURS", 24)),
    )


@lru_cache(maxsize=1)
def get_rate_limit_settings() -> RateLimitSettings:
    """
    Return cached rate limit settings.

    Raises RuntimeError on an unknown key strategy or store backend.
    """

    return RateLimitSettings(
        enabled=_get_bool_env("RATE_LIMIT_ENABLED", True),
        max_requests=max(1, _get_int_env("RATE_LIMIT_MAX_REQUESTS", 100)),
        window_seconds=max(0.001, _get_float_env("RATE_LIMIT_WINDOW_SECONDS", 60.0)),
        key_strategy=_get_choice_env("RATE_LIMIT_KEY_STRATEGY", "ip", _RATE_LIMIT_KEY_STRATEGIES),
        store=_get_choice_env("RATE_LIMIT_STORE", "memory", _RATE_LIMIT_STORES),
        sweep_interval_seconds=max(1, _get_int_env("RATE_LIMIT_SWEEP_SECONDS", 60)),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return cached scheduler settings.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        etl_hour=_get_int_env("SCHEDULER_ETL_HOUR", 2) % 24,
        etl_minute=_get_int_env("SCHEDULER_ETL_MINUTE", 0) % 60,
        profile_hour=_get_int_env("SCHEDULER_PROFILE_HOUR", 4) % 24,
        profile_minute=_get_int_env("SCHEDULER_PROFILE_MINUTE", 0) % 60,
    )
