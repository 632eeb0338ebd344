"""
tests/test_config.py

Environment-driven settings.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from app import config


@pytest.fixture(autouse=True)
def _clear_caches():
    for getter in (
        config.get_etl_settings,
        config.get_profile_aggregation_settings,
        config.get_rate_limit_settings,
        config.get_scheduler_settings,
    ):
        getter.cache_clear()
    yield
    for getter in (
        config.get_etl_settings,
        config.get_profile_aggregation_settings,
        config.get_rate_limit_settings,
        config.get_scheduler_settings,
    ):
        getter.cache_clear()


def test_etl_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("ETL_DATA_DIR", "ETL_BATCH_SIZE", "ETL_LOADED_BY", "ETL_LOAD_TYPE"):
        monkeypatch.delenv(name, raising=False)

    settings = config.get_etl_settings()

    assert settings.data_dir == Path("data/snowflake-staging")
    assert settings.batch_size is None
    assert settings.loaded_by == "snowflake-loader"
    assert settings.load_type == "full"


def test_etl_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ETL_DATA_DIR", "/exports")
    monkeypatch.setenv("ETL_BATCH_SIZE", "0")
    monkeypatch.setenv("ETL_MAX_ERROR_MESSAGES", "not-a-number")

    settings = config.get_etl_settings()

    assert settings.data_dir == Path("/exports")
    assert settings.batch_size == 1
    assert settings.max_error_messages == 100


def test_rate_limit_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "25")
    monkeypatch.setenv("RATE_LIMIT_KEY_STRATEGY", "Endpoint")
    monkeypatch.setenv("RATE_LIMIT_STORE", "database")

    settings = config.get_rate_limit_settings()

    assert settings.enabled is False
    assert settings.max_requests == 25
    assert settings.key_strategy == "endpoint"
    assert settings.store == "database"


def test_unknown_key_strategy_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_KEY_STRATEGY", "cookie")

    with pytest.raises(RuntimeError, match="RATE_LIMIT_KEY_STRATEGY"):
        config.get_rate_limit_settings()


def test_scheduler_hours_wrap(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCHEDULER_ETL_HOUR", "26")
    monkeypatch.delenv("SCHEDULER_PROFILE_HOUR", raising=False)

    settings = config.get_scheduler_settings()

    assert settings.etl_hour == 2
    assert settings.profile_hour == 4


def test_profile_settings_read_lookback(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROFILE_COMMIT_EVERY", "25")
    monkeypatch.setenv("PROFILE_INCREMENTAL_LOOKBACK_HOURS", "0")

    settings = config.get_profile_aggregation_settings()

    assert settings.commit_every == 25
    assert settings.incremental_lookback_hours == 1
