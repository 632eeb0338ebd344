"""
app/scheduler/jobs.py

APScheduler-based scheduler for the nightly batch pipeline.

Schedule (all times UTC, configurable through SchedulerSettings)
-----------------------------------------------------------------
  nightly_etl        - 02:00 every day, full refresh of every table
  profile_rebuild    - 04:00 every day, after the refresh has landed
  rate_limit_sweep   - every RATE_LIMIT_SWEEP_SECONDS, drops expired windows

Both batch jobs go through ``PipelineService``, which refuses to start a
run while the same kind of run (manual or scheduled) is still going.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_rate_limit_settings, get_scheduler_settings
from app.ratelimit import get_rate_limiter
from app.services.pipeline_service import PipelineBusyError, PipelineService, get_pipeline_service
from db.models.etl_run_log import EtlLoadStatus

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: Nightly ETL refresh
# ---------------------------------------------------------------------------


def run_nightly_etl(service: PipelineService | None = None) -> None:
    """
    Load every table from the staging directory. Per-table failures are
    already recorded in the run log; this job only summarises them.
    """
    logger.info("Scheduler: nightly_etl starting")
    pipeline = service or get_pipeline_service()
    try:
        results = pipeline.run_etl()
    except PipelineBusyError as exc:
        logger.warning("Scheduler: nightly_etl skipped: %s", exc)
        return

    failed = [result.table for result in results if result.status == EtlLoadStatus.FAILED]
    if failed:
        logger.warning("Scheduler: nightly_etl failed tables=%s", failed)
    logger.info("Scheduler: nightly_etl complete tables=%d", len(results))


# ---------------------------------------------------------------------------
# Job: Profile rebuild
# ---------------------------------------------------------------------------


def run_profile_rebuild(service: PipelineService | None = None) -> None:
    logger.info("Scheduler: profile_rebuild starting")
    pipeline = service or get_pipeline_service()
    try:
        summary = pipeline.run_profile_rebuild()
    except PipelineBusyError as exc:
        logger.warning("Scheduler: profile_rebuild skipped: %s", exc)
        return
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: profile_rebuild failed: %s", exc)
        return

    logger.info(
        "Scheduler: profile_rebuild complete profiles=%d ueis=%d deactivated=%d errors=%d",
        summary.profiles_created,
        summary.ueis_mapped,
        summary.profiles_deactivated,
        len(summary.errors),
    )


# ---------------------------------------------------------------------------
# Job: Rate limit window sweep
# ---------------------------------------------------------------------------


def run_rate_limit_sweep() -> None:
    try:
        removed = get_rate_limiter().sweep()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: rate_limit_sweep failed: %s", exc)
        return
    if removed:
        logger.debug("Scheduler: rate_limit_sweep removed=%d", removed)


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_nightly_etl,
        trigger="cron",
        hour=settings.etl_hour,
        minute=settings.etl_minute,
        id="nightly_etl",
        name="Nightly Snowflake export refresh",
        replace_existing=True,
        misfire_grace_time=3600,
        max_instances=1,
    )
    scheduler.add_job(
        run_profile_rebuild,
        trigger="cron",
        hour=settings.profile_hour,
        minute=settings.profile_minute,
        id="profile_rebuild",
        name="Contractor profile rebuild",
        replace_existing=True,
        misfire_grace_time=3600,
        max_instances=1,
    )

    rate_limit = get_rate_limit_settings()
    if rate_limit.enabled:
        scheduler.add_job(
            run_rate_limit_sweep,
            trigger="interval",
            seconds=rate_limit.sweep_interval_seconds,
            id="rate_limit_sweep",
            name="Expired rate limit window sweep",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )

    return scheduler
