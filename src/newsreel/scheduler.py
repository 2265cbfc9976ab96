"""Background scheduling of the aggregation job."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from newsreel.config import Config
from newsreel.jobs import run_aggregation

logger = logging.getLogger(__name__)

AGGREGATION_JOB_ID = "aggregation"


def _scheduled_aggregation(config: Config, cancel_event: threading.Event) -> None:
    """Run one aggregation cycle; log failures so the next tick still fires."""
    try:
        run_aggregation(config, cancel_event=cancel_event)
    except Exception:
        logger.exception("Aggregation run failed; will retry on next tick")


def build_scheduler(config: Config, stop_event: threading.Event) -> BackgroundScheduler:
    """Create a BackgroundScheduler running aggregation now and then on an interval.

    At most one instance of the job runs at a time; ticks missed while a run
    is still going are coalesced into one.
    """
    scheduler = BackgroundScheduler(timezone=timezone.utc)
    scheduler.add_job(
        _scheduled_aggregation,
        trigger=IntervalTrigger(minutes=config.poll_interval_minutes),
        args=[config, stop_event],
        id=AGGREGATION_JOB_ID,
        name="News aggregation",
        next_run_time=datetime.now(timezone.utc),
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def stop_scheduler(scheduler: BackgroundScheduler, stop_event: threading.Event) -> None:
    """Signal the running job to stop after its current source, then wait for it."""
    stop_event.set()
    if scheduler.running:
        scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
