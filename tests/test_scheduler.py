"""Tests for newsreel.scheduler — interval scheduling of aggregation."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from apscheduler.triggers.interval import IntervalTrigger

from newsreel.config import Config
from newsreel.scheduler import (
    AGGREGATION_JOB_ID,
    _scheduled_aggregation,
    build_scheduler,
    stop_scheduler,
)


def _config(**overrides) -> Config:
    defaults = {"database_path": ":memory:", "poll_interval_minutes": 5}
    defaults.update(overrides)
    return Config(**defaults)


class TestBuildScheduler:
    def test_single_interval_job(self):
        scheduler = build_scheduler(_config(poll_interval_minutes=7), threading.Event())
        jobs = scheduler.get_jobs()
        assert len(jobs) == 1
        job = jobs[0]
        assert job.id == AGGREGATION_JOB_ID
        assert isinstance(job.trigger, IntervalTrigger)
        assert job.trigger.interval == timedelta(minutes=7)

    def test_first_run_is_immediate(self):
        before = datetime.now(timezone.utc)
        scheduler = build_scheduler(_config(), threading.Event())
        job = scheduler.get_job(AGGREGATION_JOB_ID)
        assert job.next_run_time <= before + timedelta(seconds=5)

    def test_never_overlaps(self):
        scheduler = build_scheduler(_config(), threading.Event())
        job = scheduler.get_job(AGGREGATION_JOB_ID)
        assert job.max_instances == 1
        assert job.coalesce is True

    def test_passes_config_and_stop_event(self):
        config = _config()
        stop_event = threading.Event()
        job = build_scheduler(config, stop_event).get_job(AGGREGATION_JOB_ID)
        assert list(job.args) == [config, stop_event]


class TestScheduledAggregation:
    def test_runs_with_cancel_event(self):
        config = _config()
        stop_event = threading.Event()
        with patch("newsreel.scheduler.run_aggregation") as mock_run:
            _scheduled_aggregation(config, stop_event)
        mock_run.assert_called_once_with(config, cancel_event=stop_event)

    def test_failure_is_logged_not_raised(self, caplog):
        with patch("newsreel.scheduler.run_aggregation", side_effect=RuntimeError("db gone")):
            _scheduled_aggregation(_config(), threading.Event())
        assert "Aggregation run failed" in caplog.text


class TestStopScheduler:
    def test_sets_event_and_waits(self):
        scheduler = MagicMock()
        scheduler.running = True
        stop_event = threading.Event()

        stop_scheduler(scheduler, stop_event)

        assert stop_event.is_set()
        scheduler.shutdown.assert_called_once_with(wait=True)

    def test_not_running_skips_shutdown(self):
        scheduler = MagicMock()
        scheduler.running = False
        stop_scheduler(scheduler, threading.Event())
        scheduler.shutdown.assert_not_called()
