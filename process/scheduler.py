"""Periodic feed polling, switchable on and off at runtime."""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

log = logging.getLogger(__name__)

JOB_ID = "feed_cycle"
DEFAULT_INTERVAL = 60  # seconds


class FeedScheduler:
    """Owns the running/stopped state of the polling loop.

    ``start()`` while already running is a no-op; ``stop()`` lets an
    in-flight cycle finish and prevents any further one.
    """

    def __init__(self, cycle: Callable[[], Any], interval: float = DEFAULT_INTERVAL) -> None:
        self._cycle = cycle
        self._interval = interval
        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._lock = threading.Lock()
        self._running = False

    @property
    def interval(self) -> float:
        return self._interval

    def is_running(self) -> bool:
        return self._running

    def _tick(self) -> None:
        if not self._running:
            return
        try:
            self._cycle()
        except Exception:
            log.exception("Feed cycle failed – will retry on next tick")

    def start(self) -> bool:
        """Begin polling now and every *interval* seconds.  False if already running."""
        with self._lock:
            if self._running:
                log.info("Feed scheduler already running – start ignored")
                return False
            if not self._scheduler.running:
                self._scheduler.start()
            self._running = True
            try:
                self._scheduler.add_job(
                    self._tick,
                    "interval",
                    seconds=self._interval,
                    id=JOB_ID,
                    name="Feed polling cycle",
                    max_instances=1,
                    coalesce=True,
                    replace_existing=True,
                    next_run_time=datetime.now(timezone.utc),
                )
            except Exception:
                self._running = False
                raise
        log.info("Feed scheduler started (every %ss)", self._interval)
        return True

    def stop(self) -> bool:
        """Stop scheduling cycles.  False if it was not running."""
        with self._lock:
            if not self._running:
                return False
            self._running = False
            try:
                self._scheduler.remove_job(JOB_ID)
            except JobLookupError:
                pass
        log.info("Feed scheduler stopped")
        return True

    def shutdown(self) -> None:
        """Stop and release the scheduler thread."""
        self.stop()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def run_blocking(self) -> None:
        """Start and block the calling thread until interrupted."""
        self.start()
        try:
            while self._running:
                time.sleep(1.0)
        except (KeyboardInterrupt, SystemExit):
            log.info("Scheduler interrupted")
        finally:
            self.shutdown()
