"""Periodic kiosk work on APScheduler's asyncio scheduler.

The runtime registers three heartbeats: queue autosync, connectivity probe
and summary refresh. Jobs run as coroutines on the kiosk's own event loop,
interleaved with taps; a tick that is still waiting on the network is not
started a second time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

AsyncCallback = Callable[[], Coroutine[Any, Any, Any]]

HEARTBEAT_PREFIX = "heartbeat:"


class KioskScheduler:
    def __init__(self) -> None:
        self._scheduler = AsyncIOScheduler()
        self._intervals: dict[str, float] = {}
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def job_ids(self) -> list[str]:
        return list(self._intervals)

    def add_heartbeat(self, name: str, interval_seconds: float, callback: AsyncCallback) -> str:
        """Call ``callback`` every ``interval_seconds``; returns ``heartbeat:<name>``.

        A name can be registered once; the interval has to be positive.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        schedule_id = f"{HEARTBEAT_PREFIX}{name}"
        if schedule_id in self._intervals:
            raise ValueError(f"schedule '{schedule_id}' already registered")

        self._scheduler.add_job(
            self._safe_invoke(callback, schedule_id),
            trigger=IntervalTrigger(seconds=interval_seconds),
            id=schedule_id,
            name=f"kiosk-{name}",
            max_instances=1,
            coalesce=True,
        )
        self._intervals[schedule_id] = interval_seconds
        logger.info("Heartbeat %s every %ss", schedule_id, interval_seconds)
        return schedule_id

    def remove_schedule(self, schedule_id: str) -> None:
        if schedule_id not in self._intervals:
            raise KeyError(f"unknown schedule: {schedule_id}")
        try:
            self._scheduler.remove_job(schedule_id)
        except Exception:  # noqa: BLE001
            # Gone already if APScheduler dropped it on shutdown.
            logger.debug("Job %s was not in APScheduler", schedule_id)
        del self._intervals[schedule_id]
        logger.info("Heartbeat %s removed", schedule_id)

    def start(self) -> None:
        """No-op when already running. Needs a running event loop."""
        if self._running:
            return
        self._scheduler.start()
        self._running = True
        logger.info("Scheduler running %d heartbeats", len(self._intervals))

    def stop(self) -> None:
        """Shut down without waiting for in-flight ticks and forget every job."""
        if not self._running:
            return
        self._scheduler.shutdown(wait=False)
        self._intervals.clear()
        self._running = False
        logger.info("Scheduler stopped")

    def _safe_invoke(self, callback: AsyncCallback, schedule_id: str) -> AsyncCallback:
        async def _tick() -> None:
            try:
                await callback()
            except Exception:
                logger.exception("Heartbeat %s failed; next tick still scheduled", schedule_id)

        return _tick


__all__ = ["HEARTBEAT_PREFIX", "AsyncCallback", "KioskScheduler"]
