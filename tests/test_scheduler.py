"""Heartbeat registration, lifecycle and failing ticks of KioskScheduler."""

from __future__ import annotations

import logging

import pytest
from feedback_kiosk.scheduler.ap_scheduler import KioskScheduler

from tests.helpers import wait_until


@pytest.fixture
def scheduler() -> KioskScheduler:
    return KioskScheduler()


async def noop() -> None:
    pass


class TestSchedulerLifecycle:
    def test_initial_state(self, scheduler: KioskScheduler) -> None:
        assert not scheduler.running
        assert scheduler.job_ids == []

    async def test_start_stop(self, scheduler: KioskScheduler) -> None:
        scheduler.start()
        assert scheduler.running
        scheduler.stop()
        assert not scheduler.running

    async def test_start_is_idempotent(self, scheduler: KioskScheduler) -> None:
        scheduler.start()
        scheduler.start()
        assert scheduler.running
        scheduler.stop()

    def test_stop_is_idempotent(self, scheduler: KioskScheduler) -> None:
        scheduler.stop()
        assert not scheduler.running


class TestHeartbeat:
    def test_add_heartbeat(self, scheduler: KioskScheduler) -> None:
        sid = scheduler.add_heartbeat("autosync", 30, noop)
        assert sid == "heartbeat:autosync"
        assert "heartbeat:autosync" in scheduler.job_ids

    def test_duplicate_heartbeat_raises(self, scheduler: KioskScheduler) -> None:
        scheduler.add_heartbeat("autosync", 30, noop)
        with pytest.raises(ValueError, match="already registered"):
            scheduler.add_heartbeat("autosync", 60, noop)

    @pytest.mark.parametrize("interval", [0, -10])
    def test_non_positive_interval_raises(self, scheduler: KioskScheduler, interval: int) -> None:
        with pytest.raises(ValueError, match="must be > 0"):
            scheduler.add_heartbeat("autosync", interval, noop)


class TestRemoveSchedule:
    def test_remove_existing(self, scheduler: KioskScheduler) -> None:
        scheduler.add_heartbeat("connectivity", 15, noop)
        scheduler.remove_schedule("heartbeat:connectivity")
        assert "heartbeat:connectivity" not in scheduler.job_ids

    def test_remove_unknown_raises(self, scheduler: KioskScheduler) -> None:
        with pytest.raises(KeyError, match="unknown schedule"):
            scheduler.remove_schedule("nonexistent")


class TestCallbackExecution:
    async def test_heartbeat_fires(self, scheduler: KioskScheduler) -> None:
        call_count = 0

        async def counter() -> None:
            nonlocal call_count
            call_count += 1

        scheduler.add_heartbeat("test", 0.1, counter)
        scheduler.start()

        await wait_until(lambda: call_count >= 1, timeout=1.0)

        scheduler.stop()
        assert call_count >= 1

    async def test_failing_tick_does_not_stop_others(self, scheduler: KioskScheduler) -> None:
        healthy_count = 0

        async def failing() -> None:
            raise RuntimeError("boom")

        async def healthy() -> None:
            nonlocal healthy_count
            healthy_count += 1

        scheduler.add_heartbeat("bad", 0.1, failing)
        scheduler.add_heartbeat("good", 0.1, healthy)
        scheduler.start()

        await wait_until(lambda: healthy_count >= 2, timeout=1.5)

        scheduler.stop()
        assert healthy_count >= 2

    async def test_stop_clears_all_jobs(self, scheduler: KioskScheduler) -> None:
        scheduler.add_heartbeat("autosync", 30, noop)
        scheduler.add_heartbeat("summary", 15, noop)
        assert len(scheduler.job_ids) == 2

        scheduler.start()
        scheduler.stop()

        assert scheduler.job_ids == []

    async def test_failing_tick_is_logged_with_its_name(
        self, scheduler: KioskScheduler, caplog: pytest.LogCaptureFixture
    ) -> None:
        async def failing() -> None:
            raise RuntimeError("ping timed out")

        scheduler.add_heartbeat("connectivity", 0.1, failing)
        with caplog.at_level(logging.ERROR, logger="feedback_kiosk.scheduler.ap_scheduler"):
            scheduler.start()
            await wait_until(lambda: "heartbeat:connectivity failed" in caplog.text, timeout=1.5)
            scheduler.stop()

        assert "ping timed out" in caplog.text
