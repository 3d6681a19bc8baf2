"""
Tests for background admission, in-flight tracking and graceful shutdown.
"""
import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.features.scan.models.scan import ScanStatus
from app.features.scan.services.errors import QueueFull, ShutdownInProgress
from app.features.scan.services.orchestration.job_controller import (
    InFlightTracker,
    ScanJobController,
    process_with_limit,
)

from scan_fakes import make_job


class SleepyOrchestrator:
    """Orchestrator stand-in whose run() takes ``duration`` seconds."""

    def __init__(self, duration: float = 0.0, tracker=None):
        self.duration = duration
        self.tracker = tracker
        self.started = []
        self.finished = []
        self.rejected = []
        self.running = 0
        self.max_running = 0

    async def run(self, job):
        self.started.append(job.scan_id)
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await asyncio.sleep(self.duration)
        finally:
            self.running -= 1
        self.finished.append(job.scan_id)

    async def reject(self, job, error):
        self.rejected.append((job.scan_id, error.reason))


class TestInFlightTracker:

    @pytest.mark.asyncio
    async def test_track_increments_and_decrements(self):
        tracker = InFlightTracker()
        async with tracker.track():
            assert tracker.count == 1
        assert tracker.count == 0

    @pytest.mark.asyncio
    async def test_track_decrements_on_error(self):
        tracker = InFlightTracker()
        with pytest.raises(RuntimeError):
            async with tracker.track():
                raise RuntimeError("scan blew up")
        assert tracker.count == 0

    @pytest.mark.asyncio
    async def test_wait_idle_returns_immediately_when_idle(self):
        tracker = InFlightTracker()
        start = time.monotonic()
        assert await tracker.wait_idle(timeout=5, poll_interval=1) == 0
        assert time.monotonic() - start < 0.5

    @pytest.mark.asyncio
    async def test_wait_idle_gives_up_at_deadline(self):
        tracker = InFlightTracker()
        await tracker.increment()
        start = time.monotonic()

        remaining = await tracker.wait_idle(timeout=0.3, poll_interval=0.1)

        assert remaining == 1
        assert 0.25 <= time.monotonic() - start < 1.0


class TestScanJobController:

    @pytest.mark.asyncio
    async def test_submit_does_not_wait_for_the_scan(self):
        tracker = InFlightTracker()
        orchestrator = SleepyOrchestrator(duration=0.2, tracker=tracker)
        controller = ScanJobController(orchestrator, tracker, worker_count=1, queue_max_size=10)
        controller.start()

        start = time.monotonic()
        scan_id = await controller.submit(make_job("scan-1"))
        assert scan_id == "scan-1"
        assert time.monotonic() - start < 0.1

        await controller.shutdown(timeout=2, poll_interval=0.05)
        assert orchestrator.finished == ["scan-1"]

    @pytest.mark.asyncio
    async def test_worker_count_bounds_concurrency(self):
        tracker = InFlightTracker()
        orchestrator = SleepyOrchestrator(duration=0.05, tracker=tracker)
        controller = ScanJobController(orchestrator, tracker, worker_count=2, queue_max_size=10)
        controller.start()

        for i in range(6):
            await controller.submit(make_job(f"scan-{i}"))
        await controller.queue.join()

        assert orchestrator.max_running == 2
        assert sorted(orchestrator.finished) == sorted(f"scan-{i}" for i in range(6))
        await controller.shutdown(timeout=1, poll_interval=0.05)

    @pytest.mark.asyncio
    async def test_full_queue_rejects_with_queue_full(self):
        tracker = InFlightTracker()
        orchestrator = SleepyOrchestrator(tracker=tracker)
        # workers not started, so nothing drains the queue
        controller = ScanJobController(orchestrator, tracker, worker_count=1, queue_max_size=1)

        await controller.submit(make_job("scan-1"))
        with pytest.raises(QueueFull):
            await controller.submit(make_job("scan-2"))

        assert controller.queue_depth == 1
        assert orchestrator.rejected == [("scan-2", "queue_full")]

    @pytest.mark.asyncio
    async def test_draining_rejects_new_jobs(self):
        tracker = InFlightTracker()
        orchestrator = SleepyOrchestrator(tracker=tracker)
        controller = ScanJobController(orchestrator, tracker, worker_count=1, queue_max_size=10)
        controller.start()
        await controller.shutdown(timeout=1, poll_interval=0.05)

        with pytest.raises(ShutdownInProgress):
            await controller.submit(make_job("late"))
        assert orchestrator.rejected == [("late", "server_shutdown")]

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_in_flight_jobs_then_returns(self):
        """Two jobs finishing within ~0.3s: shutdown returns after them, well before the ceiling."""
        tracker = InFlightTracker()
        orchestrator = SleepyOrchestrator(duration=0.3, tracker=tracker)
        controller = ScanJobController(orchestrator, tracker, worker_count=2, queue_max_size=10)
        controller.start()
        await controller.submit(make_job("scan-1"))
        await controller.submit(make_job("scan-2"))
        await asyncio.sleep(0.05)
        assert controller.in_flight == 2

        start = time.monotonic()
        abandoned = await controller.shutdown(timeout=10, poll_interval=0.1)
        elapsed = time.monotonic() - start

        assert abandoned == 0
        assert 0.2 <= elapsed < 2.0
        assert sorted(orchestrator.finished) == ["scan-1", "scan-2"]

    @pytest.mark.asyncio
    async def test_shutdown_abandons_jobs_past_the_deadline(self):
        tracker = InFlightTracker()
        orchestrator = SleepyOrchestrator(duration=5, tracker=tracker)
        controller = ScanJobController(orchestrator, tracker, worker_count=1, queue_max_size=10)
        controller.start()
        await controller.submit(make_job("slow"))
        await asyncio.sleep(0.05)

        start = time.monotonic()
        abandoned = await controller.shutdown(timeout=0.3, poll_interval=0.1)

        assert abandoned == 1
        assert time.monotonic() - start < 2.0

    @pytest.mark.asyncio
    async def test_shutdown_fails_jobs_still_queued(self):
        tracker = InFlightTracker()
        orchestrator = SleepyOrchestrator(duration=0.2, tracker=tracker)
        controller = ScanJobController(orchestrator, tracker, worker_count=1, queue_max_size=10)
        controller.start()
        await controller.submit(make_job("running"))
        await controller.submit(make_job("waiting"))
        await asyncio.sleep(0.05)

        await controller.shutdown(timeout=2, poll_interval=0.05)

        assert orchestrator.finished == ["running"]
        assert orchestrator.rejected == [("waiting", "server_shutdown")]

    @pytest.mark.asyncio
    async def test_worker_survives_orchestrator_error(self):
        tracker = InFlightTracker()
        orchestrator = MagicMock()
        orchestrator.tracker = tracker
        orchestrator.run = AsyncMock(side_effect=[RuntimeError("unexpected"), None])
        controller = ScanJobController(orchestrator, tracker, worker_count=1, queue_max_size=10)
        controller.start()

        await controller.submit(make_job("scan-1"))
        await controller.submit(make_job("scan-2"))
        await controller.queue.join()

        assert orchestrator.run.await_count == 2
        assert tracker.count == 0
        await controller.shutdown(timeout=1, poll_interval=0.05)


class TestProcessWithLimit:

    @pytest.mark.asyncio
    async def test_runs_in_windows(self):
        orchestrator = SleepyOrchestrator(duration=0.02)
        jobs = [make_job(f"scan-{i}") for i in range(7)]

        await process_with_limit(orchestrator, jobs, limit=3)

        assert orchestrator.max_running == 3
        assert len(orchestrator.finished) == 7

    @pytest.mark.asyncio
    async def test_updates_real_orchestrator_records(self, memory_store, session_manager):
        from app.features.scan.services.orchestration.scan_orchestrator import ScanOrchestrator
        from scan_fakes import make_checkers

        for i in range(4):
            memory_store.add_scan(f"scan-{i}")
        orchestrator = ScanOrchestrator(memory_store, session_manager, make_checkers())

        await process_with_limit(orchestrator, [make_job(f"scan-{i}") for i in range(4)], limit=2)

        assert all(scan.status == ScanStatus.completed for scan in memory_store.scans.values())
        assert len(session_manager.release_calls) == 4
