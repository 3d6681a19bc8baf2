"""
Background scan admission and graceful shutdown.

Scan requests are queued on a bounded asyncio.Queue and consumed by a fixed
set of worker tasks. InFlightTracker counts running scans and carries the
draining flag; shutdown() stops admission and waits for in-flight scans up to
a time budget before giving up on them.
"""
import asyncio
import contextlib
from typing import Iterable, List, Optional

from app.features.scan.schemas.scan import ScanJob
from app.features.scan.services.errors import QueueFull, ShutdownInProgress
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)


class InFlightTracker:
    """Process-wide in-flight counter plus draining flag, guarded by one condition."""

    def __init__(self):
        self._count = 0
        self._draining = False
        self._changed = asyncio.Condition()

    @property
    def count(self) -> int:
        return self._count

    @property
    def draining(self) -> bool:
        return self._draining

    async def start_draining(self) -> None:
        async with self._changed:
            self._draining = True
            self._changed.notify_all()

    async def increment(self) -> None:
        async with self._changed:
            self._count += 1
            self._changed.notify_all()

    async def decrement(self) -> None:
        async with self._changed:
            self._count = max(0, self._count - 1)
            self._changed.notify_all()

    @contextlib.asynccontextmanager
    async def track(self):
        await self.increment()
        try:
            yield
        finally:
            # shielded so a cancelled worker still gives its slot back
            await asyncio.shield(self.decrement())

    async def wait_idle(self, timeout: float, poll_interval: float = 1.0) -> int:
        """
        Wait until nothing is in flight or ``timeout`` seconds pass.

        Wakes on every counter change and at least every ``poll_interval``
        seconds to log progress. Returns the number still in flight.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        async with self._changed:
            while self._count > 0:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                try:
                    await asyncio.wait_for(self._changed.wait(), timeout=min(poll_interval, remaining))
                except asyncio.TimeoutError:
                    logger.info(f"Waiting for {self._count} in-flight scan(s) to finish...")
            return self._count


class ScanJobController:

    def __init__(
        self,
        orchestrator,
        tracker: Optional[InFlightTracker] = None,
        worker_count: Optional[int] = None,
        queue_max_size: Optional[int] = None,
    ):
        self.orchestrator = orchestrator
        self.tracker = tracker or getattr(orchestrator, "tracker", None) or InFlightTracker()
        self.worker_count = max(1, worker_count or settings.SCAN_WORKER_COUNT)
        self.queue: asyncio.Queue = asyncio.Queue(
            maxsize=queue_max_size if queue_max_size is not None else settings.SCAN_QUEUE_MAX_SIZE
        )
        self._workers: List[asyncio.Task] = []

    @property
    def queue_depth(self) -> int:
        return self.queue.qsize()

    @property
    def in_flight(self) -> int:
        return self.tracker.count

    def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"scan-worker-{i}")
            for i in range(self.worker_count)
        ]
        logger.info(f"Started {self.worker_count} scan worker(s)")

    async def submit(self, job: ScanJob) -> str:
        """Queue a job without waiting for it to run. Returns the scan id."""
        if self.tracker.draining:
            error = ShutdownInProgress("Server is shutting down")
            await self.orchestrator.reject(job, error)
            raise error
        try:
            self.queue.put_nowait(job)
        except asyncio.QueueFull:
            error = QueueFull(f"Scan queue is full ({self.queue.maxsize} pending)")
            await self.orchestrator.reject(job, error)
            raise error
        logger.info(f"[{job.scan_id}] Queued (depth={self.queue_depth})")
        return job.scan_id

    async def _worker(self, index: int) -> None:
        while True:
            job = await self.queue.get()
            try:
                async with self.tracker.track():
                    await self.orchestrator.run(job)
            except Exception as e:
                logger.error(f"scan-worker-{index}: unexpected error on {job.scan_id}: {e}", exc_info=True)
            finally:
                self.queue.task_done()

    async def shutdown(self, timeout: Optional[float] = None, poll_interval: Optional[float] = None) -> int:
        """
        Stop admitting work, fail whatever is still queued and wait for the
        scans already running. Returns the number abandoned at the deadline.
        """
        timeout = settings.SHUTDOWN_TIMEOUT_SECONDS if timeout is None else timeout
        poll_interval = settings.SHUTDOWN_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval

        await self.tracker.start_draining()
        logger.info(f"Shutting down scan controller ({self.tracker.count} in flight, {self.queue_depth} queued)")

        while not self.queue.empty():
            job = self.queue.get_nowait()
            await self.orchestrator.reject(job, ShutdownInProgress("Server shut down before the scan started"))
            self.queue.task_done()

        abandoned = await self.tracker.wait_idle(timeout, poll_interval)
        if abandoned:
            logger.warning(f"Shutdown timeout reached, abandoning {abandoned} in-flight scan(s)")
        else:
            logger.info("All in-flight scans finished")

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        return abandoned


async def process_with_limit(orchestrator, jobs: Iterable[ScanJob], limit: int = 3) -> None:
    """Run jobs in consecutive windows of ``limit``, each window settling before the next starts."""
    jobs = list(jobs)
    limit = max(1, limit)
    for start in range(0, len(jobs), limit):
        window = jobs[start:start + limit]
        await asyncio.gather(*(orchestrator.run(job) for job in window), return_exceptions=True)
