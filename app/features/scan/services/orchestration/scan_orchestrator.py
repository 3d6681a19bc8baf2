"""
Scan orchestration.

Drives one ScanJob end-to-end: acquire a browser session, run the three
checkers against it concurrently, release the session once all of them have
settled, then persist the findings and roll up batch progress. run() is
called from background workers and never raises.
"""
from typing import Any, Dict, List, Optional

from app.features.scan.models.scan import ScanStatus
from app.features.scan.schemas.scan import IssueData, ScanJob
from app.features.scan.services.browser.session_manager import BrowserSessionManager
from app.features.scan.services.checkers.base import CheckerSet, ScanFindings
from app.features.scan.services.errors import FailureReason, ScanError, classify_failure
from app.features.scan.services.persistence.scan_store import ScanStore
from app.platform.logger import get_logger

logger = get_logger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 500


def build_diagnostics(findings: ScanFindings) -> Dict[str, Any]:
    """
    Consolidated diagnostics for a completed scan.

    A checker that did not succeed is stored as None under its key, never as
    an empty "passed" result; its status and error land under "checkers".
    """
    structural, compliance, score = findings.structural, findings.compliance, findings.score
    return {
        "axe": structural.result.violations if structural.succeeded else None,
        "gigw": compliance.result.model_dump() if compliance.succeeded else None,
        "checkers": {
            outcome.checker: outcome.diagnostics()
            for outcome in (structural, compliance, score)
        },
    }


def failure_diagnostics(reason: str, exc: Optional[BaseException] = None) -> Dict[str, Any]:
    message = str(exc) if exc is not None else reason
    return {"error": message[:MAX_ERROR_MESSAGE_LENGTH], "error_type": reason}


class ScanOrchestrator:

    def __init__(self, store: ScanStore, sessions: BrowserSessionManager, checkers: CheckerSet, tracker=None):
        self.store = store
        self.sessions = sessions
        self.checkers = checkers
        # InFlightTracker; only its draining flag is read here
        self.tracker = tracker

    @property
    def draining(self) -> bool:
        return bool(self.tracker is not None and self.tracker.draining)

    async def run(self, job: ScanJob) -> None:
        scan_id = job.scan_id
        if self.draining:
            logger.warning(f"[{scan_id}] Server is shutting down, scan not started")
            await self._mark_failed(job, FailureReason.server_shutdown.value)
            return

        try:
            await self.store.update_scan_status(scan_id, ScanStatus.processing)
            logger.info(f"[{scan_id}] Scanning {job.target_url}")

            findings = await self._scan(job)

            issues: List[IssueData] = findings.structural.result.issues if findings.structural.succeeded else []
            score: Optional[int] = findings.score.result if findings.score.succeeded else None

            recorded = await self.store.record_completion(scan_id, issues, score, build_diagnostics(findings))
            if recorded:
                logger.info(f"[{scan_id}] Completed: {len(issues)} issues, score={score}")

            if job.parent_scan_id:
                await self.update_batch_progress(job.parent_scan_id)
        except Exception as e:
            reason = classify_failure(e)
            if isinstance(e, ScanError):
                logger.error(f"[{scan_id}] Scan failed ({reason}): {e}")
            else:
                logger.error(f"[{scan_id}] Scan failed ({reason}): {e}", exc_info=True)
            await self._mark_failed(job, reason, e)

    async def _scan(self, job: ScanJob) -> ScanFindings:
        session = await self.sessions.acquire(job.target_url)
        try:
            return await self.checkers.run_all(session)
        finally:
            await self.sessions.release(session)

    async def update_batch_progress(self, parent_id: str) -> None:
        """Recount completed children; the parent completes once every page has."""
        progress = await self.store.update_parent_progress(parent_id)
        if progress is None:
            logger.warning(f"[{parent_id}] Batch parent disappeared, progress not updated")
            return
        completed, total = progress
        logger.info(f"[{parent_id}] Batch progress {completed}/{total}")

    async def reject(self, job: ScanJob, error: ScanError) -> None:
        """Fail a job that was never admitted (shutdown, full queue)."""
        logger.warning(f"[{job.scan_id}] Scan rejected: {error}")
        await self._mark_failed(job, error.reason, error)

    async def _mark_failed(self, job: ScanJob, reason: str, exc: Optional[BaseException] = None) -> None:
        try:
            await self.store.update_scan_status(
                job.scan_id, ScanStatus.failed, diagnostics=failure_diagnostics(reason, exc)
            )
        except Exception as e:
            # nothing left to report to; the record keeps its last status
            logger.error(f"[{job.scan_id}] Could not record failure ({reason}): {e}", exc_info=True)
