"""
Scan persistence.

ScanStore is the narrow interface the orchestrator and the API routes use;
SqlScanStore implements it on the async SQLAlchemy session factory. Every
method opens its own short-lived session so concurrent scans never share one.
"""
import asyncio
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import func, select, update

from app.features.scan.models.scan import Scan, ScanStatus, is_forward_transition
from app.features.scan.models.scan_issue import ScanIssue
from app.features.scan.schemas.scan import IssueData
from app.features.websites.models.website import Website
from app.platform.db.session import SessionLocal
from app.platform.logger import get_logger

logger = get_logger(__name__)


class ScanStore(Protocol):
    async def create_issues(self, scan_id: str, issues: Sequence[IssueData]) -> int: ...

    async def update_scan_status(
        self,
        scan_id: str,
        status: ScanStatus,
        score: Optional[int] = None,
        diagnostics: Optional[Dict[str, Any]] = None,
    ) -> bool: ...

    async def record_completion(
        self,
        scan_id: str,
        issues: Sequence[IssueData],
        score: Optional[int],
        diagnostics: Dict[str, Any],
    ) -> bool: ...

    async def get_scan(self, scan_id: str) -> Optional[Scan]: ...

    async def get_child_scans(self, parent_id: str) -> List[Scan]: ...

    async def update_parent_progress(self, parent_id: str) -> Optional[Tuple[int, int]]: ...


def _issue_rows(scan_id: str, issues: Sequence[IssueData]) -> List[ScanIssue]:
    return [
        ScanIssue(
            scan_id=scan_id,
            rule_id=issue.rule_id,
            severity=issue.severity,
            selector=issue.selector,
            snippet=issue.snippet,
            description=issue.description,
        )
        for issue in issues
    ]


class SqlScanStore:

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory
        self._progress_lock = asyncio.Lock()

    # ── websites ────────────────────────────────

    async def create_website(self, url: str, name: Optional[str] = None) -> Website:
        async with self.session_factory() as db:
            website = Website(url=url, name=name)
            db.add(website)
            await db.commit()
            await db.refresh(website)
            return website

    async def get_website(self, website_id: str) -> Optional[Website]:
        async with self.session_factory() as db:
            return await db.get(Website, website_id)

    async def list_websites(self) -> List[Website]:
        async with self.session_factory() as db:
            result = await db.execute(select(Website).order_by(Website.created_at.desc()))
            return list(result.scalars().all())

    # ── scans ───────────────────────────────────

    async def create_scan(
        self,
        website_id: str,
        *,
        page_url: Optional[str] = None,
        parent_scan_id: Optional[str] = None,
        total_pages: Optional[int] = None,
        status: ScanStatus = ScanStatus.queued,
    ) -> Scan:
        async with self.session_factory() as db:
            scan = Scan(
                website_id=website_id,
                page_url=page_url,
                parent_scan_id=parent_scan_id,
                total_pages=total_pages,
                completed_pages=0,
                status=status,
            )
            db.add(scan)
            await db.commit()
            await db.refresh(scan)
            return scan

    async def get_scan(self, scan_id: str) -> Optional[Scan]:
        async with self.session_factory() as db:
            return await db.get(Scan, scan_id)

    async def get_child_scans(self, parent_id: str) -> List[Scan]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Scan).where(Scan.parent_scan_id == parent_id).order_by(Scan.created_at, Scan.id)
            )
            return list(result.scalars().unique().all())

    async def count_completed_children(self, parent_id: str) -> int:
        async with self.session_factory() as db:
            result = await db.execute(
                select(func.count(Scan.id)).where(
                    Scan.parent_scan_id == parent_id,
                    Scan.status == ScanStatus.completed,
                )
            )
            return int(result.scalar() or 0)

    async def update_scan_status(
        self,
        scan_id: str,
        status: ScanStatus,
        score: Optional[int] = None,
        diagnostics: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Move a scan forward. Returns False when the scan is missing or the move would go backwards."""
        async with self.session_factory() as db:
            async with db.begin():
                applied = await self._apply_status(db, scan_id, status, score, diagnostics)
        return applied

    async def update_parent_progress(self, parent_id: str) -> Optional[Tuple[int, int]]:
        """
        Recount the parent's completed children and store the result.

        The parent row is locked before the count, and updates from one
        process are serialized, so the last child to finish always writes
        the final count. Returns (completed, total), or None when the parent
        is missing.
        """
        async with self._progress_lock:
            async with self.session_factory() as db:
                async with db.begin():
                    parent = (
                        await db.execute(
                            select(Scan)
                            .where(Scan.id == parent_id)
                            .with_for_update()
                            .execution_options(populate_existing=True)
                        )
                    ).scalars().first()
                    if parent is None:
                        logger.warning(f"[{parent_id}] Parent scan not found for progress update")
                        return None

                    counts = (
                        await db.execute(
                            select(
                                func.count(Scan.id),
                                func.count(Scan.id).filter(Scan.status == ScanStatus.completed),
                            ).where(Scan.parent_scan_id == parent_id)
                        )
                    ).one()
                    children, completed = int(counts[0] or 0), int(counts[1] or 0)
                    total = parent.total_pages if parent.total_pages is not None else children

                    status = ScanStatus.completed if completed >= total else ScanStatus.processing
                    parent.completed_pages = completed
                    if is_forward_transition(parent.status, status):
                        parent.status = status
        return completed, total

    # ── issues ──────────────────────────────────

    async def create_issues(self, scan_id: str, issues: Sequence[IssueData]) -> int:
        if not issues:
            return 0
        async with self.session_factory() as db:
            async with db.begin():
                db.add_all(_issue_rows(scan_id, issues))
        return len(issues)

    async def list_issues(self, scan_id: str) -> List[ScanIssue]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(ScanIssue).where(ScanIssue.scan_id == scan_id).order_by(ScanIssue.created_at, ScanIssue.id)
            )
            return list(result.scalars().all())

    async def record_completion(
        self,
        scan_id: str,
        issues: Sequence[IssueData],
        score: Optional[int],
        diagnostics: Dict[str, Any],
    ) -> bool:
        """
        Insert the issues and mark the scan completed in a single transaction.

        Either both writes land or neither does. Returns False (and writes
        nothing) if the scan already reached a terminal status.
        """
        async with self.session_factory() as db:
            async with db.begin():
                applied = await self._apply_status(db, scan_id, ScanStatus.completed, score, diagnostics)
                if applied and issues:
                    db.add_all(_issue_rows(scan_id, issues))
        return applied

    @staticmethod
    async def _apply_status(db, scan_id, status, score, diagnostics) -> bool:
        current = (await db.execute(select(Scan.status).where(Scan.id == scan_id))).scalar_one_or_none()
        if current is None:
            logger.warning(f"[{scan_id}] Scan not found, status {status.value} not recorded")
            return False
        if not is_forward_transition(current, status):
            logger.warning(f"[{scan_id}] Refusing status change {current.value} -> {status.value}")
            return False

        values: Dict[str, Any] = {"status": status}
        if score is not None:
            values["score"] = score
        if diagnostics is not None:
            values["diagnostics"] = diagnostics
        await db.execute(update(Scan).where(Scan.id == scan_id).values(**values))
        return True
