"""
Scan request handling used by the API routes: create records, hand jobs to
the background controller, and read progress and reports back.
"""
from typing import List

from fastapi import HTTPException, status

from app.features.scan.models.scan import Scan, ScanStatus
from app.features.scan.schemas.report import ScanReport
from app.features.scan.schemas.scan import BatchPageSummary, BatchProgressResponse, ScanJob
from app.features.scan.services.discovery.sitemap import fetch_page_urls
from app.features.scan.services.report.report_builder import build_report
from app.features.websites.services.website import get_website_or_404
from app.platform.logger import get_logger

logger = get_logger(__name__)


async def get_scan_or_404(store, scan_id: str) -> Scan:
    scan = await store.get_scan(scan_id)
    if scan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scan not found")
    return scan


async def start_scan(store, controller, website_id: str) -> Scan:
    """Create a queued scan of the website's base URL and submit it. Returns the queued record."""
    website = await get_website_or_404(store, website_id)
    scan = await store.create_scan(website.id)
    await controller.submit(ScanJob(scan_id=scan.id, website_id=website.id, target_url=website.url))
    return scan


async def start_batch(store, controller, website_id: str) -> Scan:
    """
    Create a parent scan plus one child per sitemap URL and queue the children.

    Children are submitted in sitemap order; the parent is never queued itself.
    """
    website = await get_website_or_404(store, website_id)
    urls: List[str] = await fetch_page_urls(website.url)

    parent = await store.create_scan(website.id, total_pages=len(urls))
    for url in urls:
        child = await store.create_scan(website.id, page_url=url, parent_scan_id=parent.id)
        await controller.submit(ScanJob(
            scan_id=child.id,
            website_id=website.id,
            target_url=url,
            parent_scan_id=parent.id,
        ))

    logger.info(f"[{parent.id}] Queued {len(urls)} page(s) for {website.url}")
    return parent


async def get_batch_progress(store, batch_id: str) -> BatchProgressResponse:
    parent = await get_scan_or_404(store, batch_id)
    children = await store.get_child_scans(batch_id)
    completed = sum(1 for child in children if child.status == ScanStatus.completed)
    total = parent.total_pages or len(children)

    return BatchProgressResponse(
        id=parent.id,
        status=parent.status.value,
        total_pages=total,
        completed_pages=completed,
        progress=round(completed / total * 100) if total else 0,
        pages=[
            BatchPageSummary(
                id=child.id,
                page_url=child.page_url,
                status=child.status.value,
                score=child.score,
                created_at=child.created_at,
            )
            for child in reversed(children)
        ],
    )


async def get_scan_report(store, scan_id: str) -> ScanReport:
    scan = await get_scan_or_404(store, scan_id)
    if scan.status != ScanStatus.completed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Scan is not completed yet")

    issues = await store.list_issues(scan_id)
    return build_report(scan, scan.website, issues)
