from datetime import datetime, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from app.features.scan.schemas.report import ReportWebsite, ScanReport
from app.features.scan.schemas.scan import ComplianceResult, IssueData
from app.features.scan.services.report.issue_grouper import (
    calculate_business_risk,
    calculate_india_compliance_status,
    calculate_severity_breakdown,
    get_sector_guidance,
    group_issues,
    group_issues_by_severity,
    is_government_site,
)
from app.features.scan.services.report.wcag_categorizer import (
    calculate_wcag_conformance,
    enrich_issues,
    group_issues_by_wcag_category,
)
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

IST = ZoneInfo("Asia/Kolkata")


def format_scan_date(created_at: Optional[datetime]) -> str:
    moment = created_at or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        # sqlite drops the offset; stored timestamps are UTC
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(IST).strftime("%d/%m/%Y, %I:%M:%S %p").lower()


def _gigw_results(diagnostics: Optional[dict]) -> Optional[ComplianceResult]:
    raw = (diagnostics or {}).get("gigw")
    if not raw:
        return None
    try:
        return ComplianceResult.model_validate(raw)
    except ValueError as e:
        logger.warning(f"Ignoring malformed GIGW diagnostics: {e}")
        return None


def build_report(scan, website, issues: Iterable) -> ScanReport:
    """
    Aggregate a completed scan into the object handed to the PDF renderer.

    ``issues`` may be ScanIssue rows or IssueData; sector detection and the
    government check use the website's base URL.
    """
    issue_data = [issue if isinstance(issue, IssueData) else IssueData.model_validate(issue) for issue in issues]
    enriched = enrich_issues(issue_data)
    grouped = group_issues(enriched)
    breakdown = calculate_severity_breakdown(enriched)
    diagnostics = scan.diagnostics or {}

    return ScanReport(
        scan_id=scan.id,
        website=ReportWebsite(url=website.url, name=website.name),
        page_url=scan.page_url,
        score=scan.score,
        scan_date=format_scan_date(scan.created_at),
        brand_name=settings.BRAND_NAME,
        dashboard_url=f"{settings.DASHBOARD_URL.rstrip('/')}/scan/{scan.id}",
        severity_breakdown=breakdown,
        grouped_issues=grouped,
        issues_by_severity=group_issues_by_severity(grouped),
        wcag_conformance=calculate_wcag_conformance(enriched),
        wcag_categories=group_issues_by_wcag_category(enriched),
        business_risk=calculate_business_risk(breakdown),
        india_compliance=calculate_india_compliance_status(breakdown, is_government_site(website.url)),
        sector_guidance=get_sector_guidance(website.url),
        gigw_results=_gigw_results(diagnostics),
        raw_violations=diagnostics.get("axe") or [],
    )
