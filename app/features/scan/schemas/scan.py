"""
Scan Schemas

Value objects passed between the orchestrator, the checkers and the store,
plus the request and response models of the scan API endpoints.
"""
from datetime import datetime
from typing import List, Optional, Dict, Any, Literal
from pydantic import BaseModel, Field

Severity = Literal["critical", "serious", "moderate", "minor"]

SEVERITY_RANK: Dict[str, int] = {"critical": 0, "serious": 1, "moderate": 2, "minor": 3}


# ============================================================================
# Core value objects
# ============================================================================

class ScanJob(BaseModel):
    """A request to scan one URL. Built once when the scan is requested, consumed once."""
    scan_id: str
    website_id: str
    target_url: str
    parent_scan_id: Optional[str] = None

    class Config:
        frozen = True


class IssueData(BaseModel):
    """A structural finding produced by the axe checker."""
    rule_id: str
    severity: str = "moderate"
    selector: Optional[str] = None
    snippet: Optional[str] = None
    description: str = ""

    class Config:
        frozen = True
        from_attributes = True


class GIGWViolation(BaseModel):
    rule: str
    description: str
    severity: str
    impact: Optional[str] = None


class GIGWCheckDetail(BaseModel):
    passed: bool
    severity: str = "none"
    evaluated: bool = True
    placeholder: bool = False


class ComplianceResult(BaseModel):
    """
    GIGW 3.0 outcome. Checks that could not be evaluated count neither as passed nor failed;
    a run where no check could be evaluated is not a pass.
    """
    passed: bool
    total_checks: int
    passed_checks: int
    violations: List[GIGWViolation] = Field(default_factory=list)
    not_evaluated: List[str] = Field(default_factory=list)
    details: Dict[str, GIGWCheckDetail] = Field(default_factory=dict)


class AxeResult(BaseModel):
    """Raw axe violations plus one IssueData per violating node."""
    violations: List[Dict[str, Any]] = Field(default_factory=list)
    issues: List[IssueData] = Field(default_factory=list)


# ============================================================================
# API Schemas
# ============================================================================

class ScanCreateRequest(BaseModel):
    """Request to scan a registered website."""
    website_id: str

    class Config:
        json_schema_extra = {
            "example": {
                "website_id": "019ac123-4567-89ab-cdef-0123456789ab"
            }
        }


class ScanResponse(BaseModel):
    id: str
    website_id: str
    page_url: Optional[str] = None
    status: str
    score: Optional[int] = None
    diagnostics: Optional[Dict[str, Any]] = None
    total_pages: Optional[int] = None
    completed_pages: Optional[int] = None
    parent_scan_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_scan(cls, scan) -> "ScanResponse":
        return cls(
            id=scan.id,
            website_id=scan.website_id,
            page_url=scan.page_url,
            status=scan.status.value,
            score=scan.score,
            diagnostics=scan.diagnostics,
            total_pages=scan.total_pages,
            completed_pages=scan.completed_pages,
            parent_scan_id=scan.parent_scan_id,
            created_at=scan.created_at,
        )


class BatchPageSummary(BaseModel):
    id: str
    page_url: Optional[str] = None
    status: str
    score: Optional[int] = None
    created_at: Optional[datetime] = None


class BatchProgressResponse(BaseModel):
    id: str
    status: str
    total_pages: int
    completed_pages: int
    progress: int
    pages: List[BatchPageSummary]
