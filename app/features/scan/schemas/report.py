"""
Report Schemas

Derived aggregates handed to the report renderer. They are recomputed from
the stored issues and diagnostics on every report request and never persisted.
"""
from typing import List, Optional, Dict, Any, Literal
from pydantic import BaseModel, Field

from app.features.scan.schemas.scan import ComplianceResult

RiskLevel = Literal["Critical", "High", "Medium", "Low"]
ComplianceLabel = Literal["Non-compliant", "Partially Compliant", "Compliant"]
Sector = Literal["Government", "BFSI", "Education", "Healthcare", "E-commerce", "General"]
ConformanceLevel = Literal["AAA", "AA", "A", "Non-conformant"]


class WCAGCategory(BaseModel):
    principle: Literal["Perceivable", "Operable", "Understandable", "Robust"]
    guideline: str
    success_criteria: str
    level: Literal["A", "AA", "AAA"]

    class Config:
        frozen = True


class FixInstruction(BaseModel):
    title: str
    how_to_fix: str
    what_improves: str
    owner: Literal["Developer", "Designer", "Content"]


class EnrichedIssue(BaseModel):
    rule_id: str
    severity: str
    severity_text: str
    selector: Optional[str] = None
    description: str
    snippet: Optional[str] = None
    wcag_category: WCAGCategory
    owner: str
    fix_instruction: Optional[FixInstruction] = None
    what_improves: str
    impact: str


class GroupedIssue(BaseModel):
    rule_id: str
    description: str
    severity: str
    severity_text: str
    count: int
    wcag_category: WCAGCategory
    owner: str
    fix_instruction: Optional[FixInstruction] = None
    what_improves: str
    selectors: List[str] = Field(default_factory=list)
    first_issue: EnrichedIssue


class SeverityBreakdown(BaseModel):
    critical: int = 0
    serious: int = 0
    moderate: int = 0
    minor: int = 0
    total: int = 0


class BusinessRisk(BaseModel):
    level: RiskLevel
    score: int
    description: str
    legal_risk: str
    reputation_risk: str
    recommendations: List[str]


class IndiaCompliance(BaseModel):
    rpwd_status: ComplianceLabel
    is17802_status: ComplianceLabel
    critical_gaps: List[str]
    timeline: str


class SectorGuidance(BaseModel):
    sector: Sector
    regulations: List[str]
    specific_requirements: List[str]
    compliance_deadline: Optional[str] = None
    penalties: Optional[str] = None


class FailedCriterion(BaseModel):
    criterion: str
    level: str
    count: int


class WCAGConformance(BaseModel):
    level: ConformanceLevel
    passed_criteria: int
    total_criteria: int
    failed_criteria: List[FailedCriterion]


class WCAGCategoryGroup(BaseModel):
    principle: str
    description: str
    issues: List[EnrichedIssue]
    count: int


class ReportWebsite(BaseModel):
    url: str
    name: Optional[str] = None


class ScanReport(BaseModel):
    """Everything the PDF stage needs; it holds no formatting decisions."""
    scan_id: str
    website: ReportWebsite
    page_url: Optional[str] = None
    score: Optional[int] = None
    scan_date: str
    brand_name: str
    dashboard_url: str
    severity_breakdown: SeverityBreakdown
    grouped_issues: List[GroupedIssue]
    issues_by_severity: Dict[str, List[GroupedIssue]]
    wcag_conformance: WCAGConformance
    wcag_categories: List[WCAGCategoryGroup]
    business_risk: BusinessRisk
    india_compliance: IndiaCompliance
    sector_guidance: SectorGuidance
    gigw_results: Optional[ComplianceResult] = None
    raw_violations: List[Dict[str, Any]] = Field(default_factory=list)
