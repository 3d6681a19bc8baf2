"""
Issue grouping, business risk and India-specific compliance framing.

Everything here is a pure function of the scan's issues (and its URL for
sector detection), recomputed on every report request.
"""
from typing import Dict, List

from app.features.scan.schemas.report import (
    BusinessRisk,
    EnrichedIssue,
    GroupedIssue,
    IndiaCompliance,
    SectorGuidance,
    SeverityBreakdown,
)
from app.features.scan.schemas.scan import SEVERITY_RANK

SEVERITY_WEIGHTS: Dict[str, int] = {"critical": 25, "serious": 15, "moderate": 8, "minor": 2}

UNRANKED = len(SEVERITY_RANK)


def group_issues(issues: List[EnrichedIssue]) -> List[GroupedIssue]:
    """Group by rule id, then order by severity rank and, within a severity, by count descending."""
    grouped: Dict[str, GroupedIssue] = {}
    for issue in issues:
        group = grouped.get(issue.rule_id)
        if group is None:
            grouped[issue.rule_id] = GroupedIssue(
                rule_id=issue.rule_id,
                description=issue.description,
                severity=issue.severity,
                severity_text=issue.severity_text,
                count=1,
                wcag_category=issue.wcag_category,
                owner=issue.owner,
                fix_instruction=issue.fix_instruction,
                what_improves=issue.what_improves,
                selectors=[issue.selector] if issue.selector else [],
                first_issue=issue,
            )
            continue
        group.count += 1
        if issue.selector:
            group.selectors.append(issue.selector)

    # sorted() is stable, so equal groups keep first-seen order
    return sorted(
        grouped.values(),
        key=lambda g: (SEVERITY_RANK.get(g.severity, UNRANKED), -g.count),
    )


def calculate_severity_breakdown(issues: List[EnrichedIssue]) -> SeverityBreakdown:
    breakdown = SeverityBreakdown(total=len(issues))
    for issue in issues:
        if issue.severity in SEVERITY_WEIGHTS:
            setattr(breakdown, issue.severity, getattr(breakdown, issue.severity) + 1)
    return breakdown


def risk_score(breakdown: SeverityBreakdown) -> int:
    """Uncapped weighted score; the level thresholds are evaluated against this value."""
    return sum(getattr(breakdown, severity) * weight for severity, weight in SEVERITY_WEIGHTS.items())


_RISK_NARRATIVES: Dict[str, Dict[str, object]] = {
    "Critical": {
        "description": (
            "Immediate action required. Your website has critical accessibility barriers that prevent users "
            "with disabilities from accessing essential features. This exposes your organization to "
            "significant legal and reputational risks."
        ),
        "legal_risk": (
            "High risk of legal action under RPWD Act 2016 and potential discrimination claims. Organizations "
            "have faced litigation and penalties for similar violations."
        ),
        "reputation_risk": (
            "Severe brand damage risk. Inaccessible websites generate negative publicity and can trigger social "
            "media backlash, affecting customer trust and market position."
        ),
        "recommendations": [
            "Establish an emergency remediation team to address critical issues within 7 days",
            "Conduct accessibility audit of all user-critical paths",
            "Implement accessibility governance framework immediately",
            "Consider engaging accessibility consultants for rapid remediation",
            "Document remediation efforts for legal protection",
        ],
    },
    "High": {
        "description": (
            "Significant accessibility barriers exist that limit access for users with disabilities. Prompt "
            "action needed to reduce legal exposure and improve user experience."
        ),
        "legal_risk": (
            "Elevated risk of complaints and legal notices. While not immediately critical, continued "
            "non-compliance increases vulnerability to legal action."
        ),
        "reputation_risk": (
            "Moderate brand risk. Accessibility issues may be discovered and shared, affecting customer "
            "perception and competitive position."
        ),
        "recommendations": [
            "Prioritize serious issues for remediation within 30 days",
            "Establish accessibility testing in development workflow",
            "Train development team on WCAG 2.1 Level AA standards",
            "Implement automated accessibility monitoring",
            "Create accessibility roadmap with quarterly goals",
        ],
    },
    "Medium": {
        "description": (
            "Moderate accessibility issues present. While not immediately blocking, these issues impact user "
            "experience and should be addressed to ensure full compliance."
        ),
        "legal_risk": (
            "Low to moderate risk. Current issues unlikely to trigger immediate legal action but should be "
            "addressed for comprehensive compliance."
        ),
        "reputation_risk": (
            "Limited reputational risk, but proactive improvement demonstrates commitment to inclusion and may "
            "provide competitive advantage."
        ),
        "recommendations": [
            "Address moderate and minor issues in next development sprint",
            "Integrate accessibility checks in QA process",
            "Conduct user testing with people with disabilities",
            "Review and update accessibility policies",
            "Schedule regular accessibility audits",
        ],
    },
    "Low": {
        "description": (
            "Good accessibility foundation with minor improvements needed. Continue maintaining high standards "
            "and addressing remaining issues."
        ),
        "legal_risk": "Minimal legal risk. Current state demonstrates good-faith effort toward accessibility compliance.",
        "reputation_risk": (
            "Positive reputation potential. Strong accessibility demonstrates corporate responsibility and "
            "commitment to inclusion."
        ),
        "recommendations": [
            "Address remaining minor issues in regular maintenance cycles",
            "Maintain accessibility standards in new features",
            "Consider achieving WCAG 2.1 Level AAA for key user flows",
            "Share accessibility commitment in public communications",
            "Benchmark accessibility against industry leaders",
        ],
    },
}


def business_risk_level(breakdown: SeverityBreakdown) -> str:
    score = risk_score(breakdown)
    if breakdown.critical > 0 or score > 100:
        return "Critical"
    if breakdown.serious > 5 or score > 50:
        return "High"
    if score > 20:
        return "Medium"
    return "Low"


def calculate_business_risk(breakdown: SeverityBreakdown) -> BusinessRisk:
    level = business_risk_level(breakdown)
    narrative = _RISK_NARRATIVES[level]
    return BusinessRisk(
        level=level,
        score=min(100, risk_score(breakdown)),
        description=narrative["description"],
        legal_risk=narrative["legal_risk"],
        reputation_risk=narrative["reputation_risk"],
        recommendations=list(narrative["recommendations"]),
    )


def compliance_status(breakdown: SeverityBreakdown) -> str:
    if breakdown.critical > 0:
        return "Non-compliant"
    if breakdown.serious > 3:
        return "Partially Compliant"
    if breakdown.total > 5:
        return "Partially Compliant"
    return "Compliant"


_COMPLIANCE_TIMELINES = {
    "critical": "Immediate action required. Recommend 30-day sprint for critical issues, 90 days for full compliance.",
    "serious": (
        "Moderate compliance gaps. Recommend 60-day remediation plan for serious issues, "
        "120 days for complete compliance."
    ),
    "volume": "Minor gaps remain. Recommend addressing in next 90 days to achieve full compliance.",
    "clean": "Strong compliance foundation. Maintain standards and address minor issues in regular maintenance.",
}


def calculate_india_compliance_status(breakdown: SeverityBreakdown, is_government: bool) -> IndiaCompliance:
    gaps = []
    if breakdown.critical > 0:
        gaps.append("Critical WCAG 2.1 Level A violations must be remediated immediately")
    if breakdown.serious > 0:
        gaps.append("Serious accessibility barriers impact RPWD Act 2016 compliance")
    if is_government:
        gaps.append("Government websites must meet GIGW 3.0 and IS 17802 standards")

    if breakdown.critical > 0:
        timeline = _COMPLIANCE_TIMELINES["critical"]
    elif breakdown.serious > 3:
        timeline = _COMPLIANCE_TIMELINES["serious"]
    elif breakdown.total > 5:
        timeline = _COMPLIANCE_TIMELINES["volume"]
    else:
        timeline = _COMPLIANCE_TIMELINES["clean"]

    status = compliance_status(breakdown)
    return IndiaCompliance(rpwd_status=status, is17802_status=status, critical_gaps=gaps, timeline=timeline)


# first match wins, in this order
SECTOR_KEYWORDS = [
    ("Government", (".gov.in", ".nic.in", "government")),
    ("BFSI", ("bank", "finance", "insurance", "mutual", "nbfc")),
    ("Education", ("university", ".edu", "college", "school", "academy")),
    ("Healthcare", ("hospital", "clinic", "health", "medical", "pharma")),
    ("E-commerce", ("shop", "store", "cart", "ecommerce", "marketplace")),
]


def get_sector_type(url: str) -> str:
    url_lower = (url or "").lower()
    for sector, keywords in SECTOR_KEYWORDS:
        if any(keyword in url_lower for keyword in keywords):
            return sector
    return "General"


def is_government_site(url: str) -> bool:
    return get_sector_type(url) == "Government"


SECTOR_GUIDANCE: Dict[str, SectorGuidance] = {
    "Government": SectorGuidance(
        sector="Government",
        regulations=[
            "GIGW 3.0 (Guidelines for Indian Government Websites)",
            "RPWD Act 2016 - Section 46",
            "IS 17802:2023 Indian Standard on Information Technology Accessibility",
            "Central Government Digital Accessibility Policy",
        ],
        specific_requirements=[
            "All government websites must comply with GIGW 3.0 standards",
            "Accessibility statement must be prominently displayed",
            "WCAG 2.1 Level AA compliance mandatory",
            "Regular accessibility audits required",
            "Screen reader compatibility certification needed",
            "Multilingual accessibility support for Indian languages",
        ],
        compliance_deadline="Immediate compliance required under RPWD Act 2016",
        penalties="Non-compliance may result in audit observations, public interest litigation, and reputational damage",
    ),
    "BFSI": SectorGuidance(
        sector="BFSI",
        regulations=[
            "RPWD Act 2016",
            "RBI Master Direction on Customer Service",
            "SEBI Accessibility Guidelines (for market infrastructure)",
            "IRDAI Accessibility Requirements (for insurance)",
        ],
        specific_requirements=[
            "Critical user journeys (account access, transactions) must be fully accessible",
            "Alternative accessible formats for financial documents",
            "Accessible mobile banking applications",
            "Keyboard-only navigation for all functions",
            "Strong authentication accessible to users with disabilities",
            "Clear error messages and form validation",
        ],
        compliance_deadline="RBI guidelines recommend immediate compliance",
        penalties="Regulatory scrutiny, potential customer complaints, and reputational risk in sensitive sector",
    ),
    "Education": SectorGuidance(
        sector="Education",
        regulations=[
            "RPWD Act 2016 - Right to Education",
            "UGC Guidelines on Equal Opportunity",
            "AICTE Accessibility Norms",
        ],
        specific_requirements=[
            "Learning Management Systems must be accessible",
            "Online course materials in accessible formats",
            "Accessible examination and assessment systems",
            "Screen reader compatible educational content",
            "Captioned videos and transcribed audio lectures",
            "Accessible library and research databases",
        ],
        compliance_deadline="Progressive implementation recommended over 6-12 months",
        penalties="May face discrimination complaints, loss of accreditation points, and limited government funding",
    ),
    "Healthcare": SectorGuidance(
        sector="Healthcare",
        regulations=[
            "RPWD Act 2016",
            "Clinical Establishments Act 2010",
            "National Health Policy (Digital Health Mission)",
        ],
        specific_requirements=[
            "Patient portals and health records accessible",
            "Appointment booking systems accessible",
            "Telemedicine platforms compliant",
            "Critical health information in accessible formats",
            "Emergency contact and services easily accessible",
            "Prescription and medication information accessible",
        ],
        compliance_deadline="Critical for patient safety - immediate compliance recommended",
        penalties="Patient safety risks, potential medical negligence implications, and licensing concerns",
    ),
    "E-commerce": SectorGuidance(
        sector="E-commerce",
        regulations=[
            "RPWD Act 2016",
            "Consumer Protection Act 2019 (Digital Consumer Rights)",
            "IS 17802:2023",
        ],
        specific_requirements=[
            "Product browsing and search accessible",
            "Shopping cart and checkout fully accessible",
            "Product information in accessible formats",
            "Accessible payment and authentication",
            "Order tracking and customer service accessible",
            "Returns and refunds processes accessible",
        ],
        compliance_deadline="Recommended within 90 days to avoid customer complaints",
        penalties="Loss of customer base (15%+ market), potential consumer complaints, competitive disadvantage",
    ),
    "General": SectorGuidance(
        sector="General",
        regulations=[
            "RPWD Act 2016",
            "IS 17802:2023",
            "Information Technology Act 2000 (Digital Inclusion)",
        ],
        specific_requirements=[
            "WCAG 2.1 Level AA compliance",
            "Keyboard accessibility for all functions",
            "Screen reader compatibility",
            "Clear navigation and content structure",
            "Accessible forms and error handling",
            "Sufficient color contrast and text sizing",
        ],
        compliance_deadline="Progressive compliance recommended over 3-6 months",
        penalties="Reputational risk, potential discrimination complaints, reduced market reach",
    ),
}


def get_sector_guidance(url: str) -> SectorGuidance:
    return SECTOR_GUIDANCE[get_sector_type(url)].model_copy(deep=True)


def group_issues_by_severity(grouped: List[GroupedIssue]) -> Dict[str, List[GroupedIssue]]:
    return {
        severity: [group for group in grouped if group.severity == severity]
        for severity in SEVERITY_RANK
    }
