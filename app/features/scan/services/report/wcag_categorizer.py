"""
WCAG 2.1 categorization and issue enrichment.

Maps axe rule ids to (principle, guideline, success criterion, level) and
derives the page's conformance level from the failed criteria.
"""
from typing import Dict, Iterable, List

from app.features.scan.schemas.report import (
    EnrichedIssue,
    FailedCriterion,
    WCAGCategory,
    WCAGCategoryGroup,
    WCAGConformance,
)
from app.features.scan.schemas.scan import IssueData
from app.features.scan.services.report.fixes import get_fix_instruction, get_owner

# Level A criteria in WCAG 2.1; passed criteria need a full manual audit and are not counted
TOTAL_CRITERIA = 50


def _category(principle: str, guideline: str, success_criteria: str, level: str) -> WCAGCategory:
    return WCAGCategory(principle=principle, guideline=guideline, success_criteria=success_criteria, level=level)


_INFO_AND_RELATIONSHIPS = _category("Perceivable", "1.3 Adaptable", "1.3.1 Info and Relationships", "A")
_NON_TEXT_CONTENT = _category("Perceivable", "1.1 Text Alternatives", "1.1.1 Non-text Content", "A")
_LINK_PURPOSE = _category("Operable", "2.4 Navigable", "2.4.4 Link Purpose (In Context)", "A")
_BYPASS_BLOCKS = _category("Operable", "2.4 Navigable", "2.4.1 Bypass Blocks", "A")
_NAME_ROLE_VALUE = _category("Robust", "4.1 Compatible", "4.1.2 Name, Role, Value", "A")

WCAG_MAPPING: Dict[str, WCAGCategory] = {
    "color-contrast": _category("Perceivable", "1.4 Distinguishable", "1.4.3 Contrast (Minimum)", "AA"),
    "image-alt": _NON_TEXT_CONTENT,
    "input-image-alt": _NON_TEXT_CONTENT,
    "page-has-heading-one": _INFO_AND_RELATIONSHIPS,
    "region": _INFO_AND_RELATIONSHIPS,
    "landmark-one-main": _INFO_AND_RELATIONSHIPS,
    "label": _INFO_AND_RELATIONSHIPS,
    "heading-order": _INFO_AND_RELATIONSHIPS,
    "empty-heading": _INFO_AND_RELATIONSHIPS,
    "list": _INFO_AND_RELATIONSHIPS,
    "listitem": _INFO_AND_RELATIONSHIPS,
    "form-field-multiple-labels": _INFO_AND_RELATIONSHIPS,
    "table-duplicate-name": _INFO_AND_RELATIONSHIPS,
    "th-has-data-cells": _INFO_AND_RELATIONSHIPS,
    "td-headers-attr": _INFO_AND_RELATIONSHIPS,
    "select-name": _INFO_AND_RELATIONSHIPS,
    "link-name": _LINK_PURPOSE,
    "button-name": _LINK_PURPOSE,
    "skip-link": _BYPASS_BLOCKS,
    "frame-title": _BYPASS_BLOCKS,
    "html-has-lang": _category("Understandable", "3.1 Readable", "3.1.1 Language of Page", "A"),
    "aria-allowed-attr": _NAME_ROLE_VALUE,
    "aria-required-attr": _NAME_ROLE_VALUE,
    "aria-valid-attr-value": _NAME_ROLE_VALUE,
    "duplicate-id": _category("Robust", "4.1 Compatible", "4.1.1 Parsing", "A"),
    "meta-viewport": _category("Operable", "1.4 Distinguishable", "1.4.4 Resize Text", "AA"),
    "video-caption": _category("Perceivable", "1.2 Time-based Media", "1.2.2 Captions (Prerecorded)", "A"),
    "audio-caption": _category("Perceivable", "1.2 Time-based Media", "1.2.1 Audio-only and Video-only", "A"),
    "aria-hidden-focus": _category("Operable", "2.1 Keyboard Accessible", "2.1.1 Keyboard", "A"),
    "tabindex": _category("Operable", "2.4 Navigable", "2.4.3 Focus Order", "A"),
}

DEFAULT_WCAG_CATEGORY = _category("Robust", "4.1 Compatible", "4.1.1 Parsing", "A")

SEVERITY_TEXT: Dict[str, str] = {
    "critical": "Critical",
    "serious": "Serious",
    "moderate": "Moderate",
    "minor": "Minor",
}

IMPACT_DESCRIPTIONS: Dict[str, str] = {
    "critical": "Blocks access for users with disabilities. Must be fixed immediately.",
    "serious": "Significantly impacts usability for users with disabilities. Should be fixed as priority.",
    "moderate": "Impacts some users with disabilities. Should be addressed in upcoming sprint.",
    "minor": "Minor accessibility improvement. Can be addressed in regular maintenance.",
}

PRINCIPLE_DESCRIPTIONS: Dict[str, str] = {
    "Perceivable": "Information and user interface components must be presentable to users in ways they can perceive.",
    "Operable": "User interface components and navigation must be operable by all users.",
    "Understandable": "Information and the operation of user interface must be understandable.",
    "Robust": (
        "Content must be robust enough that it can be interpreted by a wide variety of user agents, "
        "including assistive technologies."
    ),
}


def get_wcag_category(rule_id: str) -> WCAGCategory:
    return WCAG_MAPPING.get(rule_id, DEFAULT_WCAG_CATEGORY)


def enrich_issue(issue: IssueData) -> EnrichedIssue:
    fix = get_fix_instruction(issue.rule_id)
    return EnrichedIssue(
        rule_id=issue.rule_id,
        severity=issue.severity,
        severity_text=SEVERITY_TEXT.get(issue.severity, "Unknown"),
        selector=issue.selector,
        description=issue.description,
        snippet=issue.snippet,
        wcag_category=get_wcag_category(issue.rule_id),
        owner=get_owner(issue.rule_id),
        fix_instruction=fix,
        what_improves=fix.what_improves if fix else "Improves accessibility for users with disabilities.",
        impact=IMPACT_DESCRIPTIONS.get(issue.severity, "Impacts accessibility."),
    )


def enrich_issues(issues: Iterable[IssueData]) -> List[EnrichedIssue]:
    return [enrich_issue(issue) for issue in issues]


def calculate_wcag_conformance(issues: List[EnrichedIssue]) -> WCAGConformance:
    """
    Any failed Level A criterion makes the page non-conformant; otherwise a
    failed AA criterion caps it at A, and a page with no failures is AAA.
    """
    failed: Dict[str, FailedCriterion] = {}
    for issue in issues:
        key = issue.wcag_category.success_criteria
        if key in failed:
            failed[key].count += 1
        else:
            failed[key] = FailedCriterion(criterion=key, level=issue.wcag_category.level, count=1)

    levels = {criterion.level for criterion in failed.values()}
    if "A" in levels:
        level = "Non-conformant"
    elif "AA" in levels:
        level = "A"
    elif not failed:
        level = "AAA"
    else:
        level = "AA"

    return WCAGConformance(
        level=level,
        passed_criteria=0,
        total_criteria=TOTAL_CRITERIA,
        failed_criteria=list(failed.values()),
    )


def get_wcag_principle_description(principle: str) -> str:
    return PRINCIPLE_DESCRIPTIONS.get(principle, "")


def group_issues_by_wcag_category(issues: List[EnrichedIssue]) -> List[WCAGCategoryGroup]:
    grouped: Dict[str, List[EnrichedIssue]] = {}
    for issue in issues:
        grouped.setdefault(issue.wcag_category.principle, []).append(issue)

    return [
        WCAGCategoryGroup(
            principle=principle,
            description=get_wcag_principle_description(principle),
            issues=members,
            count=len(members),
        )
        for principle, members in grouped.items()
    ]
