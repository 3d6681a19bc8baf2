"""
GIGW 3.0 (Guidelines for Indian Government Websites) compliance checks.

Eight fixed checks, each evaluated by its own script in the page. A check
whose script fails is recorded as not evaluated and left out of the tally;
the remaining checks still run. A lost session aborts the checker.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from app.features.scan.schemas.scan import ComplianceResult, GIGWCheckDetail, GIGWViolation
from app.features.scan.services.checkers.base import Checker
from app.features.scan.services.errors import ScanError, SessionLost
from app.platform.logger import get_logger

logger = get_logger(__name__)

TEXT_ALTERNATIVES = 'GIGW 3.0 - 4.1.1 Text Alternatives'
LANGUAGE_DECLARATION = 'GIGW 3.0 - 4.1.2 Language Declaration'
FORM_LABELS = 'GIGW 3.0 - 4.2.4 Form Labels'
AUTO_REFRESH = 'GIGW 3.0 - 4.3.1 Auto-Refresh'
SKIP_NAVIGATION = 'GIGW 3.0 - 4.2.1 Skip Navigation'
KEYBOARD_ACCESS = 'GIGW 3.0 - 4.2.1 Keyboard Access'
PAGE_TITLE = 'GIGW 3.0 - 4.1.3 Page Title'
FOCUS_INDICATORS = 'GIGW 3.0 - 4.2.3 Focus Indicators'

RULE_DESCRIPTIONS: Dict[str, str] = {
    TEXT_ALTERNATIVES: 'Images, form controls, and other non-text content must have text alternatives. This ensures screen reader users can access all information.',
    LANGUAGE_DECLARATION: 'Page must declare its language using the lang attribute. This helps screen readers pronounce content correctly.',
    FORM_LABELS: 'All form inputs must have associated labels. This helps users understand what information is required in each field.',
    AUTO_REFRESH: 'Pages should not auto-refresh without warning. This can disorient users and interrupt screen reader announcements.',
    SKIP_NAVIGATION: 'Page must provide a "Skip to main content" link. This allows keyboard users to bypass repetitive navigation links.',
    KEYBOARD_ACCESS: 'All functionality must be accessible via keyboard. This is essential for users who cannot use a mouse.',
    PAGE_TITLE: 'Every page must have a descriptive title. This helps users understand where they are and navigate between pages.',
    FOCUS_INDICATORS: 'Interactive elements must have visible focus indicators. This helps keyboard users see which element currently has focus.',
}


@dataclass(frozen=True)
class GIGWCheck:
    rule: str
    severity: str
    script: Optional[str]
    # returns the violation description, or None when the check passes
    evaluate: Callable[[Any], Optional[str]]
    placeholder: bool = False


def _count_violation(template: str) -> Callable[[Any], Optional[str]]:
    def evaluate(count: Any) -> Optional[str]:
        return template.format(count=count) if int(count or 0) > 0 else None
    return evaluate


def _flag_violation(message: str, *, violated_when: bool) -> Callable[[Any], Optional[str]]:
    def evaluate(value: Any) -> Optional[str]:
        return message if bool(value) is violated_when else None
    return evaluate


GIGW_CHECKS: List[GIGWCheck] = [
    GIGWCheck(
        rule=TEXT_ALTERNATIVES,
        severity='critical',
        script="return Array.from(document.querySelectorAll('img')).filter(img => !img.getAttribute('alt')).length;",
        evaluate=_count_violation(
            'Found {count} image(s) without alt text. All images must have descriptive alt attributes.'
        ),
    ),
    GIGWCheck(
        rule=LANGUAGE_DECLARATION,
        severity='serious',
        script="return document.documentElement.hasAttribute('lang');",
        evaluate=_flag_violation(
            'HTML element missing lang attribute. Document language must be declared.', violated_when=False
        ),
    ),
    GIGWCheck(
        rule=FORM_LABELS,
        severity='critical',
        script="""
            return Array.from(document.querySelectorAll('input, select, textarea')).filter(input => {
                const id = input.getAttribute('id');
                const hasLabel = id && document.querySelector('label[for="' + CSS.escape(id) + '"]');
                return !hasLabel && !input.getAttribute('aria-label') && !input.getAttribute('aria-labelledby');
            }).length;
        """,
        evaluate=_count_violation(
            'Found {count} form input(s) without associated labels. All form controls must have labels.'
        ),
    ),
    GIGWCheck(
        rule=AUTO_REFRESH,
        severity='moderate',
        script="return document.querySelector('meta[http-equiv=\"refresh\"]') !== null;",
        evaluate=_flag_violation(
            'Page uses auto-refresh meta tag. Automatic page refresh should be avoided or user-controllable.',
            violated_when=True,
        ),
    ),
    GIGWCheck(
        rule=SKIP_NAVIGATION,
        severity='serious',
        script="""
            return Array.from(document.querySelectorAll('a')).some(link => {
                const text = (link.textContent || '').toLowerCase();
                const href = link.getAttribute('href') || '';
                return (text.includes('skip') && text.includes('content')) ||
                       (text.includes('skip') && text.includes('main')) ||
                       href.includes('#main') || href.includes('#content');
            });
        """,
        evaluate=_flag_violation(
            'Page missing "Skip to main content" link. This link should be provided for keyboard users.',
            violated_when=False,
        ),
    ),
    GIGWCheck(
        rule=KEYBOARD_ACCESS,
        severity='critical',
        script="""
            return document.querySelectorAll(
                'a[href], button, input, select, textarea, [tabindex]:not([tabindex="-1"])'
            ).length;
        """,
        evaluate=lambda count: (
            'No focusable elements detected. Ensure all interactive elements are keyboard accessible.'
            if int(count or 0) == 0 else None
        ),
    ),
    GIGWCheck(
        rule=PAGE_TITLE,
        severity='serious',
        script="return !!(document.title && document.title.trim().length > 0);",
        evaluate=_flag_violation(
            'Page missing title element or title is empty. Every page must have a descriptive title.',
            violated_when=False,
        ),
    ),
    # TODO: evaluate focus styles by tabbing through focusable elements and comparing computed outlines
    GIGWCheck(
        rule=FOCUS_INDICATORS,
        severity='serious',
        script=None,
        evaluate=lambda _: None,
        placeholder=True,
    ),
]


class GIGWChecker(Checker):
    name = "gigw"

    def __init__(self, checks: Optional[List[GIGWCheck]] = None):
        self.checks = checks if checks is not None else GIGW_CHECKS

    async def run(self, session) -> ComplianceResult:
        violations: List[GIGWViolation] = []
        details: Dict[str, GIGWCheckDetail] = {}
        not_evaluated: List[str] = []
        passed_checks = 0

        for check in self.checks:
            if check.placeholder:
                not_evaluated.append(check.rule)
                details[check.rule] = GIGWCheckDetail(passed=False, evaluated=False, placeholder=True)
                continue
            try:
                value = await session.run_script(check.script) if check.script else None
                message = check.evaluate(value)
            except SessionLost:
                raise
            except (ScanError, TypeError, ValueError) as e:
                logger.warning(f"GIGW check '{check.rule}' could not be evaluated: {e}")
                not_evaluated.append(check.rule)
                details[check.rule] = GIGWCheckDetail(passed=False, evaluated=False)
                continue

            if message is None:
                passed_checks += 1
                details[check.rule] = GIGWCheckDetail(passed=True)
            else:
                violations.append(GIGWViolation(
                    rule=check.rule,
                    description=message,
                    severity=check.severity,
                    impact=RULE_DESCRIPTIONS.get(check.rule, 'Accessibility guideline violation detected'),
                ))
                details[check.rule] = GIGWCheckDetail(passed=False, severity=check.severity)

        result = ComplianceResult(
            passed=len(violations) == 0 and len(not_evaluated) < len(self.checks),
            total_checks=len(self.checks),
            passed_checks=passed_checks,
            violations=violations,
            not_evaluated=not_evaluated,
            details=details,
        )
        if len(not_evaluated) == len(self.checks):
            logger.warning(f"GIGW 3.0: no check could be evaluated on {session.url}; result is not a pass")
        logger.info(
            f"GIGW 3.0: {'PASSED' if result.passed else 'FAILED'} "
            f"({result.passed_checks}/{result.total_checks} checks) on {session.url}"
        )
        return result
