"""
Tests for the checker wrappers and the axe / GIGW checkers.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.features.scan.schemas.scan import AxeResult
from app.features.scan.services.checkers.axe_checker import (
    RUN_AXE_SCRIPT,
    AxeChecker,
    AxeSourceLoader,
    violations_to_issues,
)
from app.features.scan.services.checkers.base import CheckerSet, CheckerStatus
from app.features.scan.services.checkers.gigw_checker import (
    FOCUS_INDICATORS,
    FORM_LABELS,
    GIGW_CHECKS,
    LANGUAGE_DECLARATION,
    PAGE_TITLE,
    RULE_DESCRIPTIONS,
    TEXT_ALTERNATIVES,
    GIGWChecker,
)
from app.features.scan.services.errors import CheckerEvaluationError, SessionLost

from scan_fakes import FakeSession, StaticChecker


def passing_scripts():
    """Script results for a page that passes every GIGW check."""
    results = {
        TEXT_ALTERNATIVES: 0,
        LANGUAGE_DECLARATION: True,
        FORM_LABELS: 0,
        'GIGW 3.0 - 4.3.1 Auto-Refresh': False,
        'GIGW 3.0 - 4.2.1 Skip Navigation': True,
        'GIGW 3.0 - 4.2.1 Keyboard Access': 12,
        PAGE_TITLE: True,
    }
    return {check.script: results[check.rule] for check in GIGW_CHECKS if check.script}


def script_for(rule):
    return next(check.script for check in GIGW_CHECKS if check.rule == rule)


class TestCheckerExecute:

    @pytest.mark.asyncio
    async def test_success_outcome(self):
        outcome = await StaticChecker("axe", result=42).execute(FakeSession("https://example.com"))
        assert outcome.status is CheckerStatus.succeeded
        assert outcome.result == 42
        assert outcome.diagnostics() == {"status": "succeeded"}

    @pytest.mark.asyncio
    async def test_typed_error_outcome(self):
        checker = StaticChecker("gigw", error=SessionLost("tab closed"))
        outcome = await checker.execute(FakeSession("https://example.com"))
        assert outcome.status is CheckerStatus.failed
        assert outcome.diagnostics()["error_type"] == "session_lost"

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_evaluation_error(self):
        outcome = await StaticChecker("axe", error=KeyError("nodes")).execute(FakeSession("https://example.com"))
        assert outcome.status is CheckerStatus.failed
        assert isinstance(outcome.error, CheckerEvaluationError)

    @pytest.mark.asyncio
    async def test_skipped_when_session_unusable(self):
        session = FakeSession("https://example.com")
        session.lost = True
        checker = StaticChecker("axe", result=1)

        outcome = await checker.execute(session)

        assert outcome.status is CheckerStatus.skipped
        assert checker.saw_usable_session is None

    @pytest.mark.asyncio
    async def test_pageless_checker_runs_without_usable_session(self):
        session = FakeSession("https://example.com")
        session.released = True
        outcome = await StaticChecker("lighthouse", result=90, needs_page=False).execute(session)
        assert outcome.status is CheckerStatus.succeeded


class TestCheckerSet:

    @pytest.mark.asyncio
    async def test_one_failure_does_not_cancel_siblings(self):
        slow = StaticChecker("gigw", result="ok", delay=0.05)
        checkers = CheckerSet(
            structural=StaticChecker("axe", error=RuntimeError("boom")),
            compliance=slow,
            score=StaticChecker("lighthouse", result=75, needs_page=False),
        )

        findings = await checkers.run_all(FakeSession("https://example.com"))

        assert findings.structural.status is CheckerStatus.failed
        assert findings.compliance.result == "ok"
        assert findings.score.result == 75

    @pytest.mark.asyncio
    async def test_exception_escaping_execute_becomes_failed_outcome(self):
        rogue = StaticChecker("axe")
        rogue.execute = AsyncMock(side_effect=RuntimeError("escaped"))
        checkers = CheckerSet(
            structural=rogue,
            compliance=StaticChecker("gigw", result="ok"),
            score=StaticChecker("lighthouse", result=1, needs_page=False),
        )

        findings = await checkers.run_all(FakeSession("https://example.com"))

        assert findings.structural.status is CheckerStatus.failed
        assert findings.structural.checker == "axe"
        assert findings.compliance.succeeded


class TestViolationsToIssues:

    def test_one_issue_per_violation_node(self):
        violations = [
            {
                "id": "color-contrast",
                "impact": "serious",
                "description": "Elements must have sufficient color contrast",
                "nodes": [
                    {"target": [".nav a"], "html": "<a>Home</a>"},
                    {"target": [".footer p"], "html": "<p>(c)</p>"},
                ],
            },
            {"id": "region", "impact": None, "help": "Content should be in landmarks", "nodes": [{"target": []}]},
        ]

        issues = violations_to_issues(violations)

        assert [(i.rule_id, i.severity, i.selector) for i in issues] == [
            ("color-contrast", "serious", ".nav a"),
            ("color-contrast", "serious", ".footer p"),
            ("region", "moderate", None),
        ]
        assert issues[0].snippet == "<a>Home</a>"
        assert issues[2].description == "Content should be in landmarks"

    def test_nested_iframe_target_is_joined(self):
        issues = violations_to_issues([
            {"id": "image-alt", "impact": "critical", "nodes": [{"target": [["iframe#ad", "img"]]}]}
        ])
        assert issues[0].selector == "iframe#ad >>> img"


class TestAxeChecker:

    @pytest.mark.asyncio
    async def test_injects_source_then_runs_axe(self):
        loader = MagicMock()
        loader.load = AsyncMock(return_value="/* axe */")
        violations = [{"id": "label", "impact": "critical", "nodes": [{"target": ["#q"]}]}]
        session = FakeSession("https://example.com", scripts={
            "/* axe */": None,
            RUN_AXE_SCRIPT: {"violations": violations},
        })

        result = await AxeChecker(loader).run(session)

        assert isinstance(result, AxeResult)
        assert result.violations == violations
        assert result.issues[0].rule_id == "label"

    @pytest.mark.asyncio
    async def test_axe_error_raises_evaluation_error(self):
        loader = MagicMock()
        loader.load = AsyncMock(return_value="/* axe */")
        session = FakeSession("https://example.com", scripts={RUN_AXE_SCRIPT: {"error": "axe not loaded"}})

        with pytest.raises(CheckerEvaluationError):
            await AxeChecker(loader).run(session)

    @pytest.mark.asyncio
    async def test_loader_reads_local_file_once(self, tmp_path):
        script = tmp_path / "axe.min.js"
        script.write_text("window.axe = {};", encoding="utf-8")
        loader = AxeSourceLoader(script_path=str(script))

        assert await loader.load() == "window.axe = {};"
        script.write_text("changed", encoding="utf-8")
        assert await loader.load() == "window.axe = {};"

    @pytest.mark.asyncio
    async def test_loader_download_failure(self):
        loader = AxeSourceLoader(script_path="", script_url="https://cdn.example/axe.min.js")
        with patch("httpx.AsyncClient.get", new=AsyncMock(side_effect=httpx.ConnectError("offline"))):
            with pytest.raises(CheckerEvaluationError):
                await loader.load()


class TestGIGWChecker:

    @pytest.mark.asyncio
    async def test_all_checks_pass(self):
        result = await GIGWChecker().run(FakeSession("https://example.gov.in", passing_scripts()))

        assert result.passed is True
        assert result.total_checks == 8
        assert result.passed_checks == 7
        assert result.violations == []
        assert set(result.details) == {check.rule for check in GIGW_CHECKS}

    @pytest.mark.asyncio
    async def test_violations_carry_canonical_impact(self):
        scripts = passing_scripts()
        scripts[script_for(TEXT_ALTERNATIVES)] = 3
        scripts[script_for(LANGUAGE_DECLARATION)] = False

        result = await GIGWChecker().run(FakeSession("https://example.com", scripts))

        assert result.passed is False
        assert result.passed_checks == 5
        rules = {v.rule: v for v in result.violations}
        assert "Found 3 image(s) without alt text" in rules[TEXT_ALTERNATIVES].description
        assert rules[TEXT_ALTERNATIVES].severity == "critical"
        assert rules[LANGUAGE_DECLARATION].impact == RULE_DESCRIPTIONS[LANGUAGE_DECLARATION]
        assert result.details[TEXT_ALTERNATIVES].severity == "critical"

    @pytest.mark.asyncio
    async def test_failing_check_is_not_evaluated_and_others_run(self):
        scripts = passing_scripts()
        scripts[script_for(FORM_LABELS)] = CheckerEvaluationError("page-script", "CSS is not defined")

        result = await GIGWChecker().run(FakeSession("https://example.com", scripts))

        assert result.not_evaluated == [FORM_LABELS, FOCUS_INDICATORS]
        assert result.details[FORM_LABELS].evaluated is False
        assert result.passed_checks == 6
        assert result.total_checks == 8
        assert result.passed is True

    @pytest.mark.asyncio
    async def test_session_loss_aborts_checker(self):
        scripts = passing_scripts()
        scripts[script_for(PAGE_TITLE)] = SessionLost("tab closed")

        with pytest.raises(SessionLost):
            await GIGWChecker().run(FakeSession("https://example.com", scripts))

    @pytest.mark.asyncio
    async def test_focus_indicator_check_is_not_evaluated(self):
        result = await GIGWChecker().run(FakeSession("https://example.com", passing_scripts()))

        detail = result.details[FOCUS_INDICATORS]
        assert detail.passed is False
        assert detail.evaluated is False
        assert detail.placeholder is True
        assert FOCUS_INDICATORS in result.not_evaluated
        assert result.passed_checks == 7

    @pytest.mark.asyncio
    async def test_nothing_evaluated_is_not_a_pass(self):
        error = CheckerEvaluationError("page-script", "document is not defined")
        scripts = {script: error for script in passing_scripts()}

        result = await GIGWChecker().run(FakeSession("https://example.com", scripts))

        assert result.passed is False
        assert result.passed_checks == 0
        assert result.violations == []
        assert len(result.not_evaluated) == 8
