"""
Structural accessibility checker backed by axe-core.

The axe script is injected into the scanned page and run there; every
(violation, node) pair becomes one IssueData.
"""
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from app.features.scan.schemas.scan import AxeResult, IssueData
from app.features.scan.services.checkers.base import Checker
from app.features.scan.services.errors import CheckerEvaluationError
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SEVERITY = "moderate"

RUN_AXE_SCRIPT = """
const done = arguments[arguments.length - 1];
if (!window.axe || !window.axe.run) {
    done({error: 'axe not loaded'});
    return;
}
window.axe.run(document)
    .then(results => done({violations: results.violations}))
    .catch(err => done({error: String(err)}));
"""


def _first_target(node: Dict[str, Any]) -> Optional[str]:
    target = node.get("target") or []
    if not target:
        return None
    first = target[0]
    # targets inside iframes/shadow roots are nested selector lists
    if isinstance(first, list):
        return " >>> ".join(str(part) for part in first)
    return str(first)


def violations_to_issues(violations: List[Dict[str, Any]]) -> List[IssueData]:
    issues = []
    for violation in violations:
        for node in violation.get("nodes", []):
            issues.append(IssueData(
                rule_id=violation.get("id", "unknown"),
                severity=violation.get("impact") or DEFAULT_SEVERITY,
                selector=_first_target(node),
                snippet=node.get("html") or None,
                description=violation.get("description") or violation.get("help") or "",
            ))
    return issues


class AxeSourceLoader:
    """Loads axe.min.js once, from AXE_SCRIPT_PATH when set, otherwise from AXE_SCRIPT_URL."""

    def __init__(self, script_path: Optional[str] = None, script_url: Optional[str] = None):
        self.script_path = script_path if script_path is not None else settings.AXE_SCRIPT_PATH
        self.script_url = script_url or settings.AXE_SCRIPT_URL
        self._source: Optional[str] = None
        self._lock = asyncio.Lock()

    async def load(self) -> str:
        async with self._lock:
            if self._source is None:
                self._source = await self._read()
            return self._source

    async def _read(self) -> str:
        if self.script_path:
            try:
                return await asyncio.to_thread(Path(self.script_path).read_text, encoding="utf-8")
            except OSError as e:
                raise CheckerEvaluationError("axe", f"Cannot read axe script at {self.script_path}: {e}")
        try:
            async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
                response = await client.get(self.script_url)
                response.raise_for_status()
                return response.text
        except httpx.HTTPError as e:
            raise CheckerEvaluationError("axe", f"Cannot download axe script: {e}")


class AxeChecker(Checker):
    name = "axe"

    def __init__(self, loader: Optional[AxeSourceLoader] = None):
        self.loader = loader or AxeSourceLoader()

    async def run(self, session) -> AxeResult:
        source = await self.loader.load()
        await session.run_script(source)
        raw = await session.run_async_script(RUN_AXE_SCRIPT)

        if not isinstance(raw, dict) or "error" in raw:
            error = raw.get("error") if isinstance(raw, dict) else "unexpected axe result"
            raise CheckerEvaluationError(self.name, str(error))

        violations = raw.get("violations") or []
        issues = violations_to_issues(violations)
        logger.info(f"axe found {len(violations)} violations, {len(issues)} issues on {session.url}")
        return AxeResult(violations=violations, issues=issues)
