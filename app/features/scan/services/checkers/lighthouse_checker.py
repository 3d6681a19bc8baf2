"""
Accessibility score from Lighthouse.

Lighthouse runs as a separate CLI process that launches its own Chrome, so a
crash there cannot touch the browser session the other checkers share. The
process group is killed on every exit path, including success.
"""
import asyncio
import json
import os
import signal
from typing import List, Optional

from app.features.scan.services.checkers.base import Checker
from app.features.scan.services.errors import CheckerEvaluationError, ScanErrorKind, ScoreEngineUnavailable
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

CHROME_FLAGS = [
    '--headless=new',
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-gpu',
    '--disable-software-rasterizer',
    '--disable-extensions',
    '--disable-background-networking',
    '--disable-background-timer-throttling',
    '--disable-renderer-backgrounding',
]


def build_lighthouse_command(binary: str, url: str) -> List[str]:
    return [
        binary,
        url,
        "--output=json",
        "--output-path=stdout",
        "--only-categories=accessibility",
        "--quiet",
        "--form-factor=desktop",
        "--screenEmulation.disabled",
        "--throttling.rttMs=40",
        "--throttling.throughputKbps=10240",
        "--throttling.cpuSlowdownMultiplier=1",
        f"--chrome-flags={' '.join(CHROME_FLAGS)}",
    ]


def parse_accessibility_score(report_json: str) -> int:
    """Extract the 0-100 accessibility score from a Lighthouse JSON report."""
    try:
        report = json.loads(report_json)
    except json.JSONDecodeError as e:
        raise CheckerEvaluationError("lighthouse", f"Lighthouse returned invalid JSON: {e}")

    score = (report.get("categories", {}).get("accessibility") or {}).get("score")
    if score is None:
        raise CheckerEvaluationError("lighthouse", "Lighthouse returned invalid score")
    return max(0, min(100, round(float(score) * 100)))


def engine_failure(stderr: str, returncode: Optional[int]) -> ScoreEngineUnavailable:
    """Describe a failed Lighthouse run; the CLI reports causes only as text on stderr."""
    if "ECONNREFUSED" in stderr:
        return ScoreEngineUnavailable(
            "lighthouse", "connection refused, Chrome may not be ready", kind=ScanErrorKind.connection_refused
        )
    if "Target closed" in stderr or "Protocol error" in stderr:
        return ScoreEngineUnavailable("lighthouse", "Chrome target closed or protocol error")
    tail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
    return ScoreEngineUnavailable("lighthouse", f"exited with code {returncode}: {tail}")


class LighthouseChecker(Checker):
    name = "lighthouse"
    needs_page = False

    def __init__(self, binary: Optional[str] = None, timeout: Optional[float] = None):
        self.binary = binary or settings.LIGHTHOUSE_BINARY
        self.timeout = timeout if timeout is not None else settings.LIGHTHOUSE_TIMEOUT_SECONDS

    async def run(self, session) -> int:
        url = session.url
        try:
            proc = await asyncio.create_subprocess_exec(
                *build_lighthouse_command(self.binary, url),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            raise ScoreEngineUnavailable("lighthouse", f"cannot start {self.binary}: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ScoreEngineUnavailable(
                "lighthouse", f"timed out after {self.timeout}s", kind=ScanErrorKind.navigation_timeout
            )
        finally:
            await self._teardown(proc)

        if proc.returncode != 0:
            raise engine_failure(stderr.decode(errors="replace"), proc.returncode)

        score = parse_accessibility_score(stdout.decode(errors="replace"))
        logger.info(f"Lighthouse accessibility score for {url}: {score}")
        return score

    @staticmethod
    async def _teardown(proc) -> None:
        # lighthouse leaves its Chrome in the same process group
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass
        if proc.returncode is None:
            try:
                await proc.wait()
            except ProcessLookupError:
                pass
        logger.debug("Lighthouse process group torn down")
