import asyncio
import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from app.features.scan.services.errors import CheckerEvaluationError, ScanError
from app.platform.logger import get_logger

logger = get_logger(__name__)


class CheckerStatus(enum.Enum):
    idle = "idle"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"
    skipped = "skipped"


@dataclass
class CheckerOutcome:
    """Settled result of one checker invocation: a result, a typed error, or a skip."""
    checker: str
    status: CheckerStatus = CheckerStatus.idle
    result: Any = None
    error: Optional[ScanError] = None

    @property
    def succeeded(self) -> bool:
        return self.status is CheckerStatus.succeeded

    def diagnostics(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {"status": self.status.value}
        if self.error is not None:
            entry["error_type"] = self.error.kind.value
            entry["error"] = str(self.error)[:500]
        return entry


class Checker(ABC):
    """An analyzer run against a browser session. run() returns a typed result or raises."""

    name: str = "checker"
    # False for checkers that evaluate the target URL in their own process
    needs_page: bool = True

    @abstractmethod
    async def run(self, session) -> Any:
        ...

    async def execute(self, session) -> CheckerOutcome:
        """Run the checker and settle into an outcome. Never raises, except on cancellation."""
        outcome = CheckerOutcome(checker=self.name)
        if self.needs_page and (session is None or not session.usable):
            outcome.status = CheckerStatus.skipped
            logger.warning(f"{self.name} skipped: browser session unavailable")
            return outcome

        outcome.status = CheckerStatus.running
        try:
            outcome.result = await self.run(session)
            outcome.status = CheckerStatus.succeeded
        except ScanError as e:
            outcome.status = CheckerStatus.failed
            outcome.error = e
            logger.warning(f"{self.name} failed ({e.kind.value}): {e}")
        except Exception as e:
            outcome.status = CheckerStatus.failed
            outcome.error = CheckerEvaluationError(self.name, str(e))
            logger.error(f"{self.name} raised unexpectedly: {e}", exc_info=True)
        return outcome


@dataclass
class ScanFindings:
    structural: CheckerOutcome
    compliance: CheckerOutcome
    score: CheckerOutcome


class CheckerSet:
    """
    Runs the three checkers of a scan concurrently and waits for all of them.

    Each checker settles into its own outcome, so one failure never cancels
    or hides the others.
    """

    def __init__(self, structural: Checker, compliance: Checker, score: Checker):
        self.structural = structural
        self.compliance = compliance
        self.score = score

    @property
    def checkers(self) -> Sequence[Checker]:
        return (self.structural, self.compliance, self.score)

    async def run_all(self, session) -> ScanFindings:
        settled = await asyncio.gather(
            *(checker.execute(session) for checker in self.checkers),
            return_exceptions=True,
        )
        outcomes = []
        for checker, item in zip(self.checkers, settled):
            if isinstance(item, CheckerOutcome):
                outcomes.append(item)
            else:
                outcomes.append(CheckerOutcome(
                    checker=checker.name,
                    status=CheckerStatus.failed,
                    error=CheckerEvaluationError(checker.name, str(item)),
                ))
        return ScanFindings(*outcomes)
