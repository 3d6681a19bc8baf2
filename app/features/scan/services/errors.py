"""
Scan error taxonomy.

Every failure raised by the browser layer, the checkers or the admission
controller carries an explicit ScanErrorKind. The orchestrator classifies
failures by matching on that tag (or on the exception type for errors raised
outside this package) and persists the resulting reason code.
"""
import asyncio
import enum
from typing import Optional


class ScanErrorKind(enum.Enum):
    invalid_url = "invalid_url"
    launch_failure = "launch_failure"
    navigation_failure = "navigation_failure"
    navigation_timeout = "navigation_timeout"
    session_lost = "session_lost"
    frame_detached = "frame_detached"
    checker_evaluation = "checker_evaluation"
    score_engine_unavailable = "score_engine_unavailable"
    connection_refused = "connection_refused"
    shutdown_in_progress = "shutdown_in_progress"
    queue_full = "queue_full"
    unknown = "unknown"


class FailureReason(str, enum.Enum):
    """Machine-readable reason codes persisted on failed scans."""
    server_shutdown = "server_shutdown"
    invalid_url = "invalid_url"
    launch_failed = "launch_failed"
    navigation_failed = "navigation_failed"
    frame_detached = "frame_detached"
    browser_closed = "browser_closed"
    timeout = "timeout"
    connection_refused = "connection_refused"
    queue_full = "queue_full"
    unknown = "unknown"


_REASON_BY_KIND = {
    ScanErrorKind.invalid_url: FailureReason.invalid_url,
    ScanErrorKind.launch_failure: FailureReason.launch_failed,
    ScanErrorKind.navigation_failure: FailureReason.navigation_failed,
    ScanErrorKind.navigation_timeout: FailureReason.timeout,
    ScanErrorKind.session_lost: FailureReason.browser_closed,
    ScanErrorKind.frame_detached: FailureReason.frame_detached,
    ScanErrorKind.connection_refused: FailureReason.connection_refused,
    ScanErrorKind.score_engine_unavailable: FailureReason.connection_refused,
    ScanErrorKind.shutdown_in_progress: FailureReason.server_shutdown,
    ScanErrorKind.queue_full: FailureReason.queue_full,
}


class ScanError(Exception):
    kind: ScanErrorKind = ScanErrorKind.unknown

    def __init__(self, message: str, kind: Optional[ScanErrorKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def reason(self) -> str:
        return _REASON_BY_KIND.get(self.kind, FailureReason.unknown).value


class InvalidUrl(ScanError):
    kind = ScanErrorKind.invalid_url


class LaunchFailure(ScanError):
    kind = ScanErrorKind.launch_failure


class NavigationFailure(ScanError):
    kind = ScanErrorKind.navigation_failure


class NavigationTimeout(NavigationFailure):
    kind = ScanErrorKind.navigation_timeout


class SessionLost(ScanError):
    """The browser process or tab went away mid-operation."""
    kind = ScanErrorKind.session_lost


class CheckerError(ScanError):
    kind = ScanErrorKind.checker_evaluation

    def __init__(self, checker: str, message: str, kind: Optional[ScanErrorKind] = None):
        super().__init__(f"{checker}: {message}", kind)
        self.checker = checker


class CheckerEvaluationError(CheckerError):
    kind = ScanErrorKind.checker_evaluation


class ScoreEngineUnavailable(CheckerError):
    kind = ScanErrorKind.score_engine_unavailable


class ShutdownInProgress(ScanError):
    kind = ScanErrorKind.shutdown_in_progress


class QueueFull(ScanError):
    kind = ScanErrorKind.queue_full


def classify_failure(exc: BaseException) -> str:
    """Map an exception to the reason code stored on a failed scan."""
    if isinstance(exc, ScanError):
        return exc.reason
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return FailureReason.timeout.value
    if isinstance(exc, ConnectionRefusedError):
        return FailureReason.connection_refused.value
    return FailureReason.unknown.value
