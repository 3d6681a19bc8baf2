"""
Browser session lifecycle for accessibility scans.

A BrowserSession is one Chrome tab navigated to a single target URL. The
manager launches (or borrows from the pool) a WebDriver, navigates with a
"content loaded" readiness condition and hands the session to the checkers.
release() is idempotent and never raises.
"""
import asyncio
from typing import Any, Callable, Optional

from selenium import webdriver
from selenium.common.exceptions import (
    InvalidSessionIdException,
    JavascriptException,
    NoSuchFrameException,
    NoSuchWindowException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service

from app.features.scan.services.errors import (
    CheckerEvaluationError,
    InvalidUrl,
    LaunchFailure,
    NavigationFailure,
    NavigationTimeout,
    ScanError,
    ScanErrorKind,
    SessionLost,
)
from app.platform.config import settings
from app.platform.logger import get_logger
from app.platform.utils.url_validator import clean_url, has_http_scheme

logger = get_logger(__name__)

SCRIPT_TIMEOUT_SECONDS = 60

# chromedriver reports a dead browser/tab through plain WebDriverException
# messages; this is the only place those messages are inspected.
_SESSION_LOST_MARKERS = (
    "disconnected",
    "not reachable",
    "target window already closed",
    "target closed",
    "session deleted",
    "invalid session id",
    "no such window",
)
_FRAME_DETACHED_MARKERS = (
    "frame was detached",
    "target frame detached",
    "no such frame",
)


def build_driver() -> webdriver.Chrome:
    chrome_options = Options()
    chrome_options.add_argument('--headless=new')
    chrome_options.add_argument('--no-sandbox')
    chrome_options.add_argument('--disable-setuid-sandbox')
    chrome_options.add_argument('--disable-dev-shm-usage')
    chrome_options.add_argument('--disable-gpu')
    # "eager" returns from get() at DOMContentLoaded rather than full load
    chrome_options.page_load_strategy = 'eager'

    if settings.CHROME_BINARY:
        chrome_options.binary_location = settings.CHROME_BINARY

    if settings.CHROMEDRIVER_PATH:
        driver_service = Service(executable_path=settings.CHROMEDRIVER_PATH)
        driver = webdriver.Chrome(service=driver_service, options=chrome_options)
    else:
        driver = webdriver.Chrome(options=chrome_options)

    driver.set_script_timeout(SCRIPT_TIMEOUT_SECONDS)
    return driver


def translate_webdriver_error(exc: WebDriverException, *, during_navigation: bool = False) -> ScanError:
    """Turn a Selenium exception into a tagged ScanError."""
    message = (exc.msg or str(exc) or "").lower()

    if isinstance(exc, NoSuchFrameException) or any(m in message for m in _FRAME_DETACHED_MARKERS):
        return SessionLost(f"Page frame was detached: {exc.msg}", kind=ScanErrorKind.frame_detached)
    if isinstance(exc, (InvalidSessionIdException, NoSuchWindowException)) or any(
        m in message for m in _SESSION_LOST_MARKERS
    ):
        if during_navigation:
            # the page went away while loading; reported as a detached frame
            return SessionLost(f"Page was closed during navigation: {exc.msg}", kind=ScanErrorKind.frame_detached)
        return SessionLost(f"Browser session lost: {exc.msg}")
    if isinstance(exc, TimeoutException):
        if during_navigation:
            return NavigationTimeout(f"Navigation timed out: {exc.msg}")
        return ScanError(f"Browser operation timed out: {exc.msg}", kind=ScanErrorKind.navigation_timeout)
    if isinstance(exc, JavascriptException):
        return CheckerEvaluationError("page-script", exc.msg or str(exc))
    if during_navigation:
        return NavigationFailure(f"Navigation failed: {exc.msg}")
    return ScanError(f"WebDriver error: {exc.msg}")


class BrowserSession:
    """
    One tab bound to one target URL, shared by the checkers of a single scan.

    Script evaluations are serialized through a lock: a WebDriver session
    executes one command at a time.
    """

    def __init__(self, driver, url: str, *, pooled: bool = False, base_handle: Optional[str] = None):
        self.driver = driver
        self.url = url
        self.pooled = pooled
        self.base_handle = base_handle
        self.lost = False
        self.released = False
        self._lock = asyncio.Lock()

    @property
    def usable(self) -> bool:
        return not (self.released or self.lost)

    async def run_script(self, script: str, *args: Any) -> Any:
        return await self._call(self.driver.execute_script, script, *args)

    async def run_async_script(self, script: str, *args: Any) -> Any:
        """Run a script that reports its result through the trailing callback argument."""
        return await self._call(self.driver.execute_async_script, script, *args)

    async def _call(self, fn: Callable, *args: Any) -> Any:
        if self.released:
            raise SessionLost(f"Session for {self.url} was already released")
        if self.lost:
            raise SessionLost(f"Session for {self.url} was lost")
        async with self._lock:
            try:
                return await asyncio.to_thread(fn, *args)
            except WebDriverException as exc:
                error = translate_webdriver_error(exc)
                if isinstance(error, SessionLost):
                    self.lost = True
                raise error from exc


class BrowserSessionManager:
    """
    acquire(url) -> BrowserSession; release(session) always succeeds.

    With a BrowserPool the manager borrows a pre-launched browser, opens a
    fresh tab in it and uses the shorter pooled navigation timeout.
    """

    def __init__(
        self,
        *,
        pool=None,
        driver_factory: Callable[[], Any] = build_driver,
        navigation_timeout: Optional[float] = None,
    ):
        self.pool = pool
        self._driver_factory = driver_factory
        if navigation_timeout is None:
            navigation_timeout = (
                settings.POOLED_NAVIGATION_TIMEOUT_SECONDS if pool else settings.NAVIGATION_TIMEOUT_SECONDS
            )
        self.navigation_timeout = navigation_timeout

    async def acquire(self, url: str) -> BrowserSession:
        target = clean_url(url)
        if not has_http_scheme(target):
            raise InvalidUrl(f"Invalid URL: {url}. URL must start with http:// or https://")

        session = await self._open_session(target)
        try:
            await asyncio.to_thread(self._navigate, session.driver, target, self.navigation_timeout)
        except WebDriverException as exc:
            error = translate_webdriver_error(exc, during_navigation=True)
            if isinstance(error, SessionLost):
                session.lost = True
            logger.warning(f"Navigation to {target} failed ({error.kind.value}): {exc.msg}")
            await self.release(session)
            raise error from exc

        logger.info(f"Browser session ready for {target}")
        return session

    async def _open_session(self, url: str) -> BrowserSession:
        if self.pool is not None:
            driver = await self.pool.checkout()
            try:
                base_handle = await asyncio.to_thread(self._open_tab, driver)
            except WebDriverException as exc:
                await self.pool.discard(driver)
                raise LaunchFailure(f"Could not open a tab in pooled browser: {exc.msg}") from exc
            return BrowserSession(driver, url, pooled=True, base_handle=base_handle)

        try:
            driver = await asyncio.to_thread(self._driver_factory)
        except WebDriverException as exc:
            raise LaunchFailure(f"Failed to launch browser: {exc.msg}") from exc
        return BrowserSession(driver, url)

    @staticmethod
    def _open_tab(driver) -> str:
        base_handle = driver.current_window_handle
        driver.switch_to.new_window("tab")
        return base_handle

    @staticmethod
    def _navigate(driver, url: str, timeout: float) -> None:
        driver.set_page_load_timeout(timeout)
        driver.get(url)

    async def release(self, session: Optional[BrowserSession]) -> None:
        if session is None or session.released:
            return
        session.released = True

        try:
            if not session.pooled:
                await asyncio.to_thread(session.driver.quit)
            elif session.lost:
                # the tab and possibly the browser are gone; do not reuse it
                await self.pool.discard(session.driver)
            else:
                await asyncio.to_thread(self._close_tab, session.driver, session.base_handle)
                await self.pool.checkin(session.driver)
        except Exception as e:
            logger.warning(f"Error releasing browser session for {session.url}: {e}")
            if session.pooled:
                await self.pool.discard(session.driver)

    @staticmethod
    def _close_tab(driver, base_handle: Optional[str]) -> None:
        driver.close()
        if base_handle:
            driver.switch_to.window(base_handle)
