"""
Browser Pool - reuse Chrome instances across scans.

Launching Chrome costs several seconds per scan. The pool keeps up to
``size`` browsers alive; idle browsers wait in a FIFO deque so they are
handed out round-robin. Each browser is health-checked on checkout and
replaced when it no longer responds. A checked-out browser is held by one
scan until its session is released.

Slot and idle state are guarded by one ``asyncio.Condition``. Checkin and
discard both notify it, so a checkout waiting for a browser wakes up either
to take the returned one or to launch into the freed slot.
"""
import asyncio
from collections import deque
from typing import Any, Callable, Deque, List, Set

from selenium.common.exceptions import WebDriverException

from app.features.scan.services.browser.session_manager import build_driver
from app.features.scan.services.errors import LaunchFailure
from app.platform.logger import get_logger

logger = get_logger(__name__)


class BrowserPool:

    def __init__(self, size: int = 3, driver_factory: Callable[[], Any] = build_driver):
        self.size = max(1, size)
        self._driver_factory = driver_factory
        self._idle: Deque[Any] = deque()
        self._drivers: Set[Any] = set()
        self._slots = 0  # launched or launching browsers
        self._available = asyncio.Condition()
        self._init_lock = asyncio.Lock()
        self._initialized = False
        self._closed = False

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @property
    def live_count(self) -> int:
        return len(self._drivers)

    async def initialize(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return
            logger.info(f"Initializing browser pool with {self.size} browser(s)...")
            self._closed = False
            for i in range(self.size):
                async with self._available:
                    if self._slots >= self.size:
                        break
                    self._slots += 1
                try:
                    driver = await self._launch()
                except LaunchFailure as e:
                    logger.error(f"Failed to launch pooled browser {i + 1}: {e}")
                    continue
                async with self._available:
                    self._idle.append(driver)
                    self._available.notify()
            self._initialized = True
            logger.info(f"Browser pool initialized with {self.live_count} browser(s)")

    async def _launch(self):
        """Launch a browser into a slot the caller has already reserved."""
        try:
            driver = await asyncio.to_thread(self._driver_factory)
        except WebDriverException as exc:
            async with self._available:
                self._slots -= 1
                self._available.notify()
            raise LaunchFailure(f"Failed to launch browser: {exc.msg}") from exc
        self._drivers.add(driver)
        return driver

    def _can_hand_out(self) -> bool:
        return bool(self._idle) or self._slots < self.size

    async def checkout(self):
        """Return a healthy browser, waiting for one to become idle if all are in use."""
        if not self._initialized:
            await self.initialize()

        while True:
            async with self._available:
                await self._available.wait_for(self._can_hand_out)
                if self._idle:
                    driver = self._idle.popleft()
                else:
                    self._slots += 1
                    driver = None

            if driver is None:
                logger.info("No idle pooled browser, launching a replacement")
                return await self._launch()

            if await self._is_healthy(driver):
                return driver

            logger.warning("Pooled browser disconnected, replacing it")
            await self.discard(driver)

    async def checkin(self, driver) -> None:
        if self._closed or driver not in self._drivers:
            await self.discard(driver)
            return
        async with self._available:
            self._idle.append(driver)
            self._available.notify()

    async def discard(self, driver) -> None:
        """Drop a browser from the pool and quit it. Never raises."""
        async with self._available:
            if driver in self._drivers:
                self._drivers.discard(driver)
                self._slots -= 1
                self._available.notify()
        try:
            await asyncio.to_thread(driver.quit)
        except Exception as e:
            logger.debug(f"Ignoring error while quitting discarded browser: {e}")

    @staticmethod
    async def _is_healthy(driver) -> bool:
        try:
            await asyncio.to_thread(lambda: driver.window_handles)
            return True
        except WebDriverException:
            return False

    async def close_all(self) -> None:
        logger.info("Closing browser pool...")
        self._closed = True
        async with self._available:
            self._idle.clear()
            drivers: List[Any] = list(self._drivers)
        await asyncio.gather(*(self.discard(d) for d in drivers))
        self._initialized = False
        logger.info("Browser pool closed")
