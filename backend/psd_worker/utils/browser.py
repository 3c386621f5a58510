import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from psd_worker.utils.playwright_config import (
    STEALTH_INIT_SCRIPT,
    get_browser_launch_config,
    get_context_config,
    get_ws_endpoint,
)

logger = logging.getLogger(__name__)


class BrowserManager:
    """
    Owns the single Chromium instance shared by all requests.

    The browser is launched on first use and relaunched whenever it has
    disconnected. Each request gets its own throwaway context.
    """

    def __init__(self, headless: Optional[bool] = None):
        self.headless = headless
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    def is_connected(self) -> bool:
        return bool(self.browser and self.browser.is_connected())

    async def get_browser(self) -> Browser:
        """Return the shared browser, launching it if needed."""
        async with self._lock:
            if self.is_connected():
                return self.browser

            if self.browser is not None:
                logger.warning("Browser disconnected, relaunching...")

            if self.playwright is None:
                self.playwright = await async_playwright().start()

            ws_endpoint = get_ws_endpoint()
            if ws_endpoint:
                logger.info(f"Connecting to remote browser at {ws_endpoint}...")
                self.browser = await self.playwright.chromium.connect_over_cdp(ws_endpoint)
            else:
                logger.info("Launching Browser...")
                if self.headless is None:
                    launch_config = get_browser_launch_config()
                else:
                    launch_config = get_browser_launch_config(headless=self.headless)
                self.browser = await self.playwright.chromium.launch(**launch_config)

            logger.info(f"Browser ready (version {self.browser.version})")
            return self.browser

    @asynccontextmanager
    async def new_context(self) -> AsyncIterator[BrowserContext]:
        """Yield a fresh browser context that is always closed afterwards."""
        browser = await self.get_browser()
        context = await browser.new_context(**get_context_config())
        await context.add_init_script(STEALTH_INIT_SCRIPT)
        try:
            yield context
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"Error closing browser context: {e}")

    async def close(self):
        """Close browser and cleanup resources."""
        async with self._lock:
            if self.browser:
                try:
                    await self.browser.close()
                except Exception as e:
                    logger.warning(f"Error closing browser: {e}")
                self.browser = None
            if self.playwright:
                await self.playwright.stop()
                self.playwright = None
        logger.info("Browser closed.")
