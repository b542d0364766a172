# -*- coding: utf-8 -*-
"""
Browser Session Manager
-----------------------
Owns one long-lived headless Chromium (Playwright) and hands out one page per
scrape request. Every page lives in its own browser context and is closed on
every exit path, so concurrent scrapes never share state and never leak pages.

The manager never launches a browser on demand: start() and stop() belong to
the host application's lifecycle, and a page request against a stopped or
crashed browser fails with BrowserUnavailableError.
"""

import asyncio
import random
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from config.constants import (
    BROWSER_EXTRA_HEADERS,
    BROWSER_LAUNCH_ARGS,
    BROWSER_LAUNCH_TIMEOUT_SECONDS,
    BROWSER_USER_AGENTS,
    BROWSER_VIEWPORT,
    LOGIN_REDIRECT_MARKERS,
    NAVIGATION_TIMEOUT_SECONDS,
    SETTLE_DELAY_SECONDS,
    STEALTH_INIT_SCRIPT,
)
from utils.helpers import print_error, print_info, print_success, print_warning
from wallets.errors import BrowserUnavailableError, NavigationTimeoutError, ValueNotFoundError

T = TypeVar("T")
TAG = "Browser"


class BrowserSessionManager:
    """Shared headless browser with scoped pages."""

    def __init__(
        self,
        headless: bool = True,
        navigation_timeout: float = NAVIGATION_TIMEOUT_SECONDS,
        settle_delay: float = SETTLE_DELAY_SECONDS,
    ):
        self.headless = headless
        self.navigation_timeout = navigation_timeout
        self.settle_delay = settle_delay
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._connected = False
        self._open_pages = 0

    @property
    def is_available(self) -> bool:
        return self._browser is not None and self._connected

    @property
    def open_pages(self) -> int:
        return self._open_pages

    async def start(self) -> None:
        """Launches the shared browser. Safe to call twice."""
        if self.is_available:
            return
        await self.stop()

        print_info("Launching headless Chromium (stealth mode)...", tag=TAG)
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=BROWSER_LAUNCH_ARGS,
                timeout=BROWSER_LAUNCH_TIMEOUT_SECONDS * 1000,
            )
        except PlaywrightError:
            await self._playwright.stop()
            self._playwright = None
            raise
        self._connected = True
        self._browser.on("disconnected", self._on_disconnected)
        print_success("Browser ready", tag=TAG)

    async def stop(self) -> None:
        """Closes the browser and Playwright. Safe to call when not started."""
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        self._connected = False
        if browser is not None:
            try:
                await browser.close()
                print_info("Browser closed", tag=TAG)
            except PlaywrightError as e:
                print_warning(f"Browser close warning: {e}", tag=TAG)
        if playwright is not None:
            await playwright.stop()

    def _on_disconnected(self, *_args) -> None:
        if self._connected:
            print_error("Browser disconnected; scrapes will fail until restart", tag=TAG)
        self._connected = False

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Yields a fresh stealth page; the page and its context are always closed."""
        if not self.is_available:
            raise BrowserUnavailableError()

        try:
            context = await self._browser.new_context(
                user_agent=random.choice(BROWSER_USER_AGENTS),
                viewport=BROWSER_VIEWPORT,
                extra_http_headers=BROWSER_EXTRA_HEADERS,
                locale="en-US",
            )
        except PlaywrightError as e:
            # The browser died between the availability check and here
            self._connected = False
            raise BrowserUnavailableError(f"Browser not available: {e}") from e

        self._open_pages += 1
        try:
            await context.add_init_script(STEALTH_INIT_SCRIPT)
            page = await context.new_page()
            yield page
        finally:
            self._open_pages -= 1
            try:
                await context.close()
            except PlaywrightError as e:
                print_warning(f"Page cleanup warning: {e}", tag=TAG)

    async def with_page(self, fn: Callable[[Page], Awaitable[T]]) -> T:
        async with self.page() as page:
            return await fn(page)

    async def navigate(self, page: Page, url: str) -> None:
        """
        Loads url and waits the fixed settle delay for the SPA to render.

        Raises NavigationTimeoutError when the page does not load in time and
        ValueNotFoundError when the site bounces us to a login screen.
        """
        try:
            await page.goto(
                url, wait_until="domcontentloaded", timeout=self.navigation_timeout * 1000
            )
        except PlaywrightTimeoutError as e:
            raise NavigationTimeoutError(
                f"Navigation timed out after {self.navigation_timeout:.0f}s"
            ) from e

        current_url = (page.url or "").lower()
        if any(marker in current_url for marker in LOGIN_REDIRECT_MARKERS) and not any(
            marker in url.lower() for marker in LOGIN_REDIRECT_MARKERS
        ):
            raise ValueNotFoundError("Redirected to login page")

        if self.settle_delay > 0:
            await asyncio.sleep(self.settle_delay)
