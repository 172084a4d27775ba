"""
Playwright Backend implementation for browser-gated sources.

Provides async browser-based fetching with:
- Remote browser connection (CDP endpoint) or local launch
- Warm-up navigation so client-side challenges can set their cookies
- In-page API requests that reuse the browser's session
- Stealth init script for bot detection avoidance
- Guaranteed teardown through the async context manager
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from .base import (
    Backend,
    BackendError,
    FetchResult,
    RequestSpec,
)

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright, Response

logger = logging.getLogger(__name__)


# =============================================================================
# Browser Error Classes
# =============================================================================


class BrowserError(BackendError):
    """Base exception for browser errors."""


class NavigationTimeout(BrowserError):
    """Page didn't load in time."""


class PageBlocked(BrowserError):
    """Bot detection or access denied."""


# =============================================================================
# Scripts
# =============================================================================


STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-AU', 'en'] });
window.chrome = { runtime: {}, loadTimes: function() {}, csi: function() {}, app: {} };
"""

# Runs inside the page so the request carries the session's cookies
IN_PAGE_FETCH_SCRIPT = """
async ({ url, headers, timeoutMs }) => {
    const controller = new AbortController();
    const timer = setTimeout(() => controller.abort(), timeoutMs);
    try {
        const response = await fetch(url, {
            credentials: 'include',
            headers: headers,
            signal: controller.signal,
        });
        return {
            status: response.status,
            url: response.url,
            contentType: response.headers.get('content-type') || '',
            body: await response.text(),
        };
    } finally {
        clearTimeout(timer);
    }
}
"""

BLOCKED_STATUS_CODES = {403, 406, 418, 451}

BLOCKED_INDICATORS = (
    "access denied",
    "captcha",
    "challenge-platform",
    "cf-browser-verification",
    "please verify you are human",
)


# =============================================================================
# PlaywrightBackend Implementation
# =============================================================================


class PlaywrightBackend(Backend):
    """Playwright-based browser backend.

    Use as ``async with PlaywrightBackend(...) as browser:`` so the page,
    context, browser and driver are released on every exit path.
    """

    def __init__(
        self,
        ws_endpoint: str | None = None,
        headless: bool = True,
        timeout: float = 60.0,
        browser_type: str = "chromium",
        viewport_width: int = 1920,
        viewport_height: int = 1080,
        user_agent: str | None = None,
        stealth: bool = True,
    ):
        """Initialize Playwright backend.

        Args:
            ws_endpoint: Remote browser endpoint; a local browser is launched when None
            headless: Run a local browser in headless mode
            timeout: Navigation and in-page request timeout in seconds
            browser_type: Browser to launch locally (chromium, firefox, webkit)
            viewport_width: Browser viewport width
            viewport_height: Browser viewport height
            user_agent: Custom user agent string
            stealth: Inject the stealth init script
        """
        self.ws_endpoint = ws_endpoint
        self.headless = headless
        self.timeout = timeout
        self.timeout_ms = int(timeout * 1000)
        self.browser_type = browser_type
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.stealth = stealth
        self.user_agent = user_agent or (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36"
        )

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def name(self) -> str:
        return "playwright"

    async def _ensure_browser(self) -> None:
        """Start the driver and connect to (or launch) a browser."""
        if self._browser is not None and self._browser.is_connected():
            return

        from playwright.async_api import async_playwright

        self._playwright = await async_playwright().start()

        try:
            if self.ws_endpoint:
                self._browser = await self._playwright.chromium.connect_over_cdp(
                    self.ws_endpoint,
                    timeout=self.timeout_ms,
                )
                logger.info("Connected to remote browser")
            else:
                launcher = getattr(self._playwright, self.browser_type)
                args = []
                if self.browser_type == "chromium":
                    args = [
                        "--disable-blink-features=AutomationControlled",
                        "--disable-dev-shm-usage",
                        "--no-sandbox",
                    ]
                self._browser = await launcher.launch(headless=self.headless, args=args)
                logger.info(f"Launched {self.browser_type} browser (headless={self.headless})")
        except Exception as e:
            raise BrowserError(
                f"Failed to start {self.browser_type} browser: {e}",
                cause=e,
            ) from e

    async def _get_page(self) -> Page:
        await self._ensure_browser()

        if self._context is None:
            self._context = await self._browser.new_context(  # type: ignore[union-attr]
                viewport={"width": self.viewport_width, "height": self.viewport_height},
                user_agent=self.user_agent,
                locale="en-AU",
                timezone_id="Australia/Sydney",
            )
            if self.stealth:
                await self._context.add_init_script(STEALTH_SCRIPT)

        if self._page is None or self._page.is_closed():
            self._page = await self._context.new_page()
            self._page.set_default_timeout(self.timeout_ms)

        return self._page

    def _check_blocked(self, status_code: int, html: str, url: str) -> None:
        if status_code in BLOCKED_STATUS_CODES:
            raise PageBlocked(
                f"Request blocked with status {status_code}",
                url=url,
                status_code=status_code,
            )
        self._check_challenge_markers(html, url, status_code)

    def _check_challenge_markers(self, html: str, url: str, status_code: int) -> None:
        if len(html) >= 50000:
            return
        lowered = html.lower()
        for indicator in BLOCKED_INDICATORS:
            if indicator in lowered:
                raise PageBlocked(
                    f"Bot detection triggered: '{indicator}' found",
                    url=url,
                    status_code=status_code,
                )

    async def _navigate(self, url: str, timeout: float | None = None) -> tuple[Page, Response | None, str]:
        """Load a page and return it with its response and HTML, unchecked."""
        page = await self._get_page()
        timeout_ms = int((timeout or self.timeout) * 1000)

        try:
            response = await page.goto(
                url,
                timeout=timeout_ms,
                wait_until="domcontentloaded",
            )
            html = await page.content()
        except Exception as e:
            if "timeout" in str(e).lower():
                raise NavigationTimeout(
                    f"Navigation timeout: {url}",
                    url=url,
                    cause=e,
                ) from e
            raise BrowserError(f"Browser error: {e}", url=url, cause=e) from e

        return page, response, html

    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Navigate to a page and return its rendered HTML.

        Raises:
            PageBlocked: Block status or challenge page still showing
            NavigationTimeout: Page didn't load in time
            BrowserError: Any other browser failure
        """
        started = time.perf_counter()
        page, response, html = await self._navigate(request.url, request.timeout)

        status_code = response.status if response else 200
        self._check_blocked(status_code, html, request.url)

        return FetchResult(
            url=request.url,
            final_url=page.url,
            status_code=status_code,
            text=html,
            headers=dict(response.headers) if response else {},
            elapsed_ms=(time.perf_counter() - started) * 1000,
        )

    async def warm_up(self, url: str, wait_ms: int = 0) -> FetchResult:
        """Visit a site's home page and give client-side challenges time to settle.

        With a wait, only the page content after the wait is checked for
        block markers; the first response may be the challenge itself.
        """
        started = time.perf_counter()
        page, response, html = await self._navigate(url)

        status_code = response.status if response else 200

        if wait_ms:
            try:
                await page.wait_for_timeout(wait_ms)
                html = await page.content()
            except Exception as e:
                raise BrowserError(f"Browser error: {e}", url=url, cause=e) from e
            self._check_challenge_markers(html, url, status_code)
        else:
            self._check_blocked(status_code, html, url)

        return FetchResult(
            url=url,
            final_url=page.url,
            status_code=status_code,
            text=html,
            headers=dict(response.headers) if response else {},
            elapsed_ms=(time.perf_counter() - started) * 1000,
        )

    async def fetch_in_page(self, request: RequestSpec) -> FetchResult:
        """Issue a request from inside the current page's session.

        Raises:
            NavigationTimeout: The in-page request timed out
            BrowserError: Script evaluation failed
        """
        page = await self._get_page()
        started = time.perf_counter()
        timeout_ms = int((request.timeout or self.timeout) * 1000)

        url = request.url
        if request.params:
            from urllib.parse import urlencode

            url = f"{url}{'&' if '?' in url else '?'}{urlencode(request.params)}"

        try:
            payload: dict[str, Any] = await page.evaluate(
                IN_PAGE_FETCH_SCRIPT,
                {"url": url, "headers": request.headers, "timeoutMs": timeout_ms},
            )
        except Exception as e:
            if "abort" in str(e).lower() or "timeout" in str(e).lower():
                raise NavigationTimeout(f"In-page request timed out: {url}", url=url, cause=e) from e
            raise BrowserError(f"In-page request failed: {e}", url=url, cause=e) from e

        return FetchResult(
            url=url,
            final_url=payload.get("url") or url,
            status_code=int(payload.get("status") or 0),
            text=payload.get("body") or "",
            headers={"content-type": payload.get("contentType") or ""},
            elapsed_ms=(time.perf_counter() - started) * 1000,
        )

    async def close(self) -> None:
        """Close page, context, browser and driver; safe to call repeatedly.

        Each step runs even when an earlier one fails.
        """
        page, context, browser, playwright = self._page, self._context, self._browser, self._playwright
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None

        if page is not None:
            try:
                if not page.is_closed():
                    await page.close()
            except Exception as e:
                logger.warning(f"Error while closing page: {e}")
        if context is not None:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"Error while closing browser context: {e}")
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning(f"Error while closing browser: {e}")
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.warning(f"Error while stopping Playwright: {e}")

        logger.debug("Playwright backend closed")
