"""
Browser Handle & Resource Reaper
================================
Owns the Playwright browser process for one orchestrator and hands out
short-lived context + page pairs.

Lifecycle::

    handle = SessionHandle(headless=False)
    async with scoped_page(handle, cookies) as page:   # context + page opened
        await page.goto(url, timeout=...)
    # page and context closed here, on every exit path
    await handle.close()                              # browser + playwright

The browser is launched lazily and kept for the lifetime of the handle;
relaunching Chromium per call is expensive.  Contexts and pages are closed
per call.  Close failures are logged and swallowed so they never mask the
error that is already propagating.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .errors import NavigationTimeout, SelectorTimeout

logger = logging.getLogger(__name__)


_LAUNCH_ARGS = [
    '--disable-blink-features=AutomationControlled',
    '--no-first-run',
    '--disable-dev-shm-usage',
]

_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)

BrowserLauncher = Callable[[], Awaitable[Browser]]


async def _close_quietly(resource: Any, label: str) -> None:
    """Best-effort ``close()``; secondary errors are logged, never raised."""
    if resource is None:
        return
    try:
        await resource.close()
    except Exception as exc:
        logger.debug(f"[REAPER] Closing {label} failed: {exc}")


class SessionHandle:
    """
    One browser process, owned by exactly one orchestrator.

    Not a process-wide singleton: independent handles (and therefore
    independent orchestrators) can coexist in one process.
    """

    def __init__(
        self,
        *,
        headless: bool = False,
        launcher: Optional[BrowserLauncher] = None,
        user_agent: str = _USER_AGENT,
        locale: str = "zh-CN",
    ):
        """
        Args:
            headless:   Run Chromium without a window.
            launcher:   Coroutine factory returning a ``Browser``.  Defaults to
                        starting Playwright and launching Chromium.
            user_agent: User agent for every new context.
            locale:     Locale for every new context.
        """
        self.headless = headless
        self.user_agent = user_agent
        self.locale = locale
        self._launcher = launcher
        self._playwright = None
        self._browser: Optional[Browser] = None

    @property
    def is_launched(self) -> bool:
        return self._browser is not None

    async def get_browser(self) -> Browser:
        """Launch the browser on first use, then reuse it."""
        if self._browser is None:
            logger.info(f"[BROWSER] Launching browser (headless={self.headless})")
            if self._launcher is not None:
                self._browser = await self._launcher()
            else:
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=_LAUNCH_ARGS,
                )
        return self._browser

    async def new_context(
        self, cookies: Optional[List[Dict[str, Any]]] = None
    ) -> BrowserContext:
        """Create a context, optionally pre-seeded with *cookies*."""
        browser = await self.get_browser()
        context = await browser.new_context(
            user_agent=self.user_agent,
            locale=self.locale,
            viewport={"width": 1440, "height": 900},
        )
        if cookies:
            try:
                await context.add_cookies(cookies)
            except Exception:
                await _close_quietly(context, "context")
                raise
        return context

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self._browser is not None:
            logger.info("[BROWSER] Closing browser")
        await _close_quietly(self._browser, "browser")
        self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:
                logger.debug(f"[REAPER] Stopping Playwright failed: {exc}")
            self._playwright = None


@asynccontextmanager
async def scoped_page(
    handle: SessionHandle,
    cookies: Optional[List[Dict[str, Any]]] = None,
) -> AsyncIterator[Page]:
    """Open a context + page and guarantee both are closed afterwards.

    Closing is attempted for the page and the context independently, even
    when the page close fails.
    """
    context = await handle.new_context(cookies)
    page = None
    try:
        page = await context.new_page()
        yield page
    finally:
        await _close_quietly(page, "page")
        await _close_quietly(context, "context")


# ---------------------------------------------------------------------------
# Bounded waits
# ---------------------------------------------------------------------------

async def goto_bounded(page: Page, url: str, timeout_ms: float, stage: str) -> None:
    """``page.goto`` translating Playwright timeouts into ``NavigationTimeout``."""
    try:
        await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
    except PlaywrightTimeout as exc:
        raise NavigationTimeout(stage, timeout_ms, str(exc)) from exc


async def wait_bounded(
    page: Page,
    selector: str,
    timeout_ms: float,
    stage: str,
    state: Optional[str] = None,
):
    """``page.wait_for_selector`` translating timeouts into ``SelectorTimeout``."""
    kwargs: Dict[str, Any] = {"timeout": timeout_ms}
    if state:
        kwargs["state"] = state
    try:
        return await page.wait_for_selector(selector, **kwargs)
    except PlaywrightTimeout as exc:
        raise SelectorTimeout(stage, timeout_ms, str(exc)) from exc
