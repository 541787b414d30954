"""
Session Manager
===============
Establishes the authenticated browsing session, persisting it across runs.

State machine (one attempt)::

    Launched → CookieReplay → ProbeLogin ─┬─▶ Authenticated (refresh cookies)
                                          └─▶ LoginRequired
                                               → DialogWait → QrWait
                                               → HumanWait → Verify
                                               ─┬─▶ Authenticated
                                                └─▶ AttemptFailed

``AttemptFailed`` loops back to ``CookieReplay`` after a constant backoff,
up to ``max_login_attempts`` attempts in total; then ``LoginFailed``.

Timeouts follow ``TimeoutBudget``: navigation, login dialog and QR code each
get ``min(10000, total/3)``; the human wait (QR scan) gets the full total.

Security:
    - Cookie values are never logged.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeout

from ..browser import SessionHandle, goto_bounded, scoped_page, wait_bounded
from ..errors import (
    LoginFailed,
    LoginVerificationFailed,
    NotAuthenticated,
    SelectorTimeout,
    SessionError,
)
from ..models import Cookie, SessionState, cookies_for_domain
from ..retry import AttemptResult, Err, Ok, retry_bounded
from ..run_config import RedNoteRunConfig
from ..timeouts import (
    STAGE_LOGIN_DIALOG,
    STAGE_NAVIGATE,
    STAGE_QR_CODE,
    TimeoutBudget,
)
from .cookie_store import CookieStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Site constants
# ---------------------------------------------------------------------------

EXPLORE_URL = "https://www.xiaohongshu.com/explore"

IDENTITY_SELECTOR = ".user.side-bar-component .channel"
IDENTITY_MARKER = "我"
LOGIN_DIALOG_SELECTOR = ".login-container"
QR_CODE_SELECTOR = ".qrcode-img"

# Returns true when the sidebar "me" entry is rendered for a signed-in user.
IDENTITY_PROBE_SCRIPT = """([selector, marker]) => {
    const el = document.querySelector(selector);
    return !!el && (el.textContent || '').trim() === marker;
}"""


async def probe_identity(
    page: Page,
    selector: str = IDENTITY_SELECTOR,
    marker: str = IDENTITY_MARKER,
) -> bool:
    """Evaluate the identity probe on *page*."""
    return bool(await page.evaluate(IDENTITY_PROBE_SCRIPT, [selector, marker]))


class SessionManager:
    """Manages the authenticated Playwright session for one orchestrator.

    Lifecycle::

        1. ``ensure_authenticated(timeout_ms)``
           → cookie replay + identity probe; falls back to QR login.

        2. ``verify_session(timeout_ms)``
           → cookie replay + identity probe only; ``NotAuthenticated`` if
             the stored cookies are no longer accepted.

        3. ``login(timeout_ms)``
           → interactive entry point (``init`` / ``login`` tool) using the
             longer login timeout.
    """

    def __init__(
        self,
        config: Optional[RedNoteRunConfig] = None,
        handle: Optional[SessionHandle] = None,
        store: Optional[CookieStore] = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or RedNoteRunConfig()
        self.handle = handle or SessionHandle(headless=self.config.headless)
        self.store = store or CookieStore(self.config.cookie_path)
        self._sleep = sleep
        self._state: Optional[SessionState] = None

    @property
    def state(self) -> Optional[SessionState]:
        """The most recently established session, if any."""
        return self._state

    # ── Public API ────────────────────────────────────────────────

    async def ensure_authenticated(self, timeout_ms: Optional[float] = None) -> SessionState:
        """Return an authenticated session, logging in if required.

        Raises:
            LoginFailed: every attempt failed (wraps the last cause).
            SessionError: the browser could not be launched.
        """
        total = timeout_ms or self.config.timeout_ms
        budget = TimeoutBudget(total_ms=total)
        max_attempts = self.config.max_login_attempts
        logger.info(f"[SESSION] Ensuring authenticated session (timeout {total}ms)")

        await self._launch()

        async def attempt(number: int) -> AttemptResult:
            try:
                return Ok(await self._run_attempt(budget, allow_login=True))
            except Exception as exc:
                return Err(exc)

        result, attempts = await retry_bounded(
            attempt,
            max_attempts=max_attempts,
            delay_s=self.config.login_retry_delay_s,
            sleep=self._sleep,
            label="Login attempt",
        )
        if isinstance(result, Err):
            logger.error("[SESSION] Login failed after maximum retries")
            raise LoginFailed(attempts, max_attempts, result.error) from result.error

        self._state = result.value
        return result.value

    async def verify_session(self, timeout_ms: Optional[float] = None) -> SessionState:
        """Replay stored cookies and probe once; never opens the login dialog."""
        budget = TimeoutBudget(total_ms=timeout_ms or self.config.timeout_ms)
        await self._launch()
        try:
            state = await self._run_attempt(budget, allow_login=False)
        except PlaywrightError as exc:
            logger.error(f"[SESSION] Browser error while verifying session: {exc}")
            raise SessionError(f"Session verification failed: {exc}") from exc
        self._state = state
        return state

    async def login(self, timeout_ms: Optional[float] = None) -> SessionState:
        """Interactive login with the (longer) login timeout."""
        return await self.ensure_authenticated(timeout_ms or self.config.login_timeout_ms)

    async def close(self) -> None:
        await self.handle.close()

    # ── Internal ──────────────────────────────────────────────────

    async def _launch(self) -> None:
        try:
            await self.handle.get_browser()
        except Exception as exc:
            logger.error(f"[SESSION] Failed to launch browser: {exc}")
            raise SessionError(f"Failed to launch browser: {exc}") from exc

    async def _run_attempt(self, budget: TimeoutBudget, *, allow_login: bool) -> SessionState:
        """One pass of CookieReplay → Probe → (login) → Verify → Persist."""
        cookies = cookies_for_domain(self.store.load())

        # ── CookieReplay + ProbeLogin ─────────────────────────────
        if cookies:
            logger.info(f"[SESSION] Replaying {len(cookies)} stored cookies")
            async with scoped_page(self.handle, [c.to_playwright() for c in cookies]) as page:
                await goto_bounded(page, EXPLORE_URL, budget.stage(STAGE_NAVIGATE), "Explore page navigation")
                if await probe_identity(page):
                    logger.info("[SESSION] Already logged in")
                    return await self._persist(page)
            logger.info("[SESSION] Stored cookies were not accepted")
        else:
            logger.info("[SESSION] No stored cookies")

        if not allow_login:
            logger.error("[SESSION] Not logged in, please login first")
            raise NotAuthenticated()

        # ── LoginRequired: fresh context, QR flow ─────────────────
        async with scoped_page(self.handle) as page:
            await goto_bounded(page, EXPLORE_URL, budget.stage(STAGE_NAVIGATE), "Explore page navigation")

            logger.info("[LOGIN] Waiting for login dialog")
            await wait_bounded(page, LOGIN_DIALOG_SELECTOR, budget.stage(STAGE_LOGIN_DIALOG), "Login dialog")

            logger.info("[LOGIN] Waiting for QR code")
            await wait_bounded(page, QR_CODE_SELECTOR, budget.stage(STAGE_QR_CODE), "QR code")

            human_ms = budget.human()
            logger.info(f"[LOGIN] Waiting for user to scan the QR code (up to {human_ms:g}ms)")
            try:
                await page.wait_for_function(
                    IDENTITY_PROBE_SCRIPT,
                    arg=[IDENTITY_SELECTOR, IDENTITY_MARKER],
                    timeout=human_ms,
                )
            except PlaywrightTimeout as exc:
                raise SelectorTimeout("User login", human_ms, str(exc)) from exc

            if not await probe_identity(page):
                logger.error("[LOGIN] Login verification failed")
                raise LoginVerificationFailed()

            logger.info("[LOGIN] Login successful, saving cookies")
            return await self._persist(page)

    async def _persist(self, page: Page) -> SessionState:
        raw: List[dict] = await page.context.cookies()
        cookies = [Cookie.from_playwright(item) for item in raw]
        self.store.save(cookies)
        return SessionState(cookies=tuple(cookies), is_authenticated=True)
