"""
Tests for browser.py and auth/session_manager.py against a scripted fake site.

Covers:
  1. Resource reaper: page + context closed exactly once on every path
  2. Cookie replay + identity probe (idempotent, domain-filtered)
  3. QR login flow with per-stage timeouts
  4. Bounded login retries and the terminal LoginFailed
"""

import asyncio
from dataclasses import replace

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from rednote.auth.session_manager import (
    EXPLORE_URL,
    LOGIN_DIALOG_SELECTOR,
    QR_CODE_SELECTOR,
    probe_identity,
)
from rednote.browser import SessionHandle, goto_bounded, scoped_page, wait_bounded
from rednote.errors import (
    LoginFailed,
    LoginVerificationFailed,
    NavigationTimeout,
    NotAuthenticated,
    SelectorTimeout,
    SessionError,
)
from rednote.models import Cookie

from .conftest import RecordingSleep
from .fakes import VALID_COOKIE, STALE_COOKIE, FakeSite


# ====================================================================
# 1. Browser handle and resource reaper
# ====================================================================

class TestScopedPage:
    """Every opened page/context pair is closed exactly once."""

    def test_closes_on_success(self):
        site = FakeSite()
        handle = SessionHandle(launcher=site.launch)

        async def run():
            async with scoped_page(handle) as page:
                await page.goto(EXPLORE_URL)

        asyncio.run(run())
        assert len(site.contexts) == 1
        assert site.all_closed_once()

    def test_closes_when_body_raises(self):
        site = FakeSite()
        handle = SessionHandle(launcher=site.launch)

        async def run():
            async with scoped_page(handle):
                raise RuntimeError("workflow failed")

        with pytest.raises(RuntimeError, match="workflow failed"):
            asyncio.run(run())
        assert site.all_closed_once()

    def test_close_failure_does_not_mask_error(self):
        site = FakeSite()
        handle = SessionHandle(launcher=site.launch)

        async def run():
            async with scoped_page(handle) as page:
                async def broken_close():
                    page.close_count += 1
                    raise RuntimeError("page already gone")
                page.close = broken_close
                raise ValueError("original")

        with pytest.raises(ValueError, match="original"):
            asyncio.run(run())
        # context still closed after the page close failed
        assert site.contexts[0].close_count == 1

    def test_cookies_seeded_into_context(self):
        site = FakeSite()
        handle = SessionHandle(launcher=site.launch)

        async def run():
            async with scoped_page(handle, [VALID_COOKIE]):
                pass

        asyncio.run(run())
        assert site.contexts[0].jar == [VALID_COOKIE]

    def test_browser_launched_once_and_closed(self):
        site = FakeSite()
        handle = SessionHandle(launcher=site.launch)

        async def run():
            for _ in range(3):
                async with scoped_page(handle):
                    pass
            assert handle.is_launched
            await handle.close()

        asyncio.run(run())
        assert len(site.browsers) == 1
        assert site.browsers[0].close_count == 1
        assert not handle.is_launched

    def test_handles_are_independent(self):
        site = FakeSite()
        first = SessionHandle(launcher=site.launch)
        second = SessionHandle(launcher=site.launch)

        async def run():
            return await first.get_browser(), await second.get_browser()

        a, b = asyncio.run(run())
        assert a is not b


class TestBoundedWaits:
    """Playwright timeouts become typed timeouts with the bound in the message."""

    class _TimingOutPage:
        async def goto(self, url, wait_until=None, timeout=None):
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded.")

        async def wait_for_selector(self, selector, timeout=None, state=None):
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded.")

    def test_goto_bounded(self):
        with pytest.raises(NavigationTimeout) as info:
            asyncio.run(goto_bounded(self._TimingOutPage(), EXPLORE_URL, 7000, "Explore page navigation"))
        assert info.value.timeout_ms == 7000
        assert "Explore page navigation timed out (7000ms)" in str(info.value)

    def test_wait_bounded(self):
        with pytest.raises(SelectorTimeout) as info:
            asyncio.run(wait_bounded(self._TimingOutPage(), ".qrcode-img", 10000, "QR code"))
        assert str(info.value).startswith("QR code timed out (10000ms)")


# ====================================================================
# 2. Cookie replay and probe
# ====================================================================

class TestCookieReplay:
    """Stored cookies are replayed and verified with the identity probe."""

    def test_valid_cookies_skip_login(self, make_manager, seed_valid_cookie):
        seed_valid_cookie()
        site = FakeSite()
        manager = make_manager(site)

        state = asyncio.run(manager.ensure_authenticated(30_000))
        assert state.is_authenticated
        assert site.waited_for(LOGIN_DIALOG_SELECTOR) == []
        assert site.events_of("human") == []

    def test_repeated_calls_replay_and_probe_each_time(self, make_manager, seed_valid_cookie):
        seed_valid_cookie()
        site = FakeSite()
        manager = make_manager(site)

        async def run():
            await manager.ensure_authenticated(30_000)
            await manager.ensure_authenticated(30_000)

        asyncio.run(run())
        assert len(site.events_of("goto")) == 2
        assert len(site.events_of("probe")) == 2
        assert site.waited_for(LOGIN_DIALOG_SELECTOR) == []
        assert len(site.contexts) == 2
        assert site.all_closed_once()

    def test_foreign_cookies_not_replayed(self, make_manager, store):
        store.save([
            Cookie.from_playwright(VALID_COOKIE),
            Cookie("tracker", "x", ".example.com"),
        ])
        site = FakeSite()
        asyncio.run(make_manager(site).ensure_authenticated(30_000))
        assert [c["name"] for c in site.contexts[0].jar] == ["web_session"]

    def test_replay_navigation_uses_stage_bound(self, make_manager, seed_valid_cookie):
        seed_valid_cookie()
        site = FakeSite()
        asyncio.run(make_manager(site).ensure_authenticated(60_000))
        assert site.events_of("goto") == [("goto", EXPLORE_URL, 10_000)]

    def test_verify_session_without_cookies(self, make_manager):
        site = FakeSite()
        with pytest.raises(NotAuthenticated):
            asyncio.run(make_manager(site).verify_session(30_000))
        assert site.contexts == []

    def test_verify_session_with_stale_cookies(self, make_manager, store):
        store.save([Cookie.from_playwright(STALE_COOKIE)])
        site = FakeSite()
        with pytest.raises(NotAuthenticated):
            asyncio.run(make_manager(site).verify_session(30_000))
        assert site.waited_for(LOGIN_DIALOG_SELECTOR) == []
        assert site.all_closed_once()

    def test_verify_session_wraps_browser_errors(self, make_manager, seed_valid_cookie):
        seed_valid_cookie()
        site = FakeSite(goto_error="net::ERR_NAME_NOT_RESOLVED")
        with pytest.raises(SessionError, match="ERR_NAME_NOT_RESOLVED") as info:
            asyncio.run(make_manager(site).verify_session(30_000))
        assert not isinstance(info.value, NotAuthenticated)
        assert isinstance(info.value.__cause__, PlaywrightError)
        assert site.all_closed_once()

    def test_probe_identity(self):
        site = FakeSite()
        handle = SessionHandle(launcher=site.launch)

        async def run():
            async with scoped_page(handle, [VALID_COOKIE]) as page:
                return await probe_identity(page)

        assert asyncio.run(run()) is True


# ====================================================================
# 3. QR login flow
# ====================================================================

class TestQrLogin:
    """Interactive login with per-stage bounds."""

    def test_stage_timeouts_for_large_total(self, make_manager):
        site = FakeSite()
        asyncio.run(make_manager(site).ensure_authenticated(60_000))

        assert site.events_of("goto") == [("goto", EXPLORE_URL, 10_000)]
        assert site.waited_for(LOGIN_DIALOG_SELECTOR)[0][2] == 10_000
        assert site.waited_for(QR_CODE_SELECTOR)[0][2] == 10_000
        assert site.events_of("human") == [("human", 60_000)]

    def test_stage_timeouts_for_small_total(self, make_manager):
        site = FakeSite()
        asyncio.run(make_manager(site).ensure_authenticated(9_000))

        assert site.waited_for(LOGIN_DIALOG_SELECTOR)[0][2] == pytest.approx(3_000)
        assert site.waited_for(QR_CODE_SELECTOR)[0][2] == pytest.approx(3_000)
        assert site.events_of("human") == [("human", 9_000)]

    def test_successful_login_persists_cookies(self, make_manager, store):
        site = FakeSite()
        manager = make_manager(site)
        state = asyncio.run(manager.ensure_authenticated(30_000))

        assert state.is_authenticated
        assert manager.state is state
        assert [c.value for c in store.load()] == ["valid"]
        assert site.all_closed_once()

    def test_stale_cookies_fall_back_to_fresh_context(self, make_manager, store):
        store.save([Cookie.from_playwright(STALE_COOKIE)])
        site = FakeSite()
        asyncio.run(make_manager(site).ensure_authenticated(30_000))

        replay, login = site.contexts
        assert [c["value"] for c in replay.jar] == ["stale"]
        # login context starts empty; only the scan adds a cookie
        assert [c["value"] for c in login.jar] == ["valid"]
        assert [c.value for c in store.load()] == ["valid"]
        assert site.all_closed_once()

    def test_login_uses_login_timeout(self, make_manager, config):
        site = FakeSite()
        asyncio.run(make_manager(site).login())
        assert site.events_of("human") == [("human", config.login_timeout_ms)]

    def test_launch_failure_is_session_error(self, make_manager):
        class BrokenSite(FakeSite):
            async def launch(self):
                raise RuntimeError("Executable doesn't exist")

        with pytest.raises(SessionError, match="Failed to launch browser"):
            asyncio.run(make_manager(BrokenSite()).ensure_authenticated(30_000))


# ====================================================================
# 4. Bounded retries
# ====================================================================

class TestLoginRetries:
    """Three attempts, constant 2s backoff, then LoginFailed."""

    def test_missing_dialog_exhausts_attempts(self, make_manager):
        site = FakeSite(missing=(LOGIN_DIALOG_SELECTOR,))
        sleep = RecordingSleep()

        with pytest.raises(LoginFailed) as info:
            asyncio.run(make_manager(site, sleep=sleep).ensure_authenticated(60_000))

        err = info.value
        assert err.attempt == 3
        assert isinstance(err.cause, SelectorTimeout)
        assert "Login dialog timed out (10000ms)" in str(err)
        assert sleep.calls == [2.0, 2.0]
        assert len(site.waited_for(LOGIN_DIALOG_SELECTOR)) == 3
        assert len(site.contexts) == 3
        assert site.all_closed_once()

    def test_recovers_on_second_attempt(self, make_manager, store):
        site = FakeSite(flaky={LOGIN_DIALOG_SELECTOR: 1})
        sleep = RecordingSleep()

        state = asyncio.run(make_manager(site, sleep=sleep).ensure_authenticated(30_000))
        assert state.is_authenticated
        assert sleep.calls == [2.0]
        assert store.load()

    def test_unscanned_qr_reports_human_timeout(self, make_manager):
        site = FakeSite(scan_succeeds=False)
        with pytest.raises(LoginFailed) as info:
            asyncio.run(make_manager(site).ensure_authenticated(45_000))
        assert "User login timed out (45000ms)" in str(info.value)
        assert site.events_of("human") == [("human", 45_000)] * 3

    def test_failed_verification(self, make_manager, store):
        site = FakeSite(verify_passes=False)
        with pytest.raises(LoginFailed) as info:
            asyncio.run(make_manager(site).ensure_authenticated(30_000))
        assert isinstance(info.value.cause, LoginVerificationFailed)
        assert store.load() == []

    def test_attempt_count_follows_config(self, make_manager, config):
        site = FakeSite(missing=(QR_CODE_SELECTOR,))
        cfg = replace(config, max_login_attempts=2)
        with pytest.raises(LoginFailed) as info:
            asyncio.run(make_manager(site, cfg=cfg).ensure_authenticated(30_000))
        assert info.value.attempt == 2
        assert len(site.contexts) == 2
