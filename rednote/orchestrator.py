"""
Extraction Orchestrator
=======================
Runs the three extraction workflows on top of an authenticated session.

Every workflow:
    1. ``ensure_session()``: cookie replay (or QR login) via ``SessionManager``
    2. opens its own context + page (``scoped_page``), seeded with the
       session cookies
    3. navigate → wait for ready → extract
    4. closes page + context on every exit path

The browser process is shared across calls and closed by ``close()``.
One orchestrator serves one call at a time; callers needing parallelism
create independent orchestrators.

Usage::

    async with ExtractionOrchestrator(RedNoteRunConfig.from_env()) as rn:
        notes = await rn.search_notes("咖啡", limit=5)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import AsyncIterator, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .auth.session_manager import SessionManager
from .browser import SessionHandle, goto_bounded, scoped_page, wait_bounded
from .errors import ExtractionError, ExtractionItemFailed, PageNotInitialized
from .extractors import (
    CommentListExtractor,
    NoteDetailExtractor,
    SearchResultExtractor,
    search_url,
)
from .links import resolve_share_link
from .models import (
    Comment,
    ExtractionKind,
    ExtractionRequest,
    Note,
    SessionState,
)
from .pacing import DelayStrategy, RandomDelay
from .run_config import RedNoteRunConfig
from .timeouts import ITEM_WAIT_CEILING_MS

logger = logging.getLogger(__name__)


class ExtractionOrchestrator:
    """
    Session-aware extraction workflows (search, note detail, comments).
    """

    def __init__(
        self,
        config: Optional[RedNoteRunConfig] = None,
        *,
        handle: Optional[SessionHandle] = None,
        session_manager: Optional[SessionManager] = None,
        delay: Optional[DelayStrategy] = None,
        search_extractor: Optional[SearchResultExtractor] = None,
        detail_extractor: Optional[NoteDetailExtractor] = None,
        comment_extractor: Optional[CommentListExtractor] = None,
    ):
        self.config = config or RedNoteRunConfig()
        if session_manager is not None:
            self.handle = session_manager.handle
            self.session_manager = session_manager
        else:
            self.handle = handle or SessionHandle(headless=self.config.headless)
            self.session_manager = SessionManager(self.config, self.handle)
        self.delay = delay or RandomDelay()
        self.search_extractor = search_extractor or SearchResultExtractor()
        self.detail_extractor = detail_extractor or NoteDetailExtractor()
        self.comment_extractor = comment_extractor or CommentListExtractor()
        self._page: Optional[Page] = None
        logger.info(f"Initializing orchestrator (timeout {self.config.timeout_ms}ms)")

    async def __aenter__(self) -> "ExtractionOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def ensure_session(self, timeout_ms: Optional[float] = None) -> SessionState:
        """Authenticate (or re-validate) before a workflow runs."""
        timeout = timeout_ms or self.config.timeout_ms
        if self.config.auto_login:
            return await self.session_manager.ensure_authenticated(timeout)
        return await self.session_manager.verify_session(timeout)

    async def login(self, timeout_ms: Optional[float] = None) -> SessionState:
        """Interactive QR login; cookies are persisted on success."""
        return await self.session_manager.login(timeout_ms)

    async def close(self) -> None:
        """Tear down the shared browser."""
        logger.info("Cleaning up browser resources")
        await self.handle.close()

    @property
    def page(self) -> Page:
        """The page of the workflow currently running."""
        if self._page is None:
            raise PageNotInitialized()
        return self._page

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def run(self, request: ExtractionRequest):
        """Execute one ``ExtractionRequest``."""
        if request.kind is ExtractionKind.SEARCH:
            limit = request.limit if request.limit is not None else self.config.search_limit
            return await self.search_notes(request.locator, limit, request.timeout_ms)
        if request.kind is ExtractionKind.NOTE_DETAIL:
            return await self.get_note_content(request.locator, request.timeout_ms)
        if request.kind is ExtractionKind.COMMENTS:
            return await self.get_note_comments(request.locator, request.timeout_ms)
        raise ValueError(f"Unsupported extraction kind: {request.kind}")

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    async def search_notes(
        self, keywords: str, limit: int = 10, timeout_ms: Optional[float] = None
    ) -> List[Note]:
        """Search by keywords and extract up to *limit* notes.

        Items are processed independently: a failing item is logged and
        skipped, and the notes that did succeed are returned.
        """
        timeout = timeout_ms or self.config.timeout_ms
        logger.info(
            f"[SEARCH] Searching notes with keywords: {keywords}, "
            f"limit: {limit}, timeout: {timeout}ms"
        )
        state = await self.ensure_session(timeout)

        async with self._workflow_page(state) as page:
            logger.info("[SEARCH] Navigating to search page")
            await goto_bounded(page, search_url(keywords), timeout, "Search page navigation")

            logger.info("[SEARCH] Waiting for search results")
            await wait_bounded(page, self.search_extractor.ready_selector, timeout, "Search results")

            items = await self.search_extractor.extract(page)
            total = min(len(items), max(limit, 0))
            logger.info(f"[SEARCH] Found {len(items)} note items, processing {total}")

            notes: List[Note] = []
            for index in range(total):
                logger.info(f"[SEARCH] Processing note {index + 1}/{total}")
                try:
                    note = await self._extract_search_item(items[index])
                    logger.info(f"[SEARCH] Extracted note: {note.title}")
                    notes.append(note)
                except Exception as exc:
                    failure = ExtractionItemFailed(index, exc)
                    logger.error(f"[SEARCH] {failure}")
                    await self._recover_detail_view()
                finally:
                    await self.delay.wait(self.config.pacing_min_s, self.config.pacing_max_s)

        logger.info(f"[SEARCH] Successfully processed {len(notes)} notes")
        return notes

    async def get_note_content(self, url: str, timeout_ms: Optional[float] = None) -> Note:
        """Extract one note.  ``url`` may be share text containing a link.

        The returned note's ``url`` is always the caller's original input.
        """
        timeout = timeout_ms or self.config.timeout_ms
        logger.info(f"[NOTE] Getting note content for URL: {url}, timeout: {timeout}ms")
        state = await self.ensure_session(timeout)

        async with self._workflow_page(state) as page:
            actual_url = resolve_share_link(url)
            await goto_bounded(page, actual_url, timeout, "Note page navigation")
            await wait_bounded(page, self.detail_extractor.ready_selector, timeout, "Note content")
            note = await self.detail_extractor.extract(page)

        note = replace(note, url=url)
        logger.info(f"[NOTE] Successfully extracted note: {note.title}")
        return note

    async def get_note_comments(
        self, url: str, timeout_ms: Optional[float] = None
    ) -> List[Comment]:
        """Extract the visible comments of a note, in document order."""
        timeout = timeout_ms or self.config.timeout_ms
        logger.info(f"[COMMENTS] Getting comments for URL: {url}, timeout: {timeout}ms")
        state = await self.ensure_session(timeout)

        async with self._workflow_page(state) as page:
            await goto_bounded(page, url, timeout, "Comment page navigation")

            logger.info("[COMMENTS] Waiting for comments to load")
            await wait_bounded(page, self.comment_extractor.ready_selector, timeout, "Comment list")
            comments = await self.comment_extractor.extract(page)

        logger.info(f"[COMMENTS] Successfully extracted {len(comments)} comments")
        return comments

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _workflow_page(self, state: SessionState) -> AsyncIterator[Page]:
        """Scoped page for one workflow call.

        Stray Playwright errors are wrapped in ``ExtractionError``; typed
        errors from this package (timeouts, session errors) pass through.
        """
        async with scoped_page(self.handle, state.playwright_cookies()) as page:
            self._page = page
            try:
                yield page
            except PlaywrightError as exc:
                logger.error(f"Browser error during extraction: {exc}")
                raise ExtractionError(str(exc)) from exc
            finally:
                self._page = None

    async def _extract_search_item(self, item) -> Note:
        """Open one result's detail overlay, extract it, close it again."""
        page = self.page
        await self.search_extractor.open_item(item)

        logger.info("[SEARCH] Waiting for note page to load")
        await wait_bounded(
            page, self.detail_extractor.ready_selector, ITEM_WAIT_CEILING_MS, "Note dialog"
        )

        await self.delay.wait(self.config.pacing_min_s, self.config.pacing_max_s)
        note = await self.detail_extractor.extract(page)
        await self.delay.wait(self.config.pacing_min_s, self.config.close_pacing_max_s)

        await self.search_extractor.close_detail(page, ITEM_WAIT_CEILING_MS)
        return note

    async def _recover_detail_view(self) -> None:
        """After an item failure, try to dismiss a still-open overlay."""
        try:
            if await self.search_extractor.close_detail(self.page, ITEM_WAIT_CEILING_MS):
                logger.info("[SEARCH] Closed note dialog after error")
        except Exception as exc:
            logger.warning(f"[SEARCH] Could not close note dialog after error: {exc}")

