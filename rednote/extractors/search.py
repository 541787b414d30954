"""
Search Result Extractor
=======================
Knows the search results grid: which elements are result items, how to open
an item's detail overlay and how to dismiss it again.  The detail overlay
itself is parsed by ``NoteDetailExtractor``.
"""

from __future__ import annotations

import logging
from typing import List
from urllib.parse import quote

from playwright.async_api import ElementHandle, Page

from ..browser import wait_bounded
from .base import PageExtractor

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.xiaohongshu.com/search_result?keyword={keyword}"

# Characters encodeURIComponent leaves unescaped
_URI_COMPONENT_SAFE = "!'()*-._~"


def search_url(keywords: str) -> str:
    """Search page URL for *keywords* (percent-encoded)."""
    return SEARCH_URL.format(keyword=quote(keywords, safe=_URI_COMPONENT_SAFE))


class SearchResultExtractor(PageExtractor[List[ElementHandle]]):
    """Returns the result item handles currently in the grid."""

    ready_selector = '.feeds-container'
    ITEM_SELECTOR = '.feeds-container .note-item'
    COVER_SELECTOR = 'a.cover.mask.ld'
    DETAIL_SELECTOR = '#noteContainer'
    CLOSE_SELECTOR = '.close-circle'

    async def extract(self, page: Page) -> List[ElementHandle]:
        return await page.query_selector_all(self.ITEM_SELECTOR)

    async def open_item(self, item: ElementHandle) -> None:
        """Open the detail overlay by clicking the item's cover link."""
        await item.eval_on_selector(self.COVER_SELECTOR, "el => el.click()")

    async def close_detail(self, page: Page, timeout_ms: float) -> bool:
        """Dismiss the detail overlay and wait for it to detach.

        Returns:
            False if no close button was present.
        """
        close_button = await page.query_selector(self.CLOSE_SELECTOR)
        if close_button is None:
            return False
        logger.info("[SEARCH] Closing note dialog")
        await close_button.click()
        await wait_bounded(
            page, self.DETAIL_SELECTOR, timeout_ms, "Note dialog detach", state="detached"
        )
        return True
