"""
Page Extractor Interface
========================
Site-specific DOM knowledge lives behind these classes.  The orchestrator
only knows "wait for ``ready_selector``, then ``extract(page)``"; swapping
site markup means swapping an extractor, not touching the workflows.

HTML-backed extractors snapshot the page once (``page.content()``) and parse
it with BeautifulSoup, which keeps the parsing testable without a browser.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

from bs4 import BeautifulSoup
from playwright.async_api import Page

T = TypeVar("T")

_BS_PARSER = "lxml"

_COUNT_RE = re.compile(r'(\d+(?:\.\d+)?)\s*([万wW千kK])?')
_UNIT_MULTIPLIERS = {
    '万': 10_000, 'w': 10_000, 'W': 10_000,
    '千': 1_000, 'k': 1_000, 'K': 1_000,
}


def parse_count(text: Optional[str]) -> int:
    """
    Parse an engagement counter as rendered by the site.

    ``"1.2万"`` → 12000, ``"10+"`` → 10, ``"3,456"`` → 3456, and
    placeholder labels such as ``"赞"`` → 0.
    """
    if not text:
        return 0
    match = _COUNT_RE.search(text.replace(',', ''))
    if not match:
        return 0
    number = float(match.group(1))
    multiplier = _UNIT_MULTIPLIERS.get(match.group(2) or '', 1)
    return int(round(number * multiplier))


def text_of(node) -> str:
    """Stripped text of a BeautifulSoup node (empty for None)."""
    if node is None:
        return ""
    return node.get_text(strip=True)


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", _BS_PARSER)


class PageExtractor(ABC, Generic[T]):
    """Capability interface: one implementation per page type."""

    #: Selector whose presence means the page is ready for ``extract``.
    ready_selector: str = ""

    @abstractmethod
    async def extract(self, page: Page) -> T:
        ...


class HtmlExtractor(PageExtractor[T]):
    """Extractor that parses a snapshot of the page's HTML."""

    async def extract(self, page: Page) -> T:
        html = await page.content()
        return self.parse(html, url=page.url)

    @abstractmethod
    def parse(self, html: str, url: str = "") -> T:
        ...
