"""
Note Detail Extractor
Parses the note container (modal or standalone note page).
"""

from __future__ import annotations

import logging

from ..errors import ExtractionError
from ..models import Note
from .base import HtmlExtractor, make_soup, parse_count, text_of

logger = logging.getLogger(__name__)


class NoteDetailExtractor(HtmlExtractor[Note]):
    """Extracts title, body, tags, author and engagement counts."""

    ready_selector = '#noteContainer'

    TITLE_SELECTOR = '#detail-title'
    CONTENT_SELECTOR = '#detail-desc .note-text'
    TAG_SELECTOR = '#detail-desc a'
    AUTHOR_SELECTOR = '.author-wrapper .username'
    ENGAGE_BAR_SELECTOR = '.engage-bar-style'
    LIKES_SELECTOR = '.like-wrapper .count'
    COLLECTS_SELECTOR = '.collect-wrapper .count'
    COMMENTS_SELECTOR = '.chat-wrapper .count'

    def parse(self, html: str, url: str = "") -> Note:
        soup = make_soup(html)
        article = soup.select_one(self.ready_selector)
        if article is None:
            raise ExtractionError(f"Note container {self.ready_selector!r} not found")

        tags = set()
        for link in article.select(self.TAG_SELECTOR):
            label = text_of(link)
            if label.startswith('#'):
                tag = label.lstrip('#').strip()
                if tag:
                    tags.add(tag)

        # The engagement bar sits outside the container on some layouts
        engage_bar = soup.select_one(self.ENGAGE_BAR_SELECTOR)
        if engage_bar is not None:
            likes = parse_count(text_of(engage_bar.select_one(self.LIKES_SELECTOR)))
            collects = parse_count(text_of(engage_bar.select_one(self.COLLECTS_SELECTOR)))
            comments = parse_count(text_of(engage_bar.select_one(self.COMMENTS_SELECTOR)))
        else:
            likes = collects = comments = 0

        return Note(
            title=text_of(article.select_one(self.TITLE_SELECTOR)),
            content=text_of(article.select_one(self.CONTENT_SELECTOR)),
            tags=frozenset(tags),
            url=url,
            author=text_of(article.select_one(self.AUTHOR_SELECTOR)),
            likes=likes,
            collects=collects,
            comments=comments,
        )
