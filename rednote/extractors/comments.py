"""
Comment List Extractor
Parses the visible top-level comments of a note, in document order.
No scrolling or "load more" handling.
"""

from __future__ import annotations

from typing import List

from ..models import Comment
from .base import HtmlExtractor, make_soup, parse_count, text_of


class CommentListExtractor(HtmlExtractor[List[Comment]]):

    ready_selector = '[role="dialog"] [role="list"]'
    ITEM_SELECTOR = '[role="dialog"] [role="list"] [role="listitem"]'

    def parse(self, html: str, url: str = "") -> List[Comment]:
        soup = make_soup(html)
        comments: List[Comment] = []
        for item in soup.select(self.ITEM_SELECTOR):
            comments.append(Comment(
                author=text_of(item.select_one('[data-testid="user-name"]')),
                content=text_of(item.select_one('[data-testid="comment-content"]')),
                likes=parse_count(text_of(item.select_one('[data-testid="likes-count"]'))),
                time=text_of(item.select_one('time')),
            ))
        return comments
