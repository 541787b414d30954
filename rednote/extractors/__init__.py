"""
Page extractors: one per page type.
"""

from .base import PageExtractor, HtmlExtractor, parse_count
from .comments import CommentListExtractor
from .note_detail import NoteDetailExtractor
from .search import SearchResultExtractor, search_url

__all__ = [
    'PageExtractor',
    'HtmlExtractor',
    'parse_count',
    'CommentListExtractor',
    'NoteDetailExtractor',
    'SearchResultExtractor',
    'search_url',
]
