"""
Data Model
Cookies, session state, extraction requests and result values.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple


SITE_DOMAIN = "xiaohongshu.com"


@dataclass(frozen=True)
class Cookie:
    """A single browser cookie.

    ``expires`` follows Playwright's convention: ``-1`` is a session cookie,
    anything else is a unix timestamp in seconds.
    """
    name: str
    value: str
    domain: str = ""
    path: str = "/"
    expires: float = -1
    http_only: bool = False
    secure: bool = False
    same_site: Optional[str] = None

    @classmethod
    def from_playwright(cls, raw: Dict[str, Any]) -> "Cookie":
        """Build from the dict shape returned by ``BrowserContext.cookies()``."""
        return cls(
            name=str(raw.get("name", "")),
            value=str(raw.get("value", "")),
            domain=str(raw.get("domain", "")),
            path=str(raw.get("path", "/") or "/"),
            expires=float(raw.get("expires", -1)),
            http_only=bool(raw.get("httpOnly", False)),
            secure=bool(raw.get("secure", False)),
            same_site=raw.get("sameSite"),
        )

    def to_playwright(self) -> Dict[str, Any]:
        """Dict shape accepted by ``BrowserContext.add_cookies()``."""
        data: Dict[str, Any] = {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "expires": self.expires,
            "httpOnly": self.http_only,
            "secure": self.secure,
        }
        if self.same_site:
            data["sameSite"] = self.same_site
        return data

    def belongs_to(self, registrable_domain: str = SITE_DOMAIN) -> bool:
        """True if the cookie domain is *registrable_domain* or a subdomain."""
        host = self.domain.lstrip(".").lower()
        target = registrable_domain.lower()
        return host == target or host.endswith("." + target)


def cookies_for_domain(
    cookies: Iterable[Cookie], registrable_domain: str = SITE_DOMAIN
) -> List[Cookie]:
    """Keep only the cookies that belong to *registrable_domain*."""
    return [c for c in cookies if c.belongs_to(registrable_domain)]


@dataclass(frozen=True)
class SessionState:
    """Cookies of one browsing session plus whether it is authenticated."""
    cookies: Tuple[Cookie, ...] = ()
    is_authenticated: bool = False

    def playwright_cookies(self) -> List[Dict[str, Any]]:
        return [c.to_playwright() for c in self.cookies]


class ExtractionKind(enum.Enum):
    SEARCH = "search"
    NOTE_DETAIL = "note_detail"
    COMMENTS = "comments"


@dataclass(frozen=True)
class ExtractionRequest:
    """One tool invocation: what to extract and how long it may take.

    ``locator`` holds the keywords for a search and the URL (or share text)
    for note detail and comment requests.
    """
    kind: ExtractionKind
    locator: str
    limit: Optional[int] = None
    timeout_ms: Optional[int] = None

    @classmethod
    def search(cls, keywords: str, limit: int = 10, timeout_ms: Optional[int] = None):
        return cls(ExtractionKind.SEARCH, keywords, limit, timeout_ms)

    @classmethod
    def note_detail(cls, url: str, timeout_ms: Optional[int] = None):
        return cls(ExtractionKind.NOTE_DETAIL, url, None, timeout_ms)

    @classmethod
    def comments(cls, url: str, timeout_ms: Optional[int] = None):
        return cls(ExtractionKind.COMMENTS, url, None, timeout_ms)


@dataclass(frozen=True)
class Note:
    """Structured content of one note."""
    title: str = ""
    content: str = ""
    tags: FrozenSet[str] = field(default_factory=frozenset)
    url: str = ""
    author: str = ""
    likes: Optional[int] = None
    collects: Optional[int] = None
    comments: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        return {
            'title': self.title,
            'content': self.content,
            'tags': sorted(self.tags),
            'url': self.url,
            'author': self.author,
            'likes': self.likes,
            'collects': self.collects,
            'comments': self.comments,
        }


@dataclass(frozen=True)
class Comment:
    """One top-level comment of a note."""
    author: str = ""
    content: str = ""
    likes: int = 0
    time: str = ""

    def to_dict(self) -> dict:
        return {
            'author': self.author,
            'content': self.content,
            'likes': self.likes,
            'time': self.time,
        }
