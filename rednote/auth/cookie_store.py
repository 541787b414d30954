"""
Cookie Store
============
Persists session cookies across process restarts.

The file is a JSON array of Playwright cookie dicts.  ``save`` writes to a
temporary file in the same directory and swaps it in with ``os.replace`` so a
reader never sees a half-written file.

Security:
    - Cookie values are never logged.
    - ``cookies.json`` lives under the per-user application directory.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Union

from ..models import Cookie

logger = logging.getLogger(__name__)


class CookieStore:
    """Loads and saves the cookie set of the authenticated session."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> List[Cookie]:
        """Return the persisted cookies (empty when missing or unreadable)."""
        if not self.path.exists():
            logger.info(f"[COOKIES] No cookie file at {self.path}")
            return []

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning(f"[COOKIES] Corrupt cookie file: {exc}")
            return []

        if not isinstance(data, list):
            logger.warning("[COOKIES] Cookie file is not a list, ignoring")
            return []

        cookies = [Cookie.from_playwright(item) for item in data if isinstance(item, dict)]
        logger.info(f"[COOKIES] Loaded {len(cookies)} cookies")
        return cookies

    def save(self, cookies: Iterable[Cookie]) -> None:
        """Overwrite the cookie file atomically."""
        payload = [c.to_playwright() for c in cookies]
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            prefix=".cookies-", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

        logger.info(f"[COOKIES] Saved {len(payload)} cookies to {self.path}")
