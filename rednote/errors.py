"""
Error Taxonomy
==============
Typed exceptions raised by the session and extraction layers.

Hierarchy::

    RedNoteError
    ├── OperationTimeout          (carries stage + millisecond bound)
    │   ├── NavigationTimeout
    │   └── SelectorTimeout
    ├── SessionError
    │   ├── LoginVerificationFailed
    │   ├── LoginFailed           (terminal, wraps attempt count + cause)
    │   └── NotAuthenticated
    ├── PageNotInitialized
    └── ExtractionError
        └── ExtractionItemFailed  (per-item, swallowed inside batches)

Timeout messages always contain the literal millisecond bound that was
exceeded, so callers (and humans reading logs) can tell which budget ran out.
"""

from __future__ import annotations

from typing import Optional


def format_ms(ms: float) -> str:
    """Render a millisecond bound the way it appears in error messages.

    Integral values print without a decimal point (``10000``), fractional
    ones keep one decimal (``6666.7``).
    """
    if float(ms).is_integer():
        return str(int(ms))
    return f"{ms:.1f}"


class RedNoteError(Exception):
    """Base class for every error raised by this package."""


# ---------------------------------------------------------------------------
# Timeouts
# ---------------------------------------------------------------------------

class OperationTimeout(RedNoteError):
    """A bounded wait exceeded its budget."""

    def __init__(self, stage: str, timeout_ms: float, detail: str = ""):
        self.stage = stage
        self.timeout_ms = timeout_ms
        self.detail = detail
        message = f"{stage} timed out ({format_ms(timeout_ms)}ms)"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class NavigationTimeout(OperationTimeout):
    """``page.goto`` did not finish within its bound."""


class SelectorTimeout(OperationTimeout):
    """A selector did not appear (or detach) within its bound."""


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class SessionError(RedNoteError):
    """Base class for session establishment failures."""


class LoginVerificationFailed(SessionError):
    """The identity probe was still negative after the human wait finished."""

    def __init__(self, message: str = "Login verification failed"):
        super().__init__(message)


class LoginFailed(SessionError):
    """All login attempts were exhausted."""

    def __init__(
        self,
        attempt: int,
        max_attempts: int,
        cause: Optional[BaseException] = None,
    ):
        self.attempt = attempt
        self.max_attempts = max_attempts
        self.cause = cause
        message = f"Login failed after reaching the maximum retries ({max_attempts})"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class NotAuthenticated(SessionError):
    """The identity probe was negative outside of the login flow."""

    def __init__(self, message: str = "Not logged in, please login first"):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Programmer errors
# ---------------------------------------------------------------------------

class PageNotInitialized(RedNoteError):
    """A page-bound helper was called outside of an open page scope."""

    def __init__(self, message: str = "Page not initialized"):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

class ExtractionError(RedNoteError):
    """An extraction workflow failed."""


class ExtractionItemFailed(ExtractionError):
    """A single item of a batch could not be extracted."""

    def __init__(self, index: int, cause: BaseException):
        self.index = index
        self.cause = cause
        super().__init__(f"Item {index + 1} failed: {cause}")
