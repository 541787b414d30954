"""
RedNote Session & Extraction Package
Authenticated, QR-gated browser sessions and resilient note extraction for
the Xiaohongshu (RedNote) web app.

CLI Usage:
    python -m rednote [--timeout MS] <command>

    Commands:
        init        Log in by scanning the QR code and save cookies
        search      Search notes by keywords
        note        Print one note as JSON
        comments    Print the visible comments of a note
        pack-logs   Zip the log directory
        open-logs   Open the log directory in the file manager
"""

from .auth import CookieStore, SessionManager
from .browser import SessionHandle, scoped_page
from .errors import (
    RedNoteError,
    OperationTimeout,
    NavigationTimeout,
    SelectorTimeout,
    SessionError,
    LoginVerificationFailed,
    LoginFailed,
    NotAuthenticated,
    PageNotInitialized,
    ExtractionError,
    ExtractionItemFailed,
)
from .links import resolve_share_link
from .models import Cookie, SessionState, ExtractionKind, ExtractionRequest, Note, Comment
from .orchestrator import ExtractionOrchestrator
from .pacing import DelayStrategy, RandomDelay, NoDelay
from .run_config import RedNoteRunConfig
from .timeouts import TimeoutBudget
from .tools import RedNoteToolService

__all__ = [
    'CookieStore',
    'SessionManager',
    'SessionHandle',
    'scoped_page',
    # Errors
    'RedNoteError',
    'OperationTimeout',
    'NavigationTimeout',
    'SelectorTimeout',
    'SessionError',
    'LoginVerificationFailed',
    'LoginFailed',
    'NotAuthenticated',
    'PageNotInitialized',
    'ExtractionError',
    'ExtractionItemFailed',
    # Model
    'Cookie',
    'SessionState',
    'ExtractionKind',
    'ExtractionRequest',
    'Note',
    'Comment',
    # Workflows
    'ExtractionOrchestrator',
    'RedNoteToolService',
    'resolve_share_link',
    'DelayStrategy',
    'RandomDelay',
    'NoDelay',
    'RedNoteRunConfig',
    'TimeoutBudget',
]

__version__ = '0.2.2'
