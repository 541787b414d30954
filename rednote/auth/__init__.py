"""
Authentication Module
=====================
Session establishment for the RedNote web app.

Architecture:
    - ``CookieStore``    : persists the session cookies (JSON file)
    - ``SessionManager`` : cookie replay, QR login state machine, retries

Usage::

    from rednote.auth import SessionManager

    manager = SessionManager(config)
    state = await manager.ensure_authenticated(timeout_ms=60_000)
"""

from .cookie_store import CookieStore
from .session_manager import SessionManager, probe_identity

__all__ = [
    "CookieStore",
    "SessionManager",
    "probe_identity",
]
