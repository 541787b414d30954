"""
Unified Run Configuration
=========================
Single source of truth for the orchestrator's defaults and runtime limits.

Every module (CLI, tool service, session manager, orchestrator) reads from
this object.  Environment variables and CLI flags populate it.

Environment:
    ``REDNOTE_TIMEOUT``    default operation timeout in ms (positive int)
    ``REDNOTE_HOME``       application directory (default ``~/.mcp/rednote``)
    ``REDNOTE_HEADLESS``   run Chromium headless (default false)
    ``REDNOTE_LOG_LEVEL``  logging level name (default INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults, the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "timeout_ms": 30_000,            # per-operation timeout
    "login_timeout_ms": 60_000,      # interactive login (QR scan) timeout
    "search_limit": 10,
    "headless": False,               # QR login needs a visible window
    "auto_login": True,              # fall back to QR login when cookies are stale
    "max_login_attempts": 3,
    "login_retry_delay_s": 2.0,      # constant backoff between login attempts
    "pacing_min_s": 0.5,
    "pacing_max_s": 1.5,
    "close_pacing_max_s": 1.0,      # shorter pause before closing a note dialog
    "log_level": "INFO",
    "home_dir": str(Path.home() / ".mcp" / "rednote"),
}

_TRUTHY = {"1", "true", "yes", "on"}


def parse_timeout(raw: Optional[str]) -> Optional[int]:
    """Parse a positive integer timeout; anything else yields None."""
    if raw is None:
        return None
    try:
        value = int(str(raw).strip(), 10)
    except ValueError:
        return None
    return value if value > 0 else None


@dataclass
class RedNoteRunConfig:
    """
    Unified configuration consumed by every subsystem.

    Populate via:
      - ``RedNoteRunConfig()``                   → all defaults
      - ``RedNoteRunConfig(timeout_ms=10000)``   → override one value
      - ``RedNoteRunConfig.from_env()``          → from environment variables
      - ``RedNoteRunConfig.from_cli_args(ns)``   → env + argparse Namespace
    """

    # ---- Timeouts ----
    timeout_ms: int = _DEFAULTS["timeout_ms"]
    login_timeout_ms: int = _DEFAULTS["login_timeout_ms"]

    # ---- Extraction ----
    search_limit: int = _DEFAULTS["search_limit"]
    pacing_min_s: float = _DEFAULTS["pacing_min_s"]
    pacing_max_s: float = _DEFAULTS["pacing_max_s"]
    close_pacing_max_s: float = _DEFAULTS["close_pacing_max_s"]

    # ---- Browser / session ----
    headless: bool = _DEFAULTS["headless"]
    auto_login: bool = _DEFAULTS["auto_login"]
    max_login_attempts: int = _DEFAULTS["max_login_attempts"]
    login_retry_delay_s: float = _DEFAULTS["login_retry_delay_s"]

    # ---- Paths / logging ----
    home_dir: str = _DEFAULTS["home_dir"]
    log_level: str = _DEFAULTS["log_level"]

    # -----------------------------------------------------------------------
    # Derived paths
    # -----------------------------------------------------------------------
    @property
    def cookie_path(self) -> Path:
        return Path(self.home_dir) / "cookies.json"

    @property
    def logs_dir(self) -> Path:
        return Path(self.home_dir) / "logs"

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RedNoteRunConfig":
        """Build config from environment variables (unset → defaults)."""
        env = os.environ if environ is None else environ
        cfg = cls()

        timeout = parse_timeout(env.get("REDNOTE_TIMEOUT"))
        if timeout:
            cfg.timeout_ms = timeout
        elif env.get("REDNOTE_TIMEOUT"):
            logger.warning(
                f"[CONFIG] Ignoring invalid REDNOTE_TIMEOUT={env.get('REDNOTE_TIMEOUT')!r}"
            )

        if env.get("REDNOTE_HOME"):
            cfg.home_dir = env["REDNOTE_HOME"]
        if env.get("REDNOTE_HEADLESS"):
            cfg.headless = env["REDNOTE_HEADLESS"].strip().lower() in _TRUTHY
        if env.get("REDNOTE_LOG_LEVEL"):
            cfg.log_level = env["REDNOTE_LOG_LEVEL"].strip().upper()
        return cfg

    @classmethod
    def from_cli_args(cls, args, environ: Optional[Mapping[str, str]] = None) -> "RedNoteRunConfig":
        """Environment first, then explicit flags from ``__main__.py``."""
        cfg = cls.from_env(environ)
        timeout = parse_timeout(getattr(args, "timeout", None))
        if timeout:
            cfg.timeout_ms = timeout
        if getattr(args, "headless", False):
            cfg.headless = True
        if getattr(args, "home", None):
            cfg.home_dir = args.home
        return cfg

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("REDNOTE RUN CONFIG")
        logger.info("=" * 60)
        logger.info(f"  Timeout:          {self.timeout_ms}ms")
        logger.info(f"  Login Timeout:    {self.login_timeout_ms}ms")
        logger.info(f"  Headless:         {self.headless}")
        logger.info(f"  Auto Login:       {self.auto_login}")
        logger.info(f"  Login Attempts:   {self.max_login_attempts}")
        logger.info(f"  Pacing:           {self.pacing_min_s}-{self.pacing_max_s}s (close {self.pacing_min_s}-{self.close_pacing_max_s}s)")
        logger.info(f"  Cookie File:      {self.cookie_path}")
        logger.info(f"  Logs:             {self.logs_dir}")
        logger.info("=" * 60)
