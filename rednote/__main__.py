#!/usr/bin/env python3
"""
RedNote CLI
===========
Session bootstrap, one-shot extraction commands and log utilities.

All configuration flows through ``RedNoteRunConfig``: environment
variables first (``REDNOTE_TIMEOUT`` …), then the flags below.

Run with: python -m rednote <command>
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .errors import RedNoteError
from .logs import configure_logging, open_logs_dir, pack_logs
from .orchestrator import ExtractionOrchestrator
from .run_config import RedNoteRunConfig
from .tools import format_comment, format_note

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_init(cfg: RedNoteRunConfig, args) -> int:
    """Log in by QR scan and persist cookies."""
    logger.info("Starting initialization process")

    async def _login():
        async with ExtractionOrchestrator(cfg) as rn:
            await rn.login(cfg.login_timeout_ms)

    try:
        asyncio.run(_login())
    except RedNoteError as exc:
        logger.error(f"Error during initialization: {exc}")
        print(f"Error during initialization: {exc}", file=sys.stderr)
        return 1
    logger.info("Initialization successful")
    print("Login successful! Cookie has been saved.")
    return 0


def cmd_search(cfg: RedNoteRunConfig, args) -> int:
    async def _search():
        async with ExtractionOrchestrator(cfg) as rn:
            return await rn.search_notes(args.keywords, args.limit, cfg.timeout_ms)

    notes = asyncio.run(_search())
    for note in notes:
        print(format_note(note))
    return 0


def cmd_note(cfg: RedNoteRunConfig, args) -> int:
    async def _note():
        async with ExtractionOrchestrator(cfg) as rn:
            return await rn.get_note_content(args.url, cfg.timeout_ms)

    note = asyncio.run(_note())
    print(json.dumps(note.to_dict(), ensure_ascii=False, indent=2))
    return 0


def cmd_comments(cfg: RedNoteRunConfig, args) -> int:
    async def _comments():
        async with ExtractionOrchestrator(cfg) as rn:
            return await rn.get_note_comments(args.url, cfg.timeout_ms)

    for comment in asyncio.run(_comments()):
        print(format_comment(comment))
    return 0


def cmd_pack_logs(cfg: RedNoteRunConfig, args) -> int:
    try:
        zip_path = pack_logs(cfg.logs_dir)
    except OSError as exc:
        print(f"Failed to pack logs: {exc}", file=sys.stderr)
        return 1
    print(f"Logs packed to: {zip_path}")
    return 0


def cmd_open_logs(cfg: RedNoteRunConfig, args) -> int:
    try:
        open_logs_dir(cfg.logs_dir)
    except OSError as exc:
        print(f"Failed to open log directory: {exc}", file=sys.stderr)
        return 1
    print(f"Log directory opened: {cfg.logs_dir}")
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='rednote',
        description='Access Xiaohongshu (RedNote) content through an authenticated browser session',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m rednote init                          # Scan the QR code, save cookies
  python -m rednote search 咖啡 --limit 5
  python -m rednote note "http://xhslink.com/abc"
  python -m rednote --timeout 60000 comments https://www.xiaohongshu.com/explore/abc
        """
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--timeout', type=int, help='Operation timeout in milliseconds (default: 30000)')
    parser.add_argument('--headless', action='store_true', help='Run the browser without a window')
    parser.add_argument('--home', type=str, metavar='DIR', help='Application directory (default: ~/.mcp/rednote)')

    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('init', help='Initialize and login to RedNote')
    p.set_defaults(func=cmd_init)

    p = sub.add_parser('search', help='Search notes by keywords')
    p.add_argument('keywords', help='Search keywords')
    p.add_argument('--limit', type=int, default=10, help='Maximum notes to return (default: 10)')
    p.set_defaults(func=cmd_search)

    p = sub.add_parser('note', help='Print one note as JSON')
    p.add_argument('url', help='Note URL or share text')
    p.set_defaults(func=cmd_note)

    p = sub.add_parser('comments', help='Print the visible comments of a note')
    p.add_argument('url', help='Note URL')
    p.set_defaults(func=cmd_comments)

    p = sub.add_parser('pack-logs', help='Pack all log files into a zip file')
    p.set_defaults(func=cmd_pack_logs)

    p = sub.add_parser('open-logs', help='Open the logs directory in file explorer')
    p.set_defaults(func=cmd_open_logs)

    return parser


def main(argv=None) -> int:
    # Load .env (REDNOTE_* settings) before reading the environment
    env_path = Path(__file__).resolve().parent.parent / '.env'
    if env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()  # tries CWD

    args = build_parser().parse_args(argv)
    cfg = RedNoteRunConfig.from_cli_args(args)
    configure_logging(cfg.logs_dir, cfg.log_level)
    cfg.log_summary()

    try:
        return args.func(cfg, args)
    except RedNoteError as exc:
        logger.error(f"{args.command} failed: {exc}")
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
