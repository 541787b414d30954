"""
Tool Service
============
The tool-call surface consumed by an outer protocol layer: ``search_notes``,
``get_note_content``, ``get_note_comments`` and ``login``.

Each call:
    - accepts an optional per-call timeout (ms) overriding the default
    - races the workflow against that timeout
    - returns ``{"content": [{"type": "text", "text": ...}, ...]}``

When the outer timer wins, the in-flight workflow is cancelled (its page and
context are still closed by the orchestrator's scopes), the orchestrator is
discarded and closed in the background, and the next call gets a fresh one.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from .errors import OperationTimeout
from .models import Comment, Note
from .orchestrator import ExtractionOrchestrator
from .run_config import RedNoteRunConfig

logger = logging.getLogger(__name__)

ToolResult = Dict[str, List[Dict[str, str]]]


def _text(text: str) -> Dict[str, str]:
    return {"type": "text", "text": text}


def format_note(note: Note) -> str:
    """Human-readable summary of a search hit."""
    return (
        f"Title: {note.title}\n"
        f"Author: {note.author}\n"
        f"Content: {note.content}\n"
        f"Likes: {note.likes}\n"
        f"Comments: {note.comments}\n"
        f"URL: {note.url}\n"
        f"---"
    )


def format_comment(comment: Comment) -> str:
    return (
        f"Author: {comment.author}\n"
        f"Content: {comment.content}\n"
        f"Likes: {comment.likes}\n"
        f"Time: {comment.time}\n"
        f"---"
    )


class RedNoteToolService:
    """Timeout-guarded tool calls over a (replaceable) orchestrator."""

    def __init__(
        self,
        config: Optional[RedNoteRunConfig] = None,
        orchestrator_factory: Optional[Callable[[], ExtractionOrchestrator]] = None,
    ):
        self.config = config or RedNoteRunConfig()
        self._factory = orchestrator_factory or (lambda: ExtractionOrchestrator(self.config))
        self._orchestrator: Optional[ExtractionOrchestrator] = None
        self._discarded: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def search_notes(
        self, keywords: str, limit: int = 10, timeout: Optional[int] = None
    ) -> ToolResult:
        """Search notes by keywords."""
        notes = await self._call(
            "Search operation",
            lambda rn, t: rn.search_notes(keywords, limit, t),
            timeout,
        )
        logger.info(f"Found {len(notes)} notes")
        return {"content": [_text(format_note(note)) for note in notes]}

    async def get_note_content(self, url: str, timeout: Optional[int] = None) -> ToolResult:
        """Full content of one note as JSON."""
        note = await self._call(
            "Get note content",
            lambda rn, t: rn.get_note_content(url, t),
            timeout,
        )
        logger.info(f"Successfully retrieved note: {note.title}")
        return {"content": [_text(json.dumps(note.to_dict(), ensure_ascii=False))]}

    async def get_note_comments(self, url: str, timeout: Optional[int] = None) -> ToolResult:
        """Visible comments of one note."""
        comments = await self._call(
            "Get note comments",
            lambda rn, t: rn.get_note_comments(url, t),
            timeout,
        )
        logger.info(f"Found {len(comments)} comments")
        return {"content": [_text(format_comment(c)) for c in comments]}

    async def login(self) -> ToolResult:
        """Interactive QR login on a dedicated orchestrator."""
        logger.info("Starting login process")
        orchestrator = self._factory()
        try:
            await orchestrator.login(self.config.login_timeout_ms)
        finally:
            await orchestrator.close()
        logger.info("Login successful")
        return {"content": [_text("Login successful! Cookies have been saved.")]}

    async def close(self) -> None:
        """Close the active orchestrator and wait for discarded ones."""
        if self._orchestrator is not None:
            await self._orchestrator.close()
            self._orchestrator = None
        if self._discarded:
            await asyncio.gather(*self._discarded, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _current(self) -> ExtractionOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = self._factory()
        return self._orchestrator

    async def _call(
        self,
        label: str,
        workflow: Callable[[ExtractionOrchestrator, int], Awaitable[Any]],
        timeout: Optional[int],
    ) -> Any:
        operation_timeout = timeout or self.config.timeout_ms
        orchestrator = self._current()
        try:
            return await asyncio.wait_for(
                workflow(orchestrator, operation_timeout),
                timeout=operation_timeout / 1000,
            )
        except asyncio.TimeoutError as exc:
            logger.error(f"{label} timed out ({operation_timeout}ms)")
            self._discard(orchestrator)
            raise OperationTimeout(label, operation_timeout) from exc

    def _discard(self, orchestrator: ExtractionOrchestrator) -> None:
        """Never reuse an orchestrator whose call was abandoned."""
        if self._orchestrator is orchestrator:
            self._orchestrator = None
        task = asyncio.ensure_future(orchestrator.close())
        self._discarded.add(task)
        task.add_done_callback(self._discarded.discard)
