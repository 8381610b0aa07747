"""
In-memory registry of consolidation tasks started by combine sessions.

The guide stream finishes long before a client asks for its shopping list,
so the task is parked here under the session id until the client fetches
it or the entry expires.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from mealprep.models.schemas import ConsolidatedIngredient

logger = logging.getLogger(__name__)


@dataclass
class RegistryEntry:
    """A consolidation task with expiration time."""

    task: "asyncio.Task[List[ConsolidatedIngredient]]"
    expires_at: float  # Unix timestamp


class ConsolidationRegistry:
    """
    Per-process map of session id -> consolidation task.

    Entries are removed when fetched or once they expire; an expired task
    that is still running is cancelled.

    Note: This is a simple in-memory map. With several workers, the
    shopping list must be fetched from the worker that streamed the guide.
    """

    def __init__(self, ttl_seconds: int = 600):
        self._entries: Dict[str, RegistryEntry] = {}
        self._ttl_seconds = ttl_seconds

    def __len__(self) -> int:
        return len(self._entries)

    def register(self, session_id: str, task: "asyncio.Task[List[ConsolidatedIngredient]]") -> None:
        self.cleanup_expired()
        self._entries[session_id] = RegistryEntry(
            task=task,
            expires_at=time.time() + self._ttl_seconds,
        )
        logger.debug(f"Registered consolidation for session {session_id}")

    def get(self, session_id: str) -> Optional["asyncio.Task[List[ConsolidatedIngredient]]"]:
        """Return the session's task, or None if unknown or expired."""
        entry = self._entries.get(session_id)
        if entry is None:
            return None

        if time.time() > entry.expires_at:
            self._expire(session_id)
            return None
        return entry.task

    def discard(self, session_id: str) -> None:
        self._entries.pop(session_id, None)

    def _expire(self, session_id: str) -> None:
        entry = self._entries.pop(session_id)
        if not entry.task.done():
            entry.task.cancel()

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        now = time.time()
        expired = [sid for sid, entry in self._entries.items() if now > entry.expires_at]

        for session_id in expired:
            self._expire(session_id)

        if expired:
            logger.debug(f"Expired {len(expired)} unclaimed consolidation results")
        return len(expired)
