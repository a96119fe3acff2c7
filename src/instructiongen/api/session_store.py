"""In-memory session registry for the InstructionGen API.

This module isolates session bookkeeping from ``instructiongen.api.main`` so
route handlers can focus on HTTP concerns while the registry remains testable
as a small unit.

The registry is intentionally simple:

- sessions live in process memory only; nothing is persisted
- each session is an :class:`~instructiongen.core.session.AnalysisSession`
- when the registry is full, the least recently used idle session is evicted

Sessions that are analyzing are never evicted, so a run in flight always has
its session to commit to.
"""

from __future__ import annotations

import logging
from collections import OrderedDict

from instructiongen.core.session import AnalysisSession

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    """Raised when a session id is unknown."""


class SessionRegistry:
    """Holds the sessions of all API clients.

    Attributes:
        max_sessions: Maximum number of sessions kept in memory.
    """

    def __init__(self, max_sessions: int = 100) -> None:
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, AnalysisSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def create(self) -> AnalysisSession:
        """Create and register a new session."""
        self._evict_if_full()
        session = AnalysisSession()
        self._sessions[session.id] = session
        logger.info(f"Created session {session.id} ({len(self._sessions)} active)")
        return session

    def get(self, session_id: str) -> AnalysisSession:
        """Return a session and mark it as recently used.

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        try:
            session = self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None
        self._sessions.move_to_end(session_id)
        return session

    def delete(self, session_id: str) -> None:
        """Remove a session, resetting it first.

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.reset()
        logger.info(f"Deleted session {session_id}")

    def clear(self) -> None:
        for session in self._sessions.values():
            session.reset()
        self._sessions.clear()

    def _evict_if_full(self) -> None:
        while len(self._sessions) >= self.max_sessions:
            victim = next((sid for sid, s in self._sessions.items() if not s.is_analyzing), None)
            if victim is None:
                # Every session is busy; allow the registry to grow past the cap.
                logger.warning("Session registry full and all sessions are analyzing")
                return
            self._sessions.pop(victim).reset()
            logger.info(f"Evicted least recently used session {victim}")
