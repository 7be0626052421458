"""Per-user cache of content already processed in the current session.

Catches exact re-submissions before any model call. Entries expire per user
after ``ttl`` seconds without activity; ``sweep`` is run periodically by the
maintenance scheduler.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from memory_vault.core.constants import SESSION_TTL_SECONDS
from memory_vault.core.logging import get_logger
from memory_vault.domain.models.utils import normalize_content

logger = get_logger(__name__)


@dataclass
class _Session:
    last_activity: float
    processed: set[str] = field(default_factory=set)


class SessionCache:
    def __init__(self, ttl: float = SESSION_TTL_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._sessions: dict[str, _Session] = {}

    def _live_session(self, user_id: str) -> _Session | None:
        session = self._sessions.get(user_id)
        if session is None:
            return None
        if self._clock() - session.last_activity > self.ttl:
            del self._sessions[user_id]
            return None
        return session

    def has_processed(self, user_id: str, content: str) -> bool:
        session = self._live_session(user_id)
        return session is not None and normalize_content(content) in session.processed

    def mark_processed(self, user_id: str, content: str) -> None:
        now = self._clock()
        session = self._live_session(user_id)
        if session is None:
            session = self._sessions[user_id] = _Session(last_activity=now)
        session.processed.add(normalize_content(content))
        session.last_activity = now

    def sweep(self) -> int:
        """Drop sessions idle longer than the ttl; returns how many were removed."""
        now = self._clock()
        expired = [uid for uid, s in self._sessions.items() if now - s.last_activity > self.ttl]
        for user_id in expired:
            del self._sessions[user_id]
        if expired:
            logger.debug("Swept idle memory sessions", removed=len(expired), remaining=len(self._sessions))
        return len(expired)

    def clear(self, user_id: str | None = None) -> None:
        if user_id is None:
            self._sessions.clear()
        else:
            self._sessions.pop(user_id, None)

    def stats(self) -> dict[str, int]:
        return {
            "active_sessions": len(self._sessions),
            "processed_entries": sum(len(s.processed) for s in self._sessions.values()),
        }
