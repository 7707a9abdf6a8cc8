"""In-memory trip session store with TTL."""

import threading
import time
from typing import Any, List, Optional

from tripweather.orchestrator import TripSession
from tripweather.session_store.base import SessionStore

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="session_store/in_memory_session_store")


class InMemorySessionStore(SessionStore):
    """Thread-safe, TTL-aware store of live trip sessions.

    Sessions hold running asyncio tasks, so they live in process memory.
    Expired sessions are swept on every create/get and by `purge_expired()`;
    each one is cleared on eviction, which cancels its refresh timer and
    in-flight work.
    """

    def __init__(self, ttl_seconds: float = 3600, max_age_seconds: float | None = None) -> None:
        """Initialize the store with a TTL (seconds) and optional absolute max age."""
        logger.debug("Initializing InMemorySessionStore")
        self.ttl = ttl_seconds
        self.max_age = max_age_seconds
        self._sessions: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _expired(self, exp: float, created_at: float) -> bool:
        """Return True if the session is beyond TTL or absolute max age."""
        now = time.monotonic()
        if exp < now:
            return True
        if self.max_age is None:
            return False
        return now - created_at > self.max_age

    def _next_expiry(self, created_at: float) -> float:
        """Compute the next expiry time, capped by absolute max age."""
        next_exp = time.monotonic() + self.ttl
        if self.max_age is None:
            return next_exp
        return min(next_exp, created_at + self.max_age)

    def _sweep(self) -> List[str]:
        """Evict every expired session. Caller holds the lock."""
        expired = [
            sid for sid, data in self._sessions.items()
            if self._expired(data["exp"], data["created_at"])
        ]
        for sid in expired:
            data = self._sessions.pop(sid)
            logger.info("Evicting expired trip session", extra={"trip_id": sid})
            data["session"].clear()
        return expired

    def purge_expired(self) -> List[str]:
        """Evict all expired sessions now and return their ids."""
        with self._lock:
            return self._sweep()

    def create_session(self, session: TripSession) -> str:
        """Store a session under its trip id and return the id."""
        with self._lock:
            self._sweep()
            created_at = time.monotonic()
            self._sessions[session.trip_id] = {
                "session": session,
                "created_at": created_at,
                "exp": self._next_expiry(created_at),
            }
            return session.trip_id

    def get_session(self, session_id: str) -> Optional[TripSession]:
        """Return the session, refreshing TTL, or None if missing/expired."""
        with self._lock:
            self._sweep()
            data = self._sessions.get(session_id)
            if not data:
                return None
            # refresh TTL on access
            data["exp"] = self._next_expiry(data["created_at"])
            return data["session"]

    def delete_session(self, session_id: str) -> Optional[TripSession]:
        """Remove a session if it exists and return it."""
        with self._lock:
            data = self._sessions.pop(session_id, None)
            return data["session"] if data else None

    def clear(self) -> List[TripSession]:
        """Remove all sessions and return them for teardown."""
        with self._lock:
            sessions = [data["session"] for data in self._sessions.values()]
            self._sessions.clear()
            return sessions
