"""Shared protocol for trip session storage backends."""

from typing import List, Optional, Protocol

from tripweather.orchestrator import TripSession


class SessionStore(Protocol):
    """Protocol for trip session storage backends."""
    def create_session(self, session: TripSession) -> str:
        """Register a live session and return its id."""

    def get_session(self, session_id: str) -> Optional[TripSession]:
        """Fetch a session by id, returning None if missing or expired."""

    def delete_session(self, session_id: str) -> Optional[TripSession]:
        """Remove a session and return it, without raising if it is absent."""

    def clear(self) -> List[TripSession]:
        """Remove and return all stored sessions."""

    def purge_expired(self) -> List[str]:
        """Evict every expired session and return the evicted ids."""
