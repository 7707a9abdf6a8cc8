"""Session manager facade over the trip session store."""
import asyncio
import datetime as dt
from typing import Optional

from tripweather.config import settings
from tripweather.data_sources import TripDataSource
from tripweather.domain import Place
from tripweather.orchestrator import TripSession
from tripweather.session_store import InMemorySessionStore, SessionStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="session_manager")

_store: SessionStore = InMemorySessionStore(ttl_seconds=settings.session_ttl_seconds)


def use_in_memory_store_for_tests(ttl_seconds: float = 3600) -> None:
    """Override store for tests to ensure isolation and determinism."""
    global _store
    _store = InMemorySessionStore(ttl_seconds=ttl_seconds)


def create_session(
    origin: Place,
    data_source: TripDataSource,
    departure_time: Optional[dt.datetime] = None,
) -> TripSession:
    """Create and register a new trip session starting at `origin`."""
    session = TripSession(origin, data_source, settings=settings, departure_time=departure_time)
    _store.create_session(session)
    logger.info("Created trip session", extra={"trip_id": session.trip_id, "origin": origin.name})
    return session


def get_session(session_id: str) -> Optional[TripSession]:
    """Fetch a live session by ID, refreshing its TTL."""
    return _store.get_session(session_id)


async def delete_session(session_id: str) -> bool:
    """Tear down and forget a session. Returns False if it did not exist."""
    session = _store.delete_session(session_id)
    if session is None:
        return False
    await session.aclose()
    return True


async def close_all_sessions() -> None:
    """Tear down every session (process shutdown, tests)."""
    sessions = _store.clear()
    if sessions:
        logger.info("Closing trip sessions", extra={"count": len(sessions)})
        await asyncio.gather(*(s.aclose() for s in sessions), return_exceptions=True)


def purge_expired_sessions() -> int:
    """Evict expired sessions, cancelling their timers. Returns how many went."""
    evicted = _store.purge_expired()
    if evicted:
        logger.info("Purged expired trip sessions", extra={"count": len(evicted)})
    return len(evicted)


async def reap_expired_sessions(period_seconds: float) -> None:
    """Purge expired sessions every `period_seconds` until cancelled."""
    while True:
        await asyncio.sleep(period_seconds)
        purge_expired_sessions()
