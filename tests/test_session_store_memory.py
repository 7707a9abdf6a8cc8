import asyncio
import time
import unittest

from fakes import OKC, TULSA, FakeDataSource

from tripweather.config import Settings
from tripweather.domain import TripState
from tripweather.orchestrator import TripSession
from tripweather.session_store.memory import InMemorySessionStore


def _session(**overrides) -> TripSession:
    values = {"default_timezone": "UTC", "geocode_stagger_seconds": 0}
    values.update(overrides)
    return TripSession(OKC, FakeDataSource(), settings=Settings(**values))


class TestInMemorySessionStore(unittest.TestCase):
    def test_create_returns_trip_id(self):
        store = InMemorySessionStore(ttl_seconds=5)
        session = _session()
        self.assertEqual(store.create_session(session), session.trip_id)
        self.assertIs(store.get_session(session.trip_id), session)
        self.assertIsNone(store.get_session("missing"))

    def test_create_and_get_refreshes_ttl(self):
        store = InMemorySessionStore(ttl_seconds=1)
        sid = store.create_session(_session())
        self.assertIsNotNone(store.get_session(sid))
        time.sleep(0.6)
        # Access should refresh TTL; should still exist
        self.assertIsNotNone(store.get_session(sid))
        time.sleep(0.6)
        self.assertIsNotNone(store.get_session(sid))
        time.sleep(1.1)
        self.assertIsNone(store.get_session(sid))

    def test_expired_session_is_cleared(self):
        store = InMemorySessionStore(ttl_seconds=0)
        session = _session()
        session.choose_destination(OKC)
        sid = store.create_session(session)
        time.sleep(0.01)
        self.assertIsNone(store.get_session(sid))
        self.assertIs(session.state, TripState.IDLE)
        self.assertIsNone(session.destination)

    def test_access_sweeps_other_expired_sessions(self):
        store = InMemorySessionStore(ttl_seconds=0.05)
        stale = _session()
        stale.choose_destination(TULSA)
        store.create_session(stale)
        time.sleep(0.1)

        fresh = _session()
        store.create_session(fresh)

        self.assertNotIn(stale.trip_id, store._sessions)
        self.assertIsNone(stale.destination)
        self.assertIs(stale.state, TripState.IDLE)
        self.assertIn(fresh.trip_id, store._sessions)

    def test_max_age_expires_even_with_access(self):
        store = InMemorySessionStore(ttl_seconds=5, max_age_seconds=1)
        sid = store.create_session(_session())
        self.assertIsNotNone(store.get_session(sid))
        time.sleep(0.6)
        self.assertIsNotNone(store.get_session(sid))
        time.sleep(0.6)
        self.assertIsNone(store.get_session(sid))

    def test_purge_expired_returns_evicted_ids(self):
        store = InMemorySessionStore(ttl_seconds=0.05)
        old = _session()
        store.create_session(old)
        time.sleep(0.1)
        self.assertEqual(store.purge_expired(), [old.trip_id])
        self.assertEqual(store.purge_expired(), [])

    def test_delete_and_clear(self):
        store = InMemorySessionStore()
        a, b = _session(), _session()
        store.create_session(a)
        store.create_session(b)
        self.assertIs(store.delete_session(a.trip_id), a)
        self.assertIsNone(store.delete_session(a.trip_id))
        self.assertEqual(store.clear(), [b])
        self.assertIsNone(store.get_session(b.trip_id))


class TestExpiredSessionTimers(unittest.IsolatedAsyncioTestCase):
    async def test_purge_stops_auto_refresh_of_unvisited_session(self):
        store = InMemorySessionStore(ttl_seconds=0.1)
        session = _session(auto_refresh_seconds=0.05)
        source = session.data_source
        store.create_session(session)
        session.choose_destination(TULSA)
        await session.calculate_route()
        await session.wait_for_resolution()
        session.set_auto_refresh(True)

        # Nobody asks for the trip again; only the sweep runs.
        await asyncio.sleep(0.3)
        self.assertEqual(store.purge_expired(), [session.trip_id])

        self.assertFalse(session.auto_refresh_running)
        self.assertNotIn(session.trip_id, store._sessions)
        calls = len(source.forecast_calls)
        await asyncio.sleep(0.3)
        self.assertEqual(len(source.forecast_calls), calls)
        await session.aclose()


if __name__ == "__main__":
    unittest.main()
