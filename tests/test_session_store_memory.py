import time
import unittest

from weatherdash.domain import CityInfo, ForecastFeed
from weatherdash.session_store.memory import InMemorySessionStore


def _empty_feed():
    city = CityInfo("Pune", "IN", None, None, None, 19800, 0, 0)
    return ForecastFeed(samples=(), city=city)


class TestInMemorySessionStore(unittest.TestCase):
    def test_create_and_get(self):
        store = InMemorySessionStore(ttl_seconds=5)
        sid = store.create_session("pune")
        state = store.get_session(sid)
        self.assertEqual(state.location, "pune")
        self.assertEqual(state.generation, 0)
        self.assertIsNone(state.feed)

    def test_select_location_bumps_generation_and_clears_feed(self):
        store = InMemorySessionStore(ttl_seconds=5)
        sid = store.create_session("pune")
        self.assertTrue(store.store_result(sid, 0, _empty_feed()))
        generation = store.select_location(sid, "london")
        self.assertEqual(generation, 1)
        state = store.get_session(sid)
        self.assertEqual(state.location, "london")
        self.assertIsNone(state.feed)

    def test_superseded_result_is_discarded(self):
        store = InMemorySessionStore(ttl_seconds=5)
        sid = store.create_session("pune")
        stale_generation = 0
        current = store.select_location(sid, "london")

        self.assertFalse(store.store_result(sid, stale_generation, _empty_feed()))
        self.assertIsNone(store.get_session(sid).feed)
        self.assertTrue(store.store_result(sid, current, _empty_feed()))
        self.assertIsNotNone(store.get_session(sid).feed)

    def test_returned_state_is_a_copy(self):
        store = InMemorySessionStore(ttl_seconds=5)
        sid = store.create_session("pune")
        store.get_session(sid).location = "mutated"
        self.assertEqual(store.get_session(sid).location, "pune")

    def test_missing_session(self):
        store = InMemorySessionStore()
        self.assertIsNone(store.get_session("nope"))
        self.assertIsNone(store.select_location("nope", "pune"))
        self.assertFalse(store.store_result("nope", 0, _empty_feed()))

    def test_get_refreshes_ttl(self):
        store = InMemorySessionStore(ttl_seconds=2)
        sid = store.create_session("pune")
        time.sleep(1.2)
        self.assertIsNotNone(store.get_session(sid))
        time.sleep(2.1)
        self.assertIsNone(store.get_session(sid))

    def test_max_age_expires_even_with_access(self):
        store = InMemorySessionStore(ttl_seconds=5, max_age_seconds=1)
        sid = store.create_session("pune")
        time.sleep(0.6)
        self.assertIsNotNone(store.get_session(sid))
        time.sleep(0.6)
        self.assertIsNone(store.get_session(sid))

    def test_delete_and_clear(self):
        store = InMemorySessionStore()
        a = store.create_session("pune")
        b = store.create_session("london")
        store.delete_session(a)
        self.assertIsNone(store.get_session(a))
        store.clear()
        self.assertIsNone(store.get_session(b))


if __name__ == "__main__":
    unittest.main()
