import unittest

from weatherdash import session_manager
from weatherdash.domain import CityInfo, ForecastFeed


def _feed(name):
    return ForecastFeed(samples=(), city=CityInfo(name, "", None, None, None, 0, 0, 0))


class TestSessionManager(unittest.TestCase):
    def setUp(self):
        session_manager.use_in_memory_store_for_tests()
        session_manager.clear_sessions()

    def test_session_lifecycle(self):
        sid = session_manager.create_session("pune")
        self.assertEqual(session_manager.get_session(sid).location, "pune")

        self.assertTrue(session_manager.store_result(sid, 0, _feed("Pune")))
        self.assertEqual(session_manager.get_session(sid).feed.city.name, "Pune")

        session_manager.delete_session(sid)
        self.assertIsNone(session_manager.get_session(sid))

    def test_rapid_location_switch_keeps_last_selection(self):
        sid = session_manager.create_session("pune")
        first = session_manager.select_location(sid, "london")
        second = session_manager.select_location(sid, "tokyo")

        # the london fetch resolves after tokyo was selected
        self.assertTrue(session_manager.store_result(sid, second, _feed("Tokyo")))
        self.assertFalse(session_manager.store_result(sid, first, _feed("London")))

        state = session_manager.get_session(sid)
        self.assertEqual(state.location, "tokyo")
        self.assertEqual(state.feed.city.name, "Tokyo")

    def test_session_expires_after_ttl(self):
        session_manager.use_in_memory_store_for_tests(ttl_seconds=1)
        sid = session_manager.create_session("pune")
        self.assertIsNotNone(session_manager.get_session(sid))
        import time as _time
        _time.sleep(1.1)
        self.assertIsNone(session_manager.get_session(sid))


if __name__ == "__main__":
    unittest.main()
