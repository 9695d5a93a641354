import json
import unittest
from datetime import datetime, timezone

from weatherdash.domain import CityInfo, ForecastFeed, ForecastSample, WeatherCondition
from weatherdash.session_store.redis import RedisSessionStore


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.expires = {}

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.expires[key] = ttl

    def get(self, key):
        return self.store.get(key)

    def expire(self, key, ttl):
        self.expires[key] = ttl

    def delete(self, key):
        self.store.pop(key, None)
        self.expires.pop(key, None)

    def scan_iter(self, pattern):
        prefix = pattern.rstrip("*")
        return [k for k in list(self.store.keys()) if k.startswith(prefix)]


def _feed():
    sample = ForecastSample(
        timestamp_unix=1704088800,
        temperature=296.37,
        feels_like=295.0,
        temp_min=294.0,
        temp_max=298.0,
        humidity=64,
        pressure=1012,
        visibility_meters=10000,
        wind_speed_mps=1.64,
        weather=WeatherCondition(main="Clear", description="clear sky", icon="01d"),
        dt_txt="2024-01-01 06:00:00",
        pop=0.2,
        cloud_cover=5,
        wind_direction=290,
        wind_gust=3.1,
        part_of_day="d",
    )
    city = CityInfo("Pune", "IN", 18.52, 73.86, 3124458, 19800, 1702949452, 1702990800)
    return ForecastFeed(
        samples=(sample,),
        city=city,
        count=1,
        fetched_at=datetime(2024, 1, 1, 5, 0, tzinfo=timezone.utc),
    )


class TestRedisSessionStore(unittest.TestCase):
    def setUp(self):
        self.client = FakeRedis()
        self.store = RedisSessionStore(self.client, ttl_seconds=120)

    def test_create_writes_json_with_ttl(self):
        sid = self.store.create_session("pune")
        key = f"weatherdash:session:{sid}"
        self.assertEqual(self.client.expires[key], 120)
        raw = json.loads(self.client.store[key].decode("utf-8"))
        self.assertEqual(raw["location"], "pune")
        self.assertEqual(raw["generation"], 0)

    def test_feed_round_trip(self):
        sid = self.store.create_session("pune")
        feed = _feed()
        self.assertTrue(self.store.store_result(sid, 0, feed))
        state = self.store.get_session(sid)
        self.assertEqual(state.feed, feed)
        self.assertEqual(state.feed.samples[0].calendar_date, feed.samples[0].calendar_date)

    def test_superseded_result_is_discarded(self):
        sid = self.store.create_session("pune")
        generation = self.store.select_location(sid, "london")
        self.assertEqual(generation, 1)
        self.assertFalse(self.store.store_result(sid, 0, _feed()))
        state = self.store.get_session(sid)
        self.assertEqual(state.location, "london")
        self.assertIsNone(state.feed)

    def test_unreadable_payload_treated_as_missing(self):
        self.client.store["weatherdash:session:bad"] = b"{not json"
        self.assertIsNone(self.store.get_session("bad"))

    def test_missing_session(self):
        self.assertIsNone(self.store.get_session("nope"))
        self.assertIsNone(self.store.select_location("nope", "pune"))
        self.assertFalse(self.store.store_result("nope", 0, _feed()))

    def test_max_age_caps_ttl(self):
        store = RedisSessionStore(self.client, ttl_seconds=3600, max_age_seconds=60)
        sid = store.create_session("pune")
        self.assertLessEqual(self.client.expires[f"weatherdash:session:{sid}"], 60)

    def test_clear_and_delete(self):
        a = self.store.create_session("pune")
        b = self.store.create_session("london")
        self.store.delete_session(a)
        self.assertIsNone(self.store.get_session(a))
        self.store.clear()
        self.assertIsNone(self.store.get_session(b))
        self.assertEqual(self.client.store, {})


if __name__ == "__main__":
    unittest.main()
