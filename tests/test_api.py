import datetime as dt
import unittest

from fastapi.testclient import TestClient

from weatherdash import session_manager
from weatherdash.main import app as fastapi_app
from weatherdash.data_sources import CallableForecastDataSource, ForecastFetchError, LocationNotFoundError
from weatherdash.domain import CityInfo, ForecastFeed, ForecastSample, WeatherCondition

DAY1_MIDNIGHT = 1704067200  # 2024-01-01T00:00:00Z


def _make_feed(city_name: str = "Pune", count: int = 16) -> ForecastFeed:
    samples = tuple(
        ForecastSample(
            timestamp_unix=DAY1_MIDNIGHT + i * 10800,
            temperature=296.37,
            feels_like=295.15,
            temp_min=294.15,
            temp_max=298.15,
            humidity=64,
            pressure=1012,
            visibility_meters=10000,
            wind_speed_mps=1.64,
            weather=WeatherCondition(main="Clear", description="clear sky", icon="01d"),
        )
        for i in range(count)
    )
    city = CityInfo(city_name, "IN", 18.52, 73.86, None, 19800, 1702949452, 1702990800)
    return ForecastFeed(samples=samples, city=city, count=count)


class TestApi(unittest.TestCase):
    def setUp(self):
        import weatherdash.api as api_mod
        from weatherdash.config import settings

        self.api_mod = api_mod
        self.settings = settings
        self._orig_source = api_mod.DATA_SOURCE
        self._orig_ttl = settings.conditions_ttl_seconds
        self.calls = []
        self.set_source(lambda location, count: _make_feed(location.title()))
        session_manager.use_in_memory_store_for_tests()
        self.client = TestClient(fastapi_app)

    def tearDown(self):
        self.api_mod.DATA_SOURCE = self._orig_source
        self.settings.conditions_ttl_seconds = self._orig_ttl

    def set_source(self, fn):
        def recording(location, *, count):
            self.calls.append(location)
            return fn(location, count)
        self.api_mod.DATA_SOURCE = CallableForecastDataSource(recording)

    def test_dashboard_for_location(self):
        resp = self.client.get("/v1/dashboard", params={"location": "pune"})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["location"], "pune")
        self.assertTrue(data["has_data"])
        self.assertEqual(data["current"]["temperature"], "23°")
        self.assertEqual(data["current"]["visibility"], "10km")
        self.assertEqual(data["current"]["wind_speed"], "6km/h")
        self.assertEqual(len(data["hourly"]), 16)
        self.assertEqual(len(data["daily"]), 2)
        self.assertEqual(data["city"]["sunrise"], "7:00")

    def test_dashboard_uses_default_location(self):
        resp = self.client.get("/v1/dashboard")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.calls, [self.settings.default_location])

    def test_unknown_location_404(self):
        def not_found(location, count):
            raise LocationNotFoundError("city not found", status_code=404)
        self.set_source(not_found)
        resp = self.client.get("/v1/dashboard", params={"location": "atlantis"})
        self.assertEqual(resp.status_code, 404)

    def test_network_failure_surfaces_502(self):
        def broken(location, count):
            raise ForecastFetchError("connection refused")
        self.set_source(broken)
        resp = self.client.get("/v1/dashboard", params={"location": "pune"})
        self.assertEqual(resp.status_code, 502)
        self.assertIn("connection refused", resp.json()["detail"])

    def test_empty_feed_renders_fallbacks(self):
        self.set_source(lambda location, count: _make_feed(count=0))
        resp = self.client.get("/v1/dashboard", params={"location": "pune"})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertFalse(data["has_data"])
        self.assertEqual(data["current"]["temperature"], "23°")
        self.assertEqual(data["daily"], [])

    def test_session_start_and_change_location(self):
        start = self.client.post("/v1/session/start", json={"location": "pune"})
        self.assertEqual(start.status_code, 200)
        session_id = start.json()["session_id"]
        self.assertEqual(start.json()["dashboard"]["city"]["name"], "Pune")

        changed = self.client.post(f"/v1/session/{session_id}/location", json={"location": "london"})
        self.assertEqual(changed.status_code, 200)
        self.assertEqual(changed.json()["location"], "london")
        self.assertEqual(changed.json()["dashboard"]["city"]["name"], "London")
        self.assertEqual(session_manager.get_session(session_id).location, "london")

    def test_session_start_without_body_uses_default(self):
        resp = self.client.post("/v1/session/start")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["location"], self.settings.default_location)

    def test_blank_location_rejected(self):
        session_id = self.client.post("/v1/session/start", json={}).json()["session_id"]
        resp = self.client.post(f"/v1/session/{session_id}/location", json={"location": "   "})
        self.assertEqual(resp.status_code, 422)

    def test_unknown_session_404(self):
        self.assertEqual(self.client.get("/v1/session/unknown/dashboard").status_code, 404)
        resp = self.client.post("/v1/session/unknown/location", json={"location": "pune"})
        self.assertEqual(resp.status_code, 404)

    def test_superseded_fetch_returns_409(self):
        session_id = self.client.post("/v1/session/start", json={"location": "pune"}).json()["session_id"]

        def switch_mid_fetch(location, count):
            # the user picks another place before this fetch resolves
            if location == "london":
                session_manager.select_location(session_id, "tokyo")
            return _make_feed(location.title())

        self.set_source(switch_mid_fetch)
        resp = self.client.post(f"/v1/session/{session_id}/location", json={"location": "london"})
        self.assertEqual(resp.status_code, 409)
        state = session_manager.get_session(session_id)
        self.assertEqual(state.location, "tokyo")
        self.assertIsNone(state.feed)

    def test_session_dashboard_reuses_fresh_forecast(self):
        session_id = self.client.post("/v1/session/start", json={"location": "pune"}).json()["session_id"]
        self.calls.clear()
        resp = self.client.get(f"/v1/session/{session_id}/dashboard")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.calls, [])

    def test_session_dashboard_refetches_when_stale(self):
        session_id = self.client.post("/v1/session/start", json={"location": "pune"}).json()["session_id"]
        self.calls.clear()
        self.settings.conditions_ttl_seconds = 0
        resp = self.client.get(f"/v1/session/{session_id}/dashboard")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.calls, ["pune"])

    def test_stale_forecast_detected_by_age(self):
        old = _make_feed()
        old = ForecastFeed(
            samples=old.samples,
            city=old.city,
            count=old.count,
            fetched_at=dt.datetime.now(dt.timezone.utc) - dt.timedelta(hours=2),
        )
        self.assertFalse(self.api_mod._feed_is_fresh(old))
        self.assertTrue(self.api_mod._feed_is_fresh(_make_feed()))
        self.assertFalse(self.api_mod._feed_is_fresh(None))


if __name__ == "__main__":
    unittest.main()
