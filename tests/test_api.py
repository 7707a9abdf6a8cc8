import unittest

import requests
from fastapi.testclient import TestClient
from fakes import FakeDataSource, straight_route

from tripweather import session_manager
from tripweather.main import app as fastapi_app

ORIGIN = {"name": "Oklahoma City", "latitude": 35.47, "longitude": -97.52}
DESTINATION = {"name": "Tulsa, Oklahoma", "latitude": 36.15, "longitude": -95.99}
DEPARTURE = "2024-01-01T08:00:00+00:00"


class TestApi(unittest.TestCase):
    def setUp(self):
        import tripweather.api as api_mod
        from tripweather.config import settings

        self.api_mod = api_mod
        self.settings = settings
        self._orig_source = api_mod.DATA_SOURCE
        self._orig_api_key = settings.api_key
        self._orig_stagger = settings.geocode_stagger_seconds
        settings.api_key = None
        settings.geocode_stagger_seconds = 0

        self.source = FakeDataSource(routes=[straight_route(200), straight_route(120, start=(35.0, -96.0))])
        api_mod.DATA_SOURCE = self.source
        session_manager.use_in_memory_store_for_tests()

        self._client_cm = TestClient(fastapi_app)
        self.client = self._client_cm.__enter__()

    def tearDown(self):
        self._client_cm.__exit__(None, None, None)
        self.api_mod.DATA_SOURCE = self._orig_source
        self.settings.api_key = self._orig_api_key
        self.settings.geocode_stagger_seconds = self._orig_stagger

    def _create_trip(self):
        resp = self.client.post("/v1/trips", json={"origin": ORIGIN, "departure_time": DEPARTURE})
        self.assertEqual(resp.status_code, 200)
        return resp.json()

    def _routed_trip(self):
        trip = self._create_trip()
        trip_id = trip["trip_id"]
        resp = self.client.post(f"/v1/trips/{trip_id}/destination", json=DESTINATION)
        self.assertEqual(resp.status_code, 200)
        resp = self.client.post(f"/v1/trips/{trip_id}/route")
        self.assertEqual(resp.status_code, 200)
        return resp.json()

    def test_create_trip(self):
        trip = self._create_trip()
        self.assertEqual(trip["state"], "idle")
        self.assertEqual(trip["origin"]["name"], "Oklahoma City")
        self.assertIsNone(trip["destination"])
        self.assertEqual(trip["waypoints"], [])

        fetched = self.client.get(f"/v1/trips/{trip['trip_id']}").json()
        self.assertEqual(fetched["trip_id"], trip["trip_id"])

    def test_invalid_origin_rejected(self):
        resp = self.client.post("/v1/trips", json={"origin": {"name": "x", "latitude": 95, "longitude": 0}})
        self.assertEqual(resp.status_code, 422)

    def test_unknown_trip(self):
        self.assertEqual(self.client.get("/v1/trips/nope").status_code, 404)
        self.assertEqual(self.client.post("/v1/trips/nope/route").status_code, 404)

    def test_route_and_weather(self):
        trip = self._routed_trip()
        self.assertEqual(trip["state"], "weather_ready")
        self.assertEqual(trip["destination"]["name"], "Tulsa, Oklahoma")
        self.assertEqual(len(trip["routes"]), 2)
        self.assertEqual(trip["routes"][0]["distance_miles"], 200.0)
        self.assertAlmostEqual(trip["routes"][0]["adjusted_duration_seconds"], 14400 / 1.27, places=0)
        self.assertEqual(len(trip["waypoints"]), 5)
        first = trip["waypoints"][0]
        self.assertEqual(first["label"], "Start")
        self.assertTrue(first["weather_available"])
        self.assertIsNotNone(first["weather"]["temperature"])
        self.assertTrue(first["location_name"].endswith(", OK"))
        self.assertEqual(trip["waypoints"][-1]["label"], "Destination")
        self.assertEqual(trip["summary"]["total_waypoints"], 5)

    def test_route_without_destination(self):
        trip = self._create_trip()
        resp = self.client.post(f"/v1/trips/{trip['trip_id']}/route")
        self.assertEqual(resp.status_code, 400)

    def test_route_failure(self):
        self.source.route_error = requests.ConnectionError("router down")
        trip = self._create_trip()
        self.client.post(f"/v1/trips/{trip['trip_id']}/destination", json=DESTINATION)
        resp = self.client.post(f"/v1/trips/{trip['trip_id']}/route")
        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.json()["detail"], "Unable to calculate route. Please try again.")

        state = self.client.get(f"/v1/trips/{trip['trip_id']}").json()
        self.assertEqual(state["state"], "error")
        self.assertEqual(state["error"], "Unable to calculate route. Please try again.")

    def test_select_route(self):
        trip = self._routed_trip()
        resp = self.client.post(f"/v1/trips/{trip['trip_id']}/route/select", json={"index": 1})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["selected_route_index"], 1)
        self.assertEqual(body["state"], "weather_ready")
        self.assertEqual(body["waypoints"][-1]["distance_from_start_miles"], 120)

        resp = self.client.post(f"/v1/trips/{trip['trip_id']}/route/select", json={"index": 7})
        self.assertEqual(resp.status_code, 400)

    def test_departure_change_moves_etas(self):
        trip = self._routed_trip()
        calls = len(self.source.forecast_calls)
        resp = self.client.post(f"/v1/trips/{trip['trip_id']}/departure",
                                json={"departure_time": "2024-01-01T10:00:00+00:00"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["waypoints"][0]["eta_time"].startswith("2024-01-01T10:00:00"))
        self.assertEqual(body["waypoints"][0]["weather"], trip["waypoints"][0]["weather"])
        self.assertEqual(len(self.source.forecast_calls), calls)

    def test_refresh_and_auto_refresh(self):
        trip = self._routed_trip()
        resp = self.client.post(f"/v1/trips/{trip['trip_id']}/refresh")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(self.source.geocode_calls), 5)
        self.assertEqual(len(self.source.forecast_calls), 10)

        resp = self.client.post(f"/v1/trips/{trip['trip_id']}/auto-refresh", json={"enabled": True})
        self.assertTrue(resp.json()["auto_refresh"])
        resp = self.client.post(f"/v1/trips/{trip['trip_id']}/auto-refresh", json={"enabled": False})
        self.assertFalse(resp.json()["auto_refresh"])

    def test_refresh_without_route(self):
        trip = self._create_trip()
        self.assertEqual(self.client.post(f"/v1/trips/{trip['trip_id']}/refresh").status_code, 400)

    def test_report(self):
        trip = self._routed_trip()
        resp = self.client.get(f"/v1/trips/{trip['trip_id']}/report")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.headers["content-type"].startswith("text/plain"))
        self.assertTrue(resp.text.startswith("Trip Weather: Oklahoma City to Tulsa, Oklahoma"))

        bare = self._create_trip()
        self.assertEqual(self.client.get(f"/v1/trips/{bare['trip_id']}/report").status_code, 400)

    def test_delete_trip(self):
        trip = self._routed_trip()
        resp = self.client.delete(f"/v1/trips/{trip['trip_id']}")
        self.assertEqual(resp.status_code, 204)
        self.assertEqual(self.client.get(f"/v1/trips/{trip['trip_id']}").status_code, 404)
        self.assertEqual(self.client.delete(f"/v1/trips/{trip['trip_id']}").status_code, 404)

    def test_destination_search(self):
        resp = self.client.get("/v1/destinations", params={"q": "Tulsa"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()[0]["name"], "Tulsa, Oklahoma")
        self.assertEqual(self.client.get("/v1/destinations", params={"q": "T"}).json(), [])

    def test_api_key_required_when_configured(self):
        self.settings.api_key = "s3cret"
        self.assertEqual(self.client.post("/v1/trips", json={"origin": ORIGIN}).status_code, 401)
        resp = self.client.post("/v1/trips", json={"origin": ORIGIN}, headers={"X-API-Key": "wrong"})
        self.assertEqual(resp.status_code, 401)
        resp = self.client.post("/v1/trips", json={"origin": ORIGIN}, headers={"X-API-Key": "s3cret"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.get("/health").status_code, 200)


if __name__ == "__main__":
    unittest.main()
