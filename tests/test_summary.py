import datetime as dt
import unittest

from fakes import OKC, TULSA, straight_route

from tripweather.domain import Coordinate, ResolvedWaypoint, Waypoint, WeatherSnapshot
from tripweather.summary import UNKNOWN_LOCATION, format_trip_report, summarize_trip

UTC = dt.timezone.utc


def _resolved(name, label="wp", **weather):
    wp = Waypoint(coordinate=Coordinate(lat=35.0, lon=-97.0), route_progress=0.0,
                  distance_from_start_miles=0, label=label)
    snapshot = WeatherSnapshot(**weather) if weather else None
    return ResolvedWaypoint(waypoint=wp, weather=snapshot, location_name=name, success=snapshot is not None)


class TestSummarizeTrip(unittest.TestCase):
    def test_none_without_any_weather(self):
        self.assertIsNone(summarize_trip([]))
        self.assertIsNone(summarize_trip([_resolved("A"), _resolved("B")]))

    def test_extremes_and_locations(self):
        summary = summarize_trip([
            _resolved("Start Town", temperature=40.0, wind_speed=5.0, weather_code=0),
            _resolved("Hot Spot", temperature=72.0, wind_speed=12.0, weather_code=1),
            _resolved("Cold Spot", temperature=31.0, wind_speed=25.0, weather_code=3),
            _resolved("No Data"),
        ])
        self.assertEqual(summary.max_temp, 72.0)
        self.assertEqual(summary.max_temp_location, "Hot Spot")
        self.assertEqual(summary.min_temp, 31.0)
        self.assertEqual(summary.min_temp_location, "Cold Spot")
        self.assertEqual(summary.max_wind, 25.0)
        self.assertEqual(summary.max_wind_location, "Cold Spot")
        self.assertEqual(summary.total_waypoints, 3)
        self.assertFalse(summary.has_precip)
        self.assertFalse(summary.has_snow)
        self.assertFalse(summary.has_severe)

    def test_ties_go_to_the_first_waypoint(self):
        summary = summarize_trip([
            _resolved("First", temperature=60.0, wind_speed=10.0),
            _resolved("Second", temperature=60.0, wind_speed=10.0),
        ])
        self.assertEqual(summary.max_temp_location, "First")
        self.assertEqual(summary.min_temp_location, "First")
        self.assertEqual(summary.max_wind_location, "First")

    def test_hazard_counts(self):
        summary = summarize_trip([
            _resolved("Drizzle", temperature=50.0, weather_code=53),
            _resolved("Wet but clear code", temperature=50.0, weather_code=2, precipitation=0.1),
            _resolved("Snow showers", temperature=28.0, weather_code=85),
            _resolved("Storm", temperature=70.0, weather_code=95),
            _resolved("Clear", temperature=60.0, weather_code=0, precipitation=0.0),
        ])
        self.assertTrue(summary.has_precip)
        self.assertEqual(summary.precip_count, 4)
        self.assertTrue(summary.has_snow)
        self.assertEqual(summary.snow_count, 1)
        self.assertTrue(summary.has_severe)
        self.assertEqual(summary.severe_count, 1)

    def test_missing_values_are_skipped(self):
        summary = summarize_trip([
            _resolved("Temp only", temperature=50.0),
            _resolved("Wind only", wind_speed=30.0),
        ])
        self.assertEqual(summary.max_temp, 50.0)
        self.assertEqual(summary.max_wind_location, "Wind only")
        self.assertEqual(summary.total_waypoints, 2)

    def test_unknown_location_when_name_is_blank(self):
        summary = summarize_trip([_resolved("", temperature=50.0, wind_speed=5.0)])
        self.assertEqual(summary.max_temp_location, UNKNOWN_LOCATION)


class TestFormatTripReport(unittest.TestCase):
    def setUp(self):
        self.route = straight_route(200, duration_seconds=3 * 3600 + 25 * 60)
        self.departure = dt.datetime(2024, 1, 1, 8, 0, tzinfo=UTC)

    def test_full_report(self):
        resolved = [
            _resolved("Oklahoma City, OK", label="Start", temperature=41.0, wind_speed=8.0, weather_code=0),
            _resolved("Stroud, OK", label="Mile 50", temperature=45.0, wind_speed=22.0, weather_code=95),
            _resolved("Tulsa, OK", label="Destination"),
        ]
        text = format_trip_report(OKC, TULSA, self.departure, self.route, resolved, summarize_trip(resolved))
        lines = text.splitlines()

        self.assertEqual(lines[0], "Trip Weather: Oklahoma City to Tulsa, Oklahoma")
        self.assertEqual(lines[1], "Departure: 2024-01-01 08:00 UTC")
        self.assertEqual(lines[2], "Distance: 200 mi")
        self.assertEqual(lines[3], "Duration: 3h 25m")
        self.assertIn("- Temp Range: 41F to 45F", lines)
        self.assertIn("- Max Wind: 22 mph at Stroud, OK", lines)
        self.assertIn("- Precipitation at 1 location(s)", lines)
        self.assertIn("- SEVERE WEATHER at 1 location(s)!", lines)
        self.assertIn("Start (Oklahoma City, OK): 41F, Clear sky", lines)
        self.assertIn("Mile 50 (Stroud, OK): 45F, Thunderstorm", lines)
        self.assertIn("Destination (Tulsa, OK): N/A", lines)

    def test_report_without_summary(self):
        resolved = [_resolved("Nowhere", label="Start")]
        text = format_trip_report(OKC, TULSA, self.departure, self.route, resolved, None)
        self.assertNotIn("Summary:", text)
        self.assertIn("Start (Nowhere): N/A", text)

    def test_dry_trip(self):
        resolved = [_resolved("Dry", label="Start", temperature=60.0, wind_speed=5.0, weather_code=0)]
        text = format_trip_report(OKC, TULSA, self.departure, self.route, resolved, summarize_trip(resolved))
        self.assertIn("- No precipitation expected", text)
        self.assertNotIn("Snow at", text)


if __name__ == "__main__":
    unittest.main()
