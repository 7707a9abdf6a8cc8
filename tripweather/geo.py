"""Great-circle helpers used by the waypoint sampler."""
from __future__ import annotations

import math

from tripweather.domain import Coordinate

EARTH_RADIUS_MILES = 3959.0
MILES_PER_METER = 0.000621371


def haversine_miles(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates, in miles."""
    d_lat = math.radians(b.lat - a.lat)
    d_lon = math.radians(b.lon - a.lon)
    h = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lon / 2) ** 2)
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def meters_to_miles(meters: float) -> float:
    return meters * MILES_PER_METER
