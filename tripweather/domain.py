"""Value types that flow through the trip-weather engine.

Coordinates, routes and waypoints are frozen; recomputing ETAs or resolving
weather always produces new objects so a resolution pass can work on a
snapshot while the session moves on.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple

from tripweather.errors import InputError


class TripState(str, Enum):
    """Lifecycle states of a trip session."""
    IDLE = "idle"
    DESTINATION_CHOSEN = "destination_chosen"
    ROUTE_CALCULATING = "route_calculating"
    ROUTE_READY = "route_ready"
    WEATHER_LOADING = "weather_loading"
    WEATHER_READY = "weather_ready"
    ERROR = "error"


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""
    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise InputError(f"latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise InputError(f"longitude out of range: {self.lon}")


@dataclass(frozen=True)
class Place:
    """A named coordinate: trip origin, destination or search hit."""
    name: str
    coordinate: Coordinate
    region: Optional[str] = None
    country: Optional[str] = None


@dataclass(frozen=True)
class RouteCandidate:
    """One route option returned by the routing service (durations uncorrected)."""
    geometry: Tuple[Coordinate, ...]
    distance_meters: float
    duration_seconds: float


@dataclass(frozen=True)
class Waypoint:
    """A sample point along a route with its projected arrival."""
    coordinate: Coordinate
    route_progress: float
    distance_from_start_miles: int
    label: str
    eta_seconds: int = 0
    eta_time: Optional[dt.datetime] = None

    def with_eta(self, eta_seconds: int, eta_time: dt.datetime) -> "Waypoint":
        return replace(self, eta_seconds=eta_seconds, eta_time=eta_time)


@dataclass(frozen=True)
class WeatherSnapshot:
    """Weather at one place and time; any field the provider omits is None."""
    time: Optional[dt.datetime] = None
    temperature: Optional[float] = None
    apparent_temperature: Optional[float] = None
    weather_code: Optional[int] = None
    wind_speed: Optional[float] = None
    wind_gusts: Optional[float] = None
    wind_direction: Optional[float] = None
    humidity: Optional[float] = None
    precipitation: Optional[float] = None
    precipitation_probability: Optional[float] = None
    snowfall: Optional[float] = None
    pressure: Optional[float] = None
    is_forecast: bool = False


@dataclass(frozen=True)
class PointForecast:
    """Current conditions plus the chronological hourly series for a coordinate."""
    current: WeatherSnapshot
    hourly: List[WeatherSnapshot] = field(default_factory=list)


@dataclass(frozen=True)
class ForecastResult:
    """Outcome of resolving forecast-at-ETA for one waypoint."""
    weather: Optional[WeatherSnapshot]
    success: bool


@dataclass(frozen=True)
class ResolvedWaypoint:
    """A waypoint joined with its forecast and place name."""
    waypoint: Waypoint
    weather: Optional[WeatherSnapshot]
    location_name: str
    success: bool = True

    def with_waypoint(self, waypoint: Waypoint) -> "ResolvedWaypoint":
        return replace(self, waypoint=waypoint)


@dataclass(frozen=True)
class TripSummary:
    """Trip-level extremes and hazard counts across resolved waypoints."""
    max_temp: Optional[float]
    max_temp_location: str
    min_temp: Optional[float]
    min_temp_location: str
    max_wind: Optional[float]
    max_wind_location: str
    has_precip: bool
    precip_count: int
    has_snow: bool
    snow_count: int
    has_severe: bool
    severe_count: int
    total_waypoints: int
