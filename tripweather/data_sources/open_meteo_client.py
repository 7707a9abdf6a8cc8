"""Helpers for fetching point forecasts and place searches from Open-Meteo."""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests

from tripweather.config import settings
from tripweather.domain import Coordinate, Place, PointForecast, WeatherSnapshot
from tripweather.errors import CollaboratorError
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag='open_meteo_client')

session = requests.Session()

CURRENT_VARS = [
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "weather_code",
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
    "precipitation",
    "pressure_msl",
]

HOURLY_VARS = [
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "precipitation_probability",
    "precipitation",
    "snowfall",
    "weather_code",
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
    "pressure_msl",
]

EXPECTED_WEATHER_UNITS = {
    "temperature_2m": "°F",
    "apparent_temperature": "°F",
    "relative_humidity_2m": "%",
    "precipitation_probability": "%",
    "precipitation": "inch",
    "snowfall": "inch",
    "wind_speed_10m": "mph",
    "wind_gusts_10m": "mph",
    "wind_direction_10m": "°",
    "pressure_msl": "hPa",
}

# Acceptable alternative units that should not trigger warnings (API/localized differences).
ALLOWED_WEATHER_UNIT_SYNONYMS = {
    "temperature_2m": {"°C", "°F"},
    "apparent_temperature": {"°C", "°F"},
    "relative_humidity_2m": {"%", "percent"},
    "precipitation_probability": {"%", "percent"},
    "precipitation": {"mm", "inch"},
    "snowfall": {"cm", "inch"},
    "wind_speed_10m": {"mph", "km/h", "m/s", "kn"},
    "wind_gusts_10m": {"mph", "km/h", "m/s", "kn"},
    "wind_direction_10m": {"°", "deg", "degrees"},
    "pressure_msl": {"hPa"},
}


def _iso_to_dt_with_tz(s: str, tz: dt.tzinfo) -> dt.datetime:
    """Interpret an Open-Meteo local time string as being in `tz`."""
    return dt.datetime.fromisoformat(s).replace(tzinfo=tz)


def _response_tz(data: Dict[str, Any]) -> dt.tzinfo:
    """Resolve the timezone Open-Meteo used for local timestamps (timezone=auto)."""
    name = data.get("timezone")
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown Open-Meteo timezone; using utc_offset_seconds", extra={"timezone": name})
    offset = data.get("utc_offset_seconds") or 0
    return dt.timezone(dt.timedelta(seconds=int(offset)))


def _warn_on_unexpected_units(units: dict, *, context: str):
    """Log a warning if Open-Meteo returns units we did not request/expect."""
    if not units:
        return
    for name, expected in EXPECTED_WEATHER_UNITS.items():
        actual = units.get(name)
        if actual and actual != expected:
            allowed = ALLOWED_WEATHER_UNIT_SYNONYMS.get(name, set())
            if actual not in allowed:
                logger.warning(
                    "Unexpected Open-Meteo unit",
                    extra={"context": context, "field": name, "unit": actual, "expected": expected,
                           "allowed": sorted(allowed)},
                )


def _as_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


def _snapshot(values: Dict[str, Any], time: Optional[dt.datetime]) -> WeatherSnapshot:
    """Build a WeatherSnapshot from one row of Open-Meteo variables."""
    return WeatherSnapshot(
        time=time,
        temperature=values.get("temperature_2m"),
        apparent_temperature=values.get("apparent_temperature"),
        weather_code=_as_int(values.get("weather_code")),
        wind_speed=values.get("wind_speed_10m"),
        wind_gusts=values.get("wind_gusts_10m"),
        wind_direction=values.get("wind_direction_10m"),
        humidity=values.get("relative_humidity_2m"),
        precipitation=values.get("precipitation"),
        precipitation_probability=values.get("precipitation_probability"),
        snowfall=values.get("snowfall"),
        pressure=values.get("pressure_msl"),
    )


def parse_point_forecast(data: Dict[str, Any]) -> PointForecast:
    """Turn an Open-Meteo forecast payload into current + hourly snapshots."""
    try:
        tz = _response_tz(data)
        current = data["current"]
        _warn_on_unexpected_units(data.get("current_units") or {}, context="weather_current")
        current_time = current.get("time")
        current_snapshot = _snapshot(
            current, _iso_to_dt_with_tz(current_time, tz) if current_time else None
        )

        hourly = data.get("hourly") or {}
        _warn_on_unexpected_units(data.get("hourly_units") or {}, context="weather_hourly")
        times = hourly.get("time") or []
        columns = {name: hourly.get(name) or [None] * len(times) for name in HOURLY_VARS}
        hours: List[WeatherSnapshot] = []
        for i, t in enumerate(times):
            row = {name: (values[i] if i < len(values) else None) for name, values in columns.items()}
            hours.append(_snapshot(row, _iso_to_dt_with_tz(t, tz)))
    except (KeyError, TypeError, ValueError) as exc:
        raise CollaboratorError(f"malformed Open-Meteo forecast payload: {exc}") from exc

    hours.sort(key=lambda h: h.time)
    return PointForecast(current=current_snapshot, hourly=hours)


def fetch_point_forecast(
    latitude: float,
    longitude: float,
    *,
    timezone: str = "auto",
    forecast_days: int | None = None,
    temperature_unit: str | None = None,
    wind_speed_unit: str | None = None,
    precipitation_unit: str | None = None,
) -> PointForecast:
    """Fetch current conditions and the hourly series for one coordinate."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": ",".join(CURRENT_VARS),
        "hourly": ",".join(HOURLY_VARS),
        "timezone": timezone,
        "forecast_days": forecast_days or settings.forecast_days,
        "temperature_unit": temperature_unit or settings.temperature_unit,
        "wind_speed_unit": wind_speed_unit or settings.wind_speed_unit,
        "precipitation_unit": precipitation_unit or settings.precipitation_unit,
    }

    resp = session.get(f"{settings.open_meteo_base_url}/v1/forecast", params=params,
                       timeout=settings.http_timeout_seconds)
    resp.raise_for_status()
    return parse_point_forecast(resp.json())


def search_places(query: str, *, count: int = 5, language: str = "en") -> List[Place]:
    """Look up places by name for destination selection."""
    params = {"name": query, "count": count, "language": language, "format": "json"}
    resp = session.get(f"{settings.open_meteo_geocoding_url}/v1/search", params=params,
                       timeout=settings.http_timeout_seconds)
    resp.raise_for_status()
    data = resp.json()

    out: List[Place] = []
    for result in data.get("results") or []:
        try:
            coordinate = Coordinate(lat=float(result["latitude"]), lon=float(result["longitude"]))
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("Skipping malformed search result", extra={"error": str(exc)})
            continue
        region = result.get("admin1")
        name = result.get("name") or ""
        out.append(
            Place(
                name=f"{name}, {region}" if region else name,
                coordinate=coordinate,
                region=region,
                country=result.get("country"),
            )
        )
    return out
