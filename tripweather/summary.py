"""Reduce resolved waypoints into a trip summary and a shareable report."""
from __future__ import annotations

import datetime as dt
from typing import Callable, List, Optional, Sequence, Tuple

from tripweather import weather_codes
from tripweather.domain import Place, ResolvedWaypoint, RouteCandidate, TripSummary, WeatherSnapshot
from tripweather.geo import meters_to_miles

UNKNOWN_LOCATION = "Unknown"


def _extreme(
    waypoints: Sequence[ResolvedWaypoint],
    value: Callable[[WeatherSnapshot], Optional[float]],
    pick: Callable[..., float],
) -> Tuple[Optional[float], str]:
    """Return the extreme value and the name of the first waypoint holding it."""
    candidates = [(value(wp.weather), wp) for wp in waypoints if value(wp.weather) is not None]
    if not candidates:
        return None, UNKNOWN_LOCATION
    best = pick(v for v, _ in candidates)
    holder = next(wp for v, wp in candidates if v == best)
    return best, holder.location_name or UNKNOWN_LOCATION


def _has_precip(weather: WeatherSnapshot) -> bool:
    return (weather.precipitation or 0) > 0 or weather_codes.is_precip_code(weather.weather_code)


def summarize_trip(resolved: Sequence[ResolvedWaypoint]) -> Optional[TripSummary]:
    """
    Compute temperature/wind extremes and hazard counts for a resolved trip.

    Only waypoints with weather count. Returns None when none have any.
    """
    valid = [wp for wp in resolved if wp.weather is not None]
    if not valid:
        return None

    max_temp, max_temp_location = _extreme(valid, lambda w: w.temperature, max)
    min_temp, min_temp_location = _extreme(valid, lambda w: w.temperature, min)
    max_wind, max_wind_location = _extreme(valid, lambda w: w.wind_speed, max)

    precip_count = sum(1 for wp in valid if _has_precip(wp.weather))
    snow_count = sum(1 for wp in valid if weather_codes.is_snow_code(wp.weather.weather_code))
    severe_count = sum(1 for wp in valid if weather_codes.is_severe_code(wp.weather.weather_code))

    return TripSummary(
        max_temp=max_temp,
        max_temp_location=max_temp_location,
        min_temp=min_temp,
        min_temp_location=min_temp_location,
        max_wind=max_wind,
        max_wind_location=max_wind_location,
        has_precip=precip_count > 0,
        precip_count=precip_count,
        has_snow=snow_count > 0,
        snow_count=snow_count,
        has_severe=severe_count > 0,
        severe_count=severe_count,
        total_waypoints=len(valid),
    )


def _fmt_number(value: Optional[float]) -> str:
    return "?" if value is None else f"{value:.0f}"


def _fmt_duration(seconds: float) -> str:
    hours, rest = divmod(int(round(seconds)), 3600)
    return f"{hours}h {rest // 60}m"


def format_trip_report(
    origin: Place,
    destination: Place,
    departure_time: dt.datetime,
    route: RouteCandidate,
    resolved: Sequence[ResolvedWaypoint],
    summary: Optional[TripSummary],
) -> str:
    """Render a plain-text trip weather report suitable for sharing."""
    lines: List[str] = [
        f"Trip Weather: {origin.name} to {destination.name}",
        f"Departure: {departure_time.strftime('%Y-%m-%d %H:%M %Z').strip()}",
        f"Distance: {meters_to_miles(route.distance_meters):.0f} mi",
        f"Duration: {_fmt_duration(route.duration_seconds)}",
        "",
    ]

    if summary is not None:
        lines.append("Summary:")
        lines.append(f"- Temp Range: {_fmt_number(summary.min_temp)}F to {_fmt_number(summary.max_temp)}F")
        lines.append(f"- Max Wind: {_fmt_number(summary.max_wind)} mph at {summary.max_wind_location}")
        if summary.has_precip:
            lines.append(f"- Precipitation at {summary.precip_count} location(s)")
        else:
            lines.append("- No precipitation expected")
        if summary.has_snow:
            lines.append(f"- Snow at {summary.snow_count} location(s)")
        if summary.has_severe:
            lines.append(f"- SEVERE WEATHER at {summary.severe_count} location(s)!")
        lines.append("")

    lines.append("Waypoints:")
    for wp in resolved:
        if wp.weather is None:
            conditions = "N/A"
        else:
            conditions = (f"{_fmt_number(wp.weather.temperature)}F, "
                          f"{weather_codes.describe(wp.weather.weather_code)}")
        lines.append(f"{wp.waypoint.label} ({wp.location_name}): {conditions}")
    return "\n".join(lines)
