"""Join each waypoint to the forecast hour valid at its projected arrival."""
from __future__ import annotations

import asyncio
import datetime as dt
from dataclasses import fields, replace
from typing import List, Sequence

import requests

from tripweather.cancellation import CancellationToken
from tripweather.data_sources.base import TripDataSource
from tripweather.domain import ForecastResult, PointForecast, Waypoint, WeatherSnapshot
from tripweather.errors import CollaboratorError, InputError, StaleRequestError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_resolver")

_FALLBACK_FIELDS = [f.name for f in fields(WeatherSnapshot) if f.name not in ("time", "is_forecast")]


def truncate_to_hour(when: dt.datetime) -> dt.datetime:
    return when.replace(minute=0, second=0, microsecond=0)


def _overlay_on_current(hour: WeatherSnapshot, current: WeatherSnapshot) -> WeatherSnapshot:
    """Fill fields the hourly row lacks from current conditions."""
    filled = {
        name: getattr(hour, name) if getattr(hour, name) is not None else getattr(current, name)
        for name in _FALLBACK_FIELDS
    }
    return WeatherSnapshot(time=hour.time, is_forecast=True, **filled)


def select_forecast_at(forecast: PointForecast, eta_time: dt.datetime | None) -> WeatherSnapshot:
    """
    Pick the weather valid at `eta_time`.

    The ETA is truncated to the hour and the first hourly row at or after that
    hour wins. An ETA past the end of the series falls back to current
    conditions, flagged `is_forecast=False`.
    """
    if eta_time is None:
        raise InputError("waypoint has no projected arrival time")
    if eta_time.tzinfo is None:
        raise InputError("arrival time must be timezone-aware to match forecast hours")

    target = truncate_to_hour(eta_time)
    for hour in forecast.hourly:
        if hour.time is not None and hour.time >= target:
            return _overlay_on_current(hour, forecast.current)
    return replace(forecast.current, is_forecast=False)


async def resolve_waypoint_weather(
    waypoint: Waypoint,
    source: TripDataSource,
    token: CancellationToken,
) -> ForecastResult:
    """Fetch and select forecast-at-ETA for a single waypoint.

    Service failures become an unsuccessful result so sibling waypoints are
    unaffected.
    """
    token.raise_if_cancelled()
    coordinate = waypoint.coordinate
    try:
        forecast = await asyncio.to_thread(source.fetch_point_forecast, coordinate.lat, coordinate.lon)
    except (requests.RequestException, CollaboratorError) as exc:
        token.raise_if_cancelled()
        logger.warning(
            "Forecast unavailable for waypoint",
            extra={"label": waypoint.label, "lat": coordinate.lat, "lon": coordinate.lon, "error": str(exc)},
        )
        return ForecastResult(weather=None, success=False)

    token.raise_if_cancelled()
    return ForecastResult(weather=select_forecast_at(forecast, waypoint.eta_time), success=True)


async def resolve_forecasts(
    waypoints: Sequence[Waypoint],
    source: TripDataSource,
    token: CancellationToken,
) -> List[ForecastResult]:
    """Resolve every waypoint concurrently and wait for all of them to settle."""
    settled = await asyncio.gather(
        *(resolve_waypoint_weather(wp, source, token) for wp in waypoints),
        return_exceptions=True,
    )
    token.raise_if_cancelled()

    results: List[ForecastResult] = []
    for wp, outcome in zip(waypoints, settled):
        if isinstance(outcome, (StaleRequestError, asyncio.CancelledError)):
            raise outcome
        if isinstance(outcome, BaseException):
            logger.error(
                "Forecast resolution failed for waypoint",
                extra={"label": wp.label, "error": repr(outcome)},
            )
            results.append(ForecastResult(weather=None, success=False))
        else:
            results.append(outcome)

    logger.info(
        "Resolved waypoint forecasts",
        extra={"waypoints": len(results), "failed": sum(1 for r in results if not r.success)},
    )
    return results
