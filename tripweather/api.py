"""HTTP API for trip-weather sessions."""

import hmac
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from .config import settings
from .data_sources import build_data_source
from .domain import Coordinate, Place, ResolvedWaypoint, TripSummary, Waypoint, WeatherSnapshot
from .errors import InputError, RouteUnavailableError
from .eta import adjusted_duration
from .geo import meters_to_miles
from .orchestrator import TripSession, search_destinations
from .session_manager import create_session, delete_session, get_session
from utils.logging_utils import get_tagged_logger, trip_context

logger = get_tagged_logger(__name__, tag="tripweather/api")


def require_api_key(x_api_key: str | None = Header(default=None)):
    """Validate the X-API-Key header against the configured api_key, if any."""
    if not settings.api_key:
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])
DATA_SOURCE = build_data_source(settings)


class PlaceIn(BaseModel):
    """A named coordinate supplied by the client."""
    name: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class PlaceOut(BaseModel):
    """A named coordinate in API responses."""
    name: str
    latitude: float
    longitude: float
    region: Optional[str] = None
    country: Optional[str] = None


class CreateTripRequest(BaseModel):
    """Start a trip from an origin, optionally with a departure time."""
    origin: PlaceIn
    departure_time: Optional[datetime] = None


class SelectRouteRequest(BaseModel):
    index: int


class DepartureRequest(BaseModel):
    departure_time: datetime


class AutoRefreshRequest(BaseModel):
    enabled: bool


class WeatherOut(BaseModel):
    """Weather at a waypoint; any field the provider omitted is null."""
    time: Optional[datetime] = None
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


class WaypointOut(BaseModel):
    """A sampled waypoint, with weather and name once resolved."""
    label: str
    latitude: float
    longitude: float
    route_progress: float
    distance_from_start_miles: int
    eta_seconds: int
    eta_time: Optional[datetime] = None
    location_name: Optional[str] = None
    weather: Optional[WeatherOut] = None
    weather_available: Optional[bool] = None


class RouteOut(BaseModel):
    """Summary of one route candidate."""
    distance_miles: float
    duration_seconds: float
    adjusted_duration_seconds: float
    points: int


class SummaryOut(BaseModel):
    max_temp: Optional[float] = None
    max_temp_location: str
    min_temp: Optional[float] = None
    min_temp_location: str
    max_wind: Optional[float] = None
    max_wind_location: str
    has_precip: bool
    precip_count: int
    has_snow: bool
    snow_count: int
    has_severe: bool
    severe_count: int
    total_waypoints: int


class TripResponse(BaseModel):
    """Full view of a trip session."""
    trip_id: str
    state: str
    error: Optional[str] = None
    origin: PlaceOut
    destination: Optional[PlaceOut] = None
    departure_time: datetime
    auto_refresh: bool
    refreshing: bool
    last_refresh: Optional[datetime] = None
    selected_route_index: int
    routes: list[RouteOut] = []
    waypoints: list[WaypointOut] = []
    summary: Optional[SummaryOut] = None


def _place_out(place: Optional[Place]) -> Optional[PlaceOut]:
    if place is None:
        return None
    return PlaceOut(name=place.name, latitude=place.coordinate.lat, longitude=place.coordinate.lon,
                    region=place.region, country=place.country)


def _place_in(place: PlaceIn) -> Place:
    return Place(name=place.name, coordinate=Coordinate(lat=place.latitude, lon=place.longitude))


def _weather_out(weather: Optional[WeatherSnapshot]) -> Optional[WeatherOut]:
    if weather is None:
        return None
    return WeatherOut.model_validate(weather, from_attributes=True)


def _waypoint_out(wp: Waypoint, resolved: Optional[ResolvedWaypoint] = None) -> WaypointOut:
    return WaypointOut(
        label=wp.label,
        latitude=wp.coordinate.lat,
        longitude=wp.coordinate.lon,
        route_progress=wp.route_progress,
        distance_from_start_miles=wp.distance_from_start_miles,
        eta_seconds=wp.eta_seconds,
        eta_time=wp.eta_time,
        location_name=resolved.location_name if resolved else None,
        weather=_weather_out(resolved.weather) if resolved else None,
        weather_available=resolved.weather is not None if resolved else None,
    )


def _summary_out(summary: Optional[TripSummary]) -> Optional[SummaryOut]:
    if summary is None:
        return None
    return SummaryOut.model_validate(summary, from_attributes=True)


def _trip_response(session: TripSession) -> TripResponse:
    """Convert a live session into its serialized API shape."""
    if session.resolved:
        waypoints = [_waypoint_out(r.waypoint, r) for r in session.resolved]
    else:
        waypoints = [_waypoint_out(wp) for wp in session.waypoints]
    factor = session.settings.speed_correction_factor
    return TripResponse(
        trip_id=session.trip_id,
        state=session.state.value,
        error=session.error,
        origin=_place_out(session.origin),
        destination=_place_out(session.destination),
        departure_time=session.departure_time,
        auto_refresh=session.auto_refresh,
        refreshing=session.refreshing,
        last_refresh=session.last_refresh,
        selected_route_index=session.selected_index,
        routes=[
            RouteOut(
                distance_miles=round(meters_to_miles(r.distance_meters), 1),
                duration_seconds=r.duration_seconds,
                adjusted_duration_seconds=round(adjusted_duration(r.duration_seconds, factor), 1),
                points=len(r.geometry),
            )
            for r in session.routes
        ],
        waypoints=waypoints,
        summary=_summary_out(session.summary),
    )


def _require_session(trip_id: str) -> TripSession:
    session = get_session(trip_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Unknown trip ID")
    return session


@router.post("/trips", response_model=TripResponse)
async def start_trip(req: CreateTripRequest):
    """Create a trip session at the given origin."""
    session = create_session(_place_in(req.origin), DATA_SOURCE, departure_time=req.departure_time)
    return _trip_response(session)


@router.get("/trips/{trip_id}", response_model=TripResponse)
async def get_trip(trip_id: str):
    """Return the current view of a trip."""
    return _trip_response(_require_session(trip_id))


@router.delete("/trips/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def end_trip(trip_id: str):
    """Tear down a trip, cancelling its refresh timer and in-flight work."""
    if not await delete_session(trip_id):
        raise HTTPException(status_code=404, detail="Unknown trip ID")


@router.get("/destinations", response_model=list[PlaceOut])
async def find_destinations(q: str = Query(default="")):
    """Search destinations by name (queries under two characters return nothing)."""
    places = await search_destinations(q, DATA_SOURCE)
    return [_place_out(p) for p in places]


@router.post("/trips/{trip_id}/destination", response_model=TripResponse)
async def set_destination(trip_id: str, req: PlaceIn):
    """Choose the trip destination."""
    session = _require_session(trip_id)
    with trip_context(session.trip_id):
        session.choose_destination(_place_in(req))
    return _trip_response(session)


@router.post("/trips/{trip_id}/route", response_model=TripResponse)
async def calculate_route(trip_id: str, wait: bool = True):
    """Calculate routes and resolve weather for the first candidate."""
    session = _require_session(trip_id)
    with trip_context(session.trip_id):
        try:
            await session.calculate_route()
        except InputError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except RouteUnavailableError as exc:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
        if wait:
            await session.wait_for_resolution()
    return _trip_response(session)


@router.post("/trips/{trip_id}/route/select", response_model=TripResponse)
async def select_route(trip_id: str, req: SelectRouteRequest, wait: bool = True):
    """Switch to another route candidate."""
    session = _require_session(trip_id)
    with trip_context(session.trip_id):
        try:
            session.select_route(req.index)
        except InputError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        if wait:
            await session.wait_for_resolution()
    return _trip_response(session)


@router.post("/trips/{trip_id}/departure", response_model=TripResponse)
async def set_departure(trip_id: str, req: DepartureRequest):
    """Move the departure time; ETAs are recomputed without refetching weather."""
    session = _require_session(trip_id)
    with trip_context(session.trip_id):
        session.set_departure_time(req.departure_time)
    return _trip_response(session)


@router.post("/trips/{trip_id}/auto-refresh", response_model=TripResponse)
async def set_auto_refresh(trip_id: str, req: AutoRefreshRequest):
    """Enable or disable periodic weather refresh."""
    session = _require_session(trip_id)
    with trip_context(session.trip_id):
        session.set_auto_refresh(req.enabled)
    return _trip_response(session)


@router.post("/trips/{trip_id}/refresh", response_model=TripResponse)
async def refresh_trip(trip_id: str):
    """Re-resolve weather for the current route now."""
    session = _require_session(trip_id)
    with trip_context(session.trip_id):
        try:
            await session.refresh()
        except InputError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
    return _trip_response(session)


@router.get("/trips/{trip_id}/report", response_class=PlainTextResponse)
async def trip_report(trip_id: str):
    """Plain-text trip weather report for sharing."""
    session = _require_session(trip_id)
    try:
        return session.report()
    except InputError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
