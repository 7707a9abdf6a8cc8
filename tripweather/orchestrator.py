"""Trip sessions: route acquisition, waypoint resolution and auto-refresh.

A `TripSession` owns all state for one trip. Every resolution pass works on
a snapshot of the waypoints and publishes a fresh result list; a newer pass,
a route change or `clear()` cancels older passes through their
`CancellationToken` and task, so a slow stale answer can never overwrite a
newer one.
"""
from __future__ import annotations

import asyncio
import datetime as dt
import uuid
from typing import List, Optional, Sequence, Set
from zoneinfo import ZoneInfo

import requests

from tripweather import config
from tripweather.cancellation import CancellationToken
from tripweather.data_sources.base import TripDataSource
from tripweather.domain import Place, ResolvedWaypoint, RouteCandidate, TripState, TripSummary, Waypoint
from tripweather.errors import CollaboratorError, InputError, RouteUnavailableError, StaleRequestError
from tripweather.eta import project_etas
from tripweather.forecast_resolver import resolve_forecasts
from tripweather.place_resolver import resolve_place_names
from tripweather.sampler import sample_waypoints
from tripweather.summary import format_trip_report, summarize_trip
from utils.logging_utils import get_tagged_logger, trip_context

logger = get_tagged_logger(__name__, tag="orchestrator")

ROUTE_ERROR_MESSAGE = "Unable to calculate route. Please try again."
WEATHER_ERROR_MESSAGE = "Failed to load weather for some waypoints."


async def search_destinations(query: str, source: TripDataSource) -> List[Place]:
    """Search for destination candidates; short queries and failures yield []."""
    query = (query or "").strip()
    if len(query) < 2:
        return []
    try:
        return await asyncio.to_thread(source.search_places, query)
    except (requests.RequestException, CollaboratorError) as exc:
        logger.warning("Destination search failed", extra={"query": query, "error": str(exc)})
        return []


async def _reuse(names: Sequence[str]) -> List[str]:
    return list(names)


class TripSession:
    """State machine for one trip from an origin to a chosen destination."""

    def __init__(
        self,
        origin: Place,
        data_source: TripDataSource,
        *,
        settings: config.Settings | None = None,
        departure_time: dt.datetime | None = None,
        trip_id: str | None = None,
    ) -> None:
        self.trip_id = trip_id or uuid.uuid4().hex
        self.origin = origin
        self.data_source = data_source
        self.settings = settings or config.settings
        self._tz = ZoneInfo(self.settings.default_timezone)
        self.departure_time = self._normalize(departure_time or dt.datetime.now(self._tz))

        self.state = TripState.IDLE
        self.error: Optional[str] = None
        self.destination: Optional[Place] = None
        self.auto_refresh = False
        self.refreshing = False
        self.closed = False
        self._reset_route()

        self._route_token: Optional[CancellationToken] = None
        self._pass_token: Optional[CancellationToken] = None
        self._pass_task: Optional[asyncio.Task] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read-side helpers
    # ------------------------------------------------------------------

    @property
    def route(self) -> Optional[RouteCandidate]:
        """The currently selected route candidate, if any."""
        if not self.routes:
            return None
        return self.routes[self.selected_index]

    @property
    def auto_refresh_running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def report(self) -> str:
        """Plain-text trip report for the current route and weather."""
        if self.destination is None or self.route is None:
            raise InputError("no route to report on")
        return format_trip_report(self.origin, self.destination, self.departure_time,
                                  self.route, self.resolved, self.summary)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def choose_destination(self, destination: Place) -> None:
        """Set a new destination, dropping any route computed for the old one."""
        self._cancel_all_work()
        self._reset_route()
        self.destination = destination
        self.error = None
        self._set_state(TripState.DESTINATION_CHOSEN)
        logger.info("Destination chosen", extra={"destination": destination.name})

    async def calculate_route(self) -> List[RouteCandidate]:
        """
        Request routes (with alternatives) and start resolving the first one.

        Raises InputError without an origin or destination, and
        RouteUnavailableError when the routing service fails or finds
        nothing; the session is then in the ERROR state and the call can be
        retried. A request superseded while in flight returns [] silently.
        """
        if self.origin is None or self.destination is None:
            raise InputError("origin and destination are required to calculate a route")

        self._cancel_all_work()
        self._reset_route()
        token = CancellationToken("route request")
        self._route_token = token
        self.error = None
        self._set_state(TripState.ROUTE_CALCULATING)

        origin, destination = self.origin.coordinate, self.destination.coordinate
        try:
            candidates = await asyncio.to_thread(
                self.data_source.fetch_routes, origin, destination, alternatives=True
            )
            token.raise_if_cancelled()
            if not candidates:
                raise RouteUnavailableError("routing service found no route")
            sampled = [
                sample_waypoints(
                    c.geometry,
                    c.distance_meters,
                    c.duration_seconds,
                    self.settings.waypoint_interval_miles,
                    destination_merge_miles=self.settings.destination_merge_miles,
                )
                for c in candidates
            ]
        except StaleRequestError:
            logger.debug("Discarding superseded route response")
            return []
        except (requests.RequestException, CollaboratorError, InputError) as exc:
            if token.cancelled:
                return []
            self.error = ROUTE_ERROR_MESSAGE
            self._set_state(TripState.ERROR)
            logger.warning("Route calculation failed", extra={"error": str(exc)})
            raise RouteUnavailableError(ROUTE_ERROR_MESSAGE) from exc

        self.routes = list(candidates)
        self._sampled = sampled
        logger.info(
            "Routes ready",
            extra={"candidates": len(candidates), "waypoints": [len(s) for s in sampled]},
        )
        self._activate_route(0)
        return self.routes

    def select_route(self, index: int) -> None:
        """Switch to another route candidate and resolve it from scratch."""
        if not self.routes:
            raise InputError("no route has been calculated")
        if not 0 <= index < len(self.routes):
            raise InputError(f"route index {index} out of range (0-{len(self.routes) - 1})")
        self._cancel_pass()
        self._stop_timer()
        self._activate_route(index)

    def set_departure_time(self, departure_time: dt.datetime) -> None:
        """
        Move the departure and recompute every ETA in place.

        Weather, place names and the summary are kept as they are; nothing is
        refetched.
        """
        self.departure_time = self._normalize(departure_time)
        route = self.route
        if route is None or not self.waypoints:
            return
        self.waypoints = self._project(self.waypoints, route)
        if self.resolved:
            self.resolved = [r.with_waypoint(wp) for r, wp in zip(self.resolved, self.waypoints)]
        logger.debug("Departure time changed", extra={"departure": self.departure_time.isoformat()})

    def set_auto_refresh(self, enabled: bool) -> None:
        """Turn the periodic weather refresh on or off."""
        self.auto_refresh = enabled
        if not enabled:
            self._stop_timer()
        elif self.state is TripState.WEATHER_READY:
            self._ensure_timer()
        logger.info("Auto-refresh toggled", extra={"enabled": enabled})

    async def refresh(self) -> None:
        """Re-resolve weather for the current waypoints, reusing place names."""
        if not self.waypoints:
            raise InputError("no route to refresh")
        await asyncio.wait({self._start_pass(refresh=True)})

    async def wait_for_resolution(self) -> None:
        """Wait until no resolution pass is running, following superseding passes."""
        while self._pass_task is not None and not self._pass_task.done():
            await asyncio.wait({self._pass_task})

    def clear(self) -> None:
        """Return to IDLE, cancelling the refresh timer and any in-flight work."""
        self._cancel_all_work()
        self._reset_route()
        self.destination = None
        self.auto_refresh = False
        self.error = None
        self._set_state(TripState.IDLE)

    async def aclose(self) -> None:
        """Tear the session down and wait for its background tasks to finish."""
        self.clear()
        self.closed = True
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _normalize(self, when: dt.datetime) -> dt.datetime:
        if when.tzinfo is None:
            return when.replace(tzinfo=self._tz)
        return when

    def _set_state(self, state: TripState) -> None:
        if state is not self.state:
            logger.debug("Trip state change", extra={"from": self.state.value, "to": state.value})
        self.state = state

    def _reset_route(self) -> None:
        self.routes: List[RouteCandidate] = []
        self._sampled: List[List[Waypoint]] = []
        self.selected_index = 0
        self.waypoints: List[Waypoint] = []
        self.resolved: List[ResolvedWaypoint] = []
        self.summary: Optional[TripSummary] = None
        self.last_refresh: Optional[dt.datetime] = None
        self.refreshing = False

    def _project(self, waypoints: Sequence[Waypoint], route: RouteCandidate) -> List[Waypoint]:
        return project_etas(waypoints, self.departure_time, route.duration_seconds,
                            self.settings.speed_correction_factor)

    def _activate_route(self, index: int) -> None:
        self.selected_index = index
        self.resolved = []
        self.summary = None
        self.waypoints = self._project(self._sampled[index], self.routes[index])
        self._set_state(TripState.ROUTE_READY)
        self._start_pass(refresh=False)

    def _track(self, task: asyncio.Task) -> asyncio.Task:
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _start_pass(self, *, refresh: bool) -> asyncio.Task:
        """Cancel any running pass and start a new one over the current waypoints."""
        self._cancel_pass()
        token = CancellationToken(f"resolution pass (route {self.selected_index}, refresh={refresh})")
        waypoints = list(self.waypoints)
        previous_names = None
        if refresh and len(self.resolved) == len(waypoints):
            previous_names = [r.location_name for r in self.resolved]

        self._pass_token = token
        self.refreshing = refresh
        self._set_state(TripState.WEATHER_LOADING)
        self._pass_task = self._track(asyncio.create_task(self._run_pass(waypoints, token, previous_names)))
        return self._pass_task

    async def _run_pass(
        self,
        waypoints: List[Waypoint],
        token: CancellationToken,
        previous_names: Optional[List[str]],
    ) -> None:
        with trip_context(self.trip_id):
            if previous_names is not None:
                names_job = _reuse(previous_names)
            else:
                names_job = resolve_place_names(waypoints, self.data_source, token,
                                                self.settings.geocode_stagger_seconds)
            try:
                forecasts, names = await asyncio.gather(
                    resolve_forecasts(waypoints, self.data_source, token), names_job
                )
                token.raise_if_cancelled()
            except StaleRequestError:
                logger.debug("Discarding superseded resolution pass", extra={"pass": token.label})
                return
            except Exception:
                if token.cancelled:
                    return
                logger.exception("Resolution pass failed")
                self.error = WEATHER_ERROR_MESSAGE
                self.refreshing = False
                self._set_state(TripState.ERROR)
                return

            # ETAs may have moved while the pass was in flight.
            current = self._project(waypoints, self.route)
            resolved = [
                ResolvedWaypoint(waypoint=wp, weather=f.weather, location_name=name, success=f.success)
                for wp, f, name in zip(current, forecasts, names)
            ]
            self.waypoints = current
            self.resolved = resolved
            self.summary = summarize_trip(resolved)
            self.last_refresh = dt.datetime.now(dt.timezone.utc)
            self.error = None
            self.refreshing = False
            self._set_state(TripState.WEATHER_READY)
            logger.info(
                "Trip weather ready",
                extra={
                    "waypoints": len(resolved),
                    "with_weather": sum(1 for r in resolved if r.weather is not None),
                    "geocoded": previous_names is None,
                },
            )
            if self.auto_refresh:
                self._ensure_timer()

    async def _auto_refresh_loop(self) -> None:
        with trip_context(self.trip_id):
            period = self.settings.auto_refresh_seconds
            while True:
                await asyncio.sleep(period)
                if not self.waypoints or self.state not in (TripState.WEATHER_READY, TripState.ERROR):
                    logger.debug("Skipping auto-refresh tick", extra={"state": self.state.value})
                    continue
                logger.info("Auto-refreshing trip weather")
                await asyncio.wait({self._start_pass(refresh=True)})

    def _ensure_timer(self) -> None:
        if self.auto_refresh_running:
            return
        self._timer_task = self._track(asyncio.create_task(self._auto_refresh_loop()))

    def _stop_timer(self) -> None:
        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
        self._timer_task = None

    def _cancel_pass(self) -> None:
        if self._pass_token is not None:
            self._pass_token.cancel()
        if self._pass_task is not None and not self._pass_task.done():
            self._pass_task.cancel()
        self._pass_token = None
        self._pass_task = None

    def _cancel_all_work(self) -> None:
        if self._route_token is not None:
            self._route_token.cancel()
            self._route_token = None
        self._cancel_pass()
        self._stop_timer()
