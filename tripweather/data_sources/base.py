"""Interfaces and helpers for the routing, forecast and geocoding services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol

from tripweather.domain import Coordinate, Place, PointForecast, RouteCandidate


class TripDataSource(Protocol):
    """Everything a trip session needs from the outside world.

    Methods are blocking; the engine runs them in worker threads.
    """

    def fetch_routes(
        self,
        origin: Coordinate,
        destination: Coordinate,
        *,
        alternatives: bool = True,
    ) -> List[RouteCandidate]:
        """Return zero or more route candidates between two coordinates."""
        ...

    def fetch_point_forecast(self, latitude: float, longitude: float) -> PointForecast:
        """Return current conditions and the hourly series for a coordinate."""
        ...

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[Dict[str, str]]:
        """Return an address mapping (city, town, state, ...) or None."""
        ...

    def search_places(self, query: str) -> List[Place]:
        """Return places matching a free-text query."""
        ...


@dataclass
class CallableTripDataSource(TripDataSource):
    """Wrap four callables so each service can be swapped independently."""

    routes: Callable[..., List[RouteCandidate]]
    point_forecast: Callable[..., PointForecast]
    reverse: Callable[..., Optional[Dict[str, str]]]
    search: Callable[..., List[Place]]

    def fetch_routes(self, *args, **kwargs) -> List[RouteCandidate]:
        """Delegate to the configured routing callable."""
        return self.routes(*args, **kwargs)

    def fetch_point_forecast(self, *args, **kwargs) -> PointForecast:
        """Delegate to the configured forecast callable."""
        return self.point_forecast(*args, **kwargs)

    def reverse_geocode(self, *args, **kwargs) -> Optional[Dict[str, str]]:
        """Delegate to the configured reverse-geocoding callable."""
        return self.reverse(*args, **kwargs)

    def search_places(self, *args, **kwargs) -> List[Place]:
        """Delegate to the configured place-search callable."""
        return self.search(*args, **kwargs)
