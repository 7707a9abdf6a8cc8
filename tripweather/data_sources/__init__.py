"""Collaborator clients and the data-source seam used by trip sessions."""

from .base import CallableTripDataSource, TripDataSource
from .factory import build_data_source
from .nominatim_client import reverse_geocode
from .open_meteo_client import fetch_point_forecast, parse_point_forecast, search_places
from .osrm_client import fetch_routes, parse_routes

__all__ = [
    "build_data_source",
    "TripDataSource",
    "CallableTripDataSource",
    "fetch_point_forecast",
    "parse_point_forecast",
    "search_places",
    "fetch_routes",
    "parse_routes",
    "reverse_geocode",
]
