"""Factory helpers for choosing the collaborator services at startup."""

from __future__ import annotations

from tripweather import config
from tripweather.data_sources.base import CallableTripDataSource, TripDataSource
from tripweather.data_sources.nominatim_client import reverse_geocode
from tripweather.data_sources.open_meteo_client import fetch_point_forecast, search_places
from tripweather.data_sources.osrm_client import fetch_routes
from utils.logging_utils import get_tagged_logger, mask_url_secrets

logger = get_tagged_logger(__name__, tag="data_sources/factory")


ROUTING_SOURCES = {"osrm": fetch_routes}
FORECAST_SOURCES = {"open_meteo": fetch_point_forecast}
GEOCODING_SOURCES = {"nominatim": reverse_geocode}


def _pick(kind: str, registry: dict, name: str | None, default: str):
    key = (name or default).lower()
    if key not in registry:
        raise ValueError(f"Unknown {kind} source '{key}'")
    return registry[key]


def build_data_source(settings: config.Settings | None = None) -> TripDataSource:
    """Instantiate the configured routing/forecast/geocoding services."""
    settings = settings or config.settings
    routes = _pick("routing", ROUTING_SOURCES, settings.routing_source, "osrm")
    forecast = _pick("forecast", FORECAST_SOURCES, settings.forecast_source, "open_meteo")
    reverse = _pick("geocoding", GEOCODING_SOURCES, settings.geocoding_source, "nominatim")

    logger.info(
        "Using trip data sources",
        extra={
            "routing": settings.routing_source,
            "routing_url": mask_url_secrets(settings.osrm_base_url),
            "forecast": settings.forecast_source,
            "geocoding": settings.geocoding_source,
        },
    )
    return CallableTripDataSource(
        routes=routes,
        point_forecast=forecast,
        reverse=reverse,
        search=search_places,
    )
