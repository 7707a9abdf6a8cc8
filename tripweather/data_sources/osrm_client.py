"""Driving routes from an OSRM server (public demo server by default)."""
from __future__ import annotations

from typing import Any, Dict, List

import requests

from tripweather.config import settings
from tripweather.domain import Coordinate, RouteCandidate
from tripweather.errors import CollaboratorError
from utils.logging_utils import get_tagged_logger, mask_url_secrets
logger = get_tagged_logger(__name__, tag="osrm_client")

session = requests.Session()


def _parse_route(route: Dict[str, Any]) -> RouteCandidate:
    """Convert one OSRM route (GeoJSON geometry, lon first) into a RouteCandidate."""
    coordinates = route["geometry"]["coordinates"]
    geometry = tuple(Coordinate(lat=float(lat), lon=float(lon)) for lon, lat, *_ in coordinates)
    return RouteCandidate(
        geometry=geometry,
        distance_meters=float(route["distance"]),
        duration_seconds=float(route["duration"]),
    )


def parse_routes(data: Dict[str, Any]) -> List[RouteCandidate]:
    """Extract usable route candidates from an OSRM route response."""
    if data.get("code") != "Ok":
        logger.info("OSRM returned no route", extra={"code": data.get("code"), "detail": data.get("message")})
        return []

    out: List[RouteCandidate] = []
    for idx, route in enumerate(data.get("routes") or []):
        try:
            candidate = _parse_route(route)
        except (KeyError, TypeError, ValueError) as exc:
            raise CollaboratorError(f"malformed OSRM route {idx}: {exc}") from exc
        if len(candidate.geometry) < 2:
            logger.warning("Dropping OSRM route with degenerate geometry", extra={"route_index": idx})
            continue
        out.append(candidate)
    return out


def fetch_routes(origin: Coordinate, destination: Coordinate, *, alternatives: bool = True) -> List[RouteCandidate]:
    """Request driving routes from origin to destination, alternatives included."""
    coords = f"{origin.lon},{origin.lat};{destination.lon},{destination.lat}"
    url = f"{settings.osrm_base_url}/route/v1/driving/{coords}"
    params = {
        "overview": "full",
        "geometries": "geojson",
        "alternatives": "true" if alternatives else "false",
    }
    logger.debug("Requesting OSRM routes", extra={"url": mask_url_secrets(url)})

    resp = session.get(url, params=params, timeout=settings.http_timeout_seconds)
    # OSRM answers "NoRoute" with a 400 and a JSON body.
    if resp.status_code == 400:
        try:
            return parse_routes(resp.json())
        except ValueError as exc:
            logger.debug("OSRM 400 response has no JSON body", extra={"error": str(exc)})
    resp.raise_for_status()
    return parse_routes(resp.json())
