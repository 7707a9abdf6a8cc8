"""Reverse geocoding against Nominatim (OpenStreetMap)."""
from __future__ import annotations

from typing import Dict, Optional

import requests

from tripweather.config import settings
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="nominatim_client")

session = requests.Session()
# Nominatim's usage policy rejects requests without an identifying agent.
session.headers.update({"User-Agent": settings.user_agent})


def reverse_geocode(latitude: float, longitude: float, *, zoom: int | None = None) -> Optional[Dict[str, str]]:
    """Return the address mapping for a coordinate, or None if Nominatim has none."""
    params = {"lat": latitude, "lon": longitude, "format": "json"}
    if zoom is not None:
        params["zoom"] = zoom

    resp = session.get(f"{settings.nominatim_base_url}/reverse", params=params,
                       timeout=settings.http_timeout_seconds)
    resp.raise_for_status()
    data = resp.json()
    if "error" in data:
        logger.debug("Nominatim has no address", extra={"error": data.get("error")})
        return None
    return data.get("address") or None
