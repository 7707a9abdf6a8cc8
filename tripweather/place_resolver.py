"""Turn waypoint coordinates into short display names."""
from __future__ import annotations

import asyncio
from typing import List, Mapping, Optional, Sequence

import requests

from tripweather.cancellation import CancellationToken
from tripweather.data_sources.base import TripDataSource
from tripweather.domain import Coordinate, Waypoint
from tripweather.errors import CollaboratorError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="place_resolver")

PLACE_FIELDS = ("city", "town", "village", "hamlet", "municipality", "suburb", "county", "road")

US_STATE_ABBREVIATIONS = {
    "Alabama": "AL", "Alaska": "AK", "Arizona": "AZ", "Arkansas": "AR",
    "California": "CA", "Colorado": "CO", "Connecticut": "CT", "Delaware": "DE",
    "Florida": "FL", "Georgia": "GA", "Hawaii": "HI", "Idaho": "ID",
    "Illinois": "IL", "Indiana": "IN", "Iowa": "IA", "Kansas": "KS",
    "Kentucky": "KY", "Louisiana": "LA", "Maine": "ME", "Maryland": "MD",
    "Massachusetts": "MA", "Michigan": "MI", "Minnesota": "MN", "Mississippi": "MS",
    "Missouri": "MO", "Montana": "MT", "Nebraska": "NE", "Nevada": "NV",
    "New Hampshire": "NH", "New Jersey": "NJ", "New Mexico": "NM", "New York": "NY",
    "North Carolina": "NC", "North Dakota": "ND", "Ohio": "OH", "Oklahoma": "OK",
    "Oregon": "OR", "Pennsylvania": "PA", "Rhode Island": "RI", "South Carolina": "SC",
    "South Dakota": "SD", "Tennessee": "TN", "Texas": "TX", "Utah": "UT",
    "Vermont": "VT", "Virginia": "VA", "Washington": "WA", "West Virginia": "WV",
    "Wisconsin": "WI", "Wyoming": "WY", "District of Columbia": "DC",
}


def fallback_name(coordinate: Coordinate) -> str:
    return f"Near {coordinate.lat:.2f}, {coordinate.lon:.2f}"


def format_place_name(address: Optional[Mapping[str, str]]) -> Optional[str]:
    """Pick the most specific populated place and append the state if known."""
    if not address:
        return None
    place = next((address[f] for f in PLACE_FIELDS if address.get(f)), None)
    if not place:
        return None
    state = address.get("state")
    if state:
        return f"{place}, {US_STATE_ABBREVIATIONS.get(state, state)}"
    return place


async def resolve_place_name(
    index: int,
    waypoint: Waypoint,
    source: TripDataSource,
    token: CancellationToken,
    stagger_seconds: float,
) -> str:
    """Reverse-geocode one waypoint after its slot in the staggered schedule."""
    coordinate = waypoint.coordinate
    if index and stagger_seconds > 0:
        await asyncio.sleep(index * stagger_seconds)
    token.raise_if_cancelled()

    try:
        address = await asyncio.to_thread(source.reverse_geocode, coordinate.lat, coordinate.lon)
    except (requests.RequestException, CollaboratorError) as exc:
        token.raise_if_cancelled()
        logger.warning(
            "Reverse geocoding failed; using coordinates",
            extra={"label": waypoint.label, "error": str(exc)},
        )
        return fallback_name(coordinate)

    token.raise_if_cancelled()
    return format_place_name(address) or fallback_name(coordinate)


async def resolve_place_names(
    waypoints: Sequence[Waypoint],
    source: TripDataSource,
    token: CancellationToken,
    stagger_seconds: float = 0.2,
) -> List[str]:
    """
    Name every waypoint, in order.

    Request i is issued `i * stagger_seconds` after the first so the batch
    stays under the geocoder's rate limit. Failures never propagate: a
    waypoint without a usable address gets a "Near lat, lon" label.
    """
    settled = await asyncio.gather(
        *(resolve_place_name(i, wp, source, token, stagger_seconds) for i, wp in enumerate(waypoints)),
        return_exceptions=True,
    )
    token.raise_if_cancelled()

    names: List[str] = []
    for wp, outcome in zip(waypoints, settled):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            logger.error("Place lookup crashed", extra={"label": wp.label, "error": repr(outcome)})
            names.append(fallback_name(wp.coordinate))
        else:
            names.append(outcome)
    return names
