"""Sample a route's geometry into evenly spaced waypoints."""
from __future__ import annotations

from typing import List, Sequence

from tripweather.domain import Coordinate, Waypoint
from tripweather.errors import InputError
from tripweather.geo import haversine_miles, meters_to_miles
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="sampler")

DEFAULT_INTERVAL_MILES = 50.0
DEFAULT_DESTINATION_MERGE_MILES = 10.0


def _validate(geometry: Sequence[Coordinate], total_distance_meters: float,
              total_duration_seconds: float, interval_miles: float) -> None:
    if geometry is None or len(geometry) < 2:
        raise InputError("route geometry needs at least two points")
    if interval_miles <= 0:
        raise InputError(f"interval_miles must be positive, got {interval_miles}")
    if total_distance_meters < 0:
        raise InputError(f"total distance must not be negative, got {total_distance_meters}")
    if total_duration_seconds < 0:
        raise InputError(f"total duration must not be negative, got {total_duration_seconds}")


def sample_waypoints(
    geometry: Sequence[Coordinate],
    total_distance_meters: float,
    total_duration_seconds: float,
    interval_miles: float = DEFAULT_INTERVAL_MILES,
    *,
    destination_merge_miles: float = DEFAULT_DESTINATION_MERGE_MILES,
) -> List[Waypoint]:
    """
    Walk the route geometry and emit a waypoint every `interval_miles`.

    Distance between vertices is great-circle, so winding roads under-count
    relative to the routing engine's own total. Route progress is the vertex
    index over the last index, and the mileage shown for each waypoint is that
    progress scaled by the engine's reported distance.

    The result always starts with "Start" at progress 0 and ends with
    "Destination" at progress 1. When the last interval waypoint lands within
    `destination_merge_miles` of the end it becomes the destination instead of
    sitting next to it. ETAs are left at zero; see `tripweather.eta`.
    """
    _validate(geometry, total_distance_meters, total_duration_seconds, interval_miles)

    total_miles = meters_to_miles(total_distance_meters)
    last_index = len(geometry) - 1

    waypoints: List[Waypoint] = [
        Waypoint(coordinate=geometry[0], route_progress=0.0, distance_from_start_miles=0, label="Start")
    ]

    accumulated = 0.0
    last_emitted_at = 0.0
    for i in range(1, len(geometry)):
        accumulated += haversine_miles(geometry[i - 1], geometry[i])
        if accumulated - last_emitted_at >= interval_miles:
            progress = i / last_index
            miles = round(progress * total_miles)
            waypoints.append(
                Waypoint(coordinate=geometry[i], route_progress=progress,
                         distance_from_start_miles=miles, label=f"Mile {miles}")
            )
            last_emitted_at = accumulated

    final_miles = round(total_miles)
    destination = Waypoint(coordinate=geometry[-1], route_progress=1.0,
                           distance_from_start_miles=final_miles, label="Destination")
    last = waypoints[-1]
    if len(waypoints) == 1 or final_miles - last.distance_from_start_miles > destination_merge_miles:
        waypoints.append(destination)
    else:
        # Fold the trailing interval waypoint into the destination.
        waypoints[-1] = Waypoint(coordinate=last.coordinate, route_progress=1.0,
                                 distance_from_start_miles=final_miles, label="Destination")

    logger.debug(
        "Sampled route waypoints",
        extra={
            "vertices": len(geometry),
            "total_miles": round(total_miles, 1),
            "straight_line_miles": round(accumulated, 1),
            "waypoints": len(waypoints),
        },
    )
    return waypoints
