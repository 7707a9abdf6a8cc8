"""Project arrival times onto sampled waypoints."""
from __future__ import annotations

import datetime as dt
from typing import Iterable, List

from tripweather.domain import Waypoint
from tripweather.errors import InputError


def adjusted_duration(total_duration_seconds: float, speed_correction_factor: float) -> float:
    """Routing-engine duration divided by the speed correction factor."""
    if speed_correction_factor <= 0:
        raise InputError(f"speed_correction_factor must be positive, got {speed_correction_factor}")
    return total_duration_seconds / speed_correction_factor


def project_etas(
    waypoints: Iterable[Waypoint],
    departure_time: dt.datetime,
    total_duration_seconds: float,
    speed_correction_factor: float,
) -> List[Waypoint]:
    """
    Return copies of `waypoints` with `eta_seconds` and `eta_time` filled in.

    ETA scales linearly with route progress over the corrected duration. Only
    the two ETA fields change, so calling this again with a new departure time
    is all a departure change needs.
    """
    duration = adjusted_duration(total_duration_seconds, speed_correction_factor)
    out: List[Waypoint] = []
    for wp in waypoints:
        eta_seconds = round(wp.route_progress * duration)
        out.append(wp.with_eta(eta_seconds, departure_time + dt.timedelta(seconds=eta_seconds)))
    return out
