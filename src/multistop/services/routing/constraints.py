"""Stop validation and best-effort constraint handling.

Round-trip versus one-way is handled structurally (which positions may move
and whether the closing edge counts). Time windows get a re-ordering pass that
is an approximation, not a feasibility guarantee. Capacity, maximum time and
maximum distance are advisory: they produce violation messages and never
reject or reshape a route.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ...config import settings
from ...errors import ValidationError
from ...models.domain import Constraints, Stop
from .heuristics import interior_bounds
from .models import Route

logger = logging.getLogger(__name__)


def validate_stops(stops: Sequence[Stop]) -> list[Stop]:
    """Check the stop count and return the stops that have a resolved location."""
    if len(stops) < settings.min_stops or len(stops) > settings.max_stops:
        raise ValidationError(
            f"Route planning needs between {settings.min_stops} and {settings.max_stops} stops, got {len(stops)}."
        )
    stop_ids = [stop.stop_id for stop in stops]
    if len(set(stop_ids)) != len(stop_ids):
        raise ValidationError("Stop ids must be unique.")

    resolved = [stop for stop in stops if stop.is_resolved]
    if len(resolved) < settings.min_stops:
        raise ValidationError(
            f"At least {settings.min_stops} stops need a resolved location, got {len(resolved)}."
        )
    if len(resolved) < len(stops):
        skipped = ", ".join(stop.stop_id for stop in stops if not stop.is_resolved)
        logger.warning(f"Excluding stops without a location: {skipped}")
    return resolved


def apply_time_windows(route: Route, stops: Sequence[Stop], round_trip: bool) -> Route:
    """Re-order windowed interior stops by earliest arrival.

    Windowed stops are sorted among the positions they already occupy; stops
    without a window keep their optimised slot.
    """
    first, last = interior_bounds(len(route), round_trip)
    if last < first:
        return route
    positions = [
        position for position in range(first, last + 1) if stops[route[position]].time_window is not None
    ]
    if len(positions) < 2:
        return route

    windowed = sorted((route[position] for position in positions), key=lambda index: stops[index].time_window.earliest)
    reordered = list(route)
    for position, index in zip(positions, windowed):
        reordered[position] = index
    return tuple(reordered)


def time_window_status(stop: Stop, arrival_minute_of_day: float) -> str:
    window = stop.time_window
    if window is None:
        return "none"
    if arrival_minute_of_day < window.earliest:
        return "early"
    if arrival_minute_of_day > window.latest:
        return "late"
    return "ok"


def total_demand(stops: Sequence[Stop]) -> float:
    return sum(stop.demand or 0.0 for stop in stops)


def check_violations(
    ordered_stops: Sequence[Stop],
    arrival_minutes_of_day: Sequence[float],
    total_time_minutes: float,
    total_distance_km: float,
    constraints: Constraints,
) -> list[str]:
    violations: list[str] = []

    if constraints.max_total_time_minutes is not None and total_time_minutes > constraints.max_total_time_minutes:
        excess = total_time_minutes - constraints.max_total_time_minutes
        violations.append(f"Exceeds maximum time by {round(excess)} minutes")

    if constraints.max_total_distance_km is not None and total_distance_km > constraints.max_total_distance_km:
        excess = total_distance_km - constraints.max_total_distance_km
        violations.append(f"Exceeds maximum distance by {excess:.1f} km")

    if constraints.vehicle_capacity is not None:
        demand = total_demand(ordered_stops)
        if demand > constraints.vehicle_capacity:
            violations.append(f"Exceeds vehicle capacity by {demand - constraints.vehicle_capacity:g}")

    for stop, arrival in zip(ordered_stops, arrival_minutes_of_day):
        if time_window_status(stop, arrival) == "late":
            violations.append(f"Arrives after the time window closes at {stop.name}")

    return violations
