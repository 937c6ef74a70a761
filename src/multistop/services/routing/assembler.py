"""Turn a solved stop order into a presentation-ready route."""

from __future__ import annotations

from typing import Optional, Sequence

from ...config import settings
from ...models.domain import Constraints, Stop
from .constraints import check_violations, time_window_status
from .models import CostMatrix, PlannedRoute, PlannedStop, Route

MINUTES_PER_DAY = 24 * 60


def parse_clock(value: str) -> int:
    """``"HH:MM"`` to minutes after midnight."""
    hours, minutes = (int(part) for part in value.strip().split(":"))
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid clock time '{value}'.")
    return hours * 60 + minutes


def format_clock(minute_of_day: float) -> str:
    total = int(round(minute_of_day)) % MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"


def format_distance(distance_km: float) -> str:
    return f"{distance_km:.1f} km"


def format_duration(minutes: float) -> str:
    total = int(minutes)
    hours, remainder = divmod(total, 60)
    if hours > 0:
        return f"{hours}h {remainder}m"
    return f"{remainder}m"


def fuel_cost(distance_km: float) -> float:
    return distance_km / settings.fuel_efficiency_km_per_litre * settings.fuel_price_per_litre


def co2_kg(distance_km: float) -> float:
    return distance_km * settings.co2_kg_per_km


def assemble_route(
    route: Route,
    stops: Sequence[Stop],
    matrix: CostMatrix,
    constraints: Constraints,
    *,
    departure_time: Optional[str] = None,
    geometry: Optional[Sequence[tuple[float, float]]] = None,
) -> PlannedRoute:
    """Build per-stop arrivals and route totals for ``route``.

    ``stops`` and ``matrix`` are indexed the same way as ``route``. Arrivals
    accumulate each prior leg's travel time plus each prior stop's service time,
    starting from ``departure_time`` (defaults to the configured nominal departure).
    """
    departure_minute = parse_clock(departure_time or settings.default_departure_time)

    legs: list[tuple[int, int]] = list(zip(route, route[1:]))
    if constraints.round_trip and len(route) > 1:
        legs.append((route[-1], route[0]))

    planned: list[PlannedStop] = []
    arrivals: list[float] = []
    ordered_stops = [stops[index] for index in route]
    offset = 0.0
    for position, index in enumerate(route):
        stop = stops[index]
        if position > 0:
            previous = route[position - 1]
            offset += stops[previous].service_minutes + matrix.durations[previous][index] / 60.0
        arrival = departure_minute + offset
        arrivals.append(arrival)

        leg_distance_km: Optional[float] = None
        leg_duration_min: Optional[float] = None
        if position < len(legs):
            origin, target = legs[position]
            leg_distance_km = matrix.distances[origin][target] / 1000.0
            leg_duration_min = matrix.durations[origin][target] / 60.0

        planned.append(
            PlannedStop(
                sequence=position + 1,
                stop_id=stop.stop_id,
                name=stop.name,
                lat=stop.location.lat,
                lng=stop.location.lng,
                arrival=format_clock(arrival),
                departure=format_clock(arrival + stop.service_minutes),
                arrival_offset_min=offset,
                service_minutes=stop.service_minutes,
                distance_to_next_km=leg_distance_km,
                distance_to_next=format_distance(leg_distance_km) if leg_distance_km is not None else None,
                duration_to_next_min=leg_duration_min,
                time_window_status=time_window_status(stop, arrival),
            )
        )

    total_distance_km = sum(matrix.distances[a][b] for a, b in legs) / 1000.0
    travel_minutes = sum(matrix.durations[a][b] for a, b in legs) / 60.0
    service_minutes = sum(stop.service_minutes for stop in ordered_stops)
    total_minutes = travel_minutes + service_minutes

    if geometry is None:
        geometry = [stop.location.as_tuple() for stop in ordered_stops]
        if constraints.round_trip and len(ordered_stops) > 1:
            geometry.append(ordered_stops[0].location.as_tuple())

    fuel = fuel_cost(total_distance_km)
    emissions = co2_kg(total_distance_km)
    return PlannedRoute(
        stops=planned,
        total_distance_km=total_distance_km,
        total_distance=format_distance(total_distance_km),
        travel_minutes=travel_minutes,
        service_minutes=service_minutes,
        total_time_minutes=total_minutes,
        total_time=format_duration(total_minutes),
        fuel_cost=fuel,
        estimated_fuel=f"{settings.fuel_currency_symbol}{fuel:.2f}",
        co2_kg=emissions,
        co2_emissions=f"{emissions:.1f}kg",
        geometry=list(geometry),
        finish_time=format_clock(departure_minute + total_minutes),
        violations=check_violations(ordered_stops, arrivals, total_minutes, total_distance_km, constraints),
    )
