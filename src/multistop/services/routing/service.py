"""Route planning orchestration service."""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict
from typing import Optional, Sequence

from ...config import settings
from ...errors import PersistenceError, RoutingProviderError
from ...models.domain import Constraints, Location, OptimizationOptions, Stop, TimeWindow
from ...persistence.filesystem import FileStorage, save_route
from ...schemas.routing import (
    PlannedRouteResponse,
    PlannedStopModel,
    PlanningRequest,
    RouteOptionsModel,
    StopModel,
)
from .assembler import assemble_route, parse_clock
from .constraints import apply_time_windows, validate_stops
from .matrix import MatrixProvider, acquire_matrix
from .osrm_client import OSRMClient
from .solver import ensure_valid, solve_order

logger = logging.getLogger(__name__)


def _to_stop(model: StopModel) -> Stop:
    window = None
    if model.time_window is not None:
        window = TimeWindow(
            earliest=parse_clock(model.time_window.earliest),
            latest=parse_clock(model.time_window.latest),
        )
    location = Location(lat=model.location.lat, lng=model.location.lng) if model.location else None
    return Stop(
        stop_id=model.id,
        name=model.name,
        location=location,
        address=model.address,
        service_minutes=model.service_minutes,
        time_window=window,
        priority=model.priority,
        demand=model.demand,
    )


def _build_constraints(options: RouteOptionsModel) -> Constraints:
    return Constraints(
        round_trip=options.round_trip,
        vehicle_capacity=options.vehicle_capacity,
        max_total_time_minutes=options.max_total_time_minutes,
        max_total_distance_km=options.max_total_distance_km,
        avoid_tolls=options.avoid_tolls,
        avoid_highways=options.avoid_highways,
        travel_mode=options.travel_mode,
    )


def _build_options(options: RouteOptionsModel) -> OptimizationOptions:
    return OptimizationOptions(
        algorithm=options.algorithm,
        objective=options.objective,
        time_limit_seconds=options.time_limit_seconds,
        max_iterations=options.max_iterations,
        two_opt_ratio=options.two_opt_ratio,
        seed=options.seed,
        respect_priority=options.respect_priority,
        departure_time=options.departure_time,
    )


def _default_provider() -> Optional[MatrixProvider]:
    if not settings.osrm_base_url:
        return None
    return OSRMClient()


def _street_geometry(
    provider: Optional[MatrixProvider],
    stops: Sequence[Stop],
    constraints: Constraints,
) -> tuple[Optional[list[tuple[float, float]]], Optional[str]]:
    """Fetch street geometry for the ordered stops, or explain why it is unavailable."""
    route_geometry = getattr(provider, "route", None)
    if route_geometry is None:
        return None, "Street geometry unavailable: no routing provider supports it; showing straight lines."
    waypoints = [stop.location for stop in stops]
    if constraints.round_trip:
        waypoints.append(stops[0].location)
    try:
        return route_geometry(waypoints, mode=constraints.travel_mode), None
    except (RoutingProviderError, ValueError) as exc:
        logger.warning(f"Street geometry request failed: {exc}")
        return None, f"Street geometry unavailable ({exc}); showing straight lines."


def plan_route(
    payload: PlanningRequest,
    provider: Optional[MatrixProvider] = None,
    storage: Optional[FileStorage] = None,
    cancel_event: Optional[threading.Event] = None,
) -> PlannedRouteResponse:
    """Validate, fetch costs, optimise the stop order and assemble the result.

    Raises :class:`ValidationError` before any matrix lookup when the stop set is
    unusable. Provider failures, budget exhaustion and persistence failures are
    reported through ``warnings`` on an otherwise valid route.
    """
    all_stops = [_to_stop(model) for model in payload.stops]
    stops = validate_stops(all_stops)
    excluded = [stop.stop_id for stop in all_stops if not stop.is_resolved]

    constraints = _build_constraints(payload.options)
    options = _build_options(payload.options)
    provider = provider if provider is not None else _default_provider()

    acquisition = acquire_matrix([stop.location for stop in stops], constraints, provider)
    warnings = list(acquisition.warnings)

    solution = solve_order(
        acquisition.matrix,
        constraints,
        options,
        priorities=[stop.priority for stop in stops],
        cancel_event=cancel_event,
    )
    warnings.extend(solution.warnings)

    route = solution.route
    if any(stop.time_window is not None for stop in stops):
        route = ensure_valid(
            apply_time_windows(route, stops, constraints.round_trip),
            len(stops),
            constraints.round_trip,
            "time window pass",
        )
        if route != solution.route:
            warnings.append("Stops with time windows were re-ordered by earliest arrival; travel cost may be higher.")

    ordered_stops = [stops[index] for index in route]
    geometry = None
    if payload.options.street_geometry:
        geometry, geometry_warning = _street_geometry(provider, ordered_stops, constraints)
        if geometry_warning:
            warnings.append(geometry_warning)

    planned = assemble_route(
        route,
        stops,
        acquisition.matrix,
        constraints,
        departure_time=options.departure_time,
        geometry=geometry,
    )
    for violation in planned.violations:
        logger.warning(f"Constraint violation: {violation}")

    response = PlannedRouteResponse(
        stops=[PlannedStopModel(**asdict(stop)) for stop in planned.stops],
        total_distance_km=planned.total_distance_km,
        total_distance=planned.total_distance,
        travel_minutes=planned.travel_minutes,
        service_minutes=planned.service_minutes,
        total_time_minutes=planned.total_time_minutes,
        total_time=planned.total_time,
        fuel_cost=planned.fuel_cost,
        estimated_fuel=planned.estimated_fuel,
        co2_kg=planned.co2_kg,
        co2_emissions=planned.co2_emissions,
        finish_time=planned.finish_time,
        geometry=planned.geometry,
        algorithm=solution.algorithm,
        optimal=solution.optimal,
        matrix_source=acquisition.source,
        excluded_stop_ids=excluded,
        violations=planned.violations,
        warnings=warnings,
        options=payload.options,
    )

    if payload.persist:
        try:
            route_id = save_route(response, storage, label=payload.label)
            response.route_id = route_id
        except PersistenceError as exc:
            # The planned route is still valid; report the failure instead of raising.
            response.warnings.append(f"Route could not be saved: {exc}")

    return response
