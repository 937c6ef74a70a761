"""Distance/duration matrix acquisition with great-circle fallback.

A provider is anything exposing ``table(locations, mode=..., avoid_tolls=...,
avoid_highways=...)`` and returning a :class:`CostMatrix`. Providers signal a
total failure with :class:`RoutingProviderError` and partial failures with
``None`` cells. Either way the solver receives a complete matrix: missing cells
are estimated from the haversine distance and the travel mode's average speed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from ...config import settings
from ...errors import RoutingProviderError
from ...models.domain import Constraints, Location
from ..geospatial import haversine_km
from .models import CostMatrix

logger = logging.getLogger(__name__)


class MatrixProvider(Protocol):
    def table(
        self,
        locations: Sequence[Location],
        *,
        mode: str = "driving",
        avoid_tolls: bool = False,
        avoid_highways: bool = False,
    ) -> CostMatrix: ...


@dataclass(slots=True)
class MatrixAcquisition:
    matrix: CostMatrix
    source: str  # "provider", "partial" or "fallback"
    filled_cells: int = 0
    warnings: list[str] = field(default_factory=list)


def estimate_leg(origin: Location, target: Location, mode: str = "driving") -> tuple[float, float]:
    """Return an estimated (metres, seconds) for a single leg."""
    distance_km = haversine_km(origin.lat, origin.lng, target.lat, target.lng)
    duration_hours = distance_km / settings.speed_for_mode(mode)
    return distance_km * 1000.0, duration_hours * 3600.0


def fallback_matrix(locations: Sequence[Location], mode: str = "driving") -> CostMatrix:
    n = len(locations)
    distances: list[list[float | None]] = [[0.0] * n for _ in range(n)]
    durations: list[list[float | None]] = [[0.0] * n for _ in range(n)]
    for i in range(n):
        for j in range(n):
            if i == j:
                continue
            distances[i][j], durations[i][j] = estimate_leg(locations[i], locations[j], mode)
    return CostMatrix(distances=distances, durations=durations)


def backfill_matrix(
    matrix: CostMatrix, locations: Sequence[Location], mode: str = "driving"
) -> tuple[CostMatrix, int]:
    """Replace missing cells with estimates. Returns a new matrix and the number of cells filled."""
    if matrix.size != len(locations):
        raise ValueError(f"Matrix has {matrix.size} rows but {len(locations)} locations were given.")

    distances = [list(row) for row in matrix.distances]
    durations = [list(row) for row in matrix.durations]
    missing = matrix.missing_cells()
    for i, j in missing:
        estimated_distance, estimated_duration = estimate_leg(locations[i], locations[j], mode)
        # Keep whichever half the provider did return.
        if distances[i][j] is None:
            distances[i][j] = estimated_distance
        if durations[i][j] is None:
            durations[i][j] = estimated_duration
    return CostMatrix(distances=distances, durations=durations), len(missing)


def acquire_matrix(
    locations: Sequence[Location],
    constraints: Constraints,
    provider: MatrixProvider | None = None,
) -> MatrixAcquisition:
    """Fetch the matrix from ``provider`` and degrade to estimates wherever it fails."""
    mode = constraints.travel_mode
    if provider is None:
        logger.info(f"No matrix provider configured; estimating {len(locations)} stops with haversine")
        return MatrixAcquisition(
            matrix=fallback_matrix(locations, mode),
            source="fallback",
            filled_cells=len(locations) * (len(locations) - 1),
            warnings=["Travel distances are straight-line estimates; no routing provider was available."],
        )

    try:
        matrix = provider.table(
            locations,
            mode=mode,
            avoid_tolls=constraints.avoid_tolls,
            avoid_highways=constraints.avoid_highways,
        )
    except RoutingProviderError as exc:
        logger.warning(f"Routing provider failed: {exc}. Using haversine fallback.")
        return MatrixAcquisition(
            matrix=fallback_matrix(locations, mode),
            source="fallback",
            filled_cells=len(locations) * (len(locations) - 1),
            warnings=[f"Routing provider unavailable ({exc}); travel distances are straight-line estimates."],
        )

    if matrix.is_complete:
        return MatrixAcquisition(matrix=matrix, source="provider")

    matrix, filled = backfill_matrix(matrix, locations, mode)
    logger.warning(f"Routing provider returned {filled} incomplete cells; filled with haversine estimates")
    return MatrixAcquisition(
        matrix=matrix,
        source="partial",
        filled_cells=filled,
        warnings=[f"{filled} travel legs could not be routed and were estimated from straight-line distance."],
    )
