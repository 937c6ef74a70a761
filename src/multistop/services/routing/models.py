"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

Route = tuple[int, ...]


@dataclass(slots=True)
class CostMatrix:
    """Square distance (metres) and duration (seconds) tables indexed by stop position.

    Cells may be ``None`` while the matrix is being assembled from a provider;
    everything downstream of acquisition works on a complete matrix.
    """

    distances: list[list[Optional[float]]]
    durations: list[list[Optional[float]]]

    def __post_init__(self) -> None:
        size = len(self.distances)
        if len(self.durations) != size:
            raise ValueError(f"Matrix size mismatch: distances={size}, durations={len(self.durations)}")
        for row in (*self.distances, *self.durations):
            if len(row) != size:
                raise ValueError("Cost matrix must be square.")
        for i in range(size):
            self.distances[i][i] = 0.0
            self.durations[i][i] = 0.0

    @property
    def size(self) -> int:
        return len(self.distances)

    def missing_cells(self) -> list[tuple[int, int]]:
        return [
            (i, j)
            for i in range(self.size)
            for j in range(self.size)
            if self.distances[i][j] is None or self.durations[i][j] is None
        ]

    @property
    def is_complete(self) -> bool:
        return not self.missing_cells()

    def costs(self, objective: str = "distance") -> list[list[float]]:
        if not self.is_complete:
            raise ValueError("Cost matrix still has missing cells.")
        table = self.durations if objective == "duration" else self.distances
        return [list(row) for row in table]


@dataclass(slots=True)
class Solution:
    route: Route
    cost: float
    algorithm: str
    optimal: bool = True
    iterations: int = 0
    warnings: List[str] = field(default_factory=list)


@dataclass(slots=True)
class PlannedStop:
    sequence: int
    stop_id: str
    name: str
    lat: float
    lng: float
    arrival: str
    departure: str
    arrival_offset_min: float
    service_minutes: float
    distance_to_next_km: Optional[float]
    distance_to_next: Optional[str]
    duration_to_next_min: Optional[float]
    time_window_status: str


@dataclass(slots=True)
class PlannedRoute:
    stops: List[PlannedStop]
    total_distance_km: float
    total_distance: str
    travel_minutes: float
    service_minutes: float
    total_time_minutes: float
    total_time: str
    fuel_cost: float
    estimated_fuel: str
    co2_kg: float
    co2_emissions: str
    geometry: List[tuple[float, float]]
    finish_time: str
    violations: List[str] = field(default_factory=list)
