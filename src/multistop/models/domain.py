"""Domain models for stops and solve-time constraints."""

from dataclasses import dataclass
from typing import Literal, Optional

TravelMode = Literal["driving", "walking", "cycling"]
Objective = Literal["distance", "duration"]


@dataclass(frozen=True, slots=True)
class Location:
    lat: float
    lng: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Acceptable arrival interval, expressed in minutes after midnight."""

    earliest: int
    latest: int

    def __post_init__(self) -> None:
        if not 0 <= self.earliest <= self.latest <= 24 * 60:
            raise ValueError(f"Invalid time window {self.earliest}-{self.latest}.")


@dataclass(slots=True)
class Stop:
    """A place the route must visit, with optional scheduling and load metadata."""

    stop_id: str
    name: str
    location: Optional[Location]
    address: Optional[str] = None
    service_minutes: float = 0.0
    time_window: Optional[TimeWindow] = None
    priority: Optional[int] = None
    demand: Optional[float] = None

    @property
    def is_resolved(self) -> bool:
        return self.location is not None


@dataclass(slots=True)
class Constraints:
    round_trip: bool = False
    vehicle_capacity: Optional[float] = None
    max_total_time_minutes: Optional[float] = None
    max_total_distance_km: Optional[float] = None
    avoid_tolls: bool = False
    avoid_highways: bool = False
    travel_mode: TravelMode = "driving"


@dataclass(slots=True)
class OptimizationOptions:
    algorithm: str = "auto"
    objective: Objective = "distance"
    time_limit_seconds: Optional[float] = None
    max_iterations: Optional[int] = None
    two_opt_ratio: Optional[float] = None
    seed: Optional[int] = None
    respect_priority: bool = False
    departure_time: Optional[str] = None
