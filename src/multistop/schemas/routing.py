"""Route planning request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..config import CLOCK_PATTERN


class LocationModel(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class TimeWindowModel(BaseModel):
    earliest: str = Field(..., description="Earliest acceptable arrival, HH:MM.")
    latest: str = Field(..., description="Latest acceptable arrival, HH:MM.")

    @field_validator("earliest", "latest")
    @classmethod
    def _check_clock(cls, value: str) -> str:
        value = value.strip()
        if not CLOCK_PATTERN.match(value):
            raise ValueError(f"Time must be HH:MM, got '{value}'.")
        hours, minutes = value.split(":")
        return f"{int(hours):02d}:{minutes}"


class StopModel(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    location: Optional[LocationModel] = Field(
        default=None,
        description="Resolved coordinates. Stops without a location are left out of the plan.",
    )
    service_minutes: float = Field(default=0.0, ge=0)
    time_window: Optional[TimeWindowModel] = None
    priority: Optional[int] = Field(default=None, ge=1, le=10)
    demand: Optional[float] = Field(default=None, ge=0)


class RouteOptionsModel(BaseModel):
    round_trip: bool = False
    travel_mode: Literal["driving", "walking", "cycling"] = "driving"
    avoid_tolls: bool = False
    avoid_highways: bool = False
    vehicle_capacity: Optional[float] = Field(default=None, ge=0)
    max_total_time_minutes: Optional[float] = Field(default=None, gt=0)
    max_total_distance_km: Optional[float] = Field(default=None, gt=0)
    algorithm: Literal[
        "auto",
        "nearest_neighbor",
        "random_insertion",
        "farthest_insertion",
        "two_opt",
        "hybrid",
        "simulated_annealing",
    ] = "auto"
    objective: Literal["distance", "duration"] = "distance"
    time_limit_seconds: Optional[float] = Field(default=None, gt=0)
    max_iterations: Optional[int] = Field(default=None, ge=1)
    two_opt_ratio: Optional[float] = Field(default=None, ge=0, le=1)
    seed: Optional[int] = None
    respect_priority: bool = False
    departure_time: Optional[str] = Field(default=None, description="Departure clock time, HH:MM.")
    street_geometry: bool = Field(
        default=False,
        description="Ask the routing provider for street-following geometry instead of straight stop-to-stop lines.",
    )

    @field_validator("departure_time")
    @classmethod
    def _check_departure(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not CLOCK_PATTERN.match(value):
            raise ValueError(f"Departure time must be HH:MM, got '{value}'.")
        return value


class PlanningRequest(BaseModel):
    stops: List[StopModel]
    options: RouteOptionsModel = Field(default_factory=RouteOptionsModel)
    persist: bool = False
    label: Optional[str] = Field(default=None, description="Friendly name for persisted outputs.")

    @model_validator(mode="after")
    def _check_windows(self) -> "PlanningRequest":
        for stop in self.stops:
            window = stop.time_window
            if window is not None and window.earliest > window.latest:
                raise ValueError(f"Time window for stop '{stop.id}' closes before it opens.")
        return self


class PlannedStopModel(BaseModel):
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


class PlannedRouteResponse(BaseModel):
    route_id: Optional[str] = None
    stops: List[PlannedStopModel]
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
    finish_time: str
    geometry: List[tuple[float, float]]
    algorithm: str
    optimal: bool
    matrix_source: str
    excluded_stop_ids: List[str] = Field(default_factory=list)
    violations: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    options: RouteOptionsModel
