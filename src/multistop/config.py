"""Application configuration and settings management."""

import re
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CLOCK_PATTERN = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="MSR_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Multi-Stop Route Planner"
    data_root: Path = Field(default=Path("data"), description="Root directory for persisted route outputs.")
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_max_retries: int = Field(default=3, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)
    osrm_timeout_seconds: float = Field(default=30.0, gt=0.0)

    min_stops: int = Field(default=2, ge=2)
    max_stops: int = Field(default=10, ge=2)
    small_instance_threshold: int = Field(
        default=8,
        ge=2,
        description="Largest stop count solved with constructive heuristics plus 2-opt.",
    )

    annealing_initial_temperature: float = Field(default=1000.0, gt=0.0)
    annealing_final_temperature: float = Field(default=1.0, gt=0.0)
    annealing_cooling_rate: float = Field(default=0.995, gt=0.0, lt=1.0)
    annealing_min_iterations_per_stage: int = Field(default=100, ge=1)
    annealing_iterations_per_stop: int = Field(default=5, ge=1)
    annealing_two_opt_ratio: float = Field(default=0.8, ge=0.0, le=1.0)
    solver_time_limit_seconds: float = Field(default=30.0, gt=0.0)

    driving_speed_kmh: float = Field(default=45.0, gt=0.0)
    walking_speed_kmh: float = Field(default=5.0, gt=0.0)
    cycling_speed_kmh: float = Field(default=15.0, gt=0.0)

    default_departure_time: str = Field(default="09:00", description="Nominal departure as HH:MM.")
    fuel_efficiency_km_per_litre: float = Field(default=8.0, gt=0.0)
    fuel_price_per_litre: float = Field(default=1.5, ge=0.0)
    fuel_currency_symbol: str = "$"
    co2_kg_per_km: float = Field(default=0.2, ge=0.0)

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("default_departure_time")
    @classmethod
    def _check_clock(cls, value: str) -> str:
        value = value.strip()
        if not CLOCK_PATTERN.match(value):
            raise ValueError(f"Departure time must be HH:MM, got '{value}'.")
        return value

    def speed_for_mode(self, mode: str) -> float:
        """Average speed (km/h) assumed for a travel mode when estimating durations."""
        speeds = {
            "driving": self.driving_speed_kmh,
            "walking": self.walking_speed_kmh,
            "cycling": self.cycling_speed_kmh,
        }
        try:
            return speeds[mode]
        except KeyError as exc:
            raise ValueError(f"Unknown travel mode '{mode}'.") from exc


settings = Settings()
