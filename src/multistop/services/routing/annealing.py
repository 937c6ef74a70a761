"""Simulated annealing over interior stop positions."""

from __future__ import annotations

import logging
import math
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from ...errors import OptimizationTimeout
from .heuristics import Costs, interior_bounds, route_cost
from .local_search import reverse_segment, swap_positions
from .models import Route

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AnnealingSchedule:
    initial_temperature: float = 1000.0
    final_temperature: float = 1.0
    cooling_rate: float = 0.995
    iterations_per_stage: int = 100
    two_opt_ratio: float = 0.8


@dataclass(slots=True)
class AnnealingResult:
    route: Route
    cost: float
    iterations: int
    stages: int
    best_costs: list[float] = field(default_factory=list)


def iterations_per_stage(stop_count: int, minimum: int = 100, per_stop: int = 5) -> int:
    return max(minimum, per_stop * stop_count)


def random_neighbor(route: Route, round_trip: bool, rng: random.Random, two_opt_ratio: float) -> Route:
    """Reverse a random interior segment, or swap two interior stops."""
    first, last = interior_bounds(len(route), round_trip)
    if last - first < 1:
        return route
    if rng.random() < two_opt_ratio:
        i = rng.randint(first, last - 1)
        j = rng.randint(i + 1, last)
        return reverse_segment(route, i, j)
    i, j = rng.sample(range(first, last + 1), 2)
    return swap_positions(route, i, j)


def simulated_annealing(
    costs: Costs,
    initial: Route,
    round_trip: bool,
    rng: random.Random,
    schedule: AnnealingSchedule | None = None,
    *,
    deadline: Optional[float] = None,
    max_iterations: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> AnnealingResult:
    """Metropolis search from ``initial``; always returns the best route seen.

    ``deadline`` is a ``time.monotonic()`` timestamp. When it passes, when
    ``max_iterations`` is reached, or when ``cancel_event`` is set, the search
    raises :class:`OptimizationTimeout` carrying the best route found so far.
    """
    schedule = schedule or AnnealingSchedule()
    current = tuple(initial)
    current_cost = route_cost(current, costs, round_trip)
    best, best_cost = current, current_cost
    best_costs = [best_cost]

    first, last = interior_bounds(len(current), round_trip)
    if last - first < 1:
        return AnnealingResult(route=best, cost=best_cost, iterations=0, stages=0, best_costs=best_costs)

    temperature = schedule.initial_temperature
    iterations = 0
    stages = 0
    while temperature > schedule.final_temperature:
        if cancel_event is not None and cancel_event.is_set():
            raise OptimizationTimeout("Annealing cancelled by caller", best, best_cost, iterations)
        if deadline is not None and time.monotonic() >= deadline:
            raise OptimizationTimeout("Annealing time limit reached", best, best_cost, iterations)

        for _ in range(schedule.iterations_per_stage):
            if max_iterations is not None and iterations >= max_iterations:
                raise OptimizationTimeout("Annealing iteration budget exhausted", best, best_cost, iterations)
            iterations += 1
            neighbor = random_neighbor(current, round_trip, rng, schedule.two_opt_ratio)
            neighbor_cost = route_cost(neighbor, costs, round_trip)
            delta = neighbor_cost - current_cost
            if delta < 0 or rng.random() < math.exp(-delta / temperature):
                current, current_cost = neighbor, neighbor_cost
                if current_cost < best_cost:
                    best, best_cost = current, current_cost
        best_costs.append(best_cost)
        temperature *= schedule.cooling_rate
        stages += 1

    logger.debug(f"Annealing finished after {stages} stages / {iterations} iterations, best cost {best_cost:.1f}")
    return AnnealingResult(route=best, cost=best_cost, iterations=iterations, stages=stages, best_costs=best_costs)
