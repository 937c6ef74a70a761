"""Stop-order solver: strategy registry and size-based dispatch."""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from ...config import settings
from ...errors import OptimizationTimeout, ValidationError
from ...models.domain import Constraints, OptimizationOptions
from .annealing import AnnealingSchedule, iterations_per_stage, simulated_annealing
from .heuristics import Costs, farthest_insertion, is_valid_route, nearest_neighbor, random_insertion, route_cost
from .local_search import two_opt
from .models import CostMatrix, Route, Solution

logger = logging.getLogger(__name__)


class Algorithm(str, Enum):
    NEAREST_NEIGHBOR = "nearest_neighbor"
    RANDOM_INSERTION = "random_insertion"
    FARTHEST_INSERTION = "farthest_insertion"
    TWO_OPT = "two_opt"
    HYBRID = "hybrid"
    SIMULATED_ANNEALING = "simulated_annealing"


@dataclass(slots=True)
class SolveContext:
    round_trip: bool
    rng: random.Random
    options: OptimizationOptions
    priorities: Optional[Sequence[Optional[int]]] = None
    deadline: Optional[float] = None
    cancel_event: Optional[threading.Event] = None
    iterations: int = 0


Strategy = Callable[[Costs, SolveContext], Route]


def _nearest_neighbor(costs: Costs, context: SolveContext) -> Route:
    return nearest_neighbor(costs, context.round_trip, context.priorities)


def _random_insertion(costs: Costs, context: SolveContext) -> Route:
    return random_insertion(costs, context.round_trip, context.rng)


def _farthest_insertion(costs: Costs, context: SolveContext) -> Route:
    return farthest_insertion(costs, context.round_trip)


def _two_opt(costs: Costs, context: SolveContext) -> Route:
    seed = ensure_valid(_nearest_neighbor(costs, context), len(costs), context.round_trip, "nearest_neighbor seed")
    route, _ = two_opt(seed, costs, context.round_trip)
    return route


def _hybrid(costs: Costs, context: SolveContext) -> Route:
    """Cheapest of the three constructive tours, polished with 2-opt."""
    candidates = [
        (name, ensure_valid(STRATEGIES[name](costs, context), len(costs), context.round_trip, name.value))
        for name in (Algorithm.NEAREST_NEIGHBOR, Algorithm.RANDOM_INSERTION, Algorithm.FARTHEST_INSERTION)
    ]
    seed_name, seed = min(candidates, key=lambda item: route_cost(item[1], costs, context.round_trip))
    logger.debug(f"Hybrid seed from {seed_name.value}: cost {route_cost(seed, costs, context.round_trip):.1f}")
    route, _ = two_opt(seed, costs, context.round_trip)
    return route


def _simulated_annealing(costs: Costs, context: SolveContext) -> Route:
    options = context.options
    schedule = AnnealingSchedule(
        initial_temperature=settings.annealing_initial_temperature,
        final_temperature=settings.annealing_final_temperature,
        cooling_rate=settings.annealing_cooling_rate,
        iterations_per_stage=iterations_per_stage(
            len(costs),
            minimum=settings.annealing_min_iterations_per_stage,
            per_stop=settings.annealing_iterations_per_stop,
        ),
        two_opt_ratio=options.two_opt_ratio if options.two_opt_ratio is not None else settings.annealing_two_opt_ratio,
    )
    seed = ensure_valid(_nearest_neighbor(costs, context), len(costs), context.round_trip, "annealing seed")
    result = simulated_annealing(
        costs,
        seed,
        context.round_trip,
        context.rng,
        schedule,
        deadline=context.deadline,
        max_iterations=options.max_iterations,
        cancel_event=context.cancel_event,
    )
    context.iterations += result.iterations
    return result.route


STRATEGIES: dict[Algorithm, Strategy] = {
    Algorithm.NEAREST_NEIGHBOR: _nearest_neighbor,
    Algorithm.RANDOM_INSERTION: _random_insertion,
    Algorithm.FARTHEST_INSERTION: _farthest_insertion,
    Algorithm.TWO_OPT: _two_opt,
    Algorithm.HYBRID: _hybrid,
    Algorithm.SIMULATED_ANNEALING: _simulated_annealing,
}


def select_algorithm(stop_count: int, options: OptimizationOptions | None = None) -> Algorithm:
    """Explicit choice wins; otherwise hybrid up to the small-instance threshold, annealing above it."""
    if options is not None and options.algorithm != "auto":
        try:
            return Algorithm(options.algorithm)
        except ValueError as exc:
            raise ValidationError(f"Unknown algorithm '{options.algorithm}'.") from exc
    if stop_count > settings.small_instance_threshold:
        return Algorithm.SIMULATED_ANNEALING
    return Algorithm.HYBRID


def ensure_valid(route: Route, size: int, round_trip: bool, stage: str) -> Route:
    if not is_valid_route(route, size, round_trip):
        raise RuntimeError(f"{stage} produced an invalid stop order: {route}")
    return route


def solve_order(
    matrix: CostMatrix,
    constraints: Constraints,
    options: OptimizationOptions | None = None,
    *,
    priorities: Optional[Sequence[Optional[int]]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Solution:
    """Pick a strategy for the instance size and return the cheapest order it finds."""
    options = options or OptimizationOptions()
    costs = matrix.costs(options.objective)
    size = matrix.size
    algorithm = select_algorithm(size, options)
    time_limit = options.time_limit_seconds or settings.solver_time_limit_seconds
    context = SolveContext(
        round_trip=constraints.round_trip,
        rng=random.Random(options.seed),
        options=options,
        priorities=priorities if options.respect_priority else None,
        deadline=time.monotonic() + time_limit,
        cancel_event=cancel_event,
    )

    start = time.monotonic()
    optimal = True
    warnings: list[str] = []
    try:
        route = STRATEGIES[algorithm](costs, context)
    except OptimizationTimeout as exc:
        logger.warning(f"{algorithm.value} stopped early ({exc}); returning best route found")
        route = exc.route
        context.iterations += exc.iterations
        optimal = False
        warnings.append(f"Optimisation stopped early: {exc}. The route may not be the best available.")

    ensure_valid(route, size, constraints.round_trip, algorithm.value)
    cost = route_cost(route, costs, constraints.round_trip)
    logger.info(
        f"Solved {size} stops with {algorithm.value}: cost {cost:.1f} ({options.objective}) "
        f"in {time.monotonic() - start:.2f}s"
    )
    return Solution(
        route=route,
        cost=cost,
        algorithm=algorithm.value,
        optimal=optimal,
        iterations=context.iterations,
        warnings=warnings,
    )
