"""2-opt local search and the route moves shared with annealing."""

from __future__ import annotations

from .heuristics import Costs, interior_bounds, route_cost
from .models import Route

# Ignore float noise from summing the same edges in a different order.
IMPROVEMENT_EPSILON = 1e-9


def reverse_segment(route: Route, i: int, j: int) -> Route:
    """Return a copy of ``route`` with positions ``i..j`` (inclusive) reversed."""
    return route[:i] + route[i : j + 1][::-1] + route[j + 1 :]


def swap_positions(route: Route, i: int, j: int) -> Route:
    if i == j:
        return route
    items = list(route)
    items[i], items[j] = items[j], items[i]
    return tuple(items)


def two_opt(route: Route, costs: Costs, round_trip: bool, max_passes: int | None = None) -> tuple[Route, float]:
    """Reverse interior segments while that strictly lowers the cost.

    The first improving reversal of each pass is taken and scanning restarts;
    the search stops after a pass with no improvement (or ``max_passes``).
    Returns the improved route and its cost.
    """
    best = tuple(route)
    best_cost = route_cost(best, costs, round_trip)
    first, last = interior_bounds(len(best), round_trip)
    if last - first < 1:
        return best, best_cost

    passes = 0
    improved = True
    while improved:
        improved = False
        passes += 1
        for i in range(first, last):
            for j in range(i + 1, last + 1):
                candidate = reverse_segment(best, i, j)
                candidate_cost = route_cost(candidate, costs, round_trip)
                if candidate_cost < best_cost - IMPROVEMENT_EPSILON:
                    best = candidate
                    best_cost = candidate_cost
                    improved = True
                    break
            if improved:
                break
        if max_passes is not None and passes >= max_passes:
            break
    return best, best_cost
