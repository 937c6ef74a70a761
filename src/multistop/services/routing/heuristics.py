"""Constructive tour heuristics over a cost matrix.

Every builder returns a full permutation of ``range(n)``: index 0 is the origin,
and for one-way trips index ``n - 1`` is the fixed destination. Only the indices
in between are reordered. Round-trip costs include the closing edge back to the
origin.
"""

from __future__ import annotations

import math
import random
from typing import Optional, Sequence

from .models import Route

Costs = Sequence[Sequence[float]]


def route_cost(route: Route, costs: Costs, round_trip: bool) -> float:
    """Sum of consecutive edge costs, plus the return edge for round trips."""
    total = 0.0
    for i in range(len(route) - 1):
        total += costs[route[i]][route[i + 1]]
    if round_trip and len(route) > 1:
        total += costs[route[-1]][route[0]]
    return total


def interior_bounds(size: int, round_trip: bool) -> tuple[int, int]:
    """Inclusive (first, last) positions that may be reordered.

    ``first > last`` means nothing can move.
    """
    last = size - 1 if round_trip else size - 2
    return 1, last


def free_indices(size: int, round_trip: bool) -> list[int]:
    first, last = interior_bounds(size, round_trip)
    return list(range(first, last + 1))


def is_valid_route(route: Sequence[int], size: int, round_trip: bool) -> bool:
    """Permutation of all indices with the origin (and one-way destination) in place."""
    if len(route) != size or sorted(route) != list(range(size)):
        return False
    if size and route[0] != 0:
        return False
    if not round_trip and size > 1 and route[-1] != size - 1:
        return False
    return True


def _close(partial: list[int], size: int, round_trip: bool) -> Route:
    if not round_trip and size > 1:
        partial.append(size - 1)
    return tuple(partial)


def _tail_anchor(size: int, round_trip: bool) -> int:
    """Index the open end of a partial route leads to: origin or fixed destination."""
    return 0 if round_trip else size - 1


def insertion_cost(partial: Sequence[int], city: int, position: int, costs: Costs, anchor: int) -> float:
    """Marginal cost of inserting ``city`` before ``partial[position]``.

    Inserting at ``len(partial)`` places the city between the last stop and ``anchor``.
    """
    before = partial[position - 1]
    after = partial[position] if position < len(partial) else anchor
    return costs[before][city] + costs[city][after] - costs[before][after]


def _best_insertion(partial: list[int], city: int, costs: Costs, anchor: int) -> int:
    best_position = 1
    best_cost = math.inf
    for position in range(1, len(partial) + 1):
        cost = insertion_cost(partial, city, position, costs, anchor)
        if cost < best_cost:
            best_cost = cost
            best_position = position
    return best_position


def nearest_neighbor(
    costs: Costs,
    round_trip: bool,
    priorities: Optional[Sequence[Optional[int]]] = None,
) -> Route:
    """Greedy tour: always move to the cheapest unvisited stop.

    With ``priorities`` each candidate is scored ``cost / sqrt(priority)`` so
    important stops are pulled forward. Ties go to the lowest index.
    """
    size = len(costs)
    if size <= 2:
        return tuple(range(size))

    unvisited = free_indices(size, round_trip)
    route = [0]
    current = 0
    while unvisited:
        nearest = unvisited[0]
        nearest_score = math.inf
        for candidate in unvisited:
            score = costs[current][candidate]
            if priorities is not None:
                priority = priorities[candidate]
                if priority and priority > 0:
                    score = score / math.sqrt(priority)
            if score < nearest_score:
                nearest_score = score
                nearest = candidate
        route.append(nearest)
        unvisited.remove(nearest)
        current = nearest
    return _close(route, size, round_trip)


def random_insertion(costs: Costs, round_trip: bool, rng: random.Random) -> Route:
    """Insert stops in random order, each at its cheapest position."""
    size = len(costs)
    if size <= 2:
        return tuple(range(size))

    anchor = _tail_anchor(size, round_trip)
    unvisited = free_indices(size, round_trip)
    route = [0]
    while unvisited:
        city = unvisited.pop(rng.randrange(len(unvisited)))
        route.insert(_best_insertion(route, city, costs, anchor), city)
    return _close(route, size, round_trip)


def farthest_insertion(costs: Costs, round_trip: bool) -> Route:
    """Insert the most isolated remaining stop first, each at its cheapest position."""
    size = len(costs)
    if size <= 2:
        return tuple(range(size))

    anchor = _tail_anchor(size, round_trip)
    unvisited = free_indices(size, round_trip)
    route = [0]
    placed = {0, anchor}
    while unvisited:
        farthest = unvisited[0]
        max_min_cost = -math.inf
        for city in unvisited:
            min_cost = min(costs[member][city] for member in placed)
            if min_cost > max_min_cost:
                max_min_cost = min_cost
                farthest = city
        unvisited.remove(farthest)
        route.insert(_best_insertion(route, farthest, costs, anchor), farthest)
        placed.add(farthest)
    return _close(route, size, round_trip)
