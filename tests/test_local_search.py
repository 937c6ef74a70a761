import math
import random

import pytest

from multistop.services.routing.heuristics import is_valid_route, nearest_neighbor, route_cost
from multistop.services.routing.local_search import reverse_segment, swap_positions, two_opt


def _euclidean(points):
    return [[math.dist(a, b) for b in points] for a in points]


SQUARE = _euclidean([(0, 0), (0, 1), (1, 1), (1, 0)])


def test_reverse_segment_is_inclusive_and_returns_new_tuple():
    route = (0, 1, 2, 3, 4)
    assert reverse_segment(route, 1, 3) == (0, 3, 2, 1, 4)
    assert route == (0, 1, 2, 3, 4)


def test_swap_positions():
    assert swap_positions((0, 1, 2, 3), 1, 3) == (0, 3, 2, 1)
    assert swap_positions((0, 1, 2, 3), 2, 2) == (0, 1, 2, 3)


def test_two_opt_uncrosses_the_unit_square():
    crossing = (0, 2, 1, 3)
    assert route_cost(crossing, SQUARE, round_trip=True) > 4

    route, cost = two_opt(crossing, SQUARE, round_trip=True)

    assert cost == pytest.approx(4.0)
    assert route in ((0, 1, 2, 3), (0, 3, 2, 1))


def test_two_opt_keeps_one_way_endpoints():
    points = [(0, 0), (3, 0), (1, 0), (2, 0), (4, 0)]
    costs = _euclidean(points)
    route, cost = two_opt((0, 1, 2, 3, 4), costs, round_trip=False)
    assert route == (0, 2, 3, 1, 4)
    assert cost == pytest.approx(4.0)


@pytest.mark.parametrize("seed", range(5))
def test_two_opt_never_increases_cost(seed):
    rng = random.Random(seed)
    points = [(rng.random(), rng.random()) for _ in range(9)]
    costs = _euclidean(points)
    start = nearest_neighbor(costs, round_trip=False)

    route, cost = two_opt(start, costs, round_trip=False)

    assert is_valid_route(route, 9, round_trip=False)
    assert cost <= route_cost(start, costs, round_trip=False)
    assert cost == pytest.approx(route_cost(route, costs, round_trip=False))


def test_two_opt_leaves_trivial_routes_alone():
    costs = [[0, 1, 2], [1, 0, 1], [2, 1, 0]]
    assert two_opt((0, 1), [[0, 1], [1, 0]], round_trip=True) == ((0, 1), 2)
    assert two_opt((0, 1, 2), costs, round_trip=False)[0] == (0, 1, 2)
