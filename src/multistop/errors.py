"""Exception types raised while planning a route."""

from __future__ import annotations


class ValidationError(ValueError):
    """The stop set cannot be solved (count out of range or too few resolved stops)."""


class RoutingProviderError(ConnectionError):
    """Distance/duration lookup failed for some or all stop pairs."""


class OptimizationTimeout(TimeoutError):
    """Search budget ran out or the caller cancelled before convergence.

    Carries the best route found so far so callers never lose a valid tour.
    """

    def __init__(self, message: str, route: tuple[int, ...], cost: float, iterations: int) -> None:
        super().__init__(message)
        self.route = route
        self.cost = cost
        self.iterations = iterations


class PersistenceError(OSError):
    """Saving a planned route failed; the route itself is still usable."""
