"""Stop-order optimisation for small multi-stop trips."""

from .errors import OptimizationTimeout, PersistenceError, RoutingProviderError, ValidationError
from .schemas.routing import PlannedRouteResponse, PlanningRequest
from .services.routing.service import plan_route

__all__ = [
    "plan_route",
    "PlanningRequest",
    "PlannedRouteResponse",
    "ValidationError",
    "RoutingProviderError",
    "OptimizationTimeout",
    "PersistenceError",
]
