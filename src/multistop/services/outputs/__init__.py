"""Output serializers."""

from .routing_formatter import planned_route_to_csv, planned_route_to_json

__all__ = ["planned_route_to_json", "planned_route_to_csv"]
