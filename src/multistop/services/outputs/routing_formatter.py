"""Serializers for planned routes."""

from __future__ import annotations

import csv
import io

from ...schemas.routing import PlannedRouteResponse


def planned_route_to_json(route: PlannedRouteResponse) -> dict:
    return route.model_dump(mode="json")


def planned_route_to_csv(route: PlannedRouteResponse) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "sequence",
        "stop_id",
        "name",
        "lat",
        "lng",
        "arrival",
        "departure",
        "service_minutes",
        "distance_to_next_km",
        "duration_to_next_min",
        "time_window_status",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for stop in route.stops:
        writer.writerow(
            {
                "sequence": stop.sequence,
                "stop_id": stop.stop_id,
                "name": stop.name,
                "lat": stop.lat,
                "lng": stop.lng,
                "arrival": stop.arrival,
                "departure": stop.departure,
                "service_minutes": stop.service_minutes,
                "distance_to_next_km": "" if stop.distance_to_next_km is None else round(stop.distance_to_next_km, 3),
                "duration_to_next_min": "" if stop.duration_to_next_min is None else round(stop.duration_to_next_min, 1),
                "time_window_status": stop.time_window_status,
            }
        )
    return buffer.getvalue()
