import pytest

from multistop.models.domain import Constraints, Location, Stop, TimeWindow
from multistop.services.routing.assembler import (
    assemble_route,
    format_clock,
    format_distance,
    format_duration,
    parse_clock,
)
from multistop.services.routing.models import CostMatrix


def _uniform_matrix(size: int, metres: float = 2000.0, seconds: float = 600.0) -> CostMatrix:
    distances = [[0.0 if i == j else metres for j in range(size)] for i in range(size)]
    durations = [[0.0 if i == j else seconds for j in range(size)] for i in range(size)]
    return CostMatrix(distances=distances, durations=durations)


def _stops(service=(0.0, 15.0, 0.0)) -> list[Stop]:
    return [
        Stop(stop_id=f"S{i}", name=f"Stop {i}", location=Location(21.5 + i * 0.01, 39.2), service_minutes=minutes)
        for i, minutes in enumerate(service)
    ]


def test_clock_helpers():
    assert parse_clock("09:05") == 545
    assert format_clock(545) == "09:05"
    assert format_clock(24 * 60 + 30) == "00:30"
    with pytest.raises(ValueError):
        parse_clock("25:00")


def test_display_formats():
    assert format_distance(12.345) == "12.3 km"
    assert format_duration(125) == "2h 5m"
    assert format_duration(45) == "45m"
    assert format_duration(60) == "1h 0m"


def test_one_way_schedule_and_totals():
    planned = assemble_route((0, 1, 2), _stops(), _uniform_matrix(3), Constraints(), departure_time="09:00")

    assert [stop.arrival for stop in planned.stops] == ["09:00", "09:10", "09:35"]
    assert planned.stops[1].departure == "09:25"
    assert planned.stops[-1].distance_to_next_km is None
    assert planned.stops[0].distance_to_next == "2.0 km"
    assert planned.total_distance == "4.0 km"
    assert planned.travel_minutes == pytest.approx(20.0)
    assert planned.total_time_minutes == pytest.approx(35.0)
    assert planned.total_time == "35m"
    assert planned.estimated_fuel == "$0.75"
    assert planned.co2_emissions == "0.8kg"
    assert planned.finish_time == "09:35"
    assert len(planned.geometry) == 3
    assert planned.violations == []


def test_round_trip_includes_return_leg():
    stops = _stops()
    planned = assemble_route((0, 2, 1), stops, _uniform_matrix(3), Constraints(round_trip=True), departure_time="08:00")

    assert [stop.stop_id for stop in planned.stops] == ["S0", "S2", "S1"]
    assert planned.stops[-1].distance_to_next_km == pytest.approx(2.0)
    assert planned.total_distance_km == pytest.approx(6.0)
    assert planned.total_time_minutes == pytest.approx(45.0)
    assert planned.finish_time == "08:45"
    assert planned.geometry[0] == planned.geometry[-1]
    assert len(planned.geometry) == 4


def test_uses_default_departure_and_supplied_geometry():
    geometry = [(21.5, 39.2), (21.505, 39.21), (21.52, 39.2)]
    planned = assemble_route((0, 1, 2), _stops(), _uniform_matrix(3), Constraints(), geometry=geometry)

    assert planned.stops[0].arrival == "09:00"
    assert planned.geometry == geometry


def test_time_window_status_and_violations():
    stops = _stops()
    stops[1].time_window = TimeWindow(540, 545)
    stops[2].time_window = TimeWindow(570, 600)
    constraints = Constraints(max_total_distance_km=3.0)

    planned = assemble_route((0, 1, 2), stops, _uniform_matrix(3), constraints, departure_time="09:00")

    assert [stop.time_window_status for stop in planned.stops] == ["none", "late", "ok"]
    assert planned.violations == [
        "Exceeds maximum distance by 1.0 km",
        "Arrives after the time window closes at Stop 1",
    ]
